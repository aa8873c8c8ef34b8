from .quest import Quest, QuestAttempt
from .progression import LevelState, Streak, XpLedger
from .assessment import HonestAssessmentRecord, AssessmentSession

__all__ = [
    "Quest",
    "QuestAttempt",
    "LevelState",
    "Streak",
    "XpLedger",
    "HonestAssessmentRecord",
    "AssessmentSession",
]
