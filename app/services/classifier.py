"""
Deterministic goal classifier: matches free-text goal descriptions against
an ordered list of keyword rules and returns the benchmark category id.

First matching rule wins. Falls back to "general_fitness" when nothing
matches, so every string maps to a category.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from app.services.benchmarks import DEFAULT_CATEGORY_ID


Predicate = Callable[[str], bool]


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    category_id: str
    matches: Predicate


def _any(*keywords: str) -> Predicate:
    return lambda text: any(k in text for k in keywords)


# Order matters: "marathon" must win over plain "run", running over "fast".
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("marathon", "running_marathon", _any("marathon", "26.2", "42k")),
    ClassificationRule(
        "fast_5k",
        "running_5k",
        lambda text: _any("5k", "5 k")(text) or ("run" in text and "fast" in text),
    ),
    ClassificationRule("running", "running_5k", _any("run", "jogging", "cardio")),
    ClassificationRule(
        "strength",
        "strength_powerlifting",
        _any("strength", "lift", "squat", "bench", "deadlift", "muscle", "powerlifting", "gym"),
    ),
    ClassificationRule(
        "weight_loss",
        "weight_loss",
        _any("weight", "lose", "fat", "lean", "slim", "diet", "pounds", "kg", "body"),
    ),
    ClassificationRule(
        "yoga",
        "yoga_flexibility",
        _any("yoga", "flexibility", "stretch", "meditation", "mindfulness"),
    ),
    ClassificationRule(
        "productivity",
        "productivity",
        _any("productive", "focus", "work", "study", "concentration", "deep work"),
    ),
    ClassificationRule("activity", "daily_activity", _any("step", "walk", "active")),
)


@dataclass
class ClassificationResult:
    category_id: str
    rule_name: Optional[str]


def classify_goal_from_rules(
    text: str, rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES
) -> ClassificationResult:
    """Evaluate `rules` in order against lower-cased `text`."""
    lowered = (text or "").lower()
    for rule in rules:
        if rule.matches(lowered):
            return ClassificationResult(category_id=rule.category_id, rule_name=rule.name)
    return ClassificationResult(category_id=DEFAULT_CATEGORY_ID, rule_name=None)


def classify_goal(text: str) -> str:
    return classify_goal_from_rules(text).category_id
