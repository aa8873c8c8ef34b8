"""
Tests for the goal classifier.

Rule order is the contract: the first matching rule wins, so overlapping
keywords resolve to the earlier category.
"""
import pytest

from app.services.benchmarks import CATEGORIES
from app.services.classifier import (
    CLASSIFICATION_RULES,
    ClassificationRule,
    classify_goal,
    classify_goal_from_rules,
)


@pytest.mark.parametrize("text,expected", [
    ("Run a marathon next spring", "running_marathon"),
    ("Finish 26.2 miles", "running_marathon"),
    ("My first 42K", "running_marathon"),
    ("Break 25 minutes in the 5k", "running_5k"),
    ("run a 5 k", "running_5k"),
    ("I want to run really fast", "running_5k"),
    ("Start jogging", "running_5k"),
    ("More cardio", "running_5k"),
    ("Deadlift 2x bodyweight", "strength_powerlifting"),
    ("Go to the gym", "strength_powerlifting"),
    ("Lose 10 pounds", "weight_loss"),
    ("Get lean for summer", "weight_loss"),
    ("Daily yoga practice", "yoga_flexibility"),
    ("Meditation every morning", "yoga_flexibility"),
    ("4 hours of deep work", "productivity"),
    ("Study for exams", "productivity"),
    ("10k steps a day", "daily_activity"),
    ("Walk the dog every evening", "daily_activity"),
    ("Be healthier", "general_fitness"),
    ("", "general_fitness"),
])
def test_classify_goal(text, expected):
    assert classify_goal(text) == expected


class TestRuleOrder:
    def test_marathon_beats_running(self):
        assert classify_goal("run a marathon fast") == "running_marathon"

    def test_running_beats_strength(self):
        assert classify_goal("run then lift") == "running_5k"

    def test_strength_beats_weight(self):
        # "body" would match weight loss; "squat" comes first
        assert classify_goal("squat my body weight") == "strength_powerlifting"

    def test_case_insensitive(self):
        assert classify_goal("MARATHON") == "running_marathon"

    def test_none_text(self):
        assert classify_goal(None) == "general_fitness"

    def test_result_reports_rule(self):
        r = classify_goal_from_rules("yoga")
        assert (r.category_id, r.rule_name) == ("yoga_flexibility", "yoga")
        assert classify_goal_from_rules("chess").rule_name is None


class TestRules:
    def test_every_rule_targets_a_known_category(self):
        for rule in CLASSIFICATION_RULES:
            assert rule.category_id in CATEGORIES

    def test_custom_rules(self):
        rules = (ClassificationRule("chess", "productivity", lambda t: "chess" in t),)
        assert classify_goal_from_rules("Chess rating 2000", rules).category_id == "productivity"
        assert classify_goal_from_rules("tennis", rules).category_id == "general_fitness"
