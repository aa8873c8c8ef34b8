"""
Tests for the Benchmark Ranking Engine.

Covered:
  - marathon_time 200 lands in the A band, percentile strictly inside 99–99.9
  - marathon_time 999 → F
  - monotonic in value for higher-is-better metrics
  - direction reversed for lower-is-better metrics
  - off-table values: floor (5), above best band (100), gaps (lower band max)
  - metrics without ranges are reported but not scored
  - weighted mean with 3 / 2 / 1 weights; absent metrics contribute nothing
  - percentile → rank thresholds
  - elite reference, gap analysis, years to top, questions
  - invalid input, strict critical-metric mode, unknown category
"""
import math

import pytest

from app.core.errors import (
    InvalidMetricValueError,
    MissingCriticalMetricError,
    UnknownCategoryError,
)
from app.services.benchmarks import get_category
from app.services.ranking import (
    assess_metrics,
    calculate_rank,
    elite_reference,
    estimate_years_to_top,
    gap_to_top,
    get_assessment_questions,
    metric_percentile,
    percentile_to_rank,
)

MARATHON = get_category("running_marathon")
FIVE_K = get_category("running_5k")
STEPS = get_category("daily_activity")
FITNESS = get_category("general_fitness")


def _pct(category, metric_id, value):
    return metric_percentile(category, category.metric(metric_id), value)


# ---------------------------------------------------------------------------
# Single metric
# ---------------------------------------------------------------------------

class TestMetricPercentile:
    def test_marathon_200_in_a_band(self):
        p = _pct(MARATHON, "marathon_time", 200)
        assert 99.0 < p < 99.9
        # (210 - 200) / (210 - 165) of the A window
        assert p == pytest.approx(99.0 + (10 / 45) * 0.9)
        assert percentile_to_rank(p) == "A"

    def test_marathon_999_is_f(self):
        p = _pct(MARATHON, "marathon_time", 999)
        assert p == 5.0
        assert percentile_to_rank(p) == "F"

    def test_higher_is_better_monotonic(self):
        values = [v * 250 for v in range(0, 480)]   # 0 .. 119750 steps
        percentiles = [_pct(STEPS, "daily_steps", v) for v in values]
        assert all(a <= b for a, b in zip(percentiles, percentiles[1:]))
        assert percentiles[0] == 5.0
        assert percentiles[-1] == 100.0

    def test_lower_is_better_direction(self):
        times = [60, 40, 30, 25, 20, 17, 15, 10]    # faster → higher percentile
        percentiles = [_pct(FIVE_K, "time_5k", t) for t in times]
        assert all(a < b for a, b in zip(percentiles, percentiles[1:]))

    def test_shared_edge_takes_lower_band(self):
        # 2000 is the top of F and the bottom of E
        assert _pct(STEPS, "daily_steps", 2000) == pytest.approx(20.0)

    def test_worse_than_worst_band_gets_floor(self):
        assert _pct(FITNESS, "resting_hr", 130) == 5.0

    def test_better_than_best_band(self):
        assert _pct(STEPS, "daily_steps", 250000) == 100.0

    def test_gap_between_bands(self):
        # F is 0-0 and E is 1-2 workouts; C tops out at 4 and B starts at 5
        assert _pct(FITNESS, "weekly_workouts", 0.5) == 20.0
        assert _pct(FITNESS, "weekly_workouts", 4.5) == 90.0

    def test_zero_width_band(self):
        # F band for weekly_workouts is exactly 0; the worst band is floored
        assert _pct(FITNESS, "weekly_workouts", 0) == 5.0

    @pytest.mark.parametrize("category_id,metric_id,inside,outside", [
        ("running_marathon", "marathon_time", 999, 1000),
        ("running_5k", "time_5k", 999, 1000),
        ("weight_loss", "body_fat", 100, 101),
    ])
    def test_worst_band_never_below_outside(self, category_id, metric_id, inside, outside):
        category = get_category(category_id)
        assert _pct(category, metric_id, inside) >= _pct(category, metric_id, outside)

    def test_bmi_below_every_band_is_not_elite(self):
        p = _pct(get_category("weight_loss"), "bmi", 15)
        assert p == 5.0
        assert percentile_to_rank(p) == "F"

    def test_open_ended_best_band_still_tops_out(self):
        # S for marathon_time starts at 0, so any legal time is inside it
        assert _pct(MARATHON, "marathon_time", 120) > 99.9

    def test_metric_without_ranges(self):
        assert _pct(FIVE_K, "can_run_5k", 1.0) is None

    def test_custom_floor(self):
        assert metric_percentile(
            FITNESS, FITNESS.metric("resting_hr"), 130, unranked_percentile=1.0
        ) == 1.0


# ---------------------------------------------------------------------------
# Overall rank
# ---------------------------------------------------------------------------

class TestCalculateRank:
    def test_weighted_mean(self):
        values = {"marathon_time": 200, "weekly_mileage": 10, "longest_run": 20}
        marathon = 99.0 + (10 / 45) * 0.9          # critical
        mileage = 20.0 + (5 / 15) * 30.0           # critical
        longest = 50.0 + (5 / 15) * 25.0           # important
        expected = (marathon * 3 + mileage * 3 + longest * 2) / 8

        r = calculate_rank(MARATHON, values)
        assert r.percentile == pytest.approx(round(expected, 2))
        assert r.rank == "D"
        assert [m.metric_id for m in r.breakdown] == ["marathon_time", "weekly_mileage", "longest_run"]

    def test_absent_metrics_do_not_count(self):
        alone = calculate_rank(MARATHON, {"marathon_time": 200})
        assert alone.rank == "A"
        assert alone.percentile == pytest.approx(99.2)

    def test_boolean_metric_reported_not_scored(self):
        r = calculate_rank(FIVE_K, {"time_5k": 20, "can_run_5k": True})
        assert r.percentile == pytest.approx(95.4)
        assert r.rank == "B"
        can_run = next(m for m in r.breakdown if m.metric_id == "can_run_5k")
        assert can_run.percentile is None
        assert can_run.value == 1.0
        assert can_run.elite_value == "N/A"

    def test_no_values(self):
        r = calculate_rank(MARATHON, {})
        assert (r.rank, r.percentile, r.breakdown) == ("F", 0.0, [])

    def test_only_unscored_metrics(self):
        r = calculate_rank(FIVE_K, {"can_run_5k": False})
        assert (r.rank, r.percentile) == ("F", 0.0)
        assert len(r.breakdown) == 1

    def test_unknown_metrics_ignored(self):
        r = calculate_rank(MARATHON, {"marathon_time": 200, "bench_ratio": 3})
        assert [m.metric_id for m in r.breakdown] == ["marathon_time"]

    def test_none_value_treated_as_absent(self):
        r = calculate_rank(MARATHON, {"marathon_time": 200, "weekly_mileage": None})
        assert r.rank == "A"

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), -1, "fast", [1]])
    def test_invalid_values(self, bad):
        with pytest.raises(InvalidMetricValueError) as exc:
            calculate_rank(MARATHON, {"marathon_time": bad})
        assert exc.value.code == "INVALID_METRIC_VALUE"
        assert exc.value.details["metric_id"] == "marathon_time"

    def test_deterministic(self):
        values = {"daily_steps": 12345, "active_minutes": 77, "sedentary_hours": 6}
        assert calculate_rank(STEPS, values) == calculate_rank(STEPS, values)


class TestPercentileToRank:
    @pytest.mark.parametrize("p,rank", [
        (0, "F"), (19.99, "F"), (20, "E"), (49.99, "E"), (50, "D"), (75, "C"),
        (90, "B"), (98.99, "B"), (99, "A"), (99.89, "A"), (99.9, "S"), (100, "S"),
    ])
    def test_thresholds(self, p, rank):
        assert percentile_to_rank(p) == rank


# ---------------------------------------------------------------------------
# Reporting helpers
# ---------------------------------------------------------------------------

class TestReporting:
    def test_elite_reference(self):
        assert elite_reference(MARATHON, MARATHON.metric("marathon_time")) == "165-210 minutes"
        assert elite_reference(MARATHON, MARATHON.metric("weekly_mileage")) == "80-130 km"
        assert elite_reference(MARATHON, MARATHON.metric("years_running")) == "N/A"

    def test_gap_from_f(self):
        gaps = gap_to_top("F", MARATHON)
        assert [g.split(":")[0] for g in gaps] == ["E-Rank", "D-Rank", "C-Rank", "A-Rank (TOP 1%)"]

    def test_gap_from_c_reaches_a(self):
        gaps = gap_to_top("C", MARATHON)
        assert [g.split(":")[0] for g in gaps] == ["B-Rank", "A-Rank"]

    def test_no_gap_at_top(self):
        assert gap_to_top("A", MARATHON) == []
        assert gap_to_top("S", MARATHON) == []

    def test_years_to_top(self):
        assert estimate_years_to_top("F") == 5
        assert estimate_years_to_top("B") == 1
        assert estimate_years_to_top("A") == 0.5
        assert estimate_years_to_top("S") == 0

    def test_questions(self):
        questions = {q.id: q for q in get_assessment_questions("running_5k")}
        assert questions["can_run_5k"].type == "boolean"
        assert questions["time_5k"].type == "number"
        assert questions["time_5k"].required is True
        assert questions["weekly_runs"].required is False


# ---------------------------------------------------------------------------
# assess_metrics
# ---------------------------------------------------------------------------

class TestAssessMetrics:
    def test_full_assessment(self):
        a = assess_metrics("running_marathon", {"marathon_time": 200})
        assert a.category_name == "Marathon Running"
        assert a.rank == "A"
        assert a.rank_label == "Elite (Top 1%)"
        assert a.top_one_percent_looks_like.startswith("Marathon sub-3:00")
        assert a.gap_to_top == []
        assert a.estimated_years_to_top == 0.5
        assert a.metrics[0].elite_value == "165-210 minutes"

    def test_unknown_category(self):
        with pytest.raises(UnknownCategoryError):
            assess_metrics("underwater_basket_weaving", {})

    def test_strict_mode_requires_critical(self):
        with pytest.raises(MissingCriticalMetricError) as exc:
            assess_metrics("running_5k", {"time_5k": 20}, require_critical=True)
        assert exc.value.details["missing"] == ["can_run_5k"]

    def test_strict_mode_satisfied(self):
        a = assess_metrics(
            "running_5k", {"time_5k": 20, "can_run_5k": True}, require_critical=True
        )
        assert a.rank == "B"

    def test_lenient_by_default(self):
        a = assess_metrics("running_5k", {"weekly_runs": 3})
        assert not math.isnan(a.percentile)
