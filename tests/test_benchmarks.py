"""
Tests for the benchmark reference tables and their validation.
"""
from dataclasses import replace
from types import MappingProxyType

import pytest

from app.core.errors import BenchmarkConfigError, UnknownCategoryError
from app.services.benchmarks import (
    CATEGORIES,
    DEFAULT_CATEGORY_ID,
    RANK_ORDER,
    Range,
    get_categories,
    get_category,
    get_rank_info,
    validate_category,
)

EXPECTED_IDS = {
    "running_marathon", "running_5k", "strength_powerlifting", "weight_loss",
    "yoga_flexibility", "daily_activity", "general_fitness", "productivity",
}


def _with_band_range(category, rank, metric_id, lo, hi):
    bands = []
    for b in category.benchmarks:
        if b.rank == rank:
            ranges = dict(b.ranges)
            ranges[metric_id] = Range(lo, hi)
            b = replace(b, ranges=MappingProxyType(ranges))
        bands.append(b)
    return replace(category, benchmarks=tuple(bands))


class TestRegistry:
    def test_all_categories_present(self):
        assert set(CATEGORIES) == EXPECTED_IDS
        assert {c.id for c in get_categories()} == EXPECTED_IDS
        assert DEFAULT_CATEGORY_ID in CATEGORIES

    def test_every_category_has_seven_ranked_bands(self):
        for c in get_categories():
            assert tuple(b.rank for b in c.benchmarks) == RANK_ORDER

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            CATEGORIES["new"] = CATEGORIES[DEFAULT_CATEGORY_ID]

    def test_unknown_category(self):
        with pytest.raises(UnknownCategoryError) as exc:
            get_category("chess")
        assert exc.value.http_status == 404
        assert exc.value.code == "UNKNOWN_CATEGORY"

    def test_rank_info(self):
        a = get_rank_info("A")
        assert (a.min_percentile, a.max_percentile) == (99.0, 99.9)
        with pytest.raises(ValueError):
            get_rank_info("Z")


class TestValidateCategory:
    def test_shipped_tables_are_valid(self):
        for c in get_categories():
            validate_category(c)

    def test_min_above_max(self):
        bad = _with_band_range(get_category("daily_activity"), "D", "daily_steps", 8000, 6000)
        with pytest.raises(BenchmarkConfigError, match="min > max"):
            validate_category(bad)

    def test_unknown_metric_in_band(self):
        bad = _with_band_range(get_category("daily_activity"), "C", "vo2max", 40, 50)
        with pytest.raises(BenchmarkConfigError, match="unknown metric"):
            validate_category(bad)

    def test_bands_out_of_order(self):
        # C lower bound below D's for a higher-is-better metric
        bad = _with_band_range(get_category("daily_activity"), "C", "daily_steps", 1000, 10000)
        with pytest.raises(BenchmarkConfigError, match="not ordered"):
            validate_category(bad)

    def test_lower_is_better_order(self):
        # marathon_time must get faster (lower) as rank rises
        bad = _with_band_range(get_category("running_marathon"), "B", "marathon_time", 400, 500)
        with pytest.raises(BenchmarkConfigError):
            validate_category(bad)

    def test_missing_rank(self):
        c = get_category("productivity")
        bad = replace(c, benchmarks=c.benchmarks[:-1])
        with pytest.raises(BenchmarkConfigError, match="must be ranked"):
            validate_category(bad)

    def test_duplicate_metric(self):
        c = get_category("productivity")
        bad = replace(c, metrics=c.metrics + (c.metrics[0],))
        with pytest.raises(BenchmarkConfigError, match="duplicate"):
            validate_category(bad)

    def test_unknown_importance(self):
        c = get_category("productivity")
        bad = replace(c, metrics=(replace(c.metrics[0], importance="vital"),) + c.metrics[1:])
        with pytest.raises(BenchmarkConfigError, match="importance"):
            validate_category(bad)
