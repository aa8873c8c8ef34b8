"""
Benchmark Ranking Engine — self-reported metrics to a percentile and rank.

Per metric
----------
Walk the category's bands in rank order (F -> S); the first band whose
closed range contains the value wins, and the value is interpolated inside
that rank's percentile window:

  higher is better : progress = (value - min) / (max - min)
  lower is better  : progress = (max - value) / (max - min)
  percentile       = window.min + progress * (window.max - window.min)

A zero-width range uses a denominator of 1. Inside the worst band the
result never drops below UNRANKED_PERCENTILE.

Values no band contains:
  worse than the worst band   -> UNRANKED_PERCENTILE (5): exists but unranked
  better than the best band   -> best band's window max (100), unless a
                                 lower-is-better best band has a real
                                 lower edge (BMI 20): then UNRANKED_PERCENTILE
  between two bands           -> the lower band's window max

Metrics without any benchmark range (yes/no questions) are reported with
percentile None and left out of the overall score.

Overall
-------
Weighted mean of per-metric percentiles, weights critical 3 / important 2 /
supporting 1. Metrics absent from the input add nothing to numerator or
denominator. No contributing metric -> 0.

No hidden state, no I/O: the output depends only on (category, values).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Mapping, Optional

from app.core.config import settings
from app.core.errors import InvalidMetricValueError, MissingCriticalMetricError
from app.services.benchmarks import (
    ELITE_RANK,
    IMPORTANCE_WEIGHTS,
    RANK_ORDER,
    RANK_THRESHOLDS,
    GoalCategory,
    Importance,
    MetricDefinition,
    get_category,
    get_rank_info,
)

logger = logging.getLogger(__name__)

YEARS_TO_TOP: Mapping[str, float] = {
    "F": 5, "E": 4, "D": 3, "C": 2, "B": 1, "A": 0.5, "S": 0,
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class AssessedMetric:
    metric_id: str
    name: str
    value: float
    unit: str
    importance: str
    percentile: Optional[float]     # None when the metric has no benchmarks
    elite_value: str                # e.g. "165-210 minutes", or "N/A"


@dataclass
class RankResult:
    rank: str
    percentile: float
    breakdown: list[AssessedMetric] = field(default_factory=list)


@dataclass
class HonestAssessment:
    category_id: str
    category_name: str
    rank: str
    rank_label: str
    percentile: float
    metrics: list[AssessedMetric]
    top_one_percent_looks_like: str
    gap_to_top: list[str]
    estimated_years_to_top: float


@dataclass(frozen=True)
class AssessmentQuestion:
    id: str
    question: str
    type: str          # "number" | "boolean"
    unit: str
    required: bool     # critical metrics


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fmt(n: float) -> str:
    return f"{n:g}"


def _coerce_value(metric_id: str, raw) -> float:
    if isinstance(raw, bool):
        return 1.0 if raw else 0.0
    if not isinstance(raw, Real):
        raise InvalidMetricValueError(metric_id, raw)
    value = float(raw)
    if not math.isfinite(value) or value < 0:
        raise InvalidMetricValueError(metric_id, raw)
    return value


def elite_reference(category: GoalCategory, metric: MetricDefinition) -> str:
    """The A-band range, or the nearest band below it that defines the metric."""
    elite_index = RANK_ORDER.index(ELITE_RANK)
    for rank in reversed(RANK_ORDER[: elite_index + 1]):
        band = category.benchmark(rank)
        if band is not None and metric.id in band.ranges:
            r = band.ranges[metric.id]
            return f"{_fmt(r.min)}-{_fmt(r.max)} {metric.unit}"
    return "N/A"


# ---------------------------------------------------------------------------
# Core — single metric
# ---------------------------------------------------------------------------

def metric_percentile(
    category: GoalCategory,
    metric: MetricDefinition,
    value: float,
    unranked_percentile: Optional[float] = None,
) -> Optional[float]:
    floor = settings.UNRANKED_PERCENTILE if unranked_percentile is None else unranked_percentile
    bands = [(b, b.ranges[metric.id]) for b in category.benchmarks if metric.id in b.ranges]
    if not bands:
        return None

    worst_band = bands[0][0]
    for band, r in bands:
        if not r.contains(value):
            continue
        window = get_rank_info(band.rank)
        width = (r.max - r.min) or 1
        if metric.higher_is_better:
            progress = (value - r.min) / width
        else:
            progress = (r.max - value) / width
        percentile = window.min_percentile + progress * (window.max_percentile - window.min_percentile)
        if band is worst_band:
            # nothing inside a table may score below a value outside it
            percentile = max(floor, percentile)
        return percentile

    best_band, best = bands[-1]
    if metric.higher_is_better:
        beyond_best = value > best.max
    else:
        beyond_best = value < best.min
    if beyond_best:
        # under a real lower edge (BMI) is out of range, not elite
        if metric.higher_is_better or best.min == 0:
            return get_rank_info(best_band.rank).max_percentile
        return floor

    if metric.higher_is_better:
        surpassed = [b for b, r in bands if value > r.max]
    else:
        surpassed = [b for b, r in bands if value < r.min]
    if not surpassed:
        return floor
    return get_rank_info(surpassed[-1].rank).max_percentile


def percentile_to_rank(percentile: float) -> str:
    for threshold in reversed(RANK_THRESHOLDS):
        if percentile >= threshold.min_percentile:
            return threshold.rank
    return RANK_THRESHOLDS[0].rank


# ---------------------------------------------------------------------------
# Public — rank a metric snapshot
# ---------------------------------------------------------------------------

def calculate_rank(
    category: GoalCategory,
    values: Mapping[str, object],
    unranked_percentile: Optional[float] = None,
) -> RankResult:
    unknown = set(values) - {m.id for m in category.metrics}
    if unknown:
        logger.debug("Ignoring metrics not in %s: %s", category.id, sorted(unknown))

    breakdown: list[AssessedMetric] = []
    total_score = 0.0
    total_weight = 0

    for metric in category.metrics:
        if metric.id not in values or values[metric.id] is None:
            continue
        value = _coerce_value(metric.id, values[metric.id])
        percentile = metric_percentile(category, metric, value, unranked_percentile)
        if percentile is not None:
            weight = IMPORTANCE_WEIGHTS[metric.importance]
            total_score += percentile * weight
            total_weight += weight
        breakdown.append(AssessedMetric(
            metric_id=metric.id,
            name=metric.name,
            value=value,
            unit=metric.unit,
            importance=metric.importance,
            percentile=round(percentile, 2) if percentile is not None else None,
            elite_value=elite_reference(category, metric),
        ))

    overall = total_score / total_weight if total_weight else 0.0
    return RankResult(
        rank=percentile_to_rank(overall),
        percentile=round(overall, 2),
        breakdown=breakdown,
    )


def gap_to_top(rank: str, category: GoalCategory) -> list[str]:
    """Descriptions of up to the next three ranks (capped at A), plus A if not shown."""
    current = RANK_ORDER.index(rank)
    elite = RANK_ORDER.index(ELITE_RANK)
    gaps: list[str] = []
    for target in RANK_ORDER[current + 1: min(current + 3, elite) + 1]:
        band = category.benchmark(target)
        if band is not None:
            gaps.append(f"{target}-Rank: {band.description}")
    if current < elite and not any(g.startswith(f"{ELITE_RANK}-Rank") for g in gaps):
        band = category.benchmark(ELITE_RANK)
        if band is not None:
            gaps.append(f"{ELITE_RANK}-Rank (TOP 1%): {band.description}")
    return gaps


def estimate_years_to_top(rank: str) -> float:
    return YEARS_TO_TOP[rank]


def assess_metrics(
    category_id: str,
    values: Mapping[str, object],
    require_critical: Optional[bool] = None,
) -> HonestAssessment:
    """
    Full assessment for one (category, metric snapshot).

    Raises UnknownCategoryError, InvalidMetricValueError, and — when
    `require_critical` (default: REQUIRE_CRITICAL_METRICS) is on —
    MissingCriticalMetricError.
    """
    category = get_category(category_id)
    strict = settings.REQUIRE_CRITICAL_METRICS if require_critical is None else require_critical
    if strict:
        missing = [
            m.id for m in category.metrics
            if m.importance == Importance.CRITICAL and values.get(m.id) is None
        ]
        if missing:
            raise MissingCriticalMetricError(category.id, missing)

    result = calculate_rank(category, values)
    elite = category.benchmark(ELITE_RANK)
    return HonestAssessment(
        category_id=category.id,
        category_name=category.name,
        rank=result.rank,
        rank_label=get_rank_info(result.rank).label,
        percentile=result.percentile,
        metrics=result.breakdown,
        top_one_percent_looks_like=elite.description if elite else "",
        gap_to_top=gap_to_top(result.rank, category),
        estimated_years_to_top=estimate_years_to_top(result.rank),
    )


def get_assessment_questions(category_id: str) -> list[AssessmentQuestion]:
    category = get_category(category_id)
    return [
        AssessmentQuestion(
            id=m.id,
            question=m.question,
            type="boolean" if m.unit == "boolean" else "number",
            unit=m.unit,
            required=m.importance == Importance.CRITICAL,
        )
        for m in category.metrics
    ]
