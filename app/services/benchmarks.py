"""
Goal categories, metric definitions and per-rank benchmark bands.

Static reference data, built once at import and validated before anything
can rank against it. A malformed table raises BenchmarkConfigError at
import time, so the app refuses to start instead of mis-ranking.

Rank percentile windows
-----------------------
  F  0    – 20     Beginner
  E  20   – 50     Below Average
  D  50   – 75     Average
  C  75   – 90     Above Average
  B  90   – 99     Dedicated
  A  99   – 99.9   Elite (Top 1%)
  S  99.9 – 100    World Class

Bands may share edges or overlap a little. Lookup walks ranks F -> S and
takes the first band that contains the value.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from app.core.errors import BenchmarkConfigError, UnknownCategoryError


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class Importance:
    CRITICAL   = "critical"
    IMPORTANT  = "important"
    SUPPORTING = "supporting"


IMPORTANCE_WEIGHTS: Mapping[str, int] = MappingProxyType({
    Importance.CRITICAL: 3,
    Importance.IMPORTANT: 2,
    Importance.SUPPORTING: 1,
})


@dataclass(frozen=True)
class RankThreshold:
    rank: str
    min_percentile: float
    max_percentile: float
    label: str
    color: str


RANK_THRESHOLDS: tuple[RankThreshold, ...] = (
    RankThreshold("F", 0.0, 20.0, "Beginner", "#6B7280"),
    RankThreshold("E", 20.0, 50.0, "Below Average", "#92400E"),
    RankThreshold("D", 50.0, 75.0, "Average", "#065F46"),
    RankThreshold("C", 75.0, 90.0, "Above Average", "#1E40AF"),
    RankThreshold("B", 90.0, 99.0, "Dedicated", "#7C3AED"),
    RankThreshold("A", 99.0, 99.9, "Elite (Top 1%)", "#DC2626"),
    RankThreshold("S", 99.9, 100.0, "World Class", "#F59E0B"),
)

RANK_ORDER: tuple[str, ...] = tuple(t.rank for t in RANK_THRESHOLDS)
ELITE_RANK = "A"


@dataclass(frozen=True)
class MetricDefinition:
    id: str
    name: str
    unit: str
    question: str
    importance: str
    higher_is_better: bool


@dataclass(frozen=True)
class Range:
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class RankBenchmark:
    rank: str
    description: str
    ranges: Mapping[str, Range]


@dataclass(frozen=True)
class GoalCategory:
    id: str
    name: str
    description: str
    metrics: tuple[MetricDefinition, ...]
    benchmarks: tuple[RankBenchmark, ...]

    def metric(self, metric_id: str) -> Optional[MetricDefinition]:
        return next((m for m in self.metrics if m.id == metric_id), None)

    def benchmark(self, rank: str) -> Optional[RankBenchmark]:
        return next((b for b in self.benchmarks if b.rank == rank), None)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def _metric(id, name, unit, question, importance, higher_is_better=True) -> MetricDefinition:
    return MetricDefinition(id, name, unit, question, importance, higher_is_better)


def _bands(*rows: tuple[str, str, dict[str, tuple[float, float]]]) -> tuple[RankBenchmark, ...]:
    return tuple(
        RankBenchmark(
            rank=rank,
            description=description,
            ranges=MappingProxyType({k: Range(lo, hi) for k, (lo, hi) in ranges.items()}),
        )
        for rank, description, ranges in rows
    )


_CRIT, _IMP, _SUP = Importance.CRITICAL, Importance.IMPORTANT, Importance.SUPPORTING


_CATEGORIES: tuple[GoalCategory, ...] = (
    GoalCategory(
        id="running_marathon",
        name="Marathon Running",
        description="Complete a marathon (42.195 km / 26.2 miles)",
        metrics=(
            _metric("marathon_time", "Marathon Time", "minutes",
                    "What is your current or estimated marathon time?", _CRIT, False),
            _metric("weekly_mileage", "Weekly Running Distance", "km",
                    "How many kilometers do you run per week?", _CRIT),
            _metric("longest_run", "Longest Run", "km",
                    "What is the longest distance you have ever run?", _IMP),
            _metric("years_running", "Years Running", "years",
                    "How many years have you been running consistently?", _SUP),
        ),
        benchmarks=_bands(
            ("F", "Cannot run more than 2-3 km without stopping",
             {"marathon_time": (999, 999), "weekly_mileage": (0, 5), "longest_run": (0, 5)}),
            ("E", "Can run 5-10 km, never completed a marathon",
             {"marathon_time": (360, 999), "weekly_mileage": (5, 20), "longest_run": (5, 15)}),
            ("D", "Finished a marathon in 5-6 hours",
             {"marathon_time": (300, 360), "weekly_mileage": (20, 40), "longest_run": (15, 30)}),
            ("C", "Marathon in 4-5 hours, consistent training",
             {"marathon_time": (240, 300), "weekly_mileage": (40, 60), "longest_run": (25, 35)}),
            ("B", "Marathon in 3:30-4:00, dedicated runner",
             {"marathon_time": (210, 240), "weekly_mileage": (60, 90), "longest_run": (30, 42)}),
            ("A", "Marathon sub-3:00, Boston Qualifier level",
             {"marathon_time": (165, 210), "weekly_mileage": (80, 130), "longest_run": (35, 50)}),
            ("S", "Sub-2:30 marathon, elite/professional",
             {"marathon_time": (0, 165), "weekly_mileage": (130, 250), "longest_run": (40, 60)}),
        ),
    ),
    GoalCategory(
        id="running_5k",
        name="5K Running",
        description="Run 5 kilometers as fast as possible",
        metrics=(
            _metric("time_5k", "5K Time", "minutes",
                    "What is your current 5K time (or best estimate)?", _CRIT, False),
            _metric("weekly_runs", "Runs Per Week", "times",
                    "How many times per week do you run?", _IMP),
            _metric("can_run_5k", "Can Complete 5K", "boolean",
                    "Can you currently run 5K without stopping?", _CRIT),
        ),
        benchmarks=_bands(
            ("F", "Cannot run 5K without stopping",
             {"time_5k": (45, 999), "weekly_runs": (0, 1)}),
            ("E", "35-45 min 5K with walking intervals",
             {"time_5k": (35, 45), "weekly_runs": (1, 2)}),
            ("D", "28-35 min 5K, slow steady jog",
             {"time_5k": (28, 35), "weekly_runs": (2, 3)}),
            ("C", "23-28 min 5K, consistent runner",
             {"time_5k": (23, 28), "weekly_runs": (3, 4)}),
            ("B", "18-23 min 5K, dedicated runner",
             {"time_5k": (18, 23), "weekly_runs": (4, 6)}),
            ("A", "16-18 min 5K, competitive amateur",
             {"time_5k": (16, 18), "weekly_runs": (5, 7)}),
            ("S", "Sub-16 min 5K, elite/professional",
             {"time_5k": (0, 16), "weekly_runs": (6, 14)}),
        ),
    ),
    GoalCategory(
        id="strength_powerlifting",
        name="Powerlifting / Strength",
        description="Build maximal strength in squat, bench, deadlift",
        metrics=(
            _metric("squat_ratio", "Squat (x Bodyweight)", "ratio",
                    "What is your squat max as a multiple of bodyweight?", _CRIT),
            _metric("bench_ratio", "Bench Press (x Bodyweight)", "ratio",
                    "What is your bench press max as a multiple of bodyweight?", _CRIT),
            _metric("deadlift_ratio", "Deadlift (x Bodyweight)", "ratio",
                    "What is your deadlift max as a multiple of bodyweight?", _CRIT),
            _metric("years_lifting", "Years Lifting", "years",
                    "How many years have you been strength training consistently?", _SUP),
        ),
        benchmarks=_bands(
            ("F", "Never lifted weights or just started",
             {"squat_ratio": (0, 0.5), "bench_ratio": (0, 0.3), "deadlift_ratio": (0, 0.5)}),
            ("E", "Basic lifts with light weight",
             {"squat_ratio": (0.5, 0.75), "bench_ratio": (0.3, 0.5), "deadlift_ratio": (0.5, 1.0)}),
            ("D", "Squat BW, Bench 0.75x, Deadlift 1.25x",
             {"squat_ratio": (0.75, 1.25), "bench_ratio": (0.5, 0.75), "deadlift_ratio": (1.0, 1.5)}),
            ("C", "Squat 1.5x, Bench 1x, Deadlift 2x",
             {"squat_ratio": (1.25, 1.75), "bench_ratio": (0.75, 1.25), "deadlift_ratio": (1.5, 2.0)}),
            ("B", "Squat 2x, Bench 1.5x, Deadlift 2.5x",
             {"squat_ratio": (1.75, 2.25), "bench_ratio": (1.25, 1.5), "deadlift_ratio": (2.0, 2.75)}),
            ("A", "Competitive powerlifter numbers",
             {"squat_ratio": (2.25, 2.75), "bench_ratio": (1.5, 2.0), "deadlift_ratio": (2.75, 3.25)}),
            ("S", "Elite powerlifter / record holder",
             {"squat_ratio": (2.75, 5), "bench_ratio": (2.0, 4), "deadlift_ratio": (3.25, 5)}),
        ),
    ),
    GoalCategory(
        id="weight_loss",
        name="Weight Loss / Body Composition",
        description="Lose body fat and achieve a lean physique",
        metrics=(
            _metric("body_fat", "Body Fat Percentage", "%",
                    "What is your current body fat percentage (estimate if unknown)?", _CRIT, False),
            _metric("bmi", "BMI", "kg/m²",
                    "What is your BMI? (weight in kg / height in meters squared)", _IMP, False),
            _metric("weekly_workouts", "Workouts Per Week", "times",
                    "How many times per week do you exercise?", _IMP),
            _metric("tracks_nutrition", "Track Nutrition", "boolean",
                    "Do you currently track your calories/macros?", _SUP),
        ),
        benchmarks=_bands(
            ("F", "Obese (BMI 30+), sedentary, no diet control",
             {"body_fat": (35, 100), "bmi": (30, 50)}),
            ("E", "Overweight (BMI 25-30), sporadic exercise",
             {"body_fat": (28, 35), "bmi": (25, 30)}),
            ("D", "Normal BMI, 20-28% body fat",
             {"body_fat": (20, 28), "bmi": (20, 25)}),
            ("C", "Fit appearance, 15-20% body fat (men) / 22-27% (women)",
             {"body_fat": (15, 20), "bmi": (20, 25)}),
            ("B", "Athletic build, 12-15% BF (men) / 18-22% (women)",
             {"body_fat": (12, 15), "bmi": (20, 24)}),
            ("A", "Visible abs, 8-12% BF (men) / 15-18% (women)",
             {"body_fat": (8, 12), "bmi": (20, 24)}),
            ("S", "Competition-ready, sub-8% BF (men) / sub-15% (women)",
             {"body_fat": (3, 8), "bmi": (20, 24)}),
        ),
    ),
    GoalCategory(
        id="yoga_flexibility",
        name="Yoga / Flexibility",
        description="Master yoga and achieve exceptional flexibility",
        metrics=(
            _metric("touch_toes", "Touch Toes", "boolean",
                    "Can you touch your toes with straight legs?", _SUP),
            _metric("practice_years", "Years Practicing", "years",
                    "How many years have you practiced yoga?", _IMP),
            _metric("weekly_practice", "Weekly Practice", "hours",
                    "How many hours per week do you practice yoga?", _CRIT),
            _metric("advanced_poses", "Advanced Poses", "count",
                    "How many of these can you do: headstand, handstand, wheel, crow, splits?", _CRIT),
        ),
        benchmarks=_bands(
            ("F", "Very stiff, cannot touch toes, never practiced",
             {"practice_years": (0, 0), "weekly_practice": (0, 0), "advanced_poses": (0, 0)}),
            ("E", "Beginner, can do basic stretches",
             {"practice_years": (0, 0.5), "weekly_practice": (0.5, 2), "advanced_poses": (0, 0)}),
            ("D", "30-min sessions, basic poses with effort",
             {"practice_years": (0.5, 1), "weekly_practice": (1, 3), "advanced_poses": (0, 1)}),
            ("C", "60-min sessions, intermediate poses, good form",
             {"practice_years": (1, 3), "weekly_practice": (3, 5), "advanced_poses": (1, 2)}),
            ("B", "Advanced poses (headstand, wheel), 90+ min sessions",
             {"practice_years": (3, 7), "weekly_practice": (5, 10), "advanced_poses": (2, 4)}),
            ("A", "Instructor level, complex sequences, all arm balances",
             {"practice_years": (7, 15), "weekly_practice": (7, 15), "advanced_poses": (4, 5)}),
            ("S", "Master practitioner, teaching teachers",
             {"practice_years": (15, 50), "weekly_practice": (10, 30), "advanced_poses": (5, 5)}),
        ),
    ),
    GoalCategory(
        id="daily_activity",
        name="Daily Activity / Steps",
        description="Maintain high daily activity and step count",
        metrics=(
            _metric("daily_steps", "Daily Steps", "steps",
                    "How many steps do you average per day?", _CRIT),
            _metric("active_minutes", "Active Minutes", "minutes",
                    "How many active minutes per day (walking, exercise)?", _IMP),
            _metric("sedentary_hours", "Sedentary Hours", "hours",
                    "How many hours per day are you sitting/sedentary?", _IMP, False),
        ),
        benchmarks=_bands(
            ("F", "Under 2,000 steps/day, very sedentary",
             {"daily_steps": (0, 2000), "active_minutes": (0, 15)}),
            ("E", "2,000-5,000 steps/day",
             {"daily_steps": (2000, 5000), "active_minutes": (15, 30)}),
            ("D", "5,000-7,500 steps/day (average)",
             {"daily_steps": (5000, 7500), "active_minutes": (30, 45)}),
            ("C", "7,500-10,000 steps/day",
             {"daily_steps": (7500, 10000), "active_minutes": (45, 60)}),
            ("B", "10,000-15,000 steps/day",
             {"daily_steps": (10000, 15000), "active_minutes": (60, 90)}),
            ("A", "15,000-20,000 steps/day",
             {"daily_steps": (15000, 20000), "active_minutes": (90, 120)}),
            ("S", "20,000+ steps/day consistently",
             {"daily_steps": (20000, 100000), "active_minutes": (120, 300)}),
        ),
    ),
    GoalCategory(
        id="general_fitness",
        name="General Fitness",
        description="Overall fitness and conditioning",
        metrics=(
            _metric("weekly_workouts", "Workouts Per Week", "times",
                    "How many times per week do you exercise?", _CRIT),
            _metric("workout_duration", "Average Workout Duration", "minutes",
                    "How long is your average workout session?", _IMP),
            _metric("years_training", "Years Training", "years",
                    "How many years have you been exercising consistently?", _SUP),
            _metric("resting_hr", "Resting Heart Rate", "bpm",
                    "What is your resting heart rate?", _IMP, False),
        ),
        benchmarks=_bands(
            ("F", "No exercise habit, gets winded climbing stairs",
             {"weekly_workouts": (0, 0), "workout_duration": (0, 0), "resting_hr": (80, 120)}),
            ("E", "1-2 workouts/week, light activity",
             {"weekly_workouts": (1, 2), "workout_duration": (15, 30), "resting_hr": (70, 85)}),
            ("D", "2-3 workouts/week, 30-45 min sessions",
             {"weekly_workouts": (2, 3), "workout_duration": (30, 45), "resting_hr": (65, 75)}),
            ("C", "3-4 workouts/week, 45-60 min sessions",
             {"weekly_workouts": (3, 4), "workout_duration": (45, 60), "resting_hr": (58, 68)}),
            ("B", "5-6 workouts/week, 60+ min sessions",
             {"weekly_workouts": (5, 6), "workout_duration": (60, 90), "resting_hr": (50, 60)}),
            ("A", "Daily training, high performance metrics",
             {"weekly_workouts": (6, 7), "workout_duration": (75, 120), "resting_hr": (45, 55)}),
            ("S", "Elite conditioning, multiple sessions/day",
             {"weekly_workouts": (7, 14), "workout_duration": (90, 240), "resting_hr": (35, 50)}),
        ),
    ),
    GoalCategory(
        id="productivity",
        name="Productivity / Deep Work",
        description="Master focus and high-output work",
        metrics=(
            _metric("deep_work_hours", "Deep Work Hours/Day", "hours",
                    "How many hours of uninterrupted, focused work can you do per day?", _CRIT),
            _metric("focus_duration", "Single Focus Duration", "minutes",
                    "How long can you focus on one task without distraction?", _IMP),
            _metric("days_productive", "Productive Days/Week", "days",
                    "How many days per week are you highly productive?", _IMP),
        ),
        benchmarks=_bands(
            ("F", "Cannot focus, constant distraction",
             {"deep_work_hours": (0, 0.5), "focus_duration": (0, 10)}),
            ("E", "15-30 min focus sessions possible",
             {"deep_work_hours": (0.5, 1), "focus_duration": (10, 30)}),
            ("D", "1-2 hours deep work, frequent breaks needed",
             {"deep_work_hours": (1, 2), "focus_duration": (30, 45)}),
            ("C", "3-4 hours deep work daily",
             {"deep_work_hours": (2, 4), "focus_duration": (45, 60)}),
            ("B", "4-5 hours deep work daily, consistent",
             {"deep_work_hours": (4, 5), "focus_duration": (60, 90)}),
            ("A", "5-6 hours deep work, high output",
             {"deep_work_hours": (5, 6), "focus_duration": (90, 120)}),
            ("S", "Elite productivity, shipped major work",
             {"deep_work_hours": (6, 10), "focus_duration": (120, 240)}),
        ),
    ),
)

DEFAULT_CATEGORY_ID = "general_fitness"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_category(category: GoalCategory) -> None:
    """
    Reject a malformed category:
      * metric ids unique, importance known
      * exactly one benchmark per rank, in F..S order
      * every range references a known metric and has min <= max
      * band lower bounds move in the metric's direction (rank order)
    """
    metric_ids = [m.id for m in category.metrics]
    if len(set(metric_ids)) != len(metric_ids):
        raise BenchmarkConfigError(category.id, "duplicate metric ids")
    for m in category.metrics:
        if m.importance not in IMPORTANCE_WEIGHTS:
            raise BenchmarkConfigError(category.id, f"unknown importance {m.importance!r} on {m.id}")

    ranks = tuple(b.rank for b in category.benchmarks)
    if ranks != RANK_ORDER:
        raise BenchmarkConfigError(category.id, f"benchmarks must be ranked {RANK_ORDER}, got {ranks}")

    for b in category.benchmarks:
        for metric_id, r in b.ranges.items():
            if metric_id not in metric_ids:
                raise BenchmarkConfigError(category.id, f"{b.rank} band references unknown metric {metric_id}")
            if r.min > r.max:
                raise BenchmarkConfigError(category.id, f"{b.rank} band for {metric_id} has min > max")

    for m in category.metrics:
        lows = [b.ranges[m.id].min for b in category.benchmarks if m.id in b.ranges]
        ordered = sorted(lows) if m.higher_is_better else sorted(lows, reverse=True)
        if lows != ordered:
            raise BenchmarkConfigError(category.id, f"bands for {m.id} are not ordered by rank")


def _build_registry(categories: tuple[GoalCategory, ...]) -> Mapping[str, GoalCategory]:
    registry: dict[str, GoalCategory] = {}
    for category in categories:
        if category.id in registry:
            raise BenchmarkConfigError(category.id, "duplicate category id")
        validate_category(category)
        registry[category.id] = category
    if DEFAULT_CATEGORY_ID not in registry:
        raise BenchmarkConfigError(DEFAULT_CATEGORY_ID, "default category missing")
    return MappingProxyType(registry)


CATEGORIES: Mapping[str, GoalCategory] = _build_registry(_CATEGORIES)


# ---------------------------------------------------------------------------
# Public lookups
# ---------------------------------------------------------------------------

def get_categories() -> list[GoalCategory]:
    return list(CATEGORIES.values())


def get_category(category_id: str) -> GoalCategory:
    try:
        return CATEGORIES[category_id]
    except KeyError:
        raise UnknownCategoryError(category_id) from None


def get_rank_info(rank: str) -> RankThreshold:
    for threshold in RANK_THRESHOLDS:
        if threshold.rank == rank:
            return threshold
    raise ValueError(f"Unknown rank: {rank!r}")
