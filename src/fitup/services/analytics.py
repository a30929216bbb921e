"""Performance analytics: 1RM math, progression, plateaus, goals, volume.

The module-level functions are pure and hold the formulas. ``AnalyticsService``
reads history through the repositories and feeds it to them.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..db.repositories import Repositories
from ..exceptions import (
    InvalidInputError,
    NotEstimableError,
    NotFoundError,
    NotImplementedFeatureError,
    UnrealisticEstimateError,
)
from ..models.analytics import (
    GoalPrediction,
    IntensityProgression,
    IntensityWeek,
    OneRepMaxEstimate,
    OneRepMaxMethod,
    OptimalLoad,
    PlateauDetection,
    ProgressionTrend,
    StrengthProgression,
    TrainingHistory,
    TrainingVolume,
)
from ..models.exercises import FitnessLevel
from ..models.profile import RecoveryStatus
from ..utils.dates import start_of_week, utcnow

logger = logging.getLogger(__name__)

# Sanity gate on stored 1RM updates
MAX_ESTIMATE_INCREASE_PCT = 25.0
MAX_ESTIMATE_DROP_PCT = 15.0

PLATEAU_WINDOW_WEEKS = 4
PLATEAU_THRESHOLD_PCT = 2.5

GOAL_LOGISTIC_K = 0.2
CONSISTENCY_WINDOW_WEEKS = 8

VOLUME_SHARE_MIN = 0.10
VOLUME_SHARE_MAX = 0.40
VOLUME_WEEKLY_INCREASE_CAP = 0.10


@dataclass
class OneRepMaxCalculation:
    estimated_max: float
    method: OneRepMaxMethod
    confidence: float

    def to_dict(self) -> dict:
        return {
            "estimated_max": round(self.estimated_max, 2),
            "method": self.method.value,
            "confidence": round(self.confidence, 3),
        }


# Level presets: sets per muscle group per week, rep range, %1RM
OPTIMAL_LOAD_PRESETS: dict[FitnessLevel, tuple[int, str, float]] = {
    FitnessLevel.BEGINNER: (10, "8-12", 65.0),
    FitnessLevel.INTERMEDIATE: (14, "6-12", 72.5),
    FitnessLevel.ADVANCED: (18, "4-10", 80.0),
}


# ============================================================================
# 1RM formulas
# ============================================================================

def epley(weight: float, reps: int) -> float:
    return weight * (1 + reps / 30)


def brzycki(weight: float, reps: int) -> float:
    if reps >= 37:
        raise NotEstimableError(f"Brzycki formula is undefined for {reps} reps")
    return weight * 36 / (37 - reps)


def mcglothin(weight: float, reps: int) -> float:
    return weight * (1 + 0.025 * reps)


def lombardi(weight: float, reps: int) -> float:
    return weight * reps ** 0.10


def estimate_one_rep_max(
    weight: float,
    reps: int,
    rpe: float | None = None,
    history: TrainingHistory | None = None,
) -> OneRepMaxCalculation:
    """Estimate a one-rep max from a single set.

    Args:
        weight: Load lifted in kg (> 0)
        reps: Repetitions performed (>= 1)
        rpe: Optional RPE of the set (1-10); recorded, not used by the formulas
        history: Training history used to scale confidence

    Returns:
        The estimate, the formula used and its confidence
    """
    if weight <= 0:
        raise InvalidInputError("weight must be positive", field="weight")
    if reps < 1:
        raise InvalidInputError("reps must be at least 1", field="reps")
    if rpe is not None and not 1 <= rpe <= 10:
        raise InvalidInputError("rpe must be between 1 and 10", field="rpe")

    if reps <= 5:
        estimate = epley(weight, reps)
        method = OneRepMaxMethod.EPLEY
        confidence = 0.95
    elif reps <= 10:
        estimate = brzycki(weight, reps)
        method = OneRepMaxMethod.BRZYCKI
        confidence = 0.85
    else:
        estimate = (epley(weight, reps) + brzycki(weight, reps) + mcglothin(weight, reps)) / 3
        method = OneRepMaxMethod.COMBINED
        confidence = 0.70

    if history is not None:
        confidence = apply_history_factors(confidence, history)

    return OneRepMaxCalculation(estimated_max=estimate, method=method, confidence=confidence)


def apply_history_factors(confidence: float, history: TrainingHistory) -> float:
    if history.total_sessions < 10:
        confidence *= 0.8
    elif history.total_sessions > 100:
        confidence = min(confidence * 1.1, 1.0)
    if history.consistency_score < 0.7:
        confidence *= 0.9
    return confidence


def check_estimate_change(previous: float, proposed: float) -> float:
    """Percent change of a proposed 1RM; raises outside [-15%, +25%]."""
    change_pct = (proposed - previous) / previous * 100
    if change_pct > MAX_ESTIMATE_INCREASE_PCT or change_pct < -MAX_ESTIMATE_DROP_PCT:
        raise UnrealisticEstimateError(previous, proposed, change_pct)
    return change_pct


# ============================================================================
# Trends and plateaus
# ============================================================================

def classify_trend(rate_pct: float) -> ProgressionTrend:
    if rate_pct > 5:
        return ProgressionTrend.STRONG_INCREASING
    if rate_pct > 1:
        return ProgressionTrend.INCREASING
    if rate_pct < -5:
        return ProgressionTrend.DECLINING
    if rate_pct < -1:
        return ProgressionTrend.DECREASING
    return ProgressionTrend.STABLE


def least_squares_slope(points: list[tuple[float, float]]) -> float:
    """Slope of the least-squares line through ``(x, y)`` points."""
    n = len(points)
    mean_x = sum(x for x, _ in points) / n
    mean_y = sum(y for _, y in points) / n
    denominator = sum((x - mean_x) ** 2 for x, _ in points)
    if denominator == 0:
        return 0.0
    return sum((x - mean_x) * (y - mean_y) for x, y in points) / denominator


def progression_rate(samples: list[tuple[datetime, float]]) -> float | None:
    """Percent change across the samples, or None with fewer than two.

    Three or more samples use the least-squares line over the observed
    span; two samples use their direct difference.
    """
    if len(samples) < 2:
        return None
    start_value = samples[0][1]
    if start_value <= 0:
        return None
    if len(samples) == 2:
        return (samples[1][1] - start_value) / start_value * 100

    origin = samples[0][0]
    points = [((ts - origin).total_seconds() / 86400, value) for ts, value in samples]
    slope = least_squares_slope(points)
    span_days = points[-1][0] - points[0][0]
    return slope * span_days / start_value * 100


def weekly_maxima(samples: list[tuple[datetime, float]]) -> list[tuple[date, float]]:
    """Best value per ISO week, oldest week first."""
    by_week: dict[date, float] = {}
    for ts, value in samples:
        week = start_of_week(ts)
        by_week[week] = max(value, by_week.get(week, value))
    return sorted(by_week.items())


def detect_plateau_in_maxima(maxima: list[float]) -> tuple[bool, int, float | None]:
    """Plateau check over weekly maxima.

    Returns:
        (plateau detected, duration in days, improvement % over the last
        four weeks or None when there are fewer than four)
    """
    if len(maxima) < PLATEAU_WINDOW_WEEKS:
        return False, 0, None

    window = maxima[-PLATEAU_WINDOW_WEEKS:]
    improvement = _improvement_pct(window)
    if improvement >= PLATEAU_THRESHOLD_PCT:
        return False, 0, improvement

    # Extend backwards while the trailing stretch still shows no real gain
    weeks = PLATEAU_WINDOW_WEEKS
    while weeks < len(maxima) and _improvement_pct(maxima[-(weeks + 1):]) < PLATEAU_THRESHOLD_PCT:
        weeks += 1
    return True, weeks * 7, improvement


def _improvement_pct(window: list[float]) -> float:
    base = window[0]
    if base <= 0:
        return 0.0
    return (max(window) - base) / base * 100


def plateau_recommendation(detected: bool, duration_days: int) -> str:
    if not detected:
        return "Performance is progressing. Keep applying progressive overload."
    if duration_days >= PLATEAU_WINDOW_WEEKS * 7:
        return (
            f"Plateau for {duration_days // 7} weeks. Take a deload week at ~60% volume, "
            "then consider an exercise variation."
        )
    return "Progress is slowing. Add a small load or rep increase next session."


# ============================================================================
# Goal prediction
# ============================================================================

def logistic(x: float) -> float:
    if x < -60:
        return 0.0
    return 1 / (1 + math.exp(-x))


def goal_weekly_rate(
    samples: list[tuple[datetime, float]], decreasing: bool
) -> float:
    """Percent progress per week toward the goal; negative when moving away."""
    if len(samples) < 2:
        return 0.0
    (first_ts, first), (last_ts, last) = samples[0], samples[-1]
    if first == 0:
        return 0.0
    weeks = max((last_ts - first_ts).total_seconds() / (7 * 86400), 1 / 7)
    rate = (last - first) / abs(first) * 100 / weeks
    return -rate if decreasing else rate


def predict_achievement(
    current: float,
    target: float,
    weeks_available: float,
    weekly_rate_pct: float,
    consistency: float,
    data_points: int,
) -> tuple[float, int | None, float, int | None, int | None]:
    """Logistic goal prediction.

    Returns:
        (probability, estimated days, confidence, lower bound, upper bound)
    """
    base = current if current != 0 else target
    required_pct = abs(target - current) / abs(base) * 100
    probability = logistic(GOAL_LOGISTIC_K * (weeks_available * weekly_rate_pct - required_pct))

    if data_points >= 4:
        confidence = 0.9
    elif data_points >= 2:
        confidence = 0.6
    else:
        confidence = 0.3
    confidence *= consistency

    if weekly_rate_pct <= 0:
        return probability, None, confidence, None, None

    estimated_days = math.ceil(required_pct / weekly_rate_pct * 7)
    spread = 0.1 + 0.5 * (1 - confidence)
    lower = max(0, math.floor(estimated_days * (1 - spread)))
    upper = math.ceil(estimated_days * (1 + spread))
    return probability, estimated_days, confidence, lower, upper


# ============================================================================
# Volume
# ============================================================================

def split_volume_by_muscle_group(
    volume_by_exercise: dict[int, float],
    muscle_groups: dict[int, list[str]],
) -> dict[str, float]:
    """Split each exercise's volume evenly across its muscle groups."""
    result: dict[str, float] = {}
    for exercise_id, volume in volume_by_exercise.items():
        groups = muscle_groups.get(exercise_id) or ["unknown"]
        share = volume / len(groups)
        for group in groups:
            result[group] = result.get(group, 0.0) + share
    return result


def find_imbalances(volume_by_group: dict[str, float]) -> tuple[dict[str, float], list[str]]:
    total = sum(volume_by_group.values())
    if total <= 0:
        return {}, []
    shares = {group: volume / total for group, volume in volume_by_group.items()}
    imbalances = []
    for group, share in sorted(shares.items()):
        if share < VOLUME_SHARE_MIN:
            imbalances.append(f"{group} is undertrained ({share:.0%} of weekly volume)")
        elif share > VOLUME_SHARE_MAX:
            imbalances.append(f"{group} dominates weekly volume ({share:.0%})")
    return shares, imbalances


def round_to_increment(value: float, increment: float = 2.5) -> float:
    return round(value / increment) * increment


class AnalyticsService:
    """Analytics over stored training data."""

    def __init__(self, repos: Repositories):
        self.repos = repos

    # ------------------------------------------------------------------
    # 1RM
    # ------------------------------------------------------------------

    async def calculate_one_rep_max(
        self,
        user_id: str,
        exercise_id: int,
        weight: float,
        reps: int,
        rpe: float | None = None,
        record: bool = False,
    ) -> OneRepMaxEstimate:
        """Estimate a 1RM using the user's history; optionally store it."""
        history = await self.get_training_history(user_id)
        calc = estimate_one_rep_max(weight, reps, rpe, history)
        estimate = OneRepMaxEstimate(
            user_id=user_id,
            exercise_id=exercise_id,
            estimated_max=calc.estimated_max,
            method=calc.method,
            confidence=calc.confidence,
            source_performance={"weight": weight, "reps": reps, "rpe": rpe},
        )
        if record:
            return await self.record_one_rep_max(user_id, exercise_id, estimate)
        return estimate

    async def record_one_rep_max(
        self, user_id: str, exercise_id: int, estimate: OneRepMaxEstimate
    ) -> OneRepMaxEstimate:
        """Store an estimate after checking it against the most recent one."""
        previous = await self.repos.one_rep_max.find_latest(user_id, exercise_id)
        if previous is not None:
            change_pct = check_estimate_change(previous.estimated_max, estimate.estimated_max)
            if change_pct < 0:
                logger.warning(
                    "1RM drop of %.1f%% for user %s exercise %s (%.1f -> %.1f)",
                    change_pct, user_id, exercise_id,
                    previous.estimated_max, estimate.estimated_max,
                )

        estimate.user_id = user_id
        estimate.exercise_id = exercise_id
        estimate.created_at = estimate.created_at or utcnow()
        estimate.id = await self.repos.one_rep_max.create(estimate)
        return estimate

    # ------------------------------------------------------------------
    # Progression and plateaus
    # ------------------------------------------------------------------

    async def get_strength_progression(
        self, user_id: str, exercise_id: int, timeframe_days: int = 90
    ) -> StrengthProgression:
        if not 1 <= timeframe_days <= 365:
            raise InvalidInputError("timeframe must be between 1 and 365 days", field="timeframe")

        since = utcnow() - timedelta(days=timeframe_days)
        history = await self.repos.one_rep_max.list_history(user_id, exercise_id, since)
        samples = [(e.created_at, e.estimated_max) for e in history]

        rate = progression_rate(samples)
        return StrengthProgression(
            user_id=user_id,
            exercise_id=exercise_id,
            timeframe_days=timeframe_days,
            starting_max=samples[0][1] if samples else None,
            current_max=samples[-1][1] if samples else None,
            progression_rate=round(rate, 2) if rate is not None else 0.0,
            trend=classify_trend(rate) if rate is not None else ProgressionTrend.INSUFFICIENT_DATA,
            data_points=len(samples),
        )

    async def detect_plateau(self, user_id: str, exercise_id: int) -> PlateauDetection:
        history = await self.repos.one_rep_max.list_history(user_id, exercise_id)
        maxima = [value for _, value in weekly_maxima([(e.created_at, e.estimated_max) for e in history])]

        detected, duration_days, improvement = detect_plateau_in_maxima(maxima)
        return PlateauDetection(
            user_id=user_id,
            exercise_id=exercise_id,
            plateau_detected=detected,
            duration_days=duration_days,
            improvement_pct=round(improvement, 2) if improvement is not None else None,
            weekly_maxes=maxima[-PLATEAU_WINDOW_WEEKS:],
            recommendation=plateau_recommendation(detected, duration_days),
        )

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    async def predict_goal_achievement(self, goal_id: int) -> GoalPrediction:
        goal = await self.repos.goals.get(goal_id)
        now = utcnow()
        weeks_available = max((goal.target_date - now.date()).days / 7, 0.0)

        if goal.completed or goal.is_reached(goal.current_value):
            return GoalPrediction(
                goal_id=goal_id, probability=1.0, estimated_days=0, confidence=1.0,
                lower_bound=0, upper_bound=0, weekly_rate_pct=0.0,
                weeks_available=round(weeks_available, 2),
            )

        progress = await self.repos.goals.list_progress(goal_id)
        samples = [(p.recorded_at, p.value) for p in progress]
        rate = goal_weekly_rate(samples, goal.is_decreasing)
        history = await self.get_training_history(goal.user_id)

        if weeks_available <= 0:
            return GoalPrediction(
                goal_id=goal_id, probability=0.0, estimated_days=None, confidence=1.0,
                lower_bound=None, upper_bound=None, weekly_rate_pct=round(rate, 3),
                weeks_available=0.0,
            )

        probability, days, confidence, lower, upper = predict_achievement(
            current=goal.current_value,
            target=goal.target_value,
            weeks_available=weeks_available,
            weekly_rate_pct=rate,
            consistency=history.consistency_score,
            data_points=len(samples),
        )
        return GoalPrediction(
            goal_id=goal_id,
            probability=round(probability, 4),
            estimated_days=days,
            confidence=round(confidence, 3),
            lower_bound=lower,
            upper_bound=upper,
            weekly_rate_pct=round(rate, 3),
            weeks_available=round(weeks_available, 2),
        )

    # ------------------------------------------------------------------
    # Volume and intensity
    # ------------------------------------------------------------------

    async def get_training_volume(self, user_id: str, week_start: date) -> TrainingVolume:
        week_start = start_of_week(week_start)
        week_end = week_start + timedelta(days=7)
        previous_start = week_start - timedelta(days=7)

        logs = await self.repos.progress.list_in_range(user_id, week_start, week_end)
        previous_logs = await self.repos.progress.list_in_range(user_id, previous_start, week_start)

        volume_by_exercise: dict[int, float] = {}
        for log in logs:
            volume_by_exercise[log.exercise_id] = volume_by_exercise.get(log.exercise_id, 0.0) + log.volume

        exercises = await self.repos.exercises.get_many(list(volume_by_exercise))
        muscle_groups = {
            ex_id: [mg.value for mg in ex.muscle_groups] for ex_id, ex in exercises.items()
        }
        by_group = split_volume_by_muscle_group(volume_by_exercise, muscle_groups)
        shares, imbalances = find_imbalances(by_group)

        total = sum(volume_by_exercise.values())
        previous_total = sum(log.volume for log in previous_logs)
        warnings = []
        change_pct = None
        max_recommended = None
        if previous_total > 0:
            change_pct = (total - previous_total) / previous_total * 100
            max_recommended = previous_total * (1 + VOLUME_WEEKLY_INCREASE_CAP)
            if change_pct > VOLUME_WEEKLY_INCREASE_CAP * 100:
                warnings.append(
                    f"Weekly volume rose {change_pct:.0f}%; keep increases under "
                    f"{VOLUME_WEEKLY_INCREASE_CAP:.0%} ({max_recommended:.0f} kg max)"
                )

        return TrainingVolume(
            user_id=user_id,
            week_start=week_start,
            total_volume=round(total, 2),
            volume_by_exercise={k: round(v, 2) for k, v in volume_by_exercise.items()},
            volume_by_muscle_group={k: round(v, 2) for k, v in by_group.items()},
            muscle_group_share={k: round(v, 3) for k, v in shares.items()},
            imbalances=imbalances,
            previous_week_volume=round(previous_total, 2),
            week_over_week_change_pct=round(change_pct, 2) if change_pct is not None else None,
            max_recommended_volume=round(max_recommended, 2) if max_recommended is not None else None,
            warnings=warnings,
        )

    async def get_intensity_progression(
        self, user_id: str, exercise_id: int, timeframe_days: int = 60
    ) -> IntensityProgression:
        if not 1 <= timeframe_days <= 365:
            raise InvalidInputError("timeframe must be between 1 and 365 days", field="timeframe")

        since = utcnow().date() - timedelta(days=timeframe_days)
        logs = await self.repos.progress.list_for_exercise(user_id, exercise_id, since)
        latest = await self.repos.one_rep_max.find_latest(user_id, exercise_id)
        reference = latest.estimated_max if latest else None

        by_week: dict[date, list[float]] = {}
        for log in logs:
            if log.weight_used > 0:
                by_week.setdefault(start_of_week(log.date), []).append(log.weight_used)

        weeks = []
        for week, weights in sorted(by_week.items()):
            average = sum(weights) / len(weights)
            relative = round(average / reference * 100, 1) if reference else None
            weeks.append(IntensityWeek(week_start=week, average_weight=round(average, 2),
                                       relative_intensity_pct=relative))

        if len(weeks) >= 2 and weeks[0].average_weight > 0:
            change = (weeks[-1].average_weight - weeks[0].average_weight) / weeks[0].average_weight * 100
            trend = classify_trend(change)
        else:
            change = 0.0
            trend = ProgressionTrend.INSUFFICIENT_DATA

        return IntensityProgression(
            user_id=user_id,
            exercise_id=exercise_id,
            timeframe_days=timeframe_days,
            reference_max=reference,
            weeks=weeks,
            change_pct=round(change, 2),
            trend=trend,
        )

    async def get_optimal_load(self, user_id: str, exercise_id: int | None = None) -> OptimalLoad:
        """Recommend weekly sets, rep range and intensity for the user."""
        profile = await self.repos.profiles.get_by_user(user_id)
        recovery = await self.get_recovery_status(user_id)

        sets, rep_range, intensity = OPTIMAL_LOAD_PRESETS[profile.level]
        multiplier = recovery.volume_multiplier

        load_target = None
        if exercise_id is not None:
            latest = await self.repos.one_rep_max.find_latest(user_id, exercise_id)
            if latest is None:
                raise NotFoundError("1RM estimate", exercise_id)
            load_target = round_to_increment(latest.estimated_max * intensity / 100 * multiplier)

        return OptimalLoad(
            user_id=user_id,
            level=profile.level.value,
            recovery_status=recovery.value,
            sets_per_week=max(1, round(sets * multiplier)),
            rep_range=rep_range,
            intensity_pct=intensity,
            volume_multiplier=multiplier,
            exercise_id=exercise_id,
            load_target=load_target,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_training_history(self, user_id: str) -> TrainingHistory:
        """Session totals and 8-week consistency.

        Consistency is completed / (completed + skipped); a user with
        nothing scheduled in the window counts as fully consistent.
        """
        since = utcnow() - timedelta(weeks=CONSISTENCY_WINDOW_WEEKS)
        total = await self.repos.sessions.count_completed(user_id)
        completed = await self.repos.sessions.count_completed(user_id, since)
        skipped = await self.repos.skips.count_since(user_id, since)
        scheduled = completed + skipped
        return TrainingHistory(
            total_sessions=total,
            consistency_score=completed / scheduled if scheduled else 1.0,
            completed_sessions_8w=completed,
            skipped_sessions_8w=skipped,
        )

    async def get_recovery_status(self, user_id: str) -> RecoveryStatus:
        latest = await self.repos.recovery.find_latest(user_id)
        return latest.status if latest else RecoveryStatus.NORMAL

    # ------------------------------------------------------------------
    # Entry points without a defined algorithm
    # ------------------------------------------------------------------

    async def movement_assessment_score(self, user_id: str, assessment: dict) -> float:
        raise NotImplementedFeatureError("movement assessment score")

    async def get_coach_statistics(self, coach_id: str) -> dict:
        raise NotImplementedFeatureError("coach statistics")

    async def get_client_workout_history(self, coach_id: str, client_id: str) -> list[dict]:
        raise NotImplementedFeatureError("client workout history")
