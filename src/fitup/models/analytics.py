"""Analytics result models."""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum


class OneRepMaxMethod(str, Enum):
    EPLEY = "epley"
    BRZYCKI = "brzycki"
    MCGLOTHIN = "mcglothin"
    LOMBARDI = "lombardi"
    COMBINED = "combined"  # mean of epley, brzycki, mcglothin
    MANUAL = "manual"


class ProgressionTrend(str, Enum):
    STRONG_INCREASING = "strong_increasing"
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"
    DECLINING = "declining"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass
class TrainingHistory:
    """Training-history inputs to 1RM confidence and goal prediction."""

    total_sessions: int
    consistency_score: float  # 0-1
    completed_sessions_8w: int = 0
    skipped_sessions_8w: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class OneRepMaxEstimate:
    """A 1RM estimate for one user and exercise."""

    user_id: str
    exercise_id: int
    estimated_max: float
    method: OneRepMaxMethod
    confidence: float
    source_performance: dict = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "exercise_id": self.exercise_id,
            "estimated_max": round(self.estimated_max, 2),
            "method": self.method.value,
            "confidence": round(self.confidence, 3),
            "source_performance": self.source_performance,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class StrengthProgression:
    user_id: str
    exercise_id: int
    timeframe_days: int
    starting_max: float | None
    current_max: float | None
    progression_rate: float  # percent over the window
    trend: ProgressionTrend
    data_points: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["trend"] = self.trend.value
        return data


@dataclass
class PlateauDetection:
    user_id: str
    exercise_id: int
    plateau_detected: bool
    duration_days: int
    improvement_pct: float | None
    weekly_maxes: list[float]
    recommendation: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GoalPrediction:
    goal_id: int
    probability: float
    estimated_days: int | None
    confidence: float
    lower_bound: int | None
    upper_bound: int | None
    weekly_rate_pct: float
    weeks_available: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TrainingVolume:
    user_id: str
    week_start: date
    total_volume: float
    volume_by_exercise: dict[int, float]
    volume_by_muscle_group: dict[str, float]
    muscle_group_share: dict[str, float]
    imbalances: list[str]
    previous_week_volume: float
    week_over_week_change_pct: float | None
    max_recommended_volume: float | None
    warnings: list[str]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["week_start"] = self.week_start.isoformat()
        data["volume_by_exercise"] = {str(k): v for k, v in self.volume_by_exercise.items()}
        return data


@dataclass
class IntensityWeek:
    week_start: date
    average_weight: float
    relative_intensity_pct: float | None


@dataclass
class IntensityProgression:
    user_id: str
    exercise_id: int
    timeframe_days: int
    reference_max: float | None
    weeks: list[IntensityWeek]
    change_pct: float
    trend: ProgressionTrend

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "exercise_id": self.exercise_id,
            "timeframe_days": self.timeframe_days,
            "reference_max": self.reference_max,
            "weeks": [
                {
                    "week_start": w.week_start.isoformat(),
                    "average_weight": w.average_weight,
                    "relative_intensity_pct": w.relative_intensity_pct,
                }
                for w in self.weeks
            ],
            "change_pct": self.change_pct,
            "trend": self.trend.value,
        }


@dataclass
class OptimalLoad:
    user_id: str
    level: str
    recovery_status: str
    sets_per_week: int
    rep_range: str
    intensity_pct: float
    volume_multiplier: float
    exercise_id: int | None = None
    load_target: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SessionMetrics:
    user_id: str
    days: int
    total_sessions: int
    completed_sessions: int
    skipped_workouts: int
    stale_sessions: int
    completion_rate: float
    average_duration_seconds: float
    total_volume: float
    average_rpe: float | None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class WeeklySessionStats:
    user_id: str
    week_start: date
    planned_workouts: int
    completed_workouts: int
    skipped_workouts: int
    adherence_rate: float
    total_volume: float
    total_duration_seconds: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["week_start"] = self.week_start.isoformat()
        return data
