"""Workout session lifecycle and progress tracking.

A session moves ``active -> completed | skipped | stale``. Sessions left
active for more than 24 hours are promoted to ``stale`` whenever they are
read.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from ..db.repositories import Repositories
from ..exceptions import (
    ActiveSessionExistsError,
    ConflictError,
    InvalidInputError,
    InvalidUserIDError,
    NotEstimableError,
    SessionNotActiveError,
    UnauthorizedError,
    UnrealisticEstimateError,
)
from ..models.analytics import OneRepMaxEstimate, SessionMetrics, WeeklySessionStats
from ..models.plan import PlanAdaptation
from ..models.profile import RecoveryMetrics
from ..models.session import (
    ExercisePerformance,
    ProgressLog,
    SessionStatus,
    SessionSummary,
    SetRecord,
    SkippedWorkout,
    WorkoutSession,
)
from ..utils.dates import start_of_week, utcnow
from .analytics import AnalyticsService, estimate_one_rep_max
from .plan_generator import PlanGenerator

logger = logging.getLogger(__name__)

STALE_AFTER_HOURS = 24
MAX_SETS_PER_EXERCISE = 20
MAX_REPS = 100
FORM_WARNING_RPE = 9
SKIP_PATTERN_DAYS = 14
SKIP_PATTERN_COUNT = 3
DEFAULT_SKIP_REASON = "No reason provided"


def rate_completion(rate: float) -> str:
    if rate >= 0.90:
        return "excellent"
    if rate >= 0.70:
        return "good"
    return "poor"


def validate_sets(sets: list[SetRecord]) -> None:
    if not 1 <= len(sets) <= MAX_SETS_PER_EXERCISE:
        raise InvalidInputError(
            f"between 1 and {MAX_SETS_PER_EXERCISE} sets must be logged", field="sets"
        )
    for s in sets:
        if not 1 <= s.reps <= MAX_REPS:
            raise InvalidInputError(f"reps must be between 1 and {MAX_REPS}", field="reps")
        if s.weight < 0:
            raise InvalidInputError("weight must not be negative", field="weight")
        if s.rpe is not None and not 1 <= s.rpe <= 10:
            raise InvalidInputError("rpe must be between 1 and 10", field="rpe")


@dataclass
class ExerciseLogResult:
    performance: ExercisePerformance
    form_warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"performance": self.performance.to_dict(), "form_warnings": self.form_warnings}


@dataclass
class CompletionResult:
    session: WorkoutSession
    rating: str
    one_rep_max_updates: list[OneRepMaxEstimate] = field(default_factory=list)
    rejected_estimates: list[dict] = field(default_factory=list)
    adaptation: PlanAdaptation | None = None

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "rating": self.rating,
            "one_rep_max_updates": [e.to_dict() for e in self.one_rep_max_updates],
            "rejected_estimates": self.rejected_estimates,
            "adaptation": self.adaptation.to_dict() if self.adaptation else None,
        }


@dataclass
class SkipResult:
    skip: SkippedWorkout
    skips_last_14_days: int
    adaptation: PlanAdaptation | None = None

    def to_dict(self) -> dict:
        return {
            "skip": self.skip.to_dict(),
            "skips_last_14_days": self.skips_last_14_days,
            "adaptation": self.adaptation.to_dict() if self.adaptation else None,
        }


class SessionTracker:
    """Tracks workout sessions and feeds results to analytics and plans."""

    def __init__(
        self,
        repos: Repositories,
        plan_generator: PlanGenerator,
        analytics: AnalyticsService,
    ):
        self.repos = repos
        self.plan_generator = plan_generator
        self.analytics = analytics
        # Entries vanish once no coroutine holds or waits on the lock
        self._session_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def _session_lock(self, session_id: int) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_session(self, user_id: str, workout_id: int, now: datetime | None = None) -> WorkoutSession:
        _check_user_id(user_id)
        if workout_id <= 0:
            raise InvalidInputError("workout id must be positive", field="workout_id")
        owner = await self.repos.workouts.get_owner(workout_id)
        if owner != user_id:
            raise UnauthorizedError("workout belongs to another user")

        now = now or utcnow()
        try:
            async with self.repos.transaction():
                active = await self.repos.sessions.find_active_for_user(user_id)
                if active is not None:
                    if not active.is_stale(now, STALE_AFTER_HOURS):
                        raise ActiveSessionExistsError(user_id, active.id)
                    await self._mark_stale(active)

                session = WorkoutSession(user_id=user_id, workout_id=workout_id, start_time=now)
                session.id = await self.repos.sessions.create(session)
        except ConflictError as e:
            if isinstance(e, ActiveSessionExistsError):
                raise
            raise ActiveSessionExistsError(user_id) from e

        logger.info("User %s started session %s on workout %s", user_id, session.id, workout_id)
        return session

    async def log_exercise_performance(
        self,
        session_id: int,
        exercise_id: int,
        sets: list[SetRecord],
        user_id: str,
    ) -> ExerciseLogResult:
        """Append sets for one exercise to an active session."""
        _check_user_id(user_id)
        validate_sets(sets)

        lock = self._session_lock(session_id)
        async with lock:
            session = await self._get_active_owned(session_id, user_id)
            await self.repos.exercises.get(exercise_id)

            existing = await self.repos.exercise_performances.find(session.id, exercise_id)
            combined = (existing.sets if existing else []) + list(sets)
            if len(combined) > MAX_SETS_PER_EXERCISE:
                raise InvalidInputError(
                    f"at most {MAX_SETS_PER_EXERCISE} sets per exercise", field="sets"
                )
            await self.repos.exercise_performances.save_sets(session.id, exercise_id, combined)

        warnings = []
        for s in sets:
            if s.rpe is not None and s.rpe > FORM_WARNING_RPE:
                warnings.append(
                    f"RPE {s.rpe:g} at {s.weight:g} kg x {s.reps}: check form and consider reducing load"
                )
        if warnings:
            logger.warning("Form warning for user %s session %s exercise %s", user_id, session_id, exercise_id)

        performance = ExercisePerformance(session_id=session_id, exercise_id=exercise_id, sets=combined)
        return ExerciseLogResult(performance=performance, form_warnings=warnings)

    async def complete_session(
        self,
        session_id: int,
        user_id: str,
        notes: str = "",
        now: datetime | None = None,
    ) -> CompletionResult:
        """Complete a session, write progress, update 1RMs and adapt the plan."""
        _check_user_id(user_id)
        now = now or utcnow()

        lock = self._session_lock(session_id)
        async with lock:
            # Outside the transaction so a stale promotion is not rolled back
            await self._get_active_owned(session_id, user_id, now)
            history = await self.analytics.get_training_history(user_id)
            async with self.repos.transaction():
                session = await self._get_active_owned(session_id, user_id, now)
                performances = await self.repos.exercise_performances.list_for_session(session_id)
                planned = await self.repos.workout_exercises.list_for_workout(session.workout_id)

                summary = self._summarize(session, performances, len(planned), notes, now)
                await self.repos.sessions.update_status(session_id, SessionStatus.COMPLETED, now, summary)
                session.status = SessionStatus.COMPLETED
                session.end_time = now
                session.summary = summary

                updates, rejected = [], []
                for perf in performances:
                    best = perf.best_set
                    if best is None:
                        continue
                    await self.repos.progress.create(
                        ProgressLog(
                            user_id=user_id,
                            exercise_id=perf.exercise_id,
                            session_id=session_id,
                            date=now.date(),
                            sets_completed=perf.sets_completed,
                            reps_completed=best.reps,
                            weight_used=best.weight,
                        )
                    )
                    if best.weight <= 0:
                        continue
                    try:
                        calc = estimate_one_rep_max(best.weight, best.reps, best.rpe, history)
                        estimate = await self.analytics.record_one_rep_max(
                            user_id,
                            perf.exercise_id,
                            OneRepMaxEstimate(
                                user_id=user_id,
                                exercise_id=perf.exercise_id,
                                estimated_max=calc.estimated_max,
                                method=calc.method,
                                confidence=calc.confidence,
                                source_performance={"session_id": session_id, **best.to_dict()},
                                created_at=now,
                            ),
                        )
                        updates.append(estimate)
                    except (UnrealisticEstimateError, NotEstimableError) as e:
                        logger.warning(
                            "1RM update rejected for user %s exercise %s: %s",
                            user_id, perf.exercise_id, e.message,
                        )
                        rejected.append({"exercise_id": perf.exercise_id, **e.to_dict()})

                adaptation = await self.plan_generator.on_session_completed(
                    user_id, summary.completion_rate, summary.average_rpe, now
                )

        logger.info(
            "User %s completed session %s (%.0f%% of planned exercises)",
            user_id, session_id, summary.completion_rate * 100,
        )
        return CompletionResult(
            session=session,
            rating=rate_completion(summary.completion_rate),
            one_rep_max_updates=updates,
            rejected_estimates=rejected,
            adaptation=adaptation,
        )

    def _summarize(
        self,
        session: WorkoutSession,
        performances: list[ExercisePerformance],
        planned_count: int,
        notes: str,
        now: datetime,
    ) -> SessionSummary:
        done = [p for p in performances if p.sets]
        if planned_count:
            completion_rate = min(1.0, len(done) / planned_count)
        else:
            completion_rate = 1.0 if done else 0.0
        rpes = [s.rpe for p in done for s in p.sets if s.rpe is not None]
        return SessionSummary(
            total_duration_seconds=int((now - session.start_time).total_seconds()),
            exercises_completed=len(done),
            exercises_planned=planned_count,
            total_volume=sum(p.total_volume for p in done),
            average_rpe=round(sum(rpes) / len(rpes), 2) if rpes else None,
            completion_rate=round(completion_rate, 4),
            notes=notes,
            exercises=done,
        )

    async def skip_workout(
        self,
        user_id: str,
        workout_id: int,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> SkipResult:
        """Record a skipped workout; three skips in 14 days reduce plan volume."""
        _check_user_id(user_id)
        owner = await self.repos.workouts.get_owner(workout_id)
        if owner != user_id:
            raise UnauthorizedError("workout belongs to another user")
        reason = (reason or "").strip() or DEFAULT_SKIP_REASON
        now = now or utcnow()

        async with self.repos.transaction():
            active = await self.repos.sessions.find_active_for_user(user_id)
            if active is not None and active.workout_id == workout_id:
                await self.repos.sessions.update_status(active.id, SessionStatus.SKIPPED, now)

            skip = SkippedWorkout(user_id=user_id, workout_id=workout_id, reason=reason, skipped_at=now)
            skip.id = await self.repos.skips.create(skip)
            await self.plan_generator.record_skip(user_id, now)

            recent = await self.repos.skips.count_since(user_id, now - timedelta(days=SKIP_PATTERN_DAYS))
            adaptation = None
            if recent >= SKIP_PATTERN_COUNT:
                adaptation = await self.plan_generator.on_skip_pattern(user_id, recent)

        return SkipResult(skip=skip, skips_last_14_days=recent, adaptation=adaptation)

    async def skip_session(self, session_id: int, user_id: str, reason: str | None = None) -> SkipResult:
        session = await self.repos.sessions.get(session_id)
        if session.user_id != user_id:
            raise UnauthorizedError("session belongs to another user")
        return await self.skip_workout(user_id, session.workout_id, reason)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_active_session(self, user_id: str, now: datetime | None = None) -> WorkoutSession | None:
        """The user's open session, or None. Stale sessions are promoted on read."""
        _check_user_id(user_id)
        session = await self.repos.sessions.find_active_for_user(user_id)
        if session is None:
            return None
        if session.is_stale(now or utcnow(), STALE_AFTER_HOURS):
            await self._mark_stale(session)
            return None
        return session

    async def get_session(self, session_id: int, user_id: str) -> WorkoutSession:
        session = await self.repos.sessions.get(session_id)
        if session.user_id != user_id:
            raise UnauthorizedError("session belongs to another user")
        return session

    async def get_session_history(self, user_id: str, limit: int = 20, offset: int = 0) -> list[WorkoutSession]:
        _check_user_id(user_id)
        if not 1 <= limit <= 100:
            raise InvalidInputError("limit must be between 1 and 100", field="limit")
        if offset < 0:
            raise InvalidInputError("offset must not be negative", field="offset")
        return await self.repos.sessions.list_for_user(user_id, limit, offset)

    async def get_session_metrics(self, user_id: str, days: int = 30, now: datetime | None = None) -> SessionMetrics:
        _check_user_id(user_id)
        if not 1 <= days <= 365:
            raise InvalidInputError("days must be between 1 and 365", field="days")
        now = now or utcnow()
        start = now - timedelta(days=days)

        sessions = await self.repos.sessions.list_in_range(user_id, start, now + timedelta(seconds=1))
        skips = await self.repos.skips.list_in_range(user_id, start, now + timedelta(seconds=1))

        completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
        stale = [s for s in sessions if s.status == SessionStatus.STALE]
        summaries = [s.summary for s in completed if s.summary]
        durations = [s.total_duration_seconds for s in summaries]
        rpes = [s.average_rpe for s in summaries if s.average_rpe is not None]
        scheduled = len(completed) + len(skips)

        return SessionMetrics(
            user_id=user_id,
            days=days,
            total_sessions=len(sessions),
            completed_sessions=len(completed),
            skipped_workouts=len(skips),
            stale_sessions=len(stale),
            completion_rate=round(len(completed) / scheduled, 4) if scheduled else 0.0,
            average_duration_seconds=round(sum(durations) / len(durations), 1) if durations else 0.0,
            total_volume=round(sum(s.total_volume for s in summaries), 2),
            average_rpe=round(sum(rpes) / len(rpes), 2) if rpes else None,
        )

    async def get_weekly_session_stats(self, user_id: str, week_start: date) -> WeeklySessionStats:
        _check_user_id(user_id)
        week_start = start_of_week(week_start)
        start = datetime.combine(week_start, datetime.min.time(), tzinfo=timezone.utc)
        end = start + timedelta(days=7)

        schema = await self.repos.schemas.find_active_for_user(user_id)
        planned = len(await self.repos.workouts.list_for_schema(schema.id)) if schema else 0

        sessions = await self.repos.sessions.list_in_range(user_id, start, end)
        skips = await self.repos.skips.list_in_range(user_id, start, end)
        completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
        summaries = [s.summary for s in completed if s.summary]

        return WeeklySessionStats(
            user_id=user_id,
            week_start=week_start,
            planned_workouts=planned,
            completed_workouts=len(completed),
            skipped_workouts=len(skips),
            adherence_rate=round(min(1.0, len(completed) / planned), 4) if planned else 0.0,
            total_volume=round(sum(s.total_volume for s in summaries), 2),
            total_duration_seconds=sum(s.total_duration_seconds for s in summaries),
        )

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    async def record_recovery_metrics(self, user_id: str, metrics: RecoveryMetrics) -> RecoveryMetrics:
        _check_user_id(user_id)
        if not 0 <= metrics.sleep_hours <= 24:
            raise InvalidInputError("sleep_hours must be between 0 and 24", field="sleep_hours")
        for name in ("sleep_quality", "stress_level", "soreness_level", "energy_level"):
            if not 1 <= getattr(metrics, name) <= 10:
                raise InvalidInputError(f"{name} must be between 1 and 10", field=name)

        metrics.user_id = user_id
        metrics.recorded_at = metrics.recorded_at or utcnow()
        metrics.id = await self.repos.recovery.create(metrics)
        return metrics

    async def get_recovery_status(self, user_id: str) -> RecoveryMetrics | None:
        _check_user_id(user_id)
        return await self.repos.recovery.find_latest(user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_active_owned(
        self, session_id: int, user_id: str, now: datetime | None = None
    ) -> WorkoutSession:
        session = await self.repos.sessions.get(session_id)
        if session.user_id != user_id:
            raise UnauthorizedError("session belongs to another user")
        if session.status != SessionStatus.ACTIVE:
            raise SessionNotActiveError(session_id, session.status.value)
        if session.is_stale(now or utcnow(), STALE_AFTER_HOURS):
            await self._mark_stale(session)
            raise SessionNotActiveError(session_id, SessionStatus.STALE.value)
        return session

    async def _mark_stale(self, session: WorkoutSession) -> None:
        await self.repos.sessions.update_status(session.id, SessionStatus.STALE)
        session.status = SessionStatus.STALE
        logger.info("Session %s for user %s marked stale", session.id, session.user_id)


def _check_user_id(user_id: str) -> None:
    if not user_id or not user_id.strip():
        raise InvalidUserIDError()
