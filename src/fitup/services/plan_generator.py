"""Weekly plan generation and adaptation (``fitup_adaptive_v1``).

Generation is deterministic: the same profile and catalog always produce the
same plan. Adaptation mutates the active plan's metadata and its weekly
schema and leaves an audit record for every change.
"""

import asyncio
import logging
from datetime import date, datetime

from ..data.catalog import TemplateCatalog, TemplateDay, WorkoutTemplate
from ..db.repositories import Repositories
from ..exceptions import (
    ActivePlanExistsError,
    ConflictError,
    InvalidInputError,
    InvalidMetadataError,
    InvalidUserIDError,
    NoSuitableTemplateError,
    NotFoundError,
    NotImplementedFeatureError,
    PlanExportError,
)
from ..exporters.pdf import PlanRenderer
from ..exporters.plan_document import build_plan_document
from ..models.exercises import (
    EquipmentType,
    Exercise,
    ExerciseTier,
    FitnessLevel,
    MovementLimitation,
)
from ..models.plan import (
    ALGORITHM_ADAPTIVE_V1,
    AdaptationReason,
    AdaptiveParameters,
    GeneratedPlan,
    PerformanceSource,
    PlanAdaptation,
    PlanDay,
    PlanExercise,
    PlanMetadata,
    PlanPerformance,
    PlanRequest,
    ProgressionMethod,
    WeeklySchema,
    Workout,
    WorkoutExercise,
)
from ..models.profile import FitnessGoal, RecoveryStatus
from ..utils.dates import iso_week_key, start_of_week, utcnow
from .analytics import round_to_increment

logger = logging.getLogger(__name__)

MIN_EXERCISES_PER_DAY = 3
MAX_EXERCISES_PER_DAY = 8
MIN_TIME_PER_WORKOUT = 10
MAX_TIME_PER_WORKOUT = 180

# Goal -> (sets, reps, rest seconds)
GOAL_PRESCRIPTIONS: dict[FitnessGoal, tuple[int, str, int]] = {
    FitnessGoal.STRENGTH: (5, "3-5", 180),
    FitnessGoal.MUSCLE_GAIN: (4, "8-12", 75),
    FitnessGoal.FAT_LOSS: (3, "12-15", 45),
    FitnessGoal.ENDURANCE: (3, "15-20", 30),
    FitnessGoal.GENERAL_FITNESS: (3, "10-12", 60),
}

# Fraction of 1RM used for load targets
GOAL_INTENSITY: dict[FitnessGoal, float] = {
    FitnessGoal.STRENGTH: 0.85,
    FitnessGoal.MUSCLE_GAIN: 0.72,
    FitnessGoal.FAT_LOSS: 0.60,
    FitnessGoal.ENDURANCE: 0.55,
    FitnessGoal.GENERAL_FITNESS: 0.65,
}

INTENSITY_GUIDELINES: dict[FitnessGoal, str] = {
    FitnessGoal.STRENGTH: "Heavy loads at 80-90% 1RM, RPE 8-9, full rest between sets",
    FitnessGoal.MUSCLE_GAIN: "Moderate loads at 65-80% 1RM, RPE 7-9, controlled tempo",
    FitnessGoal.FAT_LOSS: "Light to moderate loads, RPE 6-8, short rest to keep heart rate up",
    FitnessGoal.ENDURANCE: "Light loads at 50-60% 1RM, RPE 6-7, minimal rest",
    FitnessGoal.GENERAL_FITNESS: "Moderate loads at 60-70% 1RM, RPE 6-8",
}

LEVEL_VOLUME_MULTIPLIER: dict[FitnessLevel, float] = {
    FitnessLevel.BEGINNER: 0.8,
    FitnessLevel.INTERMEDIATE: 1.0,
    FitnessLevel.ADVANCED: 1.2,
}

TIER_ORDER = [ExerciseTier.COMPOUND, ExerciseTier.ACCESSORY, ExerciseTier.ISOLATION]

PROGRESSION_METHOD = "alternating_sets_load"

# Adaptation rules
ADAPTATION_WINDOW = 3
LOW_COMPLETION_RATE = 0.7
HIGH_RPE = 9.0
PROGRESSION_COMPLETION_RATE = 0.95
PROGRESSION_MAX_RPE = 7.0
VOLUME_REDUCTION_STEP_PCT = 10.0
VOLUME_REDUCTION_FLOOR_PCT = -30.0
MAX_SET_BONUS = 2
LOAD_PROGRESSION_STEP_PCT = 2.5

TARGET_RPE = 7.5


def parse_plan_request(data: dict) -> PlanRequest:
    """Validate raw generation metadata and build a ``PlanRequest``."""
    goals = data.get("goals") or []
    if not goals:
        raise InvalidMetadataError("at least one goal is required", field="goals")
    equipment = data.get("equipment") or []
    if not equipment:
        raise InvalidMetadataError("at least one equipment type is required", field="equipment")

    try:
        parsed_goals = [FitnessGoal(g) for g in goals]
        parsed_equipment = [EquipmentType(eq) for eq in equipment]
        level = FitnessLevel(data.get("level", ""))
        limitations = [MovementLimitation(lim) for lim in data.get("limitations") or []]
        recovery = data.get("recovery_status")
        recovery_status = RecoveryStatus(recovery) if recovery else None
    except (TypeError, ValueError) as e:
        raise InvalidMetadataError(str(e)) from e

    frequency = data.get("frequency")
    if not isinstance(frequency, int) or not 1 <= frequency <= 7:
        raise InvalidMetadataError("frequency must be between 1 and 7", field="frequency")

    time_per_workout = data.get("time_per_workout")
    if (
        not isinstance(time_per_workout, int)
        or not MIN_TIME_PER_WORKOUT <= time_per_workout <= MAX_TIME_PER_WORKOUT
    ):
        raise InvalidMetadataError(
            f"time_per_workout must be between {MIN_TIME_PER_WORKOUT} and "
            f"{MAX_TIME_PER_WORKOUT} minutes",
            field="time_per_workout",
        )

    raw_maxes = data.get("one_rep_maxes") or {}
    if not isinstance(raw_maxes, dict):
        raise InvalidMetadataError("one_rep_maxes must map exercise ids to weights", field="one_rep_maxes")
    one_rep_maxes = {}
    try:
        for exercise_id, value in raw_maxes.items():
            one_rep_maxes[int(exercise_id)] = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidMetadataError(
            f"invalid one rep max entry: {e}", field="one_rep_maxes"
        ) from e
    if any(value <= 0 for value in one_rep_maxes.values()):
        raise InvalidMetadataError("one rep maxes must be positive", field="one_rep_maxes")

    week_start = data.get("week_start")
    if isinstance(week_start, str):
        try:
            week_start = date.fromisoformat(week_start)
        except ValueError as e:
            raise InvalidMetadataError(f"invalid week_start: {week_start}", field="week_start") from e
    elif week_start is not None and not isinstance(week_start, date):
        raise InvalidMetadataError("week_start must be an ISO date", field="week_start")

    return PlanRequest(
        goals=list(dict.fromkeys(parsed_goals)),
        equipment=list(dict.fromkeys(parsed_equipment)),
        level=level,
        frequency=frequency,
        time_per_workout=time_per_workout,
        limitations=limitations,
        one_rep_maxes=one_rep_maxes,
        recovery_status=recovery_status,
        week_start=week_start,
    )


def exercises_per_day(time_per_workout: int) -> int:
    return max(MIN_EXERCISES_PER_DAY, min(MAX_EXERCISES_PER_DAY, time_per_workout // 10))


def build_exercise_pool(
    exercises: list[Exercise], day: TemplateDay, request: PlanRequest
) -> list[Exercise]:
    """Exercises usable on a template day by this user."""
    pool = []
    for exercise in exercises:
        if day.exercise_types and exercise.exercise_type not in day.exercise_types:
            continue
        if not any(mg in day.muscle_groups for mg in exercise.muscle_groups):
            continue
        if not exercise.is_available_with(request.equipment):
            continue
        if not exercise.is_suitable_for(request.level):
            continue
        if exercise.is_contraindicated(request.limitations):
            continue
        pool.append(exercise)
    return pool


def order_pool(pool: list[Exercise], occurrence: int) -> list[Exercise]:
    """Compound, then accessory, then isolation; each tier rotated by ``occurrence``."""
    ordered = []
    for tier in TIER_ORDER:
        tier_exercises = sorted((ex for ex in pool if ex.tier == tier), key=lambda ex: ex.id or 0)
        if tier_exercises:
            shift = occurrence % len(tier_exercises)
            ordered.extend(tier_exercises[shift:] + tier_exercises[:shift])
    return ordered


def mean_reps(reps: str) -> float:
    """Midpoint of a rep pattern like ``"8-12"``; timed patterns count as 1."""
    tokens = reps.split()
    if not tokens or (len(tokens) > 1 and tokens[1] in ("sec", "min")):
        return 1.0
    try:
        values = [float(p) for p in tokens[0].split("-")]
    except ValueError:
        return 1.0
    return sum(values) / len(values)


def estimate_volume(structure: list[PlanDay], level: FitnessLevel) -> float:
    raw = sum(ex.sets * mean_reps(ex.reps) for day in structure for ex in day.exercises)
    return round(raw * LEVEL_VOLUME_MULTIPLIER[level], 1)


def compute_effectiveness(records: list[PlanPerformance], training_days: int) -> float:
    """Weighted effectiveness score in [0, 1]; 0 without records."""
    if not records:
        return 0.0

    mean_completion = sum(r.completion_rate for r in records) / len(records)

    rpes = [r.average_rpe for r in records if r.average_rpe is not None]
    if rpes:
        mean_rpe = sum(rpes) / len(rpes)
        rpe_term = max(0.0, min(1.0, 1 - abs(mean_rpe - TARGET_RPE) / 3))
    else:
        rpe_term = 0.5

    scheduled = len(records) * max(training_days, 1)
    skipped_ratio = max(0.0, min(1.0, sum(r.skipped_count for r in records) / scheduled))

    score = 0.5 * mean_completion + 0.3 * rpe_term + 0.2 * (1 - skipped_ratio)
    return round(max(0.0, min(1.0, score)), 4)


def scaled_sets(baseline: int, volume_adjustment_pct: float, set_bonus: int) -> int:
    return max(1, round(baseline * (1 + volume_adjustment_pct / 100))) + set_bonus


class PlanGenerator:
    """Creates, tracks and adapts users' weekly plans."""

    def __init__(
        self,
        repos: Repositories,
        catalog: TemplateCatalog | None = None,
        renderer: PlanRenderer | None = None,
        pdf_timeout: float = 30.0,
    ):
        self.repos = repos
        self.catalog = catalog or TemplateCatalog()
        self.renderer = renderer or PlanRenderer()
        self.pdf_timeout = pdf_timeout

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def create_plan(self, user_id: str, metadata: dict | PlanRequest) -> GeneratedPlan:
        """Generate and persist a new active plan.

        Raises:
            InvalidUserIDError: empty user id
            InvalidMetadataError: incomplete or out-of-range metadata
            ActivePlanExistsError: an active plan exists and is not flagged
                for regeneration
            NoSuitableTemplateError: no template or no exercises fit
        """
        if not user_id or not user_id.strip():
            raise InvalidUserIDError()
        request = metadata if isinstance(metadata, PlanRequest) else parse_plan_request(metadata)

        existing = await self.repos.plans.find_active_for_user(user_id)
        if existing is not None and not existing.needs_regeneration:
            raise ActivePlanExistsError(user_id, existing.id)

        exercises = await self.repos.exercises.list_all()
        plan = self.generate(user_id, request, exercises)

        try:
            async with self.repos.transaction():
                await self._persist(plan)
        except ConflictError as e:
            if isinstance(e, ActivePlanExistsError):
                raise
            raise ActivePlanExistsError(user_id) from e

        logger.info(
            "Generated plan %s for user %s from template %s (%d exercises)",
            plan.id, user_id, plan.metadata.template_used, plan.metadata.total_exercises,
        )
        return plan

    def generate(self, user_id: str, request: PlanRequest, exercises: list[Exercise]) -> GeneratedPlan:
        """Build an unsaved plan. Pure apart from reading the clock."""
        template = self.catalog.select(request.level, request.primary_goal, request.frequency)
        if template is None:
            raise NoSuitableTemplateError(
                f"no workout template for level {request.level.value}",
                details={"level": request.level.value, "goal": request.primary_goal.value},
            )

        structure = self._build_structure(template, request, exercises)
        recovery = request.recovery_status or RecoveryStatus.NORMAL
        parameters = AdaptiveParameters(
            level=request.level,
            goals=request.goals,
            frequency=request.frequency,
            time_per_workout=request.time_per_workout,
            equipment=request.equipment,
            limitations=request.limitations,
            recovery_status=recovery,
            intensity_guidelines=INTENSITY_GUIDELINES[request.primary_goal],
            level_volume_multiplier=LEVEL_VOLUME_MULTIPLIER[request.level],
        )

        muscle_groups = sorted({mg for day in structure for ex in day.exercises for mg in ex.muscle_groups})
        user_equipment = {eq.value for eq in request.equipment}
        equipment = sorted({eq for day in structure for ex in day.exercises for eq in ex.equipment} & user_equipment)

        metadata = PlanMetadata(
            template_used=template.name,
            muscle_groups_targeted=muscle_groups,
            equipment_utilized=equipment,
            estimated_volume=estimate_volume(structure, request.level),
            progression_method=PROGRESSION_METHOD,
            structure=structure,
            parameters=parameters,
        )
        return GeneratedPlan(
            user_id=user_id,
            week_start=request.week_start or start_of_week(utcnow()),
            metadata=metadata,
            algorithm=ALGORITHM_ADAPTIVE_V1,
            active=True,
        )

    def _build_structure(
        self, template: WorkoutTemplate, request: PlanRequest, exercises: list[Exercise]
    ) -> list[PlanDay]:
        goal = request.primary_goal
        sets, reps, rest = GOAL_PRESCRIPTIONS[goal]
        count = exercises_per_day(request.time_per_workout)
        recovery = request.recovery_status or RecoveryStatus.NORMAL

        structure = []
        occurrences: dict[str, int] = {}
        for index, day in enumerate(template.schedule, start=1):
            if day.is_rest:
                structure.append(PlanDay(day_of_week=index, focus=day.focus))
                continue

            occurrence = occurrences.get(day.focus, 0)
            occurrences[day.focus] = occurrence + 1

            pool = build_exercise_pool(exercises, day, request)
            if not pool:
                raise NoSuitableTemplateError(
                    f"no exercises available for {day.focus} with the given equipment",
                    details={"focus": day.focus, "template": template.name},
                )

            selected = order_pool(pool, occurrence)[:count]
            plan_exercises = []
            for order_index, exercise in enumerate(selected):
                load = None
                one_rm = request.one_rep_maxes.get(exercise.id)
                if one_rm:
                    load = round_to_increment(one_rm * GOAL_INTENSITY[goal] * recovery.volume_multiplier)
                plan_exercises.append(
                    PlanExercise(
                        exercise_id=exercise.id,
                        name=exercise.name,
                        sets=sets,
                        reps=reps,
                        rest_seconds=rest,
                        order_index=order_index,
                        baseline_sets=sets,
                        muscle_groups=[mg.value for mg in exercise.muscle_groups],
                        equipment=[eq.value for eq in exercise.equipment],
                        tier=exercise.tier.value,
                        load_target=load,
                        baseline_load=load,
                    )
                )
            structure.append(PlanDay(day_of_week=index, focus=day.focus, exercises=plan_exercises))
        return structure

    async def _persist(self, plan: GeneratedPlan) -> None:
        """Write plan, schema, workouts and workout exercises. Runs in a transaction."""
        existing = await self.repos.plans.find_active_for_user(plan.user_id)
        if existing is not None:
            if not existing.needs_regeneration:
                raise ActivePlanExistsError(plan.user_id, existing.id)
            await self.repos.plans.deactivate(existing.id)

        old_schema = await self.repos.schemas.find_active_for_user(plan.user_id)
        if old_schema is not None:
            await self.repos.schemas.deactivate(old_schema.id)

        schema_id = await self.repos.schemas.create(
            WeeklySchema(user_id=plan.user_id, week_start=plan.week_start)
        )
        for day in plan.metadata.workout_days:
            workout_id = await self.repos.workouts.create(
                Workout(schema_id=schema_id, day_of_week=day.day_of_week, focus=day.focus)
            )
            day.workout_id = workout_id
            for ex in day.exercises:
                await self.repos.workout_exercises.create(
                    WorkoutExercise(
                        workout_id=workout_id,
                        exercise_id=ex.exercise_id,
                        sets=ex.sets,
                        reps=ex.reps,
                        rest_seconds=ex.rest_seconds,
                        order_index=ex.order_index,
                    )
                )

        plan.schema_id = schema_id
        plan.generated_at = utcnow()
        plan.id = await self.repos.plans.create(plan)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_active_plan(self, user_id: str) -> GeneratedPlan:
        if not user_id or not user_id.strip():
            raise InvalidUserIDError()
        plan = await self.repos.plans.find_active_for_user(user_id)
        if plan is None:
            raise NotFoundError("active plan", user_id)
        return plan

    async def get_plan(self, plan_id: int) -> GeneratedPlan:
        return await self.repos.plans.get(plan_id)

    async def get_history(self, user_id: str, limit: int = 10) -> list[GeneratedPlan]:
        if not user_id or not user_id.strip():
            raise InvalidUserIDError()
        if not 1 <= limit <= 100:
            raise InvalidInputError("limit must be between 1 and 100", field="limit")
        return await self.repos.plans.list_for_user(user_id, limit)

    # ------------------------------------------------------------------
    # Performance and effectiveness
    # ------------------------------------------------------------------

    async def track_performance(self, plan_id: int, performance: PlanPerformance) -> PlanPerformance:
        """Append a performance record and refresh the cached effectiveness."""
        if not 0 <= performance.completion_rate <= 1:
            raise InvalidInputError("completion_rate must be between 0 and 1", field="completion_rate")
        if performance.average_rpe is not None and not 1 <= performance.average_rpe <= 10:
            raise InvalidInputError("average_rpe must be between 1 and 10", field="average_rpe")
        if performance.skipped_count < 0:
            raise InvalidInputError("skipped_count must not be negative", field="skipped_count")

        async with self.repos.transaction():
            plan = await self.repos.plans.get(plan_id)
            performance.plan_id = plan.id
            performance.recorded_at = performance.recorded_at or utcnow()
            performance.id = await self.repos.plan_performance.create(performance)
            await self._refresh_effectiveness(plan)
        return performance

    async def get_effectiveness(self, plan_id: int) -> float:
        plan = await self.repos.plans.get(plan_id)
        records = await self.repos.plan_performance.list_for_plan(plan_id)
        return compute_effectiveness(records, len(plan.metadata.workout_days))

    async def _refresh_effectiveness(self, plan: GeneratedPlan) -> float:
        records = await self.repos.plan_performance.list_for_plan(plan.id)
        score = compute_effectiveness(records, len(plan.metadata.workout_days))
        await self.repos.plans.update_effectiveness(plan.id, score)
        plan.effectiveness = score
        return score

    # ------------------------------------------------------------------
    # Regeneration and adaptation history
    # ------------------------------------------------------------------

    async def mark_for_regeneration(self, plan_id: int, reason: str) -> GeneratedPlan:
        if not reason or not reason.strip():
            raise InvalidInputError("reason is required", field="reason")
        async with self.repos.transaction():
            plan = await self.repos.plans.get(plan_id)
            await self.repos.plans.mark_for_regeneration(plan_id, reason)
            await self.repos.plan_adaptations.create(
                PlanAdaptation(
                    plan_id=plan_id,
                    reason=AdaptationReason.REGENERATION_REQUEST.value,
                    trigger="manual",
                    changes={"regeneration_reason": reason},
                )
            )
        plan.needs_regeneration = True
        plan.regeneration_reason = reason
        logger.info("Plan %s flagged for regeneration: %s", plan_id, reason)
        return plan

    async def log_adaptation(self, plan_id: int, adaptation: PlanAdaptation) -> PlanAdaptation:
        if not adaptation.reason or not adaptation.reason.strip():
            raise InvalidInputError("reason is required", field="reason")
        await self.repos.plans.get(plan_id)
        adaptation.plan_id = plan_id
        adaptation.trigger = adaptation.trigger or "manual"
        adaptation.created_at = adaptation.created_at or utcnow()
        adaptation.id = await self.repos.plan_adaptations.create(adaptation)
        return adaptation

    async def get_adaptation_history(self, user_id: str, limit: int = 50) -> list[PlanAdaptation]:
        if not user_id or not user_id.strip():
            raise InvalidUserIDError()
        return await self.repos.plan_adaptations.list_for_user(user_id, min(max(limit, 1), 50))

    # ------------------------------------------------------------------
    # Callbacks from the session tracker (run inside its transaction)
    # ------------------------------------------------------------------

    async def on_session_completed(
        self,
        user_id: str,
        completion_rate: float,
        average_rpe: float | None,
        now: datetime | None = None,
    ) -> PlanAdaptation | None:
        """Record a session result and adapt the active plan if warranted."""
        plan = await self.repos.plans.find_active_for_user(user_id)
        if plan is None:
            return None
        now = now or utcnow()

        await self.repos.plan_performance.create(
            PlanPerformance(
                plan_id=plan.id,
                completion_rate=completion_rate,
                average_rpe=average_rpe,
                source=PerformanceSource.SESSION,
                recorded_at=now,
            )
        )
        recent = await self.repos.plan_performance.list_for_plan(
            plan.id, source=PerformanceSource.SESSION, limit=ADAPTATION_WINDOW
        )

        mean_rate = sum(r.completion_rate for r in recent) / len(recent)
        rpes = [r.average_rpe for r in recent if r.average_rpe is not None]
        mean_rpe = sum(rpes) / len(rpes) if rpes else None

        adaptation = None
        if mean_rate < LOW_COMPLETION_RATE:
            adaptation = await self._reduce_volume(
                plan, AdaptationReason.LOW_COMPLETION_RATE, "session_completed",
                {"mean_completion_rate": round(mean_rate, 3)},
            )
        elif mean_rpe is not None and mean_rpe > HIGH_RPE:
            adaptation = await self._reduce_volume(
                plan, AdaptationReason.POTENTIAL_OVERTRAINING, "session_completed",
                {"mean_rpe": round(mean_rpe, 2)},
            )
        elif len(recent) == ADAPTATION_WINDOW and all(
            r.completion_rate >= PROGRESSION_COMPLETION_RATE
            and r.average_rpe is not None
            and r.average_rpe <= PROGRESSION_MAX_RPE
            for r in recent
        ):
            adaptation = await self._progress(plan, now)

        await self._refresh_effectiveness(plan)
        return adaptation

    async def record_skip(self, user_id: str, now: datetime | None = None) -> None:
        """Record a skipped workout against the active plan, if any."""
        plan = await self.repos.plans.find_active_for_user(user_id)
        if plan is None:
            return
        await self.repos.plan_performance.create(
            PlanPerformance(
                plan_id=plan.id,
                completion_rate=0.0,
                skipped_count=1,
                source=PerformanceSource.SKIP,
                recorded_at=now or utcnow(),
            )
        )
        await self._refresh_effectiveness(plan)

    async def on_skip_pattern(self, user_id: str, skip_count: int) -> PlanAdaptation | None:
        plan = await self.repos.plans.find_active_for_user(user_id)
        if plan is None:
            return None
        logger.info("Skip pattern for user %s: %d skips in 14 days", user_id, skip_count)
        return await self._reduce_volume(
            plan, AdaptationReason.SKIP_PATTERN, "skip_pattern", {"skips_14d": skip_count}
        )

    async def _reduce_volume(
        self,
        plan: GeneratedPlan,
        reason: AdaptationReason,
        trigger: str,
        evidence: dict,
    ) -> PlanAdaptation:
        params = plan.metadata.parameters
        before = params.volume_adjustment_pct
        params.volume_adjustment_pct = max(VOLUME_REDUCTION_FLOOR_PCT, before - VOLUME_REDUCTION_STEP_PCT)

        changes = {
            **evidence,
            "volume_adjustment_pct": {"from": before, "to": params.volume_adjustment_pct},
            "sets": await self._apply_sets(plan),
        }
        logger.info(
            "Plan %s adapted (%s): volume %+.0f%% -> %+.0f%%",
            plan.id, reason.value, before, params.volume_adjustment_pct,
        )
        return await self._record_adaptation(plan, reason, trigger, changes)

    async def _progress(self, plan: GeneratedPlan, now: datetime) -> PlanAdaptation | None:
        params = plan.metadata.parameters
        week = iso_week_key(now)
        if params.last_progression_week == week:
            return None

        use_sets = params.next_progression == ProgressionMethod.SETS and params.set_bonus < MAX_SET_BONUS
        if use_sets:
            params.set_bonus += 1
            changes = {"progression": "sets", "set_bonus": params.set_bonus,
                       "sets": await self._apply_sets(plan)}
            params.next_progression = ProgressionMethod.LOAD
        else:
            params.load_adjustment_pct += LOAD_PROGRESSION_STEP_PCT
            changes = {"progression": "load", "load_adjustment_pct": params.load_adjustment_pct,
                       "loads": self._apply_loads(plan)}
            params.next_progression = ProgressionMethod.SETS

        params.last_progression_week = week
        await self.repos.plans.update_metadata(plan.id, plan.metadata)
        logger.info("Plan %s progressed via %s", plan.id, changes["progression"])
        return await self._record_adaptation(
            plan, AdaptationReason.READY_FOR_PROGRESSION, "session_completed", changes
        )

    async def _apply_sets(self, plan: GeneratedPlan) -> dict:
        """Recompute set counts from baselines and write them to metadata and schema."""
        params = plan.metadata.parameters
        changed = {}
        for day in plan.metadata.workout_days:
            for ex in day.exercises:
                new_sets = scaled_sets(ex.baseline_sets, params.volume_adjustment_pct, params.set_bonus)
                if new_sets != ex.sets:
                    changed[str(ex.exercise_id)] = {"from": ex.sets, "to": new_sets}
                    ex.sets = new_sets
                if day.workout_id is not None:
                    await self.repos.workout_exercises.update_sets(day.workout_id, ex.exercise_id, new_sets)
        await self.repos.plans.update_metadata(plan.id, plan.metadata)
        return changed

    def _apply_loads(self, plan: GeneratedPlan) -> dict:
        params = plan.metadata.parameters
        changed = {}
        for day in plan.metadata.workout_days:
            for ex in day.exercises:
                if ex.baseline_load is None:
                    continue
                new_load = round_to_increment(ex.baseline_load * (1 + params.load_adjustment_pct / 100))
                if new_load != ex.load_target:
                    changed[str(ex.exercise_id)] = {"from": ex.load_target, "to": new_load}
                    ex.load_target = new_load
        return changed

    async def _record_adaptation(
        self, plan: GeneratedPlan, reason: AdaptationReason, trigger: str, changes: dict
    ) -> PlanAdaptation:
        adaptation = PlanAdaptation(
            plan_id=plan.id,
            reason=reason.value,
            trigger=trigger,
            changes=changes,
            created_at=utcnow(),
        )
        adaptation.id = await self.repos.plan_adaptations.create(adaptation)
        return adaptation

    # ------------------------------------------------------------------
    # Substitutes, export, templates
    # ------------------------------------------------------------------

    async def find_exercise_substitute(
        self,
        exercise_id: int,
        equipment: list[EquipmentType],
        limitations: list[MovementLimitation] | None = None,
        level: FitnessLevel | None = None,
    ) -> Exercise | None:
        """Closest alternative with the same movement pattern.

        Candidates share the movement pattern, cover at least half of the
        original's muscle groups and are usable with ``equipment``.
        """
        original = await self.repos.exercises.get(exercise_id)
        limitations = limitations or []
        original_groups = set(original.muscle_groups)

        candidates = []
        for exercise in await self.repos.exercises.list_all():
            if exercise.id == original.id or exercise.movement_pattern != original.movement_pattern:
                continue
            if not exercise.is_available_with(equipment) or exercise.is_contraindicated(limitations):
                continue
            if level is not None and not exercise.is_suitable_for(level):
                continue
            overlap = len(original_groups & set(exercise.muscle_groups)) / len(original_groups)
            if overlap >= 0.5:
                candidates.append((overlap, exercise.tier == original.tier, -(exercise.id or 0), exercise))

        if not candidates:
            return None
        return max(candidates, key=lambda c: c[:3])[3]

    async def export_plan_pdf(self, plan_id: int) -> bytes:
        """Render a plan to PDF bytes through the renderer."""
        plan = await self.repos.plans.get(plan_id)
        document = build_plan_document(plan)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.renderer.render, document),
                timeout=self.pdf_timeout,
            )
        except asyncio.TimeoutError as e:
            raise PlanExportError(f"PDF export of plan {plan_id} timed out") from e
        except PlanExportError:
            raise
        except Exception as e:
            logger.error("PDF export of plan %s failed: %s", plan_id, e)
            raise PlanExportError(f"PDF export of plan {plan_id} failed") from e

    async def delete_template(self, template_name: str) -> None:
        raise NotImplementedFeatureError("template deletion")
