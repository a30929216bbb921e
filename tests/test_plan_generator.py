"""Tests for plan generation and adaptation."""

from datetime import date, datetime, timedelta, timezone

import pytest

from fitup.exceptions import (
    ActivePlanExistsError,
    InvalidInputError,
    InvalidMetadataError,
    InvalidUserIDError,
    NoSuitableTemplateError,
    NotFoundError,
    NotImplementedFeatureError,
    PlanExportError,
)
from fitup.models.exercises import EquipmentType, MovementLimitation
from fitup.models.plan import AdaptationReason, PlanPerformance
from fitup.services.plan_generator import (
    compute_effectiveness,
    exercises_per_day,
    mean_reps,
    parse_plan_request,
)

MONDAY = datetime(2024, 3, 4, 18, 0, tzinfo=timezone.utc)


class TestParsePlanRequest:
    """Tests for metadata validation."""

    @pytest.mark.parametrize("frequency", [0, 8, "4", None])
    def test_frequency_out_of_range(self, sample_metadata, frequency):
        sample_metadata["frequency"] = frequency
        with pytest.raises(InvalidMetadataError):
            parse_plan_request(sample_metadata)

    @pytest.mark.parametrize("minutes", [9, 181])
    def test_time_out_of_range(self, sample_metadata, minutes):
        sample_metadata["time_per_workout"] = minutes
        with pytest.raises(InvalidInputError):
            parse_plan_request(sample_metadata)

    def test_bounds_are_inclusive(self, sample_metadata):
        sample_metadata.update(frequency=7, time_per_workout=180)
        assert parse_plan_request(sample_metadata).frequency == 7
        sample_metadata.update(frequency=1, time_per_workout=10)
        assert parse_plan_request(sample_metadata).time_per_workout == 10

    def test_empty_equipment(self, sample_metadata):
        sample_metadata["equipment"] = []
        with pytest.raises(InvalidMetadataError) as exc_info:
            parse_plan_request(sample_metadata)
        assert exc_info.value.details["field"] == "equipment"

    def test_missing_goals(self, sample_metadata):
        del sample_metadata["goals"]
        with pytest.raises(InvalidMetadataError):
            parse_plan_request(sample_metadata)

    def test_unknown_enum_value(self, sample_metadata):
        sample_metadata["level"] = "elite"
        with pytest.raises(InvalidMetadataError):
            parse_plan_request(sample_metadata)

    def test_duplicates_removed_in_order(self, sample_metadata):
        sample_metadata["goals"] = ["strength", "muscle_gain", "strength"]
        request = parse_plan_request(sample_metadata)
        assert [g.value for g in request.goals] == ["strength", "muscle_gain"]

    def test_one_rep_max_keys_become_ints(self, sample_metadata):
        sample_metadata["one_rep_maxes"] = {"33": 100}
        assert parse_plan_request(sample_metadata).one_rep_maxes == {33: 100.0}

    @pytest.mark.parametrize(
        "one_rep_maxes",
        [{"33": "heavy"}, {"squat": 100}, [100, 120], {"33": None}, {"33": -5}],
    )
    def test_invalid_one_rep_maxes(self, sample_metadata, one_rep_maxes):
        sample_metadata["one_rep_maxes"] = one_rep_maxes
        with pytest.raises(InvalidMetadataError) as exc_info:
            parse_plan_request(sample_metadata)
        assert exc_info.value.details["field"] == "one_rep_maxes"

    @pytest.mark.parametrize("week_start", ["next monday", "2024-13-01", 20240304])
    def test_invalid_week_start(self, sample_metadata, week_start):
        sample_metadata["week_start"] = week_start
        with pytest.raises(InvalidMetadataError) as exc_info:
            parse_plan_request(sample_metadata)
        assert exc_info.value.details["field"] == "week_start"

    def test_week_start_from_iso_string(self, sample_metadata):
        sample_metadata["week_start"] = "2024-03-04"
        assert parse_plan_request(sample_metadata).week_start == date(2024, 3, 4)


class TestHelpers:
    def test_exercises_per_day_is_clamped(self):
        assert exercises_per_day(10) == 3
        assert exercises_per_day(60) == 6
        assert exercises_per_day(180) == 8

    def test_mean_reps(self):
        assert mean_reps("8-12") == 10
        assert mean_reps("5") == 5
        assert mean_reps("30 sec") == 1
        assert mean_reps("3 per side") == 3

    def test_effectiveness_without_records(self):
        assert compute_effectiveness([], 4) == 0.0

    def test_effectiveness_weights(self):
        perfect = PlanPerformance(plan_id=1, completion_rate=1.0, average_rpe=7.5)
        assert compute_effectiveness([perfect], 4) == 1.0

        # 0.5 * 0.5 + 0.3 * 0.5 (no RPE) + 0.2 * (1 - 2/4)
        partial = PlanPerformance(plan_id=1, completion_rate=0.5, skipped_count=2)
        assert compute_effectiveness([partial], 4) == pytest.approx(0.5)


class TestCreatePlan:
    """Tests for PlanGenerator.create_plan."""

    async def test_beginner_bodyweight_plan(self, services, beginner_metadata):
        """Three full body days of bodyweight work, four rest days."""
        plan = await services.plans.create_plan("bob", beginner_metadata)

        assert plan.id is not None
        assert plan.active
        assert plan.metadata.template_used == "beginner_general_full_body_3"
        assert len(plan.metadata.structure) == 7
        assert len(plan.metadata.workout_days) == 3
        assert sum(day.is_rest for day in plan.metadata.structure) == 4

        for day in plan.metadata.workout_days:
            assert len(day.exercises) == 3
            for ex in day.exercises:
                assert (ex.sets, ex.reps, ex.rest_seconds) == (3, "10-12", 60)
                assert "bodyweight" in ex.equipment
                assert "barbell" not in ex.equipment
        assert plan.metadata.equipment_utilized == ["bodyweight"]

    async def test_strength_prescription(self, active_plan):
        """Primary goal drives sets, reps and rest; time drives exercise count."""
        assert active_plan.metadata.template_used == "intermediate_strength_upper_lower_4"
        for day in active_plan.metadata.workout_days:
            assert len(day.exercises) == 6
            assert all(ex.sets == 5 and ex.reps == "3-5" and ex.rest_seconds == 180 for ex in day.exercises)

    async def test_compounds_come_first(self, active_plan):
        for day in active_plan.metadata.workout_days:
            tiers = [ex.tier for ex in day.exercises]
            order = {"compound": 0, "accessory": 1, "isolation": 2}
            assert tiers == sorted(tiers, key=order.get)
            assert [ex.order_index for ex in day.exercises] == list(range(len(day.exercises)))

    async def test_limitations_exclude_contraindicated(self, services, repos, sample_metadata):
        sample_metadata["limitations"] = ["knee", "shoulder"]
        plan = await services.plans.create_plan("carol", sample_metadata)

        exercises = {ex.id: ex for ex in await repos.exercises.list_all()}
        for day in plan.metadata.workout_days:
            for ex in day.exercises:
                contraindications = exercises[ex.exercise_id].contraindications
                assert MovementLimitation.KNEE not in contraindications
                assert MovementLimitation.SHOULDER not in contraindications

    async def test_load_targets_from_one_rep_maxes(self, services, sample_metadata):
        sample_metadata["one_rep_maxes"] = {str(i): 100 for i in range(1, 60)}
        plan = await services.plans.create_plan("dave", sample_metadata)

        for day in plan.metadata.workout_days:
            for ex in day.exercises:
                assert ex.load_target == 85.0
                assert ex.baseline_load == 85.0

    async def test_active_plan_round_trip(self, services, active_plan):
        fetched = await services.plans.get_active_plan("alice")
        assert fetched.id == active_plan.id
        assert fetched.metadata.to_dict() == active_plan.metadata.to_dict()
        assert all(day.workout_id is not None for day in fetched.metadata.workout_days)

    async def test_schema_mirrors_metadata(self, repos, active_plan):
        workouts = await repos.workouts.list_for_schema(active_plan.schema_id)
        assert [w.day_of_week for w in workouts] == [d.day_of_week for d in active_plan.metadata.workout_days]

        first = active_plan.metadata.workout_days[0]
        rows = await repos.workout_exercises.list_for_workout(first.workout_id)
        assert [r.exercise_id for r in rows] == [ex.exercise_id for ex in first.exercises]

    async def test_second_plan_conflicts(self, services, active_plan, sample_metadata):
        with pytest.raises(ActivePlanExistsError):
            await services.plans.create_plan("alice", sample_metadata)

    async def test_regeneration_replaces_plan(self, services, repos, active_plan, beginner_metadata):
        await services.plans.mark_for_regeneration(active_plan.id, "new equipment")
        replacement = await services.plans.create_plan("alice", beginner_metadata)

        assert replacement.id != active_plan.id
        assert (await services.plans.get_active_plan("alice")).id == replacement.id
        assert not (await repos.plans.get(active_plan.id)).active

        history = await services.plans.get_history("alice")
        assert {p.id for p in history} == {active_plan.id, replacement.id}

        adaptations = await services.plans.get_adaptation_history("alice")
        assert adaptations[0].reason == AdaptationReason.REGENERATION_REQUEST.value
        assert adaptations[0].changes == {"regeneration_reason": "new equipment"}

    async def test_regeneration_needs_reason(self, services, active_plan):
        with pytest.raises(InvalidInputError):
            await services.plans.mark_for_regeneration(active_plan.id, "  ")

    async def test_empty_user_id(self, services, sample_metadata):
        with pytest.raises(InvalidUserIDError):
            await services.plans.create_plan("", sample_metadata)

    async def test_no_exercises_for_focus(self, services, sample_metadata):
        request = parse_plan_request(sample_metadata)
        with pytest.raises(NoSuitableTemplateError):
            services.plans.generate("erin", request, [])

    async def test_generation_is_deterministic(self, services, repos, sample_metadata):
        request = parse_plan_request(sample_metadata)
        exercises = await repos.exercises.list_all()
        first = services.plans.generate("erin", request, exercises)
        second = services.plans.generate("erin", request, exercises)
        assert first.metadata.to_dict() == second.metadata.to_dict()

    async def test_no_active_plan(self, services):
        with pytest.raises(NotFoundError):
            await services.plans.get_active_plan("nobody")

    async def test_history_limit_bounds(self, services):
        with pytest.raises(InvalidInputError):
            await services.plans.get_history("alice", limit=0)
        with pytest.raises(InvalidInputError):
            await services.plans.get_history("alice", limit=101)


class TestPerformance:
    """Tests for tracking and effectiveness."""

    async def test_effectiveness_starts_at_zero(self, services, active_plan):
        assert await services.plans.get_effectiveness(active_plan.id) == 0.0

    async def test_track_updates_effectiveness(self, services, repos, active_plan):
        await services.plans.track_performance(
            active_plan.id, PlanPerformance(plan_id=0, completion_rate=1.0, average_rpe=7.5)
        )
        assert await services.plans.get_effectiveness(active_plan.id) == 1.0
        assert (await repos.plans.get(active_plan.id)).effectiveness == 1.0

    @pytest.mark.parametrize(
        "record",
        [
            PlanPerformance(plan_id=0, completion_rate=1.2),
            PlanPerformance(plan_id=0, completion_rate=0.8, average_rpe=11),
            PlanPerformance(plan_id=0, completion_rate=0.8, skipped_count=-1),
        ],
    )
    async def test_track_rejects_out_of_range(self, services, active_plan, record):
        with pytest.raises(InvalidInputError):
            await services.plans.track_performance(active_plan.id, record)

    async def test_track_unknown_plan(self, services):
        with pytest.raises(NotFoundError):
            await services.plans.track_performance(999, PlanPerformance(plan_id=0, completion_rate=0.5))


class TestAdaptation:
    """Tests for adaptation after completed sessions."""

    async def test_low_completion_reduces_volume(self, services, repos, active_plan):
        adaptation = await services.plans.on_session_completed("alice", 0.5, 7.0, now=MONDAY)

        assert adaptation.reason == AdaptationReason.LOW_COMPLETION_RATE.value
        plan = await repos.plans.get(active_plan.id)
        assert plan.metadata.parameters.volume_adjustment_pct == -10.0
        day = plan.metadata.workout_days[0]
        assert all(ex.sets == 4 for ex in day.exercises)

        rows = await repos.workout_exercises.list_for_workout(day.workout_id)
        assert all(row.sets == 4 for row in rows)

    async def test_low_completion_beats_high_rpe(self, services, active_plan):
        adaptation = await services.plans.on_session_completed("alice", 0.4, 9.8, now=MONDAY)
        assert adaptation.reason == AdaptationReason.LOW_COMPLETION_RATE.value

    async def test_high_rpe_reduces_volume(self, services, active_plan):
        adaptation = await services.plans.on_session_completed("alice", 1.0, 9.5, now=MONDAY)
        assert adaptation.reason == AdaptationReason.POTENTIAL_OVERTRAINING.value

    async def test_volume_reduction_floor(self, services, repos, active_plan):
        for _ in range(5):
            await services.plans.on_session_completed("alice", 0.3, 7.0, now=MONDAY)

        plan = await repos.plans.get(active_plan.id)
        assert plan.metadata.parameters.volume_adjustment_pct == -30.0
        assert all(ex.sets >= 1 for day in plan.metadata.workout_days for ex in day.exercises)

    async def test_progression_alternates_once_per_week(self, services, repos, active_plan):
        for _ in range(2):
            assert await services.plans.on_session_completed("alice", 1.0, 7.0, now=MONDAY) is None

        first = await services.plans.on_session_completed("alice", 1.0, 7.0, now=MONDAY)
        assert first.reason == AdaptationReason.READY_FOR_PROGRESSION.value
        assert first.changes["progression"] == "sets"

        plan = await repos.plans.get(active_plan.id)
        assert plan.metadata.parameters.set_bonus == 1
        assert all(ex.sets == 6 for ex in plan.metadata.workout_days[0].exercises)

        # Same ISO week: no second progression
        same_week = MONDAY + timedelta(days=3)
        assert await services.plans.on_session_completed("alice", 1.0, 7.0, now=same_week) is None

        next_week = MONDAY + timedelta(days=7)
        second = await services.plans.on_session_completed("alice", 1.0, 7.0, now=next_week)
        assert second.changes["progression"] == "load"

        plan = await repos.plans.get(active_plan.id)
        assert plan.metadata.parameters.load_adjustment_pct == 2.5
        assert plan.metadata.parameters.last_progression_week == "2024-W11"

    async def test_no_plan_no_adaptation(self, services):
        assert await services.plans.on_session_completed("nobody", 0.1, 9.9) is None

    async def test_skip_pattern_reduces_volume(self, services, active_plan):
        adaptation = await services.plans.on_skip_pattern("alice", 3)
        assert adaptation.reason == AdaptationReason.SKIP_PATTERN.value
        assert adaptation.changes["skips_14d"] == 3


class TestSubstitutesAndExport:
    async def test_substitute_same_pattern(self, services):
        substitute = await services.plans.find_exercise_substitute(33, [EquipmentType.DUMBBELL])
        assert substitute.name == "Dumbbell Bench Press"

    async def test_substitute_respects_limitations(self, services):
        substitute = await services.plans.find_exercise_substitute(
            33, [EquipmentType.DUMBBELL], [MovementLimitation.SHOULDER]
        )
        assert substitute is None

    async def test_substitute_unknown_exercise(self, services):
        with pytest.raises(NotFoundError):
            await services.plans.find_exercise_substitute(9999, [EquipmentType.BODYWEIGHT])

    async def test_export_pdf(self, services, active_plan):
        pdf = await services.plans.export_plan_pdf(active_plan.id)
        assert pdf.startswith(b"%PDF")

    async def test_export_failure_is_wrapped(self, services, active_plan):
        class BrokenRenderer:
            def render(self, document):
                raise RuntimeError("no fonts")

        services.plans.renderer = BrokenRenderer()
        with pytest.raises(PlanExportError):
            await services.plans.export_plan_pdf(active_plan.id)

    async def test_delete_template_not_implemented(self, services):
        with pytest.raises(NotImplementedFeatureError):
            await services.plans.delete_template("beginner_general_full_body_3")
