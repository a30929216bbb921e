"""Tests for data models."""

from datetime import date, datetime, timedelta, timezone

import pytest

from fitup.data.catalog import REST, WORKOUT_TEMPLATES, TemplateCatalog, WorkoutTemplate
from fitup.models.coaching import CoachInvitation
from fitup.models.exercises import (
    COMMON_EXERCISES,
    EquipmentType,
    Exercise,
    FitnessLevel,
    MovementLimitation,
    MovementPattern,
    MuscleGroup,
)
from fitup.models.goals import GoalTarget
from fitup.models.plan import AdaptiveParameters, PlanDay, PlanExercise, ProgressionMethod
from fitup.models.profile import FitnessGoal, RecoveryMetrics, RecoveryStatus
from fitup.models.session import (
    ExercisePerformance,
    SessionStatus,
    SessionSummary,
    SetRecord,
    WorkoutSession,
    pick_best_set,
)


class TestExercise:
    """Tests for Exercise model."""

    def test_exercise_round_trip(self):
        """Test exercise serialization keeps enums and contraindications."""
        exercise = Exercise(
            id=99,
            name="Test Press",
            muscle_groups=[MuscleGroup.CHEST, MuscleGroup.TRICEPS],
            equipment=[EquipmentType.BARBELL],
            difficulty=FitnessLevel.INTERMEDIATE,
            movement_pattern=MovementPattern.PUSH_HORIZONTAL,
            contraindications=[MovementLimitation.SHOULDER],
        )
        data = exercise.to_dict()

        assert data["muscle_groups"] == ["chest", "triceps"]
        assert data["contraindications"] == ["shoulder"]
        assert Exercise.from_dict(data) == exercise

    def test_availability_is_any_of_equipment(self):
        """Equipment entries are alternatives."""
        curl = next(ex for ex in COMMON_EXERCISES if ex.name == "Biceps Curl")
        assert curl.is_available_with([EquipmentType.BAND])
        assert not curl.is_available_with([EquipmentType.BARBELL])

    def test_suitability_by_level(self):
        """Exercises at or below the user's level are suitable."""
        pistol = next(ex for ex in COMMON_EXERCISES if ex.name == "Pistol Squat")
        assert pistol.is_suitable_for(FitnessLevel.ADVANCED)
        assert not pistol.is_suitable_for(FitnessLevel.INTERMEDIATE)

    def test_library_ids_are_unique(self):
        """Built-in exercises have unique ids and names."""
        assert len({ex.id for ex in COMMON_EXERCISES}) == len(COMMON_EXERCISES)
        assert len({ex.name for ex in COMMON_EXERCISES}) == len(COMMON_EXERCISES)


class TestTemplateCatalog:
    """Tests for template selection."""

    def test_templates_lay_out_seven_days(self):
        for template in WORKOUT_TEMPLATES:
            assert len(template.schedule) == 7

    def test_exact_match(self):
        catalog = TemplateCatalog()
        template = catalog.select(FitnessLevel.INTERMEDIATE, FitnessGoal.STRENGTH, 4)
        assert template.name == "intermediate_strength_upper_lower_4"

    def test_same_goal_nearest_frequency(self):
        """No 6-day intermediate strength template: nearest frequency wins."""
        catalog = TemplateCatalog()
        template = catalog.select(FitnessLevel.INTERMEDIATE, FitnessGoal.STRENGTH, 6)
        assert template.goal == FitnessGoal.STRENGTH
        assert template.days_per_week == 4

    def test_frequency_tie_prefers_lower(self):
        """Equidistant frequencies resolve to the lower one."""
        catalog = TemplateCatalog([
            t for t in WORKOUT_TEMPLATES
            if t.name in ("beginner_general_full_body_2", "beginner_general_mixed_4")
        ])
        template = catalog.select(FitnessLevel.BEGINNER, FitnessGoal.GENERAL_FITNESS, 3)
        assert template.name == "beginner_general_full_body_2"

    def test_level_without_templates(self):
        catalog = TemplateCatalog([t for t in WORKOUT_TEMPLATES if t.level != FitnessLevel.ADVANCED])
        assert catalog.select(FitnessLevel.ADVANCED, FitnessGoal.STRENGTH, 4) is None

    def test_template_from_dict_requires_seven_days(self):
        with pytest.raises(ValueError):
            WorkoutTemplate.from_dict({
                "name": "short",
                "level": "beginner",
                "goal": "strength",
                "schedule": [{"focus": "Full Body"}, {"focus": REST}],
            })


class TestPlanModels:
    """Tests for plan metadata models."""

    def test_rest_day(self):
        day = PlanDay(day_of_week=3, focus=REST)
        assert day.is_rest
        assert day.to_dict()["is_rest"] is True

    def test_plan_exercise_baseline_defaults_to_sets(self):
        ex = PlanExercise.from_dict({
            "exercise_id": 1, "name": "Push-Up", "sets": 3, "reps": "8-12",
            "rest_seconds": 60, "order_index": 0,
        })
        assert ex.baseline_sets == 3

    def test_parameters_round_trip(self):
        params = AdaptiveParameters(
            level=FitnessLevel.BEGINNER,
            goals=[FitnessGoal.FAT_LOSS],
            frequency=3,
            time_per_workout=45,
            equipment=[EquipmentType.BODYWEIGHT],
            volume_adjustment_pct=-10.0,
            next_progression=ProgressionMethod.LOAD,
            last_progression_week="2024-W07",
        )
        assert AdaptiveParameters.from_dict(params.to_dict()) == params


class TestSessionModels:
    """Tests for session models."""

    def test_best_set_is_heaviest_then_most_reps(self):
        sets = [SetRecord(reps=10, weight=60), SetRecord(reps=5, weight=80), SetRecord(reps=6, weight=80)]
        assert pick_best_set(sets) == SetRecord(reps=6, weight=80)
        assert pick_best_set([]) is None

    def test_performance_aggregates(self):
        perf = ExercisePerformance(
            session_id=1,
            exercise_id=32,
            sets=[SetRecord(reps=5, weight=100, rpe=8), SetRecord(reps=5, weight=100)],
        )
        assert perf.total_volume == 1000
        assert perf.average_rpe == 8
        assert perf.sets_completed == 2

    def test_stale_after_24_hours(self):
        start = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)
        session = WorkoutSession(user_id="u", workout_id=1, start_time=start)
        assert not session.is_stale(start + timedelta(hours=24))
        assert session.is_stale(start + timedelta(hours=24, seconds=1))

        session.status = SessionStatus.COMPLETED
        assert not session.is_stale(start + timedelta(days=3))

    def test_summary_round_trip(self):
        summary = SessionSummary(
            total_duration_seconds=3600,
            exercises_completed=1,
            exercises_planned=2,
            total_volume=500.0,
            completion_rate=0.5,
            exercises=[ExercisePerformance(session_id=1, exercise_id=2, sets=[SetRecord(reps=5, weight=100)])],
        )
        restored = SessionSummary.from_dict(summary.to_dict())
        assert restored.exercises[0].sets[0].weight == 100
        assert restored.completion_rate == 0.5


class TestRecoveryAndGoals:
    """Tests for recovery metrics and goal models."""

    def test_recovery_status_bands(self):
        rested = RecoveryMetrics("u", 8, sleep_quality=9, stress_level=2, soreness_level=2, energy_level=9)
        wrecked = RecoveryMetrics("u", 4, sleep_quality=2, stress_level=9, soreness_level=9, energy_level=2)
        assert rested.status == RecoveryStatus.WELL_RECOVERED
        assert wrecked.status == RecoveryStatus.UNDER_RECOVERED

    def test_decreasing_goal(self):
        goal = GoalTarget(
            user_id="u",
            goal_type=FitnessGoal.FAT_LOSS,
            current_value=90,
            target_value=80,
            target_date=date(2030, 1, 1),
        )
        assert goal.is_decreasing
        assert goal.is_reached(79.5)
        assert not goal.is_reached(85)

    def test_invitation_expiry(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        invitation = CoachInvitation(
            id="i", coach_id="c", email="a@b.co", token="t", expires_at=now + timedelta(days=7)
        )
        assert not invitation.is_expired(now)
        assert invitation.is_expired(now + timedelta(days=7))
        assert "token" not in invitation.to_dict()
        assert invitation.to_dict(include_token=True)["token"] == "t"
