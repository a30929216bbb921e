"""Tests for the workout session tracker."""

import asyncio
import gc
from datetime import timedelta

import pytest

from fitup.exceptions import (
    ActiveSessionExistsError,
    InvalidInputError,
    InvalidUserIDError,
    NotFoundError,
    SessionNotActiveError,
    UnauthorizedError,
)
from fitup.models.plan import AdaptationReason
from fitup.models.profile import RecoveryMetrics, RecoveryStatus
from fitup.models.session import SessionStatus, SetRecord
from fitup.services.sessions import rate_completion, validate_sets
from fitup.utils.dates import utcnow


class TestValidation:
    def test_rating_bands(self):
        assert rate_completion(0.95) == "excellent"
        assert rate_completion(0.9) == "excellent"
        assert rate_completion(0.7) == "good"
        assert rate_completion(0.69) == "poor"

    @pytest.mark.parametrize(
        "sets",
        [
            [],
            [SetRecord(reps=5, weight=100)] * 21,
            [SetRecord(reps=0, weight=100)],
            [SetRecord(reps=101, weight=100)],
            [SetRecord(reps=5, weight=-1)],
            [SetRecord(reps=5, weight=100, rpe=11)],
        ],
    )
    def test_invalid_sets(self, sets):
        with pytest.raises(InvalidInputError):
            validate_sets(sets)

    def test_limits_are_inclusive(self):
        validate_sets([SetRecord(reps=100, weight=0, rpe=10)] * 20)


class TestSessionLifecycle:
    """Tests for starting sessions."""

    async def test_start_session(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)

        assert session.id is not None
        assert session.status == SessionStatus.ACTIVE
        active = await services.sessions.get_active_session("alice")
        assert active.id == session.id

    async def test_one_active_session(self, services, first_workout):
        await services.sessions.start_session("alice", first_workout.workout_id)
        with pytest.raises(ActiveSessionExistsError):
            await services.sessions.start_session("alice", first_workout.workout_id)

    async def test_stale_session_is_replaced(self, services, repos, first_workout):
        old = await services.sessions.start_session(
            "alice", first_workout.workout_id, now=utcnow() - timedelta(hours=25)
        )
        new = await services.sessions.start_session("alice", first_workout.workout_id)

        assert new.id != old.id
        assert (await repos.sessions.get(old.id)).status == SessionStatus.STALE

    async def test_stale_session_promoted_on_read(self, services, repos, first_workout):
        old = await services.sessions.start_session(
            "alice", first_workout.workout_id, now=utcnow() - timedelta(hours=25)
        )
        assert await services.sessions.get_active_session("alice") is None
        assert (await repos.sessions.get(old.id)).status == SessionStatus.STALE

    async def test_workout_of_another_user(self, services, first_workout):
        with pytest.raises(UnauthorizedError):
            await services.sessions.start_session("mallory", first_workout.workout_id)

    async def test_unknown_workout(self, services, active_plan):
        with pytest.raises(NotFoundError):
            await services.sessions.start_session("alice", 9999)

    async def test_invalid_ids(self, services, first_workout):
        with pytest.raises(InvalidUserIDError):
            await services.sessions.start_session(" ", first_workout.workout_id)
        with pytest.raises(InvalidInputError):
            await services.sessions.start_session("alice", 0)

    async def test_concurrent_starts_open_one_session(self, services, repos, first_workout):
        results = await asyncio.gather(
            *(services.sessions.start_session("alice", first_workout.workout_id) for _ in range(3)),
            return_exceptions=True,
        )

        started = [r for r in results if not isinstance(r, Exception)]
        assert len(started) == 1
        assert all(isinstance(r, ActiveSessionExistsError) for r in results if r not in started)
        assert (await services.sessions.get_active_session("alice")).id == started[0].id


class TestLogging:
    """Tests for logging exercise performance."""

    async def test_sets_accumulate(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        exercise_id = first_workout.exercises[0].exercise_id

        await services.sessions.log_exercise_performance(
            session.id, exercise_id, [SetRecord(reps=5, weight=100, rpe=7)], "alice"
        )
        result = await services.sessions.log_exercise_performance(
            session.id, exercise_id, [SetRecord(reps=5, weight=100, rpe=8)], "alice"
        )

        assert result.performance.sets_completed == 2
        assert result.form_warnings == []

    async def test_combined_set_limit(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        exercise_id = first_workout.exercises[0].exercise_id

        await services.sessions.log_exercise_performance(
            session.id, exercise_id, [SetRecord(reps=5, weight=100)] * 15, "alice"
        )
        with pytest.raises(InvalidInputError):
            await services.sessions.log_exercise_performance(
                session.id, exercise_id, [SetRecord(reps=5, weight=100)] * 6, "alice"
            )

    async def test_high_rpe_form_warning(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        result = await services.sessions.log_exercise_performance(
            session.id,
            first_workout.exercises[0].exercise_id,
            [SetRecord(reps=3, weight=140, rpe=9.5), SetRecord(reps=3, weight=140, rpe=9)],
            "alice",
        )
        assert len(result.form_warnings) == 1
        assert "RPE 9.5" in result.form_warnings[0]

    async def test_other_users_session(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        with pytest.raises(UnauthorizedError):
            await services.sessions.log_exercise_performance(
                session.id, first_workout.exercises[0].exercise_id, [SetRecord(reps=5, weight=50)], "mallory"
            )

    async def test_stale_session_rejects_logging(self, services, first_workout):
        session = await services.sessions.start_session(
            "alice", first_workout.workout_id, now=utcnow() - timedelta(hours=25)
        )
        with pytest.raises(SessionNotActiveError):
            await services.sessions.log_exercise_performance(
                session.id, first_workout.exercises[0].exercise_id, [SetRecord(reps=5, weight=50)], "alice"
            )

    async def test_concurrent_logs_are_serialized(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        exercise_id = first_workout.exercises[0].exercise_id

        await asyncio.gather(
            *(
                services.sessions.log_exercise_performance(
                    session.id, exercise_id, [SetRecord(reps=5, weight=100 + i)], "alice"
                )
                for i in range(4)
            )
        )

        result = await services.sessions.log_exercise_performance(
            session.id, exercise_id, [SetRecord(reps=5, weight=90)], "alice"
        )
        assert result.performance.sets_completed == 5
        assert sorted(s.weight for s in result.performance.sets) == [90, 100, 101, 102, 103]

    async def test_lock_registry_does_not_grow(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        await services.sessions.log_exercise_performance(
            session.id, first_workout.exercises[0].exercise_id, [SetRecord(reps=5, weight=50)], "alice"
        )
        await services.sessions.skip_session(session.id, "alice")

        gc.collect()
        assert session.id not in services.sessions._session_locks


class TestCompletion:
    """Tests for completing sessions."""

    async def test_complete_writes_progress_and_one_rep_max(self, services, repos, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        exercise_id = first_workout.exercises[0].exercise_id
        await services.sessions.log_exercise_performance(
            session.id,
            exercise_id,
            [SetRecord(reps=5, weight=100, rpe=8), SetRecord(reps=3, weight=110, rpe=9)],
            "alice",
        )

        result = await services.sessions.complete_session(session.id, "alice", notes="felt heavy")

        assert result.session.status == SessionStatus.COMPLETED
        summary = result.session.summary
        assert summary.exercises_completed == 1
        assert summary.exercises_planned == len(first_workout.exercises)
        assert summary.completion_rate == round(1 / len(first_workout.exercises), 4)
        assert summary.total_volume == 830
        assert summary.average_rpe == 8.5
        assert summary.notes == "felt heavy"
        assert result.rating == "poor"

        logs = await repos.progress.list_for_exercise("alice", exercise_id)
        assert len(logs) == 1
        assert (logs[0].weight_used, logs[0].reps_completed, logs[0].sets_completed) == (110, 3, 2)

        assert len(result.one_rep_max_updates) == 1
        latest = await repos.one_rep_max.find_latest("alice", exercise_id)
        assert latest.estimated_max == result.one_rep_max_updates[0].estimated_max

        # One low-completion session is enough to reduce volume
        assert result.adaptation.reason == AdaptationReason.LOW_COMPLETION_RATE.value
        assert await services.sessions.get_active_session("alice") is None

    async def test_complete_twice(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        await services.sessions.complete_session(session.id, "alice")
        with pytest.raises(SessionNotActiveError):
            await services.sessions.complete_session(session.id, "alice")

    async def test_empty_session_completes_at_zero(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        result = await services.sessions.complete_session(session.id, "alice")
        assert result.session.summary.completion_rate == 0.0
        assert result.one_rep_max_updates == []

    async def test_bodyweight_sets_skip_estimates(self, services, repos, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        exercise_id = first_workout.exercises[0].exercise_id
        await services.sessions.log_exercise_performance(
            session.id, exercise_id, [SetRecord(reps=12, weight=0)], "alice"
        )
        result = await services.sessions.complete_session(session.id, "alice")

        assert result.one_rep_max_updates == []
        assert len(await repos.progress.list_for_exercise("alice", exercise_id)) == 1

    async def test_complete_stale_session_persists_promotion(self, services, repos, first_workout):
        started = utcnow() - timedelta(hours=1)
        session = await services.sessions.start_session("alice", first_workout.workout_id, now=started)

        with pytest.raises(SessionNotActiveError):
            await services.sessions.complete_session(
                session.id, "alice", now=started + timedelta(hours=25)
            )

        assert (await repos.sessions.get(session.id)).status == SessionStatus.STALE


class TestSkips:
    """Tests for skipped workouts."""

    async def test_skip_default_reason(self, services, first_workout):
        result = await services.sessions.skip_workout("alice", first_workout.workout_id, reason="  ")
        assert result.skip.reason == "No reason provided"
        assert result.skips_last_14_days == 1
        assert result.adaptation is None

    async def test_skip_closes_active_session(self, services, repos, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        await services.sessions.skip_session(session.id, "alice", "sick")
        assert (await repos.sessions.get(session.id)).status == SessionStatus.SKIPPED

    async def test_three_skips_reduce_volume(self, services, repos, active_plan, first_workout):
        for _ in range(2):
            await services.sessions.skip_workout("alice", first_workout.workout_id, "busy")
        result = await services.sessions.skip_workout("alice", first_workout.workout_id, "busy")

        assert result.skips_last_14_days == 3
        assert result.adaptation.reason == AdaptationReason.SKIP_PATTERN.value
        plan = await repos.plans.get(active_plan.id)
        assert plan.metadata.parameters.volume_adjustment_pct == -10.0

    async def test_skip_someone_elses_workout(self, services, first_workout):
        with pytest.raises(UnauthorizedError):
            await services.sessions.skip_workout("mallory", first_workout.workout_id)


class TestReads:
    """Tests for history, metrics and weekly stats."""

    async def test_history_newest_first(self, services, first_workout):
        first = await services.sessions.start_session("alice", first_workout.workout_id)
        await services.sessions.complete_session(first.id, "alice")
        second = await services.sessions.start_session("alice", first_workout.workout_id)

        history = await services.sessions.get_session_history("alice")
        assert [s.id for s in history] == [second.id, first.id]

        with pytest.raises(InvalidInputError):
            await services.sessions.get_session_history("alice", limit=0)

    async def test_metrics_count_skips_against_completion(self, services, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        await services.sessions.log_exercise_performance(
            session.id, first_workout.exercises[0].exercise_id, [SetRecord(reps=5, weight=100, rpe=7)], "alice"
        )
        await services.sessions.complete_session(session.id, "alice")
        await services.sessions.skip_workout("alice", first_workout.workout_id)

        metrics = await services.sessions.get_session_metrics("alice", days=7)
        assert metrics.completed_sessions == 1
        assert metrics.skipped_workouts == 1
        assert metrics.completion_rate == 0.5
        assert metrics.total_volume == 500
        assert metrics.average_rpe == 7

    async def test_metrics_days_bounds(self, services):
        with pytest.raises(InvalidInputError):
            await services.sessions.get_session_metrics("alice", days=0)
        with pytest.raises(InvalidInputError):
            await services.sessions.get_session_metrics("alice", days=366)

    async def test_weekly_adherence(self, services, active_plan, first_workout):
        session = await services.sessions.start_session("alice", first_workout.workout_id)
        await services.sessions.complete_session(session.id, "alice")

        stats = await services.sessions.get_weekly_session_stats("alice", utcnow().date())
        assert stats.planned_workouts == 4
        assert stats.completed_workouts == 1
        assert stats.adherence_rate == 0.25

    async def test_weekly_stats_without_plan(self, services):
        stats = await services.sessions.get_weekly_session_stats("nobody", utcnow().date())
        assert stats.planned_workouts == 0
        assert stats.adherence_rate == 0.0


class TestRecovery:
    async def test_record_and_read_latest(self, services):
        await services.sessions.record_recovery_metrics(
            "alice", RecoveryMetrics("ignored", 5, sleep_quality=3, stress_level=8, soreness_level=8, energy_level=3)
        )
        latest = await services.sessions.record_recovery_metrics(
            "alice", RecoveryMetrics("ignored", 8, sleep_quality=9, stress_level=2, soreness_level=2, energy_level=9)
        )

        status = await services.sessions.get_recovery_status("alice")
        assert status.id == latest.id
        assert status.user_id == "alice"
        assert status.status == RecoveryStatus.WELL_RECOVERED

    async def test_out_of_range(self, services):
        with pytest.raises(InvalidInputError):
            await services.sessions.record_recovery_metrics(
                "alice", RecoveryMetrics("alice", 25, sleep_quality=5, stress_level=5, soreness_level=5, energy_level=5)
            )
        with pytest.raises(InvalidInputError):
            await services.sessions.record_recovery_metrics(
                "alice", RecoveryMetrics("alice", 7, sleep_quality=0, stress_level=5, soreness_level=5, energy_level=5)
            )

    async def test_no_metrics(self, services):
        assert await services.sessions.get_recovery_status("alice") is None
