"""Workout profile management."""

from ..db.repositories import Repositories
from ..exceptions import InvalidInputError, InvalidUserIDError
from ..models.profile import WorkoutProfile


class ProfileService:
    def __init__(self, repos: Repositories):
        self.repos = repos

    async def upsert_profile(self, profile: WorkoutProfile) -> WorkoutProfile:
        """Create or replace the caller's profile."""
        if not profile.user_id or not profile.user_id.strip():
            raise InvalidUserIDError()
        if not 1 <= profile.frequency <= 7:
            raise InvalidInputError("frequency must be between 1 and 7", field="frequency")
        if not profile.equipment:
            raise InvalidInputError("equipment must not be empty", field="equipment")
        if not 10 <= profile.time_per_workout <= 180:
            raise InvalidInputError(
                "time_per_workout must be between 10 and 180", field="time_per_workout"
            )
        await self.repos.profiles.upsert(profile)
        return await self.repos.profiles.get_by_user(profile.user_id)

    async def get_profile(self, user_id: str) -> WorkoutProfile:
        if not user_id or not user_id.strip():
            raise InvalidUserIDError()
        return await self.repos.profiles.get_by_user(user_id)
