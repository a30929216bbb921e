"""Fitness goals and their progress history."""

import logging
from datetime import date, datetime

from ..db.repositories import Repositories
from ..exceptions import InvalidInputError, InvalidUserIDError, UnauthorizedError
from ..models.goals import GoalProgress, GoalTarget
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)


class GoalService:
    def __init__(self, repos: Repositories):
        self.repos = repos

    async def create_goal(self, goal: GoalTarget, today: date | None = None) -> GoalTarget:
        """Create a goal and seed its progress history with the starting value."""
        if not goal.user_id or not goal.user_id.strip():
            raise InvalidUserIDError()
        if goal.target_value <= 0:
            raise InvalidInputError("target_value must be positive", field="target_value")
        if goal.current_value < 0:
            raise InvalidInputError("current_value must not be negative", field="current_value")
        today = today or utcnow().date()
        if goal.target_date <= today:
            raise InvalidInputError("target_date must be in the future", field="target_date")
        if goal.exercise_id is not None:
            await self.repos.exercises.get(goal.exercise_id)

        now = utcnow()
        goal.created_at = now
        goal.active = True
        goal.completed = False
        async with self.repos.transaction():
            goal.id = await self.repos.goals.create(goal)
            await self.repos.goals.add_progress(
                GoalProgress(goal_id=goal.id, value=goal.current_value, recorded_at=now)
            )
        logger.info("User %s created %s goal %s", goal.user_id, goal.goal_type.value, goal.id)
        return goal

    async def list_goals(self, user_id: str, active_only: bool = False) -> list[GoalTarget]:
        if not user_id or not user_id.strip():
            raise InvalidUserIDError()
        return await self.repos.goals.list_for_user(user_id, active_only)

    async def get_goal(self, goal_id: int, user_id: str) -> GoalTarget:
        goal = await self.repos.goals.get(goal_id)
        if goal.user_id != user_id:
            raise UnauthorizedError("goal belongs to another user")
        return goal

    async def update_progress(
        self, goal_id: int, user_id: str, value: float, now: datetime | None = None
    ) -> GoalTarget:
        """Record a new value. The goal completes once the target is reached."""
        if value < 0:
            raise InvalidInputError("value must not be negative", field="value")
        goal = await self.get_goal(goal_id, user_id)
        if not goal.active:
            raise InvalidInputError("goal is not active", field="goal_id")

        reached = goal.completed or goal.is_reached(value)
        async with self.repos.transaction():
            await self.repos.goals.add_progress(
                GoalProgress(goal_id=goal_id, value=value, recorded_at=now or utcnow())
            )
            await self.repos.goals.update_progress(goal_id, value, reached)

        if reached and not goal.completed:
            logger.info("Goal %s for user %s completed", goal_id, user_id)
        goal.current_value = value
        goal.completed = reached
        return goal

    async def list_progress(self, goal_id: int, user_id: str) -> list[GoalProgress]:
        await self.get_goal(goal_id, user_id)
        return await self.repos.goals.list_progress(goal_id)

    async def deactivate_goal(self, goal_id: int, user_id: str) -> None:
        await self.get_goal(goal_id, user_id)
        await self.repos.goals.deactivate(goal_id)
