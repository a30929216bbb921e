"""Built-in workout template catalog.

Templates are keyed by ``(level, goal, days_per_week)``. Each template lays
out all seven days of the week in a fixed order; rest days carry the
``"Rest"`` focus and no muscle groups.
"""

from dataclasses import dataclass, field

from ..models.exercises import ExerciseType, FitnessLevel, MuscleGroup
from ..models.profile import FitnessGoal

MG = MuscleGroup

REST = "Rest"

# Focus -> (target muscle groups, exercise types drawn from)
FOCUS_DEFINITIONS: dict[str, tuple[list[MuscleGroup], list[ExerciseType]]] = {
    "Full Body": (
        [MG.CHEST, MG.BACK, MG.QUADS, MG.GLUTES, MG.HAMSTRINGS, MG.SHOULDERS, MG.CORE],
        [ExerciseType.STRENGTH],
    ),
    "Upper Body": (
        [MG.CHEST, MG.BACK, MG.SHOULDERS, MG.BICEPS, MG.TRICEPS],
        [ExerciseType.STRENGTH],
    ),
    "Lower Body": (
        [MG.QUADS, MG.HAMSTRINGS, MG.GLUTES, MG.CALVES, MG.CORE],
        [ExerciseType.STRENGTH],
    ),
    "Upper Body Push": (
        [MG.CHEST, MG.SHOULDERS, MG.TRICEPS],
        [ExerciseType.STRENGTH],
    ),
    "Upper Body Pull": (
        [MG.BACK, MG.BICEPS],
        [ExerciseType.STRENGTH],
    ),
    "Legs": (
        [MG.QUADS, MG.HAMSTRINGS, MG.GLUTES, MG.CALVES],
        [ExerciseType.STRENGTH],
    ),
    "Conditioning": (
        [MG.FULL_BODY, MG.CORE, MG.QUADS, MG.GLUTES],
        [ExerciseType.CARDIO, ExerciseType.STRENGTH],
    ),
    "Mobility & Core": (
        [MG.CORE, MG.BACK, MG.GLUTES, MG.HAMSTRINGS, MG.FULL_BODY],
        [ExerciseType.MOBILITY, ExerciseType.STRENGTH],
    ),
    REST: ([], []),
}


@dataclass
class TemplateDay:
    focus: str
    muscle_groups: list[MuscleGroup] = field(default_factory=list)
    exercise_types: list[ExerciseType] = field(default_factory=list)

    @property
    def is_rest(self) -> bool:
        return self.focus == REST

    def to_dict(self) -> dict:
        return {
            "focus": self.focus,
            "muscle_groups": [mg.value for mg in self.muscle_groups],
            "exercise_types": [t.value for t in self.exercise_types],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TemplateDay":
        focus = data["focus"]
        default_groups, default_types = FOCUS_DEFINITIONS.get(focus, ([], [ExerciseType.STRENGTH]))
        return cls(
            focus=focus,
            muscle_groups=[MuscleGroup(mg) for mg in data.get("muscle_groups", [])] or default_groups,
            exercise_types=[ExerciseType(t) for t in data.get("exercise_types", [])] or default_types,
        )


@dataclass
class WorkoutTemplate:
    """A reusable weekly blueprint."""

    name: str
    level: FitnessLevel
    goal: FitnessGoal
    schedule: list[TemplateDay]
    description: str = ""

    @property
    def days_per_week(self) -> int:
        return sum(1 for day in self.schedule if not day.is_rest)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "level": self.level.value,
            "goal": self.goal.value,
            "days_per_week": self.days_per_week,
            "description": self.description,
            "schedule": [day.to_dict() for day in self.schedule],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutTemplate":
        schedule = [TemplateDay.from_dict(d) for d in data["schedule"]]
        if len(schedule) != 7:
            raise ValueError(f"Template {data['name']} must lay out 7 days")
        return cls(
            name=data["name"],
            level=FitnessLevel(data["level"]),
            goal=FitnessGoal(data["goal"]),
            schedule=schedule,
            description=data.get("description", ""),
        )


def _day(focus: str) -> TemplateDay:
    groups, types = FOCUS_DEFINITIONS[focus]
    return TemplateDay(focus=focus, muscle_groups=list(groups), exercise_types=list(types))


def _layout(*focuses: str) -> list[TemplateDay]:
    return [_day(f) for f in focuses]


FB, UB, LB = "Full Body", "Upper Body", "Lower Body"
PUSH, PULL, LEGS = "Upper Body Push", "Upper Body Pull", "Legs"
COND, MOB, R = "Conditioning", "Mobility & Core", REST

LV = FitnessLevel
GL = FitnessGoal


def _template(name: str, level: FitnessLevel, goal: FitnessGoal, *focuses: str, description: str = "") -> WorkoutTemplate:
    return WorkoutTemplate(
        name=name,
        level=level,
        goal=goal,
        schedule=_layout(*focuses),
        description=description,
    )


WORKOUT_TEMPLATES: list[WorkoutTemplate] = [
    # Beginner
    _template("beginner_general_full_body_2", LV.BEGINNER, GL.GENERAL_FITNESS,
              FB, R, R, FB, R, R, R,
              description="Two full body sessions with long recovery"),
    _template("beginner_general_full_body_3", LV.BEGINNER, GL.GENERAL_FITNESS,
              FB, R, FB, R, FB, R, R,
              description="Classic three day full body"),
    _template("beginner_general_mixed_4", LV.BEGINNER, GL.GENERAL_FITNESS,
              UB, LB, R, COND, MOB, R, R),
    _template("beginner_muscle_full_body_3", LV.BEGINNER, GL.MUSCLE_GAIN,
              FB, R, FB, R, FB, R, R),
    _template("beginner_strength_full_body_3", LV.BEGINNER, GL.STRENGTH,
              FB, R, FB, R, FB, R, R),
    _template("beginner_fat_loss_circuit_3", LV.BEGINNER, GL.FAT_LOSS,
              FB, R, COND, R, FB, R, R),
    _template("beginner_endurance_3", LV.BEGINNER, GL.ENDURANCE,
              COND, R, FB, R, COND, R, R),
    # Intermediate
    _template("intermediate_general_full_body_3", LV.INTERMEDIATE, GL.GENERAL_FITNESS,
              FB, R, FB, R, FB, R, R),
    _template("intermediate_general_mixed_4", LV.INTERMEDIATE, GL.GENERAL_FITNESS,
              UB, LB, R, COND, FB, R, R),
    _template("intermediate_muscle_upper_lower_4", LV.INTERMEDIATE, GL.MUSCLE_GAIN,
              UB, LB, R, UB, LB, R, R),
    _template("intermediate_muscle_ppl_ul_5", LV.INTERMEDIATE, GL.MUSCLE_GAIN,
              PUSH, PULL, LEGS, R, UB, LB, R),
    _template("intermediate_strength_upper_lower_4", LV.INTERMEDIATE, GL.STRENGTH,
              UB, LB, R, UB, LB, R, R),
    _template("intermediate_fat_loss_4", LV.INTERMEDIATE, GL.FAT_LOSS,
              FB, COND, R, UB, LB, R, R),
    _template("intermediate_endurance_4", LV.INTERMEDIATE, GL.ENDURANCE,
              COND, FB, R, COND, FB, R, R),
    # Advanced
    _template("advanced_general_mixed_4", LV.ADVANCED, GL.GENERAL_FITNESS,
              UB, LB, R, FB, COND, R, R),
    _template("advanced_muscle_ppl_6", LV.ADVANCED, GL.MUSCLE_GAIN,
              PUSH, PULL, LEGS, PUSH, PULL, LEGS, R),
    _template("advanced_strength_upper_lower_4", LV.ADVANCED, GL.STRENGTH,
              UB, LB, R, UB, LB, R, R),
    _template("advanced_strength_5", LV.ADVANCED, GL.STRENGTH,
              LB, UB, R, LEGS, PUSH, PULL, R),
    _template("advanced_fat_loss_5", LV.ADVANCED, GL.FAT_LOSS,
              UB, LB, COND, R, FB, COND, R),
    _template("advanced_endurance_5", LV.ADVANCED, GL.ENDURANCE,
              COND, FB, R, COND, UB, LB, R),
]


class TemplateCatalog:
    """Template lookup with exact, then goal, then level fallback."""

    def __init__(self, templates: list[WorkoutTemplate] | None = None):
        self.templates = list(templates if templates is not None else WORKOUT_TEMPLATES)

    def find_exact(self, level: FitnessLevel, goal: FitnessGoal, frequency: int) -> WorkoutTemplate | None:
        for template in self.templates:
            if (
                template.level == level
                and template.goal == goal
                and template.days_per_week == frequency
            ):
                return template
        return None

    def select(self, level: FitnessLevel, goal: FitnessGoal, frequency: int) -> WorkoutTemplate | None:
        """Pick the best template, or None when the level has no templates."""
        exact = self.find_exact(level, goal, frequency)
        if exact is not None:
            return exact

        same_goal = [t for t in self.templates if t.level == level and t.goal == goal]
        if same_goal:
            return self._nearest(same_goal, frequency)

        same_level = [t for t in self.templates if t.level == level]
        if same_level:
            return self._nearest(same_level, frequency)

        return None

    def get(self, name: str) -> WorkoutTemplate | None:
        for template in self.templates:
            if template.name == name:
                return template
        return None

    @staticmethod
    def _nearest(templates: list[WorkoutTemplate], frequency: int) -> WorkoutTemplate:
        # Ties go to the lower frequency; list order breaks remaining ties.
        return min(templates, key=lambda t: (abs(t.days_per_week - frequency), t.days_per_week))
