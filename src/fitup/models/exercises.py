"""Exercise definitions and metadata."""

from dataclasses import dataclass, field
from enum import Enum


class FitnessLevel(str, Enum):
    """Training experience level, also used as exercise difficulty."""

    BEGINNER = "beginner"  # < 1 year consistent training
    INTERMEDIATE = "intermediate"  # 1-3 years
    ADVANCED = "advanced"  # 3+ years

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {
    FitnessLevel.BEGINNER: 0,
    FitnessLevel.INTERMEDIATE: 1,
    FitnessLevel.ADVANCED: 2,
}


class MuscleGroup(str, Enum):
    """Muscle groups targeted by exercises and workout focuses."""

    CHEST = "chest"
    BACK = "back"
    SHOULDERS = "shoulders"
    BICEPS = "biceps"
    TRICEPS = "triceps"
    QUADS = "quads"
    HAMSTRINGS = "hamstrings"
    GLUTES = "glutes"
    CALVES = "calves"
    CORE = "core"
    FULL_BODY = "full_body"


class EquipmentType(str, Enum):
    """Equipment a user may have available."""

    BODYWEIGHT = "bodyweight"
    DUMBBELL = "dumbbell"
    BARBELL = "barbell"
    MACHINE = "machine"
    CABLE = "cable"
    KETTLEBELL = "kettlebell"
    BAND = "band"


class ExerciseType(str, Enum):
    """Kind of training stimulus."""

    STRENGTH = "strength"
    CARDIO = "cardio"
    MOBILITY = "mobility"


class MovementPattern(str, Enum):
    """Fundamental movement patterns."""

    PUSH_HORIZONTAL = "push_horizontal"
    PUSH_VERTICAL = "push_vertical"
    PULL_HORIZONTAL = "pull_horizontal"
    PULL_VERTICAL = "pull_vertical"
    SQUAT = "squat"
    HINGE = "hinge"
    LUNGE = "lunge"
    CARRY = "carry"
    CORE = "core"
    CONDITIONING = "conditioning"
    MOBILITY = "mobility"
    ISOLATION = "isolation"


class ExerciseTier(str, Enum):
    """Selection priority inside a workout: compounds first, isolation last."""

    COMPOUND = "compound"
    ACCESSORY = "accessory"
    ISOLATION = "isolation"


class MovementLimitation(str, Enum):
    """Joint or movement restrictions that exclude exercises."""

    KNEE = "knee"
    LOWER_BACK = "lower_back"
    SHOULDER = "shoulder"
    WRIST = "wrist"
    HIP = "hip"
    HIGH_IMPACT = "high_impact"


@dataclass
class Exercise:
    """Represents an exercise with metadata.

    ``equipment`` lists alternatives: the exercise is available when any of
    them is available.
    """

    name: str
    muscle_groups: list[MuscleGroup]
    equipment: list[EquipmentType]
    difficulty: FitnessLevel = FitnessLevel.BEGINNER
    exercise_type: ExerciseType = ExerciseType.STRENGTH
    movement_pattern: MovementPattern = MovementPattern.ISOLATION
    tier: ExerciseTier = ExerciseTier.ISOLATION
    default_sets: int = 3
    default_reps: str = "10"
    rest_seconds: int = 60
    contraindications: list[MovementLimitation] = field(default_factory=list)
    id: int | None = None

    def is_available_with(self, equipment: set[EquipmentType] | list[EquipmentType]) -> bool:
        return any(eq in equipment for eq in self.equipment)

    def is_suitable_for(self, level: FitnessLevel) -> bool:
        return self.difficulty.rank <= level.rank

    def is_contraindicated(self, limitations: list[MovementLimitation]) -> bool:
        return any(lim in self.contraindications for lim in limitations)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "muscle_groups": [mg.value for mg in self.muscle_groups],
            "equipment": [eq.value for eq in self.equipment],
            "difficulty": self.difficulty.value,
            "exercise_type": self.exercise_type.value,
            "movement_pattern": self.movement_pattern.value,
            "tier": self.tier.value,
            "default_sets": self.default_sets,
            "default_reps": self.default_reps,
            "rest_seconds": self.rest_seconds,
            "contraindications": [c.value for c in self.contraindications],
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "Exercise":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            name=data["name"],
            muscle_groups=[MuscleGroup(mg) for mg in data["muscle_groups"]],
            equipment=[EquipmentType(eq) for eq in data["equipment"]],
            difficulty=FitnessLevel(data.get("difficulty", "beginner")),
            exercise_type=ExerciseType(data.get("exercise_type", "strength")),
            movement_pattern=MovementPattern(data.get("movement_pattern", "isolation")),
            tier=ExerciseTier(data.get("tier", "isolation")),
            default_sets=data.get("default_sets", 3),
            default_reps=str(data.get("default_reps", "10")),
            rest_seconds=data.get("rest_seconds", 60),
            contraindications=[
                MovementLimitation(c) for c in data.get("contraindications", [])
            ],
        )


def _ex(
    id: int,
    name: str,
    muscle_groups: list[MuscleGroup],
    equipment: list[EquipmentType],
    difficulty: FitnessLevel,
    pattern: MovementPattern,
    tier: ExerciseTier,
    exercise_type: ExerciseType = ExerciseType.STRENGTH,
    sets: int = 3,
    reps: str = "10",
    rest: int = 60,
    contraindications: list[MovementLimitation] | None = None,
) -> Exercise:
    return Exercise(
        id=id,
        name=name,
        muscle_groups=muscle_groups,
        equipment=equipment,
        difficulty=difficulty,
        exercise_type=exercise_type,
        movement_pattern=pattern,
        tier=tier,
        default_sets=sets,
        default_reps=reps,
        rest_seconds=rest,
        contraindications=contraindications or [],
    )


MG = MuscleGroup
EQ = EquipmentType
LV = FitnessLevel
MP = MovementPattern
TR = ExerciseTier
ML = MovementLimitation

# Built-in exercise library, seeded into the exercises table on init.
COMMON_EXERCISES: list[Exercise] = [
    # Bodyweight
    _ex(1, "Push-Up", [MG.CHEST, MG.TRICEPS, MG.SHOULDERS], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.PUSH_HORIZONTAL, TR.COMPOUND, reps="8-12",
        contraindications=[ML.WRIST, ML.SHOULDER]),
    _ex(2, "Bodyweight Squat", [MG.QUADS, MG.GLUTES], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.SQUAT, TR.COMPOUND, reps="12-15",
        contraindications=[ML.KNEE]),
    _ex(3, "Glute Bridge", [MG.GLUTES, MG.HAMSTRINGS], [EQ.BODYWEIGHT, EQ.BAND],
        LV.BEGINNER, MP.HINGE, TR.ACCESSORY, reps="12-15"),
    _ex(4, "Reverse Lunge", [MG.QUADS, MG.GLUTES], [EQ.BODYWEIGHT, EQ.DUMBBELL],
        LV.BEGINNER, MP.LUNGE, TR.ACCESSORY, reps="10-12",
        contraindications=[ML.KNEE]),
    _ex(5, "Plank", [MG.CORE], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.CORE, TR.ISOLATION, reps="30 sec", rest=45),
    _ex(6, "Inverted Row", [MG.BACK, MG.BICEPS], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.PULL_HORIZONTAL, TR.COMPOUND, reps="8-12"),
    _ex(7, "Pike Push-Up", [MG.SHOULDERS, MG.TRICEPS], [EQ.BODYWEIGHT],
        LV.INTERMEDIATE, MP.PUSH_VERTICAL, TR.ACCESSORY, reps="6-10",
        contraindications=[ML.SHOULDER, ML.WRIST]),
    _ex(8, "Dead Bug", [MG.CORE], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.CORE, TR.ISOLATION, reps="10-12", rest=45),
    _ex(9, "Calf Raise", [MG.CALVES], [EQ.BODYWEIGHT, EQ.DUMBBELL],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="15-20", rest=45),
    _ex(10, "Bench Dip", [MG.TRICEPS, MG.CHEST], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.PUSH_VERTICAL, TR.ISOLATION, reps="8-12",
        contraindications=[ML.SHOULDER, ML.WRIST]),
    _ex(11, "Superman Hold", [MG.BACK, MG.GLUTES], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.CORE, TR.ISOLATION, reps="20 sec", rest=45),
    _ex(12, "Pull-Up", [MG.BACK, MG.BICEPS], [EQ.BODYWEIGHT],
        LV.INTERMEDIATE, MP.PULL_VERTICAL, TR.COMPOUND, reps="5-8", rest=120,
        contraindications=[ML.SHOULDER]),
    _ex(13, "Pistol Squat", [MG.QUADS, MG.GLUTES], [EQ.BODYWEIGHT],
        LV.ADVANCED, MP.SQUAT, TR.COMPOUND, reps="5-8", rest=120,
        contraindications=[ML.KNEE, ML.HIP]),
    _ex(14, "Burpee", [MG.FULL_BODY, MG.CHEST, MG.QUADS], [EQ.BODYWEIGHT],
        LV.INTERMEDIATE, MP.CONDITIONING, TR.COMPOUND, ExerciseType.CARDIO,
        reps="30 sec", rest=30,
        contraindications=[ML.KNEE, ML.WRIST, ML.HIGH_IMPACT]),
    _ex(15, "Mountain Climber", [MG.CORE, MG.FULL_BODY], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.CONDITIONING, TR.ACCESSORY, ExerciseType.CARDIO,
        reps="30 sec", rest=30, contraindications=[ML.WRIST]),
    _ex(16, "Jumping Jack", [MG.FULL_BODY, MG.CALVES], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.CONDITIONING, TR.ISOLATION, ExerciseType.CARDIO,
        reps="45 sec", rest=30, contraindications=[ML.KNEE, ML.HIGH_IMPACT]),
    _ex(17, "Bird Dog", [MG.CORE, MG.BACK], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.MOBILITY, TR.ISOLATION, ExerciseType.MOBILITY,
        reps="8-10", rest=30),
    _ex(18, "Hip Flexor Stretch", [MG.GLUTES, MG.QUADS], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.MOBILITY, TR.ISOLATION, ExerciseType.MOBILITY,
        reps="30 sec", rest=15),
    _ex(19, "World's Greatest Stretch", [MG.FULL_BODY, MG.HAMSTRINGS], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.MOBILITY, TR.ACCESSORY, ExerciseType.MOBILITY,
        reps="5 per side", rest=15),
    # Dumbbell
    _ex(20, "Goblet Squat", [MG.QUADS, MG.GLUTES, MG.CORE], [EQ.DUMBBELL, EQ.KETTLEBELL],
        LV.BEGINNER, MP.SQUAT, TR.COMPOUND, reps="8-12", rest=90,
        contraindications=[ML.KNEE]),
    _ex(21, "Dumbbell Bench Press", [MG.CHEST, MG.TRICEPS, MG.SHOULDERS], [EQ.DUMBBELL],
        LV.BEGINNER, MP.PUSH_HORIZONTAL, TR.COMPOUND, reps="8-12", rest=90,
        contraindications=[ML.SHOULDER]),
    _ex(22, "One-Arm Dumbbell Row", [MG.BACK, MG.BICEPS], [EQ.DUMBBELL, EQ.KETTLEBELL],
        LV.BEGINNER, MP.PULL_HORIZONTAL, TR.COMPOUND, reps="8-12", rest=90),
    _ex(23, "Dumbbell Shoulder Press", [MG.SHOULDERS, MG.TRICEPS], [EQ.DUMBBELL],
        LV.BEGINNER, MP.PUSH_VERTICAL, TR.COMPOUND, reps="8-12", rest=90,
        contraindications=[ML.SHOULDER]),
    _ex(24, "Dumbbell Romanian Deadlift", [MG.HAMSTRINGS, MG.GLUTES], [EQ.DUMBBELL],
        LV.BEGINNER, MP.HINGE, TR.COMPOUND, reps="8-12", rest=90,
        contraindications=[ML.LOWER_BACK]),
    _ex(25, "Dumbbell Walking Lunge", [MG.QUADS, MG.GLUTES], [EQ.DUMBBELL],
        LV.INTERMEDIATE, MP.LUNGE, TR.ACCESSORY, reps="10-12",
        contraindications=[ML.KNEE]),
    _ex(26, "Biceps Curl", [MG.BICEPS], [EQ.DUMBBELL, EQ.CABLE, EQ.BAND],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="10-15"),
    _ex(27, "Overhead Triceps Extension", [MG.TRICEPS], [EQ.DUMBBELL, EQ.CABLE],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="10-15"),
    _ex(28, "Lateral Raise", [MG.SHOULDERS], [EQ.DUMBBELL, EQ.CABLE, EQ.BAND],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="12-15",
        contraindications=[ML.SHOULDER]),
    _ex(29, "Incline Dumbbell Press", [MG.CHEST, MG.SHOULDERS, MG.TRICEPS], [EQ.DUMBBELL],
        LV.INTERMEDIATE, MP.PUSH_HORIZONTAL, TR.ACCESSORY, reps="8-12", rest=90,
        contraindications=[ML.SHOULDER]),
    _ex(30, "Bulgarian Split Squat", [MG.QUADS, MG.GLUTES], [EQ.DUMBBELL, EQ.BODYWEIGHT],
        LV.INTERMEDIATE, MP.LUNGE, TR.ACCESSORY, reps="8-10", rest=90,
        contraindications=[ML.KNEE, ML.HIP]),
    _ex(31, "Farmer Carry", [MG.CORE, MG.BACK], [EQ.DUMBBELL, EQ.KETTLEBELL],
        LV.BEGINNER, MP.CARRY, TR.ACCESSORY, reps="40 m", rest=60),
    # Barbell
    _ex(32, "Back Squat", [MG.QUADS, MG.GLUTES, MG.HAMSTRINGS], [EQ.BARBELL],
        LV.INTERMEDIATE, MP.SQUAT, TR.COMPOUND, sets=4, reps="5-8", rest=180,
        contraindications=[ML.KNEE, ML.LOWER_BACK]),
    _ex(33, "Barbell Bench Press", [MG.CHEST, MG.TRICEPS, MG.SHOULDERS], [EQ.BARBELL],
        LV.INTERMEDIATE, MP.PUSH_HORIZONTAL, TR.COMPOUND, sets=4, reps="5-8", rest=180,
        contraindications=[ML.SHOULDER]),
    _ex(34, "Deadlift", [MG.HAMSTRINGS, MG.GLUTES, MG.BACK], [EQ.BARBELL],
        LV.INTERMEDIATE, MP.HINGE, TR.COMPOUND, sets=3, reps="3-5", rest=180,
        contraindications=[ML.LOWER_BACK]),
    _ex(35, "Overhead Press", [MG.SHOULDERS, MG.TRICEPS], [EQ.BARBELL],
        LV.INTERMEDIATE, MP.PUSH_VERTICAL, TR.COMPOUND, sets=4, reps="5-8", rest=150,
        contraindications=[ML.SHOULDER, ML.LOWER_BACK]),
    _ex(36, "Barbell Row", [MG.BACK, MG.BICEPS], [EQ.BARBELL],
        LV.INTERMEDIATE, MP.PULL_HORIZONTAL, TR.COMPOUND, sets=4, reps="6-10", rest=120,
        contraindications=[ML.LOWER_BACK]),
    _ex(37, "Front Squat", [MG.QUADS, MG.CORE], [EQ.BARBELL],
        LV.ADVANCED, MP.SQUAT, TR.COMPOUND, sets=4, reps="4-6", rest=180,
        contraindications=[ML.KNEE, ML.WRIST]),
    _ex(38, "Barbell Hip Thrust", [MG.GLUTES, MG.HAMSTRINGS], [EQ.BARBELL],
        LV.INTERMEDIATE, MP.HINGE, TR.ACCESSORY, reps="8-12", rest=90),
    _ex(39, "Power Clean", [MG.FULL_BODY, MG.HAMSTRINGS, MG.BACK], [EQ.BARBELL],
        LV.ADVANCED, MP.HINGE, TR.COMPOUND, sets=5, reps="2-3", rest=180,
        contraindications=[ML.LOWER_BACK, ML.WRIST, ML.HIGH_IMPACT]),
    _ex(40, "Romanian Deadlift", [MG.HAMSTRINGS, MG.GLUTES], [EQ.BARBELL],
        LV.INTERMEDIATE, MP.HINGE, TR.ACCESSORY, reps="8-10", rest=120,
        contraindications=[ML.LOWER_BACK]),
    # Machine and cable
    _ex(41, "Leg Press", [MG.QUADS, MG.GLUTES], [EQ.MACHINE],
        LV.BEGINNER, MP.SQUAT, TR.COMPOUND, reps="10-12", rest=120,
        contraindications=[ML.KNEE]),
    _ex(42, "Lat Pulldown", [MG.BACK, MG.BICEPS], [EQ.MACHINE, EQ.CABLE],
        LV.BEGINNER, MP.PULL_VERTICAL, TR.COMPOUND, reps="8-12", rest=90),
    _ex(43, "Seated Cable Row", [MG.BACK, MG.BICEPS], [EQ.CABLE],
        LV.BEGINNER, MP.PULL_HORIZONTAL, TR.COMPOUND, reps="8-12", rest=90),
    _ex(44, "Machine Chest Press", [MG.CHEST, MG.TRICEPS], [EQ.MACHINE],
        LV.BEGINNER, MP.PUSH_HORIZONTAL, TR.COMPOUND, reps="8-12", rest=90),
    _ex(45, "Leg Curl", [MG.HAMSTRINGS], [EQ.MACHINE],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="10-15"),
    _ex(46, "Leg Extension", [MG.QUADS], [EQ.MACHINE],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="10-15",
        contraindications=[ML.KNEE]),
    _ex(47, "Triceps Pushdown", [MG.TRICEPS], [EQ.CABLE, EQ.BAND],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="10-15"),
    _ex(48, "Face Pull", [MG.SHOULDERS, MG.BACK], [EQ.CABLE, EQ.BAND],
        LV.BEGINNER, MP.PULL_HORIZONTAL, TR.ACCESSORY, reps="12-15"),
    _ex(49, "Cable Woodchop", [MG.CORE], [EQ.CABLE, EQ.BAND],
        LV.INTERMEDIATE, MP.CORE, TR.ACCESSORY, reps="10-12"),
    _ex(50, "Rowing Machine Intervals", [MG.FULL_BODY, MG.BACK], [EQ.MACHINE],
        LV.BEGINNER, MP.CONDITIONING, TR.COMPOUND, ExerciseType.CARDIO,
        reps="60 sec", rest=60),
    _ex(51, "Seated Calf Raise", [MG.CALVES], [EQ.MACHINE],
        LV.BEGINNER, MP.ISOLATION, TR.ISOLATION, reps="12-15", rest=45),
    # Kettlebell and band
    _ex(52, "Kettlebell Swing", [MG.GLUTES, MG.HAMSTRINGS, MG.FULL_BODY], [EQ.KETTLEBELL],
        LV.INTERMEDIATE, MP.HINGE, TR.COMPOUND, ExerciseType.CARDIO,
        reps="15-20", rest=60, contraindications=[ML.LOWER_BACK]),
    _ex(53, "Turkish Get-Up", [MG.CORE, MG.SHOULDERS, MG.FULL_BODY], [EQ.KETTLEBELL],
        LV.ADVANCED, MP.CORE, TR.COMPOUND, reps="3 per side", rest=90,
        contraindications=[ML.SHOULDER]),
    _ex(54, "Band Pull-Apart", [MG.SHOULDERS, MG.BACK], [EQ.BAND],
        LV.BEGINNER, MP.PULL_HORIZONTAL, TR.ISOLATION, reps="15-20", rest=45),
    _ex(55, "Band Row", [MG.BACK, MG.BICEPS], [EQ.BAND],
        LV.BEGINNER, MP.PULL_HORIZONTAL, TR.ACCESSORY, reps="12-15"),
    _ex(56, "Band Chest Press", [MG.CHEST, MG.TRICEPS], [EQ.BAND],
        LV.BEGINNER, MP.PUSH_HORIZONTAL, TR.ACCESSORY, reps="12-15"),
    _ex(57, "Cat-Cow", [MG.BACK, MG.CORE], [EQ.BODYWEIGHT],
        LV.BEGINNER, MP.MOBILITY, TR.ISOLATION, ExerciseType.MOBILITY,
        reps="10", rest=15),
]
