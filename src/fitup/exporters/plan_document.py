"""Structured, printable view of a generated plan.

The renderer only lays out what this module builds, so the plan's wording
lives here. ``PlanDocument.to_text`` gives the same content as plain text:

```
FitUp Plan - Week of 2024-03-04
Template: beginner_general_full_body_3

## Monday - Full Body
Push-Up / 3x10-12 / rest 60s
Inverted Row / 3x10-12 / rest 60s / 40 kg
## Tuesday - Rest
```
"""

from dataclasses import dataclass, field

from ..models.plan import GeneratedPlan, PlanDay, PlanExercise

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@dataclass
class DocumentConfig:
    """Options for plan documents."""

    weight_unit: str = "kg"
    include_rest_times: bool = True
    include_parameters: bool = True


@dataclass
class DaySection:
    heading: str
    rows: list[str] = field(default_factory=list)
    is_rest: bool = False


@dataclass
class PlanDocument:
    title: str
    header_lines: list[str]
    days: list[DaySection]
    footer_lines: list[str] = field(default_factory=list)

    def to_text(self) -> str:
        lines = [self.title, *self.header_lines, ""]
        for day in self.days:
            lines.append(f"## {day.heading}")
            lines.extend(day.rows)
        if self.footer_lines:
            lines.append("")
            lines.extend(self.footer_lines)
        return "\n".join(lines).strip()


def build_plan_document(plan: GeneratedPlan, config: DocumentConfig | None = None) -> PlanDocument:
    """Build the printable document for a plan."""
    config = config or DocumentConfig()
    metadata = plan.metadata
    params = metadata.parameters

    header = [
        f"Template: {metadata.template_used}",
        f"Level: {params.level.value.title()}  |  Goals: "
        + ", ".join(g.value.replace("_", " ") for g in params.goals),
        f"{len(metadata.workout_days)} workout days, {metadata.total_exercises} exercises, "
        f"estimated volume {metadata.estimated_volume:g}",
    ]
    if metadata.equipment_utilized:
        header.append("Equipment: " + ", ".join(metadata.equipment_utilized))

    footer = []
    if config.include_parameters:
        if params.intensity_guidelines:
            footer.append(f"Intensity: {params.intensity_guidelines}")
        if params.volume_adjustment_pct:
            footer.append(f"Volume adjusted {params.volume_adjustment_pct:+.0f}% from baseline")
        if params.set_bonus:
            footer.append(f"Progression: +{params.set_bonus} set(s) per exercise")

    return PlanDocument(
        title=f"FitUp Plan - Week of {plan.week_start.isoformat()}",
        header_lines=header,
        days=[_day_section(day, config) for day in metadata.structure],
        footer_lines=footer,
    )


def _day_section(day: PlanDay, config: DocumentConfig) -> DaySection:
    name = DAY_NAMES[(day.day_of_week - 1) % 7]
    if day.is_rest:
        return DaySection(heading=f"{name} - Rest", is_rest=True)
    return DaySection(
        heading=f"{name} - {day.focus}",
        rows=[_exercise_row(ex, config) for ex in day.exercises],
    )


def _exercise_row(exercise: PlanExercise, config: DocumentConfig) -> str:
    """Format: Exercise Name / SetsxReps / rest / load"""
    parts = [exercise.name, f"{exercise.sets}x{exercise.reps}"]
    if config.include_rest_times:
        parts.append(f"rest {exercise.rest_seconds}s")
    if exercise.load_target:
        parts.append(f"{exercise.load_target:g} {config.weight_unit}")
    return " / ".join(parts)
