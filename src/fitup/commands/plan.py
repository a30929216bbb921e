"""Plan commands: interactive generation, display and PDF export."""

from pathlib import Path

import click
import questionary
from questionary import Style

from ..exceptions import FitUpError
from ..exporters.plan_document import build_plan_document
from ..models.exercises import EquipmentType, FitnessLevel, MovementLimitation
from ..models.profile import FitnessGoal
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    open_services,
)

custom_style = Style(
    [
        ("qmark", "fg:#2e7d32 bold"),
        ("question", "bold"),
        ("answer", "fg:#f57c00 bold"),
        ("pointer", "fg:#2e7d32 bold"),
        ("highlighted", "fg:#2e7d32 bold"),
        ("selected", "fg:#f57c00"),
        ("instruction", ""),
    ]
)


def _label(value: str) -> str:
    return value.replace("_", " ").capitalize()


async def collect_plan_metadata() -> dict | None:
    """Ask for plan generation metadata. Returns None when cancelled."""
    level = await questionary.select(
        "What's your training level?",
        choices=[questionary.Choice(_label(lvl.value), lvl.value) for lvl in FitnessLevel],
        style=custom_style,
    ).ask_async()
    if level is None:
        return None

    goals = await questionary.checkbox(
        "What are your goals? (the first one selected is your primary goal)",
        choices=[questionary.Choice(_label(g.value), g.value) for g in FitnessGoal],
        style=custom_style,
    ).ask_async()
    if not goals:
        goals = [FitnessGoal.GENERAL_FITNESS.value]

    equipment = await questionary.checkbox(
        "What equipment do you have access to?",
        choices=[questionary.Choice(_label(eq.value), eq.value) for eq in EquipmentType],
        style=custom_style,
    ).ask_async()
    if not equipment:
        equipment = [EquipmentType.BODYWEIGHT.value]

    frequency = await questionary.select(
        "How many days per week can you train?",
        choices=[str(n) for n in range(1, 8)],
        default="3",
        style=custom_style,
    ).ask_async()

    time_per_workout = await questionary.select(
        "How long are your workouts?",
        choices=[
            questionary.Choice("30 minutes", 30),
            questionary.Choice("45 minutes", 45),
            questionary.Choice("60 minutes", 60),
            questionary.Choice("75 minutes", 75),
            questionary.Choice("90 minutes", 90),
        ],
        style=custom_style,
    ).ask_async()

    limitations = await questionary.checkbox(
        "Any movement limitations? (optional)",
        choices=[questionary.Choice(_label(lim.value), lim.value) for lim in MovementLimitation],
        style=custom_style,
    ).ask_async()

    return {
        "level": level,
        "goals": goals,
        "equipment": equipment,
        "frequency": int(frequency or 3),
        "time_per_workout": time_per_workout or 45,
        "limitations": limitations or [],
    }


@click.group()
def plan():
    """Generate, view and export workout plans."""
    pass


@plan.command("generate")
@click.option("--user", "user_id", required=True, help="User id to generate the plan for")
@click.option("--replace", is_flag=True, help="Flag the current active plan for regeneration first")
@click.pass_context
@async_command
async def generate(ctx: click.Context, user_id: str, replace: bool):
    """Interactively generate a weekly plan."""
    ensure_initialized(ctx)

    metadata = await collect_plan_metadata()
    if metadata is None:
        echo_info("Cancelled")
        return

    async with open_services() as services:
        try:
            if replace:
                current = await services.repos.plans.find_active_for_user(user_id)
                if current is not None:
                    await services.plans.mark_for_regeneration(current.id, "replaced from CLI")
            generated = await services.plans.create_plan(user_id, metadata)
        except FitUpError as e:
            echo_error(e.message)
            ctx.exit(1)

    echo_success(f"Plan {generated.id} created ({generated.metadata.template_used})")
    click.echo()
    click.echo(build_plan_document(generated).to_text())


@plan.command("show")
@click.argument("user_id")
@click.pass_context
@async_command
async def show(ctx: click.Context, user_id: str):
    """Show USER_ID's active plan."""
    ensure_initialized(ctx)
    async with open_services() as services:
        try:
            active = await services.plans.get_active_plan(user_id)
            effectiveness = await services.plans.get_effectiveness(active.id)
        except FitUpError as e:
            echo_error(e.message)
            ctx.exit(1)

    click.echo(build_plan_document(active).to_text())
    click.echo()
    echo_info(f"Effectiveness: {effectiveness:.2f}")


@plan.command("history")
@click.argument("user_id")
@click.option("--limit", default=10, help="Number of plans to list")
@click.pass_context
@async_command
async def history(ctx: click.Context, user_id: str, limit: int):
    """List USER_ID's plans, newest first."""
    ensure_initialized(ctx)
    async with open_services() as services:
        try:
            plans = await services.plans.get_history(user_id, limit)
        except FitUpError as e:
            echo_error(e.message)
            ctx.exit(1)

    if not plans:
        echo_info("No plans yet")
        return
    rows = [
        [
            str(p.id),
            p.week_start.isoformat(),
            p.metadata.template_used,
            "yes" if p.active else "",
            f"{p.effectiveness:.2f}",
        ]
        for p in plans
    ]
    click.echo(format_table(["ID", "Week", "Template", "Active", "Effectiveness"], rows))


@plan.command("export")
@click.argument("plan_id", type=int)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: fitup-plan-<id>.pdf)",
)
@click.pass_context
@async_command
async def export(ctx: click.Context, plan_id: int, output: Path | None):
    """Export a plan to PDF."""
    ensure_initialized(ctx)
    output = output or Path(f"fitup-plan-{plan_id}.pdf")
    async with open_services() as services:
        try:
            pdf = await services.plans.export_plan_pdf(plan_id)
        except FitUpError as e:
            echo_error(e.message)
            ctx.exit(1)

    output.write_bytes(pdf)
    echo_success(f"Plan {plan_id} written to {output}")
