"""Analytics commands: 1RM estimates, progression, plateaus and volume."""

from datetime import date

import click

from ..exceptions import FitUpError
from ..services.analytics import brzycki, epley, estimate_one_rep_max, lombardi, mcglothin
from ..utils.dates import utcnow
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
    open_services,
)


@click.group()
def analyze():
    """Inspect strength and training analytics."""
    pass


@analyze.command("one-rep-max")
@click.argument("weight", type=float)
@click.argument("reps", type=int)
@click.option("--rpe", type=float, default=None, help="RPE of the set (1-10)")
@click.pass_context
def one_rep_max(ctx: click.Context, weight: float, reps: int, rpe: float | None):
    """Estimate a one-rep max from WEIGHT kg lifted for REPS reps.

    No database is needed; nothing is stored.
    """
    try:
        result = estimate_one_rep_max(weight, reps, rpe)
    except FitUpError as e:
        echo_error(e.message)
        ctx.exit(1)

    echo_success(
        f"Estimated 1RM: {result.estimated_max:.1f} kg "
        f"({result.method.value}, confidence {result.confidence:.2f})"
    )

    rows = [["epley", f"{epley(weight, reps):.1f}"]]
    if reps < 37:
        rows.append(["brzycki", f"{brzycki(weight, reps):.1f}"])
    rows.append(["mcglothin", f"{mcglothin(weight, reps):.1f}"])
    rows.append(["lombardi", f"{lombardi(weight, reps):.1f}"])
    click.echo()
    click.echo(format_table(["Formula", "1RM (kg)"], rows))


@analyze.command("progression")
@click.argument("user_id")
@click.argument("exercise_id", type=int)
@click.option("--days", default=90, help="Timeframe in days (1-365)")
@click.pass_context
@async_command
async def progression(ctx: click.Context, user_id: str, exercise_id: int, days: int):
    """Show strength progression for USER_ID on EXERCISE_ID."""
    ensure_initialized(ctx)
    async with open_services() as services:
        try:
            result = await services.analytics.get_strength_progression(user_id, exercise_id, days)
        except FitUpError as e:
            echo_error(e.message)
            ctx.exit(1)

    if result.data_points == 0:
        echo_info(f"No 1RM history in the last {days} days")
        return
    click.echo(f"Start:   {result.starting_max:.1f} kg")
    click.echo(f"Current: {result.current_max:.1f} kg")
    click.echo(f"Rate:    {result.progression_rate:+.2f}% over {days} days ({result.data_points} points)")
    click.echo(f"Trend:   {result.trend.value.replace('_', ' ')}")


@analyze.command("plateau")
@click.argument("user_id")
@click.argument("exercise_id", type=int)
@click.pass_context
@async_command
async def plateau(ctx: click.Context, user_id: str, exercise_id: int):
    """Check USER_ID for a plateau on EXERCISE_ID."""
    ensure_initialized(ctx)
    async with open_services() as services:
        try:
            result = await services.analytics.detect_plateau(user_id, exercise_id)
        except FitUpError as e:
            echo_error(e.message)
            ctx.exit(1)

    if result.plateau_detected:
        echo_warning(f"Plateau for {result.duration_days} days")
    else:
        echo_success("No plateau detected")
    if result.weekly_maxes:
        click.echo("Weekly maxima: " + ", ".join(f"{m:.1f}" for m in result.weekly_maxes))
    click.echo(result.recommendation)


@analyze.command("volume")
@click.argument("user_id")
@click.option(
    "--week",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Any day of the week to report (default: this week)",
)
@click.pass_context
@async_command
async def volume(ctx: click.Context, user_id: str, week):
    """Show USER_ID's weekly training volume by muscle group."""
    ensure_initialized(ctx)
    day: date = week.date() if week else utcnow().date()
    async with open_services() as services:
        try:
            result = await services.analytics.get_training_volume(user_id, day)
        except FitUpError as e:
            echo_error(e.message)
            ctx.exit(1)

    click.echo(f"Week of {result.week_start.isoformat()}: {result.total_volume:.0f} kg total")
    if result.week_over_week_change_pct is not None:
        click.echo(f"Change vs previous week: {result.week_over_week_change_pct:+.1f}%")
    rows = [
        [group, f"{amount:.0f}", f"{result.muscle_group_share.get(group, 0.0) * 100:.0f}%"]
        for group, amount in sorted(result.volume_by_muscle_group.items(), key=lambda kv: -kv[1])
    ]
    if rows:
        click.echo()
        click.echo(format_table(["Muscle group", "Volume", "Share"], rows))
    for imbalance in result.imbalances:
        echo_warning(imbalance)
    for warning in result.warnings:
        echo_warning(warning)
