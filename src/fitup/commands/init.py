"""Initialize project command."""

from pathlib import Path

import click

from ..config import DATA_DIR
from ..data.catalog_loader import load_catalog
from ..db import get_db_path, init_db, seed_exercises
from .base import async_command, echo_info, echo_success


@click.command()
@click.option(
    "--catalog",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON exercise/template catalog to seed from",
)
@async_command
async def init(catalog: Path | None):
    """Initialize the FitUp database.

    Creates the data directory, the SQLite schema and the exercise library.
    Running it again is safe; existing rows are left untouched.
    """
    db_path = get_db_path(DATA_DIR)
    echo_info(f"Initializing FitUp in {DATA_DIR}")

    await init_db(db_path)
    echo_success("Database initialized")

    exercises, templates = load_catalog(catalog)
    count = await seed_exercises(db_path, exercises)
    echo_success(
        f"Exercise library populated ({count} new of {len(exercises)} exercises, "
        f"{len(templates.templates)} templates)"
    )

    click.echo()
    click.echo("Next steps:")
    click.echo("  fitup plan generate --user <user-id>   # Interactive plan generation")
    click.echo("  fitup serve                            # Start the API server")
