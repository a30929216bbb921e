"""CLI entry point for fitup."""

import click

from . import __version__
from .commands import analyze, init, plan, serve, token


@click.group()
@click.version_option(version=__version__, prog_name="fitup")
def main():
    """fitup: adaptive workout plans, session tracking and coaching.

    Generates weekly plans from a template catalog, tracks workout
    sessions and serves the HTTP/WebSocket API.

    Example usage:

        # Initialize the database and exercise library
        fitup init

        # Generate a plan interactively
        fitup plan generate --user alice

        # Estimate a one-rep max
        fitup analyze one-rep-max 100 5

        # Start the API server
        fitup serve
    """
    pass


# Register commands
main.add_command(init)
main.add_command(plan)
main.add_command(analyze)
main.add_command(serve)
main.add_command(token)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
