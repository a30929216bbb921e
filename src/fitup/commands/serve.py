"""Web server and token commands."""

import click
from pydantic import ValidationError

from ..config import get_settings
from ..models.profile import UserRole
from .base import echo_error


def _load_settings(ctx: click.Context):
    try:
        return get_settings()
    except ValidationError as e:
        echo_error("Invalid configuration:")
        for error in e.errors():
            field = ".".join(str(x) for x in error["loc"]).upper()
            click.echo(f"  {field}: {error['msg']}")
        ctx.exit(1)


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to (default: $PORT or 8080)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int | None, reload: bool):
    """Start the API server.

    Requires JWT_SECRET (at least 32 characters). The database is created
    on startup if it does not exist.

    Examples:

        # Start on $PORT (default 8080)
        fitup serve

        # Expose to network (all interfaces)
        fitup serve --host 0.0.0.0

        # Development mode with auto-reload
        fitup serve --reload
    """
    settings = _load_settings(ctx)
    port = port or settings.port

    import uvicorn

    from ..web.app import create_app

    click.echo()
    click.echo(click.style("Starting FitUp API server...", fg="green"))
    click.echo()
    click.echo(f"  Local:   http://{host}:{port}")
    click.echo(f"  Docs:    http://{host}:{port}/docs")
    click.echo()
    click.echo("Press Ctrl+C to stop the server.")
    click.echo()

    uvicorn.run(
        create_app(settings) if not reload else "fitup.web.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=reload,
        log_level=settings.log_level.lower(),
    )


@click.command()
@click.argument("user_id")
@click.option(
    "--role",
    type=click.Choice([r.value for r in UserRole]),
    default=UserRole.USER.value,
    help="Role carried by the token",
)
@click.option("--email", default=None, help="Email claim (needed to accept invitations)")
@click.pass_context
def token(ctx: click.Context, user_id: str, role: str, email: str | None):
    """Print an access token for USER_ID signed with JWT_SECRET.

    Intended for local development and API testing.
    """
    settings = _load_settings(ctx)

    from ..web.auth import TokenService

    tokens = TokenService(settings.jwt_secret, settings.jwt_algorithm, settings.jwt_exp_seconds)
    click.echo(tokens.create_access_token(user_id, UserRole(role), email))
