"""CLI commands for fitup."""

from .analyze import analyze
from .init import init
from .plan import plan
from .serve import serve, token

__all__ = [
    "analyze",
    "init",
    "plan",
    "serve",
    "token",
]
