"""FitUp: adaptive workout planning, performance analytics and coach messaging."""

__version__ = "0.1.0"
