"""Built-in catalog data and loaders."""

from .catalog import WORKOUT_TEMPLATES, TemplateCatalog, WorkoutTemplate
from .catalog_loader import get_exercises_by_equipment, load_catalog

__all__ = [
    "get_exercises_by_equipment",
    "load_catalog",
    "TemplateCatalog",
    "WORKOUT_TEMPLATES",
    "WorkoutTemplate",
]
