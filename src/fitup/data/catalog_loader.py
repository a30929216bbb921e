"""Catalog loader from JSON.

A catalog file can replace the built-in exercise library and workout
templates. Its layout mirrors ``Exercise.to_dict`` and
``WorkoutTemplate.to_dict``::

    {
        "exercises": [{"id": 1, "name": "Push-Up", ...}],
        "workout_templates": [{"name": "...", "level": "...", ...}]
    }
"""

import json
import logging
from pathlib import Path

from ..models.exercises import COMMON_EXERCISES, EquipmentType, Exercise
from .catalog import WORKOUT_TEMPLATES, TemplateCatalog, WorkoutTemplate

logger = logging.getLogger(__name__)


def load_catalog_file(path: Path) -> tuple[list[Exercise], list[WorkoutTemplate]]:
    """Load exercises and templates from a JSON catalog file.

    Invalid entries are skipped with a warning. A missing section yields an
    empty list for that section.
    """
    with open(path) as f:
        data = json.load(f)

    exercises = []
    for ex_data in data.get("exercises", []):
        try:
            exercises.append(Exercise.from_dict(ex_data))
        except (ValueError, KeyError) as e:
            logger.warning("Skipping invalid exercise %s: %s", ex_data.get("name", "unknown"), e)

    templates = []
    for tpl_data in data.get("workout_templates", []):
        try:
            templates.append(WorkoutTemplate.from_dict(tpl_data))
        except (ValueError, KeyError) as e:
            logger.warning("Skipping invalid template %s: %s", tpl_data.get("name", "unknown"), e)

    return exercises, templates


def load_catalog(path: Path | None = None) -> tuple[list[Exercise], TemplateCatalog]:
    """Exercises and template catalog, from ``path`` or the built-in data.

    Sections missing from the file fall back to the built-in definitions.
    """
    if path is None or not Path(path).exists():
        if path is not None:
            logger.warning("Catalog file %s not found, using built-in catalog", path)
        return list(COMMON_EXERCISES), TemplateCatalog(WORKOUT_TEMPLATES)

    exercises, templates = load_catalog_file(Path(path))
    logger.info(
        "Loaded catalog %s: %d exercises, %d templates", path, len(exercises), len(templates)
    )
    return (
        exercises or list(COMMON_EXERCISES),
        TemplateCatalog(templates or WORKOUT_TEMPLATES),
    )


def get_exercises_by_equipment(
    exercises: list[Exercise],
    available_equipment: list[EquipmentType],
) -> list[Exercise]:
    """Filter exercises to only those the user can perform.

    Args:
        exercises: Full list of exercises
        available_equipment: Equipment types the user has

    Returns:
        Filtered list of exercises matching available equipment
    """
    return [ex for ex in exercises if ex.is_available_with(available_equipment)]
