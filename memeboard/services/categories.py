"""
Meme categories and template filtering.
"""

from collections.abc import Iterable
from typing import Any

from memeboard.models.template import UNCATEGORIZED

PRESET_CATEGORIES = ["Funny", "Tech", "Animals", "Relatable", "Sports", "Other"]
OTHER = "Other"


def resolve_category(category: str | None, custom_category: str | None = None) -> str | None:
    """Category stored on an uploaded meme.

    "Other" defers to the free-text custom category; blanks become None.
    """
    category = (category or "").strip()
    if category == OTHER:
        return (custom_category or "").strip() or None
    return category or None


def template_category(template: Any) -> str:
    return template.category or UNCATEGORIZED


def template_categories(templates: Iterable[Any]) -> list[str]:
    """Filter choices: every template category, then the presets, without repeats."""
    seen: dict[str, None] = {}
    for template in templates:
        seen.setdefault(template_category(template), None)
    for preset in PRESET_CATEGORIES:
        seen.setdefault(preset, None)
    return list(seen)


def filter_templates(templates: Iterable[Any], category: str | None) -> list[Any]:
    if not category:
        return list(templates)
    return [t for t in templates if template_category(t) == category]
