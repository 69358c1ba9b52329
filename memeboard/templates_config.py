"""
Shared Jinja2 templates configuration.

All routers import templates from here so every page sees the same globals.
"""

from datetime import datetime
from pathlib import Path

from fastapi.templating import Jinja2Templates

from memeboard.models.reaction import ReactionType
from memeboard.services.categories import PRESET_CATEGORIES
from memeboard.settings import settings

TEMPLATES_DIR = Path(__file__).parent / "templates"


def timestamp_filter(value: datetime | None) -> str:
    """Render a meme timestamp for the card footer."""
    if not value:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

templates.env.globals["app_name"] = settings.app_name
templates.env.globals["reaction_types"] = list(ReactionType)
templates.env.globals["preset_categories"] = PRESET_CATEGORIES

templates.env.filters["timestamp"] = timestamp_filter
