# Models package
from memeboard.db import Base
from memeboard.models.user import User
from memeboard.models.user_session import UserSession
from memeboard.models.template import Template, UNCATEGORIZED
from memeboard.models.meme import Meme
from memeboard.models.reaction import Reaction, ReactionType

__all__ = [
    "Base",
    "User",
    "UserSession",
    "Template",
    "UNCATEGORIZED",
    "Meme",
    "Reaction",
    "ReactionType",
]
