"""
Error types shared by services and routers.
"""


class MemeBoardError(Exception):
    """Base exception for meme board operations."""
    pass


class NotAuthenticatedError(MemeBoardError):
    """Raised before any store access when there is no signed-in viewer."""

    def __init__(self, message: str = "You must be logged in!"):
        super().__init__(message)


class MissingInputError(MemeBoardError):
    """Raised pre-flight when a required input (file, template, ...) is missing or invalid."""
    pass


class StoreError(MemeBoardError):
    """The backing store failed to read or write."""
    pass


class ReactionNotFound(StoreError):
    """The viewer has no reaction row for the meme.

    Expected during the reaction toggle; it selects the insert branch.
    """
    pass


class UploadError(MemeBoardError):
    """The media host rejected or failed the upload."""
    pass
