"""
Reaction toggle.

A viewer has at most one reaction per meme. Toggling reads the viewer's
current row and then applies one of three mutations:

    current     requested   action    result
    none        R           insert    has(R)
    has(R)      R           delete    none
    has(T)      R (T != R)  update    has(R)

The state is inferred from the store on every call; nothing is cached. The
lookup and the mutation are two separate round trips with no transaction
around them, so two concurrent toggles by the same viewer on the same meme
can race (duplicate row or lost update). A viewer with duplicate rows is
toggled through the newest one. The feed reload that always follows is the
only resynchronization.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from memeboard.exceptions import NotAuthenticatedError, ReactionNotFound, StoreError
from memeboard.models.reaction import ReactionType

logger = logging.getLogger(__name__)


class ReactionRow(Protocol):
    id: Any
    type: str


class ReactionStore(Protocol):
    async def find_reaction(self, meme_id: Any, user_id: Any) -> ReactionRow: ...

    async def insert_reaction(self, meme_id: Any, user_id: Any, reaction_type: ReactionType) -> Any: ...

    async def update_reaction(self, reaction_id: Any, reaction_type: ReactionType) -> None: ...

    async def delete_reaction(self, reaction_id: Any) -> None: ...


class ToggleAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ReactionState:
    """What the store holds for one (meme, viewer) pair: nothing, or one type."""

    reaction_type: ReactionType | str | None = None

    @property
    def is_none(self) -> bool:
        return self.reaction_type is None

    @classmethod
    def none(cls) -> "ReactionState":
        return cls(None)

    @classmethod
    def has(cls, reaction_type: ReactionType) -> "ReactionState":
        return cls(reaction_type)

    @classmethod
    def from_row(cls, row: ReactionRow | None) -> "ReactionState":
        if row is None:
            return cls.none()
        # Unknown stored types still count as "has"
        return cls(ReactionType.parse(row.type) or row.type)


def next_action(state: ReactionState, requested: ReactionType) -> tuple[ToggleAction, ReactionState]:
    """Transition function: the mutation to apply and the state it leads to."""
    if state.is_none:
        return ToggleAction.INSERT, ReactionState.has(requested)
    if state.reaction_type == requested:
        return ToggleAction.DELETE, ReactionState.none()
    return ToggleAction.UPDATE, ReactionState.has(requested)


@dataclass
class ToggleResult:
    action: ToggleAction
    state: ReactionState  # what the store holds after the attempt
    feed: Any = None
    applied: bool = True


async def toggle_reaction(
    store: ReactionStore,
    meme_id: Any,
    requested: ReactionType,
    viewer_id: Any,
    reload: Callable[[], Awaitable[Any]] | None = None,
) -> ToggleResult | None:
    """Toggle ``viewer_id``'s reaction on ``meme_id`` towards ``requested``.

    Raises NotAuthenticatedError before touching the store when there is no
    viewer. Returns None when the lookup itself fails (logged, nothing is
    mutated and the feed is not reloaded). Otherwise the mutation is
    attempted, any failure is logged (``applied`` is False and ``state`` stays
    the prior one), and ``reload`` is awaited unconditionally; its result is
    returned as ``ToggleResult.feed``.
    """
    if viewer_id is None:
        raise NotAuthenticatedError()

    try:
        existing = await store.find_reaction(meme_id, viewer_id)
    except ReactionNotFound:
        existing = None
    except StoreError as e:
        logger.error("Reaction lookup failed for meme %s: %s", meme_id, e)
        return None

    current = ReactionState.from_row(existing)
    action, state = next_action(current, requested)
    applied = True

    try:
        if action is ToggleAction.INSERT:
            await store.insert_reaction(meme_id, viewer_id, requested)
        elif action is ToggleAction.DELETE:
            await store.delete_reaction(existing.id)
        else:
            await store.update_reaction(existing.id, requested)
    except StoreError as e:
        logger.error("Reaction %s failed for meme %s: %s", action.value, meme_id, e)
        applied = False
        state = current

    logger.debug("Reaction %s on meme %s by user %s", action.value, meme_id, viewer_id)

    feed = await reload() if reload is not None else None
    return ToggleResult(action=action, state=state, feed=feed, applied=applied)
