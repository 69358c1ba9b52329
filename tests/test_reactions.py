"""Tests for the reaction toggle."""

from types import SimpleNamespace

import pytest

from memeboard.exceptions import NotAuthenticatedError
from memeboard.models.reaction import ReactionType
from memeboard.services.feed import load_feed
from memeboard.services.reactions import (
    ReactionState,
    ToggleAction,
    next_action,
    toggle_reaction,
)

HEART = ReactionType.HEART
LAUGH = ReactionType.LAUGH


class TestNextAction:
    """Test the toggle transition table."""

    def test_none_inserts(self):
        action, state = next_action(ReactionState.none(), HEART)
        assert action is ToggleAction.INSERT
        assert state == ReactionState.has(HEART)

    def test_same_type_deletes(self):
        action, state = next_action(ReactionState.has(HEART), HEART)
        assert action is ToggleAction.DELETE
        assert state.is_none

    def test_other_type_updates(self):
        action, state = next_action(ReactionState.has(HEART), LAUGH)
        assert action is ToggleAction.UPDATE
        assert state == ReactionState.has(LAUGH)

    def test_unknown_stored_type_updates(self):
        """A row with a type outside the enum is still an existing reaction."""
        state = ReactionState.from_row(SimpleNamespace(id=1, type="angry"))
        action, new_state = next_action(state, HEART)
        assert action is ToggleAction.UPDATE
        assert new_state == ReactionState.has(HEART)


def reload_from(store, viewer_id):
    return lambda: load_feed(store, viewer_id)


class TestToggleReaction:
    """Test toggle_reaction against the in-memory store."""

    @pytest.mark.asyncio
    async def test_first_toggle_inserts(self, store):
        meme = store.add_meme()

        result = await toggle_reaction(store, meme.id, HEART, 7, reload=reload_from(store, 7))

        assert result.action is ToggleAction.INSERT
        assert [r.type for r in store.rows_for(meme.id, 7)] == ["heart"]
        view = result.feed[0]
        assert view.reactions[HEART] == 1
        assert view.user_reaction is HEART

    @pytest.mark.asyncio
    async def test_toggle_twice_removes_reaction(self, store):
        meme = store.add_meme()
        store.add_reaction(meme.id, 2, "heart")

        await toggle_reaction(store, meme.id, LAUGH, 7)
        result = await toggle_reaction(store, meme.id, LAUGH, 7, reload=reload_from(store, 7))

        assert result.action is ToggleAction.DELETE
        assert store.rows_for(meme.id, 7) == []
        view = result.feed[0]
        assert view.reactions[HEART] == 1
        assert view.reactions[LAUGH] == 0
        assert view.user_reaction is None

    @pytest.mark.asyncio
    async def test_switching_type_keeps_row(self, store):
        meme = store.add_meme()
        row = store.add_reaction(meme.id, 7, "heart")

        result = await toggle_reaction(store, meme.id, LAUGH, 7)

        assert result.action is ToggleAction.UPDATE
        rows = store.rows_for(meme.id, 7)
        assert len(rows) == 1
        assert rows[0].id == row.id
        assert rows[0].type == "laugh"

    @pytest.mark.asyncio
    async def test_other_viewers_untouched(self, store):
        meme = store.add_meme()
        store.add_reaction(meme.id, 2, "heart")

        await toggle_reaction(store, meme.id, HEART, 7)

        assert [r.type for r in store.rows_for(meme.id, 2)] == ["heart"]

    @pytest.mark.asyncio
    async def test_no_viewer_raises_without_store_calls(self, store):
        meme = store.add_meme()
        reloads = []

        async def reload():
            reloads.append(1)

        with pytest.raises(NotAuthenticatedError, match="You must be logged in!"):
            await toggle_reaction(store, meme.id, HEART, None, reload=reload)

        assert store.calls == []
        assert reloads == []

    @pytest.mark.asyncio
    async def test_not_found_inserts_once_then_reloads(self, store):
        meme = store.add_meme()

        await toggle_reaction(store, meme.id, HEART, 7, reload=reload_from(store, 7))

        assert store.call_names() == ["find_reaction", "insert_reaction", "list_memes"]

    @pytest.mark.asyncio
    async def test_lookup_failure_skips_mutation_and_reload(self, store):
        meme = store.add_meme()
        store.fail.add("find_reaction")

        result = await toggle_reaction(store, meme.id, HEART, 7, reload=reload_from(store, 7))

        assert result is None
        assert store.call_names() == ["find_reaction"]

    @pytest.mark.asyncio
    async def test_duplicate_rows_toggle_the_newest(self, store):
        meme = store.add_meme()
        older = store.add_reaction(meme.id, 7, "heart")
        store.add_reaction(meme.id, 7, "sad")

        result = await toggle_reaction(store, meme.id, ReactionType.SAD, 7)

        assert result.action is ToggleAction.DELETE
        assert store.rows_for(meme.id, 7) == [older]

    @pytest.mark.asyncio
    async def test_duplicate_rows_clear_after_repeated_toggles(self, store):
        meme = store.add_meme()
        store.add_reaction(meme.id, 7, "heart")
        store.add_reaction(meme.id, 7, "heart")

        await toggle_reaction(store, meme.id, HEART, 7)
        result = await toggle_reaction(store, meme.id, HEART, 7)

        assert result.action is ToggleAction.DELETE
        assert store.rows_for(meme.id, 7) == []

    @pytest.mark.asyncio
    async def test_odd_number_of_toggles_leaves_reaction(self, store):
        meme = store.add_meme()

        for _ in range(3):
            result = await toggle_reaction(store, meme.id, HEART, 7)

        assert result.action is ToggleAction.INSERT
        assert result.state == ReactionState.has(HEART)
        assert [r.type for r in store.rows_for(meme.id, 7)] == ["heart"]

    @pytest.mark.asyncio
    async def test_mutation_failure_reports_prior_state(self, store):
        meme = store.add_meme()
        store.add_reaction(meme.id, 7, "heart")
        store.fail.add("update_reaction")

        result = await toggle_reaction(store, meme.id, LAUGH, 7)

        assert result.applied is False
        assert result.state == ReactionState.has(HEART)
        assert [r.type for r in store.rows_for(meme.id, 7)] == ["heart"]

    @pytest.mark.asyncio
    async def test_mutation_failure_still_reloads(self, store):
        meme = store.add_meme()
        store.fail.add("insert_reaction")

        result = await toggle_reaction(store, meme.id, HEART, 7, reload=reload_from(store, 7))

        assert result.action is ToggleAction.INSERT
        assert store.call_names() == ["find_reaction", "insert_reaction", "list_memes"]
        assert result.feed[0].reactions[HEART] == 0
        assert result.feed[0].user_reaction is None

    @pytest.mark.asyncio
    async def test_without_reload_feed_is_none(self, store):
        meme = store.add_meme()

        result = await toggle_reaction(store, meme.id, HEART, 7)

        assert result.feed is None
