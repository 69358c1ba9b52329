"""Pytest configuration and fixtures."""

import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from memeboard.exceptions import ReactionNotFound, StoreError, UploadError


class FakeStore:
    """In-memory stand-in for MemeStore that records every call.

    Put a method name in ``fail`` to make it raise StoreError.
    """

    def __init__(self):
        self.memes: list[SimpleNamespace] = []
        self.reactions: list[SimpleNamespace] = []
        self.templates: list[SimpleNamespace] = []
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if name in self.fail:
            raise StoreError(f"{name} failed")

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    # Seeding helpers (not recorded)

    def add_meme(self, url: str = "https://img.example/m.png", **fields) -> SimpleNamespace:
        self._clock += timedelta(minutes=1)
        meme = SimpleNamespace(
            id=next(self._ids),
            url=url,
            caption=fields.get("caption"),
            caption_top=fields.get("caption_top"),
            caption_bottom=fields.get("caption_bottom"),
            category=fields.get("category"),
            template_id=fields.get("template_id"),
            user_id=fields.get("user_id"),
            created_at=fields.get("created_at", self._clock),
        )
        self.memes.append(meme)
        return meme

    def add_reaction(self, meme_id, user_id, reaction_type: str) -> SimpleNamespace:
        row = SimpleNamespace(id=next(self._ids), meme_id=meme_id, user_id=user_id, type=reaction_type)
        self.reactions.append(row)
        return row

    def add_template(self, name: str, category: str | None = None) -> SimpleNamespace:
        template = SimpleNamespace(
            id=next(self._ids),
            name=name,
            url=f"https://img.example/{name.lower()}.png",
            category=category,
        )
        self.templates.append(template)
        return template

    def rows_for(self, meme_id, user_id) -> list[SimpleNamespace]:
        return [r for r in self.reactions if r.meme_id == meme_id and r.user_id == user_id]

    # MemeStore interface

    async def list_memes(self):
        self._record("list_memes")
        ordered = sorted(self.memes, key=lambda m: (m.created_at, m.id), reverse=True)
        return [
            SimpleNamespace(
                **vars(meme),
                reactions=sorted(
                    (r for r in self.reactions if r.meme_id == meme.id),
                    key=lambda r: r.id,
                ),
            )
            for meme in ordered
        ]

    async def insert_meme(self, url, user_id, caption=None, caption_top=None,
                          caption_bottom=None, category=None, template_id=None):
        self._record("insert_meme", url, user_id)
        return self.add_meme(
            url,
            user_id=user_id,
            caption=caption,
            caption_top=caption_top,
            caption_bottom=caption_bottom,
            category=category,
            template_id=template_id,
        )

    async def find_reaction(self, meme_id, user_id):
        self._record("find_reaction", meme_id, user_id)
        rows = self.rows_for(meme_id, user_id)
        if not rows:
            raise ReactionNotFound(f"No reaction by {user_id} on {meme_id}")
        return rows[-1]

    async def insert_reaction(self, meme_id, user_id, reaction_type):
        self._record("insert_reaction", meme_id, user_id, reaction_type)
        return self.add_reaction(meme_id, user_id, reaction_type.value)

    async def update_reaction(self, reaction_id, reaction_type):
        self._record("update_reaction", reaction_id, reaction_type)
        for row in self.reactions:
            if row.id == reaction_id:
                row.type = reaction_type.value

    async def delete_reaction(self, reaction_id):
        self._record("delete_reaction", reaction_id)
        self.reactions = [r for r in self.reactions if r.id != reaction_id]

    async def list_templates(self):
        self._record("list_templates")
        return list(reversed(self.templates))

    async def get_template(self, template_id):
        self._record("get_template", template_id)
        return next((t for t in self.templates if t.id == template_id), None)


class FakeUploader:
    """Media host double: hands back a predictable URL per upload."""

    def __init__(self, error: Exception | None = None):
        self.uploads: list[tuple[bytes, str, str | None]] = []
        self.error = error
        self.configured = True

    async def upload_image(self, data: bytes, filename: str, content_type: str | None = None) -> str:
        if self.error is not None:
            raise self.error
        self.uploads.append((data, filename, content_type))
        return f"https://res.example/{len(self.uploads)}/{filename}"


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def failing_uploader():
    return FakeUploader(error=UploadError("Media host unreachable"))


@pytest.fixture
def user():
    return SimpleNamespace(id=1, email="alice@example.com", display_name="Alice", is_active=True)


@pytest.fixture
def app(store, uploader):
    """The application with store, uploader, and session events wired to test doubles."""
    from memeboard.deps import get_current_user_optional, get_store
    from memeboard.main import app as application
    from memeboard.services.media import get_media_uploader
    from memeboard.services.session_events import SessionEvents

    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_media_uploader] = lambda: uploader
    application.dependency_overrides[get_current_user_optional] = lambda: None
    application.state.session_events = SessionEvents()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def login(app):
    """Sign a user in for subsequent requests."""
    from memeboard.deps import get_current_user_optional

    def _login(as_user):
        app.dependency_overrides[get_current_user_optional] = lambda: as_user

    return _login


@pytest.fixture
def client(app):
    # No context manager: the lifespan would connect to the database
    return TestClient(app, follow_redirects=False)

