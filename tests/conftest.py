"""
Shared test fixtures.

Tests run against a temporary SQLite file; the environment is prepared before
any cnote module is imported so that settings and the engine pick it up.
"""

import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="cnote-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'cnote_test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import pytest

import cnote.db.base  # noqa: F401  registers every model on Base
from cnote.db.session import Base, SessionLocal, engine
from cnote.models import Note, NoteChunk, NoteShare, User
from cnote.services.auth_service import create_access_token

from helpers import make_vector


@pytest.fixture
def db():
    """Fresh schema per test; yields a session on the temporary database."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    def _make_user(username: str, email: str = None, display_name: str = None, is_active: bool = True) -> User:
        user = User(
            email=email or f"{username}@example.com",
            username=username,
            display_name=display_name or username.title(),
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_note(db):
    def _make_note(user: User, title: str, content: str = "") -> Note:
        note = Note(user_id=user.id, title=title, content=content)
        db.add(note)
        db.commit()
        db.refresh(note)
        return note

    return _make_note


@pytest.fixture
def add_chunk(db):
    def _add_chunk(note: Note, text: str, vector, index: int = 0) -> NoteChunk:
        chunk = NoteChunk(
            note_id=note.id,
            user_id=note.user_id,
            chunk_text=text,
            chunk_index=index,
            embedding=make_vector(*vector),
        )
        db.add(chunk)
        db.commit()
        db.refresh(chunk)
        return chunk

    return _add_chunk


@pytest.fixture
def share_note(db):
    def _share_note(note: Note, with_user: User, permission: str = "read") -> NoteShare:
        share = NoteShare(
            note_id=note.id,
            owner_id=note.user_id,
            shared_with_user_id=with_user.id,
            permission=permission,
        )
        db.add(share)
        note.is_shared = True
        db.commit()
        db.refresh(share)
        return share

    return _share_note


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.email)}"}

    return _auth_headers


@pytest.fixture
def client(db):
    """TestClient over the app with a fake arq pool; startup hooks are not run."""
    from fastapi.testclient import TestClient

    from cnote.main import app
    from helpers import FakeArqPool

    app.state.arq_pool = FakeArqPool()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        del app.state.arq_pool
