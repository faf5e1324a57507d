"""
Shared pytest fixtures.

Every test gets its own SQLite file under pytest's tmp_path, so tests
never touch data/application.db.
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to sys.path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest

from auth_service import AuthService, build_password_context
from avatar_service import AvatarService
from main import Services
from progress_service import ProgressService
from stores import AccountStore, AvatarStore, ProgressStore
from user_db import create_db_engine, create_session_factory, init_db


class StepClock:
    """Deterministic clock: each call is one minute after the previous one."""

    def __init__(self, start=datetime(2024, 3, 1, 9, 0)):
        self.current = start

    def __call__(self):
        now = self.current
        self.current += timedelta(minutes=1)
        return now


class ScriptedInput:
    """Feeds canned answers to prompts and raises EOFError once they run out."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt=""):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def account_store(session_factory):
    return AccountStore(session_factory)


@pytest.fixture
def avatar_store(session_factory):
    return AvatarStore(session_factory)


@pytest.fixture
def progress_store(session_factory):
    return ProgressStore(session_factory)


@pytest.fixture
def auth(account_store):
    return AuthService(account_store, build_password_context(rounds=4))


@pytest.fixture
def art_dir(tmp_path):
    path = tmp_path / "ascii_art"
    path.mkdir()
    (path / "avatar1_default.txt").write_text("  O\n /|\\\n / \\\n", encoding="utf-8")
    return path


@pytest.fixture
def avatars(avatar_store, art_dir):
    return AvatarService(avatar_store, art_dir=art_dir)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def progress(progress_store, avatars, clock):
    return ProgressService(progress_store, avatars, clock=clock)


@pytest.fixture
def services(auth, avatars, progress):
    return Services(auth=auth, avatars=avatars, progress=progress)


@pytest.fixture
def child(auth):
    return auth.register("alice", "secret123", "child")


@pytest.fixture
def child_avatar(avatars, child):
    return avatars.create_default_avatar(child, "Aria")
