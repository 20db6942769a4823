"""Common test fixtures for NoteVault."""

import pytest

from notevault.config import NoteVaultConfig, config
from notevault.models.db_models import get_session_factory, init_db
from notevault.observability import metrics
from notevault.services.note_service import NoteService
from tests.fakes import FakeClock, SequentialIds

OWNER = "alice"
OTHER_OWNER = "bob"


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at a throwaway directory (auto-restored)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "notevault.db")
    monkeypatch.setattr(config, "database_url", None)
    monkeypatch.setattr(config, "in_memory_db", False)
    monkeypatch.setattr(config, "owner_id", None)
    yield config


@pytest.fixture
def settings():
    """A private configuration with the stock limits."""
    return NoteVaultConfig(
        database_url="sqlite://",
        default_page_size=20,
        max_page_size=100,
        history_limit=100,
        lock_timeout=5.0,
    )


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created."""
    engine = init_db("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine; needed whenever several threads write."""
    engine = init_db(f"sqlite:///{tmp_path / 'notevault.db'}", lock_timeout=10.0)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ids():
    return SequentialIds("N")


@pytest.fixture
def note_service(engine, clock, ids, settings):
    """A NoteService on the in-memory engine with a fake clock and ids."""
    return NoteService(engine=engine, clock=clock, id_factory=ids, settings=settings)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()
