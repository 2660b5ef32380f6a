"""
Shared fixtures for unit tests.
"""
import pytest

from persona_memory.memory.schemas import MemoryRecord
from persona_memory.persist.sqlite_store import SQLiteDatabase


@pytest.fixture
def db(tmp_path):
    """Create a temporary SQLiteDatabase instance."""
    database = SQLiteDatabase(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def make_record(clock):
    """Factory for MemoryRecord objects stamped with the test clock."""
    def _make(**overrides):
        data = {
            "owner_id": "user_1",
            "persona_id": "persona_1",
            "content": "I like hiking",
            "timestamp": clock.now,
        }
        data.update(overrides)
        return MemoryRecord(**data)

    return _make
