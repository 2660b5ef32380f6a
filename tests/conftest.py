"""Test configuration and fixtures shared by unit and integration tests."""
import re

import pytest

from persona_memory.embeddings.base import BaseEmbedder
from persona_memory.memory.decay import SECONDS_PER_DAY
from persona_memory.memory.engine import MemoryEngine
from persona_memory.memory.store import MemoryStore

START_TIME = 1_700_000_000.0


class KeywordEmbedder(BaseEmbedder):
    """
    Deterministic embedder for tests.

    One dimension per topic (keyword hit count) plus a constant bias
    dimension. Texts containing "FAIL" cannot be embedded.
    """

    TOPICS = (
        ("hobby", {"hiking", "hike", "hobbies", "hobby", "mountains", "trails", "outdoors", "climbing"}),
        ("identity", {"name", "alex", "called"}),
        ("music", {"jazz", "music", "piano", "songs"}),
        ("language", {"french", "english", "spanish", "language"}),
        ("work", {"engineer", "job", "work", "office"}),
    )
    BIAS = 0.1

    def __init__(self):
        self.calls = 0

    def embed(self, text, model):
        self.calls += 1
        if "FAIL" in text:
            return None
        tokens = re.findall(r"[a-z]+", text.lower())
        vector = [float(sum(1 for t in tokens if t in words)) for _, words in self.TOPICS]
        vector.append(self.BIAS)
        return vector

    def is_available(self):
        return True


class FakeClock:
    """Controllable time source."""

    def __init__(self, now=START_TIME):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, days=0.0, seconds=0.0):
        self.now += days * SECONDS_PER_DAY + seconds
        return self.now


@pytest.fixture
def memory_store(tmp_path):
    """Create a temporary MemoryStore instance."""
    store = MemoryStore(db_path=tmp_path / "memories.db")
    yield store
    store.close()


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(memory_store, embedder, clock):
    """Memory engine over a temp database with a fake embedder and clock."""
    return MemoryEngine(memory_store, embedder, clock=clock)
