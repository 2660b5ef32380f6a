"""
Memory system data models.

Defines MemoryRecord and the result types returned by the engine.
"""

import time
import uuid
from typing import Dict, List, Literal, Optional, Tuple, get_args

from pydantic import BaseModel, Field, field_validator

from persona_memory.persist.vectors import is_storable_vector


# Type aliases
MemoryType = Literal[
    "fact",
    "preference",
    "experience",
    "emotional",
    "context",
    "instruction",
    "general",
]
MEMORY_TYPES: Tuple[str, ...] = get_args(MemoryType)
CORE_MEMORY_TYPES: Tuple[str, ...] = ("fact", "preference", "instruction")

MIN_IMPORTANCE = 0.1
MAX_IMPORTANCE = 1.0
MAX_SQLITE_INT = 2**63 - 1


def clamp_importance(value: float) -> float:
    """Clamp an importance score to [0.1, 1.0]."""
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, float(value)))


def new_memory_id() -> str:
    """Generate a memory identifier."""
    return f"mem_{uuid.uuid4().hex[:12]}"


class MemoryRecord(BaseModel):
    """
    A single persona memory.

    Records are partitioned by (owner_id, persona_id). Content, timestamp,
    context and memory_type never change after creation; importance,
    access statistics and decay factor are updated in place.
    """

    id: str = Field(default_factory=new_memory_id, description="Unique identifier")
    owner_id: str = Field(..., min_length=1, description="Owning user")
    persona_id: str = Field(..., min_length=1, description="Persona the memory belongs to")

    # Content
    content: str = Field(..., min_length=1, description="Free-text memory")
    embedding: Optional[List[float]] = Field(None, description="Vector, absent if embedding failed")
    timestamp: float = Field(default_factory=time.time, description="Creation time (unix seconds)")
    context: Optional[str] = Field(None, description="Annotation, e.g. consolidation provenance")

    # Scoring
    importance_score: float = Field(0.5, description="Salience in [0.1, 1.0]")
    memory_type: MemoryType = Field("general", description="Classified memory category")

    # Usage tracking
    access_count: int = Field(0, ge=0, le=MAX_SQLITE_INT, description="Retrievals and reinforcements")
    last_accessed_at: Optional[float] = Field(None, description="Last retrieval/reinforcement time")
    decay_factor: float = Field(1.0, description="Post/pre importance ratio of the last decay pass")

    # Consolidation provenance
    consolidated_from: Optional[List[str]] = Field(None, description="Source ids of a merged memory")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "mem_3f9a1c2b7d4e",
                "owner_id": "user_1",
                "persona_id": "persona_tutor",
                "content": "User prefers answers in French.",
                "timestamp": 1696723200.0,
                "importance_score": 0.85,
                "memory_type": "preference",
                "access_count": 3,
                "last_accessed_at": 1696809600.0,
                "decay_factor": 1.0,
            }
        }

    @field_validator("importance_score")
    @classmethod
    def _clamp_importance(cls, value: float) -> float:
        return clamp_importance(value)

    @field_validator("embedding")
    @classmethod
    def _check_embedding(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        if value is not None and not is_storable_vector(value):
            raise ValueError("embedding must contain finite float32 values")
        return value

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def snippet(self, max_chars: int = 100) -> str:
        """Get truncated content for display."""
        if len(self.content) <= max_chars:
            return self.content
        return self.content[:max_chars - 3] + "..."


class MemorySearchResult(BaseModel):
    """One ranked search hit."""

    entry: MemoryRecord
    similarity_score: float = Field(..., description="Cosine similarity to the query")
    relevance_score: float = Field(..., description="Composite of similarity, decayed importance and recency")
    relevance_rank: int = Field(..., ge=1, description="1-based rank in the result list")


class ConsolidationResult(BaseModel):
    """Outcome of one consolidation pass."""

    consolidated_groups: int = 0
    deleted_count: int = 0
    created_ids: List[str] = Field(default_factory=list)


class MemoryStats(BaseModel):
    """Aggregate statistics for one persona's memories."""

    total_count: int = 0
    count_by_type: Dict[str, int] = Field(default_factory=dict)
    average_importance: float = 0.0
    oldest_timestamp: Optional[float] = None
    newest_timestamp: Optional[float] = None
    total_access_count: int = 0
    embedded_count: int = 0


class MemoryStatus(BaseModel):
    """Lightweight status summary for a persona's memory."""

    status: Literal["active", "wiped"] = "active"
    memory_count: int = 0
    size_mb: float = 0.0
    last_backup: Optional[float] = None


class PersonaMemorySettings(BaseModel):
    """Per-persona memory retention preferences."""

    enabled: bool = True
    max_memories: int = Field(1000, ge=0)
    auto_cleanup: bool = False
    retention_days: int = Field(90, ge=0)
