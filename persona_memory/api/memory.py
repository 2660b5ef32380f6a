"""
Memory API endpoints for persona memories.

All routes are scoped to the persona in the path and the user in the
`X-User-Id` header.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, Field

from persona_memory.embeddings import EmbeddingModel
from persona_memory.memory.engine import MemoryEngine, create_memory_engine
from persona_memory.memory.schemas import (
    ConsolidationResult,
    MemoryRecord,
    MemoryStats,
    MemoryStatus,
    MemoryType,
    PersonaMemorySettings,
)


router = APIRouter(prefix="/personas/{persona_id}/memory", tags=["memory"])
models_router = APIRouter(prefix="/memory", tags=["memory"])


# Default engine instance (overridden in tests)
_engine: Optional[MemoryEngine] = None


def get_engine() -> MemoryEngine:
    """Get or create the memory engine singleton."""
    global _engine
    if _engine is None:
        _engine = create_memory_engine()
    return _engine


class MemoryView(BaseModel):
    """Memory as returned to clients (embedding omitted)."""

    id: str
    persona_id: str
    content: str
    timestamp: float
    context: Optional[str] = None
    importance_score: float
    memory_type: MemoryType
    access_count: int
    last_accessed_at: Optional[float] = None
    decay_factor: float
    consolidated_from: Optional[List[str]] = None
    has_embedding: bool

    @classmethod
    def from_record(cls, record: MemoryRecord) -> "MemoryView":
        data = record.model_dump(exclude={"embedding", "owner_id"})
        return cls(**data, has_embedding=record.has_embedding)


class StoreMemoryRequest(BaseModel):
    """Request to store a memory."""

    content: str = Field(..., min_length=1, max_length=4000, description="Memory text")
    model: Optional[str] = Field(None, description="Embedding model")
    context: Optional[str] = Field(None, description="Optional annotation")
    importance_score: Optional[float] = Field(None, ge=0.0, le=1.0, description="Importance override")
    memory_type: Optional[MemoryType] = Field(None, description="Type override")

    class Config:
        json_schema_extra = {
            "example": {
                "content": "Please always answer in French.",
                "model": "nomic-embed-text",
            }
        }


class SearchMemoryRequest(BaseModel):
    """Request to search memories."""

    query: str = Field(..., min_length=1, description="Search query for semantic recall")
    model: Optional[str] = Field(None, description="Embedding model")
    top_k: int = Field(5, ge=1, le=100, description="Maximum number of results")
    min_similarity: float = Field(0.3, ge=-1.0, le=1.0, description="Minimum cosine similarity")
    memory_types: Optional[List[MemoryType]] = Field(None, description="Restrict to these types")


class SearchHit(BaseModel):
    memory: MemoryView
    similarity_score: float
    relevance_score: float
    relevance_rank: int


class SearchMemoryResponse(BaseModel):
    """Response with ranked memories."""

    results: List[SearchHit]
    count: int


class MemoryListResponse(BaseModel):
    memories: List[MemoryView]
    count: int


class ImportMemoryRequest(BaseModel):
    memories: List[Dict[str, Any]] = Field(..., description="Exported memory records")


class ImportanceUpdateRequest(BaseModel):
    importance_score: float = Field(..., ge=0.0, le=1.0)


class CleanupRequest(BaseModel):
    retention_days: int = Field(..., ge=0, description="Delete unimportant memories older than this")


class ConsolidateRequest(BaseModel):
    model: Optional[str] = Field(None, description="Embedding model for merged memories")
    similarity_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)


class CountResponse(BaseModel):
    count: int
    message: str


# ============================================================================
# API Endpoints
# ============================================================================

@models_router.get("/embedding-models", response_model=List[EmbeddingModel])
def list_models(engine: MemoryEngine = Depends(get_engine)):
    """List known embedding models."""
    return engine.get_embedding_models()


@router.get("/status", response_model=MemoryStatus)
def memory_status(
    persona_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Memory count and approximate size for a persona."""
    return engine.get_memory_status(user_id, persona_id)


@router.get("/stats", response_model=MemoryStats)
def memory_stats(
    persona_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Counts by type, average importance and time range."""
    return engine.get_memory_stats(user_id, persona_id)


@router.get("", response_model=MemoryListResponse)
def list_memories(
    persona_id: str,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """
    List memories, newest first.

    Example:
        GET /api/personas/p1/memory?limit=10&offset=20
    """
    records = engine.get_memories(user_id, persona_id, limit=limit, offset=offset)
    return MemoryListResponse(memories=[MemoryView.from_record(r) for r in records], count=len(records))


@router.post("", response_model=MemoryView)
def store_memory(
    persona_id: str,
    request: StoreMemoryRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """
    Store a memory (or reinforce an existing near-duplicate).

    Example:
        POST /api/personas/p1/memory
        {"content": "I like hiking"}
    """
    record = engine.store_memory(
        user_id,
        persona_id,
        request.content,
        model=request.model,
        context=request.context,
        importance_score=request.importance_score,
        memory_type=request.memory_type,
    )
    return MemoryView.from_record(record)


@router.post("/search", response_model=SearchMemoryResponse)
def search_memories(
    persona_id: str,
    request: SearchMemoryRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """
    Search memories by semantic similarity.

    Scoring combines similarity, decayed importance and recency. Returns an
    empty list when the query cannot be embedded.
    """
    results = engine.search_memories(
        user_id,
        persona_id,
        request.query,
        model=request.model,
        top_k=request.top_k,
        min_similarity=request.min_similarity,
        memory_types=request.memory_types,
    )
    hits = [
        SearchHit(
            memory=MemoryView.from_record(r.entry),
            similarity_score=r.similarity_score,
            relevance_score=r.relevance_score,
            relevance_rank=r.relevance_rank,
        )
        for r in results
    ]
    return SearchMemoryResponse(results=hits, count=len(hits))


@router.get("/core", response_model=MemoryListResponse)
def core_memories(
    persona_id: str,
    limit: int = Query(10, ge=1, le=1000),
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """High-importance facts, preferences and instructions."""
    records = engine.get_core_memories(user_id, persona_id, limit=limit)
    return MemoryListResponse(memories=[MemoryView.from_record(r) for r in records], count=len(records))


@router.delete("", response_model=CountResponse)
def wipe_memories(
    persona_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Delete every memory of the persona."""
    deleted = engine.wipe_memories(user_id, persona_id)
    return CountResponse(count=deleted, message=f"Deleted {deleted} memories")


@router.get("/export", response_model=List[MemoryRecord])
def export_memories(
    persona_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Full export including embeddings, for backup."""
    return engine.export_memories(user_id, persona_id)


@router.post("/import", response_model=CountResponse)
def import_memories(
    persona_id: str,
    request: ImportMemoryRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """
    Import exported memories into this persona for the calling user.

    Malformed records are skipped; `count` is the number imported.
    """
    memories = [{**m, "persona_id": persona_id} for m in request.memories]
    imported = engine.import_memories(memories, user_id)
    return CountResponse(
        count=imported,
        message=f"Imported {imported} of {len(memories)} memories",
    )


@router.patch("/{memory_id}/importance", response_model=CountResponse)
def update_importance(
    persona_id: str,
    memory_id: str,
    request: ImportanceUpdateRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Set a memory's importance score."""
    if not engine.update_memory_importance(user_id, persona_id, memory_id, request.importance_score):
        raise HTTPException(status_code=404, detail=f"Memory {memory_id} not found")
    return CountResponse(count=1, message="Importance updated")


@router.post("/cleanup", response_model=CountResponse)
def cleanup_memories(
    persona_id: str,
    request: CleanupRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Delete old, unimportant memories."""
    deleted = engine.cleanup_old_memories(user_id, persona_id, request.retention_days)
    return CountResponse(count=deleted, message=f"Deleted {deleted} memories")


@router.post("/retention", response_model=CountResponse)
def apply_retention(
    persona_id: str,
    request: PersonaMemorySettings,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Apply the persona's retention settings."""
    deleted = engine.apply_retention_policy(user_id, persona_id, request)
    return CountResponse(count=deleted, message=f"Deleted {deleted} memories")


@router.post("/consolidate", response_model=ConsolidationResult)
def consolidate_memories(
    persona_id: str,
    request: Optional[ConsolidateRequest] = None,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Merge near-duplicate memories."""
    request = request or ConsolidateRequest()
    return engine.consolidate_memories(
        user_id,
        persona_id,
        model=request.model,
        similarity_threshold=request.similarity_threshold,
    )


@router.post("/decay", response_model=CountResponse)
def decay_memories(
    persona_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    engine: MemoryEngine = Depends(get_engine),
):
    """Persist time-based decay for every memory of the persona."""
    updated = engine.apply_global_decay(user_id, persona_id)
    return CountResponse(count=updated, message=f"Decayed {updated} memories")
