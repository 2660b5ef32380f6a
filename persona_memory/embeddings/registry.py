"""
Known embedding models.

The registry is static configuration: an immutable tuple built once at import
time. Lookups go through `get_embedding_model`.
"""

from types import MappingProxyType
from typing import List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

EmbeddingProvider = Literal["ollama", "openai", "sentence-transformers", "huggingface"]


class EmbeddingModel(BaseModel):
    """Metadata for one embedding model."""

    id: str = Field(..., description="Model identifier passed to the provider")
    name: str = Field(..., description="Display name")
    description: str = Field("", description="Short description")
    provider: EmbeddingProvider = Field(..., description="Backend serving the model")
    dimensions: int = Field(..., gt=0, description="Vector length")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "nomic-embed-text",
                "name": "Nomic Embed Text",
                "description": "High-quality text embeddings from Nomic AI",
                "provider": "ollama",
                "dimensions": 768,
            }
        }


EMBEDDING_MODELS: Tuple[EmbeddingModel, ...] = (
    EmbeddingModel(
        id="nomic-embed-text",
        name="Nomic Embed Text",
        description="High-quality text embeddings from Nomic AI",
        provider="ollama",
        dimensions=768,
    ),
    EmbeddingModel(
        id="bge-m3",
        name="BGE-M3",
        description="Multi-lingual and multi-granularity embedding model",
        provider="ollama",
        dimensions=1024,
    ),
    EmbeddingModel(
        id="text-embedding-3-large",
        name="OpenAI Text Embedding 3 Large",
        description="OpenAI's largest text embedding model",
        provider="openai",
        dimensions=3072,
    ),
    EmbeddingModel(
        id="text-embedding-3-small",
        name="OpenAI Text Embedding 3 Small",
        description="OpenAI's smaller, faster text embedding model",
        provider="openai",
        dimensions=1536,
    ),
    EmbeddingModel(
        id="e5-large-v2",
        name="E5 Large v2",
        description="Microsoft E5 large text embedding model",
        provider="sentence-transformers",
        dimensions=1024,
    ),
)

_MODELS_BY_ID: Mapping[str, EmbeddingModel] = MappingProxyType(
    {model.id: model for model in EMBEDDING_MODELS}
)


def get_embedding_model(model_id: str) -> Optional[EmbeddingModel]:
    """
    Look up a model by id.

    Ollama tags ("nomic-embed-text:latest") resolve to their base model.
    """
    model = _MODELS_BY_ID.get(model_id)
    if model is None and ":" in model_id:
        model = _MODELS_BY_ID.get(model_id.split(":", 1)[0])
    return model


def list_embedding_models() -> List[EmbeddingModel]:
    """All registered models, in registry order."""
    return list(EMBEDDING_MODELS)
