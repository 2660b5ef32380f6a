"""Embedding backends and the embedding model registry."""

from .base import BaseEmbedder
from .registry import EmbeddingModel, EMBEDDING_MODELS, get_embedding_model, list_embedding_models
from .ollama_embedder import OllamaEmbedder
from .sentence_embedder import SentenceTransformerEmbedder

__all__ = [
    "BaseEmbedder",
    "EmbeddingModel",
    "EMBEDDING_MODELS",
    "get_embedding_model",
    "list_embedding_models",
    "OllamaEmbedder",
    "SentenceTransformerEmbedder",
]
