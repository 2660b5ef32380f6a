"""
Ollama embedder adapter for local embedding generation.

Implements BaseEmbedder against the Ollama REST API (`POST /api/embed`).
"""

import logging
from typing import List, Optional

import requests

from persona_memory.persist.vectors import is_storable_vector
from .base import BaseEmbedder
from .registry import get_embedding_model

logger = logging.getLogger(__name__)


class OllamaEmbedder(BaseEmbedder):
    """
    Embedder that uses Ollama for local embedding inference.

    Ollama must be running locally (default: http://localhost:11434).
    Every failure is logged and reported as None.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Ollama embedder.

        Args:
            base_url: Ollama API base URL
            timeout: Request timeout in seconds
            session: Optional requests session (connection reuse, testing)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def is_available(self) -> bool:
        """Check if Ollama server is running."""
        try:
            response = self.session.get(f"{self.base_url}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def embed(self, text: str, model: str) -> Optional[List[float]]:
        """
        Embed text with an Ollama model.

        Args:
            text: Input text
            model: Ollama model name (e.g., "nomic-embed-text")

        Returns:
            Embedding vector, or None on any failure
        """
        if not text or not text.strip():
            return None

        try:
            response = self.session.post(
                f"{self.base_url}/api/embed",
                json={"model": model, "input": text},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.error(f"Ollama embedding request timed out after {self.timeout}s (model={model})")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Ollama embedding request failed: {e}. Check if Ollama is running at {self.base_url}.")
            return None

        if response.status_code != 200:
            logger.warning(f"Ollama API returned status {response.status_code}: {response.text[:200]}")
            return None

        try:
            payload = response.json()
            embeddings = payload.get("embeddings") or []
            vector = [float(x) for x in embeddings[0]] if embeddings else []
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Malformed Ollama embedding response for model {model}: {e}")
            return None

        if not vector:
            logger.warning(f"Ollama returned no embedding for model {model}")
            return None

        if not is_storable_vector(vector):
            logger.warning(f"Ollama returned non-finite embedding values for model {model}")
            return None

        known = get_embedding_model(model)
        if known is not None and len(vector) != known.dimensions:
            logger.warning(
                f"Embedding dimension mismatch for {model}: got {len(vector)}, expected {known.dimensions}"
            )
            return None

        return vector
