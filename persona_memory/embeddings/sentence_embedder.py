"""
Local embeddings with sentence-transformers.

Requires the optional `sentence-transformers` extra. Models are loaded
lazily on first use and kept for the lifetime of the embedder.
"""

import logging
from typing import Any, Dict, List, Optional

from .base import BaseEmbedder

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder(BaseEmbedder):
    """Embedder backed by in-process SentenceTransformer models."""

    def __init__(self, device: Optional[str] = None, normalize: bool = True):
        """
        Args:
            device: Torch device ("cpu", "cuda"); None lets the library choose
            normalize: Whether embeddings are L2-normalized
        """
        self.device = device
        self.normalize = normalize
        self._models: Dict[str, Any] = {}

    def _load(self, model: str) -> Any:
        if model not in self._models:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading SentenceTransformer model {model}")
            self._models[model] = SentenceTransformer(model, device=self.device)
        return self._models[model]

    def is_available(self) -> bool:
        try:
            import sentence_transformers  # noqa: F401
        except ImportError:
            return False
        return True

    def embed(self, text: str, model: str) -> Optional[List[float]]:
        if not text or not text.strip():
            return None

        try:
            encoder = self._load(model)
            vector = encoder.encode(
                [text],
                normalize_embeddings=self.normalize,
                show_progress_bar=False,
            )[0]
            return [float(x) for x in vector]
        except Exception as e:
            logger.error(f"SentenceTransformer embedding failed for model {model}: {e}")
            return None
