"""Embedder interface consumed by the memory engine."""

from abc import ABC, abstractmethod
from typing import List, Optional


class BaseEmbedder(ABC):
    """
    Abstract base class for embedding generators.

    Implementations must never raise from `embed`: any failure (service
    down, malformed response, unknown model) is reported as None.
    """

    @abstractmethod
    def embed(self, text: str, model: str) -> Optional[List[float]]:
        """Embed `text` with `model`, or return None on failure."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the embedding backend is reachable."""
        pass
