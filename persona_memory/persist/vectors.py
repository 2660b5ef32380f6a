"""
Fixed-width binary encoding for embedding vectors.

Vectors are stored as little-endian float32 (4 bytes per dimension).
"""

from typing import List, Optional, Sequence

import numpy as np

VECTOR_DTYPE = np.dtype("<f4")


def encode_vector(vector: Optional[Sequence[float]]) -> Optional[bytes]:
    """
    Pack a vector into float32 bytes.

    Returns:
        Packed bytes, or None for a missing vector
    """
    if vector is None:
        return None
    array = np.asarray(vector, dtype=VECTOR_DTYPE)
    if array.ndim != 1:
        raise ValueError(f"Expected a 1-D vector, got shape {array.shape}")
    return array.tobytes()


def decode_vector(blob: Optional[bytes]) -> Optional[List[float]]:
    """
    Unpack float32 bytes into a list of floats.

    Raises:
        ValueError: If the blob length is not a multiple of 4 bytes
    """
    if blob is None:
        return None
    if len(blob) % VECTOR_DTYPE.itemsize != 0:
        raise ValueError(f"Vector blob of {len(blob)} bytes is not float32-aligned")
    return np.frombuffer(blob, dtype=VECTOR_DTYPE).astype(np.float64).tolist()


def is_storable_vector(vector: Sequence[float]) -> bool:
    """True if every component is finite and fits in float32."""
    array = np.asarray(vector, dtype=np.float64)
    if not np.isfinite(array).all():
        return False
    return bool((np.abs(array) <= np.finfo(VECTOR_DTYPE).max).all())
