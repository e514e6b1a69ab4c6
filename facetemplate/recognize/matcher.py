from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

# Templates leave the process as little-endian float32.
TEMPLATE_DTYPE = np.dtype("<f4")


def descriptor_to_bytes(desc: np.ndarray) -> bytes:
    return np.asarray(desc, dtype=TEMPLATE_DTYPE).reshape(-1).tobytes()


def descriptor_from_bytes(blob: bytes, dim: Optional[int] = None) -> np.ndarray:
    if len(blob) % TEMPLATE_DTYPE.itemsize != 0:
        raise ValueError(f"Template size {len(blob)} is not a multiple of {TEMPLATE_DTYPE.itemsize}")
    v = np.frombuffer(blob, dtype=TEMPLATE_DTYPE).astype(np.float32)
    if dim is not None and v.size != dim:
        raise ValueError(f"Template has {v.size} values, expected {dim}")
    return v


def fuse_descriptors(descs: Sequence[np.ndarray]) -> np.ndarray:
    """Element-wise mean of several descriptors of one identity."""
    if len(descs) == 0:
        raise ValueError("No descriptors to fuse")
    return np.mean(np.stack([np.asarray(d, dtype=np.float32).reshape(-1) for d in descs], axis=0), axis=0).astype(np.float32)


def cosine_similarity(a: np.ndarray, b: np.ndarray, eps: float = 1e-12) -> float:
    va = np.asarray(a, dtype=np.float32).reshape(-1)
    vb = np.asarray(b, dtype=np.float32).reshape(-1)
    if va.size != vb.size:
        raise ValueError(f"Descriptor sizes differ: {va.size} vs {vb.size}")
    na = float(np.linalg.norm(va))
    nb = float(np.linalg.norm(vb))
    if na < eps or nb < eps:
        return 0.0
    return float(np.dot(va, vb) / (na * nb))
