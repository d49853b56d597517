"""Synthetic vector generation with explicit, per-worker random sources."""

import numpy as np


def worker_rng(seed: int, *stream: int) -> np.random.Generator:
    """Deterministic generator for one worker.

    ``stream`` identifies the worker (e.g. ``phase_index, worker_id``) so every
    worker draws an independent sequence that is reproducible from ``seed``.
    """
    return np.random.default_rng([seed, *stream])


def generate_vectors(rng: np.random.Generator, count: int, dim: int) -> np.ndarray:
    """Uniform ``[0, 1)`` float32 vectors with shape ``(count, dim)``."""
    return rng.random((count, dim), dtype=np.float32)


def vectors_size_mb(count: int, dim: int, itemsize: int = 4) -> float:
    """Raw payload size of ``count`` vectors in MiB."""
    return count * dim * itemsize / (1024 * 1024)
