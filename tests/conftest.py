"""Shared fixtures: an in-memory vector store and fast run configurations."""

import threading
from typing import Any, Dict, List, Optional, Set

import numpy as np
import pytest
from prometheus_client import CollectorRegistry

from vecload.common.config import LoadTestConfig
from vecload.common.metrics import LoadTestMetrics
from vecload.vector_store.base import VectorStore, VectorStoreConnectionError, VectorStoreQueryError


class FakeVectorStore(VectorStore):
    """Thread-safe in-memory store that records every call.

    ``fail_on`` names methods that raise a ``VectorStoreError``; ``connect``
    raises the connection variant. ``fail_every_nth_insert`` makes every n-th
    insert fail to exercise the worker error path.
    """

    def __init__(
        self,
        existing: Optional[Set[str]] = None,
        fail_on: Optional[Set[str]] = None,
        fail_every_nth_insert: int = 0,
    ):
        self.collections: Set[str] = set(existing or ())
        self.fail_on = set(fail_on or ())
        self.fail_every_nth_insert = fail_every_nth_insert
        self.calls: List[str] = []
        self.inserted_batches: List[int] = []
        self.search_batches: List[int] = []
        self.insert_attempts = 0
        self.closed = False
        self._lock = threading.Lock()

    def _record(self, name: str) -> None:
        with self._lock:
            self.calls.append(name)
        if name in self.fail_on:
            if name == "connect":
                raise VectorStoreConnectionError("connection refused")
            raise VectorStoreQueryError(f"{name} rejected")

    def connect(self) -> None:
        self._record("connect")

    def close(self) -> None:
        self.closed = True

    def has_collection(self, name: str) -> bool:
        self._record("has_collection")
        return name in self.collections

    def drop_collection(self, name: str) -> None:
        self._record("drop_collection")
        self.collections.discard(name)

    def create_collection(self, name: str, dim: int) -> None:
        self._record("create_collection")
        self.collections.add(name)

    def insert(self, name: str, vectors: np.ndarray) -> int:
        with self._lock:
            self.insert_attempts += 1
            attempt = self.insert_attempts
        if self.fail_every_nth_insert and attempt % self.fail_every_nth_insert == 0:
            raise VectorStoreQueryError("insert timed out")
        with self._lock:
            self.inserted_batches.append(len(vectors))
        return len(vectors)

    def flush(self, name: str) -> None:
        self._record("flush")

    def create_index(self, name: str, field: str, params: Dict[str, Any]) -> None:
        self._record("create_index")

    def load_collection(self, name: str) -> None:
        self._record("load_collection")

    def search(self, name, query_vectors, top_k, search_params):
        if "search" in self.fail_on:
            raise VectorStoreQueryError("search rejected")
        with self._lock:
            self.search_batches.append(len(query_vectors))
        return [[] for _ in range(len(query_vectors))]

    @property
    def vectors_inserted(self) -> int:
        return sum(self.inserted_batches)


@pytest.fixture
def fake_store():
    return FakeVectorStore()


@pytest.fixture
def metrics():
    return LoadTestMetrics("test-run", registry=CollectorRegistry())


@pytest.fixture
def fast_config():
    """A LOW-pressure run short enough for unit tests."""
    return LoadTestConfig(
        duration_seconds=0.2,
        pressure="low",
        batch_size=10,
        embedding_dim=4,
        _env_file=None,
    )
