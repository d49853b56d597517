"""Base vector store interface.

Defines the abstract capability surface the harness drives, independent of the
backing engine (Milvus today). The orchestrator only needs collection
lifecycle calls plus batched insert and search.

All methods are synchronous and must be safe to call from many worker threads
at once; implementations typically share one client connection.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

import numpy as np


class VectorStore(ABC):
    """Abstract base class for load-test targets.

    Implementations translate backend-specific exceptions into
    ``VectorStoreError`` subclasses so callers can tell operational failures
    from programming errors.
    """

    @abstractmethod
    def connect(self) -> None:
        """Open the session.

        Raises ``VectorStoreConnectionError`` if the service is unreachable.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the session. Safe to call more than once."""
        pass

    @abstractmethod
    def has_collection(self, name: str) -> bool:
        """Check whether a collection exists."""
        pass

    @abstractmethod
    def drop_collection(self, name: str) -> None:
        """Drop a collection."""
        pass

    @abstractmethod
    def create_collection(self, name: str, dim: int) -> None:
        """Create a collection with an auto-id key and one float-vector field."""
        pass

    @abstractmethod
    def insert(self, name: str, vectors: np.ndarray) -> int:
        """Insert a batch of fixed-dimension float vectors.

        Returns the number of vectors accepted.
        """
        pass

    @abstractmethod
    def flush(self, name: str) -> None:
        """Seal growing segments so inserted data becomes indexable."""
        pass

    @abstractmethod
    def create_index(self, name: str, field: str, params: Dict[str, Any]) -> None:
        """Build an index on ``field``; blocks until the build completes."""
        pass

    @abstractmethod
    def load_collection(self, name: str) -> None:
        """Load a collection into memory for searching."""
        pass

    @abstractmethod
    def search(
        self,
        name: str,
        query_vectors: np.ndarray,
        top_k: int,
        search_params: Dict[str, Any]
    ) -> List[List[Any]]:
        """Search for nearest neighbours.

        Returns one hit list per query vector.
        """
        pass


class VectorStoreError(Exception):
    """Base exception for vector store operations."""
    pass


class VectorStoreConnectionError(VectorStoreError):
    """Connection error to vector store."""
    pass


class VectorStoreQueryError(VectorStoreError):
    """Query error in vector store."""
    pass
