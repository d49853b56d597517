"""Milvus implementation of vector store.

This implementation drives a Milvus server through ``pymilvus.MilvusClient``.
The collection layout mirrors the classic Milvus load test: an auto-id INT64
primary key plus a single FLOAT_VECTOR field.

Connection management
- One ``MilvusClient`` is created on ``connect`` and shared by all workers
  (its gRPC channel is safe for concurrent use)
- Calls are funneled through ``_execute`` for uniform error translation
"""

from typing import Any, Callable, Dict, List, Optional

import numpy as np
import structlog
from pymilvus import DataType, MilvusClient, MilvusException

from .base import (
    VectorStore,
    VectorStoreConnectionError,
    VectorStoreQueryError,
)

logger = structlog.get_logger("vector_store.milvus")


def normalize_uri(address: str) -> str:
    """Turn a bare ``host:port`` address into a URI ``MilvusClient`` accepts."""
    if "://" in address:
        return address
    return f"http://{address}"


class MilvusVectorStore(VectorStore):
    """Milvus implementation of vector store."""

    def __init__(
        self,
        address: str,
        token: str = "",
        primary_key_field: str = "id",
        embedding_field: str = "embedding",
        shards_num: int = 1,
        timeout: Optional[float] = None,
    ):
        """Configure a Milvus-backed vector store.

        Parameters
        - address: ``host:port`` or full URI of the Milvus proxy
        - token: Optional auth token (``user:password`` or API key)
        - primary_key_field: Name of the auto-id primary key field
        - embedding_field: Name of the float-vector field
        - shards_num: Shards for newly created collections
        - timeout: Per-call timeout in seconds; ``None`` waits indefinitely
        """
        self.address = address
        self.uri = normalize_uri(address)
        self.token = token
        self.primary_key_field = primary_key_field
        self.embedding_field = embedding_field
        self.shards_num = shards_num
        self.timeout = timeout
        self._client: Optional[MilvusClient] = None

    def connect(self) -> None:
        if self._client is not None:
            return
        try:
            self._client = MilvusClient(uri=self.uri, token=self.token, timeout=self.timeout)
        except MilvusException as e:
            raise VectorStoreConnectionError(f"Failed to connect to Milvus at {self.address}: {e}") from e
        logger.info("Connected to Milvus", uri=self.uri)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Closed Milvus client", uri=self.uri)

    def _get_client(self) -> MilvusClient:
        if self._client is None:
            raise VectorStoreConnectionError("Milvus client is not connected")
        return self._client

    def _execute(self, operation: str, call: Callable[[MilvusClient], Any]) -> Any:
        """Run ``call`` against the client, translating Milvus failures.

        All server-side failures are wrapped in ``VectorStoreQueryError`` so the
        worker loop can treat them as operational errors.
        """
        client = self._get_client()
        try:
            return call(client)
        except MilvusException as e:
            logger.debug("Milvus call failed", operation=operation, error=str(e))
            raise VectorStoreQueryError(f"{operation} failed: {e}") from e

    def has_collection(self, name: str) -> bool:
        return bool(self._execute("has_collection", lambda c: c.has_collection(collection_name=name)))

    def drop_collection(self, name: str) -> None:
        self._execute("drop_collection", lambda c: c.drop_collection(collection_name=name))

    def create_collection(self, name: str, dim: int) -> None:
        schema = MilvusClient.create_schema(auto_id=True, enable_dynamic_field=False)
        schema.add_field(field_name=self.primary_key_field, datatype=DataType.INT64, is_primary=True)
        schema.add_field(field_name=self.embedding_field, datatype=DataType.FLOAT_VECTOR, dim=dim)

        self._execute(
            "create_collection",
            lambda c: c.create_collection(collection_name=name, schema=schema, shards_num=self.shards_num),
        )
        logger.info("Created Milvus collection", collection=name, dim=dim, shards=self.shards_num)

    def insert(self, name: str, vectors: np.ndarray) -> int:
        rows = self._to_rows(vectors)
        result = self._execute("insert", lambda c: c.insert(collection_name=name, data=rows))
        if isinstance(result, dict) and "insert_count" in result:
            return int(result["insert_count"])
        return len(rows)

    def flush(self, name: str) -> None:
        self._execute("flush", lambda c: c.flush(collection_name=name))

    def create_index(self, name: str, field: str, params: Dict[str, Any]) -> None:
        def _create(client: MilvusClient) -> None:
            index_params = client.prepare_index_params()
            index_params.add_index(
                field_name=field,
                index_type=params.get("index_type", "IVF_FLAT"),
                metric_type=params.get("metric_type", "L2"),
                params=params.get("params", {}),
            )
            client.create_index(collection_name=name, index_params=index_params, sync=True)

        self._execute("create_index", _create)
        logger.info("Created Milvus index", collection=name, field=field, **params)

    def load_collection(self, name: str) -> None:
        self._execute("load_collection", lambda c: c.load_collection(collection_name=name))

    def search(
        self,
        name: str,
        query_vectors: np.ndarray,
        top_k: int,
        search_params: Dict[str, Any]
    ) -> List[List[Any]]:
        queries = [row.tolist() for row in self._as_matrix(query_vectors)]
        return self._execute(
            "search",
            lambda c: c.search(
                collection_name=name,
                data=queries,
                limit=top_k,
                anns_field=self.embedding_field,
                search_params=search_params,
            ),
        )

    def _to_rows(self, vectors: np.ndarray) -> List[Dict[str, List[float]]]:
        return [{self.embedding_field: row.tolist()} for row in self._as_matrix(vectors)]

    @staticmethod
    def _as_matrix(vectors: Any) -> np.ndarray:
        """Coerce input into a 2-D float32 array, one vector per row."""
        array = np.asarray(vectors, dtype=np.float32)
        if array.ndim == 1:
            array = array.reshape(1, -1)
        if array.ndim != 2:
            raise ValueError("Vectors must be a 1-D or 2-D array")
        return array
