"""Vector store factory for creating different implementations.

Centralizes creation of concrete ``VectorStore`` backends so the orchestrator
doesn't depend on implementation details. New targets can be added without
changing call sites.
"""

from enum import Enum
from typing import Any, Dict

import structlog

from vecload.common.config import LoadTestConfig

from .base import VectorStore
from .milvus import MilvusVectorStore

logger = structlog.get_logger("vector_store.factory")


class VectorStoreType(Enum):
    """Supported vector store types."""
    MILVUS = "milvus"


class VectorStoreFactory:
    """Factory for creating vector store instances."""

    @staticmethod
    def create(
        store_type: VectorStoreType,
        config: Dict[str, Any],
        **kwargs: Any
    ) -> VectorStore:
        """Create a vector store instance.

        Parameters
        - store_type: A ``VectorStoreType`` enum value
        - config: Backend-specific parameters (e.g., ``address`` for Milvus)
        - kwargs: Additional optional overrides forwarded to implementation
        """
        if store_type == VectorStoreType.MILVUS:
            address = config.get("address")
            if not address:
                raise ValueError("Milvus requires 'address' in config")

            return MilvusVectorStore(
                address=address,
                token=config.get("token", ""),
                primary_key_field=config.get("primary_key_field", "id"),
                embedding_field=config.get("embedding_field", "embedding"),
                shards_num=config.get("shards_num", 1),
                **kwargs
            )

        raise ValueError(f"Unsupported vector store type: {store_type}")


def create_vector_store(store_type: str, config: Dict[str, Any], **kwargs: Any) -> VectorStore:
    """Convenience function to create a vector store from a type name."""
    try:
        store_type_enum = VectorStoreType(store_type.lower())
    except ValueError:
        raise ValueError(f"Unsupported vector store type: {store_type}")
    return VectorStoreFactory.create(store_type_enum, config, **kwargs)


def create_vector_store_from_config(config: LoadTestConfig) -> VectorStore:
    """Create the vector store described by a run configuration."""
    store = create_vector_store(
        config.store_type,
        {
            "address": config.milvus_addr,
            "token": config.milvus_token,
            "primary_key_field": config.primary_key_field,
            "embedding_field": config.embedding_field,
            "shards_num": config.shards_num,
        },
    )
    logger.debug("Created vector store", store_type=config.store_type, address=config.milvus_addr)
    return store
