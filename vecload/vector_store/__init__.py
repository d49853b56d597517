"""Vector store adapters and utilities.

Primary components:
- ``base``: abstract ``VectorStore`` capability surface and common exceptions.
- ``milvus``: ``pymilvus``-backed implementation of the interface.
- ``factory``: helpers to construct a store from a type name or run config.

Guidance:
- Prefer constructing via ``factory.create_vector_store_from_config`` so the
  orchestrator stays decoupled from specific backends.
"""
