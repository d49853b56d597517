"""Load-generation harness for vector-search engines.

Subpackages:
- ``vecload.common``: configuration, logging, metrics, and error types.
- ``vecload.vector_store``: the capability surface the harness drives, plus
  the Milvus adapter.
- ``vecload.performance``: profiles, ramp-up scheduling, the worker pool, and
  the phase orchestrator.

Entry point:
- ``vecload`` console script (``vecload.cli:main``).
"""

__version__ = "1.0.0"
