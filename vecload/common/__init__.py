"""Common utilities shared across the harness.

Includes:
- ``config``: Pydantic-based run configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics for load-test runs.
- ``errors``: exception hierarchy separating fatal from configuration errors.

Import pattern:
- from vecload.common.config import LoadTestConfig
- from vecload.common.logging import configure_logging
"""
