"""Exception hierarchy for load-test runs.

Operational failures of single insert/search calls are reported by the vector
store as ``VectorStoreError`` and never leave the worker loop. The types here
cover everything that does leave it.
"""

from typing import Optional


class LoadTestError(Exception):
    """Base exception for the harness."""
    pass


class ConfigurationError(LoadTestError):
    """Invalid run configuration, rejected before any phase starts."""
    pass


class FatalStepError(LoadTestError):
    """A setup or teardown step failed and the run cannot continue."""

    def __init__(self, step: str, cause: Optional[BaseException] = None):
        self.step = step
        self.cause = cause
        message = f"{step} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
