"""
Run ID Utility for Catalog Reconciliation

Tags every log line emitted during a reconciliation run with the id of
that run, so interleaved output from repeated runs (for example a re-run
with a different scope) can be told apart.
"""

import contextvars
import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

# Context variable for the current run id
_run_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'run_id',
    default=None
)


def generate_run_id() -> str:
    """
    Generate a new run id.

    Returns:
        Short hex id (first 12 characters of a UUID4)
    """
    return uuid.uuid4().hex[:12]


def get_run_id() -> Optional[str]:
    """Return the run id of the current context, or None."""
    return _run_id.get()


def set_run_id(run_id: str) -> None:
    """
    Set the run id in the current context.

    Args:
        run_id: Run id to set

    Raises:
        ValueError: If run_id is empty or not a string
    """
    if not run_id or not isinstance(run_id, str):
        raise ValueError("Run id must be a non-empty string")

    _run_id.set(run_id)


def clear_run_id() -> None:
    """Clear the run id from context."""
    _run_id.set(None)


class RunContext:
    """
    Context manager scoping a run id.

    Restores the enclosing run id (or clears it) on exit.
    """

    def __init__(self, run_id: Optional[str] = None):
        """
        Args:
            run_id: Run id to use; a new one is generated if not provided
        """
        self.run_id = run_id
        self._token = None

    def __enter__(self) -> str:
        if not self.run_id:
            self.run_id = generate_run_id()
        self._token = _run_id.set(self.run_id)
        logger.debug(f"Entered run context: {self.run_id}")
        return self.run_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        _run_id.reset(self._token)
        logger.debug(f"Left run context: {self.run_id}")


class RunIdFilter(logging.Filter):
    """Logging filter adding the current run id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_run_id() or "N/A"
        return True
