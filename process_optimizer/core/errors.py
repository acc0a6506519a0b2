"""Error taxonomy shared by the store, the optimization gateway and the API.

Each error carries a short, user-presentable ``message``. Internal details
(SQL, raw generator payloads, tracebacks) go to the log, never into the message.
"""

from __future__ import annotations


class DiagramError(Exception):
    """Base class for all domain errors raised by the core services."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DiagramError):
    """Referenced diagram or version does not exist."""


class ValidationError(DiagramError):
    """Malformed or missing required input (non-numeric id, blank markup, ...)."""


class StorageError(DiagramError):
    """Underlying persistence failure."""


class VersionConflictError(StorageError):
    """Concurrent saves kept colliding on the same diagram; safe to retry."""


class OptimizationError(DiagramError):
    """Generative service unreachable or its output failed validation."""
