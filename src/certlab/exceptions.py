"""Error taxonomy for the progress engine."""

from __future__ import annotations


class ProgressError(Exception):
    """Base class for all engine errors."""


class ValidationError(ProgressError, ValueError):
    """Invalid input to a claim-style operation (e.g. unknown reward day)."""


class ConflictError(ProgressError, ValueError):
    """A uniqueness rule was violated (e.g. reward already claimed)."""


class DependencyError(ProgressError, RuntimeError):
    """The persistence collaborator failed. Never retried by the engine."""
