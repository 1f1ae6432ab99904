"""Persistence collaborators for the progress engine."""

from certlab.storage.interface import ProgressStore
from certlab.storage.memory import InMemoryProgressStore

__all__ = ["InMemoryProgressStore", "ProgressStore"]
