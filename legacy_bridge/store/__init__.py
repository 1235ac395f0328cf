"""Persistence for jobs, ledger entries and canonical entities."""

from .base import ImportStore
from .memory import InMemoryStore

__all__ = ["ImportStore", "InMemoryStore"]
