"""Canonical entity writers and the batch importer."""

from .base import EntityWriter, LoadResult, WriteContext
from .writers import BusinessWriter, ClientWriter, TransactionWriter, DEFAULT_WRITERS
from .importer import BatchImporter, rejection_for

__all__ = [
    "EntityWriter",
    "LoadResult",
    "WriteContext",
    "BusinessWriter",
    "ClientWriter",
    "TransactionWriter",
    "DEFAULT_WRITERS",
    "BatchImporter",
    "rejection_for",
]
