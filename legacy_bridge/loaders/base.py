"""Base writer interface for canonical entities."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
import logging

from ..errors import WriteError
from ..models.job import SourceSystemType
from ..models.record import ProcessedRecord, TargetEntity
from ..store import ImportStore

logger = logging.getLogger(__name__)


@dataclass
class WriteContext:
    """Job-level facts a writer needs for every record."""
    tenant_id: str
    job_id: str
    source_system: SourceSystemType
    update_existing: bool = False


@dataclass
class LoadResult:
    """Result of writing one batch."""
    batch_number: int
    total_attempted: int = 0
    total_succeeded: int = 0
    total_failed: int = 0
    created_ids: List[str] = field(default_factory=list)
    updated_ids: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_number": self.batch_number,
            "total_attempted": self.total_attempted,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "created_ids": self.created_ids,
            "updated_ids": self.updated_ids,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }


def _present(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and value.strip() == "")


class EntityWriter(ABC):
    """
    Base class for canonical entity writers.

    A writer turns a processed record into the payload of one canonical
    entity and creates it, or updates the existing entity the record
    duplicates when the job allows updates.
    """

    entity_type: TargetEntity
    required_fields: Tuple[str, ...] = ()

    @abstractmethod
    def build_payload(self, record: ProcessedRecord, context: WriteContext) -> Dict[str, Any]:
        """Build the canonical entity payload for a record."""
        pass

    def migration_info(self, record: ProcessedRecord, context: WriteContext) -> Dict[str, Any]:
        """Provenance stored on every imported entity."""
        return {
            "migration_status": "migrated",
            "legacy_system_info": {
                "source_system": context.source_system.value,
                "job_id": context.job_id,
                "source_record_id": record.row_id,
                "imported_at": datetime.utcnow().isoformat(),
            },
        }

    def write(self, store: ImportStore, record: ProcessedRecord, context: WriteContext) -> Tuple[str, bool]:
        """
        Write one record.

        Returns:
            (canonical id, created) where created is False for updates

        Raises:
            WriteError: If the payload is incomplete or the store rejects it
        """
        payload = self.build_payload(record, context)

        missing = [name for name in self.required_fields if not _present(payload.get(name))]
        if missing:
            raise WriteError(f"{self.entity_type.value} is missing required fields: {', '.join(missing)}")

        payload = {k: v for k, v in payload.items() if v is not None}
        existing_id = record.duplicate_info.existing_entity_id

        if context.update_existing and existing_id:
            store.update_entity(context.tenant_id, self.entity_type, existing_id, payload)
            return existing_id, False

        return store.create_entity(context.tenant_id, self.entity_type, payload), True
