"""Persistent store interface used by the import pipeline."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models.job import ImportJob
from ..models.record import ImportRecord, TargetEntity


class ImportStore(ABC):
    """
    Tenant-scoped persistence for jobs, ledger entries and canonical entities.

    Every read is scoped by tenant id; a job or entity of another tenant
    is invisible.
    """

    # Jobs

    @abstractmethod
    def save_job(self, job: ImportJob) -> None:
        """Insert or replace a job snapshot."""
        pass

    @abstractmethod
    def get_job(self, tenant_id: str, job_id: str) -> Optional[ImportJob]:
        pass

    @abstractmethod
    def list_jobs(self, tenant_id: str) -> List[ImportJob]:
        pass

    # Ledger

    @abstractmethod
    def append_import_records(self, records: List[ImportRecord]) -> None:
        """
        Append ledger entries.

        Raises:
            LedgerError: If an entry already exists for a (job id, source row id)
        """
        pass

    @abstractmethod
    def list_import_records(self, tenant_id: str, job_id: str) -> List[ImportRecord]:
        pass

    # Canonical entities

    @abstractmethod
    def create_entity(self, tenant_id: str, entity_type: TargetEntity, data: Dict[str, Any]) -> str:
        """Create a canonical entity and return its id."""
        pass

    @abstractmethod
    def update_entity(
        self,
        tenant_id: str,
        entity_type: TargetEntity,
        entity_id: str,
        data: Dict[str, Any]
    ) -> None:
        """
        Merge data into an existing canonical entity.

        Raises:
            WriteError: If the entity does not exist
        """
        pass

    @abstractmethod
    def list_entities(self, tenant_id: str, entity_type: TargetEntity) -> List[Dict[str, Any]]:
        """All entities of a type for a tenant, each including its "id"."""
        pass
