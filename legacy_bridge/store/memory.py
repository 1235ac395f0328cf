"""In-memory store implementation."""

import copy
import threading
import uuid
import logging
from typing import Any, Dict, List, Optional, Tuple

from .base import ImportStore
from ..errors import LedgerError, WriteError
from ..models.job import ImportJob
from ..models.record import ImportRecord, TargetEntity

logger = logging.getLogger(__name__)


class InMemoryStore(ImportStore):
    """
    Thread-safe store holding everything in process memory.

    Jobs are stored and returned as copies, so a caller holding a job
    never sees later writes until it reads again.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: Dict[str, ImportJob] = {}
        self._records: Dict[Tuple[str, str], ImportRecord] = {}
        self._entities: Dict[Tuple[str, TargetEntity], Dict[str, Dict[str, Any]]] = {}

    def save_job(self, job: ImportJob) -> None:
        with self._lock:
            self._jobs[job.id] = copy.deepcopy(job)

    def get_job(self, tenant_id: str, job_id: str) -> Optional[ImportJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.tenant_id != tenant_id:
                return None
            return copy.deepcopy(job)

    def list_jobs(self, tenant_id: str) -> List[ImportJob]:
        with self._lock:
            return [copy.deepcopy(j) for j in self._jobs.values() if j.tenant_id == tenant_id]

    def append_import_records(self, records: List[ImportRecord]) -> None:
        with self._lock:
            keys = [(r.job_id, r.source_record_id) for r in records]
            if len(set(keys)) != len(keys):
                raise LedgerError("Duplicate source rows in ledger chunk")
            existing = [k for k in keys if k in self._records]
            if existing:
                job_id, row_id = existing[0]
                raise LedgerError(f"Ledger entry already exists for job {job_id}, row {row_id}")
            for key, record in zip(keys, records):
                self._records[key] = record

    def list_import_records(self, tenant_id: str, job_id: str) -> List[ImportRecord]:
        with self._lock:
            return [
                r for (jid, _), r in self._records.items()
                if jid == job_id and r.tenant_id == tenant_id
            ]

    def create_entity(self, tenant_id: str, entity_type: TargetEntity, data: Dict[str, Any]) -> str:
        entity_id = str(uuid.uuid4())
        with self._lock:
            bucket = self._entities.setdefault((tenant_id, entity_type), {})
            bucket[entity_id] = {**copy.deepcopy(data), "id": entity_id}
        return entity_id

    def update_entity(
        self,
        tenant_id: str,
        entity_type: TargetEntity,
        entity_id: str,
        data: Dict[str, Any]
    ) -> None:
        with self._lock:
            bucket = self._entities.get((tenant_id, entity_type), {})
            if entity_id not in bucket:
                raise WriteError(f"{entity_type.value} {entity_id} not found")
            bucket[entity_id].update(copy.deepcopy(data))
            bucket[entity_id]["id"] = entity_id

    def list_entities(self, tenant_id: str, entity_type: TargetEntity) -> List[Dict[str, Any]]:
        with self._lock:
            bucket = self._entities.get((tenant_id, entity_type), {})
            return [copy.deepcopy(e) for e in bucket.values()]
