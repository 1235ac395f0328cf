"""Import record ledger: one immutable entry per extracted row."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .models.record import ImportRecord, ProcessedRecord, RecordStatus
from .store import ImportStore

logger = logging.getLogger(__name__)


@dataclass
class LedgerSummary:
    """Counts of a job's ledger entries by status."""
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return self.by_status.get(RecordStatus.PROCESSED.value, 0)

    @property
    def failed(self) -> int:
        return self.by_status.get(RecordStatus.FAILED.value, 0)

    @property
    def skipped(self) -> int:
        return self.by_status.get(RecordStatus.SKIPPED.value, 0)

    @property
    def pending(self) -> int:
        return self.by_status.get(RecordStatus.PENDING.value, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "by_status": self.by_status}


class ImportLedger:
    """Writes and summarizes a job's ledger entries."""

    def __init__(self, store: ImportStore, chunk_size: int = 100):
        self.store = store
        self.chunk_size = chunk_size

    def write(self, tenant_id: str, job_id: str, records: List[ProcessedRecord]) -> int:
        """
        Freeze processed records into ledger entries, in chunks.

        Returns:
            Number of entries written

        Raises:
            LedgerError: If an entry already exists for a row of this job
        """
        entries = [ImportRecord.from_processed(r, tenant_id, job_id) for r in records]

        for i in range(0, len(entries), self.chunk_size):
            self.store.append_import_records(entries[i:i + self.chunk_size])

        logger.info(f"Wrote {len(entries)} ledger entries for job {job_id}")
        return len(entries)

    def summarize(self, tenant_id: str, job_id: str) -> LedgerSummary:
        """Recompute a job's counts from its ledger entries."""
        entries = self.store.list_import_records(tenant_id, job_id)
        counts = Counter(e.status.value for e in entries)
        return LedgerSummary(total=len(entries), by_status=dict(counts))
