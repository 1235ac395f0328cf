"""Batch importer: selects eligible records and writes them in chunks."""

import logging
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from .base import EntityWriter, LoadResult, WriteContext
from .writers import DEFAULT_WRITERS
from ..models.job import ImportSettings
from ..models.record import ProcessedRecord, RecordStatus, TargetEntity
from ..store import ImportStore

logger = logging.getLogger(__name__)


def rejection_for(record: ProcessedRecord, settings: ImportSettings) -> Optional[str]:
    """
    Decide whether a record is excluded from import.

    Returns None for eligible records; otherwise marks the record with its
    final status and returns the reason.
    """
    if not record.validation.is_valid:
        reason = "Validation failed: " + "; ".join(record.validation.errors)
        record.reject(RecordStatus.FAILED, reason)
        return reason

    score = record.validation.quality_score
    if score < settings.quality_threshold:
        reason = f"Quality score {score} below threshold {settings.quality_threshold}"
        record.reject(RecordStatus.SKIPPED, reason)
        return reason

    dup = record.duplicate_info
    if settings.skip_duplicates and dup.is_duplicate:
        reason = f"Duplicate of {dup.duplicate_of} (similarity {dup.similarity})"
        record.reject(RecordStatus.SKIPPED, reason)
        return reason

    return None


class BatchImporter:
    """
    Writes eligible records to the canonical store through per-entity writers.

    A failed write is recorded on the record and the batch continues.
    """

    def __init__(self, store: ImportStore, writers: Optional[Dict[TargetEntity, EntityWriter]] = None):
        self.store = store
        self.writers = writers or DEFAULT_WRITERS

    def select(self, records: List[ProcessedRecord], settings: ImportSettings) -> List[ProcessedRecord]:
        """
        Select records eligible for import.

        With manual review required, eligible records are held as pending
        and nothing is selected.
        """
        eligible = [r for r in records if rejection_for(r, settings) is None]

        if settings.manual_review_required:
            for record in eligible:
                record.reject(RecordStatus.PENDING, "Awaiting manual review")
            logger.info(f"Holding {len(eligible)} eligible records for manual review")
            return []

        return eligible

    @staticmethod
    def chunks(records: List[ProcessedRecord], size: int) -> Iterator[List[ProcessedRecord]]:
        """Split records into batches of at most size."""
        for i in range(0, len(records), size):
            yield records[i:i + size]

    def load_batch(
        self,
        batch: List[ProcessedRecord],
        context: WriteContext,
        batch_number: int = 1
    ) -> LoadResult:
        """
        Write a batch of records.

        Args:
            batch: Eligible records
            context: Job-level write context
            batch_number: Position of the batch, for reporting

        Returns:
            LoadResult with batch statistics
        """
        result = LoadResult(batch_number=batch_number)
        result.started_at = datetime.utcnow()

        for record in batch:
            result.total_attempted += 1
            try:
                writer = self.writers[record.target_entity]
                canonical_id, created = writer.write(self.store, record, context)
                record.mark_imported(canonical_id)
                result.total_succeeded += 1
                (result.created_ids if created else result.updated_ids).append(canonical_id)

            except Exception as e:
                result.total_failed += 1
                record.reject(RecordStatus.FAILED, f"Write failed: {e}")
                result.errors.append({
                    "record_id": record.row_id,
                    "error": str(e),
                })
                logger.error(f"Failed to write {record.target_entity.value} for row {record.row_id}: {e}")

        result.completed_at = datetime.utcnow()
        return result
