"""Import orchestrator - owns the job lifecycle and sequences the pipeline phases."""

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from .config import PipelineSettings
from .errors import (
    ConfigurationError,
    CounterInvariantError,
    ImportCancelledError,
    ImportJobError,
    JobNotFoundError,
    JobStateError,
    LegacyBridgeError,
    PhaseTimeoutError,
)
from .extractors import BaseExtractor, get_extractor
from .ledger import ImportLedger
from .loaders import BatchImporter, WriteContext
from .models.job import (
    ImportJob,
    ImportJobConfig,
    JobResult,
    JobStatus,
    SourceSystemConfig,
    SourceSystemType,
)
from .models.mapping import TransformationRules
from .models.record import (
    ImportRecord,
    ProcessedRecord,
    RawRow,
    RecordStatus,
    TargetEntity,
)
from .progress import ImportPhase, ProgressCallback, ProgressReporter
from .services.duplicates import DuplicateDetector
from .services.quality import QualityScorer
from .services.transformer import TransformationEngine
from .services.validator import RecordValidator
from .store import ImportStore, InMemoryStore

logger = logging.getLogger(__name__)

ExtractorFactory = Callable[[SourceSystemConfig, Dict[str, Any]], BaseExtractor]


@dataclass
class JobPage:
    """One page of a tenant's jobs."""
    jobs: List[ImportJob] = field(default_factory=list)
    page: int = 1
    page_size: int = 20
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobs": [j.to_dict() for j in self.jobs],
            "pagination": {
                "page": self.page,
                "page_size": self.page_size,
                "total": self.total,
                "total_pages": self.total_pages,
            },
        }


class ImportOrchestrator:
    """
    Orchestrates legacy data import jobs.

    Handles:
    - Job creation and source configuration checks
    - Extraction through the connector for the source system
    - Per-record transformation, validation and quality scoring
    - Duplicate detection across the tenant and the run
    - Batched canonical writes
    - The import record ledger
    - Progress reporting, checkpoints, cancellation and timeouts
    """

    def __init__(
        self,
        store: Optional[ImportStore] = None,
        settings: Optional[PipelineSettings] = None,
        transformer: Optional[TransformationEngine] = None,
        validator: Optional[RecordValidator] = None,
        extractor_factory: ExtractorFactory = get_extractor
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Persistent store for jobs, ledger and canonical entities
            settings: Pipeline settings
            transformer: Transformation engine (custom enrichments registered on it)
            validator: Record validator (custom validators registered on it)
            extractor_factory: Builds the connector for a source config
        """
        self.store = store or InMemoryStore()
        self.settings = settings or PipelineSettings()
        self.transformer = transformer or TransformationEngine()
        self.validator = validator or RecordValidator()
        self.scorer = QualityScorer(self.settings.important_fields)
        self.detector = DuplicateDetector(self.settings.duplicate_threshold)
        self.importer = BatchImporter(self.store)
        self.ledger = ImportLedger(self.store, self.settings.ledger_chunk_size)
        self._extractor_factory = extractor_factory

    # Job management

    def create_import_job(
        self,
        tenant_id: str,
        config: Union[ImportJobConfig, Dict[str, Any]],
        actor_id: Optional[str] = None
    ) -> ImportJob:
        """
        Create a pending import job.

        Raises:
            ConfigurationError: If the job or source configuration is invalid
        """
        if isinstance(config, dict):
            try:
                config = ImportJobConfig.from_dict(config, self.settings.default_batch_size)
            except (KeyError, ValueError, TypeError) as e:
                raise ConfigurationError(f"Invalid import job configuration: {e}", e)

        self._validate_config(config)

        job = ImportJob(
            tenant_id=tenant_id,
            name=config.name,
            description=config.description,
            source_system=config.system_type,
            source_location=config.system_config.location,
            field_mapping=config.field_mappings,
            transformation_rules=TransformationRules.build(config.field_mappings, config.validation_rules),
            data_filters=config.data_filters,
            settings=config.import_settings,
            scheduled_start_time=config.scheduled_start_time,
            metadata={
                "system_config": config.system_config,
                "validation_rules": [r.to_dict() for r in config.validation_rules],
            },
            created_by=actor_id,
        )

        self.store.save_job(job)
        logger.info(f"Created import job {job.id} ({job.source_system.value}) for tenant {tenant_id}")
        return job

    def _validate_config(self, config: ImportJobConfig) -> None:
        if not config.name or not config.name.strip():
            raise ConfigurationError("Job name is required")

        if config.system_config.type != config.system_type:
            raise ConfigurationError(
                f"System config type {config.system_config.type.value} "
                f"does not match system type {config.system_type.value}"
            )

        errors = self._extractor_factory(config.system_config, config.data_filters).validate_config()
        if errors:
            raise ConfigurationError("; ".join(errors))

        settings = config.import_settings
        if not 1 <= settings.batch_size <= 1000:
            raise ConfigurationError("Batch size must be between 1 and 1000")
        if not 0 <= settings.quality_threshold <= 1:
            raise ConfigurationError("Quality threshold must be between 0 and 1")

    def get_job(self, tenant_id: str, job_id: str) -> ImportJob:
        """
        Get a tenant's job.

        Raises:
            JobNotFoundError: If the job does not exist for the tenant
        """
        job = self.store.get_job(tenant_id, job_id)
        if job is None:
            raise JobNotFoundError(f"Import job not found: {job_id}")
        return job

    def list_jobs(
        self,
        tenant_id: str,
        status: Optional[JobStatus] = None,
        source_system: Optional[SourceSystemType] = None,
        page: int = 1,
        page_size: int = 20
    ) -> JobPage:
        """List a tenant's jobs, newest first."""
        jobs = self.store.list_jobs(tenant_id)
        if status:
            jobs = [j for j in jobs if j.status == JobStatus(status)]
        if source_system:
            jobs = [j for j in jobs if j.source_system == SourceSystemType(source_system)]

        jobs.sort(key=lambda j: j.created_at, reverse=True)
        offset = (page - 1) * page_size

        return JobPage(
            jobs=jobs[offset:offset + page_size],
            page=page,
            page_size=page_size,
            total=len(jobs),
        )

    def get_job_progress(self, tenant_id: str, job_id: str) -> Dict[str, Any]:
        """Job snapshot with ledger counts by status and overall percentage."""
        job = self.get_job(tenant_id, job_id)
        summary = self.ledger.summarize(tenant_id, job_id)
        percentage = round(job.processed_records / job.total_records * 100) if job.total_records else 0

        return {
            "job": job,
            "record_stats": summary.by_status,
            "progress_percentage": percentage,
        }

    def list_import_records(
        self,
        tenant_id: str,
        job_id: str,
        status: Optional[RecordStatus] = None
    ) -> List[ImportRecord]:
        """Ledger entries of a tenant's job."""
        self.get_job(tenant_id, job_id)
        records = self.store.list_import_records(tenant_id, job_id)
        if status:
            records = [r for r in records if r.status == RecordStatus(status)]
        return records

    # Execution

    async def execute_import_job(
        self,
        tenant_id: str,
        job_id: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> JobResult:
        """
        Run a pending job through all phases.

        Args:
            tenant_id: Owning tenant
            job_id: Job to run
            on_progress: Sync or async callback receiving ImportProgress
            cancel_event: Set to cancel the job between batches

        Returns:
            JobResult with final counters

        Raises:
            JobNotFoundError: If the job does not exist
            JobStateError: If the job is not pending
            ImportJobError: If the run failed; the job is marked failed
        """
        job = self.get_job(tenant_id, job_id)
        if job.status != JobStatus.PENDING:
            raise JobStateError(f"Job {job_id} is {job.status.value}; only pending jobs can run")

        job.status = JobStatus.RUNNING
        job.actual_start_time = datetime.utcnow()
        self._checkpoint(job)

        reporter = ProgressReporter(job.id, on_progress)
        reporter.start()

        rows: List[RawRow] = []
        records: List[ProcessedRecord] = []
        phase = ImportPhase.EXTRACTION

        try:
            # Phase 1: Extraction
            logger.info("=== PHASE 1: EXTRACTION ===")
            reporter.report(phase, 0, 1, f"Extracting from {job.source_system.value} source")
            rows = await self._run_extraction(job)
            reporter.report(phase, 1, 1, f"Extracted {len(rows)} records")
            self._check_cancelled(cancel_event)

            # Phase 2: Transformation and validation
            phase = ImportPhase.TRANSFORMATION
            logger.info("=== PHASE 2: TRANSFORMATION ===")
            await self._with_timeout(
                self._run_transformation(job, rows, records, reporter, cancel_event),
                phase,
            )

            # Phase 3: Duplicate detection
            phase = ImportPhase.DUPLICATE_DETECTION
            logger.info("=== PHASE 3: DUPLICATE DETECTION ===")
            duplicates_found = await self._with_timeout(
                self._run_duplicate_detection(job, records, reporter),
                phase,
            )
            self._check_cancelled(cancel_event)

            # Phase 4: Import
            phase = ImportPhase.IMPORT
            logger.info("=== PHASE 4: IMPORT ===")
            imported = await self._with_timeout(
                self._run_import(job, records, reporter, cancel_event),
                phase,
            )

            # Phase 5: Ledger
            phase = ImportPhase.LEDGER
            logger.info("=== PHASE 5: LEDGER ===")
            await self._with_timeout(self._run_ledger(job, records, reporter), phase)

            self._finalize(job, records, duplicates_found, imported)
            logger.info(f"=== IMPORT COMPLETED: {job.successful_records}/{job.total_records} imported ===")

            return JobResult(
                success=True,
                total_processed=job.processed_records,
                successful_records=job.successful_records,
                failed_records=job.failed_records,
                warnings=list(job.warning_log),
                errors=list(job.error_log),
            )

        except Exception as e:
            logger.error(f"Import job {job.id} failed during {phase.value}: {e}")
            self._fail(job, phase, e, rows, records)
            raise ImportJobError(job.id, f"Import job failed during {phase.value}: {e}", e) from e

        finally:
            await reporter.close()

    async def _with_timeout(self, coro, phase: ImportPhase, timeout: Optional[float] = None):
        timeout = timeout if timeout is not None else self.settings.phase_timeout
        if timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout)
        except asyncio.TimeoutError as e:
            raise PhaseTimeoutError(f"{phase.value} phase exceeded {timeout}s", e)

    def _check_cancelled(self, cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ImportCancelledError("Import job was cancelled")

    def _checkpoint(self, job: ImportJob, strict: bool = True) -> None:
        """
        Persist the job snapshot, counters set by absolute assignment.

        Raises:
            CounterInvariantError: If the counters are out of balance; the
                snapshot is not saved. Non-strict saves log instead, so a
                failed job is always persisted.
        """
        if not job.counters_consistent():
            message = (
                f"Job {job.id} counters inconsistent: total={job.total_records} "
                f"processed={job.processed_records} successful={job.successful_records} "
                f"failed={job.failed_records}"
            )
            if strict:
                raise CounterInvariantError(message)
            logger.error(message)
        job.updated_at = datetime.utcnow()
        self.store.save_job(job)

    async def _run_extraction(self, job: ImportJob) -> List[RawRow]:
        """Run the extraction phase."""
        extractor = self._extractor_factory(job.system_config, job.data_filters)
        result = await self._with_timeout(
            asyncio.to_thread(extractor.extract),
            ImportPhase.EXTRACTION,
            timeout=self.settings.extraction_timeout,
        )

        job.total_records = result.total_extracted
        job.warning_log.extend(result.warnings)
        if result.filtered_out:
            job.warning_log.append(f"{result.filtered_out} rows excluded by data filters")
        self._checkpoint(job)

        logger.info(f"Extracted {result.total_extracted} rows from {job.source_location}")
        return result.rows

    def _process_row(self, row: RawRow, job: ImportJob) -> ProcessedRecord:
        """Transform, validate and score one row; runs on a worker thread."""
        rules = job.transformation_rules
        try:
            record = self.transformer.transform_record(row, rules)
            if job.settings.validate_data:
                self.validator.validate_record(record.transformed_data, rules.validations, record.validation)
        except Exception as e:
            logger.error(f"Row {row.row_id}: processing failed: {e}")
            record = ProcessedRecord(source=row)
            record.validation.add_error(f"Processing failed: {e}")

        self.scorer.score_record(record)
        return record

    async def _run_transformation(
        self,
        job: ImportJob,
        rows: List[RawRow],
        records: List[ProcessedRecord],
        reporter: ProgressReporter,
        cancel_event: Optional[asyncio.Event]
    ) -> None:
        """Run the transformation phase, batch by batch."""
        loop = asyncio.get_running_loop()
        total = len(rows)
        batch_size = job.settings.batch_size
        pool = ThreadPoolExecutor(max_workers=self.settings.max_workers)

        try:
            for i in range(0, total, batch_size):
                self._check_cancelled(cancel_event)
                batch = rows[i:i + batch_size]

                results = await asyncio.gather(*[
                    loop.run_in_executor(pool, self._process_row, row, job)
                    for row in batch
                ])
                records.extend(results)

                job.processed_records = len(records)
                job.failed_records = sum(1 for r in records if not r.validation.is_valid)
                self._checkpoint(job)

                reporter.report(
                    ImportPhase.TRANSFORMATION,
                    len(records),
                    total,
                    f"Transformed {len(records)}/{total} records",
                )
        finally:
            pool.shutdown(wait=False)

        invalid = job.failed_records
        logger.info(f"Transformed {len(records)} records ({invalid} invalid)")

    async def _run_duplicate_detection(
        self,
        job: ImportJob,
        records: List[ProcessedRecord],
        reporter: ProgressReporter
    ) -> int:
        """Run the duplicate detection phase."""
        reporter.report(ImportPhase.DUPLICATE_DETECTION, 0, len(records), "Checking for duplicates")

        existing = {
            entity: self.store.list_entities(job.tenant_id, entity)
            for entity in TargetEntity
        }
        found = await asyncio.to_thread(self.detector.detect, records, existing)

        reporter.report(
            ImportPhase.DUPLICATE_DETECTION,
            len(records),
            len(records),
            f"Found {found} potential duplicates",
        )
        logger.info(f"Found {found} potential duplicates")
        return found

    async def _run_import(
        self,
        job: ImportJob,
        records: List[ProcessedRecord],
        reporter: ProgressReporter,
        cancel_event: Optional[asyncio.Event]
    ) -> int:
        """Run the import phase, batch by batch."""
        eligible = self.importer.select(records, job.settings)
        invalid = sum(1 for r in records if not r.validation.is_valid)

        if not eligible:
            reporter.report(ImportPhase.IMPORT, 0, 0, "No records eligible for import")
            return 0

        context = WriteContext(
            tenant_id=job.tenant_id,
            job_id=job.id,
            source_system=job.source_system,
            update_existing=job.settings.update_existing,
        )

        done = 0
        succeeded = 0
        write_failed = 0

        for batch_number, batch in enumerate(self.importer.chunks(eligible, job.settings.batch_size), start=1):
            self._check_cancelled(cancel_event)

            result = await asyncio.to_thread(self.importer.load_batch, batch, context, batch_number)

            done += result.total_attempted
            succeeded += result.total_succeeded
            write_failed += result.total_failed
            job.error_log.extend(f"Row {e['record_id']}: {e['error']}" for e in result.errors)

            job.successful_records = succeeded
            job.failed_records = invalid + write_failed
            self._checkpoint(job)

            reporter.report(
                ImportPhase.IMPORT,
                done,
                len(eligible),
                f"Imported batch {batch_number} ({done}/{len(eligible)} records)",
            )

        logger.info(f"Imported {succeeded}/{len(eligible)} eligible records ({write_failed} write failures)")
        return succeeded

    async def _run_ledger(
        self,
        job: ImportJob,
        records: List[ProcessedRecord],
        reporter: ProgressReporter
    ) -> None:
        """Run the ledger phase."""
        reporter.report(ImportPhase.LEDGER, 0, len(records), "Writing import ledger")
        await asyncio.to_thread(self.ledger.write, job.tenant_id, job.id, records)
        reporter.report(ImportPhase.LEDGER, len(records), len(records), "Import ledger written")

    def _apply_ledger_counters(self, job: ImportJob) -> None:
        summary = self.ledger.summarize(job.tenant_id, job.id)
        job.processed_records = summary.total
        job.successful_records = summary.processed
        job.failed_records = summary.failed

    def _finalize(
        self,
        job: ImportJob,
        records: List[ProcessedRecord],
        duplicates_found: int,
        imported: int
    ) -> None:
        """Mark the job completed with counters recomputed from the ledger."""
        self._apply_ledger_counters(job)

        for record in records:
            if record.import_status == RecordStatus.FAILED and record.rejection_reason:
                if not record.rejection_reason.startswith("Write failed"):
                    job.error_log.append(f"Row {record.row_id}: {record.rejection_reason}")
            elif record.import_status == RecordStatus.SKIPPED:
                job.warning_log.append(f"Row {record.row_id}: {record.rejection_reason}")

        threshold = job.settings.quality_threshold
        job.status = JobStatus.COMPLETED
        job.completion_time = datetime.utcnow()
        job.import_summary = {
            "total_extracted": job.total_records,
            "valid_records": sum(1 for r in records if r.validation.is_valid),
            "imported": imported,
            "duplicates_found": duplicates_found,
            "quality_rejections": sum(
                1 for r in records
                if r.validation.is_valid and r.validation.quality_score < threshold
            ),
            "awaiting_review": sum(1 for r in records if r.import_status == RecordStatus.PENDING),
            "duration_ms": int(job.duration_seconds * 1000),
        }
        self._checkpoint(job)

    def _fail(
        self,
        job: ImportJob,
        phase: ImportPhase,
        error: Exception,
        rows: List[RawRow],
        records: List[ProcessedRecord]
    ) -> None:
        """Mark the job failed, ledgering every extracted row not yet ledgered."""
        message = error.message if isinstance(error, LegacyBridgeError) else str(error)
        job.status = JobStatus.FAILED
        job.completion_time = datetime.utcnow()
        job.error_log.append(f"{phase.value}: {message}")

        # Rows the run never reached get a bare record so they are ledgered too
        reached = {r.row_id for r in records}
        records = records + [ProcessedRecord(source=row) for row in rows if row.row_id not in reached]

        if records:
            ledgered = {e.source_record_id for e in self.store.list_import_records(job.tenant_id, job.id)}
            unledgered = [r for r in records if r.row_id not in ledgered]
            for record in unledgered:
                if record.import_status == RecordStatus.PENDING and record.rejection_reason is None:
                    record.reject(RecordStatus.FAILED, f"Job aborted: {message}")
            try:
                self.ledger.write(job.tenant_id, job.id, unledgered)
                self._apply_ledger_counters(job)
            except LegacyBridgeError as ledger_error:
                logger.error(f"Could not write ledger for failed job {job.id}: {ledger_error}")
                job.error_log.append(f"ledger: {ledger_error.message}")

        self._checkpoint(job, strict=False)
