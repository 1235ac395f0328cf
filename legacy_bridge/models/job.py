"""Import job models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import uuid

from .mapping import (
    MappingTemplateSet,
    TransformationRules,
    ValidationRule,
    _get,
)


class SourceSystemType(str, Enum):
    """Legacy systems a job can import from."""
    DESKTOP_BOOKKEEPING = "desktop_bookkeeping"  # QuickBooks Desktop style
    ONLINE_BOOKKEEPING = "online_bookkeeping"  # QuickBooks Online style REST API
    SPREADSHEET = "spreadsheet"
    CSV = "csv"
    PAPER_MANUAL = "paper_manual"  # Manually keyed records
    OTHER_ACCOUNTING_PACKAGE = "other_accounting_package"  # Sage 50, Simply Accounting
    CUSTOM_DATABASE = "custom_database"


class JobStatus(str, Enum):
    """Lifecycle status of an import job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class SourceSystemConfig:
    """Where and how to reach a legacy source."""
    type: SourceSystemType
    file_path: Optional[str] = None
    connection_string: Optional[str] = None
    credentials: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> Optional[str]:
        return self.file_path or self.connection_string

    def to_dict(self) -> Dict[str, Any]:
        # Credentials are never echoed back
        return {
            "type": self.type.value,
            "file_path": self.file_path,
            "connection_string": self.connection_string,
            "settings": self.settings,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceSystemConfig":
        return cls(
            type=SourceSystemType(data["type"]),
            file_path=_get(data, "file_path", "filePath"),
            connection_string=_get(data, "connection_string", "connectionString"),
            credentials=dict(data.get("credentials") or {}),
            settings=dict(data.get("settings") or {}),
        )


@dataclass
class ImportSettings:
    """Behavioral settings of an import job."""
    batch_size: int = 100
    validate_data: bool = True
    skip_duplicates: bool = True
    update_existing: bool = False
    quality_threshold: float = 0.95
    manual_review_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_size": self.batch_size,
            "validate_data": self.validate_data,
            "skip_duplicates": self.skip_duplicates,
            "update_existing": self.update_existing,
            "quality_threshold": self.quality_threshold,
            "manual_review_required": self.manual_review_required,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_batch_size: int = 100) -> "ImportSettings":
        threshold = _get(data, "quality_threshold", "qualityThreshold")
        return cls(
            batch_size=_get(data, "batch_size", "batchSize") or default_batch_size,
            validate_data=_get(data, "validate_data", "validateData", True),
            skip_duplicates=_get(data, "skip_duplicates", "skipDuplicates", True),
            update_existing=_get(data, "update_existing", "updateExisting", False),
            quality_threshold=0.95 if threshold is None else float(threshold),
            manual_review_required=_get(data, "manual_review_required", "manualReviewRequired", False),
        )


@dataclass
class ImportJobConfig:
    """Operator-supplied configuration for a new import job."""
    name: str
    system_type: SourceSystemType
    system_config: SourceSystemConfig
    description: str = ""
    field_mappings: MappingTemplateSet = field(default_factory=MappingTemplateSet)
    validation_rules: List[ValidationRule] = field(default_factory=list)
    import_settings: ImportSettings = field(default_factory=ImportSettings)
    data_filters: Dict[str, Any] = field(default_factory=dict)
    scheduled_start_time: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_batch_size: int = 100) -> "ImportJobConfig":
        """Create from dictionary representation (snake_case or camelCase keys)."""
        system_type = SourceSystemType(_get(data, "system_type", "systemType"))
        system_config_data = dict(_get(data, "system_config", "systemConfig", {}) or {})
        system_config_data.setdefault("type", system_type.value)

        mappings = _get(data, "field_mappings", "fieldMappings", {}) or {}
        if isinstance(mappings, list):
            # A flat list is treated as client mappings
            mappings = {"client_mappings": mappings}

        scheduled = _get(data, "scheduled_start_time", "scheduledStartTime")
        if isinstance(scheduled, str):
            scheduled = datetime.fromisoformat(scheduled)

        return cls(
            name=data.get("name", ""),
            description=data.get("description", "") or "",
            system_type=system_type,
            system_config=SourceSystemConfig.from_dict(system_config_data),
            field_mappings=MappingTemplateSet.from_dict(mappings),
            validation_rules=[
                ValidationRule.from_dict(r)
                for r in _get(data, "validation_rules", "validationRules", []) or []
            ],
            import_settings=ImportSettings.from_dict(
                _get(data, "import_settings", "importSettings", {}) or {},
                default_batch_size=default_batch_size,
            ),
            data_filters=dict(_get(data, "data_filters", "dataFilters", {}) or {}),
            scheduled_start_time=scheduled,
        )


@dataclass
class ImportJob:
    """One legacy data migration run for a tenant."""
    tenant_id: str
    name: str
    source_system: SourceSystemType
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    description: str = ""
    source_location: Optional[str] = None
    field_mapping: MappingTemplateSet = field(default_factory=MappingTemplateSet)
    transformation_rules: TransformationRules = field(default_factory=TransformationRules)
    data_filters: Dict[str, Any] = field(default_factory=dict)
    settings: ImportSettings = field(default_factory=ImportSettings)
    status: JobStatus = JobStatus.PENDING

    # Timing
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    scheduled_start_time: Optional[datetime] = None
    actual_start_time: Optional[datetime] = None
    completion_time: Optional[datetime] = None

    # Counters
    total_records: int = 0
    processed_records: int = 0
    successful_records: int = 0
    failed_records: int = 0

    # Outcome
    error_log: List[str] = field(default_factory=list)
    warning_log: List[str] = field(default_factory=list)
    import_summary: Dict[str, Any] = field(default_factory=dict)

    metadata: Dict[str, Any] = field(default_factory=dict)
    created_by: Optional[str] = None

    @property
    def system_config(self) -> SourceSystemConfig:
        """The source system config captured at creation time."""
        return self.metadata["system_config"]

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.actual_start_time and self.completion_time:
            return (self.completion_time - self.actual_start_time).total_seconds()
        return None

    def counters_consistent(self) -> bool:
        """Check successful + failed <= processed <= total."""
        return (
            self.successful_records + self.failed_records
            <= self.processed_records
            <= self.total_records
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "source_system": self.source_system.value,
            "source_location": self.source_location,
            "field_mapping": self.field_mapping.to_dict(),
            "transformation_rules": self.transformation_rules.to_dict(),
            "data_filters": self.data_filters,
            **self.settings.to_dict(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "scheduled_start_time": self.scheduled_start_time.isoformat() if self.scheduled_start_time else None,
            "actual_start_time": self.actual_start_time.isoformat() if self.actual_start_time else None,
            "completion_time": self.completion_time.isoformat() if self.completion_time else None,
            "total_records": self.total_records,
            "processed_records": self.processed_records,
            "successful_records": self.successful_records,
            "failed_records": self.failed_records,
            "error_log": self.error_log,
            "warning_log": self.warning_log,
            "import_summary": self.import_summary,
            "created_by": self.created_by,
        }


@dataclass
class JobResult:
    """Outcome of executing an import job."""
    success: bool
    total_processed: int = 0
    successful_records: int = 0
    failed_records: int = 0
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total_processed": self.total_processed,
            "successful_records": self.successful_records,
            "failed_records": self.failed_records,
            "warnings": self.warnings,
            "errors": self.errors,
        }


@dataclass(frozen=True)
class ImportProgress:
    """A progress notification sent to the job's observer."""
    job_id: str
    phase: str
    completed: int
    total: int
    percentage: float
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "phase": self.phase,
            "completed": self.completed,
            "total": self.total,
            "percentage": self.percentage,
            "message": self.message,
        }
