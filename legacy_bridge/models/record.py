"""Record models for legacy import data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import date, datetime
from decimal import Decimal


def plain_value(value: Any) -> Any:
    """Convert dates and decimals to JSON-friendly values."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class ValueKind(str, Enum):
    """Tag of a raw legacy value."""
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    NULL = "null"
    UNKNOWN = "unknown"


class TargetEntity(str, Enum):
    """Canonical entity a record is imported into."""
    CLIENT = "client"
    BUSINESS = "business"
    TRANSACTION = "transaction"


class RecordStatus(str, Enum):
    """Final status of a record in the import ledger."""
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FieldValue:
    """A raw value from a legacy source, tagged with its kind."""
    kind: ValueKind
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> "FieldValue":
        """Wrap a Python value, classifying it by type."""
        if isinstance(value, FieldValue):
            return value
        if value is None:
            return cls(ValueKind.NULL)
        if isinstance(value, str):
            if value.strip() == "":
                return cls(ValueKind.NULL)
            return cls(ValueKind.STRING, value)
        # bool is an int subclass; legacy checkboxes stay opaque
        if isinstance(value, bool):
            return cls(ValueKind.UNKNOWN, value)
        if isinstance(value, (int, float, Decimal)):
            return cls(ValueKind.NUMBER, value)
        if isinstance(value, (date, datetime)):
            return cls(ValueKind.DATE, value)
        return cls(ValueKind.UNKNOWN, value)

    @property
    def is_null(self) -> bool:
        return self.kind == ValueKind.NULL

    def as_text(self) -> Optional[str]:
        """Render the value as text, or None for nulls."""
        if self.kind == ValueKind.NULL:
            return None
        if self.kind == ValueKind.DATE:
            return self.value.isoformat()
        return str(self.value)

    def to_plain(self) -> Any:
        """Convert back to a JSON-friendly Python value."""
        if self.kind == ValueKind.NULL:
            return None
        return plain_value(self.value)


@dataclass
class RawRow:
    """A single row extracted from a legacy source."""
    row_id: str
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    source_ref: Optional[str] = None  # id_column value; row_id stays unique per extraction

    @classmethod
    def from_mapping(cls, row_id: str, data: Dict[str, Any]) -> "RawRow":
        """Build a row from an untyped mapping, tagging every value."""
        return cls(
            row_id=str(row_id),
            fields={str(k): FieldValue.of(v) for k, v in data.items() if k is not None},
        )

    def get(self, name: str) -> FieldValue:
        """Get a field, treating absent fields as null."""
        return self.fields.get(name, FieldValue(ValueKind.NULL))

    def to_plain(self) -> Dict[str, Any]:
        """Opaque original payload, as stored in the ledger."""
        return {k: v.to_plain() for k, v in self.fields.items()}


@dataclass
class ValidationResult:
    """Outcome of transformation, validation and scoring for one record."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    quality_score: float = 1.0

    def add_error(self, message: str) -> None:
        """Add an error and mark the record invalid."""
        self.errors.append(message)
        self.is_valid = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "quality_score": self.quality_score,
        }


@dataclass
class DuplicateInfo:
    """Duplicate detection verdict for one record."""
    is_duplicate: bool = False
    duplicate_of: Optional[str] = None  # "client:<id>" or "row:<source row id>"
    similarity: float = 0.0

    @property
    def existing_entity_id(self) -> Optional[str]:
        """Canonical id of the matched entity, if the match is not another row."""
        if not self.duplicate_of or self.duplicate_of.startswith("row:"):
            return None
        return self.duplicate_of.split(":", 1)[1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_duplicate": self.is_duplicate,
            "duplicate_of": self.duplicate_of,
            "similarity": self.similarity,
        }


@dataclass
class ProcessedRecord:
    """
    A source row as it moves through one job execution.

    Lives only in memory for the duration of a run; the ledger entry is
    the durable trace.
    """
    source: RawRow
    transformed_data: Dict[str, Any] = field(default_factory=dict)
    validation: ValidationResult = field(default_factory=ValidationResult)
    duplicate_info: DuplicateInfo = field(default_factory=DuplicateInfo)
    target_entity: TargetEntity = TargetEntity.CLIENT
    import_status: RecordStatus = RecordStatus.PENDING
    rejection_reason: Optional[str] = None
    canonical_id: Optional[str] = None
    processed_at: Optional[datetime] = None

    @property
    def row_id(self) -> str:
        return self.source.row_id

    def reject(self, status: RecordStatus, reason: str) -> None:
        """Exclude the record from import."""
        self.import_status = status
        self.rejection_reason = reason

    def mark_imported(self, canonical_id: str) -> None:
        """Record a successful canonical write."""
        self.import_status = RecordStatus.PROCESSED
        self.canonical_id = canonical_id
        self.processed_at = datetime.utcnow()


@dataclass(frozen=True)
class ImportRecord:
    """
    Ledger entry: the audited fate of one source row.

    Written once per job and row; never updated in place.
    """
    tenant_id: str
    job_id: str
    source_record_id: str
    record_type: TargetEntity
    status: RecordStatus
    source_data: Dict[str, Any]
    transformed_data: Dict[str, Any]
    quality_score: float
    source_ref: Optional[str] = None
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    is_duplicate: bool = False
    duplicate_of: Optional[str] = None
    similarity: float = 0.0
    rejection_reason: Optional[str] = None
    canonical_id: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_processed(
        cls,
        record: ProcessedRecord,
        tenant_id: str,
        job_id: str
    ) -> "ImportRecord":
        """Freeze a processed record into a ledger entry."""
        return cls(
            tenant_id=tenant_id,
            job_id=job_id,
            source_record_id=record.row_id,
            source_ref=record.source.source_ref,
            record_type=record.target_entity,
            status=record.import_status,
            source_data=record.source.to_plain(),
            transformed_data={k: plain_value(v) for k, v in record.transformed_data.items()},
            quality_score=record.validation.quality_score,
            validation_errors=list(record.validation.errors),
            validation_warnings=list(record.validation.warnings),
            is_duplicate=record.duplicate_info.is_duplicate,
            duplicate_of=record.duplicate_info.duplicate_of,
            similarity=record.duplicate_info.similarity,
            rejection_reason=record.rejection_reason,
            canonical_id=record.canonical_id,
            processed_at=record.processed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "tenant_id": self.tenant_id,
            "job_id": self.job_id,
            "source_record_id": self.source_record_id,
            "source_ref": self.source_ref,
            "record_type": self.record_type.value,
            "status": self.status.value,
            "source_data": self.source_data,
            "transformed_data": self.transformed_data,
            "quality_score": self.quality_score,
            "validation_errors": self.validation_errors,
            "validation_warnings": self.validation_warnings,
            "is_duplicate": self.is_duplicate,
            "duplicate_of": self.duplicate_of,
            "similarity": self.similarity,
            "rejection_reason": self.rejection_reason,
            "canonical_id": self.canonical_id,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "created_at": self.created_at.isoformat(),
        }
