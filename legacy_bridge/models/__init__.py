"""Data models for the legacy import pipeline."""

from .mapping import (
    TransformationType,
    ValidationRuleType,
    Transformation,
    FieldMapping,
    ValidationRule,
    MappingTemplateSet,
    TransformationRules,
)
from .job import (
    SourceSystemType,
    JobStatus,
    SourceSystemConfig,
    ImportSettings,
    ImportJobConfig,
    ImportJob,
    JobResult,
    ImportProgress,
)
from .record import (
    ValueKind,
    TargetEntity,
    RecordStatus,
    FieldValue,
    RawRow,
    ValidationResult,
    DuplicateInfo,
    ProcessedRecord,
    ImportRecord,
)

__all__ = [
    "TransformationType",
    "ValidationRuleType",
    "Transformation",
    "FieldMapping",
    "ValidationRule",
    "MappingTemplateSet",
    "TransformationRules",
    "SourceSystemType",
    "JobStatus",
    "SourceSystemConfig",
    "ImportSettings",
    "ImportJobConfig",
    "ImportJob",
    "JobResult",
    "ImportProgress",
    "ValueKind",
    "TargetEntity",
    "RecordStatus",
    "FieldValue",
    "RawRow",
    "ValidationResult",
    "DuplicateInfo",
    "ProcessedRecord",
    "ImportRecord",
]
