"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from ..models.job import SourceSystemType
from ..models.mapping import TransformationType, ValidationRuleType


# Request Models
class TransformationModel(BaseModel):
    type: TransformationType
    parameters: Dict[str, Any] = Field(default_factory=dict)


class FieldMappingModel(BaseModel):
    source_field: str
    target_field: str
    transformation: Optional[TransformationModel] = None
    required: bool = False
    default_value: Optional[Any] = None


class MappingSetModel(BaseModel):
    client_mappings: List[FieldMappingModel] = Field(default_factory=list)
    business_mappings: List[FieldMappingModel] = Field(default_factory=list)
    document_mappings: List[FieldMappingModel] = Field(default_factory=list)


class ValidationRuleModel(BaseModel):
    field: str
    type: ValidationRuleType
    parameters: Dict[str, Any] = Field(default_factory=dict)
    error_message: str = ""


class SystemConfigModel(BaseModel):
    type: Optional[SourceSystemType] = None
    file_path: Optional[str] = None
    connection_string: Optional[str] = None
    credentials: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)


class ImportSettingsModel(BaseModel):
    batch_size: int = Field(default=100, ge=1, le=1000)
    validate_data: bool = True
    skip_duplicates: bool = True
    update_existing: bool = False
    quality_threshold: float = Field(default=0.95, ge=0, le=1)
    manual_review_required: bool = False


class ImportJobCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    system_type: SourceSystemType
    system_config: SystemConfigModel = Field(default_factory=SystemConfigModel)
    field_mappings: MappingSetModel = Field(default_factory=MappingSetModel)
    validation_rules: List[ValidationRuleModel] = Field(default_factory=list)
    import_settings: ImportSettingsModel = Field(default_factory=ImportSettingsModel)
    data_filters: Dict[str, Any] = Field(default_factory=dict)
    scheduled_start_time: Optional[datetime] = None

    def to_config_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        if data["system_config"]["type"] is None:
            data["system_config"]["type"] = data["system_type"]
        return data


# Response Models
class ImportJobResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: str = ""
    source_system: SourceSystemType
    source_location: Optional[str] = None
    status: str
    batch_size: int
    validate_data: bool
    skip_duplicates: bool
    update_existing: bool
    quality_threshold: float
    manual_review_required: bool
    field_mapping: Dict[str, Any] = Field(default_factory=dict)
    data_filters: Dict[str, Any] = Field(default_factory=dict)
    total_records: int = 0
    processed_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    error_log: List[str] = Field(default_factory=list)
    warning_log: List[str] = Field(default_factory=list)
    import_summary: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    scheduled_start_time: Optional[datetime] = None
    actual_start_time: Optional[datetime] = None
    completion_time: Optional[datetime] = None


class PaginationModel(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class ImportJobListResponse(BaseModel):
    jobs: List[ImportJobResponse]
    pagination: PaginationModel


class JobProgressResponse(BaseModel):
    job: ImportJobResponse
    record_stats: Dict[str, int] = Field(default_factory=dict)
    progress_percentage: int = 0


class ExecuteResponse(BaseModel):
    status: str
    job_id: str


class ImportRecordResponse(BaseModel):
    source_record_id: str
    source_ref: Optional[str] = None
    record_type: str
    status: str
    source_data: Dict[str, Any] = Field(default_factory=dict)
    transformed_data: Dict[str, Any] = Field(default_factory=dict)
    quality_score: float
    validation_errors: List[str] = Field(default_factory=list)
    validation_warnings: List[str] = Field(default_factory=list)
    is_duplicate: bool = False
    duplicate_of: Optional[str] = None
    similarity: float = 0.0
    rejection_reason: Optional[str] = None
    canonical_id: Optional[str] = None
    processed_at: Optional[datetime] = None


class ImportRecordListResponse(BaseModel):
    records: List[ImportRecordResponse]
    total: int


class QualityReportModel(BaseModel):
    total_records: int
    completeness: Dict[str, float]
    data_types: Dict[str, str]
    duplicate_rate: float
    quality_score: float


class AnalysisResponse(BaseModel):
    detected_fields: List[str]
    suggested_mappings: List[FieldMappingModel]
    quality_report: QualityReportModel
