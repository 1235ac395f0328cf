"""Field mapping, transformation and validation rule models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum


class TransformationType(str, Enum):
    """Supported transformation kinds."""
    FIELD_RENAME = "field_rename"
    DATA_TYPE_CONVERSION = "data_type_conversion"
    VALUE_MAPPING = "value_mapping"
    FORMAT_STANDARDIZATION = "format_standardization"
    VALIDATION = "validation"
    ENRICHMENT = "enrichment"


class ValidationRuleType(str, Enum):
    """Supported validation rule kinds."""
    REQUIRED = "required"
    FORMAT = "format"
    RANGE = "range"
    CUSTOM = "custom"


def _get(data: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read a key that may arrive in snake_case or camelCase."""
    if snake in data:
        return data[snake]
    return data.get(camel, default)


@dataclass
class Transformation:
    """A transformation applied to a mapped field."""
    type: TransformationType
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "parameters": self.parameters}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transformation":
        return cls(
            type=TransformationType(data.get("type", TransformationType.FIELD_RENAME.value)),
            parameters=dict(data.get("parameters") or {}),
        )


@dataclass
class FieldMapping:
    """Mapping between a legacy source field and a canonical target field."""
    source_field: str
    target_field: str
    transformation: Optional[Transformation] = None
    required: bool = False
    default_value: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        result = {
            "source_field": self.source_field,
            "target_field": self.target_field,
            "required": self.required,
        }
        if self.transformation:
            result["transformation"] = self.transformation.to_dict()
        if self.default_value is not None:
            result["default_value"] = self.default_value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        """Create from dictionary representation."""
        transformation = data.get("transformation")
        return cls(
            source_field=_get(data, "source_field", "sourceField", ""),
            target_field=_get(data, "target_field", "targetField", ""),
            transformation=Transformation.from_dict(transformation) if transformation else None,
            required=bool(data.get("required", False)),
            default_value=_get(data, "default_value", "defaultValue"),
        )


@dataclass
class ValidationRule:
    """A validation rule checked against a transformed field."""
    field: str
    type: ValidationRuleType
    parameters: Dict[str, Any] = field(default_factory=dict)
    error_message: str = ""

    @property
    def message(self) -> str:
        return self.error_message or f"{self.field} failed {self.type.value} validation"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "type": self.type.value,
            "parameters": self.parameters,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationRule":
        return cls(
            field=data.get("field", ""),
            type=ValidationRuleType(data.get("type", ValidationRuleType.REQUIRED.value)),
            parameters=dict(data.get("parameters") or {}),
            error_message=_get(data, "error_message", "errorMessage", ""),
        )


@dataclass
class MappingTemplateSet:
    """Field mappings grouped by canonical target entity."""
    client_mappings: List[FieldMapping] = field(default_factory=list)
    business_mappings: List[FieldMapping] = field(default_factory=list)
    document_mappings: List[FieldMapping] = field(default_factory=list)

    def all_mappings(self) -> List[FieldMapping]:
        """All mappings, in client, business, document order."""
        return [*self.client_mappings, *self.business_mappings, *self.document_mappings]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "client_mappings": [m.to_dict() for m in self.client_mappings],
            "business_mappings": [m.to_dict() for m in self.business_mappings],
            "document_mappings": [m.to_dict() for m in self.document_mappings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingTemplateSet":
        def load(snake: str, camel: str) -> List[FieldMapping]:
            return [FieldMapping.from_dict(m) for m in _get(data, snake, camel, []) or []]

        return cls(
            client_mappings=load("client_mappings", "clientMappings"),
            business_mappings=load("business_mappings", "businessMappings"),
            document_mappings=load("document_mappings", "documentMappings"),
        )


@dataclass
class TransformationRules:
    """
    Executable rule set derived from a job's mappings and validation rules.

    Built once when the job is created and stored with it, so a job always
    runs with the rules it was configured with.
    """
    mappings: MappingTemplateSet = field(default_factory=MappingTemplateSet)
    validations: List[ValidationRule] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        mappings: MappingTemplateSet,
        validation_rules: List[ValidationRule]
    ) -> "TransformationRules":
        """Build rules from a mapping set and validation rules, dropping incomplete mappings."""
        def usable(group: List[FieldMapping]) -> List[FieldMapping]:
            return [m for m in group if m.source_field and m.target_field]

        return cls(
            mappings=MappingTemplateSet(
                client_mappings=usable(mappings.client_mappings),
                business_mappings=usable(mappings.business_mappings),
                document_mappings=usable(mappings.document_mappings),
            ),
            validations=list(validation_rules),
        )

    @property
    def field_mappings(self) -> List[FieldMapping]:
        return self.mappings.all_mappings()

    def mappings_for(self, entity: str) -> List[FieldMapping]:
        """Mappings of the group that feeds the given target entity."""
        return {
            "client": self.mappings.client_mappings,
            "business": self.mappings.business_mappings,
            "transaction": self.mappings.document_mappings,
        }.get(entity, [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mappings": self.mappings.to_dict(),
            "validations": [v.to_dict() for v in self.validations],
        }
