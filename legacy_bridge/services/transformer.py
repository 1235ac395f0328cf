"""Transformation engine for converting legacy rows to canonical fields."""

import re
import logging
from typing import Any, Callable, Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

from ..errors import TransformationError
from ..models.mapping import (
    FieldMapping,
    Transformation,
    TransformationRules,
    TransformationType,
    _get,
)
from ..models.record import (
    FieldValue,
    ProcessedRecord,
    RawRow,
    TargetEntity,
    ValidationResult,
    ValueKind,
)
from .validator import FORMAT_CHECKS

logger = logging.getLogger(__name__)

TransformFunc = Callable[[FieldValue, Dict[str, Any]], Any]

# Explicit date tokens, longest first
_DATE_TOKENS = [
    ("YYYY", "%Y"),
    ("YY", "%y"),
    ("MM", "%m"),
    ("DD", "%d"),
    ("HH", "%H"),
    ("mm", "%M"),
    ("ss", "%S"),
]


def _text(value: FieldValue) -> Optional[str]:
    """Text form of a value, rendering whole floats without a decimal part."""
    if value.kind == ValueKind.NUMBER and isinstance(value.value, float) and value.value.is_integer():
        return str(int(value.value))
    return value.as_text()


def date_format_to_strptime(fmt: str) -> str:
    """Convert a MM/DD/YYYY style format into a strptime format."""
    result = fmt
    for token, directive in _DATE_TOKENS:
        result = result.replace(token, directive)
    return result


def infer_target_entity(data: Dict[str, Any]) -> TargetEntity:
    """Infer the canonical entity a transformed record belongs to."""
    def present(key: str) -> bool:
        value = data.get(key)
        return value is not None and value != ""

    if present("name") and (present("type") or present("email")):
        return TargetEntity.CLIENT
    if present("business_type") or present("business_name") or present("company_name"):
        return TargetEntity.BUSINESS
    if present("amount") or present("date"):
        return TargetEntity.TRANSACTION
    return TargetEntity.CLIENT


class TransformationEngine:
    """
    Engine for transforming legacy rows to canonical field values.

    Supports:
    - Format standardization (trim, title case, phone and TIN formats, case)
    - Data type conversion (dates, numbers, strings)
    - Value mapping with lookup tables
    - Format validation
    - Enrichment with constants, prefixes or registered functions
    """

    def __init__(self):
        """Initialize the transform engine."""
        self._custom_transforms: Dict[str, Callable] = {}
        self._builtin_transforms = self._register_builtin_transforms()

    def _register_builtin_transforms(self) -> Dict[str, TransformFunc]:
        """Register all built-in transformation functions."""
        return {
            TransformationType.FIELD_RENAME.value: self._transform_rename,
            TransformationType.FORMAT_STANDARDIZATION.value: self._transform_standardize,
            TransformationType.DATA_TYPE_CONVERSION.value: self._transform_convert,
            TransformationType.VALUE_MAPPING.value: self._transform_value_map,
            TransformationType.VALIDATION.value: self._transform_validate,
            TransformationType.ENRICHMENT.value: self._transform_enrich,
        }

    def register_transform(self, name: str, func: Callable) -> None:
        """Register a custom enrichment function, called with (value, parameters)."""
        self._custom_transforms[name] = func

    def apply_transformation(self, value: Any, transformation: Optional[Transformation]) -> Any:
        """
        Apply one transformation to a raw value.

        Raises:
            TransformationError: If the value cannot be transformed
        """
        value = FieldValue.of(value)
        if transformation is None:
            return self._transform_rename(value, {})

        transform_func = self._builtin_transforms.get(transformation.type.value)
        try:
            return transform_func(value, transformation.parameters)
        except TransformationError:
            raise
        except Exception as e:
            raise TransformationError(f"{transformation.type.value} failed: {e}", e)

    def transform_record(self, row: RawRow, rules: TransformationRules) -> ProcessedRecord:
        """
        Transform a legacy row using the job's mappings.

        Field failures are recorded as errors on the result; the remaining
        fields are still transformed. Required checks apply to the mappings
        of the inferred target entity.
        """
        data: Dict[str, Any] = {}
        result = ValidationResult()

        for mapping in rules.field_mappings:
            source_value = row.get(mapping.source_field)
            try:
                transformed = self.apply_transformation(source_value, mapping.transformation)
            except TransformationError as e:
                result.add_error(f"{mapping.target_field}: {e}")
                logger.debug(f"Row {row.row_id}: transform error for {mapping.target_field}: {e}")
                continue

            if transformed is None:
                transformed = mapping.default_value

            # Absent values never overwrite a value from an earlier mapping
            if transformed is not None or mapping.target_field not in data:
                data[mapping.target_field] = transformed

        target = infer_target_entity(data)

        for mapping in rules.mappings_for(target.value):
            if mapping.required and self._is_missing(data.get(mapping.target_field)):
                result.add_error(f"{mapping.target_field}: required field '{mapping.source_field}' is missing")

        return ProcessedRecord(
            source=row,
            transformed_data=data,
            validation=result,
            target_entity=target,
        )

    def _is_missing(self, value: Any) -> bool:
        return value is None or (isinstance(value, str) and value.strip() == "")

    # Built-in transform functions

    def _transform_rename(self, value: FieldValue, params: Dict) -> Any:
        """Copy the value as-is under the target name."""
        if value.is_null:
            return None
        return value.value

    def _transform_standardize(self, value: FieldValue, params: Dict) -> Any:
        """Standardize string formatting."""
        if value.kind not in (ValueKind.STRING, ValueKind.NUMBER):
            return self._transform_rename(value, params)

        result = _text(value)

        if params.get("trim"):
            result = result.strip()
        if _get(params, "title_case", "titleCase"):
            result = re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), result)

        case = params.get("case")
        if case == "upper":
            result = result.upper()
        elif case == "lower":
            result = result.lower()

        if _get(params, "phone_format", "phoneFormat") == "guyanese":
            digits = re.sub(r"\D", "", result)
            if len(digits) == 7:
                result = f"+592-{digits[:3]}-{digits[3:]}"

        if params.get("format") == "guyanese_tin":
            digits = re.sub(r"\D", "", result)
            if len(digits) == 9:
                result = f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"

        return result

    def _transform_convert(self, value: FieldValue, params: Dict) -> Any:
        """Convert between data types."""
        if value.is_null:
            return None

        to_type = _get(params, "to_type", "toType")
        if to_type == "date":
            return self._to_date(value, params.get("format", "auto"))
        if to_type == "number":
            return self._to_number(value)
        if to_type == "string":
            return _text(value)
        return value.value

    def _to_date(self, value: FieldValue, fmt: str) -> date:
        if value.kind == ValueKind.DATE:
            return value.value.date() if isinstance(value.value, datetime) else value.value
        if value.kind != ValueKind.STRING:
            raise TransformationError(f"Cannot convert {value.kind.value} value to date")

        text = value.value.strip()
        try:
            if not fmt or fmt == "auto":
                return date_parser.parse(text).date()
            return datetime.strptime(text, date_format_to_strptime(fmt)).date()
        except (ValueError, OverflowError) as e:
            raise TransformationError(f"Invalid date '{text}' for format {fmt}", e)

    def _to_number(self, value: FieldValue) -> Decimal:
        if value.kind == ValueKind.NUMBER:
            return Decimal(str(value.value))
        if value.kind != ValueKind.STRING:
            raise TransformationError(f"Cannot convert {value.kind.value} value to number")

        text = value.value.strip()
        negative = text.startswith("(") and text.endswith(")")
        cleaned = re.sub(r"[^\d.\-]", "", text)
        try:
            number = Decimal(cleaned)
        except InvalidOperation as e:
            raise TransformationError(f"Invalid number '{text}'", e)
        return -number if negative else number

    def _transform_value_map(self, value: FieldValue, params: Dict) -> Any:
        """Map value using a lookup table."""
        if value.is_null:
            return params.get("default")

        key = _text(value).strip()
        mapping = params.get("mapping", {})
        if key in mapping:
            return mapping[key]
        if "default" in params:
            return params["default"]
        return key

    def _transform_validate(self, value: FieldValue, params: Dict) -> Any:
        """Check the value's format, passing it through when it matches."""
        if value.is_null:
            return None

        text = _text(value).strip()
        check = FORMAT_CHECKS.get(params.get("format"))
        if check:
            error = check(text)
            if error:
                raise TransformationError(f"{error}: {text}")
        pattern = params.get("pattern")
        if pattern and not re.fullmatch(pattern, text):
            raise TransformationError(f"Value does not match pattern: {text}")
        return text

    def _transform_enrich(self, value: FieldValue, params: Dict) -> Any:
        """Add derived data: a constant, a prefix, or a registered function."""
        if "value" in params:
            return params["value"]

        func_name = params.get("function")
        if func_name:
            func = self._custom_transforms.get(func_name)
            if func is None:
                raise TransformationError(f"Unknown enrichment function: {func_name}")
            return func(self._transform_rename(value, params), params)

        if value.is_null:
            return None
        prefix = params.get("prefix")
        if prefix:
            return f"{prefix}{_text(value)}"
        return value.value
