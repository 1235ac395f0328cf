"""Curated field mapping templates and mapping suggestion."""

import re
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from rapidfuzz import fuzz

from ..models.job import SourceSystemType
from ..models.mapping import (
    FieldMapping,
    MappingTemplateSet,
    Transformation,
    TransformationType,
)

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_THRESHOLD = 0.8

CLIENT_TYPE_MAPPING = {
    "Individual": "individual",
    "Company": "company",
    "Corporation": "company",
    "Partnership": "partnership",
}

BUSINESS_TYPE_MAPPING = {
    "Corp": "corporation",
    "LLC": "limited_liability",
    "Partnership": "partnership",
    "Sole Prop": "sole_proprietorship",
}


def _mapping(
    source: str,
    target: str,
    transform_type: TransformationType,
    required: bool = False,
    **parameters
) -> FieldMapping:
    return FieldMapping(
        source_field=source,
        target_field=target,
        transformation=Transformation(type=transform_type, parameters=parameters),
        required=required,
    )


def _desktop_bookkeeping_templates() -> MappingTemplateSet:
    return MappingTemplateSet(
        client_mappings=[
            _mapping("Customer_Name", "name", TransformationType.FORMAT_STANDARDIZATION,
                     required=True, trim=True, title_case=True),
            _mapping("Customer_Email", "email", TransformationType.VALIDATION, format="email"),
            _mapping("Customer_Phone", "phone", TransformationType.FORMAT_STANDARDIZATION,
                     phone_format="guyanese"),
            _mapping("Customer_Type", "type", TransformationType.VALUE_MAPPING,
                     required=True, mapping=dict(CLIENT_TYPE_MAPPING)),
        ],
        business_mappings=[
            _mapping("Company_Name", "business_name", TransformationType.FORMAT_STANDARDIZATION,
                     required=True, trim=True, title_case=True),
            _mapping("Business_Type", "business_type", TransformationType.VALUE_MAPPING,
                     mapping=dict(BUSINESS_TYPE_MAPPING)),
        ],
        document_mappings=[
            _mapping("Transaction_Date", "date", TransformationType.DATA_TYPE_CONVERSION,
                     required=True, from_type="string", to_type="date", format="MM/DD/YYYY"),
            _mapping("Transaction_Amount", "amount", TransformationType.DATA_TYPE_CONVERSION,
                     required=True, from_type="string", to_type="number", currency="GYD"),
        ],
    )


def _spreadsheet_templates() -> MappingTemplateSet:
    return MappingTemplateSet(
        client_mappings=[
            _mapping("Client Name", "name", TransformationType.FORMAT_STANDARDIZATION,
                     required=True, trim=True, title_case=True),
            _mapping("Email Address", "email", TransformationType.VALIDATION, format="email"),
            _mapping("Client Type", "type", TransformationType.VALUE_MAPPING,
                     mapping=dict(CLIENT_TYPE_MAPPING)),
            _mapping("TIN Number", "tin", TransformationType.FORMAT_STANDARDIZATION,
                     format="guyanese_tin"),
        ],
        business_mappings=[
            _mapping("Business Name", "business_name", TransformationType.FORMAT_STANDARDIZATION,
                     required=True, trim=True, title_case=True),
        ],
        document_mappings=[
            _mapping("Date", "date", TransformationType.DATA_TYPE_CONVERSION,
                     required=True, from_type="string", to_type="date", format="auto"),
        ],
    )


_TEMPLATE_FACTORIES = {
    SourceSystemType.DESKTOP_BOOKKEEPING: _desktop_bookkeeping_templates,
    SourceSystemType.SPREADSHEET: _spreadsheet_templates,
    SourceSystemType.CSV: _spreadsheet_templates,
}


def get_mapping_templates(system_type: SourceSystemType) -> MappingTemplateSet:
    """
    Get the curated mapping templates for a legacy system.

    Systems without curated templates get an empty set. A fresh copy is
    returned on every call so callers can edit it freely.
    """
    factory = _TEMPLATE_FACTORIES.get(SourceSystemType(system_type))
    return factory() if factory else MappingTemplateSet()


def _normalize(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", " ", name.lower()).strip()


def score_field_match(field_name: str, source_field: str) -> float:
    """
    Score how well a detected field name matches a template source field.

    Case-insensitive containment either way scores 1.0; otherwise the
    token-set similarity of the normalized names, in 0..1.
    """
    detected = field_name.lower()
    candidate = source_field.lower()
    if not detected or not candidate:
        return 0.0
    if detected in candidate or candidate in detected:
        return 1.0
    return fuzz.token_set_ratio(_normalize(field_name), _normalize(source_field)) / 100.0


def suggest_mapping(
    field_name: str,
    templates: MappingTemplateSet,
    threshold: float = DEFAULT_SUGGESTION_THRESHOLD
) -> Optional[FieldMapping]:
    """
    Suggest a mapping for a detected field from a template set.

    The best-scoring template mapping at or above the threshold wins; ties
    go to the earliest mapping in client, business, document order. The
    suggestion uses the detected field name as its source field.
    """
    best: Optional[FieldMapping] = None
    best_score = 0.0

    for candidate in templates.all_mappings():
        score = score_field_match(field_name, candidate.source_field)
        if score >= threshold and score > best_score:
            best, best_score = candidate, score

    if best is None:
        logger.debug(f"No mapping suggestion for field '{field_name}'")
        return None

    return replace(best, source_field=field_name)


def suggest_mappings(
    field_names: List[str],
    system_type: SourceSystemType,
    threshold: float = DEFAULT_SUGGESTION_THRESHOLD
) -> Dict[str, FieldMapping]:
    """Suggest mappings for every detected field that has a match."""
    templates = get_mapping_templates(system_type)
    suggestions = {}
    for name in field_names:
        suggestion = suggest_mapping(name, templates, threshold)
        if suggestion:
            suggestions[name] = suggestion
    return suggestions
