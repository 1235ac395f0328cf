"""Pre-flight analysis of legacy data structure and health."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..errors import EmptySourceError
from ..extractors import EXTRACTORS
from ..models.job import SourceSystemConfig, SourceSystemType
from ..models.mapping import FieldMapping
from ..models.record import RawRow
from .templates import DEFAULT_SUGGESTION_THRESHOLD, suggest_mappings

logger = logging.getLogger(__name__)


@dataclass
class QualityReport:
    """Field coverage and health of a legacy data sample."""
    total_records: int
    completeness: Dict[str, float] = field(default_factory=dict)
    data_types: Dict[str, str] = field(default_factory=dict)
    duplicate_rate: float = 0.0
    quality_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_records": self.total_records,
            "completeness": self.completeness,
            "data_types": self.data_types,
            "duplicate_rate": self.duplicate_rate,
            "quality_score": self.quality_score,
        }


@dataclass
class AnalysisReport:
    """Result of analyzing a legacy data buffer."""
    detected_fields: List[str]
    suggested_mappings: List[FieldMapping]
    quality_report: QualityReport

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detected_fields": self.detected_fields,
            "suggested_mappings": [m.to_dict() for m in self.suggested_mappings],
            "quality_report": self.quality_report.to_dict(),
        }


def detect_fields(rows: List[RawRow]) -> List[str]:
    """All field names, in order of first appearance."""
    seen: Dict[str, None] = {}
    for row in rows:
        for name in row.fields:
            seen.setdefault(name, None)
    return list(seen)


def build_quality_report(rows: List[RawRow], fields: List[str]) -> QualityReport:
    """Compute completeness, sample types and duplicate rate for rows."""
    total = len(rows)
    completeness = {}
    data_types = {}

    for name in fields:
        values = [row.get(name) for row in rows]
        non_empty = [v for v in values if not v.is_null]
        completeness[name] = round(len(non_empty) / total, 4)
        data_types[name] = non_empty[0].kind.value if non_empty else "unknown"

    unique = {json.dumps(row.to_plain(), sort_keys=True, default=str) for row in rows}
    duplicate_rate = round(1 - len(unique) / total, 4)

    avg_completeness = sum(completeness.values()) / len(fields) if fields else 0.0
    quality_score = round(avg_completeness * 0.7 + (1 - duplicate_rate) * 0.3, 4)

    return QualityReport(
        total_records=total,
        completeness=completeness,
        data_types=data_types,
        duplicate_rate=duplicate_rate,
        quality_score=quality_score,
    )


def analyze_data_structure(
    buffer: bytes,
    system_type: SourceSystemType,
    settings: Dict[str, Any] = None,
    suggestion_threshold: float = DEFAULT_SUGGESTION_THRESHOLD
) -> AnalysisReport:
    """
    Analyze a legacy data buffer before committing to an import job.

    Pure function of its inputs: the same buffer and system type always
    produce the same report.

    Raises:
        EmptySourceError: If the buffer holds no rows
        ExtractionError: If the buffer cannot be parsed
    """
    system_type = SourceSystemType(system_type)
    extractor = EXTRACTORS[system_type](SourceSystemConfig(type=system_type, settings=dict(settings or {})))
    rows = extractor.parse_buffer(buffer)

    if not rows:
        raise EmptySourceError("No data found in the provided file")

    fields = detect_fields(rows)
    suggestions = list(suggest_mappings(fields, system_type, suggestion_threshold).values())

    logger.info(
        f"Analyzed {len(rows)} {system_type.value} rows: "
        f"{len(fields)} fields, {len(suggestions)} suggested mappings"
    )

    return AnalysisReport(
        detected_fields=fields,
        suggested_mappings=suggestions,
        quality_report=build_quality_report(rows, fields),
    )
