"""Quality scoring for transformed legacy records."""

import logging
from typing import Any, Dict, List, Sequence

from ..models.record import ProcessedRecord

logger = logging.getLogger(__name__)

DEFAULT_IMPORTANT_FIELDS = ("name", "email", "type")

ERROR_PENALTY = 0.2
MISSING_FIELD_PENALTY = 0.1


class QualityScorer:
    """
    Scores records by validation errors and missing important fields.

    score = max(0, 1 - 0.2 * errors - 0.1 * missing important fields)
    """

    def __init__(self, important_fields: Sequence[str] = DEFAULT_IMPORTANT_FIELDS):
        self.important_fields = tuple(important_fields)

    def missing_fields(self, data: Dict[str, Any]) -> List[str]:
        """Important fields that are absent or blank."""
        missing = []
        for name in self.important_fields:
            value = data.get(name)
            if value is None or (isinstance(value, str) and value.strip() == ""):
                missing.append(name)
        return missing

    def score(self, data: Dict[str, Any], error_count: int) -> float:
        """Compute the quality score of transformed data."""
        penalty = ERROR_PENALTY * error_count + MISSING_FIELD_PENALTY * len(self.missing_fields(data))
        return round(max(0.0, 1.0 - penalty), 4)

    def score_record(self, record: ProcessedRecord) -> float:
        """Score a processed record in place, noting missing fields as warnings."""
        for name in self.missing_fields(record.transformed_data):
            record.validation.warnings.append(f"Missing important field: {name}")
        record.validation.quality_score = self.score(
            record.transformed_data,
            len(record.validation.errors),
        )
        return record.validation.quality_score
