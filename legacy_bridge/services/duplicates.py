"""Duplicate detection against existing tenant entities and earlier rows."""

import re
import logging
from typing import Any, Dict, List, Optional, Tuple

from rapidfuzz import fuzz, utils

from ..models.record import DuplicateInfo, ProcessedRecord, TargetEntity

logger = logging.getLogger(__name__)

DEFAULT_DUPLICATE_THRESHOLD = 0.85

NAME_WEIGHT = 0.6
CONTACT_WEIGHT = 0.4


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _digits(value: Any) -> str:
    return re.sub(r"\D", "", str(value))


class SimilarityMetric:
    """Strategy interface: similarity in 0..1 between two entity payloads."""

    def similarity(self, candidate: Dict[str, Any], other: Dict[str, Any]) -> float:
        raise NotImplementedError


class NameContactSimilarity(SimilarityMetric):
    """
    Weighted similarity of name and contact identifier.

    Names are compared with token_sort_ratio after normalization (weight 0.6).
    The contact identifier matches on exact email, or on phone digits when
    either side has no email (weight 0.4). An equal TIN on both sides is a
    certain match.
    """

    def __init__(self, name_fields: Tuple[str, ...] = ("name",)):
        self.name_fields = name_fields

    def _name(self, data: Dict[str, Any]) -> Optional[str]:
        for key in self.name_fields:
            if _present(data.get(key)):
                return str(data[key])
        return None

    def similarity(self, candidate: Dict[str, Any], other: Dict[str, Any]) -> float:
        tin_a, tin_b = candidate.get("tin"), other.get("tin")
        if _present(tin_a) and _present(tin_b) and _digits(tin_a) == _digits(tin_b):
            return 1.0

        name_score = 0.0
        name_a, name_b = self._name(candidate), self._name(other)
        if name_a and name_b:
            name_score = fuzz.token_sort_ratio(name_a, name_b, processor=utils.default_process) / 100.0

        contact_score = 0.0
        email_a, email_b = candidate.get("email"), other.get("email")
        phone_a, phone_b = candidate.get("phone"), other.get("phone")
        if _present(email_a) and _present(email_b):
            contact_score = 1.0 if str(email_a).strip().lower() == str(email_b).strip().lower() else 0.0
        elif _present(phone_a) and _present(phone_b):
            contact_score = 1.0 if _digits(phone_a)[-7:] == _digits(phone_b)[-7:] else 0.0

        return round(NAME_WEIGHT * name_score + CONTACT_WEIGHT * contact_score, 4)


class TransactionSimilarity(SimilarityMetric):
    """Transactions match on equal date and amount, weighted by description similarity."""

    def similarity(self, candidate: Dict[str, Any], other: Dict[str, Any]) -> float:
        if str(candidate.get("date")) != str(other.get("date")):
            return 0.0
        if not _present(candidate.get("amount")) or not _present(other.get("amount")):
            return 0.0
        if str(candidate.get("amount")) != str(other.get("amount")):
            return 0.0

        desc_a, desc_b = candidate.get("description"), other.get("description")
        if _present(desc_a) and _present(desc_b):
            ratio = fuzz.token_sort_ratio(str(desc_a), str(desc_b), processor=utils.default_process) / 100.0
            return round(NAME_WEIGHT + CONTACT_WEIGHT * ratio, 4)
        return 1.0


class DuplicateDetector:
    """
    Flags records that likely duplicate an existing entity or an earlier row.

    Each record is compared with the tenant's existing entities of the same
    type and with earlier valid, non-duplicate rows of the same run. The best
    match at or above the threshold marks the record as a duplicate.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_DUPLICATE_THRESHOLD,
        metrics: Optional[Dict[TargetEntity, SimilarityMetric]] = None
    ):
        self.threshold = threshold
        self.metrics = metrics or {
            TargetEntity.CLIENT: NameContactSimilarity(("name",)),
            TargetEntity.BUSINESS: NameContactSimilarity(("business_name", "name")),
            TargetEntity.TRANSACTION: TransactionSimilarity(),
        }

    def check(
        self,
        record: ProcessedRecord,
        existing: List[Dict[str, Any]],
        earlier: List[ProcessedRecord]
    ) -> DuplicateInfo:
        """Find the best duplicate match for one record."""
        metric = self.metrics.get(record.target_entity)
        if metric is None:
            return DuplicateInfo()

        data = record.transformed_data
        best_ref: Optional[str] = None
        best_score = 0.0

        for entity in existing:
            score = metric.similarity(data, entity)
            if score > best_score:
                best_ref, best_score = f"{record.target_entity.value}:{entity['id']}", score

        for other in earlier:
            if other.target_entity != record.target_entity:
                continue
            score = metric.similarity(data, other.transformed_data)
            if score > best_score:
                best_ref, best_score = f"row:{other.row_id}", score

        if best_ref and best_score >= self.threshold:
            return DuplicateInfo(is_duplicate=True, duplicate_of=best_ref, similarity=best_score)
        return DuplicateInfo(is_duplicate=False, duplicate_of=None, similarity=best_score)

    def detect(
        self,
        records: List[ProcessedRecord],
        existing: Dict[TargetEntity, List[Dict[str, Any]]]
    ) -> int:
        """
        Mark every record with its duplicate verdict.

        Returns:
            Number of records flagged as duplicates
        """
        earlier: List[ProcessedRecord] = []
        found = 0

        for record in records:
            record.duplicate_info = self.check(record, existing.get(record.target_entity, []), earlier)
            if record.duplicate_info.is_duplicate:
                found += 1
                logger.debug(
                    f"Row {record.row_id} duplicates {record.duplicate_info.duplicate_of} "
                    f"(similarity {record.duplicate_info.similarity})"
                )
            elif record.validation.is_valid:
                earlier.append(record)

        return found
