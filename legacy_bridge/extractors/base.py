"""Base source connector interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set
from datetime import datetime
from pathlib import Path
import logging

from ..errors import EmptySourceError, ExtractionError
from ..models.job import SourceSystemConfig, SourceSystemType
from ..models.record import RawRow

logger = logging.getLogger(__name__)


def _unique_row_id(candidate: str, used: Set[str]) -> str:
    row_id, n = candidate, 1
    while row_id in used:
        n += 1
        row_id = f"{candidate}#{n}"
    used.add(row_id)
    return row_id


@dataclass
class ExtractionResult:
    """Result of an extraction operation."""
    system_type: SourceSystemType
    rows: List[RawRow] = field(default_factory=list)
    total_extracted: int = 0
    filtered_out: int = 0
    warnings: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "system_type": self.system_type.value,
            "total_extracted": self.total_extracted,
            "filtered_out": self.filtered_out,
            "warnings": self.warnings,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "metadata": self.metadata,
        }


class BaseExtractor(ABC):
    """
    Base class for all source connectors.

    Connectors pull rows from one kind of legacy system and convert them
    to RawRow objects, tagging every value. No assumption about field
    names is made at this layer.
    """

    system_type: SourceSystemType

    def __init__(self, config: SourceSystemConfig, filters: Optional[Dict[str, Any]] = None):
        """
        Initialize the connector.

        Args:
            config: Source system configuration
            filters: Field -> value (or list of values) rows must match
        """
        self.config = config
        self.filters = filters or {}
        self._warnings: List[str] = []

    @property
    def settings(self) -> Dict[str, Any]:
        return self.config.settings

    def validate_config(self) -> List[str]:
        """
        Validate the source configuration.

        Returns:
            List of validation error messages
        """
        return []

    @abstractmethod
    def read_records(self) -> List[Dict[str, Any]]:
        """Read untyped records from the source."""
        pass

    @abstractmethod
    def parse_records(self, buffer: bytes) -> List[Dict[str, Any]]:
        """Parse untyped records from raw source bytes."""
        pass

    def parse_buffer(self, buffer: bytes) -> List[RawRow]:
        """Parse raw source bytes into rows, without applying filters."""
        try:
            records = self.parse_records(buffer)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Could not parse {self.system_type.value} data: {e}", e)
        return self.to_rows(records)

    def extract(self) -> ExtractionResult:
        """
        Extract all rows from the source.

        Raises:
            ExtractionError: If the source cannot be reached or read
            EmptySourceError: If the source yields no rows
        """
        self._warnings = []
        started_at = datetime.utcnow()

        try:
            records = self.read_records()
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Extraction from {self.system_type.value} source failed: {e}", e)

        if not records:
            raise EmptySourceError(f"No data found in {self.system_type.value} source")

        rows = self.to_rows(records)
        kept = [row for row in rows if self._matches_filters(row)]

        if not kept:
            raise EmptySourceError(
                f"No rows in {self.system_type.value} source matched filters {self.filters}"
            )

        logger.info(f"Extracted {len(kept)} rows from {self.system_type.value} source")

        return ExtractionResult(
            system_type=self.system_type,
            rows=kept,
            total_extracted=len(kept),
            filtered_out=len(rows) - len(kept),
            warnings=self._warnings.copy(),
            started_at=started_at,
            completed_at=datetime.utcnow(),
            metadata={"location": self.config.location},
        )

    def to_rows(self, records: Iterable[Dict[str, Any]]) -> List[RawRow]:
        """
        Convert untyped records to rows, skipping blank ones.

        With an id_column setting, rows are keyed by that column's value.
        Repeated values get a "#n" suffix so every row keeps its own ledger
        entry; the raw value stays on row.source_ref.
        """
        id_column = self.settings.get("id_column")
        rows = []
        used: Set[str] = set()

        for index, record in enumerate(records, start=1):
            row = RawRow.from_mapping(str(index), record)
            if all(v.is_null for v in row.fields.values()):
                continue
            if id_column and not row.get(id_column).is_null:
                row.source_ref = row.get(id_column).as_text()
                row.row_id = row.source_ref
            row.row_id = _unique_row_id(row.row_id, used)
            rows.append(row)

        return rows

    def _matches_filters(self, row: RawRow) -> bool:
        for name, expected in self.filters.items():
            actual = row.get(name).as_text()
            allowed = expected if isinstance(expected, (list, tuple, set)) else [expected]
            if actual not in {str(v) for v in allowed}:
                return False
        return True

    def add_warning(self, message: str) -> None:
        """Add a warning to the extraction."""
        self._warnings.append(message)
        logger.warning(f"Extraction warning: {message}")


class FileExtractor(BaseExtractor):
    """Connector for sources delivered as a single file."""

    def validate_config(self) -> List[str]:
        errors = super().validate_config()
        if not self.config.file_path:
            errors.append(f"File path is required for {self.system_type.value} imports")
        return errors

    def read_records(self) -> List[Dict[str, Any]]:
        path = Path(self.config.file_path)
        try:
            buffer = path.read_bytes()
        except OSError as e:
            raise ExtractionError(f"Cannot read source file {path}: {e}", e)
        logger.info(f"Processing file: {path}")
        return self.parse_records(buffer)
