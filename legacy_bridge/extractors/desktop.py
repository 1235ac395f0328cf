"""Desktop bookkeeping connector (IIF and delimited exports)."""

import logging
from typing import Any, Dict, List, Optional

from .base import FileExtractor
from .delimited import decode_text, parse_delimited
from ..models.job import SourceSystemType

logger = logging.getLogger(__name__)


def _cell(value: str) -> Optional[str]:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return value or None


def is_iif(text: str) -> bool:
    """IIF files start with a '!' header line."""
    for line in text.splitlines():
        if line.strip():
            return line.lstrip().startswith("!")
    return False


def parse_iif(text: str, record_types: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """
    Parse an IIF export.

    Each '!TYPE' header line declares the columns of the TYPE lines that
    follow. Lines whose type has no header (e.g. ENDTRNS) are skipped.
    """
    headers: Dict[str, List[str]] = {}
    records = []
    wanted = {t.upper() for t in record_types} if record_types else None

    for line_num, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        cells = line.split("\t")
        token = cells[0].strip()

        if token.startswith("!"):
            headers[token[1:].upper()] = [c.strip() for c in cells[1:]]
            continue

        record_type = token.upper()
        columns = headers.get(record_type)
        if not columns:
            logger.debug(f"IIF line {line_num}: no header for record type {record_type}")
            continue
        if wanted and record_type not in wanted:
            continue

        values = cells[1:]
        records.append({
            column: _cell(values[i]) if i < len(values) else None
            for i, column in enumerate(columns)
            if column
        })

    return records


class DesktopBookkeepingExtractor(FileExtractor):
    """
    Connector for desktop bookkeeping exports.

    IIF files are parsed by record type (settings.record_types restricts
    which types are read); any other export is parsed as delimited text.
    """

    system_type = SourceSystemType.DESKTOP_BOOKKEEPING

    def parse_records(self, buffer: bytes) -> List[Dict[str, Any]]:
        text = decode_text(buffer)
        if is_iif(text):
            return parse_iif(text, self.settings.get("record_types"))
        return parse_delimited(text, self.settings.get("delimiter"))
