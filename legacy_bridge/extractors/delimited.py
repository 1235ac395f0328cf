"""Delimited text connectors (CSV exports and other accounting packages)."""

import csv
import io
import logging
from typing import Any, Dict, List, Optional

from .base import FileExtractor
from ..models.job import SourceSystemType

logger = logging.getLogger(__name__)

SNIFF_DELIMITERS = ",;\t|"


def decode_text(buffer: bytes) -> str:
    """Decode source bytes as UTF-8, falling back to latin-1."""
    try:
        return buffer.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("UTF-8 decode failed, trying latin-1")
        return buffer.decode("latin-1")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_delimited(text: str, delimiter: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Parse delimited text with a header row.

    The delimiter is sniffed from the first 8KB unless given explicitly.
    """
    if not delimiter:
        sample = text[:8192]
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=SNIFF_DELIMITERS).delimiter
        except csv.Error:
            delimiter = ","

    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
    records = []

    for row in reader:
        records.append({
            key.strip(): _clean(value)
            for key, value in row.items()
            # Extra cells beyond the header are collected under a None key
            if key is not None
        })

    return records


class DelimitedExtractor(FileExtractor):
    """
    Connector for delimited text exports.

    Supports:
    - Delimiter sniffing (comma, semicolon, tab, pipe) or settings.delimiter
    - UTF-8 with BOM handling, latin-1 fallback
    - Values kept as text
    """

    system_type = SourceSystemType.CSV

    def parse_records(self, buffer: bytes) -> List[Dict[str, Any]]:
        return parse_delimited(decode_text(buffer), self.settings.get("delimiter"))


class AccountingPackageExtractor(DelimitedExtractor):
    """Connector for exports from other accounting packages (Sage 50, Simply Accounting)."""

    system_type = SourceSystemType.OTHER_ACCOUNTING_PACKAGE
