"""Spreadsheet connector."""

import logging
from io import BytesIO
from typing import Any, Dict, List

from openpyxl import load_workbook

from .base import FileExtractor
from .delimited import decode_text, parse_delimited
from ..errors import ExtractionError
from ..models.job import SourceSystemType

logger = logging.getLogger(__name__)

# .xlsx files are zip archives
ZIP_MAGIC = b"PK\x03\x04"


class SpreadsheetExtractor(FileExtractor):
    """
    Connector for spreadsheet workbooks.

    Reads the first sheet (or settings.sheet) with the header in the first
    row. Non-workbook content such as a .csv export is parsed as delimited
    text.
    """

    system_type = SourceSystemType.SPREADSHEET

    def parse_records(self, buffer: bytes) -> List[Dict[str, Any]]:
        if not buffer.startswith(ZIP_MAGIC):
            return parse_delimited(decode_text(buffer), self.settings.get("delimiter"))
        return self._parse_workbook(buffer)

    def _parse_workbook(self, buffer: bytes) -> List[Dict[str, Any]]:
        try:
            wb = load_workbook(BytesIO(buffer), read_only=True, data_only=True)
        except Exception as e:
            raise ExtractionError(f"Failed to parse Excel file: {e}", e)

        try:
            sheet_name = self.settings.get("sheet")
            if sheet_name:
                if sheet_name not in wb.sheetnames:
                    raise ExtractionError(f"Sheet not found: {sheet_name}")
                ws = wb[sheet_name]
            else:
                ws = wb.worksheets[0]

            rows = ws.iter_rows(values_only=True)
            header_row = next(rows, None)
            if not header_row:
                return []

            headers = [
                str(value).strip() if value is not None else f"Column_{i}"
                for i, value in enumerate(header_row)
            ]

            records = []
            for values in rows:
                records.append({
                    headers[i]: value
                    for i, value in enumerate(values)
                    if i < len(headers)
                })

            logger.debug(f"Read {len(records)} rows from sheet {ws.title}")
            return records
        finally:
            wb.close()
