"""Paper and manually keyed records connector."""

import json
import logging
from typing import Any, Dict, List

from .base import FileExtractor
from ..errors import ExtractionError
from ..models.job import SourceSystemType

logger = logging.getLogger(__name__)


class ManualRecordsExtractor(FileExtractor):
    """
    Connector for manually keyed records.

    Accepts a JSON array of keyed rows or an object holding them under
    "records" (also "data", "items" or "results"). Rows may also be given
    inline as settings.records.
    """

    system_type = SourceSystemType.PAPER_MANUAL

    def validate_config(self) -> List[str]:
        if isinstance(self.settings.get("records"), list):
            return []
        return super().validate_config()

    def read_records(self) -> List[Dict[str, Any]]:
        inline = self.settings.get("records")
        if isinstance(inline, list):
            return self._keyed_rows(inline)
        return super().read_records()

    def parse_records(self, buffer: bytes) -> List[Dict[str, Any]]:
        try:
            data = json.loads(buffer.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ExtractionError(f"Invalid JSON in manual records: {e}", e)

        if isinstance(data, dict):
            for key in ["records", "data", "items", "results"]:
                if isinstance(data.get(key), list):
                    data = data[key]
                    break
            else:
                raise ExtractionError("Unexpected JSON structure in manual records")

        if not isinstance(data, list):
            raise ExtractionError("Unexpected JSON structure in manual records")

        return self._keyed_rows(data)

    def _keyed_rows(self, items: List[Any]) -> List[Dict[str, Any]]:
        rows = []
        for idx, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                self.add_warning(f"Skipping manual record {idx}: not a keyed row")
                continue
            rows.append(item)
        return rows
