"""Source connectors, one per legacy system type."""

from typing import Any, Dict, Optional, Type

from .base import BaseExtractor, ExtractionResult, FileExtractor
from .database import DatabaseExtractor
from .delimited import AccountingPackageExtractor, DelimitedExtractor
from .desktop import DesktopBookkeepingExtractor
from .manual import ManualRecordsExtractor
from .online import OnlineBookkeepingExtractor
from .spreadsheet import SpreadsheetExtractor
from ..errors import ConfigurationError
from ..models.job import SourceSystemConfig, SourceSystemType

EXTRACTORS: Dict[SourceSystemType, Type[BaseExtractor]] = {
    SourceSystemType.DESKTOP_BOOKKEEPING: DesktopBookkeepingExtractor,
    SourceSystemType.ONLINE_BOOKKEEPING: OnlineBookkeepingExtractor,
    SourceSystemType.SPREADSHEET: SpreadsheetExtractor,
    SourceSystemType.CSV: DelimitedExtractor,
    SourceSystemType.PAPER_MANUAL: ManualRecordsExtractor,
    SourceSystemType.OTHER_ACCOUNTING_PACKAGE: AccountingPackageExtractor,
    SourceSystemType.CUSTOM_DATABASE: DatabaseExtractor,
}


def get_extractor(
    config: SourceSystemConfig,
    filters: Optional[Dict[str, Any]] = None
) -> BaseExtractor:
    """Create the connector for a source system config."""
    extractor_cls = EXTRACTORS.get(config.type)
    if extractor_cls is None:
        raise ConfigurationError(f"Unsupported system type: {config.type}")
    return extractor_cls(config, filters)


__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "FileExtractor",
    "DatabaseExtractor",
    "AccountingPackageExtractor",
    "DelimitedExtractor",
    "DesktopBookkeepingExtractor",
    "ManualRecordsExtractor",
    "OnlineBookkeepingExtractor",
    "SpreadsheetExtractor",
    "EXTRACTORS",
    "get_extractor",
]
