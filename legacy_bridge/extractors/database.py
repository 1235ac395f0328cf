"""Custom database connector."""

import os
import logging
import tempfile
from typing import Any, Dict, List

from sqlalchemy import MetaData, Table, create_engine, inspect, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseExtractor
from ..errors import ExtractionError
from ..models.job import SourceSystemType

logger = logging.getLogger(__name__)


class DatabaseExtractor(BaseExtractor):
    """
    Connector for ad-hoc legacy databases.

    Runs settings.query, or selects every row of settings.table. Without
    either, the first table in the database is read.
    """

    system_type = SourceSystemType.CUSTOM_DATABASE

    def validate_config(self) -> List[str]:
        errors = super().validate_config()
        if not self.config.connection_string:
            errors.append("Database connection string is required")
        return errors

    def read_records(self) -> List[Dict[str, Any]]:
        try:
            engine = create_engine(self.config.connection_string)
        except (SQLAlchemyError, ValueError) as e:
            raise ExtractionError(f"Invalid database connection string: {e}", e)
        return self._read_engine(engine)

    def parse_records(self, buffer: bytes) -> List[Dict[str, Any]]:
        """Read rows from a SQLite database image."""
        fd, path = tempfile.mkstemp(suffix=".db")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(buffer)
            return self._read_engine(create_engine(f"sqlite:///{path}"))
        finally:
            os.remove(path)

    def _read_engine(self, engine: Engine) -> List[Dict[str, Any]]:
        try:
            with engine.connect() as conn:
                query = self.settings.get("query")
                if query:
                    result = conn.execute(text(query))
                else:
                    table_name = self.settings.get("table") or self._first_table(engine)
                    table = Table(table_name, MetaData(), autoload_with=conn)
                    result = conn.execute(select(table))
                records = [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            raise ExtractionError(f"Database query failed: {e}", e)
        finally:
            engine.dispose()

        logger.info(f"Read {len(records)} rows from database")
        return records

    def _first_table(self, engine: Engine) -> str:
        tables = sorted(inspect(engine).get_table_names())
        if not tables:
            raise ExtractionError("Database has no tables")
        return tables[0]
