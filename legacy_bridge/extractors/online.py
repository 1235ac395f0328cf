"""Online bookkeeping connector (REST API)."""

import json
import time
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import BaseExtractor
from ..errors import ExtractionError
from ..models.job import SourceSystemConfig, SourceSystemType

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGES = 10000


def flatten(item: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested objects into dotted keys (e.g. PrimaryEmailAddr.Address)."""
    flat = {}
    for key, value in item.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten(value, path))
        else:
            flat[path] = value
    return flat


def _get_path(data: Any, path: str) -> Any:
    for part in path.split("."):
        if not isinstance(data, dict):
            return None
        data = data.get(part)
    return data


class OnlineBookkeepingExtractor(BaseExtractor):
    """
    Connector for online bookkeeping REST APIs.

    Supports:
    - Bearer token authentication
    - Offset pagination (startPosition / maxResults)
    - Rate limiting
    - Retry logic
    """

    system_type = SourceSystemType.ONLINE_BOOKKEEPING

    def __init__(
        self,
        config: SourceSystemConfig,
        filters: Optional[Dict[str, Any]] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the API connector.

        Args:
            config: Source config; connection_string holds the API base URL
            filters: Row filters
            session: Custom requests session
        """
        super().__init__(config, filters)
        self._session = session or self._create_session()
        rate_limit = self.settings.get("rate_limit")
        self._rate_limit_delay = 1 / rate_limit if rate_limit else 0

    @property
    def api_token(self) -> Optional[str]:
        creds = self.config.credentials
        return creds.get("api_token") or creds.get("access_token")

    @property
    def entity(self) -> str:
        return self.settings.get("entity", "Customer")

    @property
    def page_size(self) -> int:
        return int(self.settings.get("page_size", DEFAULT_PAGE_SIZE))

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        retries = Retry(
            total=self.settings.get("max_retries", 3),
            backoff_factor=self.settings.get("backoff_factor", 2.0),
            status_forcelist=[429, 500, 502, 503, 504],
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def validate_config(self) -> List[str]:
        """Validate the API source configuration."""
        errors = super().validate_config()

        if not self.config.connection_string:
            errors.append("API base URL (connection_string) is required for online bookkeeping imports")

        if not self.api_token:
            errors.append("API token is required for online bookkeeping imports")

        return errors

    def read_records(self) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        start = 1

        for _ in range(MAX_PAGES):
            page = self._fetch_page(start)
            records.extend(page)
            if len(page) < self.page_size:
                break
            start += len(page)

        logger.info(f"Fetched {len(records)} {self.entity} records from {self.config.connection_string}")
        return records

    def _fetch_page(self, start: int) -> List[Dict[str, Any]]:
        url = f"{self.config.connection_string.rstrip('/')}/{self.settings.get('endpoint', 'query').lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Accept": "application/json",
        }
        params = {
            "entity": self.entity,
            "startPosition": start,
            "maxResults": self.page_size,
        }

        if self._rate_limit_delay > 0:
            time.sleep(self._rate_limit_delay)

        try:
            response = self._session.get(
                url,
                headers=headers,
                params=params,
                timeout=self.settings.get("timeout", 30),
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise ExtractionError(
                f"HTTP error: {e.response.status_code} - {e.response.text}", e
            )
        except requests.exceptions.RequestException as e:
            raise ExtractionError(f"Request failed: {e}", e)

        return self._parse_payload(response.json())

    def parse_records(self, buffer: bytes) -> List[Dict[str, Any]]:
        return self._parse_payload(json.loads(buffer.decode("utf-8")))

    def _parse_payload(self, data: Any) -> List[Dict[str, Any]]:
        """Pull the record list out of an API response."""
        data_field = self.settings.get("data_field", f"QueryResponse.{self.entity}")

        items = _get_path(data, data_field) if isinstance(data, dict) else data
        if items is None and isinstance(data, dict):
            for key in ["data", "records", "items", "results"]:
                if isinstance(data.get(key), list):
                    items = data[key]
                    break

        if items is None:
            return []
        if not isinstance(items, list):
            items = [items]

        return [flatten(item) for item in items if isinstance(item, dict)]
