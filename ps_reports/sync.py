"""Clients for the REST report store."""
from __future__ import annotations

import logging
from typing import Any, BinaryIO, Iterable, Optional, Protocol, Sequence, Tuple, Union

import requests

from .config import AppConfig
from .errors import SyncError

logger = logging.getLogger(__name__)

Payload = dict[str, Any]
UploadItem = Tuple[str, Union[bytes, BinaryIO]]


class SyncClient(Protocol):
    """Raw-JSON CRUD boundary; implementations never normalise payloads."""

    def list(self, employee_id: Optional[str] = None) -> list[Payload]: ...

    def create(self, payload: Payload) -> Payload: ...

    def update(self, record_id: Any, payload: Payload) -> Payload: ...

    def delete(self, record_id: Any) -> None: ...


class RestSyncClient:
    """``requests`` based client for the ``/api/reports`` endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: AppConfig) -> "RestSyncClient":
        return cls(config.api_base_url, timeout=config.http_timeout)

    @property
    def reports_url(self) -> str:
        return f"{self.base_url}/api/reports"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise SyncError(f"{method} {url} failed: {exc}") from exc
        if not response.ok:
            message = _error_message(response)
            logger.error("%s %s returned %s: %s", method, url, response.status_code, message)
            raise SyncError(message, status_code=response.status_code)
        return response

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise SyncError(f"Invalid JSON from {response.url}", status_code=response.status_code) from exc

    def list(self, employee_id: Optional[str] = None) -> list[Payload]:
        url = f"{self.reports_url}/employee/{employee_id}" if employee_id else self.reports_url
        data = self._json(self._request("GET", url))
        if not isinstance(data, list):
            raise SyncError(f"Expected a list of reports from {url}")
        logger.info("Fetched %d reports from %s", len(data), url)
        return data

    def create(self, payload: Payload) -> Payload:
        return self._json(self._request("POST", self.reports_url, json=payload))

    def update(self, record_id: Any, payload: Payload) -> Payload:
        return self._json(self._request("PUT", f"{self.reports_url}/{record_id}", json=payload))

    def delete(self, record_id: Any) -> None:
        self._request("DELETE", f"{self.reports_url}/{record_id}")

    def customer_divisions(self) -> list[str]:
        return self._options("customer-divisions", "divisions")

    def customer_companies(self) -> list[str]:
        return self._options("customer-companies", "companies")

    def _options(self, endpoint: str, key: str) -> list[str]:
        data = self._json(self._request("GET", f"{self.reports_url}/{endpoint}"))
        if isinstance(data, dict):
            data = data.get(key)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, str)]

    def upload(self, files: Sequence[UploadItem]) -> list[str]:
        """Send files to the shared upload endpoint and return the stored names."""

        if not files:
            return []
        parts = [("files", (name, content)) for name, content in files]
        data = self._json(self._request("POST", f"{self.base_url}/api/upload", files=parts))
        names: Iterable[Any] = data.get("fileNames", []) if isinstance(data, dict) else []
        return [str(name) for name in names]


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"Request failed with status {response.status_code}"
