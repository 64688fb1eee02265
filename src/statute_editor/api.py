"""HTTP client for a statute editor server."""

from typing import Any

import requests
from loguru import logger

from statute_editor.config import resolve_server_url


class StatuteApi:
    """Talks to the save and tree endpoints of a remote editor server.

    Satisfies ``StoreProtocol``. Transport failures, non-2xx statuses and
    non-JSON bodies all raise RuntimeError.
    """

    def __init__(self, base_url: str | None = None, *, timeout: float = 30.0) -> None:
        self.base_url = (base_url or resolve_server_url()).rstrip("/")
        self.timeout = timeout
        self.sess = requests.Session()
        logger.debug("API ready: base_url {!r}", self.base_url)

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}/{path}"
        logger.debug("Making request: {} {}", method, url)
        try:
            return self.sess.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            msg = f"Cannot reach {url}: {e}"
            raise RuntimeError(msg) from e

    @staticmethod
    def _json_object(r: requests.Response) -> dict[str, Any]:
        try:
            rv = r.json()
        except ValueError as e:
            msg = f"Non-JSON response from {r.url} (HTTP {r.status_code})"
            raise RuntimeError(msg) from e
        if not isinstance(rv, dict):
            msg = f"Unexpected JSON from {r.url}: {rv!r}"
            raise RuntimeError(msg)
        return rv

    @staticmethod
    def _error_text(r: requests.Response) -> str:
        try:
            body = r.json()
        except ValueError:
            return r.reason or ""
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return r.reason or ""

    def save_statute(self, statute_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        r = self._request("POST", f"save-statute/{statute_id}", json=payload)
        if not r.ok:
            msg = f"HTTP {r.status_code}: {self._error_text(r)}"
            raise RuntimeError(msg)
        return self._json_object(r)

    def load_statute(self, statute_id: int) -> dict[str, Any] | None:
        r = self._request("GET", f"api/statute/{statute_id}")
        if r.status_code == 404:
            return None
        if not r.ok:
            msg = f"HTTP {r.status_code}: {self._error_text(r)}"
            raise RuntimeError(msg)
        return self._json_object(r)
