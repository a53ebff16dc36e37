from __future__ import annotations

import os
import urllib.parse
from typing import Any

import requests

from src.components.store import ComponentStoreError, validate_component_id


class HttpComponentStore:
    """Component store backed by a JSON HTTP API.

    `GET  {base}/components/{id}` -> `{"code": "..."}` (404 when unknown)
    `PUT  {base}/components/{id}` <- `{"code": "..."}`
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str = "",
        session: requests.Session | None = None,
        timeout_s: int = 30,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._token = token
        self._http = session or requests.Session()
        self._timeout_s = timeout_s

    @classmethod
    def from_env(cls, *, session: requests.Session | None = None) -> HttpComponentStore:
        base = (os.environ.get("COMPONENT_STORE_URL") or "").strip()
        if not base:
            raise ComponentStoreError("COMPONENT_STORE_URL is not set")
        token = (os.environ.get("COMPONENT_STORE_TOKEN") or "").strip()
        return cls(base_url=base, token=token, session=session)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _url(self, component_id: str) -> str:
        encoded = urllib.parse.quote(validate_component_id(component_id), safe="")
        return f"{self._base}/components/{encoded}"

    def _request(self, method: str, component_id: str, *, body: Any = None) -> Any:
        try:
            res = self._http.request(
                method,
                self._url(component_id),
                headers=self._headers(),
                json=body,
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise ComponentStoreError(f"component store request failed: {exc}") from exc
        if res.status_code == 404:
            return None
        if res.status_code >= 400:
            raise ComponentStoreError(
                f"component store error {res.status_code} for {method} {component_id}"
            )
        try:
            return res.json()
        except Exception:
            return {}

    def get(self, component_id: str) -> str | None:
        data = self._request("GET", component_id)
        if data is None:
            return None
        if not isinstance(data, dict) or not isinstance(data.get("code"), str):
            raise ComponentStoreError("Unexpected component store response")
        return data["code"]

    def set(self, component_id: str, code: str) -> None:
        self._request("PUT", component_id, body={"code": str(code)})
