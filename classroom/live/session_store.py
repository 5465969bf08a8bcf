from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Optional, Protocol

import requests

from classroom.helpers.config_helper import ConfigHelper
from classroom.helpers.logging_helper import log_info, log_module_import, log_warning
from classroom.live.errors import StoreUnavailable
from classroom.live.models import SESSION_KEY, LiveSession

log_module_import(__name__)

DEFAULT_TABLE = "live_sessions"
DEFAULT_TIMEOUT = 10


class SessionStore(Protocol):
    def get(self, key: str = SESSION_KEY) -> Optional[LiveSession]: ...

    def upsert(self, session: LiveSession) -> None: ...

    def delete(self, key: str = SESSION_KEY) -> None: ...


class RestSessionStore:
    """
    Thin wrapper over a PostgREST endpoint (e.g. a Supabase project) holding
    the singleton ``live_sessions`` row.

    Reads configuration from [SessionStore] in config/config.ini:
      - base_url: project URL (e.g. https://<project>.supabase.co)
      - api_key:  anon/publishable key sent as ``apikey`` and bearer token
      - table:    table name (default ``live_sessions``)
      - timeout:  request timeout in seconds
    Each operation is a single attempt; failures raise StoreUnavailable.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        *,
        table: str = DEFAULT_TABLE,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.table = table or DEFAULT_TABLE
        self.timeout = timeout
        self._http = session or requests.Session()

    @classmethod
    def from_config(cls) -> "RestSessionStore":
        base_url = ConfigHelper.get("SessionStore", "base_url", fallback="") or ""
        api_key = ConfigHelper.get("SessionStore", "api_key", fallback="") or ""
        table = ConfigHelper.get("SessionStore", "table", fallback=DEFAULT_TABLE) or DEFAULT_TABLE
        try:
            timeout = float(ConfigHelper.get("SessionStore", "timeout", fallback=str(DEFAULT_TIMEOUT)))
        except (TypeError, ValueError):
            timeout = DEFAULT_TIMEOUT
        return cls(base_url, api_key, table=table, timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, *, params: Optional[Dict[str, str]] = None, json_body: Any = None, headers=None):
        try:
            resp = self._http.request(
                method,
                self.endpoint,
                params=params,
                json=json_body,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreUnavailable(f"{method} {self.table} failed: {exc}") from exc
        if resp.status_code >= 400:
            detail = (resp.text or "").strip()[:200]
            raise StoreUnavailable(f"{method} {self.table} returned HTTP {resp.status_code}: {detail}")
        return resp

    def get(self, key: str = SESSION_KEY) -> Optional[LiveSession]:
        resp = self._request("GET", params={"id": f"eq.{key}", "select": "*"})
        try:
            rows = resp.json()
        except ValueError as exc:
            raise StoreUnavailable(f"Malformed session payload: {exc}") from exc
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            return None
        return LiveSession.from_dict(rows[0])

    def upsert(self, session: LiveSession) -> None:
        self._request(
            "POST",
            json_body=session.to_dict(),
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def delete(self, key: str = SESSION_KEY) -> None:
        self._request("DELETE", params={"id": f"eq.{key}"})


class InMemorySessionStore:
    """Process-local store used when no REST endpoint is configured."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: Dict[str, Dict[str, Any]] = {}
        self.available = True

    def _check(self) -> None:
        if not self.available:
            raise StoreUnavailable("Session store is offline")

    def get(self, key: str = SESSION_KEY) -> Optional[LiveSession]:
        self._check()
        with self._lock:
            row = self._rows.get(key)
            return LiveSession.from_dict(copy.deepcopy(row)) if row else None

    def upsert(self, session: LiveSession) -> None:
        self._check()
        with self._lock:
            self._rows[session.id] = session.to_dict()

    def delete(self, key: str = SESSION_KEY) -> None:
        self._check()
        with self._lock:
            self._rows.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


def create_session_store() -> SessionStore:
    base_url = (ConfigHelper.get("SessionStore", "base_url", fallback="") or "").strip()
    if base_url:
        log_info(f"Using REST session store at {base_url}", func_name="create_session_store")
        return RestSessionStore.from_config()
    log_warning("No session store configured; running in local-only mode", func_name="create_session_store")
    return InMemorySessionStore()
