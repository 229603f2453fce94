# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/operation/pd.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..errors import PDError

log = logging.getLogger("clusterops")

STORES_API = "/pd/api/v1/stores"
HEALTH_API = "/pd/api/v1/health"
LEADER_API = "/pd/api/v1/leader"

# Up, Offline and Tombstone; PD hides tombstone stores unless asked
_ALL_STORE_STATES = [("state", "0"), ("state", "1"), ("state", "2")]


class PDClient:
    """
    Minimal client of the placement driver HTTP API. Endpoints are tried in
    order; the first one that answers wins.
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        *,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.endpoints = list(endpoints)
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Any = None) -> Any:
        if not self.endpoints:
            raise PDError("no PD endpoints configured")

        errors: List[str] = []
        for endpoint in self.endpoints:
            url = f"http://{endpoint}{path}"
            try:
                r = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as exc:
                errors.append(f"{endpoint}: {exc}")
                continue
            if r.status_code != 200:
                errors.append(f"{endpoint}: {r.status_code} {r.text}")
                continue
            try:
                return r.json()
            except ValueError as exc:
                # proxies and PDs still starting up answer 200 with a non-JSON body
                errors.append(f"{endpoint}: invalid JSON body: {exc}")

        raise PDError(f"GET {path} failed on all PD endpoints: {'; '.join(errors)}")

    def health(self) -> List[Dict[str, Any]]:
        data = self._get(HEALTH_API) or []
        if not isinstance(data, list) or not all(isinstance(m, dict) for m in data):
            raise PDError(f"unexpected {HEALTH_API} payload: {type(data).__name__}")
        return data

    def leader_name(self) -> Optional[str]:
        data = self._get(LEADER_API) or {}
        if not isinstance(data, dict):
            raise PDError(f"unexpected {LEADER_API} payload: {type(data).__name__}")
        return data.get("name")

    def store_states(self) -> Dict[str, str]:
        """Map of store address -> state name (``Up``, ``Offline``, ``Tombstone`` ...)."""
        data = self._get(STORES_API, params=_ALL_STORE_STATES) or {}
        if not isinstance(data, dict) or not isinstance(data.get("stores") or [], list):
            raise PDError(f"unexpected {STORES_API} payload: {type(data).__name__}")
        states: Dict[str, str] = {}
        for item in data.get("stores") or []:
            store = item.get("store") if isinstance(item, dict) else None
            if not isinstance(store, dict):
                raise PDError(f"unexpected store entry in {STORES_API}: {item!r}")
            address = store.get("address")
            if address:
                states[address] = store.get("state_name", "Unknown")
        return states

    def has_quorum(self) -> bool:
        members = self.health()
        healthy = sum(1 for m in members if m.get("health"))
        return bool(members) and healthy > len(members) // 2
