# /providers/sync/_mod_SIMKL.py
# WatchBridge SIMKL module: remote catalog fetcher for the watched import.

from __future__ import annotations
__VERSION__ = "1.0.0"
__all__ = ["SIMKLConfig", "SIMKLClient", "SIMKLError", "SIMKLAuthError", "from_config"]

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from wb_platform.models import ActivitySnapshot, AllItems, ItemsQuery
from wb_platform.timeutil import iso_z

from ._mod_common import build_session, debug_log, label_simkl, parse_rate_limit, request_with_retries, safe_json
from .simkl._common import build_headers, parse_activities, parse_all_items

BASE = "https://api.simkl.com"

# ──────────────────────────────────────────────────────────────────────────────
# errors

class SIMKLError(RuntimeError): ...
class SIMKLAuthError(SIMKLError): ...

def _log(msg: str) -> None:
    debug_log("SIMKL", msg)

# ──────────────────────────────────────────────────────────────────────────────
# config + client

@dataclass
class SIMKLConfig:
    client_id: str
    base_url: str = BASE
    timeout: float = 15.0
    max_retries: int = 3


def from_config(cfg: Mapping[str, Any]) -> "SIMKLClient":
    s = dict((cfg or {}).get("simkl") or {})
    return SIMKLClient(SIMKLConfig(
        client_id=str(s.get("client_id") or "").strip(),
        timeout=float(s.get("timeout") or 15.0),
        max_retries=int(s.get("max_retries") or 3),
    ))


class SIMKLClient:
    """Reads activities and completed all-items for one bearer token per call."""

    def __init__(self, cfg: SIMKLConfig, session: Optional[requests.Session] = None):
        if not cfg.client_id:
            raise SIMKLError("SIMKL config requires client_id")
        self.cfg = cfg
        self.base = cfg.base_url.rstrip("/")
        self.session = session or build_session("SIMKL", feature_label=label_simkl)

    def _request(self, method: str, url: str, token: str, *, params: Optional[dict] = None) -> requests.Response:
        try:
            resp = request_with_retries(
                self.session, method, url,
                headers=build_headers(self.cfg.client_id, token),
                params=params or None,
                timeout=self.cfg.timeout, max_retries=self.cfg.max_retries,
            )
        except requests.RequestException as e:
            raise SIMKLError(f"{method} {url} failed: {e}") from e
        rate = parse_rate_limit(resp.headers)
        if rate["remaining"] is not None:
            _log(f"rate remaining={rate['remaining']} limit={rate['limit']} reset={rate['reset']}")
        return resp

    @staticmethod
    def _check(resp: requests.Response, what: str) -> None:
        if resp.status_code in (401, 403):
            raise SIMKLAuthError(f"{what}: HTTP {resp.status_code} (token rejected)")
        if not (200 <= resp.status_code < 300):
            raise SIMKLError(f"{what}: HTTP {resp.status_code}")

    # --- activities --------------------------------------------------------------
    def get_activities(self, token: str) -> ActivitySnapshot:
        """POST first (SIMKL), fallback to GET."""
        url = f"{self.base}/sync/activities"
        resp = self._request("POST", url, token)
        if resp.status_code in (404, 405):
            resp = self._request("GET", url, token)
        self._check(resp, "activities")
        body = safe_json(resp)
        if not isinstance(body, Mapping):
            raise SIMKLError("activities: empty or malformed response")
        snap = parse_activities(body)
        _log(f"activities all={iso_z(snap.all)} movies={iso_z(snap.movies)} shows={iso_z(snap.shows)} anime={iso_z(snap.anime)}")
        return snap

    # --- all-items ---------------------------------------------------------------
    def get_all_items(self, token: str, query: ItemsQuery) -> AllItems:
        url = f"{self.base}/sync/all-items/{query.type}"
        if query.status:
            url = f"{url}/{query.status}"
        params: Dict[str, Any] = {}
        if query.date_from is not None:
            params["date_from"] = iso_z(query.date_from)
        if query.extended:
            params["extended"] = query.extended
        if query.episode_watched_at:
            params["episode_watched_at"] = "yes"

        resp = self._request("GET", url, token, params=params)
        self._check(resp, f"all-items/{query.type}")
        items = parse_all_items(safe_json(resp), buckets=(query.type,))
        _log(f"all-items/{query.type} -> movies={len(items.movies)} shows={len(items.shows)} anime={len(items.anime)} params={params}")
        return items
