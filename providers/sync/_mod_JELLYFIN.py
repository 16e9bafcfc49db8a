# /providers/sync/_mod_JELLYFIN.py
# Jellyfin adapter: config + client + library inventory / watched-state store.

from __future__ import annotations
__VERSION__ = "1.0.0"
__all__ = ["JFConfig", "JFClient", "JellyfinLibrary", "JellyfinError", "from_config"]

import os, requests
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional

from wb_platform.models import ExternalIds, ItemKind, LocalItem, LocalUser, WatchedState, describe

from ._mod_common import build_session, label_jellyfin, request_with_retries, safe_json
from .jellyfin._common import (
    ITEM_FIELDS,
    SERIES_FIELDS,
    episode_from_row,
    movie_from_row,
    page_rows,
    series_ids_by_id,
    state_from_userdata,
    total_of,
    user_from_row,
    userdata_payload,
)

_DEF_UA = os.environ.get("WB_UA", f"WatchBridge/{__VERSION__} (Jellyfin)")

def _log(msg: str):
    if os.environ.get("WB_DEBUG") or os.environ.get("WB_JELLYFIN_DEBUG"):
        print(f"[JELLYFIN] {msg}")


class JellyfinError(RuntimeError): ...

# ──────────────────────────────────────────────────────────────────────────────
# config + client

@dataclass
class JFConfig:
    server: str
    access_token: str
    device_id: str = "watchbridge"
    verify_ssl: bool = True
    timeout: float = 15.0
    max_retries: int = 3
    page_size: int = 500


def from_config(cfg: Mapping[str, Any]) -> "JellyfinLibrary":
    jf = dict((cfg or {}).get("jellyfin") or {})
    return JellyfinLibrary(JFClient(JFConfig(
        server=str(jf.get("server") or "").strip(),
        access_token=str(jf.get("access_token") or "").strip(),
        device_id=str(jf.get("device_id") or "watchbridge").strip(),
        verify_ssl=bool(jf.get("verify_ssl", True)),
        timeout=float(jf.get("timeout") or 15.0),
        max_retries=int(jf.get("max_retries") or 3),
        page_size=max(1, int(jf.get("page_size") or 500)),
    )))


class JFClient:
    BASE_PATH_USER = "/Users/{user_id}"
    BASE_PATH_ITEMS = "/Users/{user_id}/Items"
    BASE_PATH_ITEM = "/Users/{user_id}/Items/{item_id}"
    BASE_PATH_USERDATA = "/Items/{item_id}/UserData"

    def __init__(self, cfg: JFConfig, session: Optional[requests.Session] = None):
        if not cfg.server or not cfg.access_token:
            raise JellyfinError("Jellyfin config requires server, access_token")
        self.cfg = cfg
        self.base = cfg.server.rstrip("/")
        self.session = session or build_session("JELLYFIN", feature_label=label_jellyfin)
        self.session.verify = bool(cfg.verify_ssl)
        auth_val = (f'MediaBrowser Client="WatchBridge", Device="WatchBridge", '
                    f'DeviceId="{cfg.device_id}", Version="{__VERSION__}", Token="{cfg.access_token}"')
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": _DEF_UA,
            "Authorization": auth_val,
            "X-Emby-Authorization": auth_val,
            "X-MediaBrowser-Token": cfg.access_token,
        })

    def _url(self, path: str) -> str:
        return self.base + (path if path.startswith("/") else ("/" + path))

    # Central request path (retries centralized)
    def _request(self, method: str, path: str, *, params: Optional[dict] = None, json: Any = None) -> requests.Response:
        try:
            return request_with_retries(
                self.session, method, self._url(path),
                params=(params or {}), json=json,
                timeout=self.cfg.timeout, max_retries=self.cfg.max_retries,
            )
        except requests.RequestException as e:
            raise JellyfinError(f"{method} {path} failed: {e}") from e

    def get(self, path: str, *, params: Optional[dict] = None) -> requests.Response:
        return self._request("GET", path, params=params)

    def post(self, path: str, *, params: Optional[dict] = None, json: Any = None) -> requests.Response:
        return self._request("POST", path, params=params, json=json)

# ──────────────────────────────────────────────────────────────────────────────
# library + watched state

def _ok(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300


class JellyfinLibrary:
    """Library inventory and per-user watched state over the Jellyfin REST API."""

    def __init__(self, client: JFClient):
        self.client = client

    # --- users -----------------------------------------------------------------
    def resolve_user(self, user_id: str) -> Optional[LocalUser]:
        r = self.client.get(JFClient.BASE_PATH_USER.format(user_id=user_id))
        if r.status_code in (400, 404):
            _log(f"user {user_id} not found (HTTP {r.status_code})")
            return None
        if not _ok(r):
            raise JellyfinError(f"user lookup {user_id}: HTTP {r.status_code}")
        body = safe_json(r)
        return user_from_row(body) if isinstance(body, Mapping) else None

    # --- inventory ---------------------------------------------------------------
    def _pages(self, user: LocalUser, item_type: str, fields: str) -> Iterator[Mapping[str, Any]]:
        path = JFClient.BASE_PATH_ITEMS.format(user_id=user.id)
        limit = self.client.cfg.page_size
        start, total = 0, None
        while True:
            params = {
                "IncludeItemTypes": item_type,
                "Recursive": "true",
                "IsMissing": "false",
                "Fields": fields,
                "StartIndex": start,
                "Limit": limit,
                "EnableTotalRecordCount": "true",
                "EnableUserData": "false",
            }
            r = self.client.get(path, params=params)
            if not _ok(r):
                raise JellyfinError(f"list {item_type} for {user.name}: HTTP {r.status_code}")
            body = safe_json(r)
            rows = page_rows(body)
            if total is None:
                total = total_of(body)
                _log(f"{item_type} scan user={user.name} total={total}")
            yield from rows
            start += len(rows)
            if not rows or len(rows) < limit or (total is not None and start >= total):
                break

    def series_ids(self, user: LocalUser) -> Dict[str, ExternalIds]:
        return series_ids_by_id(self._pages(user, "Series", SERIES_FIELDS))

    def list_items(self, user: LocalUser, kind: ItemKind) -> Iterator[LocalItem]:
        if kind == "movie":
            for row in self._pages(user, "Movie", ITEM_FIELDS):
                m = movie_from_row(row)
                if m is not None:
                    yield m
            return
        series = self.series_ids(user)
        for row in self._pages(user, "Episode", ITEM_FIELDS):
            e = episode_from_row(row, series)
            if e is not None:
                yield e

    # --- watched state -----------------------------------------------------------
    def get_state(self, user: LocalUser, item: LocalItem) -> Optional[WatchedState]:
        r = self.client.get(JFClient.BASE_PATH_ITEM.format(user_id=user.id, item_id=item.item_id))
        if r.status_code == 404:
            return None
        if not _ok(r):
            raise JellyfinError(f"user data for {describe(item)}: HTTP {r.status_code}")
        body = safe_json(r)
        return state_from_userdata(body.get("UserData")) if isinstance(body, Mapping) else None

    def save_state(self, user: LocalUser, item: LocalItem, state: WatchedState, reason: str) -> None:
        r = self.client.post(
            JFClient.BASE_PATH_USERDATA.format(item_id=item.item_id),
            params={"userId": user.id},
            json=userdata_payload(state),
        )
        if not _ok(r):
            raise JellyfinError(f"user data write for {describe(item)}: HTTP {r.status_code}")
        _log(f"userdata saved item={item.item_id} user={user.name} reason={reason}")
