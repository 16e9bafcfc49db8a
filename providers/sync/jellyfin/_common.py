# /providers/sync/jellyfin/_common.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional
import os

from wb_platform.models import ExternalIds, LocalEpisode, LocalMovie, LocalUser, WatchedState
from wb_platform.timeutil import iso_z, parse_iso

ITEM_FIELDS = "ProviderIds,ProductionYear,OriginalTitle,SeriesId,SeriesName,ParentIndexNumber,IndexNumber"
SERIES_FIELDS = "ProviderIds,ProductionYear"

# --- logging (quiet by default) ----------------------------------------------
def _debug_level() -> str:
    env = (os.environ.get("WB_JELLYFIN_DEBUG_LEVEL") or "").strip().lower()
    if env in ("2", "v", "verbose"): return "verbose"
    if env in ("1", "s", "summary", "true", "on"): return "summary"
    if os.environ.get("WB_JELLYFIN_DEBUG") or os.environ.get("WB_DEBUG"): return "summary"
    return "off"

def _log_detail(msg: str) -> None:
    # per-scan detail; summary lines come from the adapter itself
    if _debug_level() == "verbose":
        print(f"[JELLYFIN:common] {msg}")

# --- small coercions ----------------------------------------------------------
def _int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool): return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None

def _str(v: Any) -> Optional[str]:
    s = str(v).strip() if v is not None else ""
    return s or None

def is_virtual(row: Mapping[str, Any]) -> bool:
    # missing episodes / placeholder items carry LocationType=Virtual
    return str(row.get("LocationType") or "").strip().lower() == "virtual" or bool(row.get("IsVirtualItem"))

# --- rows -> records ------------------------------------------------------------
def provider_ids(row: Mapping[str, Any]) -> ExternalIds:
    pids = row.get("ProviderIds")
    return ExternalIds.from_mapping(pids if isinstance(pids, Mapping) else {}, local=True)

def user_from_row(row: Mapping[str, Any]) -> Optional[LocalUser]:
    uid = _str(row.get("Id"))
    if not uid: return None
    return LocalUser(id=uid, name=_str(row.get("Name")) or uid)

def movie_from_row(row: Mapping[str, Any]) -> Optional[LocalMovie]:
    iid = _str(row.get("Id"))
    if not iid or is_virtual(row): return None
    return LocalMovie(
        item_id=iid,
        name=_str(row.get("Name")),
        year=_int(row.get("ProductionYear")),
        ids=provider_ids(row),
        original_title=_str(row.get("OriginalTitle")),
    )

def episode_from_row(row: Mapping[str, Any], series: Mapping[str, ExternalIds]) -> Optional[LocalEpisode]:
    """Episodes carry their parent series' ids; the episode's own ProviderIds are not used for matching."""
    iid = _str(row.get("Id"))
    if not iid or is_virtual(row): return None
    sid = _str(row.get("SeriesId"))
    return LocalEpisode(
        item_id=iid,
        name=_str(row.get("Name")),
        season=_int(row.get("ParentIndexNumber")),
        episode=_int(row.get("IndexNumber")),
        series_ids=series.get(sid, ExternalIds()) if sid else ExternalIds(),
        series_name=_str(row.get("SeriesName")),
    )

def series_ids_by_id(rows: Iterable[Mapping[str, Any]]) -> Dict[str, ExternalIds]:
    out: Dict[str, ExternalIds] = {}
    for row in rows:
        sid = _str(row.get("Id"))
        if sid:
            out[sid] = provider_ids(row)
    _log_detail(f"series ids loaded: {len(out)}")
    return out

# --- user data ------------------------------------------------------------------
def state_from_userdata(ud: Any) -> Optional[WatchedState]:
    if not isinstance(ud, Mapping): return None
    return WatchedState(
        played=bool(ud.get("Played")),
        last_played=parse_iso(ud.get("LastPlayedDate")),
        play_count=_int(ud.get("PlayCount")) or 0,
    )

def userdata_payload(state: WatchedState) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"Played": bool(state.played), "PlayCount": int(state.play_count or 0)}
    if state.last_played is not None:
        payload["LastPlayedDate"] = iso_z(state.last_played)
    return payload

# --- paging ---------------------------------------------------------------------
def page_rows(body: Any) -> List[Mapping[str, Any]]:
    if not isinstance(body, Mapping): return []
    items = body.get("Items") or []
    return [x for x in items if isinstance(x, Mapping)] if isinstance(items, list) else []

def total_of(body: Any) -> Optional[int]:
    return _int(body.get("TotalRecordCount")) if isinstance(body, Mapping) else None
