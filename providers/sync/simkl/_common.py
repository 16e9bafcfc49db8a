# /providers/sync/simkl/_common.py
from __future__ import annotations
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from wb_platform.models import (
    ActivitySnapshot,
    AllItems,
    ExternalIds,
    MovieEntry,
    RemoteMovie,
    RemoteShow,
    ShowEntry,
    WatchedEpisode,
    WatchedSeason,
)
from wb_platform.timeutil import parse_iso

UA = os.getenv("WB_UA", "WatchBridge/1.0 (SIMKL)")

# ---------- headers

def build_headers(client_id: str, token: str) -> Dict[str, str]:
    h = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "User-Agent": UA,
        "simkl-api-key": str(client_id or "").strip(),
    }
    tok = str(token or "").strip()
    if tok:
        h["Authorization"] = f"Bearer {tok}"
    return h

# ---------- small coercions

def _int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None

def _fix_imdb(ids: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(ids or {})
    imdb = out.get("imdb")
    if imdb:
        s = str(imdb).strip()
        if s and not s.startswith("tt"):
            digits = "".join(ch for ch in s if ch.isdigit())
            if digits: out["imdb"] = f"tt{digits}"
    return out

def _is_null_envelope(row: Any) -> bool:
    return isinstance(row, Mapping) and row.get("type") == "null" and row.get("body") is None

def _rows(body: Any, bucket: str) -> List[Mapping[str, Any]]:
    if body is None or _is_null_envelope(body):
        return []
    arr: Any = body
    if isinstance(body, Mapping):
        arr = body.get(bucket) or body.get("items") or []
    if not isinstance(arr, list):
        return []
    return [x for x in arr if isinstance(x, Mapping) and not _is_null_envelope(x)]

# ---------- activities

def _section_all(acts: Mapping[str, Any], *names: str) -> Any:
    for n in names:
        sec = acts.get(n)
        if isinstance(sec, Mapping) and sec.get("all"):
            return sec.get("all")
    return None

def parse_activities(body: Any) -> ActivitySnapshot:
    acts = body if isinstance(body, Mapping) else {}
    return ActivitySnapshot(
        all=parse_iso(acts.get("all")),
        movies=parse_iso(_section_all(acts, "movies")),
        shows=parse_iso(_section_all(acts, "tv_shows", "shows")),
        anime=parse_iso(_section_all(acts, "anime")),
    )

# ---------- all-items

def parse_ids(raw: Any) -> ExternalIds:
    return ExternalIds.from_mapping(_fix_imdb(raw) if isinstance(raw, Mapping) else {})

def parse_movie_entry(row: Mapping[str, Any]) -> MovieEntry:
    m = row.get("movie")
    movie = None
    if isinstance(m, Mapping):
        movie = RemoteMovie(
            title=(str(m.get("title")).strip() or None) if m.get("title") else None,
            year=_int(m.get("year")),
            ids=parse_ids(m.get("ids")),
            watched_at=parse_iso(m.get("watched_at")),
        )
    return MovieEntry(
        movie=movie,
        status=row.get("status"),
        last_watched_at=parse_iso(row.get("last_watched_at")),
        added_at=parse_iso(row.get("added_to_watchlist_at") or row.get("added_at")),
    )

def _episodes(raw: Any) -> Tuple[WatchedEpisode, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        WatchedEpisode(number=_int(e.get("number", e.get("episode"))), watched_at=parse_iso(e.get("watched_at")))
        for e in raw if isinstance(e, Mapping)
    )

def _seasons(raw: Any) -> Tuple[WatchedSeason, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        WatchedSeason(number=_int(s.get("number", s.get("season"))), episodes=_episodes(s.get("episodes")))
        for s in raw if isinstance(s, Mapping)
    )

def parse_show_entry(row: Mapping[str, Any]) -> ShowEntry:
    s = row.get("show") or row.get("anime")
    show = None
    if isinstance(s, Mapping):
        show = RemoteShow(
            title=(str(s.get("title")).strip() or None) if s.get("title") else None,
            year=_int(s.get("year")),
            ids=parse_ids(s.get("ids")),
        )
    return ShowEntry(
        show=show,
        status=row.get("status"),
        last_watched_at=parse_iso(row.get("last_watched_at")),
        added_at=parse_iso(row.get("added_to_watchlist_at") or row.get("added_at")),
        anime_type=row.get("anime_type"),
        seasons=_seasons(row.get("seasons")),
    )

def parse_all_items(body: Any, buckets: Iterable[str] = ("movies", "shows", "anime")) -> AllItems:
    want = set(buckets)
    return AllItems(
        movies=tuple(parse_movie_entry(r) for r in _rows(body, "movies")) if "movies" in want else (),
        shows=tuple(parse_show_entry(r) for r in _rows(body, "shows")) if "shows" in want else (),
        anime=tuple(parse_show_entry(r) for r in _rows(body, "anime")) if "anime" in want else (),
    )
