# /wb_platform/id_keys.py
# Lookup keys for matching SIMKL entries against library items.
# - Normalize ids the same way on both sides (SIMKL ids / Jellyfin ProviderIds).
# - Emit every usable key for an entity, most authoritative first.
# - Episodes: show ids + S/E composite, never a title fallback.

from __future__ import annotations
import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from .models import ExternalIds, LocalEpisode, LocalItem, LocalMovie, RemoteMovie, RemoteShow

# scheme label -> ExternalIds attribute, in priority order
MOVIE_SCHEMES: Tuple[Tuple[str, str], ...] = (
    ("imdb", "imdb"), ("tmdb", "tmdb"), ("simkl", "slug"), ("simklid", "simkl"),
)
EPISODE_SCHEMES: Tuple[Tuple[str, str], ...] = (
    ("imdb", "imdb"), ("tmdb", "tmdb"), ("tvdb", "tvdb"), ("simkl", "slug"), ("simklid", "simkl"),
)

__all__ = [
    "MOVIE_SCHEMES", "EPISODE_SCHEMES",
    "normalize_id", "title_key",
    "movie_keys", "show_keys", "episode_keys",
    "keys_for_item", "keys_for_movie", "keys_for_show",
]

IdsLike = Union[ExternalIds, Mapping[str, Any], None]

# --- tiny utils ---------------------------------------------------------------

_CLEAN_SENTINELS = {"none", "null", "nan", "undefined", "unknown", "0", ""}

def _norm_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None

def normalize_id(scheme: str, val: Any) -> Optional[str]:
    """Normalize provider ids so both sides produce identical keys."""
    k = (scheme or "").lower().strip()
    s = _norm_str(val)
    if not s or s.lower() in _CLEAN_SENTINELS:
        return None

    if k in ("tmdb", "tvdb", "simklid"):
        digits = re.sub(r"\D+", "", s)
        return digits.lstrip("0") or None

    if k == "imdb":
        m = re.search(r"(tt\d+)", s.lower())
        if m:
            return m.group(1)
        digits = re.sub(r"\D+", "", s)
        return f"tt{digits}" if digits else None

    if k == "simkl":
        return s.lower()

    return s

def _as_ids(ids: IdsLike) -> ExternalIds:
    if isinstance(ids, ExternalIds):
        return ids
    return ExternalIds.from_mapping(ids)

def _dedupe(keys: Iterable[Optional[str]]) -> List[str]:
    return list(dict.fromkeys(k for k in keys if k))

def _year(v: Any) -> Optional[int]:
    try:
        y = int(v)
    except (TypeError, ValueError):
        return None
    return y if y > 0 else None

# --- keys ---------------------------------------------------------------------

def title_key(title: Any, year: Any) -> Optional[str]:
    t = _norm_str(title)
    y = _year(year)
    if not t or y is None:
        return None
    return f"title:{t}:{y}".lower()

def _id_keys(ids: ExternalIds, schemes: Tuple[Tuple[str, str], ...], suffix: str = "") -> List[str]:
    out: List[str] = []
    for label, attr in schemes:
        v = normalize_id(label, getattr(ids, attr))
        if v:
            out.append(f"{label}:{v}{suffix}".lower())
    return out

def movie_keys(
    ids: IdsLike,
    *,
    title: Any = None,
    year: Any = None,
    original_title: Any = None,
) -> List[str]:
    """imdb, tmdb, slug, simkl id, then title:<title>:<year> (original title before display title)."""
    keys = _id_keys(_as_ids(ids), MOVIE_SCHEMES)
    keys.append(title_key(original_title, year))
    keys.append(title_key(title, year))
    return _dedupe(keys)

def show_keys(ids: IdsLike, *, title: Any = None, year: Any = None) -> List[str]:
    keys = _id_keys(_as_ids(ids), MOVIE_SCHEMES)
    keys.append(title_key(title, year))
    return _dedupe(keys)

def episode_keys(show_ids: IdsLike, season: Any, episode: Any) -> List[str]:
    """Show-level ids + S/E composite. No title fallback for episodes."""
    try:
        s = int(season)
        e = int(episode)
    except (TypeError, ValueError):
        return []
    return _dedupe(_id_keys(_as_ids(show_ids), EPISODE_SCHEMES, suffix=f":S{s}E{e}"))

def keys_for_item(item: LocalItem) -> List[str]:
    if isinstance(item, LocalEpisode):
        if item.season is None or item.episode is None:
            return []
        return episode_keys(item.series_ids, item.season, item.episode)
    if isinstance(item, LocalMovie):
        return movie_keys(item.ids, title=item.name, year=item.year, original_title=item.original_title)
    return []

def keys_for_movie(movie: Optional[RemoteMovie]) -> List[str]:
    if movie is None:
        return []
    return movie_keys(movie.ids, title=movie.title, year=movie.year)

def keys_for_show(show: Optional[RemoteShow]) -> List[str]:
    if show is None:
        return []
    return show_keys(show.ids, title=show.title, year=show.year)
