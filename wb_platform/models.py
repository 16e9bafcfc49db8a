# wb_platform/models.py
# Records shared by the importer, the key builder and the provider adapters.
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from collections.abc import Mapping
from typing import Any, Literal, Optional, Union

Category = Literal["movies", "shows", "anime"]
ItemKind = Literal["movie", "episode"]

CATEGORIES: tuple[Category, ...] = ("movies", "shows", "anime")


# --- ids ---------------------------------------------------------------------

_PROVIDER_ALIASES = {
    "imdb": "imdb",
    "tmdb": "tmdb",
    "tvdb": "tvdb",
    "slug": "slug",
    "simkl": "simkl",
    "simklid": "simkl",
    "simkl_id": "simkl",
}


@dataclass(frozen=True)
class ExternalIds:
    imdb: Optional[str] = None
    tmdb: Optional[str] = None
    tvdb: Optional[str] = None
    slug: Optional[str] = None
    simkl: Optional[str] = None

    @classmethod
    def from_mapping(cls, ids: Optional[Mapping[str, Any]], *, local: bool = False) -> "ExternalIds":
        """
        Build from a SIMKL `ids` object or a Jellyfin `ProviderIds` map.

        Jellyfin stores the SIMKL slug under "Simkl" and the numeric id under
        "SimklId"; on the SIMKL side "simkl" is the numeric id and "slug" the slug.
        """
        if not isinstance(ids, Mapping):
            return cls()
        out: dict[str, str] = {}
        for k, v in ids.items():
            key = str(k).strip().lower()
            if local and key == "simkl":
                dst = "slug"
            else:
                dst = _PROVIDER_ALIASES.get(key)
            if not dst or v is None or isinstance(v, (dict, list)):
                continue
            s = str(v).strip()
            if s:
                out[dst] = s
        return cls(**out)

    def as_dict(self) -> dict[str, str]:
        return {k: v for k, v in (
            ("imdb", self.imdb), ("tmdb", self.tmdb), ("tvdb", self.tvdb),
            ("slug", self.slug), ("simkl", self.simkl),
        ) if v}

    def __bool__(self) -> bool:
        return bool(self.as_dict())


# --- remote catalog (tagged union) -----------------------------------------

@dataclass(frozen=True)
class RemoteMovie:
    title: Optional[str] = None
    year: Optional[int] = None
    ids: ExternalIds = field(default_factory=ExternalIds)
    watched_at: Optional[datetime] = None


@dataclass(frozen=True)
class RemoteShow:
    title: Optional[str] = None
    year: Optional[int] = None
    ids: ExternalIds = field(default_factory=ExternalIds)


@dataclass(frozen=True)
class WatchedEpisode:
    number: Optional[int] = None
    watched_at: Optional[datetime] = None


@dataclass(frozen=True)
class WatchedSeason:
    number: Optional[int] = None
    episodes: tuple[WatchedEpisode, ...] = ()


@dataclass(frozen=True)
class MovieEntry:
    movie: Optional[RemoteMovie] = None
    status: Optional[str] = None
    last_watched_at: Optional[datetime] = None
    added_at: Optional[datetime] = None
    kind: Literal["movie"] = "movie"


@dataclass(frozen=True)
class ShowEntry:
    show: Optional[RemoteShow] = None
    status: Optional[str] = None
    last_watched_at: Optional[datetime] = None
    added_at: Optional[datetime] = None
    anime_type: Optional[str] = None
    seasons: tuple[WatchedSeason, ...] = ()
    kind: Literal["show"] = "show"


CatalogEntry = Union[MovieEntry, ShowEntry]


@dataclass(frozen=True)
class AllItems:
    movies: tuple[MovieEntry, ...] = ()
    shows: tuple[ShowEntry, ...] = ()
    anime: tuple[ShowEntry, ...] = ()


@dataclass(frozen=True)
class ItemsQuery:
    type: Category
    status: str = "completed"
    date_from: Optional[datetime] = None
    extended: Optional[str] = None
    episode_watched_at: bool = False


@dataclass(frozen=True)
class ActivitySnapshot:
    all: Optional[datetime] = None
    movies: Optional[datetime] = None
    shows: Optional[datetime] = None
    anime: Optional[datetime] = None

    def for_category(self, category: Category) -> Optional[datetime]:
        return {"movies": self.movies, "shows": self.shows, "anime": self.anime}[category]


# --- local side (tagged union) ----------------------------------------------

@dataclass(frozen=True)
class LocalUser:
    id: str
    name: str


@dataclass(frozen=True)
class LocalMovie:
    item_id: str
    name: Optional[str] = None
    year: Optional[int] = None
    ids: ExternalIds = field(default_factory=ExternalIds)
    original_title: Optional[str] = None
    kind: Literal["movie"] = "movie"


@dataclass(frozen=True)
class LocalEpisode:
    item_id: str
    name: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    series_ids: ExternalIds = field(default_factory=ExternalIds)
    series_name: Optional[str] = None
    kind: Literal["episode"] = "episode"


LocalItem = Union[LocalMovie, LocalEpisode]


def describe(item: LocalItem) -> str:
    if isinstance(item, LocalEpisode):
        return f"{item.series_name or '?'} S{item.season}E{item.episode}"
    return item.name or item.item_id


@dataclass(frozen=True)
class WatchedState:
    played: bool = False
    last_played: Optional[datetime] = None
    play_count: int = 0


@dataclass
class ImportSummary:
    movies_imported: int = 0
    episodes_imported: int = 0
    movies_not_found: int = 0
    episodes_not_found: int = 0
    dry_run: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "movies_imported": self.movies_imported,
            "episodes_imported": self.episodes_imported,
            "movies_not_found": self.movies_not_found,
            "episodes_not_found": self.episodes_not_found,
            "dry_run": self.dry_run,
        }


