# wb_platform/importer/_engine.py
# Per-category reconciliation: fetch changed entries, match, merge.
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..id_keys import episode_keys, keys_for_movie, keys_for_show
from ..models import (
    ActivitySnapshot,
    AllItems,
    Category,
    ImportSummary,
    LocalEpisode,
    LocalMovie,
    LocalUser,
    MovieEntry,
    ShowEntry,
)
from ..timeutil import utc_now
from ._activities import describe_window, query_for
from ._applier import ApplyOutcome, apply_watched
from ._index import InventoryIndex
from ._types import CancelToken, CatalogFetcher, StateStore


@dataclass
class ImportRun:
    """Everything one user's run needs; discarded when the run ends."""
    user: LocalUser
    token: str
    fetcher: CatalogFetcher
    store: StateStore
    previous: ActivitySnapshot
    movies: InventoryIndex[LocalMovie]
    episodes: InventoryIndex[LocalEpisode]
    log: Any
    dry_run: bool = False
    cancel: Optional[CancelToken] = None
    now: Callable[[], datetime] = utc_now
    summary: ImportSummary = field(default_factory=ImportSummary)
    outcomes: dict[ApplyOutcome, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.summary.dry_run = self.dry_run

    def checkpoint(self) -> None:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled()

    def apply(self, item: LocalMovie | LocalEpisode, watched_at: datetime) -> ApplyOutcome:
        outcome = apply_watched(
            store=self.store,
            user=self.user,
            item=item,
            watched_at=watched_at,
            dry_run=self.dry_run,
            summary=self.summary,
            log=self.log,
        )
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1
        return outcome


def _entries(items: AllItems, category: Category) -> Sequence[MovieEntry | ShowEntry]:
    if category == "movies":
        return items.movies
    if category == "shows":
        return items.shows
    return items.anime


#--- movies --------------------------------------------------------------------
def import_movies(run: ImportRun, entries: Sequence[MovieEntry]) -> None:
    for entry in entries:
        run.checkpoint()
        match = run.movies.find(keys_for_movie(entry.movie))
        if match is None:
            run.summary.movies_not_found += 1
            title = entry.movie.title if entry.movie else None
            run.log.debug(f"No movie match found locally for SIMKL entry {title!r}")
            continue
        watched_at = (entry.movie.watched_at if entry.movie else None) or entry.last_watched_at or run.now()
        run.apply(match, watched_at)


#--- shows / anime -------------------------------------------------------------
def import_episodes(run: ImportRun, entries: Sequence[ShowEntry]) -> None:
    for entry in entries:
        run.checkpoint()
        if not entry.seasons:
            continue
        show_ids = entry.show.ids if entry.show else None
        show_ref = next(iter(keys_for_show(entry.show)), None) or (entry.show.title if entry.show else None)
        for season in entry.seasons:
            if season.number is None or not season.episodes:
                continue
            for ep in season.episodes:
                run.checkpoint()
                if ep.number is None:
                    continue
                match = run.episodes.find(episode_keys(show_ids, season.number, ep.number)) if show_ids else None
                if match is None:
                    run.summary.episodes_not_found += 1
                    run.log.debug(f"Unable to match episode {show_ref!r} S{season.number}E{ep.number} locally")
                    continue
                watched_at = ep.watched_at or entry.last_watched_at or run.now()
                run.apply(match, watched_at)


#--- dispatch -------------------------------------------------------------------
def import_category(run: ImportRun, category: Category) -> int:
    """Fetch and reconcile one category. Fetch errors propagate. Returns the entry count."""
    run.checkpoint()
    query = query_for(category, run.previous)
    run.log.debug(f"Fetching completed {category} ({describe_window(run.previous, category)})")
    items = run.fetcher.get_all_items(run.token, query)
    entries = _entries(items, category)
    if not entries:
        run.log.debug(f"No {category} entries returned for user {run.user.name}")
        return 0

    if category == "movies":
        import_movies(run, [e for e in entries if isinstance(e, MovieEntry)])
    else:
        import_episodes(run, [e for e in entries if isinstance(e, ShowEntry)])
    return len(entries)
