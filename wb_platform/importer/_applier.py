# wb_platform/importer/_applier.py
# Forward-only merge of a remote watch event into the local watched state.
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..models import ImportSummary, LocalEpisode, LocalItem, LocalUser, WatchedState, describe
from ..timeutil import as_utc, iso_z
from ._types import StateStore

SAVE_REASON = "import"


class ApplyOutcome(Enum):
    UNCHANGED = "unchanged"
    WOULD_UPDATE = "would-update"
    UPDATED = "updated"
    NO_STATE = "no-state"


#--- pure decision ------------------------------------------------------------
def needs_update(state: WatchedState, watched_at: datetime) -> bool:
    if not state.played or state.last_played is None:
        return True
    return as_utc(state.last_played) < as_utc(watched_at)


def merge(state: WatchedState, watched_at: datetime) -> WatchedState:
    """played=True, last_played=watched_at, play_count never below 1 and never lowered."""
    return WatchedState(
        played=True,
        last_played=as_utc(watched_at),
        play_count=max(int(state.play_count or 0), 1),
    )


#--- apply ---------------------------------------------------------------------
def apply_watched(
    *,
    store: StateStore,
    user: LocalUser,
    item: LocalItem,
    watched_at: datetime,
    dry_run: bool,
    summary: ImportSummary,
    log: Any,
) -> ApplyOutcome:
    state: Optional[WatchedState] = store.get_state(user, item)
    if state is None:
        log.warn(f"Unable to load user data for {describe(item)!r} and user {user.name}")
        return ApplyOutcome.NO_STATE

    if not needs_update(state, watched_at):
        return ApplyOutcome.UNCHANGED

    is_episode = isinstance(item, LocalEpisode)
    if is_episode:
        summary.episodes_imported += 1
    else:
        summary.movies_imported += 1

    if dry_run:
        log.dry_run(
            f"Would mark {'episode' if is_episode else 'movie'} {describe(item)!r} "
            f"as watched for {user.name} at {iso_z(watched_at)}"
        )
        return ApplyOutcome.WOULD_UPDATE

    store.save_state(user, item, merge(state, watched_at), SAVE_REASON)
    return ApplyOutcome.UPDATED
