# wb_platform/importer/_activities.py
# Activity snapshot <-> per-user config, and fetch windows derived from it.
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..config_base import UserConfig
from ..models import ActivitySnapshot, Category, ItemsQuery
from ..timeutil import iso_z


def snapshot_from_config(user: UserConfig) -> ActivitySnapshot:
    return ActivitySnapshot(
        all=user.last_activities_all,
        movies=user.last_activities_movies,
        shows=user.last_activities_shows,
        anime=user.last_activities_anime,
    )


def store_snapshot(user: UserConfig, snap: ActivitySnapshot, *, imported_at: datetime) -> UserConfig:
    """Overwrite all four stored timestamps and stamp the import time."""
    user.last_activities_all = snap.all
    user.last_activities_movies = snap.movies
    user.last_activities_shows = snap.shows
    user.last_activities_anime = snap.anime
    user.last_import_utc = imported_at
    return user


def query_for(category: Category, previous: ActivitySnapshot) -> ItemsQuery:
    """Completed entries changed since the stored activity; None means full history."""
    since = previous.for_category(category)
    if category == "movies":
        return ItemsQuery(type="movies", status="completed", date_from=since)
    return ItemsQuery(
        type=category,
        status="completed",
        date_from=since,
        extended="full",
        episode_watched_at=True,
    )


def describe_window(previous: ActivitySnapshot, category: Category) -> str:
    since: Optional[datetime] = previous.for_category(category)
    return f"since {iso_z(since)}" if since else "full history"
