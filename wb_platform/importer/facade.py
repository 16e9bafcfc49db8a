# wb_platform/importer/facade.py
# Per-user driver and batch runner for the SIMKL -> library watched import.
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from _logging import log as _root_log

from ..config_base import ConfigStore, UserConfig
from ..models import CATEGORIES, ImportSummary, LocalUser
from ..timeutil import utc_now
from ._activities import snapshot_from_config, store_snapshot
from ._engine import ImportRun, import_category
from ._index import build_episode_index, build_movie_index
from ._types import CancelToken, CatalogFetcher, ImportCancelled, LibraryInventory, StateStore

__all__ = ["Importer", "format_summary"]

ProgressFn = Callable[[float], None]


def format_summary(username: str, summary: ImportSummary) -> str:
    mode = "Dry-run" if summary.dry_run else "Import"
    return (
        f"{mode} completed for {username}: "
        f"{summary.movies_imported} movies, {summary.episodes_imported} episodes updated. "
        f"{summary.movies_not_found} movies and {summary.episodes_not_found} episodes not matched."
    )


@dataclass
class Importer:
    config: ConfigStore
    fetcher: CatalogFetcher
    inventory: LibraryInventory
    states: StateStore
    log: Any = None
    now: Callable[[], datetime] = utc_now

    last_user: Optional[LocalUser] = field(init=False, default=None)

    def __post_init__(self) -> None:
        if self.log is None:
            self.log = _root_log.child("IMPORT")

    # --- per user ---------------------------------------------------------------
    def _validate(self, user_id: str) -> tuple[UserConfig, LocalUser] | None:
        cfg = self.config.get_user(user_id)
        if cfg is None or not cfg.has_token:
            self.log.warn(f"Cannot import for user {user_id}. Missing configuration or token.")
            return None
        if not cfg.sync_from_simkl:
            self.log.warn(f"Cannot import for user {user_id}. Sync from SIMKL is disabled.")
            return None
        user = self.inventory.resolve_user(cfg.id)
        if user is None:
            self.log.warn(f"Cannot import for user {user_id}. Library user not found.")
            return None
        return cfg, user

    def run_import(
        self,
        user_id: str,
        *,
        dry_run: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> Optional[ImportSummary]:
        """
        Import watched state for one user.

        Returns None when the user is skipped (disabled, no token, unknown
        locally). Fetch/store errors are logged and re-raised; the stored
        activity snapshot is only advanced after all three categories
        succeeded, and never in dry-run mode.
        """
        checked = self._validate(user_id)
        if checked is None:
            return None
        cfg, user = checked
        self.last_user = user
        ulog = self.log.bind(user=user.name)

        try:
            ulog.info(f"Starting watched import from SIMKL for user {user.name} (dry-run: {dry_run})")
            previous = snapshot_from_config(cfg)
            activities = self.fetcher.get_activities(cfg.user_token)

            movies = build_movie_index(self.inventory, user)
            episodes = build_episode_index(self.inventory, user)
            for label, idx in (("movie", movies), ("episode", episodes)):
                ulog.debug(
                    f"{label} index: items={idx.items} keys={len(idx)} "
                    f"skipped={idx.skipped} collisions={idx.collisions}"
                )

            run = ImportRun(
                user=user,
                token=cfg.user_token,
                fetcher=self.fetcher,
                store=self.states,
                previous=previous,
                movies=movies,
                episodes=episodes,
                log=ulog,
                dry_run=dry_run,
                cancel=cancel,
                now=self.now,
            )
            for category in CATEGORIES:
                import_category(run, category)

            ulog.info(format_summary(user.name, run.summary), extra=run.summary.as_dict())
            ulog.debug("apply outcomes: " + ", ".join(f"{k.value}={v}" for k, v in run.outcomes.items()))

            if not dry_run:
                run.checkpoint()
                self.config.save_user(store_snapshot(cfg, activities, imported_at=self.now()))
            return run.summary
        except ImportCancelled:
            ulog.info(f"Import cancelled for user {user.name}; activity snapshot left unchanged")
            raise
        except Exception as e:
            ulog.error(f"Unhandled error while importing SIMKL data for user {user_id}: {e!r}")
            raise

    # --- batch ------------------------------------------------------------------
    def run_import_for_all_enabled_users(
        self,
        progress: Optional[ProgressFn] = None,
        cancel: Optional[CancelToken] = None,
    ) -> dict[str, str]:
        """Sequential over enabled users; one user's failure never stops the batch."""
        users = self.config.enabled_users()
        if not users:
            self.log.info("No users enabled SIMKL import, skipping task.")
            return {}

        step = 100.0 / len(users)
        statuses: dict[str, str] = {}
        for done, cfg in enumerate(users, start=1):
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                summary = self.run_import(cfg.id, dry_run=False, cancel=cancel)
                statuses[cfg.id] = "ok" if summary is not None else "skipped"
            except ImportCancelled:
                raise
            except Exception as e:
                statuses[cfg.id] = "failed"
                self.log.error(f"Import failed for user {cfg.id}; continuing with next user ({type(e).__name__})")
            if progress is not None:
                progress(min(100.0, step * done))
        return statuses
