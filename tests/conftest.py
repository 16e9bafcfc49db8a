# WatchBridge test scripts
from __future__ import annotations

import io
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from _logging import Logger  # noqa: E402
from wb_platform.config_base import ConfigStore, UserConfig  # noqa: E402
from wb_platform.models import (  # noqa: E402
    ActivitySnapshot,
    AllItems,
    ItemsQuery,
    LocalEpisode,
    LocalItem,
    LocalMovie,
    LocalUser,
    WatchedState,
)

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def ts(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


@dataclass
class FakeFetcher:
    activities: ActivitySnapshot = field(default_factory=ActivitySnapshot)
    items: dict[str, AllItems] = field(default_factory=dict)
    fail_on: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, ItemsQuery]] = field(default_factory=list)
    activity_calls: int = 0

    def get_activities(self, token: str) -> ActivitySnapshot:
        self.activity_calls += 1
        if "activities" in self.fail_on:
            raise self.fail_on["activities"]
        return self.activities

    def get_all_items(self, token: str, query: ItemsQuery) -> AllItems:
        self.calls.append((token, query))
        if query.type in self.fail_on:
            raise self.fail_on[query.type]
        return self.items.get(query.type, AllItems())


@dataclass
class FakeLibrary:
    users: dict[str, LocalUser] = field(default_factory=dict)
    movies: list[LocalMovie] = field(default_factory=list)
    episodes: list[LocalEpisode] = field(default_factory=list)
    states: dict[str, WatchedState] = field(default_factory=dict)
    saves: list[tuple[str, str, WatchedState, str]] = field(default_factory=list)

    def resolve_user(self, user_id: str) -> Optional[LocalUser]:
        return self.users.get(user_id)

    def list_items(self, user: LocalUser, kind: str) -> list[LocalItem]:
        return list(self.movies if kind == "movie" else self.episodes)

    def get_state(self, user: LocalUser, item: LocalItem) -> Optional[WatchedState]:
        if item.item_id not in self.states:
            return None
        return self.states[item.item_id]

    def save_state(self, user: LocalUser, item: LocalItem, state: WatchedState, reason: str) -> None:
        self.saves.append((user.id, item.item_id, state, reason))
        self.states[item.item_id] = state


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@pytest.fixture()
def store(config_base: Path) -> ConfigStore:
    return ConfigStore(config_base)


@pytest.fixture()
def log_buf() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def test_log(log_buf: io.StringIO) -> Logger:
    return Logger(stream=log_buf, use_color=False, show_time=False).child("IMPORT")


def add_user(store: ConfigStore, uid: str, *, token: str = "tok", enabled: bool = True, **extra: Any) -> UserConfig:
    u = UserConfig(id=uid, sync_from_simkl=enabled, user_token=token, **extra)
    store.save_user(u)
    return u
