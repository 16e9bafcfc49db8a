# WatchBridge test scripts
from __future__ import annotations

import json
from pathlib import Path

from conftest import add_user, ts

from wb_platform.config_base import CONFIG_BASE, ConfigStore, UserConfig, load_config


def test_config_base_follows_env(config_base: Path) -> None:
    assert CONFIG_BASE() == config_base
    assert ConfigStore().path == config_base / "config.json"


def test_load_config_defaults_and_deep_merge(config_base: Path) -> None:
    assert load_config()["jellyfin"]["page_size"] == 500

    (config_base / "config.json").write_text(json.dumps({"jellyfin": {"server": "http://jf:8096"}}), encoding="utf-8")
    cfg = load_config()
    assert cfg["jellyfin"]["server"] == "http://jf:8096"
    assert cfg["jellyfin"]["page_size"] == 500
    assert cfg["users"] == []


def test_broken_config_reads_as_defaults(config_base: Path) -> None:
    (config_base / "config.json").write_text("{not json", encoding="utf-8")
    assert load_config()["simkl"]["client_id"] == ""


def test_user_config_round_trip_keeps_unknown_keys() -> None:
    row = {
        "id": "u1",
        "sync_from_simkl": True,
        "user_token": " tok ",
        "last_activities_movies": "2024-03-01T10:00:00Z",
        "scrobble": True,
    }
    u = UserConfig.from_mapping(row)
    assert u.user_token == "tok"
    assert u.last_activities_movies == ts("2024-03-01T10:00:00Z")
    out = u.to_mapping()
    assert out["scrobble"] is True
    assert out["last_activities_movies"] == "2024-03-01T10:00:00Z"
    assert out["last_import_utc"] is None


def test_store_matches_dashed_ids_and_replaces_in_place(store: ConfigStore) -> None:
    add_user(store, "ABCD-1234", token="one")
    add_user(store, "u2", enabled=False)
    add_user(store, "abcd1234", token="two")

    users = store.users()
    assert [u.id for u in users] == ["abcd1234", "u2"]
    assert store.get_user("ABCD-1234").user_token == "two"
    assert [u.id for u in store.enabled_users()] == ["abcd1234"]
    assert store.get_user("missing") is None

    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert len(raw["users"]) == 2
