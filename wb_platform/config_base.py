# wb_platform/config_base.py
# Config file handling plus the per-user import settings.
from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .timeutil import iso_z, parse_iso

__all__ = [
    "CONFIG_BASE", "DEFAULT_CFG", "config_path",
    "load_config", "save_config",
    "UserConfig", "ConfigStore",
]

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]

# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    "runtime": {
        "debug": False,                                 # enables DEBUG lines (unmatched items, key collisions, wire traces)
        "log_json": "",                                 # JSON-lines log file; relative paths sit next to config.json
    },

    "simkl": {
        "client_id": "",                                # From your Simkl app (sent as simkl-api-key)
        "timeout": 15.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for 429/5xx
    },

    "jellyfin": {
        "server": "",                                   # http(s)://host:port (required)
        "access_token": "",                             # Jellyfin API key / access token (required)
        "device_id": "watchbridge",                     # Client device id
        "verify_ssl": True,                             # Verify TLS certificates
        "timeout": 15.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for API calls
        "page_size": 500,                               # Items per library page when building the index
    },

    # One block per Jellyfin user; see UserConfig.
    "users": [],
}

def _cfg_file(base: Optional[Path] = None) -> Path:
    return (base or CONFIG_BASE()) / "config.json"

def config_path() -> Path:
    return _cfg_file()

def _read_json(p: Path) -> Dict[str, Any]:
    data = json.loads(p.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}

def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp, p)

def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out

def load_config(base: Optional[Path] = None) -> Dict[str, Any]:
    """Read config.json merged over DEFAULT_CFG. A broken file reads as defaults."""
    p = _cfg_file(base)
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except (OSError, ValueError):
            user_cfg = {}
    cfg = _deep_merge(DEFAULT_CFG, user_cfg)
    if not isinstance(cfg.get("users"), list):
        cfg["users"] = []
    return cfg

def save_config(cfg: Mapping[str, Any], base: Optional[Path] = None) -> None:
    _write_json_atomic(_cfg_file(base), dict(cfg or {}))

# ------------------------------------------------------------
# Per-user settings
# ------------------------------------------------------------
_TS_FIELDS = (
    "last_activities_all",
    "last_activities_movies",
    "last_activities_shows",
    "last_activities_anime",
    "last_import_utc",
)

@dataclass
class UserConfig:
    id: str
    sync_from_simkl: bool = False
    user_token: str = ""
    last_activities_all: Optional[datetime] = None
    last_activities_movies: Optional[datetime] = None
    last_activities_shows: Optional[datetime] = None
    last_activities_anime: Optional[datetime] = None
    last_import_utc: Optional[datetime] = None
    # unknown keys survive a load/save round trip
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "UserConfig":
        known = {f.name for f in fields(cls)} - {"extra"}
        cfg = cls(
            id=str(row.get("id") or "").strip(),
            sync_from_simkl=bool(row.get("sync_from_simkl", False)),
            user_token=str(row.get("user_token") or "").strip(),
            extra={k: v for k, v in row.items() if k not in known},
        )
        for name in _TS_FIELDS:
            setattr(cfg, name, parse_iso(row.get(name)))
        return cfg

    def to_mapping(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        out.update({
            "id": self.id,
            "sync_from_simkl": self.sync_from_simkl,
            "user_token": self.user_token,
        })
        for name in _TS_FIELDS:
            out[name] = iso_z(getattr(self, name))
        return out

    @property
    def has_token(self) -> bool:
        return bool((self.user_token or "").strip())


class ConfigStore:
    """Explicit handle on one config.json; every read goes to disk."""

    def __init__(self, base: Optional[Path] = None):
        self.base = Path(base) if base is not None else CONFIG_BASE()

    @property
    def path(self) -> Path:
        return _cfg_file(self.base)

    def load(self) -> Dict[str, Any]:
        return load_config(self.base)

    def save(self, cfg: Mapping[str, Any]) -> None:
        save_config(cfg, self.base)

    def section(self, name: str) -> Dict[str, Any]:
        return dict(self.load().get(name) or {})

    def users(self) -> List[UserConfig]:
        rows = self.load().get("users") or []
        return [UserConfig.from_mapping(r) for r in rows if isinstance(r, Mapping) and r.get("id")]

    def get_user(self, user_id: str) -> Optional[UserConfig]:
        want = _norm_user_id(user_id)
        for u in self.users():
            if _norm_user_id(u.id) == want:
                return u
        return None

    def enabled_users(self) -> List[UserConfig]:
        return [u for u in self.users() if u.sync_from_simkl]

    def save_user(self, user: UserConfig) -> None:
        cfg = self.load()
        rows = [r for r in (cfg.get("users") or []) if isinstance(r, Mapping)]
        want = _norm_user_id(user.id)
        for i, r in enumerate(rows):
            if _norm_user_id(r.get("id")) == want:
                rows[i] = user.to_mapping()
                break
        else:
            rows.append(user.to_mapping())
        cfg["users"] = rows
        self.save(cfg)

def _norm_user_id(v: Any) -> str:
    # Jellyfin ids show up both dashed and undashed
    return str(v or "").strip().lower().replace("-", "")
