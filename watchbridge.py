# /watchbridge.py
# WatchBridge - SIMKL -> Jellyfin watched-state import (web API + CLI)
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI

from _logging import log
from api import register as register_api
from api.importAPI import build_importer
from providers.sync._mod_JELLYFIN import JellyfinError
from providers.sync._mod_SIMKL import SIMKLError
from wb_platform.config_base import ConfigStore

__VERSION__ = "1.0.0"

app = FastAPI(title="WatchBridge", version=__VERSION__)
register_api(app)


@app.get("/api/health")
def api_health() -> dict[str, object]:
    return {"ok": True, "version": __VERSION__}


# Logging setup
def configure_logging(store: ConfigStore) -> Optional[Path]:
    """Turn on the JSON-lines sink when runtime.log_json names a file."""
    target = str((store.section("runtime") or {}).get("log_json") or "").strip()
    if not target:
        return None
    path = Path(target)
    if not path.is_absolute():
        path = store.base / path
    log.enable_json(str(path))
    return path


# Entry points
def serve(host: str = "0.0.0.0", port: int = 8787, store: Optional[ConfigStore] = None) -> None:
    store = store or ConfigStore()
    print("\nWatchBridge running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}")
    print(f"  Config:  {store.path} (JSON)\n")

    debug = bool((store.section("runtime") or {}).get("debug"))
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=("debug" if debug else "warning"),
        access_log=debug,
    )


def run_import_cli(user_id: Optional[str], all_users: bool, dry_run: bool, store: Optional[ConfigStore] = None) -> int:
    clog = log.child("CLI")
    try:
        importer = build_importer(store or ConfigStore())
    except (SIMKLError, JellyfinError) as e:
        clog.error(f"Not configured: {e}")
        return 2

    if all_users:
        statuses = importer.run_import_for_all_enabled_users(
            progress=lambda pct: clog.info(f"progress {pct:.0f}%"),
        )
        for uid, status in statuses.items():
            clog.info(f"{uid}: {status}")
        return 1 if any(s == "failed" for s in statuses.values()) else 0

    try:
        summary = importer.run_import(str(user_id), dry_run=dry_run)
    except (SIMKLError, JellyfinError):
        return 1
    return 0 if summary is not None else 3


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="watchbridge",
        description="Import SIMKL watched history into Jellyfin.",
    )
    ap.add_argument("--version", action="version", version=f"WatchBridge {__VERSION__}")
    sub = ap.add_subparsers(dest="command")

    sp = sub.add_parser("serve", help="Run the web API")
    sp.add_argument("--host", default="0.0.0.0", help="Bind host (default 0.0.0.0)")
    sp.add_argument("--port", type=int, default=8787, help="Bind port (default 8787)")

    ip = sub.add_parser("import", help="Run a watched import now")
    who = ip.add_mutually_exclusive_group(required=True)
    who.add_argument("--user", dest="user_id", help="Jellyfin user id")
    who.add_argument("--all", dest="all_users", action="store_true", help="Every user with SIMKL import enabled")
    ip.add_argument("--dry-run", action="store_true", help="Log intended changes without writing them")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "import":
        if args.all_users and args.dry_run:
            print("--dry-run is only supported with --user", file=sys.stderr)
            return 2
    store = ConfigStore()
    configure_logging(store)
    if args.command == "import":
        return run_import_cli(args.user_id, args.all_users, args.dry_run, store)
    if args.command == "serve":
        serve(args.host, args.port, store)
        return 0
    serve(store=store)
    return 0


if __name__ == "__main__":
    sys.exit(main())
