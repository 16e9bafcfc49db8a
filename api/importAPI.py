# /api/importAPI.py
# WatchBridge - SIMKL watched import API
from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from providers.sync._mod_JELLYFIN import JellyfinError, from_config as jellyfin_from_config
from providers.sync._mod_SIMKL import SIMKLError, from_config as simkl_from_config
from wb_platform.config_base import ConfigStore
from wb_platform.importer import Importer, format_summary
from wb_platform.timeutil import iso_z

__all__ = ["router", "build_importer"]

router = APIRouter(prefix="/api/import", tags=["import"])


class ImportRunIn(BaseModel):
    user_id: str
    dry_run: bool = False


def build_importer(store: ConfigStore) -> Importer:
    cfg = store.load()
    library = jellyfin_from_config(cfg)
    return Importer(
        config=store,
        fetcher=simkl_from_config(cfg),
        inventory=library,
        states=library,
    )


def _env() -> tuple[ConfigStore, Callable[[ConfigStore], Importer]]:
    return ConfigStore(), build_importer


def _importer() -> Importer:
    store, factory = _env()
    try:
        return factory(store)
    except (SIMKLError, JellyfinError) as e:
        raise HTTPException(status_code=503, detail=f"not configured: {e}")


@router.get("/users")
def api_import_users() -> list[dict[str, Any]]:
    store, _ = _env()
    return [
        {
            "id": u.id,
            "sync_from_simkl": u.sync_from_simkl,
            "has_token": u.has_token,
            "last_import_utc": iso_z(u.last_import_utc),
        }
        for u in store.users()
    ]


@router.post("/run")
def api_import_run(payload: ImportRunIn) -> dict[str, Any]:
    imp = _importer()
    try:
        summary = imp.run_import(payload.user_id, dry_run=payload.dry_run)
    except (SIMKLError, JellyfinError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    if summary is None:
        return {"ok": False, "user_id": payload.user_id, "reason": "skipped"}
    name = imp.last_user.name if imp.last_user is not None else payload.user_id
    return {
        "ok": True,
        "user_id": payload.user_id,
        "summary": summary.as_dict(),
        "message": format_summary(name, summary),
    }


@router.post("/run_all")
def api_import_run_all() -> dict[str, Any]:
    imp = _importer()
    statuses = imp.run_import_for_all_enabled_users()
    return {"ok": all(s != "failed" for s in statuses.values()), "statuses": statuses}
