from __future__ import annotations

from fastapi import FastAPI

from .importAPI import router as import_router

__all__ = [
    "import_router",
    "register",
]

def register(app: FastAPI) -> None:
    app.include_router(import_router)
