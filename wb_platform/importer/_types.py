# wb_platform/importer/_types.py
# Cancellation and collaborator protocols for the watched-state import.
from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Optional, Protocol

from ..models import (
    ActivitySnapshot,
    AllItems,
    ItemKind,
    ItemsQuery,
    LocalItem,
    LocalUser,
    WatchedState,
)


class ImportCancelled(Exception):
    """Raised at a cancellation checkpoint."""


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ImportCancelled()


# --- collaborators -----------------------------------------------------------

class CatalogFetcher(Protocol):
    def get_activities(self, token: str) -> ActivitySnapshot: ...
    def get_all_items(self, token: str, query: ItemsQuery) -> AllItems: ...


class LibraryInventory(Protocol):
    def resolve_user(self, user_id: str) -> Optional[LocalUser]: ...
    def list_items(self, user: LocalUser, kind: ItemKind) -> Iterable[LocalItem]: ...


class StateStore(Protocol):
    def get_state(self, user: LocalUser, item: LocalItem) -> Optional[WatchedState]: ...
    def save_state(self, user: LocalUser, item: LocalItem, state: WatchedState, reason: str) -> None: ...
