# wb_platform/importer/_index.py
# In-memory key -> library item index, built once per category per run.
from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, Optional, TypeVar

from ..id_keys import keys_for_item
from ..models import LocalEpisode, LocalItem, LocalMovie, LocalUser
from ._types import LibraryInventory

T = TypeVar("T", LocalMovie, LocalEpisode)


class InventoryIndex(Generic[T]):
    """First writer wins: a key already taken keeps its item."""

    def __init__(self) -> None:
        self._by_key: dict[str, T] = {}
        self.items = 0
        self.skipped = 0
        self.collisions = 0

    def add(self, item: T) -> int:
        keys = keys_for_item(item)
        if not keys:
            self.skipped += 1
            return 0
        self.items += 1
        added = 0
        for key in keys:
            held = self._by_key.get(key)
            if held is None:
                self._by_key[key] = item
                added += 1
            elif held.item_id != item.item_id:
                self.collisions += 1
        return added

    def find(self, keys: Iterable[str]) -> Optional[T]:
        for key in keys:
            hit = self._by_key.get(key.lower())
            if hit is not None:
                return hit
        return None

    def get(self, key: str) -> Optional[T]:
        return self._by_key.get(key.lower())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_key)


def _fill(index: InventoryIndex, rows: Iterable[LocalItem], want: type) -> None:
    for row in rows:
        if isinstance(row, want):
            index.add(row)


def build_movie_index(inventory: LibraryInventory, user: LocalUser) -> InventoryIndex[LocalMovie]:
    index: InventoryIndex[LocalMovie] = InventoryIndex()
    _fill(index, inventory.list_items(user, "movie"), LocalMovie)
    return index


def build_episode_index(inventory: LibraryInventory, user: LocalUser) -> InventoryIndex[LocalEpisode]:
    # episodes without season/episode numbers have no keys and are counted as skipped
    index: InventoryIndex[LocalEpisode] = InventoryIndex()
    _fill(index, inventory.list_items(user, "episode"), LocalEpisode)
    return index
