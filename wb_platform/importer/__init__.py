# Public surface of the importer package.
from ..models import ActivitySnapshot, ImportSummary, WatchedState
from ._types import CancelToken, CatalogFetcher, ImportCancelled, LibraryInventory, StateStore
from ._applier import ApplyOutcome, merge, needs_update
from ._index import InventoryIndex, build_episode_index, build_movie_index
from .facade import Importer, format_summary

__all__ = [
    "Importer", "format_summary",
    "CancelToken", "ImportCancelled",
    "CatalogFetcher", "LibraryInventory", "StateStore",
    "ApplyOutcome", "merge", "needs_update",
    "InventoryIndex", "build_movie_index", "build_episode_index",
    "ActivitySnapshot", "ImportSummary", "WatchedState",
]
