# WatchBridge test scripts
from __future__ import annotations

from conftest import FakeLibrary

from wb_platform.importer import InventoryIndex, build_episode_index, build_movie_index
from wb_platform.models import ExternalIds, LocalEpisode, LocalMovie, LocalUser

USER = LocalUser(id="u1", name="alice")


def test_first_writer_wins_and_collisions_are_counted() -> None:
    idx: InventoryIndex[LocalMovie] = InventoryIndex()
    first = LocalMovie(item_id="a", name="Heat", year=1995, ids=ExternalIds(imdb="tt0113277"))
    second = LocalMovie(item_id="b", name="Heat", year=1995, ids=ExternalIds(tmdb="949"))
    idx.add(first)
    idx.add(second)

    assert idx.get("title:heat:1995") is first
    assert idx.get("tmdb:949") is second
    assert idx.collisions == 1
    assert idx.items == 2


def test_find_returns_first_hit_in_key_order() -> None:
    idx: InventoryIndex[LocalMovie] = InventoryIndex()
    by_imdb = LocalMovie(item_id="imdb-one", ids=ExternalIds(imdb="tt0111161"))
    by_tmdb = LocalMovie(item_id="tmdb-one", ids=ExternalIds(tmdb="278"))
    idx.add(by_tmdb)
    idx.add(by_imdb)

    assert idx.find(["imdb:tt0111161", "tmdb:278"]) is by_imdb
    assert idx.find(["tmdb:278", "imdb:tt0111161"]) is by_tmdb
    assert idx.find(["imdb:tt0000001"]) is None


def test_lookup_is_case_insensitive() -> None:
    idx: InventoryIndex[LocalMovie] = InventoryIndex()
    m = LocalMovie(item_id="a", ids=ExternalIds(slug="The-Matrix"))
    idx.add(m)
    assert idx.find(["SIMKL:THE-MATRIX"]) is m
    assert "simkl:the-matrix" in idx


def test_items_without_keys_are_skipped() -> None:
    lib = FakeLibrary(
        movies=[LocalMovie(item_id="nokeys", name="Untitled")],
        episodes=[
            LocalEpisode(item_id="e1", season=None, episode=1, series_ids=ExternalIds(tvdb="1")),
            LocalEpisode(item_id="e2", season=1, episode=1, series_ids=ExternalIds(tvdb="1")),
        ],
    )
    movies = build_movie_index(lib, USER)
    episodes = build_episode_index(lib, USER)

    assert len(movies) == 0 and movies.skipped == 1
    assert episodes.skipped == 1
    assert list(episodes) == ["tvdb:1:s1e1"]
