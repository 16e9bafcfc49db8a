# WatchBridge test scripts
from __future__ import annotations

import pytest
import responses
from responses import matchers

from conftest import ts

from providers.sync._mod_common import build_session, label_simkl
from providers.sync._mod_SIMKL import SIMKLAuthError, SIMKLClient, SIMKLConfig, SIMKLError
from wb_platform.models import ItemsQuery

ACT_URL = "https://api.simkl.com/sync/activities"


def _client() -> SIMKLClient:
    return SIMKLClient(SIMKLConfig(client_id="cid", max_retries=1))


@responses.activate
def test_activities_parsed_from_post() -> None:
    responses.add(
        responses.POST,
        ACT_URL,
        json={
            "all": "2024-03-01T10:00:00Z",
            "movies": {"all": "2024-03-01T09:00:00Z"},
            "tv_shows": {"all": "2024-02-01T00:00:00Z"},
            "anime": {"all": None},
        },
        match=[matchers.header_matcher({"simkl-api-key": "cid", "Authorization": "Bearer tok"})],
    )

    snap = _client().get_activities("tok")

    assert snap.all == ts("2024-03-01T10:00:00Z")
    assert snap.movies == ts("2024-03-01T09:00:00Z")
    assert snap.shows == ts("2024-02-01T00:00:00Z")
    assert snap.anime is None


@responses.activate
def test_activities_fall_back_to_get() -> None:
    responses.add(responses.POST, ACT_URL, status=405)
    responses.add(responses.GET, ACT_URL, json={"all": "2024-03-01T10:00:00Z"})

    assert _client().get_activities("tok").all == ts("2024-03-01T10:00:00Z")


@responses.activate
def test_activities_errors() -> None:
    responses.add(responses.POST, ACT_URL, status=401)
    with pytest.raises(SIMKLAuthError):
        _client().get_activities("tok")

    responses.replace(responses.POST, ACT_URL, body="", status=200)
    with pytest.raises(SIMKLError):
        _client().get_activities("tok")


@responses.activate
def test_all_items_shows_query_and_parse() -> None:
    responses.add(
        responses.GET,
        "https://api.simkl.com/sync/all-items/shows/completed",
        match=[matchers.query_param_matcher({
            "date_from": "2024-02-01T00:00:00Z",
            "extended": "full",
            "episode_watched_at": "yes",
        })],
        json={"shows": [{
            "status": "completed",
            "last_watched_at": "2024-02-02T00:00:00Z",
            "show": {"title": "Breaking Bad", "year": 2008, "ids": {"simkl": 11121, "tvdb": "81189", "imdb": "0903747"}},
            "seasons": [{"number": 2, "episodes": [{"number": 5, "watched_at": "2024-02-01T20:00:00Z"}, {"number": 6}]}],
        }]},
    )
    q = ItemsQuery(type="shows", date_from=ts("2024-02-01T00:00:00Z"), extended="full", episode_watched_at=True)

    items = _client().get_all_items("tok", q)

    assert len(items.shows) == 1 and items.movies == () and items.anime == ()
    entry = items.shows[0]
    assert entry.show.ids.imdb == "tt0903747"
    assert entry.show.ids.simkl == "11121"
    assert [e.number for e in entry.seasons[0].episodes] == [5, 6]
    assert entry.seasons[0].episodes[0].watched_at == ts("2024-02-01T20:00:00Z")
    assert entry.seasons[0].episodes[1].watched_at is None


@responses.activate
def test_all_items_null_body_is_empty() -> None:
    responses.add(responses.GET, "https://api.simkl.com/sync/all-items/movies/completed", body="null",
                  content_type="application/json")

    items = _client().get_all_items("tok", ItemsQuery(type="movies"))

    assert items.movies == ()


@responses.activate
def test_all_items_server_error_raises() -> None:
    responses.add(responses.GET, "https://api.simkl.com/sync/all-items/anime/completed", status=500)
    with pytest.raises(SIMKLError):
        _client().get_all_items("tok", ItemsQuery(type="anime"))


def test_client_requires_client_id() -> None:
    with pytest.raises(SIMKLError):
        SIMKLClient(SIMKLConfig(client_id=""))


@responses.activate
def test_debug_lines_report_hits_and_rate_limit(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("WB_SIMKL_DEBUG", "1")
    responses.add(
        responses.POST,
        ACT_URL,
        json={"all": "2024-03-01T10:00:00Z"},
        headers={"X-RateLimit-Limit": "1000", "X-RateLimit-Remaining": "998", "X-RateLimit-Reset": "60"},
    )
    client = SIMKLClient(
        SIMKLConfig(client_id="cid", max_retries=1),
        session=build_session("SIMKL", feature_label=label_simkl, emit_hits=True),
    )

    client.get_activities("tok")

    out = capsys.readouterr().out
    assert "[SIMKL] api:hit activities" in out
    assert "[SIMKL] rate remaining=998 limit=1000 reset=60" in out


@responses.activate
def test_hits_are_quiet_unless_enabled(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("WB_SIMKL_DEBUG", "1")
    monkeypatch.delenv("WB_API_HITS", raising=False)
    responses.add(responses.POST, ACT_URL, json={"all": None})

    _client().get_activities("tok")

    out = capsys.readouterr().out
    assert "api:hit" not in out
    assert "rate remaining" not in out
