# WatchBridge test scripts
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


def test_parser_requires_a_target() -> None:
    import watchbridge

    with pytest.raises(SystemExit):
        watchbridge.build_parser().parse_args(["import"])
    args = watchbridge.build_parser().parse_args(["import", "--user", "u1", "--dry-run"])
    assert (args.user_id, args.all_users, args.dry_run) == ("u1", False, True)


def test_dry_run_with_all_is_rejected() -> None:
    import watchbridge

    assert watchbridge.main(["import", "--all", "--dry-run"]) == 2


def test_import_without_provider_config_fails_cleanly(config_base) -> None:
    import watchbridge

    assert watchbridge.main(["import", "--user", "u1"]) == 2


def test_app_mounts_import_routes(config_base) -> None:
    import watchbridge

    client = TestClient(watchbridge.app)
    assert client.get("/api/health").json()["ok"] is True
    assert client.get("/api/import/users").json() == []
