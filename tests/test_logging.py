# WatchBridge test scripts
from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

import _logging
from _logging import Logger


def _write_cfg(base: Path, cfg: dict) -> None:
    base.mkdir(parents=True, exist_ok=True)
    (base / "config.json").write_text(json.dumps(cfg), encoding="utf-8")


@pytest.fixture()
def fresh_gate(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("WB_DEBUG", raising=False)
    monkeypatch.setattr(_logging, "_cfg_seen", {"path": None, "ts": 0.0, "debug": False})


def test_debug_gate_reads_config_base_not_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fresh_gate) -> None:
    import wb_platform.config_base as config_base

    base = tmp_path / "base"
    elsewhere = tmp_path / "elsewhere"
    _write_cfg(base, {"runtime": {"debug": True}})
    _write_cfg(elsewhere, {"runtime": {"debug": False}})
    monkeypatch.delenv("CONFIG_BASE", raising=False)
    monkeypatch.setattr(config_base, "CONFIG_BASE", lambda: base)
    monkeypatch.chdir(elsewhere)

    buf = io.StringIO()
    Logger(stream=buf, use_color=False, show_time=False).child("IMPORT").debug("index built")

    assert buf.getvalue() == "[IMPORT] DEBUG index built\n"


def test_debug_lines_dropped_when_runtime_debug_off(config_base: Path, fresh_gate) -> None:
    _write_cfg(config_base, {"runtime": {"debug": False}})

    buf = io.StringIO()
    lg = Logger(stream=buf, use_color=False, show_time=False)
    lg.debug("hidden")
    lg.info("shown")

    assert buf.getvalue() == "INFO shown\n"


def test_json_sink_reaches_loggers_bound_earlier(tmp_path: Path) -> None:
    buf = io.StringIO()
    root = Logger(stream=buf, use_color=False, show_time=False)
    ulog = root.child("IMPORT").bind(user="alice")
    path = tmp_path / "logs" / "wb.jsonl"

    root.enable_json(str(path))
    try:
        ulog.info("Import completed", extra={"movies_imported": 2})
        ulog.dry_run("Would mark movie as watched")
    finally:
        root.disable_json()
    ulog.info("after close")

    recs = [json.loads(line) for line in path.read_text("utf-8").splitlines()]
    assert [r["level"] for r in recs] == ["INFO", "DRY-RUN"]
    assert recs[0]["ctx"] == {"module": "IMPORT", "user": "alice"}
    assert recs[0]["extra"] == {"movies_imported": 2}
    assert recs[1]["msg"] == "[Dry-Run] Would mark movie as watched"
    assert "[IMPORT:alice] INFO after close" in buf.getvalue()


def test_configure_logging_uses_runtime_log_json(store, monkeypatch: pytest.MonkeyPatch) -> None:
    import watchbridge

    buf = io.StringIO()
    root = Logger(stream=buf, use_color=False, show_time=False)
    monkeypatch.setattr(watchbridge, "log", root)
    early = root.child("CLI")

    assert watchbridge.configure_logging(store) is None

    store.save({**store.load(), "runtime": {"debug": False, "log_json": "logs/wb.jsonl"}})
    try:
        path = watchbridge.configure_logging(store)
        early.warn("Not configured")
    finally:
        root.disable_json()

    assert path == store.base / "logs" / "wb.jsonl"
    rec = json.loads(path.read_text("utf-8").splitlines()[0])
    assert (rec["level"], rec["msg"], rec["ctx"]) == ("WARN", "Not configured", {"module": "CLI"})
