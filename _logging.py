# _logging.py
# WatchBridge - context logger: colored console lines plus an optional JSON-lines file.
from __future__ import annotations
import os, sys, datetime, json, threading, time
from pathlib import Path
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

_COLORS = {"DEBUG": YELLOW, "INFO": BLUE, "WARN": YELLOW, "ERROR": RED, "DRY-RUN": DIM}

# ── debug gate: WB_DEBUG, else runtime.debug from the active config.json (re-read every 5s)
_DEBUG_TTL = 5.0
_cfg_seen: Dict[str, Any] = {"path": None, "ts": 0.0, "debug": False}

def _config_file() -> Path:
    from wb_platform.config_base import config_path  # config_base is importable without us; keep lazy
    return config_path()

def _debug_enabled() -> bool:
    if (os.getenv("WB_DEBUG") or "").strip().lower() in ("1", "true", "yes", "on"):
        return True
    p = _config_file()
    now = time.time()
    if _cfg_seen["path"] != str(p) or (now - _cfg_seen["ts"]) > _DEBUG_TTL:
        try:
            data = json.loads(p.read_text("utf-8"))
        except (OSError, ValueError):
            data = {}
        rt = data.get("runtime") if isinstance(data, dict) else None
        _cfg_seen.update(path=str(p), ts=now, debug=bool((rt or {}).get("debug")))
    return bool(_cfg_seen["debug"])


class _Sinks:
    """Outputs shared by a logger and every logger bound from it."""

    def __init__(self, stream: Optional[TextIO]):
        self.stream = stream
        self.json: Optional[TextIO] = None
        self.json_path: Optional[str] = None
        self.lock = threading.Lock()

    def console(self) -> TextIO:
        return self.stream or sys.stdout


class Logger:
    def __init__(
        self,
        stream: Optional[TextIO] = None,
        level: str = "info",
        use_color: bool = True,
        show_time: bool = True,
        *,
        _context: Optional[Dict[str, Any]] = None,
        _sinks: Optional[_Sinks] = None,
    ):
        self.level_no = LEVELS.get(level, LEVELS["info"])
        self.use_color = use_color and os.getenv("NO_COLOR") is None
        self.show_time = show_time
        self._context: Dict[str, Any] = dict(_context or {})
        self._sinks = _sinks or _Sinks(stream)

    # Context
    def bind(self, **ctx: Any) -> "Logger":
        child = Logger.__new__(Logger)
        child.level_no = self.level_no
        child.use_color = self.use_color
        child.show_time = self.show_time
        child._context = {**self._context, **ctx}
        child._sinks = self._sinks
        return child

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    # JSON-lines file, appended to; shared with bound loggers
    def enable_json(self, file_path: str) -> None:
        s = self._sinks
        with s.lock:
            if s.json_path == str(file_path):
                return
            Path(file_path).parent.mkdir(parents=True, exist_ok=True)
            old, s.json = s.json, open(file_path, "a", encoding="utf-8")
            s.json_path = str(file_path)
        if old is not None:
            old.close()

    def disable_json(self) -> None:
        s = self._sinks
        with s.lock:
            old, s.json, s.json_path = s.json, None, None
        if old is not None:
            old.close()

    # Formatting: "[ts] [MODULE:user] LEVEL message"
    def _line(self, label: str, msg: str) -> str:
        mod = str(self._context.get("module") or "").strip()
        user = str(self._context.get("user") or "").strip()
        tag = ":".join(x for x in (mod, user) if x)
        col = _COLORS.get(label) if self.use_color else None
        parts = [f"[{tag}]" if tag else "", f"{col}{label}{RESET}" if col else label, msg]
        line = " ".join(p for p in parts if p)
        if not self.show_time:
            return line
        stamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        return (f"{DIM}[{stamp}]{RESET} " if self.use_color else f"[{stamp}] ") + line

    def _emit(self, severity: str, label: str, msg: str, extra: Optional[Mapping[str, Any]]) -> None:
        if severity == "debug":
            if not _debug_enabled():
                return
        elif self.level_no > LEVELS[severity]:
            return
        s = self._sinks
        with s.lock:
            out = s.console()
            out.write(self._line(label, msg) + "\n")
            out.flush()
            if s.json is not None:
                rec: Dict[str, Any] = {
                    "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                    "level": label,
                    "msg": msg,
                    "ctx": self._context,
                }
                if extra:
                    rec["extra"] = dict(extra)
                s.json.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")
                s.json.flush()

    # Public API
    def debug(self, msg: str, *, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("debug", "DEBUG", msg, extra)

    def info(self, msg: str, *, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "INFO", msg, extra)

    def warn(self, msg: str, *, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("warn", "WARN", msg, extra)

    def error(self, msg: str, *, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("error", "ERROR", msg, extra)

    def dry_run(self, msg: str, *, extra: Optional[Mapping[str, Any]] = None) -> None:
        # info severity, own label so dry-run intent lines stand out
        self._emit("info", "DRY-RUN", f"[Dry-Run] {msg}", extra)

# default instance
log = Logger()

__all__ = ["Logger", "log", "LEVELS"]
