# /providers/sync/_mod_common.py
# WatchBridge - shared HTTP plumbing for provider adapters
from __future__ import annotations

import json
import os
import time
from typing import Any, Callable, Mapping
from urllib.parse import parse_qs, urlparse

import requests

__VERSION__ = "0.3.0"
__all__ = [
    "HitSession",
    "build_session",
    "parse_rate_limit",
    "safe_json",
    "request_with_retries",
    "debug_log",
    "label_simkl",
    "label_jellyfin",
]

FeatureLabelFn = Callable[[str, str, Mapping[str, Any]], str]


def debug_log(provider: str, msg: str) -> None:
    p = str(provider).strip().upper()
    if os.getenv("WB_DEBUG") or os.getenv(f"WB_{p}_DEBUG"):
        print(f"[{p}] {msg}", flush=True)


def _get_query_value(url: str, params: Mapping[str, Any], name: str) -> str | None:
    qd = parse_qs(urlparse(url).query)
    v = params.get(name) if isinstance(params, Mapping) else None
    if isinstance(v, (list, tuple)):
        v = v[0] if v else None
    return (str(v) if v else None) or (qd.get(name, [None])[0])


def default_feature_label(provider: str, method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    head = "/".join(segs[:3]) or "unknown"
    return head.lower()


def label_simkl(method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    params = kw.get("params") or {}
    has_eps_watched = str(_get_query_value(url, params, "episode_watched_at") or "").lower() in ("1", "true", "yes", "y")

    if segs[:2] == ["sync", "activities"]:
        return "activities"
    if segs[:2] == ["sync", "all-items"]:
        bucket = segs[2] if len(segs) >= 3 and segs[2] in ("movies", "shows", "anime") else None
        status = segs[3] if len(segs) >= 4 else None
        head = "history:index" if has_eps_watched or status == "completed" else "all-items"
        return ":".join(x for x in (head, bucket) if x)
    return default_feature_label("SIMKL", method, url, kw)


def label_jellyfin(method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    if segs[:2] == ["System", "Ping"]:
        return "system:ping"
    if len(segs) == 2 and segs[0] == "Users":
        return "users:get"
    if len(segs) >= 3 and segs[0] == "Users" and segs[2] == "Items":
        return "library:item" if len(segs) >= 4 else "library:items"
    if "UserData" in segs:
        return "userdata:write" if method.upper() == "POST" else "userdata"
    if segs[:1] == ["Items"]:
        return "library:items"
    return default_feature_label("JELLYFIN", method, url, kw)


class HitSession(requests.Session):
    """requests.Session that logs one labelled hit per call when WB_API_HITS (or emit_hits) is on."""

    def __init__(
        self,
        provider: str,
        feature_label: FeatureLabelFn | None = None,
        emit_hits: bool | None = None,
    ):
        super().__init__()
        self._provider = provider
        self._label = feature_label or (lambda m, u, kw: default_feature_label(provider, m, u, kw))
        self._emit_hits = bool(os.getenv("WB_API_HITS")) if emit_hits is None else bool(emit_hits)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        try:
            return super().request(method, url, **kwargs)
        finally:
            if self._emit_hits:
                debug_log(self._provider, f"api:hit {self._label(method.upper(), url, kwargs)}")


def build_session(
    provider: str,
    *,
    feature_label: FeatureLabelFn | None = None,
    emit_hits: bool | None = None,
) -> HitSession:
    return HitSession(provider, feature_label, emit_hits)


def parse_rate_limit(h: Mapping[str, Any]) -> dict[str, int | None]:
    def _i(x: Any) -> int | None:
        try:
            return int(x)
        except (TypeError, ValueError):
            return None

    return {
        "limit": _i(h.get("X-RateLimit-Limit") or h.get("RateLimit-Limit") or h.get("Ratelimit-Limit")),
        "remaining": _i(h.get("X-RateLimit-Remaining") or h.get("RateLimit-Remaining") or h.get("Ratelimit-Remaining")),
        "reset": _i(h.get("X-RateLimit-Reset") or h.get("RateLimit-Reset") or h.get("Ratelimit-Reset")),
    }


def safe_json(resp: requests.Response) -> Any:
    """Body as JSON; empty or non-JSON bodies read as None."""
    text = resp.text or ""
    if not text.strip():
        return None
    try:
        ctype = (resp.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            return resp.json()
        return json.loads(text)
    except ValueError:
        return None


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 10.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (429, 500, 502, 503, 504),
    backoff_base: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    last: Any = None
    attempts = max(1, int(max_retries))
    for i in range(attempts):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
            if resp.status_code in retry_on and i < attempts - 1:
                wait = backoff_base * (2**i)
                if resp.status_code == 429:
                    ra = resp.headers.get("Retry-After")
                    try:
                        if ra:
                            wait = max(wait, float(ra))
                    except ValueError:
                        pass
                time.sleep(wait)
                last = resp
                continue
            return resp
        except requests.RequestException as e:
            last = e
            if i < attempts - 1:
                time.sleep(backoff_base * (2**i))
    if isinstance(last, requests.Response):
        return last
    raise requests.RequestException(f"request failed after retries: {method} {url}") from last
