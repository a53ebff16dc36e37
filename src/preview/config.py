from __future__ import annotations

import os

_UNPKG = "https://unpkg.com"


def _env_bool(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except Exception:
        return default


def react_url() -> str:
    return (
        os.environ.get("PREVIEW_REACT_URL")
        or f"{_UNPKG}/react@18/umd/react.development.js"
    ).strip()


def react_dom_url() -> str:
    return (
        os.environ.get("PREVIEW_REACT_DOM_URL")
        or f"{_UNPKG}/react-dom@18/umd/react-dom.development.js"
    ).strip()


def babel_url() -> str:
    return (
        os.environ.get("PREVIEW_BABEL_URL") or f"{_UNPKG}/@babel/standalone/babel.min.js"
    ).strip()


def max_repairs() -> int:
    return max(0, _env_int("PREVIEW_MAX_REPAIRS", 5))


def clock_interval_s() -> float:
    return max(1, _env_int("PREVIEW_CLOCK_INTERVAL_MS", 30)) / 1000.0


def clock_wrap_frames() -> int:
    return max(1, _env_int("PREVIEW_CLOCK_WRAP_FRAMES", 150))


def probe_timeout_s() -> float:
    return max(0.05, _env_float("PREVIEW_PROBE_TIMEOUT_S", 8.0))


def verify_reset_s() -> float:
    return max(0.0, _env_float("PREVIEW_VERIFY_RESET_S", 2.5))


def headless() -> bool:
    return _env_bool("PREVIEW_HEADLESS", default=True)


def load_timeout_ms() -> int:
    return max(1000, _env_int("PREVIEW_LOAD_TIMEOUT_MS", 15_000))


def event_queue_max() -> int:
    return max(8, _env_int("PREVIEW_EVENT_QUEUE_MAX", 256))
