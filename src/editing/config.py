from __future__ import annotations

import os


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


def edit_service_url() -> str:
    return (
        os.environ.get("EDIT_SERVICE_URL") or "http://localhost:3000/api/component/edit"
    ).strip()


def edit_service_token() -> str:
    return (os.environ.get("EDIT_SERVICE_TOKEN") or "").strip()


def edit_service_timeout_s() -> int:
    return max(5, _env_int("EDIT_SERVICE_TIMEOUT_S", 300))


def autofix_enabled() -> bool:
    return _env_bool("EDIT_AUTOFIX_ENABLED", default=True)


def autofix_max_attempts() -> int:
    return max(0, _env_int("EDIT_AUTOFIX_MAX_ATTEMPTS", 2))


def history_max_messages() -> int:
    return max(0, _env_int("EDIT_HISTORY_MAX_MESSAGES", 20))
