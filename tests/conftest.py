import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path so tests can import the local `src/` package.
ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


@pytest.fixture(autouse=True)
def _isolate_preview_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # A developer's local .env must not leak into unit tests.
    for name in (
        "PREVIEW_REACT_URL",
        "PREVIEW_REACT_DOM_URL",
        "PREVIEW_BABEL_URL",
        "PREVIEW_HEADLESS",
        "PREVIEW_LOAD_TIMEOUT_MS",
        "PREVIEW_MAX_REPAIRS",
        "PREVIEW_CLOCK_INTERVAL_MS",
        "PREVIEW_CLOCK_WRAP_FRAMES",
        "PREVIEW_PROBE_TIMEOUT_S",
        "PREVIEW_VERIFY_RESET_S",
        "PREVIEW_EVENT_QUEUE_MAX",
        "EDIT_SERVICE_URL",
        "EDIT_SERVICE_TOKEN",
        "EDIT_AUTOFIX_ENABLED",
        "EDIT_AUTOFIX_MAX_ATTEMPTS",
        "EDIT_HISTORY_MAX_MESSAGES",
        "COMPONENT_STORE_URL",
        "COMPONENT_STORE_TOKEN",
        "COMPONENT_STORE_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
