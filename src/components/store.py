"""Persistence of component source.

Component code is a plain UTF-8 text blob keyed by an opaque id. Nothing
derived from it (mocks, transpiled output, fault history) is stored.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from pathlib import Path
from typing import Protocol

_log = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


class ComponentStoreError(RuntimeError):
    pass


def validate_component_id(component_id: str) -> str:
    cid = (component_id or "").strip()
    if not _ID_RE.match(cid) or ".." in cid:
        raise ComponentStoreError(f"invalid component id: {component_id!r}")
    return cid


class ComponentStore(Protocol):
    def get(self, component_id: str) -> str | None: ...

    def set(self, component_id: str, code: str) -> None: ...


class InMemoryComponentStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._d: dict[str, str] = dict(initial or {})

    def get(self, component_id: str) -> str | None:
        with self._lock:
            return self._d.get(validate_component_id(component_id))

    def set(self, component_id: str, code: str) -> None:
        cid = validate_component_id(component_id)
        with self._lock:
            self._d[cid] = str(code)


class FileComponentStore:
    """One `<id>.tsx` file per component under `root`."""

    suffix = ".tsx"

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._lock = threading.Lock()

    def _path(self, component_id: str) -> Path:
        return self._root / f"{validate_component_id(component_id)}{self.suffix}"

    def get(self, component_id: str) -> str | None:
        p = self._path(component_id)
        try:
            return p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, component_id: str, code: str) -> None:
        p = self._path(component_id)
        with self._lock:
            self._root.mkdir(parents=True, exist_ok=True)
            tmp = p.with_name(p.name + ".tmp")
            tmp.write_text(str(code), encoding="utf-8")
            os.replace(tmp, p)
        _log.debug("Stored component %s (%d bytes)", p.stem, len(code))


def store_from_env() -> ComponentStore:
    """HTTP store if COMPONENT_STORE_URL is set, file store if
    COMPONENT_STORE_DIR is set, otherwise an in-memory store."""
    url = (os.environ.get("COMPONENT_STORE_URL") or "").strip()
    if url:
        from src.components.http_store import HttpComponentStore

        return HttpComponentStore.from_env()
    root = (os.environ.get("COMPONENT_STORE_DIR") or "").strip()
    if root:
        return FileComponentStore(root)
    _log.info("No component store configured; using in-memory store")
    return InMemoryComponentStore()
