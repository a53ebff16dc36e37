import pytest
import requests

from src.components.http_store import HttpComponentStore
from src.components.store import ComponentStoreError


class _Resp:
    def __init__(self, status_code: int, data=None):
        self.status_code = status_code
        self._data = data

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class _Sess:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append((method, url, headers, json))
        key = (method, url)
        if key not in self.routes:
            return _Resp(404, {"error": "not found"})
        resp = self.routes[key]
        if isinstance(resp, Exception):
            raise resp
        return resp


def test_get_returns_code(monkeypatch):
    monkeypatch.setenv("COMPONENT_STORE_URL", "https://store.example/api/")
    monkeypatch.setenv("COMPONENT_STORE_TOKEN", "t")

    url = "https://store.example/api/components/hero-1"
    s = _Sess({("GET", url): _Resp(200, {"code": "export default function X() {}"})})
    store = HttpComponentStore.from_env(session=s)
    assert store.get("hero-1") == "export default function X() {}"
    assert s.calls[0][2]["Authorization"] == "Bearer t"


def test_get_unknown_is_none():
    store = HttpComponentStore(base_url="https://store.example", session=_Sess({}))
    assert store.get("missing") is None


def test_put_sends_code():
    url = "https://store.example/components/hero-1"
    s = _Sess({("PUT", url): _Resp(204, ValueError("no body"))})
    store = HttpComponentStore(base_url="https://store.example", session=s)
    store.set("hero-1", "const a = 1")
    assert s.calls == [("PUT", url, {"Accept": "application/json"}, {"code": "const a = 1"})]


def test_server_error_raises():
    url = "https://store.example/components/hero-1"
    store = HttpComponentStore(
        base_url="https://store.example", session=_Sess({("GET", url): _Resp(500, {})})
    )
    with pytest.raises(ComponentStoreError):
        store.get("hero-1")


def test_transport_error_raises():
    url = "https://store.example/components/hero-1"
    s = _Sess({("PUT", url): requests.ConnectionError("refused")})
    store = HttpComponentStore(base_url="https://store.example", session=s)
    with pytest.raises(ComponentStoreError):
        store.set("hero-1", "x")


def test_unexpected_payload_raises():
    url = "https://store.example/components/hero-1"
    store = HttpComponentStore(
        base_url="https://store.example", session=_Sess({("GET", url): _Resp(200, ["nope"])})
    )
    with pytest.raises(ComponentStoreError):
        store.get("hero-1")


def test_from_env_requires_url():
    with pytest.raises(ComponentStoreError):
        HttpComponentStore.from_env(session=_Sess({}))


def test_invalid_id_is_rejected_before_request():
    s = _Sess({})
    store = HttpComponentStore(base_url="https://store.example", session=s)
    with pytest.raises(ComponentStoreError):
        store.get("../etc/passwd")
    assert s.calls == []
