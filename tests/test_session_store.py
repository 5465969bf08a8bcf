import pytest
import requests

from classroom.helpers.config_helper import ConfigHelper
from classroom.live.errors import StoreUnavailable
from classroom.live.models import SESSION_KEY, BroadcastMode, LiveSession
from classroom.live.session_store import InMemorySessionStore, RestSessionStore, create_session_store


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeHttp:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _store(*responses):
    http = FakeHttp(*responses)
    return RestSessionStore("https://demo.example.co/", "anon-key", session=http, timeout=3), http


def test_get_returns_session_from_first_row():
    row = {"id": SESSION_KEY, "is_active": True, "mode": "VIDEO", "teacher_id": "t1", "started_at": 1700000000000}
    store, http = _store(FakeResponse(payload=[row]))

    session = store.get(SESSION_KEY)

    assert session.mode == BroadcastMode.VIDEO
    assert session.owner_id == "t1"
    method, url, kwargs = http.calls[0]
    assert method == "GET"
    assert url == "https://demo.example.co/rest/v1/live_sessions"
    assert kwargs["params"]["id"] == f"eq.{SESSION_KEY}"
    assert kwargs["headers"]["apikey"] == "anon-key"
    assert kwargs["headers"]["Authorization"] == "Bearer anon-key"
    assert kwargs["timeout"] == 3


def test_get_returns_none_when_no_row():
    store, _http = _store(FakeResponse(payload=[]))
    assert store.get(SESSION_KEY) is None


def test_upsert_merges_duplicates():
    store, http = _store(FakeResponse(status_code=201))

    store.upsert(LiveSession.create(BroadcastMode.WHITEBOARD, "t1"))

    method, _url, kwargs = http.calls[0]
    assert method == "POST"
    assert kwargs["json"]["id"] == SESSION_KEY
    assert kwargs["json"]["mode"] == "WHITEBOARD"
    assert kwargs["json"]["teacher_id"] == "t1"
    assert "resolution=merge-duplicates" in kwargs["headers"]["Prefer"]


def test_delete_targets_singleton_key():
    store, http = _store(FakeResponse(status_code=204))

    store.delete(SESSION_KEY)

    method, _url, kwargs = http.calls[0]
    assert method == "DELETE"
    assert kwargs["params"] == {"id": f"eq.{SESSION_KEY}"}


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("offline"),
        requests.Timeout("slow"),
        FakeResponse(status_code=503, text="maintenance"),
        FakeResponse(payload=ValueError("not json")),
    ],
)
def test_failures_raise_store_unavailable(response):
    store, _http = _store(response)
    with pytest.raises(StoreUnavailable):
        store.get(SESSION_KEY)


def test_in_memory_store_round_trip_and_outage():
    store = InMemorySessionStore()
    store.upsert(LiveSession.create(BroadcastMode.VIDEO, "t1"))
    store.upsert(LiveSession.create(BroadcastMode.WHITEBOARD, "t2"))

    assert len(store) == 1
    assert store.get(SESSION_KEY).owner_id == "t2"

    store.available = False
    with pytest.raises(StoreUnavailable):
        store.delete(SESSION_KEY)


def test_create_session_store_picks_rest_when_configured(monkeypatch):
    values = {("SessionStore", "base_url"): "https://demo.example.co", ("SessionStore", "table"): "sessions"}

    def fake_get(cls, section, key, fallback=None):
        return values.get((section, key), fallback)

    monkeypatch.setattr(ConfigHelper, "get", classmethod(fake_get))

    store = create_session_store()

    assert isinstance(store, RestSessionStore)
    assert store.endpoint == "https://demo.example.co/rest/v1/sessions"


def test_create_session_store_falls_back_to_memory(monkeypatch):
    monkeypatch.setattr(ConfigHelper, "get", classmethod(lambda cls, section, key, fallback=None: ""))
    assert isinstance(create_session_store(), InMemorySessionStore)
