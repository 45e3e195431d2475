import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest

from cctracker.cc.forum_reader import MalformedPayloadError, XenForoApiReader, parse_thread_payload
from cctracker.datatypes.cc_datatypes import ThreadSnapshot


def thread_payload(thread_id, node_id=758, title="Garchomp", **extra):
    payload = {
        "thread_id": thread_id,
        "node_id": node_id,
        "title": title,
        "discussion_open": True,
        "discussion_state": "visible",
    }
    payload.update(extra)
    return payload


class FakeResponse:
    def __init__(self, status=200, data=None, json_error=None):
        self.status = status
        self._data = data
        self._json_error = json_error
        self.request_info = MagicMock()
        self.history = ()

    async def json(self, content_type="application/json"):
        if self._json_error is not None:
            raise self._json_error
        return self._data

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Answers GET requests from a {(url, page): response} table."""

    def __init__(self, responses=None, error=None):
        self.responses = responses or {}
        self.error = error
        self.calls = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append((url, dict(params or {}), dict(headers or {})))
        if self.error is not None:
            raise self.error
        return self.responses[(url, int(params["page"]))]


API = "https://forum.example/api"


def reader_for(session, section_ids=(758,), **kwargs):
    return XenForoApiReader(session, API + "/", "secret", section_ids=section_ids, **kwargs)


class TestParseThreadPayload:

    def test_open_visible_thread(self):
        snapshot = parse_thread_payload(thread_payload(1, prefix="Quality Control"))
        assert snapshot == ThreadSnapshot(thread_id=1, forum_id=758, title="Garchomp", prefix_tag="Quality Control")

    def test_prefix_title_field(self):
        assert parse_thread_payload(thread_payload(1, prefix_title=" WIP ")).prefix_tag == "WIP"

    def test_prefix_id_resolved_through_labels(self):
        snapshot = parse_thread_payload(thread_payload(1, prefix_id=3), {3: "Copyediting"})
        assert snapshot.prefix_tag == "Copyediting"

    @pytest.mark.parametrize("prefix_id", [0, None, 99])
    def test_missing_or_unknown_prefix(self, prefix_id):
        assert parse_thread_payload(thread_payload(1, prefix_id=prefix_id), {3: "WIP"}).prefix_tag is None

    def test_closed_thread_is_dropped(self):
        assert parse_thread_payload(thread_payload(1, discussion_open=False)) is None

    @pytest.mark.parametrize("state", ["deleted", "moderated"])
    def test_hidden_thread_is_dropped(self, state):
        assert parse_thread_payload(thread_payload(1, discussion_state=state)) is None

    @pytest.mark.parametrize("payload", [
        {"node_id": 758, "title": "x"},
        {"thread_id": "abc", "node_id": 758, "title": "x"},
        {"thread_id": 1, "title": "x"},
        {"thread_id": 1, "node_id": 758},
    ])
    def test_malformed_payload(self, payload):
        with pytest.raises(MalformedPayloadError):
            parse_thread_payload(payload)


class TestXenForoApiReader:

    @pytest.mark.asyncio
    async def test_pages_through_every_section(self):
        session = FakeSession({
            (f"{API}/forums/758/threads", 1): FakeResponse(data={
                "sticky": [thread_payload(1, title="Sticky")],
                "threads": [thread_payload(2)],
                "pagination": {"current_page": 1, "last_page": 2},
            }),
            (f"{API}/forums/758/threads", 2): FakeResponse(data={
                "threads": [thread_payload(3), thread_payload(4, discussion_open=False)],
                "pagination": {"current_page": 2, "last_page": 2},
            }),
            (f"{API}/forums/759/threads", 1): FakeResponse(data={
                "threads": [thread_payload(5, node_id=759), thread_payload(2)],
            }),
        })

        result = await reader_for(session, section_ids=(758, 759)).fetch_open_threads()

        assert result.ok is True
        assert sorted(t.thread_id for t in result.threads) == [1, 2, 3, 5]
        assert len(session.calls) == 3
        assert all(headers["XF-Api-Key"] == "secret" for _, _, headers in session.calls)

    @pytest.mark.asyncio
    async def test_empty_forum_is_a_successful_empty_fetch(self):
        session = FakeSession({(f"{API}/forums/758/threads", 1): FakeResponse(data={"threads": []})})

        result = await reader_for(session).fetch_open_threads()

        assert result.ok is True
        assert result.threads == ()

    @pytest.mark.asyncio
    async def test_http_error_fails_whole_fetch(self):
        session = FakeSession({
            (f"{API}/forums/758/threads", 1): FakeResponse(data={"threads": [thread_payload(1)]}),
            (f"{API}/forums/759/threads", 1): FakeResponse(status=503),
        })

        result = await reader_for(session, section_ids=(758, 759)).fetch_open_threads()

        assert result.ok is False
        assert result.threads == ()
        assert "request failed" in result.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()])
    async def test_connection_errors_fail_fetch(self, error):
        result = await reader_for(FakeSession(error=error)).fetch_open_threads()
        assert result.ok is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        FakeResponse(data=["not", "an", "object"]),
        FakeResponse(json_error=ValueError("Expecting value")),
        FakeResponse(data={"threads": ["nope"]}),
        FakeResponse(data={"threads": [{"title": "no ids"}]}),
        FakeResponse(data={"threads": 5}),
        FakeResponse(data={"threads": [], "pagination": {"last_page": "abc"}}),
        FakeResponse(data={"threads": [], "pagination": ["x"]}),
    ])
    async def test_malformed_responses_fail_fetch(self, response):
        session = FakeSession({(f"{API}/forums/758/threads", 1): response})

        result = await reader_for(session).fetch_open_threads()

        assert result.ok is False
        assert "malformed" in result.error

    @pytest.mark.asyncio
    async def test_prefix_labels_are_used(self):
        session = FakeSession({
            (f"{API}/forums/758/threads", 1): FakeResponse(data={"threads": [thread_payload(1, prefix_id=7)]}),
        })

        result = await reader_for(session, prefix_labels={7: "HTML"}).fetch_open_threads()

        assert result.threads[0].prefix_tag == "HTML"
