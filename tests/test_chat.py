"""Tests for the chat relay client (no network)."""

from __future__ import annotations

import pytest
import requests

from moodcalendar.bus import CHAT_REPLY, EventBus
from moodcalendar.chat import FALLBACK_REPLY, ChatRelayClient, ChatSession, validate_messages


class FakeResponse:
    def __init__(self, status=200, data=None, text=""):
        self.status_code = status
        self._data = data
        self.text = text

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class FakeHttp:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.exc is not None:
            raise self.exc
        return self.response


def _client(**kw) -> tuple[ChatRelayClient, FakeHttp]:
    http = FakeHttp(**kw)
    return ChatRelayClient(url="http://relay.test/api/chat", timeout=5, session=http), http


def test_successful_reply_is_stripped():
    client, http = _client(response=FakeResponse(data={"reply": "  hi there \n"}))
    reply = client.request([{"role": "user", "content": "hi"}])
    assert reply.ok and reply.text == "hi there"
    assert reply.status == 200
    url, body, timeout = http.calls[0]
    assert url == "http://relay.test/api/chat"
    assert body == {"messages": [{"role": "user", "content": "hi"}]}
    assert timeout == 5


@pytest.mark.parametrize(
    "kw",
    [
        {"exc": requests.ConnectionError("down")},
        {"exc": requests.Timeout("slow")},
        {"response": FakeResponse(status=502, text="bad gateway")},
        {"response": FakeResponse(data=ValueError("not json"))},
        {"response": FakeResponse(data={"reply": "   "})},
        {"response": FakeResponse(data={"other": 1})},
        {"response": FakeResponse(data=["reply"])},
    ],
)
def test_failures_fall_back(kw):
    client, _http = _client(**kw)
    reply = client.request([{"role": "user", "content": "hi"}])
    assert not reply.ok
    assert reply.text == FALLBACK_REPLY
    assert client.send([{"role": "user", "content": "hi"}]) == FALLBACK_REPLY


@pytest.mark.parametrize(
    "messages",
    [["hi"], [{"role": "robot", "content": "x"}], [{"role": "user", "content": 3}]],
)
def test_validate_messages_rejects(messages):
    with pytest.raises(ValueError):
        validate_messages(messages)


def test_session_keeps_history_on_success_only():
    client, http = _client(response=FakeResponse(data={"reply": "ok"}))
    bus = EventBus()
    replies = []
    bus.on(CHAT_REPLY, replies.append)
    session = ChatSession(client, bus=bus, system_prompt="be kind")

    session.ask("hello")
    assert [m["role"] for m in session.history] == ["system", "user", "assistant"]

    http.response = FakeResponse(status=500)
    session.ask("again")
    assert len(session.history) == 3
    assert [r.ok for r in replies] == [True, False]
    # the failed turn still sent the whole context
    assert len(http.calls[-1][1]["messages"]) == 4


def test_session_rejects_empty_message():
    client, _http = _client(response=FakeResponse(data={"reply": "ok"}))
    with pytest.raises(ValueError):
        ChatSession(client).ask("   ")


def test_split_turn_leaves_history_until_finished():
    client, http = _client(response=FakeResponse(data={"reply": "sure"}))
    bus = EventBus()
    replies = []
    bus.on(CHAT_REPLY, replies.append)
    session = ChatSession(client, bus=bus)

    turn = session.start_turn("  hi  ")
    assert turn == [{"role": "user", "content": "hi"}]
    assert session.history == []

    reply = client.request(turn)
    assert session.history == []
    assert replies == []

    session.finish_turn(turn, reply)
    assert session.history == [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "sure"}]
    assert replies == [reply]
    assert len(http.calls) == 1


def test_start_turn_rejects_empty_message():
    client, http = _client(response=FakeResponse(data={"reply": "ok"}))
    with pytest.raises(ValueError):
        ChatSession(client).start_turn("")
    assert http.calls == []
