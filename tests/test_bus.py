"""Tests for the event bus."""

from __future__ import annotations

import logging

from moodcalendar.bus import EventBus


def test_emit_without_handlers_is_noop():
    EventBus().emit("nothing", 1)


def test_multiple_handlers_all_called():
    bus = EventBus()
    seen = []
    bus.on("x", lambda p: seen.append(("a", p)))
    bus.on("x", lambda p: seen.append(("b", p)))
    bus.emit("x", 7)
    assert sorted(seen) == [("a", 7), ("b", 7)]


def test_same_handler_registered_once():
    bus = EventBus()
    calls = []
    handler = calls.append
    bus.on("x", handler)
    bus.on("x", handler)
    bus.emit("x", 1)
    assert calls == [1]


def test_unsubscribe_function():
    bus = EventBus()
    calls = []
    off = bus.on("x", calls.append)
    off()
    bus.emit("x", 1)
    assert calls == []
    off()  # second call is harmless


def test_off_unknown_event_is_noop():
    EventBus().off("never", print)


def test_failing_handler_is_isolated(caplog):
    bus = EventBus()
    calls = []

    def boom(_p):
        raise RuntimeError("boom")

    bus.on("x", boom)
    bus.on("x", calls.append)
    with caplog.at_level(logging.ERROR, logger="moodcalendar.bus"):
        bus.emit("x", "payload")
    assert calls == ["payload"]
    assert any("failed" in r.message for r in caplog.records)


def test_reentrant_emit():
    bus = EventBus()
    seen = []
    bus.on("outer", lambda p: (seen.append("outer"), bus.emit("inner", p)))
    bus.on("inner", lambda p: seen.append("inner"))
    bus.emit("outer", None)
    assert seen == ["outer", "inner"]


def test_handler_may_unsubscribe_during_emit():
    bus = EventBus()
    calls = []
    holder = {}

    def once(p):
        calls.append(p)
        holder["off"]()

    holder["off"] = bus.on("x", once)
    bus.emit("x", 1)
    bus.emit("x", 2)
    assert calls == [1]
    assert bus.handler_count("x") == 0
