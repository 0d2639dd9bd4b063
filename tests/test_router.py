"""Tests for fragment routing."""

from __future__ import annotations

import pytest

from moodcalendar.bus import ROUTE_CHANGE, EventBus
from moodcalendar.router import HOME_PAGE, PAGES, Fragment, PageContainer, Router
from moodcalendar.storage import MemoryStorage
from moodcalendar.store import Store


@pytest.fixture()
def parts():
    store = Store(MemoryStorage())
    bus = EventBus()
    fragment = Fragment()
    containers = [PageContainer(p) for p in PAGES]
    router = Router(store, bus, fragment, containers)
    routes: list[str] = []
    bus.on(ROUTE_CHANGE, routes.append)
    return store, bus, fragment, containers, router, routes


def _visible(containers):
    return [c.page_id for c in containers if c.visible]


# ---- Fragment ----


def test_fragment_parse_strips_hash():
    assert Fragment.parse("#stats") == "stats"
    assert Fragment.parse(" stats ") == "stats"
    assert Fragment.parse(None) == ""


def test_fragment_fires_only_on_change():
    f = Fragment("chat")
    seen = []
    f.on_change(seen.append)
    f.set("#chat")
    f.set("stats")
    assert seen == ["stats"]
    assert str(f) == "#stats"


# ---- start ----


def test_start_with_empty_fragment_goes_home(parts):
    store, _bus, fragment, containers, router, routes = parts
    router.start()
    assert routes == [HOME_PAGE]
    assert fragment.value == HOME_PAGE
    assert _visible(containers) == [HOME_PAGE]
    assert store.get("ui.page") == HOME_PAGE


def test_start_uses_initial_fragment():
    store = Store(MemoryStorage())
    router = Router(store, EventBus(), Fragment("#calendar"))
    router.start()
    assert store.get("ui.page") == "calendar"


# ---- navigate_to ----


def test_navigate_updates_everything_once(parts):
    store, _bus, fragment, containers, router, routes = parts
    router.start()
    routes.clear()
    router.navigate_to("stats")
    assert routes == ["stats"]
    assert fragment.value == "stats"
    assert _visible(containers) == ["stats"]
    assert store.get("ui.page") == "stats"


def test_navigate_writes_page_without_notifying_subscribers(parts):
    store, _bus, _fragment, _containers, router, _routes = parts
    calls = []
    store.subscribe(calls.append)
    router.navigate_to("settings")
    assert calls == []
    assert store.get("ui.page") == "settings"


def test_navigate_empty_goes_home(parts):
    _store, _bus, _fragment, _containers, router, routes = parts
    assert router.navigate_to("") == HOME_PAGE
    assert router.navigate_to(None) == HOME_PAGE
    assert routes == [HOME_PAGE, HOME_PAGE]


def test_unknown_page_is_not_validated(parts):
    store, _bus, fragment, containers, router, routes = parts
    router.navigate_to("nowhere")
    assert store.get("ui.page") == "nowhere"
    assert routes == ["nowhere"]
    assert fragment.value == "nowhere"
    assert _visible(containers) == []


# ---- fragment-driven ----


def test_fragment_change_routes_after_start(parts):
    store, _bus, fragment, containers, router, routes = parts
    router.start()
    fragment.set("#help")
    assert routes[-1] == "help"
    assert _visible(containers) == ["help"]
    assert store.get("ui.page") == "help"


def test_fragment_cleared_routes_home(parts):
    _store, _bus, fragment, _containers, router, routes = parts
    router.start()
    router.navigate_to("stats")
    fragment.set("")
    assert routes[-1] == HOME_PAGE
    assert fragment.value == HOME_PAGE


def test_stop_detaches_from_fragment(parts):
    _store, _bus, fragment, _containers, router, routes = parts
    router.start()
    router.stop()
    routes.clear()
    fragment.set("stats")
    assert routes == []


def test_add_container_matches_current_page(parts):
    _store, _bus, _fragment, _containers, router, _routes = parts
    router.navigate_to("calendar")
    extra = PageContainer("calendar", visible=False)
    other = PageContainer("chat")
    router.add_container(extra)
    router.add_container(other)
    assert extra.visible is True
    assert other.visible is False


def test_navigate_strips_leading_hash(parts):
    store, _bus, fragment, containers, router, routes = parts
    assert router.navigate_to("#stats") == "stats"
    assert fragment.value == "stats"
    assert store.get("ui.page") == "stats"
    assert _visible(containers) == ["stats"]
    assert routes == ["stats"]


def test_navigate_bare_hash_goes_home(parts):
    _store, _bus, _fragment, _containers, router, _routes = parts
    assert router.navigate_to("#") == HOME_PAGE
