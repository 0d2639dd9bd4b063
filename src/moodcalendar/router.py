"""Fragment-driven page routing."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from .bus import ROUTE_CHANGE, EventBus
from .store import Store

_LOGGER = logging.getLogger(__name__)

PAGES = ("chat", "practices", "tests", "settings", "sos", "profile", "stats", "calendar", "help")
HOME_PAGE = "chat"


class Fragment:
    """The address fragment. Listeners fire only when the value changes."""

    def __init__(self, value: str = ""):
        self._value = self.parse(value)
        self._listeners: set[Callable[[str], None]] = set()

    @staticmethod
    def parse(text: str | None) -> str:
        s = str(text or "").strip()
        return s[1:] if s.startswith("#") else s

    @property
    def value(self) -> str:
        return self._value

    def set(self, value: str | None) -> None:
        new = self.parse(value)
        if new == self._value:
            return
        self._value = new
        for fn in list(self._listeners):
            try:
                fn(new)
            except Exception:
                _LOGGER.exception("Fragment listener failed")

    def on_change(self, fn: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.add(fn)
        return lambda: self._listeners.discard(fn)

    def __str__(self) -> str:
        return f"#{self._value}" if self._value else ""


class PageContainer:
    """One routable page. Hosts subclass this to mirror visibility into widgets."""

    def __init__(self, page_id: str, visible: bool = True):
        self.page_id = page_id
        self.visible = visible

    def set_visible(self, visible: bool) -> None:
        self.visible = visible

    def __repr__(self) -> str:
        return f"PageContainer({self.page_id!r}, visible={self.visible})"


class Router:
    """
    Maps the fragment to the visible page.

    Target ids are not checked against PAGES: an unknown id hides every
    container but is still written to ui.page and announced.
    """

    def __init__(
        self,
        store: Store,
        bus: EventBus,
        fragment: Fragment | None = None,
        containers: Iterable[PageContainer] = (),
        home: str = HOME_PAGE,
    ):
        self.store = store
        self.bus = bus
        self.fragment = fragment if fragment is not None else Fragment()
        self.containers: list[PageContainer] = list(containers)
        self.home = home
        self._unlisten: Callable[[], None] | None = None
        self._syncing = False

    @property
    def current(self) -> str:
        return self.store.get("ui.page", self.home)

    def add_container(self, container: PageContainer) -> None:
        self.containers.append(container)
        container.set_visible(container.page_id == self.current)

    def start(self) -> None:
        if self._unlisten is None:
            self._unlisten = self.fragment.on_change(self._on_fragment_change)
        self.navigate_to(self.fragment.value)

    def stop(self) -> None:
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None

    def navigate_to(self, page_id: str | None) -> str:
        page_id = Fragment.parse(page_id) or self.home

        if self.fragment.value != page_id:
            # our own fragment write must not route a second time
            self._syncing = True
            try:
                self.fragment.set(page_id)
            finally:
                self._syncing = False

        self._show_page(page_id)
        with self.store.quiet():
            self.store.update("ui.page", page_id)
        _LOGGER.debug("Route -> %s", page_id)
        self.bus.emit(ROUTE_CHANGE, page_id)
        return page_id

    def _on_fragment_change(self, value: str) -> None:
        if self._syncing:
            return
        self.navigate_to(value)

    def _show_page(self, page_id: str) -> None:
        for c in self.containers:
            c.set_visible(c.page_id == page_id)
