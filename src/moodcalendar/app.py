"""Application context: one bus, one store, one router per process."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Protocol

from .bus import APP_READY, EventBus
from .config import Config
from .effects import RecurringEffect, Scheduler
from .router import Fragment, PageContainer, Router
from .stats import HourlyAggregate, hourly_today
from .storage import FileStorage, MemoryStorage, load_json
from .store import Store
from .theme import apply_theme

_LOGGER = logging.getLogger(__name__)


class Chart(Protocol):
    def destroy(self) -> None: ...


# (hourly sums, per-hour colors, tooltip(hour, value) -> str) -> chart
ChartFactory = Callable[[list[int], list[str], Callable[[int, int], str]], Chart]


def format_tooltip(hour: int, value: int) -> str:
    return f"{hour:02d}:00  {value:+d}"


class StatsView:
    """
    Re-renders the hourly chart whenever the store changes, and optionally
    on a timer so the "today" window rolls over at midnight.
    """

    def __init__(
        self,
        store: Store,
        renderer: ChartFactory,
        scheduler: Scheduler | None = None,
        refresh_ms: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self._renderer = renderer
        self._clock = clock
        self._chart: Chart | None = None
        self.last: HourlyAggregate | None = None
        self._unsubscribe = store.subscribe(lambda _s: self.render())
        self._effect: RecurringEffect | None = None
        if scheduler is not None and refresh_ms:
            self._effect = RecurringEffect(scheduler, refresh_ms, self.render)
            self._effect.start()

    def render(self) -> HourlyAggregate:
        now = self._clock() if self._clock else None
        agg = hourly_today(self.store.get("journal", []), now)
        self._destroy_chart()
        self._chart = self._renderer(list(agg.sums), list(agg.colors), format_tooltip)
        self.last = agg
        return agg

    def _destroy_chart(self) -> None:
        if self._chart is not None:
            self._chart.destroy()
            self._chart = None

    def close(self) -> None:
        if self._effect is not None:
            self._effect.stop()
        self._unsubscribe()
        self._destroy_chart()


@dataclass
class AppContext:
    bus: EventBus
    store: Store
    router: Router
    root_attrs: dict[str, str] = field(default_factory=dict)
    scheduler: Scheduler | None = None
    views: list[Any] = field(default_factory=list)
    _unsubscribers: list[Callable[[], None]] = field(default_factory=list, init=False, repr=False)
    ready: bool = field(default=False, init=False)

    @classmethod
    def create(
        cls,
        data_dir: Path | None = None,
        storage: Any = None,
        fragment: Fragment | None = None,
        containers: list[PageContainer] | None = None,
        scheduler: Scheduler | None = None,
    ) -> "AppContext":
        if storage is None:
            storage = FileStorage(data_dir) if data_dir is not None else MemoryStorage()
        bus = EventBus()
        store = Store(storage)
        # without a host address bar, resume on the last persisted page
        if fragment is None:
            fragment = Fragment(store.get("ui.page", ""))
        router = Router(store, bus, fragment, containers or ())
        return cls(bus=bus, store=store, router=router, scheduler=scheduler)

    def navigate_to(self, page_id: str | None) -> str:
        return self.router.navigate_to(page_id)

    def load_catalog(self, path: Path | str | None = None) -> bool:
        path = path or Config.CATALOG_PATH
        if not path:
            return False
        data = load_json(Path(path))
        catalog = {
            "tests": list(data.get("tests") or []),
            "practices": list(data.get("practices") or []),
        }
        with self.store.quiet():
            self.store.update("catalog", catalog)
        _LOGGER.info("Loaded catalog from %s (%d tests, %d practices)", path, len(catalog["tests"]), len(catalog["practices"]))
        return True

    def attach_stats_view(self, renderer: ChartFactory, refresh_ms: int | None = None) -> StatsView:
        refresh = Config.STATS_REFRESH_MS if refresh_ms is None else refresh_ms
        view = StatsView(self.store, renderer, self.scheduler, refresh)
        self.views.append(view)
        return view

    def _apply_theme(self, state: dict[str, Any]) -> None:
        theme = state.get("ui", {}).get("theme", "auto")
        try:
            apply_theme(self.root_attrs, theme)
        except ValueError:
            _LOGGER.warning("Ignoring unknown theme %r", theme)

    def boot(self) -> "AppContext":
        if self.ready:
            return self
        self.load_catalog()
        self._apply_theme(self.store.get_state())
        self._unsubscribers.append(self.store.subscribe(self._apply_theme))
        self.router.start()
        self.ready = True
        self.bus.emit(APP_READY, None)
        return self

    def shutdown(self) -> None:
        self.router.stop()
        for view in self.views:
            view.close()
        self.views.clear()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.ready = False
