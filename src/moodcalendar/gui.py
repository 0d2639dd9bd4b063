from __future__ import annotations

import logging
import threading
import tkinter as tk
from datetime import timedelta
from tkinter import messagebox, ttk
from typing import Callable

from ._util import _now_local
from .app import AppContext
from .bus import CHAT_REPLY, ROUTE_CHANGE
from .chat import ChatRelayClient, ChatReply, ChatSession
from .config import Config
from .journal import add_entry
from .palette import MAX_ABS, NO_DATA_COLOR, mood_color
from .paths import resolve_data_dir
from .router import PAGES, PageContainer
from .safety import assert_safe_data_path
from .stats import HOURS, daily_totals, hourly_today, summarize_range
from .store import THEMES
from .theme import colors_for

_LOGGER = logging.getLogger(__name__)

PAGE_TITLES = {
    "chat": "Chat",
    "practices": "Practices",
    "tests": "Tests",
    "settings": "Settings",
    "sos": "SOS",
    "profile": "Profile",
    "stats": "Stats",
    "calendar": "Calendar",
    "help": "Help",
}


# -------------------------
# Chart renderer
# -------------------------


class CanvasBarChart:
    """24 hourly bars around a zero line. destroy() releases the canvas."""

    def __init__(self, parent: tk.Misc, sums: list[int], colors: list[str], tooltip: Callable[[int, int], str]):
        self.canvas = tk.Canvas(parent, height=220, bg="white", highlightthickness=0)
        self.canvas.pack(fill="both", expand=True)
        self._tip_var = tk.StringVar(value="")
        self._tip = ttk.Label(parent, textvariable=self._tip_var, foreground="#444")
        self._tip.pack(anchor="w")
        self.canvas.update_idletasks()
        self._draw(sums, colors, tooltip)

    def _draw(self, sums: list[int], colors: list[str], tooltip: Callable[[int, int], str]) -> None:
        c = self.canvas
        w = max(240, c.winfo_width())
        h = max(120, c.winfo_height())
        pad_l, pad_r, pad_t, pad_b = 30, 10, 10, 22
        plot_w = w - pad_l - pad_r
        half = (h - pad_t - pad_b) / 2
        mid = pad_t + half
        slot = plot_w / HOURS

        c.create_line(pad_l, mid, w - pad_r, mid, fill="#999")
        for hour in range(HOURS):
            x0 = pad_l + hour * slot + 2
            x1 = x0 + slot - 4
            value = sums[hour]
            if colors[hour] == NO_DATA_COLOR:
                c.create_rectangle(x0, mid - 2, x1, mid + 2, outline="", fill=NO_DATA_COLOR)
            else:
                y = mid - (max(-MAX_ABS, min(MAX_ABS, value)) / MAX_ABS) * half
                item = c.create_rectangle(x0, min(y, mid), x1, max(y, mid), outline="", fill=colors[hour])
                text = tooltip(hour, value)
                c.tag_bind(item, "<Enter>", lambda _e, t=text: self._tip_var.set(t))
                c.tag_bind(item, "<Leave>", lambda _e: self._tip_var.set(""))
            if hour % 3 == 0:
                c.create_text(x0 + slot / 2 - 2, h - 8, text=f"{hour:02d}", fill="#666")

    def destroy(self) -> None:
        self.canvas.destroy()
        self._tip.destroy()


# -------------------------
# Pages
# -------------------------


class TabPage(PageContainer):
    """Visibility of a notebook tab, driven by the router."""

    def __init__(self, notebook: ttk.Notebook, page_id: str):
        super().__init__(page_id, visible=False)
        self.notebook = notebook
        self.frame = ttk.Frame(notebook, padding=10)
        notebook.add(self.frame, text=PAGE_TITLES.get(page_id, page_id.title()))

    def set_visible(self, visible: bool) -> None:
        super().set_visible(visible)
        if visible and self.notebook.select() != str(self.frame):
            self.notebook.select(self.frame)


class MoodCalendarApp(tk.Tk):
    def __init__(self, ctx: AppContext):
        super().__init__()
        self.title("Mood Calendar")
        self.geometry("900x600")
        self.ctx = ctx
        ctx.scheduler = self

        self._chat = ChatSession(ChatRelayClient(), bus=ctx.bus)
        self._chat_busy = False

        self._build_header()
        self._build_tabs()

        ctx.bus.on(ROUTE_CHANGE, self._on_route)
        ctx.bus.on(CHAT_REPLY, self._on_chat_reply)
        ctx.boot()
        # deferred: the theme subscriber must run first
        ctx.store.subscribe(lambda _s: self.after_idle(self._refresh_all))
        self.stats_view = ctx.attach_stats_view(self._make_chart)
        self.stats_view.render()
        self._refresh_all()

    # -------- Crash guard --------

    def report_callback_exception(self, exc, val, tb):  # type: ignore[override]
        _LOGGER.error("Unhandled GUI error", exc_info=(exc, val, tb))
        try:
            messagebox.showerror("Crash prevented", f"{exc.__name__}: {val}")
        except tk.TclError:
            pass

    def _safe_cmd(self, fn):
        def wrapped(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except ValueError as e:
                messagebox.showerror("Invalid input", str(e))
                return None

        return wrapped

    # -------------------------
    # Layout
    # -------------------------

    def _build_header(self) -> None:
        frm = ttk.Frame(self, padding=10)
        frm.pack(fill="x")
        ttk.Label(frm, text="Mood Calendar", font=("TkDefaultFont", 16, "bold")).pack(side="left")

        self.page_var = tk.StringVar(value="")
        ttk.Label(frm, textvariable=self.page_var, foreground="#666").pack(side="left", padx=12)

        self.theme_var = tk.StringVar(value=self.ctx.store.get("ui.theme", "auto"))
        box = ttk.Combobox(frm, textvariable=self.theme_var, values=THEMES, state="readonly", width=8)
        box.pack(side="right")
        box.bind("<<ComboboxSelected>>", lambda _e: self.ctx.store.update("ui.theme", self.theme_var.get()))
        ttk.Label(frm, text="Theme").pack(side="right", padx=6)

    def _build_tabs(self) -> None:
        self.nb = ttk.Notebook(self)
        self.nb.pack(fill="both", expand=True, padx=10, pady=10)

        self.pages: dict[str, TabPage] = {}
        for page_id in PAGES:
            page = TabPage(self.nb, page_id)
            self.pages[page_id] = page
            self.ctx.router.add_container(page)

        self.nb.bind("<<NotebookTabChanged>>", self._on_tab_changed)

        self._build_chat_tab(self.pages["chat"].frame)
        self._build_stats_tab(self.pages["stats"].frame)
        self._build_calendar_tab(self.pages["calendar"].frame)
        self._build_catalog_tab(self.pages["practices"].frame, "practices")
        self._build_catalog_tab(self.pages["tests"].frame, "tests")
        self._build_profile_tab(self.pages["profile"].frame)
        for page_id in ("settings", "sos", "help"):
            ttk.Label(self.pages[page_id].frame, text=PAGE_TITLES[page_id], foreground="#666").pack(anchor="w")

    def _on_tab_changed(self, _evt=None) -> None:
        selected = self.nb.select()
        for page_id, page in self.pages.items():
            if str(page.frame) == selected:
                self.ctx.router.fragment.set(page_id)
                return

    def _on_route(self, page_id: str) -> None:
        self.page_var.set(f"#{page_id}")
        if page_id == "stats" and hasattr(self, "stats_view"):
            self.stats_view.render()

    # -------------------------
    # Chat
    # -------------------------

    def _build_chat_tab(self, tab: ttk.Frame) -> None:
        self.chat_log = tk.Text(tab, height=14, wrap="word", state="disabled")
        self.chat_log.pack(fill="both", expand=True)

        row = ttk.Frame(tab)
        row.pack(fill="x", pady=(8, 0))
        self.chat_var = tk.StringVar()
        entry = ttk.Entry(row, textvariable=self.chat_var)
        entry.pack(side="left", fill="x", expand=True)
        entry.bind("<Return>", lambda _e: self._send_chat())
        self.send_btn = ttk.Button(row, text="Send", command=self._safe_cmd(self._send_chat))
        self.send_btn.pack(side="left", padx=4)

        quick = ttk.Frame(tab)
        quick.pack(fill="x", pady=(8, 0))
        ttk.Label(quick, text="Quick mood:").pack(side="left")
        for score in (-30, -10, 0, 10, 30):
            ttk.Button(
                quick,
                text=f"{score:+d}",
                width=5,
                command=self._safe_cmd(lambda s=score: add_entry(self.ctx.store, s)),
            ).pack(side="left", padx=2)

    def _chat_append(self, who: str, text: str) -> None:
        self.chat_log.configure(state="normal")
        self.chat_log.insert("end", f"{who}: {text}\n\n")
        self.chat_log.configure(state="disabled")
        self.chat_log.see("end")

    def _send_chat(self) -> None:
        text = self.chat_var.get().strip()
        if not text or self._chat_busy:
            return
        turn = self._chat.start_turn(text)
        self.chat_var.set("")
        self._chat_append("You", text)
        self._set_chat_busy(True)
        # only the blocking relay call runs off the Tk thread
        threading.Thread(target=self._chat_request, args=(turn,), daemon=True).start()

    def _chat_request(self, turn: list[dict[str, str]]) -> None:
        reply = self._chat.client.request(turn)
        self.after(0, lambda: self._chat_done(turn, reply))

    def _chat_done(self, turn: list[dict[str, str]], reply: ChatReply) -> None:
        self._set_chat_busy(False)
        self._chat.finish_turn(turn, reply)

    def _set_chat_busy(self, busy: bool) -> None:
        self._chat_busy = busy
        self.send_btn.configure(state="disabled" if busy else "normal")

    def _on_chat_reply(self, reply: ChatReply) -> None:
        self._chat_append("Bot", reply.text)

    # -------------------------
    # Stats / calendar / profile
    # -------------------------

    def _build_stats_tab(self, tab: ttk.Frame) -> None:
        top = ttk.Frame(tab)
        top.pack(fill="x")
        self.range_var = tk.StringVar(value="7d")
        for rk in ("3d", "7d", "1m", "all"):
            ttk.Radiobutton(top, text=rk, value=rk, variable=self.range_var, command=self._refresh_summary).pack(
                side="left"
            )
        self.summary_var = tk.StringVar(value="")
        ttk.Label(tab, textvariable=self.summary_var, justify="left").pack(anchor="w", pady=6)
        self.peak_var = tk.StringVar(value="")
        ttk.Label(tab, textvariable=self.peak_var, foreground="#444").pack(anchor="w")
        self.chart_host = ttk.Frame(tab)
        self.chart_host.pack(fill="both", expand=True)

    def _make_chart(self, sums, colors, tooltip) -> CanvasBarChart:
        return CanvasBarChart(self.chart_host, sums, colors, tooltip)

    def _refresh_summary(self) -> None:
        s = summarize_range(self.ctx.store.get("journal", []), self.range_var.get())
        self.summary_var.set(
            f"Entries: {s.total}   Zero: {s.zero_count}   Active days: {s.active_days}   "
            f"Per day: {s.per_day:.1f}\n"
            f"Positive {s.positive_share}%  /  Negative {s.negative_share}%   Balance {s.balance_sum:+d}"
        )
        last = hourly_today(self.ctx.store.get("journal", []))
        if last.peak_hour is not None:
            self.peak_var.set(f"Today peak: {last.peak_hour:02d}:00 = {last.peak_value:+d}  (avg {last.average:+.2f})")
        else:
            self.peak_var.set("No entries today.")

    def _build_calendar_tab(self, tab: ttk.Frame) -> None:
        self.calendar_canvas = tk.Canvas(tab, height=260, bg="white", highlightthickness=0)
        self.calendar_canvas.pack(fill="both", expand=True)

    def _draw_calendar(self) -> None:
        c = self.calendar_canvas
        c.delete("all")
        totals = daily_totals(self.ctx.store.get("journal", []))
        today = _now_local().date()
        start = today - timedelta(days=today.weekday() + 28)
        cell = 34
        for i in range(35):
            day = start + timedelta(days=i)
            col, row = i % 7, i // 7
            x, y = 10 + col * (cell + 4), 10 + row * (cell + 4)
            key = day.isoformat()
            fill = mood_color(totals[key]) if key in totals else NO_DATA_COLOR
            outline = "#111" if day == today else ""
            c.create_rectangle(x, y, x + cell, y + cell, fill=fill, outline=outline)
            c.create_text(x + cell / 2, y + cell / 2, text=str(day.day), fill="#222")

    def _build_catalog_tab(self, tab: ttk.Frame, kind: str) -> None:
        lst = tk.Listbox(tab, height=12)
        lst.pack(fill="both", expand=True)
        setattr(self, f"{kind}_list", lst)

    def _build_profile_tab(self, tab: ttk.Frame) -> None:
        self.profile_var = tk.StringVar(value="")
        ttk.Label(tab, textvariable=self.profile_var, justify="left").pack(anchor="w")

    def _refresh_all(self) -> None:
        state = self.ctx.store.get_state()
        self.theme_var.set(state["ui"].get("theme", "auto"))
        self.configure(bg=colors_for(self.ctx.root_attrs)["bg"])

        for kind in ("practices", "tests"):
            lst = getattr(self, f"{kind}_list")
            lst.delete(0, "end")
            for item in state["catalog"].get(kind, []):
                lst.insert("end", item.get("title", item.get("id", "?")) if isinstance(item, dict) else str(item))

        profile = state["profile"]
        averages = ", ".join(f"{k}: {v:+.2f}" for k, v in profile.get("averages", {}).items()) or "—"
        triggers = ", ".join(f"{k} ({n})" for k, n in list(profile.get("triggers", {}).items())[:5]) or "—"
        self.profile_var.set(f"Averages: {averages}\nTriggers: {triggers}")

        self._draw_calendar()
        self._refresh_summary()


# -------------------------
# GUI Entrypoint
# -------------------------


def run_gui(argv=None) -> None:
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    data_dir = resolve_data_dir(None, None)
    assert_safe_data_path(data_dir, allow_repo_data_path=False)
    ctx = AppContext.create(data_dir=data_dir)
    app = MoodCalendarApp(ctx)
    try:
        app.mainloop()
    finally:
        ctx.shutdown()


if __name__ == "__main__":
    run_gui()
