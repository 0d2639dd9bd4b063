from __future__ import annotations

import argparse
import logging
import os
import stat
from typing import Any

from ._util import _dt_from_iso, _fmt_hour, _fmt_time, _now_local
from .app import AppContext
from .chat import ChatRelayClient, ChatSession
from .config import Config
from .journal import (
    REMINDER_TYPES,
    SOURCES,
    add_entry,
    add_reminder,
    delete_entry,
    edit_entry,
    remove_reminder,
)
from .palette import MAX_ABS, classify
from .paths import DATA_ENV, resolve_data_dir
from .router import PAGES
from .safety import assert_safe_data_path
from .stats import RANGE_DAYS, date_key, hourly_today, summarize_range
from .storage import FileStorage
from .store import STORE_KEY, THEMES
from .timeparse import parse_when


# -------------------------
# Parsing helpers
# -------------------------


def _parse_clock(value: str, arg_name: str) -> tuple[int, int]:
    """'9' -> (9, 0), '21:30' -> (21, 30)."""
    s = str(value).strip()
    if ":" in s:
        h, _, m = s.partition(":")
    else:
        h, m = s, "0"
    if not (h.isdigit() and m.isdigit()):
        raise SystemExit(f"{arg_name} must be HH:MM (got {value!r})")
    hour, minute = int(h), int(m)
    if hour > 23 or minute > 59:
        raise SystemExit(f"{arg_name} must be HH:MM (got {value!r})")
    return hour, minute


def _parse_dow(raw: str | None) -> list[int]:
    if not raw:
        return []
    out: list[int] = []
    for chunk in raw.replace(",", " ").split():
        if not chunk.isdigit() or int(chunk) > 6:
            raise SystemExit(f"--dow takes day numbers 0..6 (got {chunk!r})")
        out.append(int(chunk))
    return out


def _bar(value: int, width: int = 25) -> str:
    n = min(width, round(abs(value) * width / MAX_ABS))
    return ("█" if value > 0 else "░") * n


def _bucket_label(value: int) -> str:
    b = classify(value)
    return "neutral" if b.index is None else f"{b.family}-{b.index}"


# -------------------------
# Output helpers
# -------------------------


def _entry_line(e: dict[str, Any]) -> str:
    dt = _dt_from_iso(e.get("dateISO"))
    when = f"{dt.date().isoformat()} {_fmt_time(dt)}" if dt else str(e.get("dateISO", ""))
    line = f"{e.get('id', '')[:8]}  {when} — {e.get('score', 0):+d} ({e.get('source', '?')})"
    if e.get("tags"):
        line += f" [{', '.join(e['tags'])}]"
    if e.get("note"):
        line += f" {e['note']}"
    return line


def _resolve_entry_id(ctx: AppContext, prefix: str) -> str:
    matches = [e["id"] for e in ctx.store.get("journal", []) if str(e.get("id", "")).startswith(prefix)]
    if not matches:
        raise SystemExit(f"No journal entry with id {prefix!r}")
    if len(matches) > 1:
        raise SystemExit(f"Id prefix {prefix!r} is ambiguous ({len(matches)} entries)")
    return matches[0]


def _context(args: argparse.Namespace) -> AppContext:
    return AppContext.create(data_dir=args.data_dir).boot()


# -------------------------
# Commands
# -------------------------


def cmd_init(args: argparse.Namespace) -> None:
    ctx = _context(args)
    # first write creates the record
    ctx.store.set_state({}, silent=True)
    print(f"✅ Initialized data directory: {args.data_dir}")


def cmd_where(args: argparse.Namespace) -> None:
    if args.data_arg:
        reason = "because you passed --data"
    elif os.environ.get(DATA_ENV):
        reason = f"because {DATA_ENV} is set"
    elif args.profile:
        reason = f"because you used --profile {args.profile!r}"
    else:
        reason = "default XDG config location"
    print(args.data_dir)
    print(f"↳ using {reason}")


def cmd_doctor(args: argparse.Namespace) -> None:
    print("=== Mood Calendar Doctor ===")

    assert_safe_data_path(args.data_dir, args.allow_repo_data_path)
    print("✅ Data path safety guard: OK")

    ctx = _context(args)
    record = FileStorage(args.data_dir).path_for(STORE_KEY)
    if record.exists():
        perms = stat.S_IMODE(record.stat().st_mode)
        print(f"✅ State record readable: {record.name}")
        print(f"🔐 File permissions: {oct(perms)} (target 0o600)")
    else:
        print("⚠️ State record missing (run `moodcal init`)")

    backups = sorted(args.data_dir.glob("*.corrupt-*.json"))
    if backups:
        print(f"⚠️ {len(backups)} corrupt record backup(s) in {args.data_dir}")
    print(f"📒 Journal entries: {len(ctx.store.get('journal', []))}")
    print("=== Done ===")


def cmd_mood_add(args: argparse.Namespace) -> None:
    if not -MAX_ABS <= args.score <= MAX_ABS:
        raise SystemExit(f"--score must be between {-MAX_ABS} and {MAX_ABS}")
    try:
        when = parse_when(args.time)
    except ValueError as e:
        raise SystemExit(str(e)) from e

    ctx = _context(args)
    entry = add_entry(ctx.store, args.score, note=args.note, tags=args.tags, source=args.source, when=when)
    print(f"🙂 Logged mood {entry['score']:+d} @ {entry['dateISO']} (id {entry['id'][:8]})")


def cmd_mood_list(args: argparse.Namespace) -> None:
    journal = _context(args).store.get("journal", [])
    if not journal:
        print("No mood entries yet.")
        return
    print("=== Mood Journal (newest first) ===")
    for e in list(reversed(journal))[: args.limit]:
        print(_entry_line(e))


def cmd_mood_today(args: argparse.Namespace) -> None:
    journal = _context(args).store.get("journal", [])
    today = _now_local().date().isoformat()
    todays = [e for e in journal if date_key(e) == today]

    if not todays:
        print("No mood entries logged today.")
        return

    print(f"=== Mood Journal (today: {today}) ===")
    for e in list(reversed(todays))[: args.limit]:
        print(_entry_line(e))


def cmd_mood_edit(args: argparse.Namespace) -> None:
    ctx = _context(args)
    entry_id = _resolve_entry_id(ctx, args.id)
    changes: dict[str, Any] = {}
    if args.score is not None:
        changes["score"] = args.score
    if args.note is not None:
        changes["note"] = args.note
    if args.tags is not None:
        changes["tags"] = args.tags
    if not changes:
        raise SystemExit("Nothing to change (use --score, --note or --tags)")
    try:
        entry = edit_entry(ctx.store, entry_id, **changes)
    except ValueError as e:
        raise SystemExit(str(e)) from e
    print(f"✏️ Updated: {_entry_line(entry)}")


def cmd_mood_delete(args: argparse.Namespace) -> None:
    ctx = _context(args)
    entry = delete_entry(ctx.store, _resolve_entry_id(ctx, args.id))
    print(f"🗑️ Deleted: {_entry_line(entry)}")


def cmd_stats(args: argparse.Namespace) -> None:
    journal = _context(args).store.get("journal", [])
    s = summarize_range(journal, args.range)

    print(f"=== Mood Stats ({args.range}) ===")
    if not s.total:
        print("No mood entries in this range.")
        return
    print(f"- entries: {s.total}")
    print(f"- zero entries: {s.zero_count}")
    print(f"- active days: {s.active_days}")
    print(f"- entries per active day: {s.per_day:.1f}")
    print(f"- positive / negative: {s.positive_share}% / {s.negative_share}%")
    print(f"- balance: {s.balance_sum:+d} ({_bucket_label(s.balance_sum)})")
    print(f"- average: {s.average:+.2f}")


def cmd_stats_hourly(args: argparse.Namespace) -> None:
    agg = hourly_today(_context(args).store.get("journal", []))

    print(f"=== Today by hour ({agg.day}) ===")
    if not agg.entries:
        print("No mood entries logged today.")
        return
    for hour, value in agg.by_hour().items():
        print(f"{_fmt_hour(hour)} {value:+4d} {agg.colors[hour]} {_bar(value)}")
    print(f"\n- total: {agg.total_sum:+d} over {agg.entries} entries (avg {agg.average:+.2f})")
    print(f"- peak: {_fmt_hour(agg.peak_hour)} = {agg.peak_value:+d}")


def cmd_page(args: argparse.Namespace) -> None:
    ctx = _context(args)
    if args.id is None:
        print(ctx.router.current)
        return
    if args.id not in PAGES:
        print(f"⚠️ {args.id!r} is not a known page ({', '.join(PAGES)})")
    print(f"📄 Page: {ctx.navigate_to(args.id)}")


def cmd_theme(args: argparse.Namespace) -> None:
    ctx = _context(args)
    if args.theme is None:
        print(ctx.store.get("ui.theme", "auto"))
        return
    ctx.store.update("ui.theme", args.theme)
    print(f"🎨 Theme: {args.theme}")


def cmd_remind_add(args: argparse.Namespace) -> None:
    hour, minute = _parse_clock(args.at, "--at")
    ctx = _context(args)
    try:
        r = add_reminder(ctx.store, args.type, hour, minute, _parse_dow(args.dow))
    except ValueError as e:
        raise SystemExit(str(e)) from e
    print(f"⏰ Reminder {r['id']} added: {r['type']} at {hour:02d}:{minute:02d}")


def cmd_remind_list(args: argparse.Namespace) -> None:
    reminders = _context(args).store.get("settings.reminders", [])
    if not reminders:
        print("No reminders set.")
        return
    for r in reminders:
        line = f"{r['id']}  {r['type']:<6} {r['hour']:02d}:{r['minute']:02d}"
        if r.get("dow"):
            line += f" dow={','.join(str(d) for d in r['dow'])}"
        print(line)


def cmd_remind_remove(args: argparse.Namespace) -> None:
    try:
        remove_reminder(_context(args).store, args.id)
    except KeyError:
        raise SystemExit(f"No reminder with id {args.id!r}") from None
    print(f"🧹 Reminder {args.id} removed.")


def cmd_chat(args: argparse.Namespace) -> None:
    ctx = _context(args)
    session = ChatSession(ChatRelayClient(args.url), bus=ctx.bus)
    reply = session.ask(" ".join(args.message))
    print(reply.text)
    if args.score is not None:
        try:
            entry = add_entry(ctx.store, args.score, note=" ".join(args.message), source="chat")
        except ValueError as e:
            raise SystemExit(str(e)) from e
        print(f"🙂 Logged mood {entry['score']:+d} from chat")


def cmd_reset(args: argparse.Namespace) -> None:
    if not args.yes:
        raise SystemExit("Refusing to reset without --yes (this deletes the journal and settings).")
    ctx = _context(args)
    before = len(ctx.store.get("journal", []))
    ctx.store.reset()
    print(f"🧹 Reset to defaults: deleted {before} journal entries.")


# -------------------------
# Entrypoint
# -------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="moodcal", description="Mood calendar: journal, stats and pages")
    p.add_argument("--data", default=None, help="Data directory (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("--allow-repo-data-path", action="store_true", help="Override safety guard (not recommended)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("init", help="Create the state record").set_defaults(func=cmd_init)
    sub.add_parser("where", help="Show which data directory is active and why").set_defaults(func=cmd_where)
    sub.add_parser("doctor", help="Run safety + health checks").set_defaults(func=cmd_doctor)

    # ---- mood ----
    mood = sub.add_parser("mood", help="Mood journal")
    mood_sub = mood.add_subparsers(dest="mood_cmd", required=True)

    mood_add = mood_sub.add_parser("add", help=f"Add mood entry ({-MAX_ABS}..{MAX_ABS})")
    mood_add.add_argument("--score", type=int, required=True)
    mood_add.add_argument("--note", default=None)
    mood_add.add_argument("--tags", default=None, help="Comma or space-separated tags")
    mood_add.add_argument("--time", default=None, help="ISO, human, or relative (e.g. today 9am, 2 hours ago)")
    mood_add.add_argument("--source", choices=SOURCES, default="quick")
    mood_add.set_defaults(func=cmd_mood_add)

    mood_list = mood_sub.add_parser("list", help="List journal entries")
    mood_list.add_argument("--limit", type=int, default=50)
    mood_list.set_defaults(func=cmd_mood_list)

    mood_today = mood_sub.add_parser("today", help="Show today's entries")
    mood_today.add_argument("--limit", type=int, default=50)
    mood_today.set_defaults(func=cmd_mood_today)

    mood_edit = mood_sub.add_parser("edit", help="Edit an entry by id (prefix)")
    mood_edit.add_argument("id")
    mood_edit.add_argument("--score", type=int, default=None)
    mood_edit.add_argument("--note", default=None)
    mood_edit.add_argument("--tags", default=None)
    mood_edit.set_defaults(func=cmd_mood_edit)

    mood_delete = mood_sub.add_parser("delete", help="Delete an entry by id (prefix)")
    mood_delete.add_argument("id")
    mood_delete.set_defaults(func=cmd_mood_delete)

    # ---- stats ----
    stats = sub.add_parser("stats", help="Range summary, or `stats hourly` for today")
    stats.add_argument("view", nargs="?", choices=["range", "hourly"], default="range")
    stats.add_argument("--range", choices=list(RANGE_DAYS), default="7d")
    stats.set_defaults(func=lambda a: cmd_stats_hourly(a) if a.view == "hourly" else cmd_stats(a))

    # ---- ui ----
    page = sub.add_parser("page", help="Show or switch the active page")
    page.add_argument("id", nargs="?", default=None)
    page.set_defaults(func=cmd_page)

    theme = sub.add_parser("theme", help="Show or set the theme")
    theme.add_argument("theme", nargs="?", choices=THEMES, default=None)
    theme.set_defaults(func=cmd_theme)

    # ---- reminders ----
    remind = sub.add_parser("remind", help="Reminder settings")
    remind_sub = remind.add_subparsers(dest="remind_cmd", required=True)

    remind_add = remind_sub.add_parser("add", help="Add a reminder")
    remind_add.add_argument("--type", choices=REMINDER_TYPES, default="daily")
    remind_add.add_argument("--at", required=True, help="HH:MM")
    remind_add.add_argument("--dow", default=None, help="Weekly days, 0..6 (e.g. 0,2,4)")
    remind_add.set_defaults(func=cmd_remind_add)

    remind_sub.add_parser("list", help="List reminders").set_defaults(func=cmd_remind_list)

    remind_remove = remind_sub.add_parser("remove", help="Remove a reminder")
    remind_remove.add_argument("id")
    remind_remove.set_defaults(func=cmd_remind_remove)

    # ---- chat ----
    chat = sub.add_parser("chat", help="Send one message to the chat relay")
    chat.add_argument("message", nargs="+")
    chat.add_argument("--url", default=None, help="Relay URL (default from MOODCAL_CHAT_URL)")
    chat.add_argument("--score", type=int, default=None, help="Also log a mood entry from this message")
    chat.set_defaults(func=cmd_chat)

    reset = sub.add_parser("reset", help="Restore default state (requires --yes)")
    reset.add_argument("--yes", action="store_true", help="Confirm destructive reset")
    reset.set_defaults(func=cmd_reset)

    return p


def main(argv=None) -> None:
    p = build_parser()
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, Config.LOG_LEVEL, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    args.data_arg = args.data
    args.data_dir = resolve_data_dir(args.data, args.profile)

    assert_safe_data_path(args.data_dir, args.allow_repo_data_path)

    args.func(args)


if __name__ == "__main__":
    main()
