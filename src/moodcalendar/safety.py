from __future__ import annotations

import logging
from pathlib import Path

_LOGGER = logging.getLogger(__name__)


def find_git_root(start: Path) -> Path | None:
    cur = Path(start)
    for _ in range(200):
        if (cur / ".git").exists():
            return cur
        if cur.parent == cur:
            return None
        cur = cur.parent
    return None


def assert_safe_data_path(data_dir: Path, allow_repo_data_path: bool) -> None:
    """Refuse a data directory inside a git checkout (journal data is private)."""
    git_root = find_git_root(data_dir)
    if git_root is None or allow_repo_data_path:
        return
    _LOGGER.error("Data directory %s is inside git repo %s", data_dir, git_root)
    raise SystemExit(
        "🚫 Refusing to keep mood data inside a git repo.\n"
        f"   data dir:  {data_dir}\n"
        f"   repo root: {git_root}\n"
        "   Fix: use ~/.config/moodcalendar/<profile> or pass --allow-repo-data-path"
    )
