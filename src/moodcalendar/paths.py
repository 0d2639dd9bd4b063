from __future__ import annotations

import os
from pathlib import Path

DATA_ENV = "MOODCAL_DATA"


def default_data_dir(profile: str | None = None) -> Path:
    base = Path.home() / ".config" / "moodcalendar"
    return base / (profile or "default")


def resolve_data_dir(data_arg: str | None, profile: str | None) -> Path:
    if data_arg:
        return Path(data_arg).expanduser().resolve()
    env = os.environ.get(DATA_ENV)
    if env:
        return Path(env).expanduser().resolve()
    return default_data_dir(profile).expanduser().resolve()
