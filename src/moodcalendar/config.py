import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


class Config:
    # Data
    DATA_DIR = os.getenv("MOODCAL_DATA") or None
    CATALOG_PATH = os.getenv("MOODCAL_CATALOG") or None

    # Chat relay
    CHAT_URL = os.getenv("MOODCAL_CHAT_URL", "http://localhost:3000/api/chat")
    CHAT_TIMEOUT = _int_env("MOODCAL_CHAT_TIMEOUT", 30)

    # Stats page
    STATS_REFRESH_MS = _int_env("MOODCAL_STATS_REFRESH_MS", 60_000)

    # Logging
    LOG_LEVEL = os.getenv("MOODCAL_LOG_LEVEL", "WARNING").upper()
