from __future__ import annotations

from typing import MutableMapping

from .store import THEMES

THEME_ATTR = "data-theme"

# light/dark surface colors for hosts that paint themselves (gui.py)
THEME_COLORS = {
    "light": {"bg": "#ffffff", "fg": "#1f2937", "muted": "#6b7280"},
    "dark": {"bg": "#111827", "fg": "#f3f4f6", "muted": "#9ca3af"},
    "brand": {"bg": "#fdf6e3", "fg": "#3b2f1e", "muted": "#8a7a5c"},
}


def apply_theme(attrs: MutableMapping[str, str], theme: str) -> None:
    """'auto' drops the attribute so the host default applies."""
    if theme not in THEMES:
        raise ValueError(f"Unknown theme {theme!r} (expected one of {', '.join(THEMES)})")
    if theme == "auto":
        attrs.pop(THEME_ATTR, None)
    else:
        attrs[THEME_ATTR] = theme


def colors_for(attrs: MutableMapping[str, str]) -> dict[str, str]:
    return THEME_COLORS.get(attrs.get(THEME_ATTR, "light"), THEME_COLORS["light"])
