"""UI Theme Constants for the car wash booking board.

Centralises all colour, font, and sizing constants for the
CustomTkinter interface.  Dark sidebar + light content area.

This file contains **zero logic**: only ``Final`` constants.
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Colour palette: dark sidebar + light content
# ---------------------------------------------------------------------------

SIDEBAR_BG: Final[str] = "#0f172a"
SIDEBAR_HOVER: Final[str] = "#1e293b"
SIDEBAR_ACTIVE: Final[str] = "#0e7490"
SIDEBAR_TEXT: Final[str] = "#cbd5e1"

CONTENT_BG: Final[str] = "#f1f5f9"
CONTENT_CARD_BG: Final[str] = "#ffffff"

ACCENT_PRIMARY: Final[str] = "#06b6d4"
ACCENT_HOVER: Final[str] = "#0891b2"
TEXT_PRIMARY: Final[str] = "#0f172a"
TEXT_SECONDARY: Final[str] = "#64748b"
TEXT_LIGHT: Final[str] = "#ffffff"

# Booking state banners
STATE_CONFIRMED: Final[str] = "#10b981"
STATE_WARNING: Final[str] = "#f59e0b"
STATE_BLOCKED: Final[str] = "#ef4444"
STATE_WAITING: Final[str] = "#64748b"

# Input / form
INPUT_BG: Final[str] = "#ffffff"
INPUT_BORDER: Final[str] = "#cbd5e1"
ERROR_TEXT: Final[str] = "#dc2626"
SUCCESS_TEXT: Final[str] = "#059669"

LOGOUT_PRIMARY: Final[str] = "#ef4444"
LOGOUT_HOVER: Final[str] = "#3a1a1a"

# ---------------------------------------------------------------------------
# Fonts (Segoe UI, Windows default; Tk falls back to the system font)
# ---------------------------------------------------------------------------

FONT_FAMILY: Final[str] = "Segoe UI"
FONT_BRAND: Final[tuple[str, int, str]] = (FONT_FAMILY, 22, "bold")
FONT_HEADING: Final[tuple[str, int, str]] = (FONT_FAMILY, 20, "bold")
FONT_SUBTITLE: Final[tuple[str, int]] = (FONT_FAMILY, 12)
FONT_BODY: Final[tuple[str, int]] = (FONT_FAMILY, 13)
FONT_SIDEBAR: Final[tuple[str, int]] = (FONT_FAMILY, 14)
FONT_SIDEBAR_ACTIVE: Final[tuple[str, int, str]] = (FONT_FAMILY, 14, "bold")
FONT_LABEL: Final[tuple[str, int, str]] = (FONT_FAMILY, 11, "bold")
FONT_SMALL: Final[tuple[str, int]] = (FONT_FAMILY, 11)
FONT_MONO: Final[tuple[str, int]] = ("Consolas", 11)
FONT_BUTTON: Final[tuple[str, int, str]] = (FONT_FAMILY, 13, "bold")

# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------

SIDEBAR_WIDTH: Final[int] = 240
LOGIN_WINDOW_WIDTH: Final[int] = 480
LOGIN_WINDOW_HEIGHT: Final[int] = 620
MAIN_WINDOW_WIDTH: Final[int] = 1100
MAIN_WINDOW_HEIGHT: Final[int] = 720
CORNER_RADIUS: Final[int] = 8
INPUT_HEIGHT: Final[int] = 40
PADDING_SM: Final[int] = 8
PADDING_MD: Final[int] = 16
PADDING_LG: Final[int] = 24
