#!/usr/bin/env python3
"""
Shared utilities for the fixture assistant.
Includes logging, color printing, text normalization, and constants.
"""

import logging
from datetime import timedelta, timezone
from typing import Any

from colorama import init as _init_colorama, Fore, Style

_init_colorama(autoreset=True)

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger("cricsync")

# Indian Standard Time, fixed offset (no DST)
IST = timezone(timedelta(hours=5, minutes=30), name="IST")

GOOGLE_MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="

DEFAULT_HOME_TEAM = "My Team"
DEFAULT_IMAGE_MIME_TYPE = "image/png"

# Log excerpt length for raw AI output
RAW_OUTPUT_PREVIEW_CHARS = 500

# User-facing messages
NO_MATCHES_FOUND_MESSAGE = (
    "No upcoming matches found within this week's window. "
    "Please check the link or try searching manually."
)
POSTER_EMPTY_MESSAGE = (
    "Failed to generate poster. The AI model might be busy or the content was filtered. "
    "Please try again."
)
SHARE_FAILED_MESSAGE = "Error generating message. Please try again in the Generator tab."


def cprint(text: str, color: str = '', style: str = ''):
    """Print colored text."""
    print(f"{style}{color}{text}{Style.RESET_ALL}")


def _norm(val: Any) -> str:
    """Normalize a value to a string, handling None and null-like values."""
    s = str(val).strip() if val is not None else ""
    return "" if s.lower() in {"", "null", "none", "undefined"} else s
