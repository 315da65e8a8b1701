"""Centralized brand configuration for user-facing copy and report theme."""

import re
from typing import Optional

BRAND_NAME = "TalentPulse"
BRAND_DOMAIN = "talentpulse.io"
BRAND_PRODUCT_NAME = "Talent Assessment Platform"
BRAND_APP_DESCRIPTION = "360 and leadership assessment reporting platform"

# Report palette shared by the HTML view and the declarative PDF renderer.
PRIMARY_BLUE = "#55a1d8"
DARK_BLUE = "#272842"
ORANGE_RED = "#f26950"
LIGHT_GRAY = "#c0c9cf"
IMPROVEMENT_RED = "#DC2626"
WHITE = "#ffffff"


def report_palette() -> dict:
    return {
        "primary": PRIMARY_BLUE,
        "dark": DARK_BLUE,
        "accent": ORANGE_RED,
        "light": LIGHT_GRAY,
        "improvement": IMPROVEMENT_RED,
        "background": WHITE,
    }


_HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


def sanitize_hex_color(value) -> Optional[str]:
    """Normalise a ``#RGB``/``#RRGGBB`` colour to upper-case ``#RRGGBB``.

    Anything else (named colours, CSS fragments, non-strings) returns None.
    """
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not _HEX_COLOR_RE.match(trimmed):
        return None
    digits = trimmed[1:]
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.upper()}"
