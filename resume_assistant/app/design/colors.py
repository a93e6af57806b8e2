import logging
import re
from enum import Enum

from pydantic import BaseModel

log = logging.getLogger(__name__)

NAMED_COLORS: dict[str, str] = {
    # Blues
    "blue": "#3b82f6",
    "light blue": "#bfdbfe",
    "dark blue": "#1e40af",
    "navy": "#1e3a8a",
    "dark navy": "#172554",
    "sky": "#0ea5e9",
    # Greens
    "green": "#10b981",
    "light green": "#86efac",
    "dark green": "#065f46",
    "emerald": "#10b981",
    "lime": "#84cc16",
    # Reds
    "red": "#ef4444",
    "light red": "#fca5a5",
    "dark red": "#991b1b",
    "rose": "#f43f5e",
    # Grays
    "gray": "#6b7280",
    "grey": "#6b7280",
    "light gray": "#d1d5db",
    "dark gray": "#374151",
    "slate": "#64748b",
    "black": "#000000",
    "white": "#ffffff",
    # Others
    "yellow": "#fbbf24",
    "purple": "#a855f7",
    "pink": "#ec4899",
    "orange": "#f97316",
    "teal": "#14b8a6",
    "indigo": "#6366f1",
    "brown": "#92400e",
}

_HEX6_RE = re.compile(r"^#[0-9a-f]{6}$", re.IGNORECASE)
_HEX3_RE = re.compile(r"^#([0-9a-f])([0-9a-f])([0-9a-f])$", re.IGNORECASE)

_COLOR_VALUE = r"(#[0-9a-f]{3,6}\b|[a-z]+(?:\s+[a-z]+)?)"
_VERB = r"(?:change|make|set|update)\s+(?:the\s+)?"
_REQUEST_PATTERNS = (
    ("background", re.compile(_VERB + r"background\s+(?:colou?r\s+)?(?:to\s+)?" + _COLOR_VALUE)),
    ("header", re.compile(_VERB + r"(?:headers?|headings?)\s+(?:colou?r\s+)?(?:to\s+)?" + _COLOR_VALUE)),
    ("text", re.compile(_VERB + r"(?:text|font)\s+colou?r\s+(?:to\s+)?" + _COLOR_VALUE)),
    ("primary", re.compile(_VERB + r"primary\s+colou?r\s+(?:to\s+)?" + _COLOR_VALUE)),
    ("accent", re.compile(_VERB + r"accent\s+colou?r\s+(?:to\s+)?" + _COLOR_VALUE)),
)  # fmt: skip


class ColorTarget(str, Enum):
    BACKGROUND = "background"
    HEADER = "header"
    TEXT = "text"
    PRIMARY = "primary"
    ACCENT = "accent"


class ColorRequest(BaseModel):
    """One requested color change, normalized to a hex value."""

    target: ColorTarget
    color: str
    original_color: str = ""


class WCAGResult(BaseModel):
    ratio: float
    passes: bool
    level: str
    size: str = "normal"


WCAG_THRESHOLDS = {
    ("AA", "normal"): 4.5,
    ("AA", "large"): 3.0,
    ("AAA", "normal"): 7.0,
    ("AAA", "large"): 4.5,
}


def validate_color(color: str | None) -> bool:
    """True for a six-digit hex color such as ``#1e3a8a``."""
    return bool(color) and bool(_HEX6_RE.match(color))


def normalize_color(color: str | None) -> str | None:
    """Turn a color name or hex code into a lower-case six-digit hex value.

    Args:
        color (str | None): A hex code (three or six digits) or a color name.

    Returns:
        str | None: The hex value, or None when the color is unknown.

    Notes:
        1. Six-digit hex codes are lower-cased; three-digit codes are expanded.
        2. Exact names are looked up in the dictionary.
        3. Otherwise the earliest dictionary name found as whole words wins, the longer
           one on a tie, so "dark navy blue" resolves to "dark navy".

    """
    if not color:
        return None
    trimmed = " ".join(color.strip().lower().split())
    if _HEX6_RE.match(trimmed):
        return trimmed
    short = _HEX3_RE.match(trimmed)
    if short:
        return "#" + "".join(c * 2 for c in short.groups())
    if trimmed in NAMED_COLORS:
        return NAMED_COLORS[trimmed]
    found = []
    for name in NAMED_COLORS:
        match = re.search(rf"\b{re.escape(name)}\b", trimmed)
        if match:
            found.append((match.start(), -len(name), name))
    if found:
        return NAMED_COLORS[min(found)[2]]
    _msg = f"Could not parse color: {color}"
    log.warning(_msg)
    return None


def get_color_name(hex_value: str) -> str:
    """The dictionary name of a hex value, or the hex value itself."""
    for name, value in NAMED_COLORS.items():
        if value.lower() == hex_value.lower():
            return name
    return hex_value


def parse_color_request(message: str) -> list[ColorRequest]:
    """Find color changes in a chat message.

    Args:
        message (str): e.g. "change background to navy and set text color to #333".

    Returns:
        list[ColorRequest]: One request per recognized target with a known color.
            Unknown colors are dropped, never guessed.

    """
    lower = message.lower()
    requests = []
    for target, pattern in _REQUEST_PATTERNS:
        match = pattern.search(lower)
        if not match:
            continue
        original = match.group(1).strip()
        color = normalize_color(original)
        if color is None:
            continue
        requests.append(
            ColorRequest(target=ColorTarget(target), color=color, original_color=original)
        )
    return requests


def _channel(value: int) -> float:
    srgb = value / 255
    return srgb / 12.92 if srgb <= 0.03928 else ((srgb + 0.055) / 1.055) ** 2.4


def relative_luminance(hex_value: str) -> float:
    """Relative luminance of a color, as defined by WCAG 2."""
    normalized = normalize_color(hex_value)
    if not normalized:
        raise ValueError(f"Invalid color: {hex_value}")
    r, g, b = (int(normalized[i : i + 2], 16) for i in (1, 3, 5))
    return 0.2126 * _channel(r) + 0.7152 * _channel(g) + 0.0722 * _channel(b)


def contrast_ratio(foreground: str, background: str) -> float:
    lighter, darker = sorted(
        (relative_luminance(foreground), relative_luminance(background)), reverse=True
    )
    return (lighter + 0.05) / (darker + 0.05)


def check_contrast(
    foreground: str,
    background: str,
    level: str = "AA",
    size: str = "normal",
) -> WCAGResult:
    """Check a foreground/background pair against a WCAG contrast level.

    Args:
        foreground (str): Text color.
        background (str): Background color.
        level (str): "AA" or "AAA".
        size (str): "normal" or "large" text.

    Returns:
        WCAGResult: The ratio rounded to two places and whether it passes.

    Raises:
        ValueError: If either color or the level/size pair is invalid.

    """
    key = (level.upper(), size.lower())
    if key not in WCAG_THRESHOLDS:
        raise ValueError(f"Unknown WCAG level/size: {level}/{size}")
    ratio = contrast_ratio(foreground, background)
    return WCAGResult(
        ratio=round(ratio, 2),
        passes=ratio >= WCAG_THRESHOLDS[key],
        level=key[0],
        size=key[1],
    )
