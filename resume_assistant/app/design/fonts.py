import logging
from enum import Enum

from pydantic import BaseModel, Field

log = logging.getLogger(__name__)

DEFAULT_FONT_CSS = "Arial, sans-serif"


class FontCategory(str, Enum):
    SERIF = "serif"
    SANS_SERIF = "sans-serif"
    MONOSPACE = "monospace"


class FontMapping(BaseModel):
    """A professional font with its aliases and CSS fallbacks."""

    name: str
    aliases: list[str] = Field(default_factory=list)
    category: FontCategory
    ats_safe: bool = True
    professional: bool = True
    fallbacks: list[str] = Field(default_factory=list)


def _font(name, category, fallbacks, aliases=(), professional=True) -> FontMapping:
    return FontMapping(
        name=name,
        aliases=list(aliases),
        category=category,
        professional=professional,
        fallbacks=list(fallbacks),
    )


_SERIF = FontCategory.SERIF
_SANS = FontCategory.SANS_SERIF
_MONO = FontCategory.MONOSPACE

FONT_LIBRARY: dict[str, FontMapping] = {
    "times new roman": _font(
        "Times New Roman", _SERIF, ["Georgia", "serif"], ["times", "times new", "tnr"]
    ),
    "georgia": _font("Georgia", _SERIF, ["Times New Roman", "serif"]),
    "garamond": _font("Garamond", _SERIF, ["Georgia", "serif"]),
    "eb garamond": _font(
        "EB Garamond", _SERIF, ["Garamond", "Georgia", "serif"], ["eb-garamond"]
    ),
    "cambria": _font("Cambria", _SERIF, ["Georgia", "serif"]),
    "arial": _font("Arial", _SANS, ["Helvetica", "sans-serif"]),
    "helvetica": _font("Helvetica", _SANS, ["Arial", "sans-serif"], ["helvetica neue"]),
    "calibri": _font("Calibri", _SANS, ["Arial", "sans-serif"]),
    "verdana": _font("Verdana", _SANS, ["Arial", "sans-serif"]),
    "tahoma": _font("Tahoma", _SANS, ["Verdana", "Arial", "sans-serif"]),
    "trebuchet ms": _font("Trebuchet MS", _SANS, ["Arial", "sans-serif"], ["trebuchet"]),
    "roboto": _font("Roboto", _SANS, ["Arial", "sans-serif"]),
    "lato": _font("Lato", _SANS, ["Arial", "sans-serif"]),
    "open sans": _font("Open Sans", _SANS, ["Arial", "sans-serif"], ["opensans"]),
    "montserrat": _font("Montserrat", _SANS, ["Arial", "sans-serif"]),
    "poppins": _font("Poppins", _SANS, ["Arial", "sans-serif"]),
    "courier new": _font(
        "Courier New", _MONO, ["monospace"], ["courier"], professional=False
    ),
    "consolas": _font(
        "Consolas", _MONO, ["Courier New", "monospace"], professional=False
    ),
}


def validate_font(font_name: str | None) -> FontMapping | None:
    """Look up a font by name or alias, case-insensitively.

    Args:
        font_name (str | None): A user-provided font name.

    Returns:
        FontMapping | None: The library entry, or None for unknown fonts.

    """
    if not font_name:
        return None
    normalized = " ".join(font_name.strip().strip("'\"").lower().split())
    if normalized in FONT_LIBRARY:
        return FONT_LIBRARY[normalized]
    for mapping in FONT_LIBRARY.values():
        if normalized in mapping.aliases:
            return mapping
    return None


def normalize_font_name(font_name: str | None) -> str | None:
    """The properly capitalized font name, or None if the font is unknown."""
    mapping = validate_font(font_name)
    return mapping.name if mapping else None


def is_ats_safe(font_name: str | None) -> bool:
    mapping = validate_font(font_name)
    return mapping.ats_safe if mapping else False


def is_professional(font_name: str | None) -> bool:
    mapping = validate_font(font_name)
    return mapping.professional if mapping else False


def get_font_family_css(font_name: str | None) -> str:
    """Return a CSS font-family value with fallbacks; Arial for unknown fonts."""
    mapping = validate_font(font_name)
    if not mapping:
        return DEFAULT_FONT_CSS
    fonts = [mapping.name, *mapping.fallbacks]
    return ", ".join(f'"{f}"' if " " in f else f for f in fonts)


def get_available_fonts() -> list[str]:
    """Names of every professional font, sorted."""
    return sorted(m.name for m in FONT_LIBRARY.values() if m.professional)
