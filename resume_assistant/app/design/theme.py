import logging

from pydantic import BaseModel, Field

from resume_assistant.app.design.colors import normalize_color
from resume_assistant.app.design.fonts import is_ats_safe, normalize_font_name

log = logging.getLogger(__name__)

DEFAULT_FONT = "Arial"
DEFAULT_COLOR = "#2563eb"
DEFAULT_LAYOUT = "single-column"
DEFAULT_SPACING = "normal"
DEFAULT_DENSITY = "comfortable"

LAYOUTS = ("single-column", "two-column", "sidebar")
SPACINGS = ("compact", "normal", "relaxed")
DENSITIES = ("compact", "comfortable", "spacious")


class Theme(BaseModel):
    """A canonical, fully populated theme."""

    font_family: str = DEFAULT_FONT
    color_hex: str = DEFAULT_COLOR
    layout: str = DEFAULT_LAYOUT
    spacing: str = DEFAULT_SPACING
    density: str = DEFAULT_DENSITY
    ats_safe: bool = True
    warnings: list[str] = Field(default_factory=list)


def _choice(
    value: str | None,
    allowed: tuple[str, ...],
    default: str,
    name: str,
    warnings: list[str],
) -> str:
    if not value:
        return default
    normalized = value.strip().lower().replace(" ", "-")
    if normalized in allowed:
        return normalized
    warnings.append(f"Unknown {name} '{value}'. Using {default}.")
    return default


def resolve_theme(
    font_family: str | None = None,
    color_hex: str | None = None,
    layout: str | None = None,
    spacing: str | None = None,
    density: str | None = None,
) -> Theme:
    """Normalize requested design options into a canonical Theme.

    Args:
        font_family (str | None): A font name or alias.
        color_hex (str | None): A hex value, with or without '#', or a color name.
        layout (str | None): single-column, two-column or sidebar.
        spacing (str | None): compact, normal or relaxed.
        density (str | None): compact, comfortable or spacious.

    Returns:
        Theme: Every field populated. Unknown values fall back to the default and
            add a warning; they are never guessed.

    Notes:
        1. Fonts are normalized through the font library.
        2. Colors are normalized through the color dictionary.
        3. `ats_safe` is false for a non-ATS-safe font or a multi-column layout.

    """
    warnings: list[str] = []

    font = DEFAULT_FONT
    if font_family:
        normalized_font = normalize_font_name(font_family)
        if normalized_font:
            font = normalized_font
        else:
            warnings.append(f'Font "{font_family}" is not recognized. Using {DEFAULT_FONT}.')

    color = DEFAULT_COLOR
    if color_hex:
        candidate = color_hex.strip()
        if len(candidate) in (3, 6) and all(c in "0123456789abcdefABCDEF" for c in candidate):
            candidate = f"#{candidate}"
        normalized_color = normalize_color(candidate)
        if normalized_color:
            color = normalized_color
        else:
            warnings.append(f"Color '{color_hex}' is not recognized. Using {DEFAULT_COLOR}.")

    resolved_layout = _choice(layout, LAYOUTS, DEFAULT_LAYOUT, "layout", warnings)
    theme = Theme(
        font_family=font,
        color_hex=color,
        layout=resolved_layout,
        spacing=_choice(spacing, SPACINGS, DEFAULT_SPACING, "spacing", warnings),
        density=_choice(density, DENSITIES, DEFAULT_DENSITY, "density", warnings),
        ats_safe=is_ats_safe(font) and resolved_layout == DEFAULT_LAYOUT,
        warnings=warnings,
    )
    for warning in warnings:
        log.warning(warning)
    return theme
