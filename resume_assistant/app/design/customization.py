import logging
import re

from pydantic import BaseModel, Field

from resume_assistant.app.design.colors import (
    ColorRequest,
    ColorTarget,
    WCAGResult,
    check_contrast,
    parse_color_request,
)
from resume_assistant.app.design.fonts import is_professional, normalize_font_name

log = logging.getLogger(__name__)

DEFAULT_COLOR_SCHEME = {
    "primary": "#2563eb",
    "secondary": "#64748b",
    "accent": "#10b981",
    "background": "#ffffff",
    "text": "#1e293b",
}
DEFAULT_FONT_FAMILY = {"heading": "Arial", "body": "Arial"}

_FONT_REQUEST_RE = re.compile(
    r"(?:change|make|set|update)\s+(?:the\s+)?fonts?\s+(?!colou?r)(?:family\s+)?(?:to\s+)?"
    r"([a-z][a-z ]*?)\s*(?:$|[.,;]|\band\b)"
)


class CustomizationResult(BaseModel):
    """Outcome of a chat design request.

    `success` is False when nothing in the message could be applied; the
    returned scheme is then the unchanged input scheme.
    """

    success: bool
    message: str
    color_scheme: dict[str, str]
    font_family: dict[str, str]
    requests: list[ColorRequest] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    wcag: list[WCAGResult] = Field(default_factory=list)


def parse_font_request(message: str) -> str | None:
    """Return the font named in "change font to X", as the user wrote it."""
    match = _FONT_REQUEST_RE.search(message.lower())
    if not match:
        return None
    return match.group(1).strip() or None


def _apply_color(scheme: dict[str, str], request: ColorRequest) -> None:
    if request.target == ColorTarget.BACKGROUND:
        scheme["background"] = request.color
    elif request.target == ColorTarget.HEADER:
        scheme["primary"] = request.color
    elif request.target == ColorTarget.TEXT:
        scheme["text"] = request.color
    else:
        scheme["primary"] = request.color
        scheme["accent"] = request.color


def _contrast_warnings(scheme: dict[str, str]) -> tuple[list[WCAGResult], list[str]]:
    warnings = []
    text_on_bg = check_contrast(scheme["text"], scheme["background"], "AA", "normal")
    header_on_bg = check_contrast(scheme["primary"], scheme["background"], "AA", "large")
    if not text_on_bg.passes:
        warnings.append(
            f"Warning: Text color has insufficient contrast with background "
            f"({text_on_bg.ratio:.2f}:1, needs 4.5:1 for WCAG AA)."
        )
    if not header_on_bg.passes:
        warnings.append(
            f"Warning: Header color has insufficient contrast with background "
            f"({header_on_bg.ratio:.2f}:1, needs 3:1 for large text). Consider a darker shade."
        )
    if text_on_bg.passes and not check_contrast(
        scheme["text"], scheme["background"], "AAA", "normal"
    ).passes:
        warnings.append(
            f"Info: Your color scheme meets WCAG AA ({text_on_bg.ratio:.2f}:1) "
            "but not AAA (needs 7:1)."
        )
    return [text_on_bg, header_on_bg], warnings


def customize_colors(
    message: str,
    current_scheme: dict[str, str] | None = None,
    current_fonts: dict[str, str] | None = None,
) -> CustomizationResult:
    """Apply the color and font changes in a chat message to a design.

    Args:
        message (str): e.g. "change background to navy".
        current_scheme (dict[str, str] | None): The current colors; defaults fill gaps.
        current_fonts (dict[str, str] | None): The current heading and body fonts.

    Returns:
        CustomizationResult: The new scheme and fonts, with WCAG checks and warnings.

    Notes:
        1. Only colors found in the color dictionary or given as hex codes are applied.
        2. Unknown fonts are rejected with a warning; non-professional fonts are applied
           with a warning.
        3. Text on background is checked at AA normal size, header on background at
           AA large size; failing contrast is reported, not blocked.

    """
    _msg = "customize_colors starting"
    log.debug(_msg)

    scheme = {**DEFAULT_COLOR_SCHEME, **(current_scheme or {})}
    fonts = {**DEFAULT_FONT_FAMILY, **(current_fonts or {})}
    warnings: list[str] = []
    changes: list[str] = []

    requests = parse_color_request(message)
    for request in requests:
        _apply_color(scheme, request)
        changes.append(f"{request.target.value} color to {request.original_color}")

    font_request = parse_font_request(message)
    if font_request:
        font_name = normalize_font_name(font_request)
        if font_name is None:
            warnings.append(f'Font "{font_request}" is not recognized.')
        else:
            if not is_professional(font_name):
                warnings.append(f'Font "{font_name}" is not recommended for professional resumes.')
            fonts = {"heading": font_name, "body": font_name}
            changes.append(f"font to {font_name}")

    if not changes:
        return CustomizationResult(
            success=False,
            message="I could not find any color or font changes in your request.",
            color_scheme=scheme,
            font_family=fonts,
            warnings=warnings,
        )

    wcag, contrast_warnings = _contrast_warnings(scheme)
    warnings.extend(contrast_warnings)

    text = f"I have updated your resume design: {', '.join(changes)}."
    if warnings:
        text += "\n\n" + "\n".join(warnings)

    _msg = "customize_colors returning"
    log.debug(_msg)
    return CustomizationResult(
        success=True,
        message=text,
        color_scheme=scheme,
        font_family=fonts,
        requests=requests,
        warnings=warnings,
        wcag=wcag,
    )
