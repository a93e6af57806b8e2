import logging
import re

from pydantic import BaseModel, Field

log = logging.getLogger(__name__)

_SKILLS_RE = re.compile(r"add\s+skills?:\s*([^;\n]+)", re.IGNORECASE)
_SKILL_SPLIT_RE = re.compile(r",|\s+")
_FONT_RE = re.compile(r"font\s+([A-Za-z0-9 \-]+)", re.IGNORECASE)
# "font Georgia and color ..." names only Georgia.
_FONT_TAIL_RE = re.compile(r"\s+(?:and|with|color|colour)\b", re.IGNORECASE)
_COLOR_RE = re.compile(r"color\s+#?([0-9A-Fa-f]{6})", re.IGNORECASE)
_REWRITE_RE = re.compile(r"strengthen|rewrite|improve", re.IGNORECASE)
_HISTORY_RE = re.compile(r"\bundo\b|\bredo\b|compare", re.IGNORECASE)


class CommandSignals(BaseModel):
    """Additive requests found in an agent command, independent of its intent."""

    skills: list[str] = Field(default_factory=list)
    font_family: str | None = None
    color_hex: str | None = None
    strengthen_summary: bool = False
    history_request: bool = False


def extract_signals(command: str) -> CommandSignals:
    """Pull skills, a font, a color and rewrite/history requests out of a command.

    `add skills: a, b` lists skills separated by commas or spaces, up to a
    semicolon or line break. The color must be six hex digits.
    """
    command = command or ""
    signals = CommandSignals()

    skills_match = _SKILLS_RE.search(command)
    if skills_match:
        skills = [s.strip() for s in _SKILL_SPLIT_RE.split(skills_match.group(1))]
        signals.skills = [s for s in skills if s]

    font_match = _FONT_RE.search(command)
    if font_match:
        font = _FONT_TAIL_RE.split(font_match.group(1), maxsplit=1)[0]
        signals.font_family = font.strip() or None

    color_match = _COLOR_RE.search(command)
    if color_match:
        signals.color_hex = color_match.group(1)

    signals.strengthen_summary = _REWRITE_RE.search(command) is not None
    signals.history_request = _HISTORY_RE.search(command) is not None

    _msg = f"extract_signals found {len(signals.skills)} skills"
    log.debug(_msg)
    return signals
