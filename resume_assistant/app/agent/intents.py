import logging
import re
from collections.abc import Awaitable, Callable
from enum import Enum

from pydantic import BaseModel

log = logging.getLogger(__name__)


class Intent(str, Enum):
    """High-level agent intents."""

    REWRITE = "rewrite"
    ADD_SKILLS = "add_skills"
    DESIGN = "design"
    LAYOUT = "layout"
    ATS_OPTIMIZE = "ats_optimize"
    EXPORT = "export"
    UNDO = "undo"
    REDO = "redo"
    COMPARE = "compare"
    SAVE_HISTORY = "save_history"


DEFAULT_INTENT = Intent.REWRITE
INTENT_LABELS = [intent.value for intent in Intent]


class IntentMetadata(BaseModel):
    label: str
    description: str
    source: str = "user"


INTENT_METADATA: dict[Intent, IntentMetadata] = {
    Intent.REWRITE: IntentMetadata(
        label="Rewrite resume",
        description="Rewrite or strengthen resume content for clarity and impact.",
    ),
    Intent.ADD_SKILLS: IntentMetadata(
        label="Add skills",
        description="Include additional skills or keywords in the resume.",
    ),
    Intent.DESIGN: IntentMetadata(
        label="Adjust design",
        description="Tweak visual design elements like fonts, colors, or styles.",
    ),
    Intent.LAYOUT: IntentMetadata(
        label="Modify layout",
        description="Change resume layout, spacing, or density preferences.",
    ),
    Intent.ATS_OPTIMIZE: IntentMetadata(
        label="ATS optimize",
        description="Optimize resume content for applicant tracking systems.",
    ),
    Intent.EXPORT: IntentMetadata(
        label="Export resume",
        description="Generate downloadable resume files.",
    ),
    Intent.UNDO: IntentMetadata(
        label="Undo change",
        description="Revert the most recent resume change.",
    ),
    Intent.REDO: IntentMetadata(
        label="Redo change",
        description="Reapply the most recently undone change.",
    ),
    Intent.COMPARE: IntentMetadata(
        label="Compare versions",
        description="Compare resume versions to review differences.",
    ),
    Intent.SAVE_HISTORY: IntentMetadata(
        label="Save history",
        description="Store the current resume progress in history.",
        source="automation",
    ),
}

# Tried in order; the first match wins.
INTENT_PATTERNS: list[tuple[Intent, re.Pattern]] = [
    (Intent.ADD_SKILLS, re.compile(r"(add|include)\s+skills?", re.IGNORECASE)),
    (Intent.REWRITE, re.compile(r"(rewrite|strengthen|improve)\b", re.IGNORECASE)),
    (Intent.DESIGN, re.compile(r"(font|color|theme|style)\b", re.IGNORECASE)),
    (Intent.LAYOUT, re.compile(r"layout|spacing|density", re.IGNORECASE)),
    (Intent.ATS_OPTIMIZE, re.compile(r"optimi[sz]e\b|ats", re.IGNORECASE)),
    (Intent.EXPORT, re.compile(r"export|download|pdf|docx", re.IGNORECASE)),
    (Intent.UNDO, re.compile(r"\bundo\b", re.IGNORECASE)),
    (Intent.REDO, re.compile(r"\bredo\b", re.IGNORECASE)),
    (Intent.COMPARE, re.compile(r"compare|diff", re.IGNORECASE)),
    (Intent.SAVE_HISTORY, re.compile(r"save(\s+to)?\s+history", re.IGNORECASE)),
]

IntentClassifier = Callable[[str, list[str]], Awaitable[str | None]]


def detect_intent_regex(command: str) -> Intent | None:
    """Return the first intent whose pattern matches `command`, or None."""
    for intent, pattern in INTENT_PATTERNS:
        if pattern.search(command or ""):
            return intent
    return None


async def detect_intent(
    command: str,
    classifier: IntentClassifier | None = None,
) -> Intent:
    """Classify an agent command.

    Args:
        command (str): The user's command.
        classifier (IntentClassifier | None): An optional async classifier, called
            with the command and the allowed labels when no pattern matches.

    Returns:
        Intent: The pattern match, else the classifier's label, else `rewrite`.

    Notes:
        1. A classifier that raises or answers with an unknown label is ignored.

    """
    intent = detect_intent_regex(command)
    if intent is not None:
        return intent

    if classifier is not None:
        try:
            label = await classifier(command, INTENT_LABELS)
        except Exception:
            _msg = "Intent classifier failed; using default intent"
            log.exception(_msg)
            label = None
        if label in INTENT_LABELS:
            return Intent(label)

    return DEFAULT_INTENT
