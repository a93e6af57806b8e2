import copy
import logging
from typing import Any

from resume_assistant.app.resume.field_path import (
    format_field_path,
    parse_field_path,
)

log = logging.getLogger(__name__)

EXPERIENCE_KEY = "experiences"

# Section names that older documents use for the same data.
SECTION_ALIASES = {
    "experiences": ("experience", "work_experience"),
    "certifications": ("certificates",),
    "projects": ("project",),
}


def default_document() -> dict[str, Any]:
    """Return the minimal empty resume document."""
    return {
        "summary": "",
        "contact": {"name": "", "email": "", "phone": "", "location": ""},
        "skills": {"technical": [], "soft": []},
        EXPERIENCE_KEY: [],
        "education": [],
    }


def ensure_document(document: Any) -> dict[str, Any]:
    """Return a copy of `document`, or the default document when it is empty or not a dict."""
    if isinstance(document, dict) and document:
        return copy.deepcopy(document)
    return default_document()


def section_key(document: Any, canonical: str) -> str:
    """Return the key `document` actually uses for a section.

    Args:
        document (Any): The resume document.
        canonical (str): The canonical section name, e.g. "experiences".

    Returns:
        str: `canonical` when present (or when no alias is present either), otherwise the
            first alias the document uses.

    """
    if not isinstance(document, dict) or canonical in document:
        return canonical
    for alias in SECTION_ALIASES.get(canonical, ()):
        if alias in document:
            return alias
    return canonical


def get_experiences(document: Any) -> list[Any]:
    """Return the experience list of a document, whichever key it lives under."""
    if not isinstance(document, dict):
        return []
    value = document.get(section_key(document, EXPERIENCE_KEY))
    return value if isinstance(value, list) else []


def resolve_section_alias(document: Any, path: str) -> str:
    """Rewrite the first segment of `path` to the section key `document` uses.

    A path such as ``experiences[0].title`` addresses ``experience[0].title``
    in a document that stores its roles under ``experience``. Paths whose
    first segment is not a known section are returned unchanged.

    """
    segments = parse_field_path(path)
    head = segments[0]
    if not isinstance(head, str) or head not in SECTION_ALIASES:
        return path
    actual = section_key(document, head)
    if actual == head:
        return path
    _msg = f"Resolved section alias '{head}' to '{actual}'"
    log.debug(_msg)
    return format_field_path([actual, *segments[1:]])
