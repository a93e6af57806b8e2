import logging
from typing import Any

from resume_assistant.app.resume.document import get_experiences, section_key

log = logging.getLogger(__name__)


def flatten_strings(value: Any) -> list[str]:
    """Collect every string leaf under `value`, depth first."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [str(value)]
    if isinstance(value, dict):
        found = []
        for item in value.values():
            found.extend(flatten_strings(item))
        return found
    if isinstance(value, list):
        found = []
        for item in value:
            found.extend(flatten_strings(item))
        return found
    return []


def skills_list(document: Any) -> list[str]:
    """All skills of a document, whether stored as a list or grouped in a dict."""
    if not isinstance(document, dict):
        return []
    return flatten_strings(document.get("skills"))


def role_text(role: Any) -> str:
    """The title, company, description and achievements of one experience entry."""
    return " ".join(flatten_strings(role))


def extract_section_text(document: Any, section: str) -> str:
    """Return the plain text of one section.

    Args:
        document (Any): The resume document.
        section (str): One of summary, skills, experience, education, or any top-level key.

    Returns:
        str: The section's string leaves joined by spaces; empty when absent.

    """
    if not isinstance(document, dict):
        return ""
    if section == "experience":
        return " ".join(role_text(role) for role in get_experiences(document))
    if section == "skills":
        return " ".join(skills_list(document))
    return " ".join(flatten_strings(document.get(section_key(document, section))))


def extract_resume_text(document: Any) -> str:
    """Return every string in the document as one text, contact details excluded."""
    if not isinstance(document, dict):
        return ""
    parts = []
    for key, value in document.items():
        if key == "contact":
            continue
        parts.extend(flatten_strings(value))
    return " ".join(parts)


def get_latest_role(document: Any) -> dict[str, Any] | None:
    """The first experience entry, which is the most recent by convention."""
    experiences = get_experiences(document)
    if experiences and isinstance(experiences[0], dict):
        return experiences[0]
    return None


def extract_job_titles(document: Any) -> list[str]:
    """Job titles of every experience entry, most recent first."""
    titles = []
    for role in get_experiences(document):
        if isinstance(role, dict):
            title = role.get("title") or role.get("position")
            if isinstance(title, str) and title.strip():
                titles.append(title.strip())
    return titles


def get_achievements(role: Any) -> list[str]:
    """Achievement bullets of an experience entry."""
    if not isinstance(role, dict):
        return []
    achievements = role.get("achievements") or role.get("highlights") or []
    if isinstance(achievements, str):
        return [achievements]
    return [a for a in achievements if isinstance(a, str)]


def has_required_sections(document: Any) -> dict[str, bool]:
    """Which of summary, skills, experience and education carry any content."""
    return {
        section: bool(extract_section_text(document, section).strip())
        for section in ("summary", "skills", "experience", "education")
    }
