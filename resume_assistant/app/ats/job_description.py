import logging
import re

from resume_assistant.app.ats.config import MAX_MUST_HAVE_FALLBACK, STOPWORDS
from resume_assistant.app.ats.models import JobExtraction
from resume_assistant.app.ats.text_utils import content_tokens
from resume_assistant.app.chat.intent_parser import TECHNICAL_KEYWORDS

log = logging.getLogger(__name__)

_TITLE_PATTERNS = (
    re.compile(r"\b(?:position|role|title|job)[ \t]*:[ \t]*(\S[^\n]*)", re.IGNORECASE),
    re.compile(
        r"we are (?:looking for|hiring|seeking) (?:a|an)\s+([^\n.,]+)", re.IGNORECASE
    ),
)
_CAPITALIZED_LINE_RE = re.compile(r"^[A-Z][A-Za-z/&\- ]{2,60}$")

_NICE_TO_HAVE_HEADERS = (
    "preferred qualifications",
    "preferred skills",
    "nice to have",
    "nice-to-have",
    "bonus skills",
    "bonus points",
    "desirable",
    "plus",
)
_MUST_HAVE_HEADERS = (
    "required qualifications",
    "required skills",
    "must have",
    "must-have",
    "essential skills",
    "minimum qualifications",
    "qualifications",
    "requirements",
)
_RESPONSIBILITY_HEADERS = (
    "responsibilities",
    "duties",
    "what you will do",
    "what you'll do",
    "your role",
)
_MAX_HEADER_LENGTH = 60

_LIST_ITEM_RE = re.compile(r"^[\s•\-\*\d.)]+(.+)$")
_ACRONYM_RE = re.compile(r"\b[A-Z]{2,6}\b")
_CAPITALIZED_WORD_RE = re.compile(r"\b[A-Z][a-z]+(?:\.[a-z]+)?\b")

_SENIORITY_RULES = (
    ("executive", re.compile(r"\b(director|vp|vice president|chief|head of)\b")),
    ("senior", re.compile(r"\b(senior|sr\.?|lead|principal|staff)\b")),
    ("entry", re.compile(r"\b(entry[- ]level|junior|jr\.?|intern|associate)\b")),
)


def _header_group(line: str) -> str | None:
    """Return which list a header line opens, or None when the line is not a header."""
    stripped = line.strip().rstrip(":").strip().lower()
    if not stripped or len(stripped) > _MAX_HEADER_LENGTH or _LIST_ITEM_RE.match(line):
        return None
    # Nice-to-have first: "preferred qualifications" also contains "qualifications".
    for group, headers in (
        ("nice_to_have", _NICE_TO_HAVE_HEADERS),
        ("must_have", _MUST_HAVE_HEADERS),
        ("responsibilities", _RESPONSIBILITY_HEADERS),
    ):
        for header in headers:
            if re.search(rf"\b{re.escape(header)}\b", stripped):
                return group
    return None


def _extract_lists(text: str) -> dict[str, list[str]]:
    lists: dict[str, list[str]] = {
        "must_have": [],
        "nice_to_have": [],
        "responsibilities": [],
    }
    current = None
    for line in text.splitlines():
        if not line.strip():
            continue
        group = _header_group(line)
        if group:
            current = group
            continue
        match = _LIST_ITEM_RE.match(line)
        if match and current:
            item = match.group(1).strip()
            if 5 <= len(item) <= 300:
                lists[current].append(item)
        elif line.strip().endswith(":"):
            current = None
    return lists


def extract_title(text: str) -> str:
    """Find the advertised job title.

    Notes:
        1. Try an explicit "Position:"/"Role:"/"Title:" line.
        2. Try "we are looking for/hiring/seeking a ...".
        3. Use the first short capitalized line that is not a section header.

    """
    for pattern in _TITLE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip().rstrip(".")
    for line in text.splitlines():
        candidate = line.strip()
        if _CAPITALIZED_LINE_RE.match(candidate) and not _header_group(candidate):
            return candidate
    return ""


def detect_seniority(text: str) -> str:
    """Classify the posting as entry, mid, senior or executive."""
    lower = text.lower()
    for level, pattern in _SENIORITY_RULES:
        if pattern.search(lower):
            return level
    return "mid"


def extract_keywords(text: str) -> list[str]:
    """Pull likely skill keywords out of unstructured text.

    Technical terms come first, then acronyms, then capitalized words that
    are not stopwords. Order of first appearance is kept and duplicates are
    dropped case-insensitively.

    """
    found: list[str] = []
    seen: set[str] = set()

    def add(word: str) -> None:
        key = word.lower()
        if key in seen or key in STOPWORDS or len(key) < 2:
            return
        seen.add(key)
        found.append(word)

    lower_tokens = re.split(r"[\s,;:()]+", text.lower())
    for token in lower_tokens:
        token = token.strip(".")
        if token in TECHNICAL_KEYWORDS:
            add(token)
    for match in _ACRONYM_RE.findall(text):
        add(match)
    for match in _CAPITALIZED_WORD_RE.findall(text):
        add(match)
    return found


def extract_job(text: str | None) -> JobExtraction:
    """Extract the structured parts of a job description.

    Args:
        text (str | None): The raw job description.

    Returns:
        JobExtraction: Title, must-have and nice-to-have items, responsibilities and seniority.

    Notes:
        1. Bulleted or numbered lines below a recognized header are collected into that list.
        2. Items shorter than 5 or longer than 300 characters are ignored.
        3. When no must-have list is found, the first 20 extracted keywords are used instead.

    """
    if not text or not text.strip():
        return JobExtraction()

    lists = _extract_lists(text)
    must_have = lists["must_have"]
    if not must_have:
        must_have = extract_keywords(text)[:MAX_MUST_HAVE_FALLBACK]
        _msg = f"No requirements section found; using {len(must_have)} extracted keywords"
        log.debug(_msg)

    title = extract_title(text)
    return JobExtraction(
        title=title,
        must_have=must_have,
        nice_to_have=lists["nice_to_have"],
        responsibilities=lists["responsibilities"],
        seniority=detect_seniority(f"{title}\n{text}"),
    )


def job_keywords(job: JobExtraction) -> tuple[list[str], list[str]]:
    """Return (must-have, nice-to-have) keyword tokens, each deduplicated in order.

    A token that is a must-have is never repeated in the nice-to-have list.

    """
    must: list[str] = []
    for item in job.must_have:
        for token in content_tokens(item):
            if token not in must:
                must.append(token)
    nice: list[str] = []
    for item in job.nice_to_have:
        for token in content_tokens(item):
            if token not in must and token not in nice:
                nice.append(token)
    return must, nice
