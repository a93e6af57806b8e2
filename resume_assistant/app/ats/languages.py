import logging
import re

from pydantic import BaseModel

from resume_assistant.app.ats.models import LanguageScore

log = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
RTL_LANGUAGE_CODES = frozenset({"ar", "he", "fa", "ur"})

_HEBREW_RE = re.compile(r"[\u0590-\u05ff]")
_ARABIC_RE = re.compile(r"[\u0600-\u06ff]")
_LATIN_RE = re.compile(r"^[a-z0-9\-+]+$")
_SPLIT_RE = re.compile(r"[^\w+\-]+|_+")

_LANGUAGE_RULES = (
    ("he", _HEBREW_RE),
    ("ar", _ARABIC_RE),
    ("fa", re.compile(r"[\u0750-\u077f\u08a0-\u08ff]")),
    ("ru", re.compile(r"[\u0400-\u04ff]")),
    ("es", re.compile(r"[áéíóúñüÁÉÍÓÚÑÜ]")),
    ("en", re.compile(r"[A-Za-z]")),
)
_LETTER_RE = re.compile(
    r"[A-Za-z\u00c0-\u024f\u0400-\u04ff\u0590-\u05ff\u0600-\u06ff\u0750-\u077f\u08a0-\u08ff]"
)


class LanguageDetection(BaseModel):
    lang: str
    confidence: float
    rtl: bool


def token_language(token: str) -> str:
    """Bucket a token by script: he, ar, en (Latin letters and digits) or other."""
    if _HEBREW_RE.search(token):
        return "he"
    if _ARABIC_RE.search(token):
        return "ar"
    if _LATIN_RE.match(token):
        return "en"
    return "other"


def language_tokens(text: str | None) -> list[str]:
    """Lower-case tokens of two or more characters.

    Text is split on anything that is not a letter, a digit, `+` or `-`.
    """
    if not text:
        return []
    return [t for t in _SPLIT_RE.split(text.lower()) if len(t.strip()) >= 2]


def bucketize(text: str | None) -> dict[str, set[str]]:
    """Group the distinct tokens of `text` by language bucket."""
    buckets: dict[str, set[str]] = {}
    for token in language_tokens(text):
        buckets.setdefault(token_language(token), set()).add(token)
    return buckets


def language_breakdown(resume_text: str, job_text: str) -> dict[str, LanguageScore]:
    """Per-language keyword overlap between a resume and a job description.

    Args:
        resume_text (str): The resume's plain text.
        job_text (str): The job description.

    Returns:
        dict[str, LanguageScore]: One entry for every bucket present on either side.
            The score is the share of job tokens found in the resume, 0 when the job
            has no tokens in that bucket; gaps are the job tokens the resume lacks.

    """
    resume_buckets = bucketize(resume_text)
    job_buckets = bucketize(job_text)
    breakdown = {}
    for lang in sorted(resume_buckets.keys() | job_buckets.keys()):
        resume_tokens = resume_buckets.get(lang, set())
        job_tokens = job_buckets.get(lang, set())
        overlap = job_tokens & resume_tokens
        breakdown[lang] = LanguageScore(
            score=round(len(overlap) / len(job_tokens), 4) if job_tokens else 0,
            resume=sorted(resume_tokens),
            job=sorted(job_tokens),
            gaps=sorted(job_tokens - resume_tokens),
        )
    return breakdown


def detect_language(text: str | None, default: str = DEFAULT_LANGUAGE) -> LanguageDetection:
    """Guess the primary language of `text` from the scripts it uses.

    Notes:
        1. Empty text returns the default language with confidence 0.
        2. Text without letters returns the default with confidence 0.2.
        3. Two close leading scripts (each at least 25%, within 20 points) return "mixed".
        4. Confidence grows with the share of the leading script, and is at most 0.6
           for fewer than six letters.

    """
    sanitized = (text or "").strip()
    default_rtl = default in RTL_LANGUAGE_CODES
    if not sanitized:
        return LanguageDetection(lang=default, confidence=0, rtl=default_rtl)

    total = len(_LETTER_RE.findall(sanitized))
    if not total:
        return LanguageDetection(lang=default, confidence=0.2, rtl=default_rtl)

    counts = {code: len(p.findall(sanitized)) for code, p in _LANGUAGE_RULES}
    ranked = sorted(
        ((code, n) for code, n in counts.items() if n), key=lambda x: x[1], reverse=True
    )
    if not ranked:
        return LanguageDetection(lang=default, confidence=0.25, rtl=default_rtl)

    primary_code, primary_count = ranked[0]
    primary_ratio = primary_count / total
    secondary_ratio = ranked[1][1] / total if len(ranked) > 1 else 0
    mixed = (
        len(ranked) > 1
        and secondary_ratio >= 0.25
        and abs(primary_ratio - secondary_ratio) <= 0.2
    )

    if mixed:
        lang = "mixed"
        rtl = any(code in RTL_LANGUAGE_CODES for code, _ in ranked[:2])
        confidence = max(0.4, min(0.65, (primary_ratio + secondary_ratio) / 1.5))
    else:
        lang = primary_code
        rtl = primary_code in RTL_LANGUAGE_CODES
        if primary_ratio >= 0.75:
            confidence = 0.92
        elif primary_ratio >= 0.55:
            confidence = 0.78
        elif primary_ratio >= 0.35:
            confidence = 0.62
        else:
            confidence = 0.45

    if total < 6:
        confidence = min(confidence, 0.6)
    return LanguageDetection(lang=lang, confidence=confidence, rtl=rtl)
