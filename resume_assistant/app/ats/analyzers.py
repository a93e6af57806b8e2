import logging
import re
from dataclasses import dataclass, field
from datetime import date
from difflib import SequenceMatcher
from typing import Any

from resume_assistant.app.ats import config
from resume_assistant.app.ats.job_description import job_keywords
from resume_assistant.app.ats.models import AnalyzerResult, FormatReport, JobExtraction
from resume_assistant.app.ats.resume_text import (
    extract_job_titles,
    extract_resume_text,
    extract_section_text,
    flatten_strings,
    get_achievements,
    get_latest_role,
    has_required_sections,
    role_text,
    skills_list,
)
from resume_assistant.app.ats.text_utils import (
    content_tokens,
    jaccard,
    lerp,
    ngrams,
    normalize_text,
    safe_divide,
    tfidf_similarities,
    tokenize,
)
from resume_assistant.app.design.fonts import is_ats_safe
from resume_assistant.app.resume.document import get_experiences

log = logging.getLogger(__name__)

_METRIC_RES = [re.compile(p, re.IGNORECASE) for p in config.METRIC_PATTERNS]
_YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")
_CURRENT_RE = re.compile(r"\b(present|current|now|today)\b", re.IGNORECASE)
_ODD_GLYPH_RE = re.compile(r"[\u2500-\u259f\ue000-\uf8ff\ufffd\U0001f300-\U0001faff]")
_BOX_DRAWING_RE = re.compile(r"[\u2500-\u257f]")
_TITLE_NOISE_RE = re.compile(
    r"\b(senior|sr|junior|jr|lead|principal|staff|entry|level|mid|associate|intern"
    r"|i|ii|iii|iv|v|\d+)\b"
)

_SENIORITY_LEVELS = (
    (6, re.compile(r"\b(director|vp|vice president|chief|head of|executive)\b")),
    (5, re.compile(r"\bprincipal\b")),
    (4, re.compile(r"\b(lead|staff)\b")),
    (3, re.compile(r"\b(senior|sr)\b")),
    (1, re.compile(r"\b(junior|jr|entry|intern|associate)\b")),
)
_JOB_SENIORITY_LEVELS = {"entry": 1, "mid": 2, "senior": 3, "executive": 6}


@dataclass
class ScoringContext:
    """Inputs shared by every analyzer, computed once per scoring run."""

    document: dict[str, Any]
    job_text: str
    job: JobExtraction
    format_report: FormatReport | None = None
    template_key: str | None = None
    today: date = field(default_factory=date.today)
    resume_text: str = ""
    must_have: list[str] = field(default_factory=list)
    nice_to_have: list[str] = field(default_factory=list)
    resume_tokens: set[str] = field(default_factory=set)

    def __post_init__(self):
        self.resume_text = extract_resume_text(self.document)
        self.must_have, self.nice_to_have = job_keywords(self.job)
        self.resume_tokens = set(tokenize(self.resume_text))


def count_metrics(text: str) -> int:
    """Number of quantified metrics (percentages, amounts, multipliers...) in `text`."""
    return sum(len(pattern.findall(text)) for pattern in _METRIC_RES)


def has_metric(text: str) -> bool:
    return any(pattern.search(text) for pattern in _METRIC_RES)


def analyze_keyword_exact(ctx: ScoringContext) -> AnalyzerResult:
    """Weighted share of job keywords found verbatim in the resume.

    Must-have keywords count twice as much as nice-to-have ones.
    """
    must_matched = [k for k in ctx.must_have if k in ctx.resume_tokens]
    must_missing = [k for k in ctx.must_have if k not in ctx.resume_tokens]
    nice_matched = [k for k in ctx.nice_to_have if k in ctx.resume_tokens]
    nice_missing = [k for k in ctx.nice_to_have if k not in ctx.resume_tokens]

    possible = (
        len(ctx.must_have) * config.MUST_HAVE_WEIGHT
        + len(ctx.nice_to_have) * config.NICE_TO_HAVE_WEIGHT
    )
    earned = (
        len(must_matched) * config.MUST_HAVE_WEIGHT
        + len(nice_matched) * config.NICE_TO_HAVE_WEIGHT
    )
    score = safe_divide(earned, possible, default=0.5) * 100
    return AnalyzerResult(
        score=score,
        evidence={
            "matched": must_matched + nice_matched,
            "missing": must_missing + nice_missing,
            "must_have_missing": must_missing,
            "nice_to_have_missing": nice_missing,
            "must_have_total": len(ctx.must_have),
        },
    )


def _job_phrases(ctx: ScoringContext) -> list[str]:
    phrases: list[str] = []
    for item in ctx.job.responsibilities + ctx.job.must_have:
        tokens = tokenize(item, min_length=2)
        for n in config.NGRAM_SIZES:
            for phrase in ngrams(tokens, n):
                if phrase in phrases:
                    continue
                if any(t not in config.STOPWORDS for t in phrase.split()):
                    phrases.append(phrase)
    return phrases


def analyze_keyword_phrase(ctx: ScoringContext) -> AnalyzerResult:
    """Share of multi-word job phrases mirrored in the resume.

    A phrase counts when it appears verbatim, or when a resume n-gram of the
    same length shares more than 70% of its words.
    """
    phrases = _job_phrases(ctx)
    if not phrases:
        return AnalyzerResult(score=50, evidence={"matched": [], "missing": []})

    resume_norm = normalize_text(ctx.resume_text)
    resume_tokens = tokenize(ctx.resume_text, min_length=2)
    resume_ngrams = {
        n: [set(g.split()) for g in ngrams(resume_tokens, n)] for n in config.NGRAM_SIZES
    }

    matched, missing = [], []
    for phrase in phrases:
        words = set(phrase.split())
        if phrase in resume_norm or any(
            jaccard(words, candidate) > config.PHRASE_SIMILARITY_THRESHOLD
            for candidate in resume_ngrams[len(phrase.split())]
        ):
            matched.append(phrase)
        else:
            missing.append(phrase)

    return AnalyzerResult(
        score=len(matched) / len(phrases) * 100,
        evidence={"matched": matched, "missing": missing[:10]},
    )


def analyze_semantic_relevance(ctx: ScoringContext, keyword_exact: float) -> AnalyzerResult:
    """Average of the best section-to-job TF-IDF cosine similarities.

    Args:
        ctx (ScoringContext): The scoring inputs.
        keyword_exact (float): The keyword_exact sub-score.

    Returns:
        AnalyzerResult: Failed (confidence 0, score 30) when the resume has no text sections.

    Notes:
        1. Sections are summary, skills, experience and the three most recent roles.
        2. Roles shorter than 30 characters are ignored.
        3. The five best similarities are averaged.
        4. The score is capped at 70 when keyword_exact is below 40, so wording
           alone cannot hide missing keywords.

    """
    sections = {}
    for name in ("summary", "skills", "experience"):
        text = extract_section_text(ctx.document, name)
        if text.strip():
            sections[name] = text
    for index, role in enumerate(get_experiences(ctx.document)[:3]):
        text = role_text(role)
        if len(text) > config.SEMANTIC_MIN_SECTION_LENGTH:
            sections[f"role_{index}"] = text

    if not sections:
        return AnalyzerResult(score=30, confidence=0.0, evidence={"sections": {}})

    similarities = dict(
        zip(sections, tfidf_similarities(ctx.job_text, list(sections.values())))
    )
    top = sorted(similarities.values(), reverse=True)[: config.SEMANTIC_TOP_SECTIONS]
    score = sum(top) / len(top) * 100
    if keyword_exact < config.SEMANTIC_KEYWORD_FLOOR:
        score = min(score, config.SEMANTIC_CAP)
    return AnalyzerResult(
        score=score,
        evidence={"sections": {k: round(v, 3) for k, v in similarities.items()}},
    )


def seniority_level(title: str) -> int:
    """Seniority rank of a title, from 1 (entry) to 6 (executive); 2 when unmarked."""
    lower = title.lower()
    for level, pattern in _SENIORITY_LEVELS:
        if pattern.search(lower):
            return level
    return 2


def normalize_title(title: str) -> str:
    """Lower-case a title and drop seniority words and level numbers."""
    stripped = _TITLE_NOISE_RE.sub(" ", title.lower().replace(".", " "))
    return " ".join(re.sub(r"[^\w\s]", " ", stripped).split())


def title_similarity(a: str, b: str) -> float:
    """Half edit similarity, half word overlap, of two normalized titles."""
    edit = SequenceMatcher(None, a, b).ratio()
    return edit * 0.5 + jaccard(set(a.split()), set(b.split())) * 0.5


def analyze_title_alignment(ctx: ScoringContext) -> AnalyzerResult:
    """How closely the resume's job titles match the advertised one.

    Notes:
        1. 50 without a target title, 20 when the resume lists no titles.
        2. Best similarity over all titles, +10 when the best match is the latest role.
        3. -15 when the latest title's seniority differs from the job's by more than a level.

    """
    target = ctx.job.title
    if not target:
        return AnalyzerResult(score=50, evidence={"reason": "no_target_title"})
    titles = extract_job_titles(ctx.document)
    if not titles:
        return AnalyzerResult(score=20, evidence={"target": target, "titles": []})

    normalized_target = normalize_title(target)
    scored = [
        (title_similarity(normalize_title(t), normalized_target), i)
        for i, t in enumerate(titles)
    ]
    best, best_index = max(scored, key=lambda pair: (pair[0], -pair[1]))
    score = best * 100
    if best_index == 0:
        score += 10

    job_level = seniority_level(target)
    if job_level == 2 and ctx.job.seniority:
        job_level = _JOB_SENIORITY_LEVELS.get(ctx.job.seniority, 2)
    resume_level = seniority_level(titles[0])
    seniority_match = abs(job_level - resume_level) <= 1
    if not seniority_match:
        score -= 15

    return AnalyzerResult(
        score=score,
        evidence={
            "target": target,
            "titles": titles,
            "best_match": titles[best_index],
            "seniority_match": seniority_match,
            "seniority": ctx.job.seniority,
        },
    )


def analyze_metrics_presence(ctx: ScoringContext) -> AnalyzerResult:
    """Quantified achievements, with a bonus for spreading them across roles."""
    experiences = get_experiences(ctx.document)
    role_counts = [count_metrics(role_text(role)) for role in experiences]
    total = sum(role_counts) if experiences else count_metrics(ctx.resume_text)
    unquantified = [
        a for role in experiences for a in get_achievements(role) if not has_metric(a)
    ]
    evidence = {
        "total_metrics": total,
        "roles_with_metrics": sum(1 for c in role_counts if c),
        "unquantified_achievements": len(unquantified),
        "latest_role_has_metrics": bool(role_counts and role_counts[0]),
    }
    if total == 0:
        return AnalyzerResult(score=0, evidence=evidence)

    target = max(len(experiences) * 2, 3)
    ratio = safe_divide(evidence["roles_with_metrics"], len(experiences))
    return AnalyzerResult(score=lerp(total, 0, target) + ratio * 20, evidence=evidence)


def analyze_section_completeness(ctx: ScoringContext) -> AnalyzerResult:
    """Presence of the four core sections plus small quality bonuses."""
    present = has_required_sections(ctx.document)
    missing = [section for section, ok in present.items() if not ok]
    score = sum(present.values()) / len(present) * 100

    summary_words = len(extract_section_text(ctx.document, "summary").split())
    skills_count = len(skills_list(ctx.document))
    experiences = get_experiences(ctx.document)
    roles_without_achievements = sum(1 for role in experiences if not get_achievements(role))
    education = ctx.document.get("education") if isinstance(ctx.document, dict) else None
    education = education if isinstance(education, list) else []
    education_complete = bool(education) and all(
        isinstance(e, dict) and e.get("degree") and e.get("institution") for e in education
    )

    if config.SUMMARY_MIN_WORDS <= summary_words <= config.SUMMARY_MAX_WORDS:
        score += 5
    if skills_count >= 5:
        score += 5
    if experiences and roles_without_achievements == 0:
        score += 5
    if education_complete:
        score += 5

    return AnalyzerResult(
        score=score,
        evidence={
            "missing_sections": missing,
            "summary_words": summary_words,
            "skills_count": skills_count,
            "roles_without_achievements": roles_without_achievements,
            "education_complete": education_complete,
        },
    )


def analyze_format(document: Any, template_key: str | None = None) -> FormatReport:
    """Look for layout features that ATS parsers handle poorly.

    Args:
        document (Any): The resume document, optionally with a `theme` or `layout` entry.
        template_key (str | None): The design template; ATS-safe templates score 100.

    Returns:
        FormatReport: The findings and a safety score from 100 minus penalties.

    """
    if template_key and any(h in template_key.lower() for h in config.ATS_SAFE_TEMPLATE_HINTS):
        return FormatReport()

    document = document if isinstance(document, dict) else {}
    theme = document.get("theme") if isinstance(document.get("theme"), dict) else {}
    contact = document.get("contact") if isinstance(document.get("contact"), dict) else {}
    strings = flatten_strings({k: v for k, v in document.items() if k != "theme"})
    layout = str(theme.get("layout") or document.get("layout") or "").lower()
    font = theme.get("font_family") or theme.get("font")

    report = FormatReport(
        has_tables=any(s.count("|") >= 2 or _BOX_DRAWING_RE.search(s) for s in strings),
        has_images=any(
            source.get(key)
            for source in (document, contact)
            for key in ("photo", "image", "images", "logo", "picture")
        ),
        has_headers_footers=bool(document.get("header") or document.get("footer")),
        has_nonstandard_fonts=bool(font) and not is_ats_safe(font),
        has_odd_glyphs=any(_ODD_GLYPH_RE.search(s) for s in strings),
        has_multi_column=layout in config.MULTI_COLUMN_LAYOUTS,
    )
    return apply_format_penalties(report)


def apply_format_penalties(report: FormatReport) -> FormatReport:
    """Recompute `format_safety_score` and `issues` from the report's flags."""
    findings = (
        ("multi_column", report.has_multi_column, "Multi-column layout detected - may cause parsing issues"),
        ("tables", report.has_tables, "Tables detected - ATS may not parse correctly"),
        ("images", report.has_images, "Images detected - will be ignored by ATS"),
        ("headers_footers", report.has_headers_footers, "Headers/footers detected - content may be lost"),
        ("nonstandard_fonts", report.has_nonstandard_fonts, "Non-standard fonts detected - may not render correctly"),
        ("odd_glyphs", report.has_odd_glyphs, "Unusual characters detected - may cause encoding issues"),
    )  # fmt: skip
    score = 100
    issues = []
    for key, flagged, issue in findings:
        if flagged:
            score -= config.FORMAT_PENALTIES[key]
            issues.append(issue)
    return report.model_copy(
        update={"format_safety_score": max(0, min(100, score)), "issues": issues}
    )


def analyze_format_parseability(ctx: ScoringContext) -> AnalyzerResult:
    if ctx.format_report is not None:
        report = apply_format_penalties(ctx.format_report)
    else:
        report = analyze_format(ctx.document, ctx.template_key)
    return AnalyzerResult(score=report.format_safety_score, evidence=report.model_dump())


def _years_ago(role: Any, index: int, today: date) -> int:
    end = ""
    if isinstance(role, dict):
        end = str(role.get("endDate") or role.get("end_date") or role.get("end") or "")
    if end and _CURRENT_RE.search(end):
        return 0
    year = _YEAR_RE.search(end)
    if year:
        return max(0, today.year - int(year.group(0)))
    return 0 if index == 0 else index * 2


def _decay(years: int) -> float:
    if years <= config.RECENCY_GRACE_YEARS:
        return 1.0
    reduction = (years - config.RECENCY_GRACE_YEARS) * config.RECENCY_DECAY_PER_YEAR
    return 1.0 - min(config.RECENCY_MAX_DECAY, reduction)


def analyze_recency_fit(ctx: ScoringContext) -> AnalyzerResult:
    """Relevance of the latest role to the must-have keywords, decayed by age.

    Notes:
        1. 50 when the resume has no experience.
        2. Relevance is the share of must-have keywords in the latest role, +10 at 60% or more.
        3. Each role loses 10% per year beyond three years old, at most 50%.
        4. The relevance is multiplied by the average decay over all roles.

    """
    experiences = get_experiences(ctx.document)
    latest = get_latest_role(ctx.document)
    if not experiences or latest is None:
        return AnalyzerResult(score=50, evidence={"reason": "no_experience"})

    latest_tokens = set(content_tokens(role_text(latest)))
    if ctx.must_have:
        ratio = sum(1 for k in ctx.must_have if k in latest_tokens) / len(ctx.must_have)
    else:
        ratio = 0.5
    relevance = ratio * 100 + (10 if ratio >= 0.6 else 0)

    decays = [_decay(_years_ago(role, i, ctx.today)) for i, role in enumerate(experiences)]
    average_decay = sum(decays) / len(decays)
    return AnalyzerResult(
        score=relevance * average_decay,
        evidence={
            "latest_role_relevance": round(ratio, 3),
            "average_decay": round(average_decay, 3),
        },
    )
