import logging
from datetime import date
from typing import Any

from resume_assistant.app.ats import config
from resume_assistant.app.ats.analyzers import (
    ScoringContext,
    analyze_format_parseability,
    analyze_keyword_exact,
    analyze_keyword_phrase,
    analyze_metrics_presence,
    analyze_recency_fit,
    analyze_section_completeness,
    analyze_semantic_relevance,
    analyze_title_alignment,
)
from resume_assistant.app.ats.job_description import extract_job
from resume_assistant.app.ats.languages import language_breakdown
from resume_assistant.app.ats.models import (
    AnalyzerResult,
    ATSReport,
    FormatReport,
    SubScoreKey,
    SubScores,
    clamp_score,
)
from resume_assistant.app.ats.resume_text import extract_resume_text
from resume_assistant.app.ats.suggestions import generate_suggestions

log = logging.getLogger(__name__)


def fallback_report() -> ATSReport:
    """The zero-valued report returned when scoring fails."""
    return ATSReport(degraded=True)


def _safe_languages(document: dict[str, Any], job_text: str) -> dict:
    try:
        return language_breakdown(extract_resume_text(document), job_text)
    except Exception:
        _msg = "Language breakdown failed"
        log.exception(_msg)
        return {}


def _run_analyzer(key: SubScoreKey, analyzer, *args) -> AnalyzerResult:
    try:
        return analyzer(*args)
    except Exception:
        _msg = f"Analyzer {key.value} failed; redistributing its weight"
        log.exception(_msg)
        return AnalyzerResult(score=0, confidence=0.0)


def run_analyzers(ctx: ScoringContext) -> dict[SubScoreKey, AnalyzerResult]:
    """Run all eight analyzers. A failing analyzer yields a zero-confidence result."""
    results = {
        SubScoreKey.KEYWORD_EXACT: _run_analyzer(
            SubScoreKey.KEYWORD_EXACT, analyze_keyword_exact, ctx
        ),
        SubScoreKey.KEYWORD_PHRASE: _run_analyzer(
            SubScoreKey.KEYWORD_PHRASE, analyze_keyword_phrase, ctx
        ),
    }
    results[SubScoreKey.SEMANTIC_RELEVANCE] = _run_analyzer(
        SubScoreKey.SEMANTIC_RELEVANCE,
        analyze_semantic_relevance,
        ctx,
        results[SubScoreKey.KEYWORD_EXACT].score,
    )
    for key, analyzer in (
        (SubScoreKey.TITLE_ALIGNMENT, analyze_title_alignment),
        (SubScoreKey.METRICS_PRESENCE, analyze_metrics_presence),
        (SubScoreKey.SECTION_COMPLETENESS, analyze_section_completeness),
        (SubScoreKey.FORMAT_PARSEABILITY, analyze_format_parseability),
        (SubScoreKey.RECENCY_FIT, analyze_recency_fit),
    ):
        results[key] = _run_analyzer(key, analyzer, ctx)
    return results


def combine_scores(results: dict[SubScoreKey, AnalyzerResult]) -> float:
    """Weighted average of the sub-scores, ignoring failed analyzers.

    The weight of every analyzer with zero confidence is redistributed over
    the others in proportion to their own weights.
    """
    active = {k: r for k, r in results.items() if r.confidence > 0}
    total_weight = sum(config.SUB_SCORE_WEIGHTS[k] for k in active)
    if not total_weight:
        return 0.0
    return sum(config.SUB_SCORE_WEIGHTS[k] * r.score for k, r in active.items()) / total_weight


def apply_penalties(score: float, subscores: SubScores) -> float:
    """Subtract penalties for missing metrics, title mismatch, poor format and keyword stuffing."""
    if subscores.metrics_presence < config.NO_METRICS_THRESHOLD:
        score -= config.NO_METRICS_PENALTY
    if subscores.title_alignment < config.TITLE_MISMATCH_THRESHOLD:
        score -= config.TITLE_MISMATCH_PENALTY
    if subscores.format_parseability < config.POOR_FORMAT_THRESHOLD:
        score -= config.POOR_FORMAT_PENALTY
    if subscores.semantic_relevance - subscores.keyword_exact > config.KEYWORD_STUFFING_GAP:
        score -= config.KEYWORD_STUFFING_PENALTY
    return clamp_score(score)


def _score(
    document: dict[str, Any],
    job_text: str,
    format_report: FormatReport | None,
    template_key: str | None,
    today: date | None,
) -> ATSReport:
    ctx = ScoringContext(
        document=document,
        job_text=job_text,
        job=extract_job(job_text),
        format_report=format_report,
        template_key=template_key,
        today=today or date.today(),
    )
    results = run_analyzers(ctx)
    subscores = SubScores(**{key.value: result.score for key, result in results.items()})
    overall = apply_penalties(combine_scores(results), subscores)

    suggestions = generate_suggestions(results)
    keyword_evidence = results[SubScoreKey.KEYWORD_EXACT].evidence
    return ATSReport(
        score=round(overall),
        subscores=subscores,
        missing_keywords=list(keyword_evidence.get("missing", [])),
        recommendations=[s.text for s in suggestions],
        suggestions=suggestions,
        languages=language_breakdown(ctx.resume_text, job_text),
    )


def score_resume(
    document: Any,
    job_text: str | None,
    format_report: FormatReport | None = None,
    template_key: str | None = None,
    today: date | None = None,
) -> ATSReport:
    """Score a resume against a job description.

    Args:
        document (Any): The resume document.
        job_text (str | None): The job description.
        format_report (FormatReport | None): Known layout findings; detected from the
            document when omitted.
        template_key (str | None): The design template, used by format detection.
        today (date | None): Reference date for recency; defaults to today.

    Returns:
        ATSReport: The overall score, sub-scores, missing keywords, recommendations
            and per-language breakdown.

    Notes:
        1. Empty job text scores 0 with empty keyword and recommendation lists; the
           language breakdown is still computed.
        2. Any exception on the primary path is logged and the zero-valued fallback
           report is returned with `degraded=True`. This function never raises.

    """
    _msg = "score_resume starting"
    log.debug(_msg)

    document = document if isinstance(document, dict) else {}
    if not job_text or not job_text.strip():
        return ATSReport(languages=_safe_languages(document, ""))

    try:
        report = _score(document, job_text, format_report, template_key, today)
    except Exception:
        _msg = "ATS scoring failed; returning fallback report"
        log.exception(_msg)
        report = fallback_report()
        report.languages = _safe_languages(document, job_text)
        return report

    _msg = f"score_resume returning {report.score}"
    log.debug(_msg)
    return report
