import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from resume_assistant.app.ats import config
from resume_assistant.app.ats.models import (
    AnalyzerResult,
    SubScoreKey,
    Suggestion,
    SuggestionCategory,
)

log = logging.getLogger(__name__)

Evidence = dict[str, Any]


@dataclass(frozen=True)
class SuggestionTemplate:
    """One way to close a sub-score gap.

    `render` returns one or more (text, keywords) pairs, or nothing when the
    evidence does not support the suggestion.
    """

    category: SuggestionCategory
    base_gain: int
    quick_win: bool
    render: Callable[[Evidence, float], list[tuple[str, list[str]]]]


def _static(text: str, condition: Callable[[Evidence, float], bool] | None = None):
    def render(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
        if condition is None or condition(evidence, score):
            return [(text, [])]
        return []

    return render


def _exact_terms(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    return [
        (f"Add exact term '{kw}' to Skills section and latest role achievements", [kw])
        for kw in evidence.get("must_have_missing", [])[:3]
    ]


def _many_missing(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    missing = evidence.get("must_have_missing", [])
    if len(missing) < 3:
        return []
    shown = missing[:5]
    return [(f"Include {len(missing)} missing must-have keywords: {', '.join(shown)}", shown)]


def _nice_to_have(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    missing = evidence.get("nice_to_have_missing", [])[:5]
    if not missing:
        return []
    return [(f"Add nice-to-have skills to strengthen match: {', '.join(missing)}", missing)]


def _mirror_phrase(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    missing = evidence.get("missing", [])
    if not missing:
        return []
    return [(f"Mirror JD phrase '{missing[0]}' in your experience bullets", [])]


def _exact_phrases(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    missing = evidence.get("missing", [])
    if len(missing) < 2:
        return []
    return [(f"Use exact phrases from job responsibilities: {', '.join(missing[:3])}", [])]


def _target_title(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    target = evidence.get("target")
    if not target:
        return []
    return [(f"Include '{target}' in your professional summary or headline", [])]


def _seniority(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    if evidence.get("seniority_match", True):
        return []
    level = evidence.get("seniority") or "mid"
    return [(f"Adjust latest role title to match seniority level ({level})", [])]


def _quantify(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    count = evidence.get("unquantified_achievements", 0)
    if not count:
        return []
    return [(f"Quantify {count} achievements with percentages, dollar amounts, or numbers", [])]


def _missing_sections(evidence: Evidence, score: float) -> list[tuple[str, list[str]]]:
    return [(f"Add missing section: {s}", []) for s in evidence.get("missing_sections", [])]


def _summary_length(evidence: Evidence, score: float) -> bool:
    words = evidence.get("summary_words", 0)
    return 0 < words < config.SUMMARY_MIN_WORDS or words > config.SUMMARY_MAX_WORDS


_C = SuggestionCategory
TEMPLATES: dict[SubScoreKey, list[SuggestionTemplate]] = {
    SubScoreKey.KEYWORD_EXACT: [
        SuggestionTemplate(_C.KEYWORDS, 8, True, _exact_terms),
        SuggestionTemplate(_C.KEYWORDS, 12, False, _many_missing),
        SuggestionTemplate(_C.KEYWORDS, 5, True, _nice_to_have),
    ],
    SubScoreKey.KEYWORD_PHRASE: [
        SuggestionTemplate(_C.CONTENT, 6, True, _mirror_phrase),
        SuggestionTemplate(_C.CONTENT, 8, False, _exact_phrases),
    ],
    SubScoreKey.SEMANTIC_RELEVANCE: [
        SuggestionTemplate(_C.CONTENT, 7, False, _static("Expand summary to better describe relevant experience")),
        SuggestionTemplate(_C.CONTENT, 6, False, _static("Add context to achievements showing how skills were applied")),
    ],
    SubScoreKey.TITLE_ALIGNMENT: [
        SuggestionTemplate(_C.CONTENT, 8, True, _target_title),
        SuggestionTemplate(_C.CONTENT, 5, False, _seniority),
    ],
    SubScoreKey.METRICS_PRESENCE: [
        SuggestionTemplate(_C.METRICS, 10, False, _quantify),
        SuggestionTemplate(_C.METRICS, 7, True, _static(
            "Add metrics to latest role (e.g., '% improvement', '$ saved', '# users')",
            lambda e, s: not e.get("latest_role_has_metrics"),
        )),
        SuggestionTemplate(_C.METRICS, 4, True, _static(
            "Include timeframes showing speed of delivery (e.g., 'in 3 months')"
        )),
    ],
    SubScoreKey.SECTION_COMPLETENESS: [
        SuggestionTemplate(_C.STRUCTURE, 12, False, _missing_sections),
        SuggestionTemplate(_C.STRUCTURE, 5, True, _static(
            "Expand professional summary to 50-150 words", _summary_length
        )),
        SuggestionTemplate(_C.STRUCTURE, 6, False, _static(
            "Ensure all experience roles have achievement bullets",
            lambda e, s: e.get("roles_without_achievements", 0) > 0,
        )),
    ],
    SubScoreKey.FORMAT_PARSEABILITY: [
        SuggestionTemplate(_C.FORMATTING, 15, True, _static(
            "Switch to ATS-safe template (single column, no graphics)",
            lambda e, s: s < config.URGENT_THRESHOLD,
        )),
        SuggestionTemplate(_C.FORMATTING, 12, False, _static(
            "Remove tables and use simple text formatting instead",
            lambda e, s: e.get("has_tables", False),
        )),
        SuggestionTemplate(_C.FORMATTING, 8, True, _static(
            "Remove images, logos, and graphics - ATS cannot read them",
            lambda e, s: e.get("has_images", False),
        )),
        SuggestionTemplate(_C.FORMATTING, 10, False, _static(
            "Convert multi-column layout to single column",
            lambda e, s: e.get("has_multi_column", False),
        )),
    ],
    SubScoreKey.RECENCY_FIT: [
        SuggestionTemplate(_C.CONTENT, 6, True, _static("Move recent relevant projects to latest role")),
        SuggestionTemplate(_C.CONTENT, 5, False, _static("Highlight continuous skill development in recent roles")),
        SuggestionTemplate(_C.CONTENT, 4, True, _static("Add recent certifications or training to show current expertise")),
    ],
}  # fmt: skip


def estimate_impact(base_gain: int, score: float) -> int:
    """Scale a template's base gain by how far the sub-score is from 100.

    A sub-score of 40 keeps the base gain; lower scores raise it by up to 50%,
    higher scores lower it by up to 50%.
    """
    factor = min(1.5, max(0.5, (100 - score) / 60))
    return max(0, round(base_gain * factor))


def priority(score: float) -> str:
    if score < config.URGENT_THRESHOLD:
        return "urgent"
    if score < config.NORMAL_THRESHOLD:
        return "normal"
    return "optional"


_PRIORITY_ORDER = {"urgent": 0, "normal": 1, "optional": 2}


def generate_suggestions(results: dict[SubScoreKey, AnalyzerResult]) -> list[Suggestion]:
    """Turn sub-score gaps into ranked, deduplicated suggestions.

    Args:
        results (dict[SubScoreKey, AnalyzerResult]): Every analyzer's result.

    Returns:
        list[Suggestion]: At most 10 suggestions, quick wins first, then by gain.

    Notes:
        1. Sub-scores at 70 or above are skipped; the rest are ordered by urgency,
           then by weight.
        2. Templates whose evidence does not apply produce nothing.
        3. Suggestions gaining less than 3 points are dropped.
        4. Failed analyzers (confidence 0) produce no suggestions.

    """
    _msg = "generate_suggestions starting"
    log.debug(_msg)

    gaps = [
        (key, result)
        for key, result in results.items()
        if result.confidence > 0 and priority(result.score) != "optional"
    ]
    gaps.sort(
        key=lambda item: (
            _PRIORITY_ORDER[priority(item[1].score)],
            -config.SUB_SCORE_WEIGHTS[item[0]],
        )
    )

    suggestions: list[Suggestion] = []
    seen: set[str] = set()
    for key, result in gaps:
        for template in TEMPLATES.get(key, []):
            for text, keywords in template.render(result.evidence, result.score):
                gain = estimate_impact(template.base_gain, result.score)
                if gain < config.MIN_SUGGESTION_GAIN or text in seen:
                    continue
                seen.add(text)
                suggestions.append(
                    Suggestion(
                        id=f"{key.value}-{len(suggestions) + 1}",
                        category=template.category,
                        text=text,
                        estimated_gain=gain,
                        targets=[key.value],
                        quick_win=template.quick_win,
                        keywords=keywords,
                    )
                )

    ranked = sorted(suggestions, key=lambda s: (not s.quick_win, -s.estimated_gain))
    _msg = f"generate_suggestions returning {min(len(ranked), config.MAX_SUGGESTIONS)} suggestions"
    log.debug(_msg)
    return ranked[: config.MAX_SUGGESTIONS]
