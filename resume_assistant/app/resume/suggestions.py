import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from resume_assistant.app.ats.models import Suggestion, SuggestionCategory
from resume_assistant.app.resume.document import (
    EXPERIENCE_KEY,
    get_experiences,
    resolve_section_alias,
)
from resume_assistant.app.resume.field_path import get_value
from resume_assistant.app.resume.modification import (
    ModificationOperation,
    apply_modification,
    apply_modifications,
    validate_modification,
)

log = logging.getLogger(__name__)

_QUANTIFIED_RE = re.compile(r"\d|%|\$|#")
_QUOTED_RE = re.compile(r"'([^']+)'")


class SuggestionOutcome(BaseModel):
    """The result of applying one suggestion."""

    changed: bool
    description: str
    modifications: list[ModificationOperation] = Field(default_factory=list)


class ApplySuggestionsResult(BaseModel):
    """The result of applying a batch of suggestions."""

    document: dict[str, Any]
    changes_applied: int = 0
    change_log: list[str] = Field(default_factory=list)
    modifications: list[ModificationOperation] = Field(default_factory=list)


def _keywords_from_suggestion(suggestion: Suggestion) -> list[str]:
    if suggestion.keywords:
        candidates = suggestion.keywords
    else:
        candidates = _QUOTED_RE.findall(suggestion.text)
    seen = set()
    keywords = []
    for candidate in candidates:
        keyword = candidate.strip()
        if len(keyword) < 2 or keyword.lower() in seen:
            continue
        seen.add(keyword.lower())
        keywords.append(keyword)
    return keywords


def _apply_keywords(document: dict, suggestion: Suggestion) -> tuple[dict, SuggestionOutcome]:
    keywords = _keywords_from_suggestion(suggestion)
    if not keywords:
        return document, SuggestionOutcome(
            changed=False,
            description=f"No valid keywords found for: {suggestion.text[:50]}",
        )

    existing = get_value(document, "skills.technical")
    if not isinstance(existing, list):
        existing = []
    present = {str(skill).lower() for skill in existing}
    new_keywords = [k for k in keywords if k.lower() not in present]
    if not new_keywords:
        return document, SuggestionOutcome(
            changed=False,
            description=f"Keywords already present: {', '.join(keywords)}",
        )

    ops = [
        ModificationOperation(
            operation="append",
            field_path="skills.technical",
            new_value=keyword,
        )
        for keyword in new_keywords
    ]
    updated = apply_modifications(document, ops)
    return updated, SuggestionOutcome(
        changed=True,
        description=f"Added keywords: {', '.join(new_keywords)}",
        modifications=ops,
    )


def _apply_metric(document: dict, suggestion: Suggestion) -> tuple[dict, SuggestionOutcome]:
    metric = (suggestion.metric or "").strip()
    value = (suggestion.value or "").strip()
    if not metric or not value:
        return document, SuggestionOutcome(
            changed=False,
            description="Metric suggestions require a concrete metric and value",
        )

    experiences = get_experiences(document)
    if not experiences:
        return document, SuggestionOutcome(
            changed=False,
            description="No experience section to add metrics to",
        )

    achievements_path = resolve_section_alias(document, f"{EXPERIENCE_KEY}[0].achievements")
    achievements = get_value(document, achievements_path)
    if not isinstance(achievements, list):
        achievements = []

    op = None
    for index, achievement in enumerate(achievements):
        if isinstance(achievement, str) and not _QUANTIFIED_RE.search(achievement):
            op = ModificationOperation(
                operation="replace",
                field_path=f"{achievements_path}[{index}]",
                new_value=f"{achievement.rstrip(' .')}. Increased {metric} by {value}.",
            )
            break
    if op is None:
        op = ModificationOperation(
            operation="append",
            field_path=achievements_path,
            new_value=f"Increased {metric} by {value}.",
        )

    updated = apply_modification(document, op)
    return updated, SuggestionOutcome(
        changed=True,
        description=f"Added metric: {metric} by {value}",
        modifications=[op],
    )


def _apply_content(document: dict, suggestion: Suggestion) -> tuple[dict, SuggestionOutcome]:
    if not suggestion.amendments:
        return document, SuggestionOutcome(
            changed=False,
            description="Content suggestion has no concrete amendments",
        )
    ops = []
    updated = document
    for amendment in suggestion.amendments:
        op = ModificationOperation.model_validate(amendment)
        op.field_path = resolve_section_alias(updated, op.field_path)
        valid, error = validate_modification(updated, op)
        if not valid:
            return document, SuggestionOutcome(
                changed=False,
                description=f"Skipped content amendment: {error}",
            )
        updated = apply_modification(updated, op)
        ops.append(op)
    return updated, SuggestionOutcome(
        changed=True,
        description=f"Applied {len(ops)} content amendment(s)",
        modifications=ops,
    )


def apply_suggestion(document: dict, suggestion: Suggestion) -> tuple[dict, SuggestionOutcome]:
    """Apply one suggestion through the modification applier.

    Args:
        document (dict): The resume document. It is never mutated.
        suggestion (Suggestion): The suggestion to apply.

    Returns:
        tuple[dict, SuggestionOutcome]: The (possibly unchanged) document and what happened.

    Raises:
        ValueError: If an amendment is not a well-formed operation.

    Notes:
        1. keywords: append keywords missing from `skills.technical`, case-insensitively.
        2. metrics: only with a concrete metric and value; rewrite the first
           non-quantified achievement of the latest role, else append a new one.
        3. content: apply the attached amendments in order; nothing is applied
           when any of them fails validation.
        4. formatting and structure are left to the design system and skipped.

    """
    if suggestion.category == SuggestionCategory.KEYWORDS:
        return _apply_keywords(document, suggestion)
    if suggestion.category == SuggestionCategory.METRICS:
        return _apply_metric(document, suggestion)
    if suggestion.category == SuggestionCategory.CONTENT:
        return _apply_content(document, suggestion)
    return document, SuggestionOutcome(
        changed=False,
        description=f"Skipped {suggestion.category.value} suggestion (handled by design system)",
    )


def apply_suggestions(
    document: dict,
    suggestions: list[Suggestion],
) -> ApplySuggestionsResult:
    """Apply a batch of suggestions, skipping any that fail validation.

    Args:
        document (dict): The resume document. It is never mutated.
        suggestions (list[Suggestion]): The suggestions, applied in order.

    Returns:
        ApplySuggestionsResult: The new document, a change log, and every operation applied.

    """
    _msg = f"apply_suggestions starting with {len(suggestions)} suggestions"
    log.debug(_msg)

    result = ApplySuggestionsResult(document=document)
    current = document
    for position, suggestion in enumerate(suggestions, start=1):
        try:
            current, outcome = apply_suggestion(current, suggestion)
        except ValueError as e:
            _msg = f"Suggestion #{position} could not be applied: {e}"
            log.warning(_msg)
            continue
        if not outcome.changed:
            _msg = f"Suggestion #{position} skipped: {outcome.description}"
            log.debug(_msg)
            continue
        result.changes_applied += 1
        result.change_log.append(f"#{position}: {outcome.description}")
        result.modifications.extend(outcome.modifications)

    result.document = current
    _msg = "apply_suggestions returning"
    log.debug(_msg)
    return result
