import logging

from fastapi import APIRouter

from resume_assistant.app.api.routes.route_models import (
    ApplySuggestionsRequest,
    ATSScoreRequest,
)
from resume_assistant.app.ats.models import ATSReport
from resume_assistant.app.ats.scorer import score_resume
from resume_assistant.app.resume.suggestions import ApplySuggestionsResult, apply_suggestions

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ats", tags=["ats"])


@router.post("/score", response_model=ATSReport)
def score(request: ATSScoreRequest) -> ATSReport:
    """Score a resume against a job description. Scoring failures return the fallback report."""
    return score_resume(request.document, request.job_text, template_key=request.template_key)


@router.post("/apply-suggestions", response_model=ApplySuggestionsResult)
def apply_suggestions_route(request: ApplySuggestionsRequest) -> ApplySuggestionsResult:
    """Apply scoring suggestions to a resume without going through chat.

    Args:
        request (ApplySuggestionsRequest): The document and the suggestions to apply.

    Returns:
        ApplySuggestionsResult: The updated document, a change log and the operations applied.

    Notes:
        1. Suggestions that fail validation are skipped, not reported as errors.
        2. Formatting and structure suggestions are left unchanged.

    """
    _msg = f"apply_suggestions_route starting with {len(request.suggestions)} suggestions"
    log.debug(_msg)

    result = apply_suggestions(request.document, request.suggestions)

    _msg = f"apply_suggestions_route returning, {result.changes_applied} change(s) applied"
    log.debug(_msg)
    return result
