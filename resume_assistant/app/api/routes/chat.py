import logging

from fastapi import APIRouter, Depends, HTTPException

from resume_assistant.app.api.dependencies import get_intent_parser
from resume_assistant.app.api.routes.route_models import ChatAmendRequest
from resume_assistant.app.chat.amendment import AmendmentResult, amend_document
from resume_assistant.app.chat.models import IntentParser
from resume_assistant.app.resume.modification import ValidationError

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("/amend", response_model=AmendmentResult)
def amend_resume(
    request: ChatAmendRequest,
    parser: IntentParser = Depends(get_intent_parser),
) -> AmendmentResult:
    """
    Apply a chat message to a resume document.

    Args:
        request (ChatAmendRequest): The current document and the user's message.
        parser (IntentParser): The intent parser dependency.

    Returns:
        AmendmentResult: The amended document, the parsed intent and any warnings.

    Raises:
        HTTPException: 422 if the message is empty or the edit cannot be applied.

    Notes:
        1. Requests needing clarification return 200 with `clarification_question` set.
        2. The LLM parser, when enabled, makes a network request.

    """
    try:
        return amend_document(request.document, request.message, parser=parser)
    except ValidationError as e:
        _msg = f"Chat amendment rejected: {e}"
        log.warning(_msg)
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "field_path": e.field_path},
        ) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
