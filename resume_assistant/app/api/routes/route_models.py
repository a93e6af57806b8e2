import logging
from typing import Any

from pydantic import BaseModel, Field

from resume_assistant.app.ats.models import Suggestion
from resume_assistant.app.history.store import HistoryEntrySnapshot

log = logging.getLogger(__name__)


# Request/Response models
class ChatAmendRequest(BaseModel):
    """Request model for a chat amendment.

    Attributes:
        document (dict[str, Any]): The current resume document.
        message (str): The user's chat message.

    """

    document: dict[str, Any] = Field(default_factory=dict)
    message: str


class ATSScoreRequest(BaseModel):
    """Request model for scoring a resume.

    Attributes:
        document (dict[str, Any]): The resume document.
        job_text (str | None): The job description.
        template_key (str | None): The design template, used for format checks.

    """

    document: dict[str, Any] = Field(default_factory=dict)
    job_text: str | None = None
    template_key: str | None = None


class ApplySuggestionsRequest(BaseModel):
    """Request model for applying scoring suggestions to a resume.

    Attributes:
        document (dict[str, Any]): The resume document.
        suggestions (list[Suggestion]): The suggestions to apply, in order.

    """

    document: dict[str, Any] = Field(default_factory=dict)
    suggestions: list[Suggestion] = Field(default_factory=list)


class DesignColorsRequest(BaseModel):
    """Request model for a color or font customization.

    Attributes:
        message (str): The user's request, e.g. "change background to navy".
        current_scheme (dict[str, str] | None): The current color scheme.
        current_fonts (dict[str, str] | None): The current header and body fonts.

    """

    message: str
    current_scheme: dict[str, str] | None = None
    current_fonts: dict[str, str] | None = None


class HistoryMoveRequest(BaseModel):
    """Request model for undo and redo.

    Attributes:
        expected_version (int | None): The timeline version the client last saw.

    """

    expected_version: int | None = None


class HistoryMoveResponse(BaseModel):
    """Response model for undo and redo.

    Attributes:
        entry (HistoryEntrySnapshot | None): The current entry after the move.
        document (dict[str, Any] | None): The document of that entry's version.
        version (int): The timeline version after the move.

    """

    entry: HistoryEntrySnapshot | None = None
    document: dict[str, Any] | None = None
    version: int = 0


class OptimizationPatchRequest(BaseModel):
    score: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None
