import logging
from typing import Any, Protocol

from pydantic import BaseModel, Field, model_validator

from resume_assistant.app.resume.document import get_experiences

log = logging.getLogger(__name__)

CLARIFICATION_THRESHOLD = 0.7


class ModificationIntent(BaseModel):
    """The structured interpretation of a free-text edit request.

    Ambiguity is not an error: an intent that cannot be acted on carries
    `requires_clarification=True`, a question, and suggested fields.
    """

    is_modification: bool = Field(
        ...,
        description="Whether the message asks to change the resume at all.",
    )
    operation: str = Field(
        default="replace",
        description="One of replace, prefix, suffix, append, insert, remove.",
    )
    field_path: str = Field(default="", description="The target field path; may be empty.")
    new_value: Any = Field(default=None, description="The value to write.")
    values: list[str] | None = Field(
        default=None,
        description="Multiple values for list operations, e.g. several skills.",
    )
    target_value: str | None = Field(
        default=None,
        description="The existing value a remove operation refers to.",
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    requires_clarification: bool = False
    clarification_question: str | None = None
    suggested_fields: list[str] | None = None
    warnings: list[str] | None = None
    should_skip: bool = False
    modifications: list["ModificationIntent"] | None = None

    @model_validator(mode="after")
    def check_clarification_confidence(self) -> "ModificationIntent":
        """Keep confidence below the clarification threshold when clarification is required."""
        if self.requires_clarification and self.confidence >= CLARIFICATION_THRESHOLD:
            _msg = (
                f"Clarification requested with confidence {self.confidence}; "
                f"lowering below {CLARIFICATION_THRESHOLD}"
            )
            log.debug(_msg)
            self.confidence = 0.6
        return self


class ParseContext(BaseModel):
    """Optional document context for parsing relative references and duplicates."""

    document: dict[str, Any] | None = None

    @property
    def experience_count(self) -> int:
        return len(get_experiences(self.document)) if self.document else 0

    def skills(self) -> list[str]:
        """Every skill already in the document, technical and soft."""
        if not self.document:
            return []
        skills = self.document.get("skills")
        if isinstance(skills, list):
            return [str(s) for s in skills]
        if not isinstance(skills, dict):
            return []
        found = []
        for group in skills.values():
            if isinstance(group, list):
                found.extend(str(s) for s in group)
        return found


class IntentParser(Protocol):
    """Anything that turns a chat message into a ModificationIntent."""

    def parse(
        self,
        message: str,
        context: ParseContext | None = None,
    ) -> ModificationIntent: ...
