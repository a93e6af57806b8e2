import logging
from typing import Any

from pydantic import BaseModel, Field

from resume_assistant.app.core.config import Settings

log = logging.getLogger(__name__)


class LLMConfig(BaseModel):
    """Configuration for LLM client initialization."""

    llm_endpoint: str | None = None
    api_key: str | None = None
    llm_model_name: str | None = None
    timeout_seconds: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMConfig":
        """Build the client configuration from application settings."""
        return cls(
            llm_endpoint=settings.llm_endpoint,
            api_key=settings.llm_api_key,
            llm_model_name=settings.llm_model_name,
            timeout_seconds=settings.llm_timeout_seconds,
        )


class IntentClassification(BaseModel):
    """The high-level intent of an agent command, as classified by an LLM."""

    intent: str = Field(
        ...,
        description="Exactly one of the allowed intent labels.",
    )


class LLMModificationIntent(BaseModel):
    """A structured edit extracted from a chat message by an LLM."""

    is_modification: bool = Field(
        ...,
        description="True if the message asks to change the resume.",
    )
    operation: str = Field(
        default="replace",
        description="One of replace, prefix, suffix, append, insert, remove.",
    )
    field_path: str = Field(
        default="",
        description="Field path such as 'contact.email' or 'experiences[latest].title'. Empty if unclear.",
    )
    new_value: Any = Field(
        default=None,
        description="The exact value from the user's message. Never invent values.",
    )
    confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="How certain the interpretation is, from 0 to 1.",
    )
    clarification_question: str | None = Field(
        default=None,
        description="A question for the user when the request is ambiguous.",
    )


class PlannedAction(BaseModel):
    """A tool call the planner recommends, recorded in the action log only."""

    tool: str = Field(..., description="The tool name, e.g. 'ResumeWriter.applyDiff'.")
    args: dict[str, Any] = Field(default_factory=dict, description="Tool arguments.")
    rationale: str = Field(default="", description="One sentence explaining the action.")


class ActionPlan(BaseModel):
    """The planner's list of recommended actions."""

    actions: list[PlannedAction] = Field(
        default_factory=list,
        description="At most five recommended actions.",
    )
