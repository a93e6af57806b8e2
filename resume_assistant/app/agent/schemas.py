import logging
from typing import Any, Literal

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from resume_assistant.app.agent.intents import Intent
from resume_assistant.app.ats.models import ATSReport
from resume_assistant.app.resume.document import ensure_document

log = logging.getLogger(__name__)

DiffScope = Literal["section", "paragraph", "bullet", "style", "layout"]


class Action(BaseModel):
    """One entry of the run's action log."""

    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    rationale: str = ""


class Diff(BaseModel):
    """A human-readable change record."""

    scope: DiffScope = "paragraph"
    before: str = ""
    after: str = ""


class ExportFile(BaseModel):
    type: Literal["pdf", "docx", "json", "html"] = "html"
    path: str


class Artifacts(BaseModel):
    document: dict[str, Any] | None = None
    preview_artifact_path: str | None = None
    export_files: list[ExportFile] = Field(default_factory=list)


class JobInfo(BaseModel):
    title: str | None = None
    company: str | None = None
    url: str | None = None


class HistoryRecord(BaseModel):
    version_id: str
    timestamp: str
    score: int | None = None
    job: JobInfo | None = None
    history_id: str | None = None
    notes: str | None = None


class LanguageInfo(BaseModel):
    code: str = "en"
    direction: Literal["ltr", "rtl"] = "ltr"


class ProposedChange(BaseModel):
    id: str
    section: str
    text: str
    field: str | None = None
    rationale: str | None = None
    estimated_gain: int | None = None


class AgentResult(BaseModel):
    """The envelope returned by every orchestrator run."""

    intent: Intent
    actions: list[Action] = Field(default_factory=list)
    diffs: list[Diff] = Field(default_factory=list)
    artifacts: Artifacts = Field(default_factory=Artifacts)
    ats_report: ATSReport | None = None
    history_record: HistoryRecord | None = None
    ui_prompts: list[str] = Field(default_factory=list)
    proposed_changes: list[ProposedChange] | None = None
    language: LanguageInfo | None = None


_DIFFS_ADAPTER = TypeAdapter(list[Diff])


def fallback_diffs() -> list[Diff]:
    """The diff log used when a run produced none."""
    return [Diff(scope="paragraph", before="", after="No content changes were applied.")]


def safe_parse_diffs(value: Any) -> list[Diff]:
    """Validate a diff list, or return an empty list."""
    try:
        return _DIFFS_ADAPTER.validate_python(value)
    except PydanticValidationError:
        _msg = "Invalid diff list; substituting an empty list"
        log.warning(_msg)
        return []


def safe_parse_artifacts(value: Any) -> Artifacts:
    """Validate run artifacts, or return empty artifacts."""
    try:
        return Artifacts.model_validate(value)
    except PydanticValidationError:
        _msg = "Invalid artifacts; substituting empty artifacts"
        log.warning(_msg)
        return Artifacts()


def safe_parse_ats_report(value: Any) -> ATSReport:
    """Validate an ATS report, or return the zero-valued report."""
    if isinstance(value, ATSReport):
        return value
    try:
        return ATSReport.model_validate(value)
    except PydanticValidationError:
        _msg = "Invalid ATS report; substituting the zero-valued report"
        log.warning(_msg)
        return ATSReport()


def safe_parse_document(value: Any) -> dict[str, Any]:
    """Copy any non-empty dict as a document; anything else becomes the default document."""
    return ensure_document(value)


def safe_parse_agent_result(value: Any) -> AgentResult | None:
    """Validate a complete result envelope, or return None."""
    try:
        return AgentResult.model_validate(value)
    except PydanticValidationError:
        _msg = "Agent result failed validation"
        log.exception(_msg)
        return None
