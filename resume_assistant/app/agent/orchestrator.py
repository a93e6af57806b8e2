import asyncio
import copy
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from resume_assistant.app.agent.collaborators import (
    HistoryInfo,
    HttpJobFetcher,
    Jinja2Renderer,
    JobFetcher,
    Persistence,
    Renderer,
    RenderResult,
    SqlPersistence,
    VersionInfo,
)
from resume_assistant.app.agent.intents import DEFAULT_INTENT, Intent, IntentClassifier, detect_intent
from resume_assistant.app.agent.schemas import (
    Action,
    AgentResult,
    Artifacts,
    Diff,
    ExportFile,
    HistoryRecord,
    JobInfo,
    LanguageInfo,
    ProposedChange,
    fallback_diffs,
    safe_parse_agent_result,
    safe_parse_artifacts,
    safe_parse_ats_report,
    safe_parse_diffs,
    safe_parse_document,
)
from resume_assistant.app.agent.signals import CommandSignals, extract_signals
from resume_assistant.app.ats.languages import detect_language
from resume_assistant.app.ats.models import ATSReport
from resume_assistant.app.ats.resume_text import extract_resume_text
from resume_assistant.app.ats.scorer import fallback_report, score_resume
from resume_assistant.app.core.config import Settings, get_settings
from resume_assistant.app.database.database import get_session_local
from resume_assistant.app.design.theme import Theme, resolve_theme
from resume_assistant.app.llm.models import LLMConfig, PlannedAction
from resume_assistant.app.llm.orchestration import (
    CLASSIFIER_MODEL_NAME,
    classify_intent_with_llm,
    get_llm,
    plan_actions_with_llm,
)
from resume_assistant.app.models.history_entry import HistoryEntryData

log = logging.getLogger(__name__)

Planner = Callable[[str, str, str | None], Awaitable[list[PlannedAction]]]

ATS_FALLBACK_PROMPT = "ATS score used a safe fallback due to a transient issue."
RENDER_FALLBACK_PROMPT = "Preview PDF path is a fallback. You can retry to regenerate."
HISTORY_PROMPT = "Undo/Redo/Compare are available through the history timeline. History is saved."
JOB_FETCH_PROMPT = "The job posting could not be fetched. Paste the job description to score against it."
CONTENT_PROMPT = "Content changes could not be applied. Your resume was left unchanged."
VERSION_PROMPT = "Your version could not be saved to storage. A temporary version id was used."
HISTORY_SAVE_PROMPT = "This run could not be added to your history. A temporary history id was used."
ASSEMBLE_PROMPT = "Some results could not be prepared. Your resume was returned unchanged."

SUMMARY_SUFFIX = " Improved clarity and impact."
DEFAULT_SUMMARY = "Enhanced professional summary."
FALLBACK_PREVIEW_NAME = "preview-fallback.html"


class Step(str, Enum):
    """The stages of an agent run, in execution order."""

    DETECT_INTENT = "detect_intent"
    EXTRACT_SIGNALS = "extract_signals"
    ACQUIRE_JOB = "acquire_job"
    MUTATE_CONTENT = "mutate_content"
    SCORE = "score"
    RESOLVE_THEME = "resolve_theme"
    PLAN = "plan"
    RENDER = "render"
    COMMIT = "commit"
    ASSEMBLE = "assemble"


class DesignOptions(BaseModel):
    font_family: str | None = None
    color_hex: str | None = None
    layout: str | None = None
    spacing: str | None = None
    density: str | None = None


class RunInput(BaseModel):
    """One agent request."""

    user_id: str
    command: str
    document: dict[str, Any] | None = None
    job_url: str | None = None
    job_text: str | None = None
    design: DesignOptions = Field(default_factory=DesignOptions)


@dataclass
class RunState:
    """Everything a run has produced so far. Each step reads and extends it."""

    run_input: RunInput
    document: dict[str, Any]
    intent: Intent = DEFAULT_INTENT
    signals: CommandSignals = field(default_factory=CommandSignals)
    job_text: str | None = None
    job: JobInfo | None = None
    ats_report: ATSReport | None = None
    theme: Theme = field(default_factory=Theme)
    render: RenderResult | None = None
    version: VersionInfo | None = None
    history: HistoryInfo | None = None
    actions: list[Action] = field(default_factory=list)
    diffs: list[Diff] = field(default_factory=list)
    ui_prompts: list[str] = field(default_factory=list)
    degraded: list[Step] = field(default_factory=list)
    result: AgentResult | None = None

    def act(self, tool: str, args: dict[str, Any], rationale: str) -> None:
        self.actions.append(Action(tool=tool, args=args, rationale=rationale))

    def prompt(self, text: str) -> None:
        if text not in self.ui_prompts:
            self.ui_prompts.append(text)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_llm_hooks(settings: Settings) -> tuple[IntentClassifier | None, Planner | None]:
    """Create the LLM classifier and planner when LLM access is enabled.

    Returns:
        tuple[IntentClassifier | None, Planner | None]: Both None when the LLM is
            disabled or the client cannot be created.

    """
    if not settings.llm_enabled:
        return None, None
    config = LLMConfig.from_settings(settings)
    try:
        classifier_llm = get_llm(config, temperature=0, default_model=CLASSIFIER_MODEL_NAME)
        planner_llm = get_llm(config)
    except Exception:
        _msg = "Could not create LLM clients; continuing without them"
        log.exception(_msg)
        return None, None

    async def classifier(command: str, labels: list[str]) -> str | None:
        return await classify_intent_with_llm(command, labels, classifier_llm)

    return classifier, partial(plan_actions_with_llm, llm=planner_llm)


class AgentOrchestrator:
    """Run an agent command end to end.

    The run is a fixed sequence of steps. A step that raises or times out is
    replaced by its fallback, which records a safe default and, where the user
    should know, a ui prompt. `run` itself never raises.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        job_fetcher: JobFetcher | None = None,
        renderer: Renderer | None = None,
        persistence: Persistence | None = None,
        classifier: IntentClassifier | None = None,
        planner: Planner | None = None,
    ):
        self.settings = settings or get_settings()
        self.job_fetcher = job_fetcher or HttpJobFetcher(
            timeout=self.settings.job_fetch_timeout_seconds
        )
        self.renderer = renderer or Jinja2Renderer(self.settings.artifact_dir)
        self.persistence = persistence or SqlPersistence(get_session_local())
        self.classifier = classifier
        self.planner = planner

        self._steps: dict[Step, tuple[Callable, Callable]] = {
            Step.DETECT_INTENT: (self._detect_intent, self._detect_intent_fallback),
            Step.EXTRACT_SIGNALS: (self._extract_signals, self._extract_signals_fallback),
            Step.ACQUIRE_JOB: (self._acquire_job, self._acquire_job_fallback),
            Step.MUTATE_CONTENT: (self._mutate_content, self._mutate_content_fallback),
            Step.SCORE: (self._score, self._score_fallback),
            Step.RESOLVE_THEME: (self._resolve_theme, self._resolve_theme_fallback),
            Step.PLAN: (self._plan, self._plan_fallback),
            Step.RENDER: (self._render, self._render_fallback),
            Step.COMMIT: (self._commit, self._commit_fallback),
            Step.ASSEMBLE: (self._assemble, self._assemble_fallback),
        }

    async def _blocking(self, timeout: float, func: Callable, *args) -> Any:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)

    def _fallback_id(self) -> str:
        return f"{self.settings.fallback_id_prefix}-{uuid.uuid4()}"

    async def run(self, run_input: RunInput) -> AgentResult:
        """Execute every step for `run_input`.

        Args:
            run_input (RunInput): The user, command, document, job and design options.

        Returns:
            AgentResult: The validated result envelope. Degraded steps are reported
                through `ui_prompts`.

        Notes:
            1. Steps run sequentially; each receives the state the previous one produced.
            2. Any exception in a step, timeouts included, is logged and the step's
               fallback is applied instead.
            3. A fallback that itself fails is logged and skipped.

        """
        _msg = f"AgentOrchestrator.run starting for user {run_input.user_id}"
        log.debug(_msg)

        state = RunState(
            run_input=run_input,
            document=safe_parse_document(run_input.document),
        )
        for step in Step:
            handler, fallback = self._steps[step]
            try:
                state = await handler(state)
            except Exception:
                _msg = f"Agent step {step.value} failed; applying fallback"
                log.exception(_msg)
                state.degraded.append(step)
                try:
                    state = fallback(state)
                except Exception:
                    _msg = f"Fallback for step {step.value} failed"
                    log.exception(_msg)

        result = state.result or AgentResult(
            intent=state.intent,
            artifacts=Artifacts(document=state.document),
            ui_prompts=[*state.ui_prompts, ASSEMBLE_PROMPT],
        )
        _msg = f"AgentOrchestrator.run returning intent {result.intent.value}"
        log.debug(_msg)
        return result

    # Steps

    async def _detect_intent(self, state: RunState) -> RunState:
        classifier = self.classifier
        if classifier is not None:
            timeout = self.settings.llm_timeout_seconds

            async def classifier_with_timeout(command: str, labels: list[str]) -> str | None:
                return await asyncio.wait_for(self.classifier(command, labels), timeout)

            classifier = classifier_with_timeout
        state.intent = await detect_intent(state.run_input.command, classifier)
        return state

    def _detect_intent_fallback(self, state: RunState) -> RunState:
        state.intent = DEFAULT_INTENT
        return state

    async def _extract_signals(self, state: RunState) -> RunState:
        state.signals = extract_signals(state.run_input.command)
        return state

    def _extract_signals_fallback(self, state: RunState) -> RunState:
        state.signals = CommandSignals()
        return state

    async def _acquire_job(self, state: RunState) -> RunState:
        run_input = state.run_input
        state.job_text = run_input.job_text
        if run_input.job_text or not run_input.job_url:
            return state

        state.act("JobLinkScraper.getJob", {"job_url": run_input.job_url}, "Fetch job details")
        posting = await self._blocking(
            self.settings.job_fetch_timeout_seconds,
            self.job_fetcher.fetch_job,
            run_input.job_url,
        )
        state.job_text = posting.text or None
        state.job = JobInfo(title=posting.title, company=posting.company, url=posting.url)
        return state

    def _acquire_job_fallback(self, state: RunState) -> RunState:
        state.job_text = state.run_input.job_text
        if state.run_input.job_url:
            state.job = JobInfo(url=state.run_input.job_url)
        state.prompt(JOB_FETCH_PROMPT)
        return state

    async def _mutate_content(self, state: RunState) -> RunState:
        document = copy.deepcopy(state.document)
        diffs: list[Diff] = []
        actions: list[Action] = []

        skills = state.signals.skills
        if skills:
            if not isinstance(document.get("skills"), dict):
                existing = document.get("skills") if isinstance(document.get("skills"), list) else []
                document["skills"] = {"technical": list(existing), "soft": []}
            technical = document["skills"].get("technical") or []
            if not isinstance(technical, list):
                technical = [technical]
            merged = list(dict.fromkeys([*technical, *skills]))
            document["skills"]["technical"] = merged
            actions.append(
                Action(tool="ResumeWriter.applyDiff", args={"skills": skills}, rationale="Add extracted skills")
            )
            diffs.append(Diff(scope="paragraph", before="", after=f"Added skills: {', '.join(skills)}"))

        if state.signals.strengthen_summary:
            before = document.get("summary") if isinstance(document.get("summary"), str) else ""
            after = f"{before}{SUMMARY_SUFFIX}" if before else DEFAULT_SUMMARY
            document["summary"] = after
            actions.append(
                Action(tool="ResumeWriter.applyDiff", args={"summary": True}, rationale="Strengthen summary")
            )
            diffs.append(Diff(scope="paragraph", before=before, after=after))

        # Commit the edits only once every one of them succeeded.
        state.document = document
        state.actions.extend(actions)
        state.diffs.extend(diffs)
        return state

    def _mutate_content_fallback(self, state: RunState) -> RunState:
        state.prompt(CONTENT_PROMPT)
        return state

    async def _score(self, state: RunState) -> RunState:
        report = score_resume(state.document, state.job_text)
        state.ats_report = report
        state.act("ATS.score", {"with_job": bool(state.job_text)}, "Compute ATS score")
        if report.degraded:
            state.prompt(ATS_FALLBACK_PROMPT)
        return state

    def _score_fallback(self, state: RunState) -> RunState:
        state.ats_report = fallback_report()
        state.act("ATS.score", {"with_job": bool(state.job_text)}, "Compute ATS score")
        state.prompt(ATS_FALLBACK_PROMPT)
        return state

    async def _resolve_theme(self, state: RunState) -> RunState:
        design = state.run_input.design
        theme = resolve_theme(
            font_family=state.signals.font_family or design.font_family,
            color_hex=state.signals.color_hex or design.color_hex,
            layout=design.layout,
            spacing=design.spacing,
            density=design.density,
        )
        state.theme = theme
        state.act("DesignOps.theme", theme.model_dump(exclude={"warnings"}), "Apply requested theme")
        state.diffs.append(
            Diff(scope="style", before="", after=f"font={theme.font_family}; color={theme.color_hex}")
        )
        for warning in theme.warnings:
            state.prompt(warning)
        return state

    def _resolve_theme_fallback(self, state: RunState) -> RunState:
        state.theme = Theme()
        return state

    async def _plan(self, state: RunState) -> RunState:
        if self.planner is None:
            return state
        summary = state.document.get("summary")
        planned = await asyncio.wait_for(
            self.planner(
                state.run_input.command,
                summary if isinstance(summary, str) else "",
                state.job_text,
            ),
            self.settings.llm_timeout_seconds,
        )
        for action in planned:
            state.act(action.tool, action.args, f"LLM: {action.rationale}")
        return state

    def _plan_fallback(self, state: RunState) -> RunState:
        return state

    async def _render(self, state: RunState) -> RunState:
        state.render = await self._blocking(
            self.settings.render_timeout_seconds,
            self.renderer.render,
            state.document,
            state.theme,
        )
        state.act("LayoutEngine.render", {"layout": state.theme.layout}, "Render preview")
        return state

    def _render_fallback(self, state: RunState) -> RunState:
        path = Path(self.settings.artifact_dir) / FALLBACK_PREVIEW_NAME
        state.render = RenderResult(html="", preview_artifact_path=str(path))
        state.act("LayoutEngine.render", {"layout": state.theme.layout}, "Render preview")
        state.prompt(RENDER_FALLBACK_PROMPT)
        return state

    async def _commit(self, state: RunState) -> RunState:
        timeout = self.settings.persistence_timeout_seconds
        user_id = state.run_input.user_id

        try:
            state.version = await self._blocking(
                timeout, self.persistence.create_version, user_id, state.document
            )
        except Exception:
            _msg = "Versioning.commit failed; using a temporary version id"
            log.exception(_msg)
            state.version = VersionInfo(version_id=self._fallback_id(), created_at=_now())
            state.prompt(VERSION_PROMPT)
        state.act(
            "Versioning.commit", {"version_id": state.version.version_id}, "Create version"
        )

        preview_path = state.render.preview_artifact_path if state.render else None
        entry = HistoryEntryData(
            user_id=user_id,
            document_version_id=state.version.version_id,
            score=state.ats_report.score if state.ats_report else None,
            diffs=[diff.model_dump() for diff in state.diffs],
            job=state.job.model_dump(exclude_none=True) if state.job else None,
            artifacts=[{"type": "html", "path": preview_path}] if preview_path else [],
        )
        try:
            state.history = await self._blocking(timeout, self.persistence.save_history, entry)
        except Exception:
            _msg = "HistoryStore.save failed; using a temporary history id"
            log.exception(_msg)
            state.history = HistoryInfo(id=self._fallback_id(), created_at=_now())
            state.prompt(HISTORY_SAVE_PROMPT)
        state.act("HistoryStore.save", {"history_id": state.history.id}, "Record run")
        return state

    def _commit_fallback(self, state: RunState) -> RunState:
        if state.version is None:
            state.version = VersionInfo(version_id=self._fallback_id(), created_at=_now())
            state.prompt(VERSION_PROMPT)
        if state.history is None:
            state.history = HistoryInfo(id=self._fallback_id(), created_at=_now())
            state.prompt(HISTORY_SAVE_PROMPT)
        return state

    async def _assemble(self, state: RunState) -> RunState:
        if state.signals.history_request or state.intent in (
            Intent.UNDO,
            Intent.REDO,
            Intent.COMPARE,
        ):
            state.prompt(HISTORY_PROMPT)

        ats_report = safe_parse_ats_report(state.ats_report or fallback_report())
        preview_path = state.render.preview_artifact_path if state.render else None
        artifacts = safe_parse_artifacts(
            {
                "document": state.document,
                "preview_artifact_path": preview_path,
                "export_files": [ExportFile(type="html", path=preview_path)] if preview_path else [],
            }
        )

        history_record = None
        if state.version is not None:
            history_record = HistoryRecord(
                version_id=state.version.version_id,
                timestamp=state.version.created_at,
                score=ats_report.score,
                job=state.job,
                history_id=state.history.id if state.history else None,
            )

        proposed_changes = None
        if state.intent == Intent.ATS_OPTIMIZE and ats_report.suggestions:
            proposed_changes = [
                ProposedChange(
                    id=suggestion.id,
                    section=suggestion.category.value,
                    text=suggestion.text,
                    estimated_gain=suggestion.estimated_gain,
                )
                for suggestion in ats_report.suggestions
            ]

        detection = detect_language(extract_resume_text(state.document))
        result = AgentResult(
            intent=state.intent,
            actions=state.actions,
            diffs=safe_parse_diffs(state.diffs) or fallback_diffs(),
            artifacts=artifacts,
            ats_report=ats_report,
            history_record=history_record,
            ui_prompts=state.ui_prompts,
            proposed_changes=proposed_changes,
            language=LanguageInfo(
                code=detection.lang,
                direction="rtl" if detection.rtl else "ltr",
            ),
        )
        state.result = safe_parse_agent_result(result.model_dump()) or result
        return state

    def _assemble_fallback(self, state: RunState) -> RunState:
        state.prompt(ASSEMBLE_PROMPT)
        state.result = AgentResult(
            intent=state.intent,
            actions=state.actions,
            diffs=fallback_diffs(),
            artifacts=Artifacts(document=state.document),
            ui_prompts=state.ui_prompts,
        )
        return state
