import asyncio
import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from resume_assistant.app.agent.collaborators import (
    HistoryInfo,
    JobPosting,
    RenderResult,
    VersionInfo,
)
from resume_assistant.app.agent.intents import Intent
from resume_assistant.app.agent.orchestrator import (
    ASSEMBLE_PROMPT,
    ATS_FALLBACK_PROMPT,
    HISTORY_PROMPT,
    HISTORY_SAVE_PROMPT,
    JOB_FETCH_PROMPT,
    RENDER_FALLBACK_PROMPT,
    SUMMARY_SUFFIX,
    VERSION_PROMPT,
    AgentOrchestrator,
    DesignOptions,
    RunInput,
    build_llm_hooks,
)
from resume_assistant.app.agent.schemas import JobInfo, ProposedChange, fallback_diffs
from resume_assistant.app.ats.models import ATSReport, Suggestion, SuggestionCategory
from resume_assistant.app.core.config import Settings
from resume_assistant.app.llm.models import PlannedAction
from resume_assistant.app.resume.document import default_document

JOB_URL = "https://jobs.example.com/42"
CREATED_AT = "2025-01-01T00:00:00+00:00"
ORCHESTRATOR = "resume_assistant.app.agent.orchestrator"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(ARTIFACT_DIR=str(tmp_path))


def _short_timeout(tmp_path, name: str) -> Settings:
    """Settings where only the named collaborator timeout is very short."""
    return Settings(ARTIFACT_DIR=str(tmp_path), **{name: 0.05})


@pytest.fixture
def job_fetcher() -> MagicMock:
    fetcher = MagicMock()
    fetcher.fetch_job.return_value = JobPosting(
        title="Backend Engineer",
        company="Initech",
        text="Python SQL APIs",
        url=JOB_URL,
    )
    return fetcher


@pytest.fixture
def renderer() -> MagicMock:
    mock = MagicMock()
    mock.render.return_value = RenderResult(html="<html></html>", preview_artifact_path="/out/p.html")
    return mock


@pytest.fixture
def persistence() -> MagicMock:
    mock = MagicMock()
    mock.create_version.return_value = VersionInfo(version_id="7", created_at=CREATED_AT)
    mock.save_history.return_value = HistoryInfo(id="3", created_at=CREATED_AT)
    return mock


@pytest.fixture
def orchestrator(settings, job_fetcher, renderer, persistence) -> AgentOrchestrator:
    return AgentOrchestrator(
        settings=settings,
        job_fetcher=job_fetcher,
        renderer=renderer,
        persistence=persistence,
    )


def _tools(result) -> list[str]:
    return [action.tool for action in result.actions]


def _saved_entry(persistence: MagicMock):
    return persistence.save_history.call_args.args[0]


@pytest.mark.asyncio
async def test_run_applies_skills_and_summary(orchestrator, persistence, renderer, sample_document):
    """Test a full run that edits content, scores, renders and commits."""
    result = await orchestrator.run(
        RunInput(
            user_id="u1",
            command="add skills: Go, Rust; improve summary",
            document=sample_document,
        )
    )

    assert result.intent == Intent.ADD_SKILLS
    assert _tools(result) == [
        "ResumeWriter.applyDiff",
        "ResumeWriter.applyDiff",
        "ATS.score",
        "DesignOps.theme",
        "LayoutEngine.render",
        "Versioning.commit",
        "HistoryStore.save",
    ]

    document = result.artifacts.document
    assert document["skills"]["technical"] == ["Python", "SQL", "Go", "Rust"]
    assert document["summary"] == sample_document["summary"] + SUMMARY_SUFFIX
    assert sample_document["skills"]["technical"] == ["Python", "SQL"]

    assert [diff.scope for diff in result.diffs] == ["paragraph", "paragraph", "style"]
    assert result.diffs[0].after == "Added skills: Go, Rust"
    assert result.diffs[2].after == "font=Arial; color=#2563eb"

    assert result.artifacts.preview_artifact_path == "/out/p.html"
    assert result.artifacts.export_files[0].path == "/out/p.html"
    assert renderer.render.call_args.args[0]["skills"]["technical"][-1] == "Rust"

    assert result.history_record.version_id == "7"
    assert result.history_record.history_id == "3"
    assert result.history_record.timestamp == CREATED_AT
    assert result.ats_report is not None
    assert result.language.direction == "ltr"
    assert result.ui_prompts == []

    entry = _saved_entry(persistence)
    persistence.create_version.assert_called_once_with("u1", document)
    assert entry.user_id == "u1"
    assert entry.document_version_id == "7"
    assert entry.score == result.ats_report.score
    assert entry.artifacts == [{"type": "html", "path": "/out/p.html"}]
    assert len(entry.diffs) == 3
    assert entry.job is None


@pytest.mark.asyncio
async def test_run_without_document_uses_default(orchestrator):
    """Test that a missing document becomes the default empty document."""
    result = await orchestrator.run(RunInput(user_id="u1", command="export as pdf"))
    assert result.intent == Intent.EXPORT
    assert result.artifacts.document == default_document()
    assert result.ats_report.score == 0


@pytest.mark.asyncio
async def test_run_skills_on_flat_skill_list(orchestrator):
    """Test that a flat skill list is converted before merging."""
    result = await orchestrator.run(
        RunInput(user_id="u1", command="add skills: SQL Go", document={"skills": ["SQL"]})
    )
    assert result.artifacts.document["skills"] == {"technical": ["SQL", "Go"], "soft": []}


@pytest.mark.asyncio
async def test_run_skills_on_single_string_technical(orchestrator):
    """Test that a string technical skill is kept whole when merging."""
    result = await orchestrator.run(
        RunInput(
            user_id="u1",
            command="add skills: SQL Go",
            document={"skills": {"technical": "Python", "soft": []}},
        )
    )
    assert result.artifacts.document["skills"]["technical"] == ["Python", "SQL", "Go"]


@pytest.mark.asyncio
async def test_run_fetches_job_by_url(orchestrator, job_fetcher, persistence, sample_document):
    """Test that a job URL is fetched and recorded."""
    result = await orchestrator.run(
        RunInput(user_id="u1", command="tailor this", document=sample_document, job_url=JOB_URL)
    )

    job_fetcher.fetch_job.assert_called_once_with(JOB_URL)
    assert result.actions[0].tool == "JobLinkScraper.getJob"
    assert result.history_record.job == JobInfo(
        title="Backend Engineer", company="Initech", url=JOB_URL
    )
    score_action = next(a for a in result.actions if a.tool == "ATS.score")
    assert score_action.args == {"with_job": True}
    assert _saved_entry(persistence).job == {
        "title": "Backend Engineer",
        "company": "Initech",
        "url": JOB_URL,
    }


@pytest.mark.asyncio
async def test_run_prefers_pasted_job_text(orchestrator, job_fetcher, sample_document):
    """Test that pasted job text wins over the URL."""
    result = await orchestrator.run(
        RunInput(
            user_id="u1",
            command="tailor this",
            document=sample_document,
            job_url=JOB_URL,
            job_text="Python engineer",
        )
    )
    job_fetcher.fetch_job.assert_not_called()
    assert result.history_record.job is None


@pytest.mark.asyncio
async def test_run_job_fetch_failure(orchestrator, job_fetcher, sample_document):
    """Test that a failed fetch keeps the URL and tells the user."""
    job_fetcher.fetch_job.side_effect = httpx.ConnectError("refused")

    result = await orchestrator.run(
        RunInput(user_id="u1", command="tailor this", document=sample_document, job_url=JOB_URL)
    )

    assert JOB_FETCH_PROMPT in result.ui_prompts
    assert result.history_record.job == JobInfo(url=JOB_URL)
    assert result.artifacts.document == sample_document


@pytest.mark.asyncio
async def test_run_job_fetch_timeout(tmp_path, job_fetcher, renderer, persistence):
    """Test that a slow job fetch is abandoned."""
    job_fetcher.fetch_job.side_effect = lambda url: time.sleep(0.3)
    settings = _short_timeout(tmp_path, "JOB_FETCH_TIMEOUT_SECONDS")
    orchestrator = AgentOrchestrator(settings, job_fetcher, renderer, persistence)

    result = await orchestrator.run(RunInput(user_id="u1", command="tailor", job_url=JOB_URL))

    assert JOB_FETCH_PROMPT in result.ui_prompts
    assert result.history_record.version_id == "7"


@pytest.mark.asyncio
async def test_run_render_failure(orchestrator, renderer, persistence, settings, sample_document):
    """Test the fallback preview path."""
    renderer.render.side_effect = RuntimeError("no fonts")

    result = await orchestrator.run(
        RunInput(user_id="u1", command="export as pdf", document=sample_document)
    )

    fallback_path = str(Path(settings.artifact_dir) / "preview-fallback.html")
    assert result.artifacts.preview_artifact_path == fallback_path
    assert RENDER_FALLBACK_PROMPT in result.ui_prompts
    assert "LayoutEngine.render" in _tools(result)
    assert _saved_entry(persistence).artifacts == [{"type": "html", "path": fallback_path}]


@pytest.mark.asyncio
async def test_run_render_timeout(tmp_path, job_fetcher, renderer, persistence):
    renderer.render.side_effect = lambda document, theme: time.sleep(0.3)
    settings = _short_timeout(tmp_path, "RENDER_TIMEOUT_SECONDS")
    orchestrator = AgentOrchestrator(settings, job_fetcher, renderer, persistence)

    result = await orchestrator.run(RunInput(user_id="u1", command="export as pdf"))

    assert RENDER_FALLBACK_PROMPT in result.ui_prompts
    assert result.artifacts.preview_artifact_path.endswith("preview-fallback.html")


@pytest.mark.asyncio
async def test_run_version_failure(orchestrator, persistence, settings):
    """Test that a failed version write uses a temporary id and still saves history."""
    persistence.create_version.side_effect = RuntimeError("db down")

    result = await orchestrator.run(RunInput(user_id="u1", command="export as pdf"))

    version_id = result.history_record.version_id
    assert version_id.startswith(f"{settings.fallback_id_prefix}-")
    assert VERSION_PROMPT in result.ui_prompts
    assert HISTORY_SAVE_PROMPT not in result.ui_prompts
    assert _saved_entry(persistence).document_version_id == version_id


@pytest.mark.asyncio
async def test_run_history_failure(orchestrator, persistence):
    persistence.save_history.side_effect = RuntimeError("db down")

    result = await orchestrator.run(RunInput(user_id="u1", command="export as pdf"))

    assert result.history_record.version_id == "7"
    assert result.history_record.history_id.startswith("local-")
    assert HISTORY_SAVE_PROMPT in result.ui_prompts
    assert VERSION_PROMPT not in result.ui_prompts


@pytest.mark.asyncio
async def test_run_persistence_timeout(tmp_path, job_fetcher, renderer, persistence):
    """Test that slow storage is abandoned with temporary ids."""
    persistence.create_version.side_effect = lambda user_id, document: time.sleep(0.3)
    persistence.save_history.side_effect = lambda entry: time.sleep(0.3)
    settings = _short_timeout(tmp_path, "PERSISTENCE_TIMEOUT_SECONDS")
    orchestrator = AgentOrchestrator(settings, job_fetcher, renderer, persistence)

    result = await orchestrator.run(RunInput(user_id="u1", command="export as pdf"))

    assert VERSION_PROMPT in result.ui_prompts
    assert HISTORY_SAVE_PROMPT in result.ui_prompts
    assert result.history_record.history_id.startswith("local-")


@pytest.mark.asyncio
async def test_run_score_failure(orchestrator, sample_document):
    """Test that a scoring crash yields the zero-valued degraded report."""
    with patch(f"{ORCHESTRATOR}.score_resume", side_effect=RuntimeError("boom")):
        result = await orchestrator.run(
            RunInput(user_id="u1", command="optimize", document=sample_document, job_text="Python")
        )

    assert result.ats_report.degraded
    assert result.ats_report.score == 0
    assert ATS_FALLBACK_PROMPT in result.ui_prompts
    assert "ATS.score" in _tools(result)


@pytest.mark.asyncio
async def test_run_ats_optimize_proposes_changes(orchestrator, sample_document):
    """Test that suggestions become proposed changes for ATS optimization."""
    report = ATSReport(
        score=40,
        suggestions=[
            Suggestion(
                id="kw-1",
                category=SuggestionCategory.KEYWORDS,
                text="Add Kubernetes",
                estimated_gain=8,
            )
        ],
    )
    with patch(f"{ORCHESTRATOR}.score_resume", return_value=report):
        result = await orchestrator.run(
            RunInput(user_id="u1", command="optimize for this job", document=sample_document)
        )
        other = await orchestrator.run(
            RunInput(user_id="u1", command="export as pdf", document=sample_document)
        )

    assert result.intent == Intent.ATS_OPTIMIZE
    assert result.proposed_changes == [
        ProposedChange(id="kw-1", section="keywords", text="Add Kubernetes", estimated_gain=8)
    ]
    assert result.history_record.score == 40
    assert other.proposed_changes is None


@pytest.mark.asyncio
async def test_run_design_options(orchestrator, renderer):
    """Test that command signals and design options resolve the theme."""
    result = await orchestrator.run(
        RunInput(
            user_id="u1",
            command="change font Georgia and color #112233",
            design=DesignOptions(layout="two-column", spacing="roomy"),
        )
    )

    assert result.intent == Intent.DESIGN
    theme_action = next(a for a in result.actions if a.tool == "DesignOps.theme")
    assert theme_action.args["font_family"] == "Georgia"
    assert theme_action.args["color_hex"] == "#112233"
    assert theme_action.args["layout"] == "two-column"
    assert theme_action.args["ats_safe"] is False
    assert "warnings" not in theme_action.args
    assert "Unknown spacing 'roomy'. Using normal." in result.ui_prompts

    theme = renderer.render.call_args.args[1]
    assert theme.font_family == "Georgia"


@pytest.mark.asyncio
async def test_run_history_commands_prompt(orchestrator):
    result = await orchestrator.run(RunInput(user_id="u1", command="undo the last change"))
    assert result.intent == Intent.UNDO
    assert HISTORY_PROMPT in result.ui_prompts


@pytest.mark.asyncio
async def test_run_uses_classifier(settings, job_fetcher, renderer, persistence):
    """Test that the classifier decides an unmatched command."""
    classifier = AsyncMock(return_value="export")
    orchestrator = AgentOrchestrator(
        settings, job_fetcher, renderer, persistence, classifier=classifier
    )
    result = await orchestrator.run(RunInput(user_id="u1", command="make it pop"))
    assert result.intent == Intent.EXPORT


@pytest.mark.asyncio
async def test_run_slow_classifier_defaults(tmp_path, job_fetcher, renderer, persistence):
    """Test that a classifier exceeding its timeout is ignored."""

    async def slow_classifier(command, labels):
        await asyncio.sleep(1)
        return "design"

    orchestrator = AgentOrchestrator(
        _short_timeout(tmp_path, "LLM_TIMEOUT_SECONDS"),
        job_fetcher,
        renderer,
        persistence,
        classifier=slow_classifier,
    )
    result = await orchestrator.run(RunInput(user_id="u1", command="make it pop"))
    assert result.intent == Intent.REWRITE


@pytest.mark.asyncio
async def test_run_records_planned_actions(settings, job_fetcher, renderer, persistence, sample_document):
    """Test that planner actions are logged before rendering."""
    planner = AsyncMock(
        return_value=[PlannedAction(tool="ATS.explain", args={"focus": "keywords"}, rationale="Explain gaps")]
    )
    orchestrator = AgentOrchestrator(settings, job_fetcher, renderer, persistence, planner=planner)

    result = await orchestrator.run(
        RunInput(user_id="u1", command="export as pdf", document=sample_document)
    )

    planner.assert_awaited_once_with("export as pdf", sample_document["summary"], None)
    tools = _tools(result)
    assert tools.index("ATS.explain") == tools.index("LayoutEngine.render") - 1
    planned = result.actions[tools.index("ATS.explain")]
    assert planned.rationale == "LLM: Explain gaps"
    assert planned.args == {"focus": "keywords"}


@pytest.mark.asyncio
async def test_run_planner_failure_is_silent(settings, job_fetcher, renderer, persistence):
    planner = AsyncMock(side_effect=RuntimeError("llm down"))
    orchestrator = AgentOrchestrator(settings, job_fetcher, renderer, persistence, planner=planner)

    result = await orchestrator.run(RunInput(user_id="u1", command="export as pdf"))

    assert not any(action.rationale.startswith("LLM:") for action in result.actions)
    assert result.ui_prompts == []


@pytest.mark.asyncio
async def test_run_never_raises_when_assembly_fails(orchestrator, sample_document):
    """Test the minimal envelope returned when the result cannot be assembled."""
    with patch(f"{ORCHESTRATOR}.detect_language", side_effect=RuntimeError("boom")):
        result = await orchestrator.run(
            RunInput(user_id="u1", command="improve my summary", document=sample_document)
        )

    assert result.intent == Intent.REWRITE
    assert ASSEMBLE_PROMPT in result.ui_prompts
    assert result.diffs == fallback_diffs()
    assert result.artifacts.document["summary"].endswith(SUMMARY_SUFFIX)
    assert result.ats_report is None


@pytest.mark.asyncio
async def test_run_replaces_invalid_diffs_with_default_log(orchestrator, sample_document):
    """Test that a diff log failing validation is replaced in the envelope."""
    with patch(f"{ORCHESTRATOR}.safe_parse_diffs", return_value=[]) as mock_parse:
        result = await orchestrator.run(
            RunInput(user_id="u1", command="add skills: Go", document=sample_document)
        )

    assert mock_parse.call_args.args[0][0].after == "Added skills: Go"
    assert result.diffs == fallback_diffs()
    assert ASSEMBLE_PROMPT not in result.ui_prompts


def test_build_llm_hooks_disabled(settings):
    assert build_llm_hooks(settings) == (None, None)


@pytest.mark.asyncio
async def test_build_llm_hooks_enabled(tmp_path):
    """Test that the hooks call the LLM helpers with their clients."""
    settings = Settings(LLM_ENABLED=True, LLM_API_KEY="key", ARTIFACT_DIR=str(tmp_path))
    with (
        patch(f"{ORCHESTRATOR}.get_llm") as mock_get_llm,
        patch(f"{ORCHESTRATOR}.classify_intent_with_llm", new_callable=AsyncMock) as mock_classify,
        patch(f"{ORCHESTRATOR}.plan_actions_with_llm", new_callable=AsyncMock) as mock_plan,
    ):
        mock_classify.return_value = "design"
        mock_plan.return_value = []
        classifier, planner = build_llm_hooks(settings)

        assert await classifier("make it blue", ["design"]) == "design"
        assert await planner("tailor", "summary", None) == []

    assert mock_get_llm.call_count == 2
    mock_classify.assert_awaited_once_with("make it blue", ["design"], mock_get_llm.return_value)
    mock_plan.assert_awaited_once_with("tailor", "summary", None, llm=mock_get_llm.return_value)


def test_build_llm_hooks_client_failure(tmp_path):
    settings = Settings(LLM_ENABLED=True, ARTIFACT_DIR=str(tmp_path))
    with patch(f"{ORCHESTRATOR}.get_llm", side_effect=ValueError("no key")):
        assert build_llm_hooks(settings) == (None, None)
