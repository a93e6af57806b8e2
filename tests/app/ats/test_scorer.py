from datetime import date
from unittest.mock import patch

from resume_assistant.app.ats.models import AnalyzerResult, ATSReport, SubScoreKey, SubScores
from resume_assistant.app.ats.scorer import apply_penalties, combine_scores, score_resume

JOB_TEXT = """Position: Senior Backend Engineer

Responsibilities:
- Design reliable services

Requirements:
- Python and SQL experience
- Experience with PostgreSQL and Docker

Nice to have:
- Kubernetes experience
"""


def test_empty_job_text_scores_zero(sample_document):
    """Test that an empty job description yields an empty report."""
    report = score_resume(sample_document, "")
    assert report.score == 0
    assert report.missing_keywords == []
    assert report.recommendations == []
    assert report.subscores == SubScores()
    assert not report.degraded
    assert "en" in report.languages


def test_score_resume(sample_document):
    """Test a full scoring run."""
    report = score_resume(sample_document, JOB_TEXT, today=date(2025, 1, 1))
    assert isinstance(report, ATSReport)
    assert 0 <= report.score <= 100
    assert report.missing_keywords == ["postgresql", "docker", "kubernetes"]
    assert report.recommendations == [s.text for s in report.suggestions]
    assert len(report.suggestions) <= 10
    assert report.subscores.section_completeness == 100
    assert "docker" in report.languages["en"].gaps
    assert not report.degraded


def test_score_resume_non_dict_document():
    """Test that an unusable document is scored as empty."""
    report = score_resume(["not", "a", "document"], JOB_TEXT)
    assert report.subscores.section_completeness == 0
    assert not report.degraded


def test_score_resume_never_raises(sample_document):
    """Test the degraded fallback when scoring fails."""
    with patch("resume_assistant.app.ats.scorer._score", side_effect=RuntimeError("boom")):
        report = score_resume(sample_document, JOB_TEXT)
    assert report.degraded
    assert report.score == 0
    assert "en" in report.languages


def test_failed_analyzer_weight_is_redistributed(sample_document):
    """Test that one failing analyzer does not fail the report."""
    with patch(
        "resume_assistant.app.ats.scorer.analyze_title_alignment",
        side_effect=RuntimeError("boom"),
    ):
        report = score_resume(sample_document, JOB_TEXT)
    assert not report.degraded
    assert report.subscores.title_alignment == 0
    assert not any("title_alignment" in s.targets for s in report.suggestions)


def test_combine_scores_ignores_failed_analyzers():
    """Test weight redistribution."""
    results = {
        SubScoreKey.KEYWORD_EXACT: AnalyzerResult(score=80),
        SubScoreKey.KEYWORD_PHRASE: AnalyzerResult(score=0, confidence=0.0),
    }
    assert combine_scores(results) == 80
    assert combine_scores({}) == 0.0


def test_apply_penalties():
    """Test every penalty and clamping."""
    # no metrics (-5), title mismatch (-3), poor format (-10)
    assert apply_penalties(50, SubScores()) == 32
    stuffed = SubScores(
        metrics_presence=50,
        title_alignment=50,
        format_parseability=100,
        semantic_relevance=80,
        keyword_exact=40,
    )
    assert apply_penalties(50, stuffed) == 45
    assert apply_penalties(5, SubScores()) == 0
