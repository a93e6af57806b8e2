import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from resume_assistant.app.agent.collaborators import (
    HttpJobFetcher,
    Jinja2Renderer,
    SqlPersistence,
    parse_job_html,
    split_job_heading,
)
from resume_assistant.app.design.theme import Theme
from resume_assistant.app.history.store import OptimizationPatch
from resume_assistant.app.models.history_entry import HistoryEntryData

JOB_URL = "https://jobs.example.com/123"

JOB_HTML = """
<html>
<head>
  <meta property="og:title" content="Backend Engineer at Initech">
  <title>Ignored title</title>
  <script>var tracking = 1;</script>
</head>
<body>
  <div class="job-description"><p>Build APIs</p><p>Python required</p></div>
</body>
</html>
"""


@pytest.mark.parametrize(
    "heading, expected",
    [
        ("Acme hiring Data Engineer in Austin, TX | LinkedIn", ("Data Engineer", "Acme")),
        ("Backend Engineer at Initech", ("Backend Engineer", "Initech")),
        ("Globex: Platform Lead", ("Platform Lead", "Globex")),
        ("SRE - Umbrella", ("SRE", "Umbrella")),
        ("Engineer", ("Engineer", None)),
        ("", (None, None)),
    ],
)
def test_split_job_heading(heading, expected):
    """Test the recognized heading shapes."""
    assert split_job_heading(heading) == expected


def test_parse_job_html_uses_og_title_and_description():
    """Test heading and description extraction, with scripts removed."""
    posting = parse_job_html(JOB_HTML, JOB_URL)
    assert posting.title == "Backend Engineer"
    assert posting.company == "Initech"
    assert posting.text == "Build APIs\nPython required"
    assert posting.url == JOB_URL


def test_parse_job_html_json_ld():
    """Test that JSON-LD data fills in a missing title, company and description."""
    data = {
        "@type": "JobPosting",
        "title": "Data Analyst",
        "hiringOrganization": {"name": "Globex"},
        "description": "<p>Analyze data</p>",
    }
    html = (
        "<html><head><script type=\"application/ld+json\">"
        f"{json.dumps(data)}</script></head><body></body></html>"
    )
    posting = parse_job_html(html, JOB_URL)
    assert posting.title == "Data Analyst"
    assert posting.company == "Globex"
    assert posting.text == "Analyze data"


def test_parse_job_html_skips_invalid_json_ld():
    html = (
        "<html><head><title>Designer</title>"
        "<script type=\"application/ld+json\">{not json</script></head>"
        "<body><p>Design things</p></body></html>"
    )
    posting = parse_job_html(html, JOB_URL)
    assert posting.title == "Designer"
    assert posting.company is None
    assert posting.text == "Design things"


def test_http_job_fetcher_with_client():
    """Test fetching through an injected client."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=JOB_HTML)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        posting = HttpJobFetcher(client=client).fetch_job(JOB_URL)

    assert posting.title == "Backend Engineer"
    assert str(requests[0].url) == JOB_URL
    assert requests[0].headers["User-Agent"] == "resume-assistant/0.1"


def test_http_job_fetcher_error_status():
    """Test that an error status raises."""
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    with httpx.Client(transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            HttpJobFetcher(client=client).fetch_job(JOB_URL)


@patch("resume_assistant.app.agent.collaborators.httpx.Client")
def test_http_job_fetcher_default_client(mock_client_class: MagicMock):
    """Test that a short-lived client is created with the configured timeout."""
    response = MagicMock(text=JOB_HTML)
    mock_client_class.return_value.__enter__.return_value.get.return_value = response

    posting = HttpJobFetcher(timeout=3.0).fetch_job(JOB_URL)

    mock_client_class.assert_called_once_with(timeout=3.0)
    response.raise_for_status.assert_called_once()
    assert posting.company == "Initech"


def test_jinja2_renderer_writes_preview(tmp_path, sample_document):
    """Test that the preview is rendered and written to a new directory."""
    artifact_dir = tmp_path / "previews"
    renderer = Jinja2Renderer(artifact_dir)

    result = renderer.render(sample_document, Theme(font_family="Georgia", color_hex="#112233"))

    assert "Jane Doe" in result.html
    assert "Software Engineer, Acme" in result.html
    assert "<li>Reduced API latency by 40%</li>" in result.html
    assert "font-family: Georgia," in result.html
    assert "color: #112233" in result.html
    assert "layout-single-column" in result.html

    path = artifact_dir / result.preview_artifact_path.split("/")[-1]
    assert path.name.startswith("preview-")
    assert path.read_text(encoding="utf-8") == result.html


def test_jinja2_renderer_legacy_sections(tmp_path):
    """Test a document with a legacy experience key and a flat skill list."""
    document = {
        "contact": {"name": "Sam <Lee>"},
        "skills": ["Go", "Rust"],
        "experience": [{"title": "Dev"}],
    }
    html = Jinja2Renderer(tmp_path).render(document, Theme()).html
    assert "Sam &lt;Lee&gt;" in html
    assert "Go, Rust" in html
    assert "<h3>Dev</h3>" in html


def test_sql_persistence_versions(session_factory):
    """Test that versions are numbered per user and can be read back."""
    persistence = SqlPersistence(session_factory)

    first = persistence.create_version("u1", {"summary": "one"})
    second = persistence.create_version("u1", {"summary": "two"})
    other = persistence.create_version("u2", {"summary": "other"})

    assert first.version_id != second.version_id
    assert persistence.get_version(second.version_id) == {"summary": "two"}
    assert persistence.get_version(other.version_id) == {"summary": "other"}
    assert persistence.get_version("local-abc") is None
    assert persistence.get_version("999") is None


def test_sql_persistence_history(session_factory, history_store):
    """Test saving a history entry and patching its optimization fields."""
    persistence = SqlPersistence(session_factory, history_store)

    info = persistence.save_history(
        HistoryEntryData(user_id="u1", document_version_id="1", score=50)
    )
    persistence.update_optimization(info.id, OptimizationPatch(score=80, notes="tuned"))

    entry = history_store.get_entry(int(info.id))
    assert entry.score == 80
    assert entry.notes == "tuned"
    assert history_store.get_timeline("u1").current.id == entry.id
