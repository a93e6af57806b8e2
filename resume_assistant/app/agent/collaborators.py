import json
import logging
import re
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

import httpx
from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from resume_assistant.app.design.fonts import get_font_family_css
from resume_assistant.app.design.theme import Theme
from resume_assistant.app.history.store import HistoryStore, OptimizationPatch
from resume_assistant.app.models.document_version import DocumentVersion, DocumentVersionData
from resume_assistant.app.models.history_entry import HistoryEntryData
from resume_assistant.app.resume.document import get_experiences

log = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
PREVIEW_TEMPLATE = "preview.html.j2"

_HIRING_RE = re.compile(r"^(.+?)\s+hiring\s+(.+?)(?:\s+in\s+.+)?$", re.IGNORECASE)
_AT_SPLIT_RE = re.compile(r"\s+at\s+", re.IGNORECASE)
_LINKEDIN_SUFFIX_RE = re.compile(r"\|\s*LinkedIn.*$", re.IGNORECASE)


class JobPosting(BaseModel):
    title: str | None = None
    company: str | None = None
    text: str = ""
    url: str


class RenderResult(BaseModel):
    html: str = ""
    preview_artifact_path: str | None = None


class VersionInfo(BaseModel):
    version_id: str
    created_at: str


class HistoryInfo(BaseModel):
    id: str
    created_at: str


class JobFetcher(Protocol):
    def fetch_job(self, url: str) -> JobPosting: ...


class Renderer(Protocol):
    def render(self, document: dict[str, Any], theme: Theme) -> RenderResult: ...


class Persistence(Protocol):
    def create_version(self, user_id: str, document: dict[str, Any]) -> VersionInfo: ...

    def save_history(self, entry: HistoryEntryData) -> HistoryInfo: ...

    def update_optimization(self, entry_id: str, patch: OptimizationPatch) -> None: ...


# Job fetching


def split_job_heading(heading: str) -> tuple[str | None, str | None]:
    """Split a page heading into (title, company).

    Recognizes "Company hiring Title in Place", "Title at Company",
    "Company: Title" and "Title - Company"; anything else is all title.
    """
    heading = _LINKEDIN_SUFFIX_RE.sub("", heading).strip()
    if not heading:
        return None, None

    hiring = _HIRING_RE.match(heading)
    if hiring:
        return hiring.group(2).strip(), hiring.group(1).strip()

    at_split = _AT_SPLIT_RE.split(heading)
    if len(at_split) == 2:
        return at_split[0].strip(), at_split[1].strip()

    colon_split = heading.split(":")
    if len(colon_split) == 2:
        return colon_split[1].strip(), colon_split[0].strip()

    dash_split = heading.split(" - ")
    if len(dash_split) == 2:
        return dash_split[0].strip(), dash_split[1].strip()

    return heading, None


def _json_ld_posting(soup: BeautifulSoup) -> dict[str, Any]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if isinstance(candidate, dict) and candidate.get("@type") == "JobPosting":
                return candidate
    return {}


def parse_job_html(html: str, url: str) -> JobPosting:
    """Extract a job posting from an HTML page.

    Args:
        html (str): The page source.
        url (str): The page URL, kept on the result.

    Returns:
        JobPosting: Title and company from the page heading or JSON-LD data, and the
            visible text of the description (or the whole body).

    Notes:
        1. The heading comes from the `og:title` meta tag, else the `<title>` tag.
        2. JSON-LD `JobPosting` data fills in a missing title or company.
        3. Scripts and styles are dropped before the text is collected.

    """
    soup = BeautifulSoup(html, "html.parser")

    meta = soup.find("meta", attrs={"property": "og:title"}) or soup.find(
        "meta", attrs={"name": "og:title"}
    )
    heading = meta.get("content", "") if meta else ""
    if not heading and soup.title and soup.title.string:
        heading = soup.title.string
    title, company = split_job_heading(heading)

    posting = _json_ld_posting(soup)
    title = title or posting.get("title")
    organization = posting.get("hiringOrganization")
    if not company and isinstance(organization, dict):
        company = organization.get("name")

    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    container = soup.find(class_=re.compile(r"show-more-less-html|description")) or soup.body or soup
    text = container.get_text("\n", strip=True)
    if not text and isinstance(posting.get("description"), str):
        text = BeautifulSoup(posting["description"], "html.parser").get_text("\n", strip=True)

    return JobPosting(title=title, company=company, text=text, url=url)


class HttpJobFetcher:
    """Fetch job postings over HTTP with httpx."""

    def __init__(self, timeout: float = 10.0, client: httpx.Client | None = None):
        self.timeout = timeout
        self._client = client

    def fetch_job(self, url: str) -> JobPosting:
        """Download and parse a job posting.

        Raises:
            httpx.HTTPError: If the request fails or returns an error status.

        Network access:
            - This method makes a GET request to `url`.

        """
        _msg = f"fetch_job starting for {url}"
        log.debug(_msg)

        headers = {"User-Agent": "resume-assistant/0.1"}
        if self._client is not None:
            response = self._client.get(url, headers=headers, follow_redirects=True)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(url, headers=headers, follow_redirects=True)
        response.raise_for_status()

        posting = parse_job_html(response.text, url)
        _msg = f"fetch_job returning '{posting.title}'"
        log.debug(_msg)
        return posting


# Rendering


def _build_environment(templates_dir: Path) -> Environment:
    env = Environment(loader=FileSystemLoader(str(templates_dir)), autoescape=True)
    env.filters["font_css"] = get_font_family_css
    return env


class Jinja2Renderer:
    """Render an HTML preview of a document and write it to the artifact directory."""

    def __init__(self, artifact_dir: str | Path, templates_dir: Path = TEMPLATES_DIR):
        self.artifact_dir = Path(artifact_dir)
        self.env = _build_environment(templates_dir)

    def render(self, document: dict[str, Any], theme: Theme) -> RenderResult:
        """Render `document` with `theme`.

        Returns:
            RenderResult: The HTML and the path of the written preview file.

        Notes:
            1. Creates the artifact directory when it does not exist.
            2. This method writes one file to disk.

        """
        template = self.env.get_template(PREVIEW_TEMPLATE)
        html = template.render(
            document=document,
            experiences=get_experiences(document),
            theme=theme,
        )

        self.artifact_dir.mkdir(parents=True, exist_ok=True)
        path = self.artifact_dir / f"preview-{uuid.uuid4().hex}.html"
        path.write_text(html, encoding="utf-8")

        _msg = f"Rendered preview to {path}"
        log.debug(_msg)
        return RenderResult(html=html, preview_artifact_path=str(path))


# Persistence


class SqlPersistence:
    """Document versions and history entries stored through SQLAlchemy."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        history_store: HistoryStore | None = None,
    ):
        self._session_factory = session_factory
        self.history_store = history_store or HistoryStore(session_factory)

    def create_version(self, user_id: str, document: dict[str, Any]) -> VersionInfo:
        """Commit `document` as the user's next immutable version.

        Notes:
            1. The version number is one more than the user's highest.
            2. This method performs database access.

        """
        with self._session_factory() as db:
            highest = (
                db.query(func.max(DocumentVersion.version_number))
                .filter(DocumentVersion.user_id == user_id)
                .scalar()
            )
            version = DocumentVersion(
                DocumentVersionData(
                    user_id=user_id,
                    document=document,
                    version_number=(highest or 0) + 1,
                )
            )
            db.add(version)
            db.commit()
            db.refresh(version)
            return VersionInfo(
                version_id=str(version.id),
                created_at=version.created_at.isoformat(),
            )

    def get_version(self, version_id: str) -> dict[str, Any] | None:
        """Return the document of a committed version, or None."""
        if not str(version_id).isdigit():
            return None
        with self._session_factory() as db:
            version = db.get(DocumentVersion, int(version_id))
            return dict(version.document) if version else None

    def save_history(self, entry: HistoryEntryData) -> HistoryInfo:
        snapshot = self.history_store.save(entry)
        return HistoryInfo(id=str(snapshot.id), created_at=snapshot.created_at.isoformat())

    def update_optimization(self, entry_id: str, patch: OptimizationPatch) -> None:
        self.history_store.update_optimization(int(entry_id), patch)
