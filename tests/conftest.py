import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from resume_assistant.app.core.config import get_settings
from resume_assistant.app.history.store import HistoryStore
from resume_assistant.app.main import create_app
from resume_assistant.app.models import Base


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test read settings afresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine():
    """Fixture to provide an in-memory SQLite engine with all tables created."""
    _engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=_engine)
    yield _engine
    _engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Fixture to provide a session factory bound to the in-memory engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def history_store(session_factory) -> HistoryStore:
    """Fixture to provide a History Store backed by the in-memory engine."""
    return HistoryStore(session_factory)


@pytest.fixture
def sample_document() -> dict:
    """A small but complete resume document."""
    return {
        "contact": {
            "name": "Jane Doe",
            "email": "jane@example.com",
            "phone": "555-0100",
            "location": "Austin, TX",
        },
        "summary": "Backend engineer building reliable Python services.",
        "skills": {"technical": ["Python", "SQL"], "soft": ["Mentoring"]},
        "experiences": [
            {
                "title": "Software Engineer",
                "company": "Acme",
                "start_date": "2021",
                "end_date": "Present",
                "achievements": [
                    "Reduced API latency by 40%",
                    "Built data pipelines in Python",
                ],
            },
            {
                "title": "Junior Developer",
                "company": "Initech",
                "start_date": "2018",
                "end_date": "2021",
                "achievements": ["Maintained internal tools"],
            },
        ],
        "education": [{"degree": "BSc Computer Science", "institution": "State University"}],
    }


@pytest.fixture
def app() -> FastAPI:
    """Fixture to create a new app for each test."""
    _app = create_app()
    yield _app
    # Clear dependency overrides after test
    _app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Fixture to create a test client for each test."""
    with TestClient(app) as c:
        yield c
