from fastapi import FastAPI

from resume_assistant.app.main import create_app


def test_create_app():
    """Test that the application is created with every router."""
    app = create_app()
    assert isinstance(app, FastAPI)
    assert app.title == "Resume Assistant API"

    paths = {route.path for route in app.routes}
    assert {
        "/health",
        "/api/agent/run",
        "/api/chat/amend",
        "/api/ats/score",
        "/api/design/colors",
        "/api/history/{user_id}",
        "/api/history/{user_id}/undo",
        "/api/history/{user_id}/redo",
        "/api/history/entries/{entry_id}",
    } <= paths


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_cors_headers(client):
    response = client.get("/health", headers={"Origin": "http://example.com"})
    assert "access-control-allow-origin" in response.headers
