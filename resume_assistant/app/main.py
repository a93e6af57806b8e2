import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from resume_assistant.app.api.routes.agent import router as agent_router
from resume_assistant.app.api.routes.ats import router as ats_router
from resume_assistant.app.api.routes.chat import router as chat_router
from resume_assistant.app.api.routes.design import router as design_router
from resume_assistant.app.api.routes.history import router as history_router

log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        None

    Returns:
        FastAPI: The configured FastAPI application instance.

    Notes:
        1. Initialize the FastAPI application with the title "Resume Assistant API".
        2. Add CORS middleware to allow requests from any origin (for development only).
        3. Include the agent, chat, ATS, design and history routers.
        4. Define a health check endpoint at "/health" that returns a JSON object with status "ok".
        5. Tables are created by `manage.py init-db`, not at startup.

    """
    _msg = "Creating FastAPI application"
    log.debug(_msg)

    app = FastAPI(title="Resume Assistant API")

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # TODO: Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(agent_router)
    app.include_router(chat_router)
    app.include_router(ats_router)
    app.include_router(design_router)
    app.include_router(history_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Report that the service is up."""
        return {"status": "ok"}

    _msg = "FastAPI application created successfully"
    log.debug(_msg)
    return app


app = create_app()
