import logging

from fastapi import Depends

from resume_assistant.app.agent.collaborators import SqlPersistence
from resume_assistant.app.agent.orchestrator import AgentOrchestrator, build_llm_hooks
from resume_assistant.app.chat.intent_parser import RegexIntentParser
from resume_assistant.app.chat.models import IntentParser
from resume_assistant.app.core.config import Settings, get_settings
from resume_assistant.app.database.database import get_session_local
from resume_assistant.app.history.store import HistoryStore
from resume_assistant.app.llm.intent_parser import LLMIntentParser
from resume_assistant.app.llm.models import LLMConfig
from resume_assistant.app.llm.orchestration import get_llm

log = logging.getLogger(__name__)


def get_history_store() -> HistoryStore:
    """Dependency providing a History Store bound to the configured database."""
    return HistoryStore(get_session_local())


def get_persistence(
    history_store: HistoryStore = Depends(get_history_store),
) -> SqlPersistence:
    """Dependency providing version and history persistence."""
    return SqlPersistence(get_session_local(), history_store)


def get_intent_parser(settings: Settings = Depends(get_settings)) -> IntentParser:
    """
    Dependency providing the chat intent parser.

    Args:
        settings (Settings): The application settings.

    Returns:
        IntentParser: An LLM-backed parser when LLM access is enabled and a client
            can be created, otherwise the rule-based parser.

    Notes:
        1. The LLM parser falls back to the rule-based parser on any model error.

    """
    if not settings.llm_enabled:
        return RegexIntentParser()
    try:
        llm = get_llm(LLMConfig.from_settings(settings), temperature=0)
    except Exception:
        _msg = "Could not create LLM client for intent parsing; using rule-based parser"
        log.exception(_msg)
        return RegexIntentParser()
    return LLMIntentParser(llm)


def get_orchestrator(
    settings: Settings = Depends(get_settings),
    persistence: SqlPersistence = Depends(get_persistence),
) -> AgentOrchestrator:
    """Dependency providing an agent orchestrator with the default collaborators."""
    classifier, planner = build_llm_hooks(settings)
    return AgentOrchestrator(
        settings=settings,
        persistence=persistence,
        classifier=classifier,
        planner=planner,
    )
