import logging

from fastapi import APIRouter, Depends

from resume_assistant.app.agent.orchestrator import AgentOrchestrator, RunInput
from resume_assistant.app.agent.schemas import AgentResult
from resume_assistant.app.api.dependencies import get_orchestrator

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agent", tags=["agent"])


@router.post("/run", response_model=AgentResult)
async def run_agent(
    run_input: RunInput,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> AgentResult:
    """
    Run an agent command against a resume.

    Args:
        run_input (RunInput): The user id, command, document, job and design options.
        orchestrator (AgentOrchestrator): The orchestrator dependency.

    Returns:
        AgentResult: The result envelope. Degraded steps are reported in `ui_prompts`
            rather than as an error status.

    """
    _msg = f"run_agent starting for user {run_input.user_id}"
    log.debug(_msg)
    return await orchestrator.run(run_input)
