import json
import logging
from typing import Any

from langchain_core.output_parsers import PydanticOutputParser, StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.utils.json import parse_json_markdown
from langchain_openai import ChatOpenAI

from resume_assistant.app.llm.models import (
    ActionPlan,
    IntentClassification,
    LLMConfig,
    LLMModificationIntent,
    PlannedAction,
)
from resume_assistant.app.llm.prompts import (
    ACTION_PLAN_HUMAN_PROMPT,
    ACTION_PLAN_SYSTEM_PROMPT,
    INTENT_CLASSIFICATION_HUMAN_PROMPT,
    INTENT_CLASSIFICATION_SYSTEM_PROMPT,
    MODIFICATION_INTENT_HUMAN_PROMPT,
    MODIFICATION_INTENT_SYSTEM_PROMPT,
)

log = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gpt-4o"
CLASSIFIER_MODEL_NAME = "gpt-4o-mini"


def build_llm_params(
    llm_config: LLMConfig,
    temperature: float = 0.7,
    default_model: str = DEFAULT_MODEL_NAME,
) -> dict[str, Any]:
    """Build the keyword arguments for a ChatOpenAI client.

    Args:
        llm_config (LLMConfig): The endpoint, key, model name and timeout.
        temperature (float): The sampling temperature.
        default_model (str): The model used when `llm_config` names none.

    Returns:
        dict[str, Any]: Parameters for `ChatOpenAI(**params)`.

    Notes:
        1. Use the configured model name, or `default_model` when it is unset or empty.
        2. A custom endpoint sets `openai_api_base`; OpenRouter also gets attribution headers.
        3. A custom non-OpenRouter endpoint without a key gets a placeholder key,
           since local OpenAI-compatible servers do not check it.
        4. A timeout is passed through when configured.

    """
    llm_params: dict[str, Any] = {
        "model": llm_config.llm_model_name or default_model,
        "temperature": temperature,
    }
    endpoint = llm_config.llm_endpoint
    if endpoint:
        llm_params["openai_api_base"] = endpoint
        if "openrouter.ai" in endpoint:
            llm_params["default_headers"] = {
                "HTTP-Referer": "http://localhost:8000/",
                "X-Title": "Resume Assistant",
            }

    if llm_config.api_key:
        llm_params["api_key"] = llm_config.api_key
    elif endpoint and "openrouter.ai" not in endpoint:
        llm_params["api_key"] = "not-needed"

    if llm_config.timeout_seconds:
        llm_params["timeout"] = llm_config.timeout_seconds
    return llm_params


def get_llm(
    llm_config: LLMConfig,
    temperature: float = 0.7,
    default_model: str = DEFAULT_MODEL_NAME,
) -> ChatOpenAI:
    """Create a ChatOpenAI client from an LLMConfig."""
    return ChatOpenAI(**build_llm_params(llm_config, temperature, default_model))


def _parse_response(response_str: str, model: type) -> Any:
    try:
        parsed_json = parse_json_markdown(response_str)
        return model.model_validate(parsed_json)
    except (json.JSONDecodeError, ValueError) as e:
        _msg = f"Failed to parse LLM response as JSON: {e!s}"
        log.exception(_msg)
        raise ValueError(
            "The AI service returned an unexpected response. Please try again."
        ) from e


def parse_modification_with_llm(
    message: str,
    sections: list[str],
    llm: ChatOpenAI,
) -> LLMModificationIntent:
    """Ask the LLM to turn a chat message into a structured edit.

    Args:
        message (str): The user's chat message.
        sections (list[str]): The top-level keys of the current document.
        llm (ChatOpenAI): An initialized client.

    Returns:
        LLMModificationIntent: The validated structured edit.

    Raises:
        ValueError: If the response is not valid JSON or fails validation.

    Network access:
        - This function makes a network request to the configured LLM endpoint.

    """
    _msg = "parse_modification_with_llm starting"
    log.debug(_msg)

    parser = PydanticOutputParser(pydantic_object=LLMModificationIntent)
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", MODIFICATION_INTENT_SYSTEM_PROMPT),
            ("human", MODIFICATION_INTENT_HUMAN_PROMPT),
        ]
    ).partial(format_instructions=parser.get_format_instructions())

    chain = prompt | llm | StrOutputParser()
    response_str = chain.invoke(
        {"message": message, "sections": ", ".join(sections) or "(empty document)"}
    )
    result = _parse_response(response_str, LLMModificationIntent)

    _msg = "parse_modification_with_llm returning"
    log.debug(_msg)
    return result


async def classify_intent_with_llm(
    command: str,
    labels: list[str],
    llm: ChatOpenAI,
) -> str | None:
    """Ask the LLM to pick one intent label for an agent command.

    Args:
        command (str): The user's command.
        labels (list[str]): The allowed labels.
        llm (ChatOpenAI): An initialized client, normally with temperature 0.

    Returns:
        str | None: The label, or None when the model answered with a label outside `labels`.

    Raises:
        ValueError: If the response is not valid JSON or fails validation.

    Network access:
        - This function makes a network request to the configured LLM endpoint.

    """
    _msg = "classify_intent_with_llm starting"
    log.debug(_msg)

    parser = PydanticOutputParser(pydantic_object=IntentClassification)
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", INTENT_CLASSIFICATION_SYSTEM_PROMPT),
            ("human", INTENT_CLASSIFICATION_HUMAN_PROMPT),
        ]
    ).partial(
        labels=", ".join(labels),
        format_instructions=parser.get_format_instructions(),
    )

    chain = prompt | llm | StrOutputParser()
    response_str = await chain.ainvoke({"command": command})
    classification = _parse_response(response_str, IntentClassification)

    label = classification.intent.strip().lower()
    if label not in labels:
        _msg = f"LLM returned unknown intent label: {label}"
        log.warning(_msg)
        return None

    _msg = "classify_intent_with_llm returning"
    log.debug(_msg)
    return label


async def plan_actions_with_llm(
    command: str,
    resume_summary: str,
    job_text: str | None,
    llm: ChatOpenAI,
) -> list[PlannedAction]:
    """Ask the LLM for recommended tool calls. The plan only augments the action log.

    Network access:
        - This function makes a network request to the configured LLM endpoint.

    """
    _msg = "plan_actions_with_llm starting"
    log.debug(_msg)

    parser = PydanticOutputParser(pydantic_object=ActionPlan)
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", ACTION_PLAN_SYSTEM_PROMPT),
            ("human", ACTION_PLAN_HUMAN_PROMPT),
        ]
    ).partial(format_instructions=parser.get_format_instructions())

    chain = prompt | llm | StrOutputParser()
    response_str = await chain.ainvoke(
        {
            "command": command,
            "resume_summary": resume_summary or "(none)",
            "job_text": (job_text or "(none)")[:4000],
        }
    )
    plan = _parse_response(response_str, ActionPlan)

    _msg = "plan_actions_with_llm returning"
    log.debug(_msg)
    return plan.actions[:5]
