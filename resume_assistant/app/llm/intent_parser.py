import logging

from langchain_openai import ChatOpenAI
from openai import AuthenticationError

from resume_assistant.app.chat.intent_parser import RegexIntentParser
from resume_assistant.app.chat.models import (
    CLARIFICATION_THRESHOLD,
    IntentParser,
    ModificationIntent,
    ParseContext,
)
from resume_assistant.app.llm.orchestration import parse_modification_with_llm

log = logging.getLogger(__name__)


class LLMIntentParser:
    """Parse chat messages with a language model.

    Any failure of the model call (rate limit, timeout, malformed output)
    is recoverable: the message is handed to the `fallback` parser instead.
    """

    def __init__(self, llm: ChatOpenAI, fallback: IntentParser | None = None):
        self.llm = llm
        self.fallback = fallback or RegexIntentParser()

    def parse(
        self,
        message: str,
        context: ParseContext | None = None,
    ) -> ModificationIntent:
        """Parse `message` with the LLM, falling back to the rule-based parser.

        Args:
            message (str): The user's chat message.
            context (ParseContext | None): The current document.

        Returns:
            ModificationIntent: The parsed intent.

        Raises:
            ValueError: If the message is empty.

        Notes:
            1. Empty messages raise before any network access.
            2. The model sees only the document's top-level section names.
            3. A missing field path or low confidence turns into a clarification request.
            4. Any exception from the model call is logged and the fallback parser is used.

        Network access:
            - This method makes a network request to the configured LLM endpoint.

        """
        if not message or not message.strip():
            raise ValueError("Empty message is not allowed")

        sections = sorted((context.document or {}).keys()) if context else []
        try:
            result = parse_modification_with_llm(message, sections, self.llm)
        except AuthenticationError as e:
            _msg = f"LLM authentication failed; using rule-based parser: {e!s}"
            log.warning(_msg)
            return self.fallback.parse(message, context)
        except Exception:
            _msg = "LLM intent parsing failed; using rule-based parser"
            log.exception(_msg)
            return self.fallback.parse(message, context)

        needs_clarification = result.is_modification and (
            not result.field_path or result.confidence < 0.5
        )
        confidence = result.confidence
        if needs_clarification:
            confidence = min(confidence, CLARIFICATION_THRESHOLD - 0.1)

        return ModificationIntent(
            is_modification=result.is_modification,
            operation=result.operation,
            field_path=result.field_path,
            new_value=result.new_value,
            confidence=confidence if result.is_modification else 0.0,
            requires_clarification=needs_clarification,
            clarification_question=(
                result.clarification_question
                or "What would you like to modify? (job title, email, skills, summary, etc.)"
            )
            if needs_clarification
            else None,
        )
