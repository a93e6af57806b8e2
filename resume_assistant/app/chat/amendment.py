import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from resume_assistant.app.chat.intent_parser import parse_modification_intent
from resume_assistant.app.chat.models import IntentParser, ModificationIntent, ParseContext
from resume_assistant.app.resume.document import resolve_section_alias
from resume_assistant.app.resume.field_path import get_value
from resume_assistant.app.resume.modification import (
    ModificationOperation,
    OperationType,
    apply_modification,
)

log = logging.getLogger(__name__)

# Nouns that turn a bare number into a claim, as in "a team of 40 engineers".
_COUNTED_NOUNS = (
    "engineers", "developers", "people", "employees", "members", "reports",
    "users", "customers", "clients", "accounts", "students", "patients",
    "projects", "products", "teams", "services", "servers", "applications", "apps",
    "countries", "regions", "markets", "stores", "sites", "languages",
    "requests", "transactions", "orders", "downloads", "releases", "deployments",
    "hours", "days", "weeks", "months", "years",
)

_METRIC_TOKEN_RE = re.compile(
    r"\$\s?\d[\d,]*(?:\.\d+)?[kmb]?"
    r"|\d+(?:\.\d+)?\s?%"
    r"|\b\d+(?:\.\d+)?x\b"
    r"|\b\d+(?:\.\d+)?[kmb]\b"
    r"|#\d+"
    r"|\b\d[\d,]*(?:\.\d+)?\+?\s?(?:" + "|".join(_COUNTED_NOUNS) + r")\b",
    re.IGNORECASE,
)

_SKILL_GROUPS = ("skills.technical", "skills.soft")


class AmendmentResult(BaseModel):
    """The outcome of one chat amendment.

    `document` is the input document when nothing was applied.
    """

    document: dict[str, Any]
    intent: ModificationIntent
    applied: bool = False
    operations: list[ModificationOperation] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    clarification_question: str | None = None


def _metric_tokens(text: str) -> set[str]:
    return {re.sub(r"\s+", "", m).lower() for m in _METRIC_TOKEN_RE.findall(text)}


def detect_fabrication(value: Any, document: Any, message: str) -> list[str]:
    """Find metric claims in `value` that neither the user nor the document supplied.

    Args:
        value (Any): The value about to be written; strings and lists of strings are checked.
        document (Any): The current resume document.
        message (str): The user's message.

    Returns:
        list[str]: The unsupported metric tokens (percentages, amounts, multipliers,
            K/M/B counts, rankings, and numbers of people, things or time periods).
            Empty when the value is safe to write.

    """
    if isinstance(value, str):
        texts = [value]
    elif isinstance(value, list):
        texts = [v for v in value if isinstance(v, str)]
    else:
        return []

    claimed = set()
    for text in texts:
        claimed |= _metric_tokens(text)
    if not claimed:
        return []

    known = _metric_tokens(message or "") | _metric_tokens(
        json.dumps(document, ensure_ascii=False, default=str)
    )
    return sorted(claimed - known)


def _find_item(items: Any, target: str) -> int | None:
    if not isinstance(items, list):
        return None
    wanted = target.strip().lower()
    for index, item in enumerate(items):
        if isinstance(item, str) and item.strip().lower() == wanted:
            return index
    return None


def intent_to_operations(
    intent: ModificationIntent,
    document: Any,
) -> tuple[list[ModificationOperation], list[str]]:
    """Turn a resolved intent into concrete operations against `document`.

    Args:
        intent (ModificationIntent): A modification intent with a field path.
        document (Any): The current document, used for section aliases and
            to locate the item a remove refers to.

    Returns:
        tuple[list[ModificationOperation], list[str]]: The operations and any warnings.
            No operations are returned when the intent cannot be made concrete.

    Notes:
        1. The section of the path is resolved against the keys the document uses.
        2. A remove naming an existing value is turned into a remove of its index; the
           other skill group is searched when the value is not in the named one.
        3. Multiple values become one append each.

    """
    path = resolve_section_alias(document, intent.field_path)

    if intent.operation == OperationType.REMOVE.value and intent.target_value:
        candidates = [path]
        if path in _SKILL_GROUPS:
            candidates += [group for group in _SKILL_GROUPS if group != path]
        for candidate in candidates:
            index = _find_item(get_value(document, candidate), intent.target_value)
            if index is not None:
                return [
                    ModificationOperation(operation="remove", field_path=f"{candidate}[{index}]")
                ], []
        return [], [f"'{intent.target_value}' was not found in {intent.field_path}"]

    if intent.values:
        return [
            ModificationOperation(operation=intent.operation, field_path=path, new_value=value)
            for value in intent.values
        ], []

    if intent.operation != OperationType.REMOVE.value and intent.new_value is None:
        return [], [f"No value given for {intent.field_path}"]

    return [
        ModificationOperation(
            operation=intent.operation, field_path=path, new_value=intent.new_value
        )
    ], []


def amend_document(
    document: Any,
    message: str,
    parser: IntentParser | None = None,
) -> AmendmentResult:
    """Parse a chat message and apply it to a resume document.

    Args:
        document (Any): The current resume document. It is never mutated.
        message (str): The user's chat message.
        parser (IntentParser | None): The intent parser; the rule-based parser by default.

    Returns:
        AmendmentResult: The new document, the parsed intent and the operations applied.

    Raises:
        ValueError: If the message is empty.
        ValidationError: If a parsed operation cannot be applied to the document.

    Notes:
        1. Non-modifications and intents needing clarification leave the document unchanged.
        2. Compound intents apply each sub-intent in order.
        3. Sub-intents marked to skip (e.g. duplicate skills) only contribute warnings.
        4. Values carrying metrics that appear in neither the message nor the document
           are refused with a warning.

    """
    _msg = "amend_document starting"
    log.debug(_msg)

    document = document if isinstance(document, dict) else {}
    context = ParseContext(document=document)
    if parser is None:
        intent = parse_modification_intent(message, context)
    else:
        intent = parser.parse(message, context)
    result = AmendmentResult(document=document, intent=intent)

    if not intent.is_modification:
        result.warnings.append("The message does not ask for a change.")
        return result
    if intent.requires_clarification:
        result.clarification_question = intent.clarification_question
        return result

    current = document
    for sub_intent in intent.modifications or [intent]:
        result.warnings.extend(sub_intent.warnings or [])
        if sub_intent.should_skip:
            continue
        if sub_intent.requires_clarification or not sub_intent.field_path:
            result.clarification_question = (
                result.clarification_question or sub_intent.clarification_question
            )
            continue

        operations, warnings = intent_to_operations(sub_intent, current)
        result.warnings.extend(warnings)
        for op in operations:
            fabricated = detect_fabrication(op.new_value, current, message)
            if fabricated:
                _msg = f"Refusing unsupported metrics for {op.field_path}: {fabricated}"
                log.warning(_msg)
                result.warnings.append(
                    f"Skipped change to {op.field_path}: {', '.join(fabricated)} "
                    "is not supported by your message or resume."
                )
                continue
            current = apply_modification(current, op)
            result.operations.append(op)

    result.document = current
    result.applied = bool(result.operations)
    _msg = f"amend_document returning with {len(result.operations)} operations"
    log.debug(_msg)
    return result
