import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from resume_assistant.app.resume.field_path import (
    FieldPathError,
    format_field_path,
    get_value,
    is_index_segment,
    parse_field_path,
    remove_value,
    set_value,
)

log = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Raised when a modification cannot be applied to a document.

    Attributes:
        field_path (str | None): The path the failing operation addressed.

    """

    def __init__(self, message: str, field_path: str | None = None):
        super().__init__(message)
        self.field_path = field_path


class OperationType(str, Enum):
    """The six modification operations."""

    REPLACE = "replace"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    APPEND = "append"
    INSERT = "insert"
    REMOVE = "remove"


class ModificationOperation(BaseModel):
    """A single structured edit against a resume document."""

    operation: str = Field(
        ...,
        description="One of replace, prefix, suffix, append, insert, remove.",
    )
    field_path: str = Field(..., description="The field path to modify.")
    new_value: Any = Field(
        default=None,
        description="The value to write. Required for every operation except remove.",
    )


def describe_type(value: Any) -> str:
    """Name a JSON value's type the way users see it: array, object, string, ..."""
    if value is None:
        return "null"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _apply_affix(document: Any, op: ModificationOperation, front: bool) -> Any:
    verb = "prefix" if front else "suffix"
    current = get_value(document, op.field_path)
    if current is not None and not isinstance(current, str):
        raise ValidationError(
            f"Cannot {verb} non-string field '{op.field_path}'. "
            f"Current value type: {describe_type(current)}",
            op.field_path,
        )
    if not isinstance(op.new_value, str):
        raise ValidationError(
            f"Cannot {verb} '{op.field_path}' with a non-string value "
            f"({describe_type(op.new_value)}).",
            op.field_path,
        )
    if not current:
        return set_value(document, op.field_path, op.new_value)
    updated = op.new_value + current if front else current + op.new_value
    return set_value(document, op.field_path, updated)


def _apply_append(document: Any, op: ModificationOperation) -> Any:
    current = get_value(document, op.field_path)
    if current is None:
        return set_value(document, op.field_path, [op.new_value])
    if not isinstance(current, list):
        raise ValidationError(
            f"Cannot append to non-array field '{op.field_path}'. "
            f"Current value type: {describe_type(current)}",
            op.field_path,
        )
    return set_value(document, op.field_path, [*current, op.new_value])


def _apply_insert(document: Any, op: ModificationOperation) -> Any:
    segments = parse_field_path(op.field_path)
    index = segments[-1]
    if not is_index_segment(index) or len(segments) < 2:
        raise ValidationError(
            f"Insert requires an array index at the end of the field path: '{op.field_path}'.",
            op.field_path,
        )

    array_path = format_field_path(segments[:-1])
    current = get_value(document, array_path)
    if current is None:
        current = []
    elif not isinstance(current, list):
        raise ValidationError(
            f"Cannot insert into non-array field '{array_path}'. "
            f"Current value type: {describe_type(current)}",
            op.field_path,
        )

    position = len(current) if not isinstance(index, int) else index
    if position < 0 or position > len(current):
        raise ValidationError(
            f"Insert index {position} is out of range [0, {len(current)}] for '{array_path}'.",
            op.field_path,
        )

    updated = [*current[:position], op.new_value, *current[position:]]
    return set_value(document, array_path, updated)


def apply_modification(document: Any, op: ModificationOperation | dict) -> Any:
    """Apply a single modification and return the new document.

    Args:
        document (Any): The parsed resume document. It is never mutated.
        op (ModificationOperation | dict): The operation to apply.

    Returns:
        Any: A new document with the modification applied.

    Raises:
        ValidationError: If the operation is unknown, `new_value` is missing,
            the target has the wrong type, or an insert index is invalid.

    Notes:
        1. replace overwrites the target, creating intermediate containers.
        2. prefix and suffix concatenate strings; an empty current value is treated as identity.
        3. append pushes onto a list, creating ``[new_value]`` when the field is absent.
        4. insert splices at the trailing index, which must be within ``[0, len]``.
        5. remove deletes a key or list element; missing targets are a no-op.
        6. Field path errors are reported as ValidationError naming the path.

    """
    if isinstance(op, dict):
        op = ModificationOperation.model_validate(op)

    _msg = f"apply_modification starting: {op.operation} {op.field_path}"
    log.debug(_msg)

    try:
        operation = OperationType(op.operation)
    except ValueError as e:
        raise ValidationError(f"Unknown operation: {op.operation}", op.field_path) from e

    if operation != OperationType.REMOVE and op.new_value is None:
        raise ValidationError(
            f"Operation '{operation.value}' on '{op.field_path}' requires new_value.",
            op.field_path,
        )

    try:
        if operation == OperationType.REPLACE:
            result = set_value(document, op.field_path, op.new_value)
        elif operation == OperationType.PREFIX:
            result = _apply_affix(document, op, front=True)
        elif operation == OperationType.SUFFIX:
            result = _apply_affix(document, op, front=False)
        elif operation == OperationType.APPEND:
            result = _apply_append(document, op)
        elif operation == OperationType.INSERT:
            result = _apply_insert(document, op)
        else:
            result = remove_value(document, op.field_path)
    except FieldPathError as e:
        raise ValidationError(f"{e} (field path: {op.field_path})", op.field_path) from e

    _msg = "apply_modification returning"
    log.debug(_msg)
    return result


def apply_modifications(
    document: Any,
    ops: list[ModificationOperation | dict],
) -> Any:
    """Apply operations left to right, failing fast on the first error.

    Nothing is applied when any operation fails, because every step works on
    a copy and the caller's document is never touched.

    """
    result = document
    for op in ops:
        result = apply_modification(result, op)
    return result


def validate_modification(
    document: Any,
    op: ModificationOperation | dict,
) -> tuple[bool, str | None]:
    """Check whether `op` would apply cleanly, without raising.

    Returns:
        tuple[bool, str | None]: ``(True, None)`` when the operation applies,
            otherwise ``(False, error message)``.

    """
    try:
        apply_modification(document, op)
    except ValidationError as e:
        return False, str(e)
    except ValueError as e:
        # pydantic validation of a malformed dict
        return False, str(e)
    return True, None
