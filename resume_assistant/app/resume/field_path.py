"""Field-path addressing for resume documents.

A field path addresses a value inside a nested document of dicts, lists and
primitives, for example ``experiences[latest].achievements[2]``. Segments are
property keys, numeric list indexes, ``[latest]`` (always index 0, the most
recent entry), negative indexes counted from the end (``[-1]`` is the last
element) and ``[-]`` (append in `set_value`, last element in `remove_value`).
Keys may carry pointer-style escapes: ``~1`` for ``/`` and ``~0`` for ``~``.

`set_value` and `remove_value` deep-copy the whole document before changing
the copy, so each edit costs O(document size) and never mutates its input.

"""

import copy
import difflib
import logging
import re
from typing import Any

from pydantic import BaseModel

log = logging.getLogger(__name__)

LATEST = "latest"

_DOT_SPLIT_RE = re.compile(r"\.(?![^\[]*\])")
_PART_RE = re.compile(r"^(?P<key>[^\[\]]*)(?P<indexes>(?:\[[^\[\]]*\])*)$")
_INDEX_RE = re.compile(r"\[([^\[\]]*)\]")
_KEY_RE = re.compile(r"^[A-Za-z_][^.\[\]]*$")


class FieldPathError(ValueError):
    """Raised when a field path is malformed or cannot be written."""


class _EndMarker:
    """The `[-]` segment: append on set, last element on remove and get."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END"


END = _EndMarker()

Segment = str | int | _EndMarker


class FieldPathValidation(BaseModel):
    """Result of checking a field path against a concrete document."""

    valid: bool
    error: str | None = None
    suggestion: str | None = None


def _decode_key(key: str) -> str:
    return key.replace("~1", "/").replace("~0", "~")


def _encode_key(key: str) -> str:
    return key.replace("~", "~0").replace("/", "~1")


def is_index_segment(segment: Segment) -> bool:
    """Return True when the segment addresses a list position."""
    return segment is END or (isinstance(segment, int) and not isinstance(segment, bool))


def parse_field_path(path: str) -> list[Segment]:
    """Parse a field path string into a list of segments.

    Args:
        path (str): The path to parse, e.g. ``experiences[latest].title``.

    Returns:
        list[Segment]: Keys as `str`, indexes as `int`, and `END` for ``[-]``.

    Raises:
        FieldPathError: If the path is empty or any segment is malformed.

    Notes:
        1. Split on dots that are not inside brackets.
        2. Each part is an optional key followed by zero or more bracketed indexes.
        3. ``[latest]`` resolves to index 0; ``[n]`` and ``[-n]`` to int n or -n;
           ``[-]`` to `END`.
        4. Keys must start with a letter or underscore and have escapes decoded.

    """
    if not path or not path.strip():
        raise FieldPathError("Field path cannot be empty.")

    segments: list[Segment] = []
    for part_number, part in enumerate(_DOT_SPLIT_RE.split(path.strip())):
        match = _PART_RE.match(part)
        if not match:
            raise FieldPathError(f"Malformed field path segment '{part}' in '{path}'.")

        key = match.group("key")
        indexes = _INDEX_RE.findall(match.group("indexes"))

        if key:
            if not _KEY_RE.match(key):
                raise FieldPathError(f"Invalid key '{key}' in field path '{path}'.")
            segments.append(_decode_key(key))
        elif part_number > 0 or not indexes:
            raise FieldPathError(f"Empty key in field path '{path}'.")

        for raw_index in indexes:
            token = raw_index.strip().lower()
            if token == LATEST:
                segments.append(0)
            elif token == "-":
                segments.append(END)
            elif token.isdigit() or (token.startswith("-") and token[1:].isdigit()):
                segments.append(int(token))
            else:
                raise FieldPathError(f"Invalid array index '[{raw_index}]' in '{path}'.")

    return segments


def format_field_path(segments: list[Segment]) -> str:
    """Build a path string from segments; the inverse of `parse_field_path`."""
    path = ""
    for segment in segments:
        if segment is END:
            path += "[-]"
        elif is_index_segment(segment):
            path += f"[{segment}]"
        else:
            path += ("." if path else "") + _encode_key(segment)
    return path


def _position(container: list, segment: Segment) -> int | None:
    """Resolve an index segment to a position inside `container`, or None."""
    if segment is END:
        return len(container) - 1 if container else None
    position = segment + len(container) if segment < 0 else segment
    if 0 <= position < len(container):
        return position
    return None


def _read(container: Any, segment: Segment) -> Any:
    if is_index_segment(segment):
        if not isinstance(container, list):
            return None
        position = _position(container, segment)
        return None if position is None else container[position]
    if isinstance(container, dict):
        return container.get(segment)
    return None


def get_value(document: Any, path: str) -> Any:
    """Read the value at `path`, or None when any step of the path is missing.

    Args:
        document (Any): The document to read from.
        path (str): The field path.

    Returns:
        Any: The addressed value, or None when traversal passes through None,
            a missing key, a primitive, or an out-of-range index.

    Raises:
        FieldPathError: Only when the path itself is malformed.

    """
    current = document
    for segment in parse_field_path(path):
        if current is None:
            return None
        current = _read(current, segment)
    return current


def _new_container(next_segment: Segment) -> list | dict:
    return [] if is_index_segment(next_segment) else {}


def _write(container: Any, segment: Segment, value: Any, path: str) -> None:
    if is_index_segment(segment):
        if not isinstance(container, list):
            raise FieldPathError(f"Cannot index into non-array value at '{path}'.")
        if segment is END or segment == len(container):
            container.append(value)
        else:
            position = _position(container, segment)
            if position is None:
                raise FieldPathError(
                    f"Array index {segment} out of bounds (length {len(container)}) at '{path}'."
                )
            container[position] = value
        return
    if not isinstance(container, dict):
        raise FieldPathError(f"Cannot set key '{segment}' on non-object value at '{path}'.")
    container[segment] = value


def set_value(document: Any, path: str, value: Any) -> Any:
    """Return a copy of `document` with `value` written at `path`.

    Args:
        document (Any): The document to copy and modify. It is never mutated.
        path (str): The field path to write.
        value (Any): The value to write.

    Returns:
        Any: The modified deep copy.

    Raises:
        FieldPathError: If the path is malformed, passes through a primitive,
            or uses an index past the end of an existing array.

    Notes:
        1. Deep-copy the document.
        2. Walk every segment but the last, creating missing containers: a list
           when the following segment is an index, a dict otherwise.
        3. Write the final segment; `END` or an index equal to the length appends.

    """
    segments = parse_field_path(path)
    if document is None:
        result: Any = _new_container(segments[0])
    else:
        result = copy.deepcopy(document)

    current = result
    for position, segment in enumerate(segments[:-1]):
        child = _read(current, segment)
        if child is None:
            child = _new_container(segments[position + 1])
            _write(current, segment, child, path)
        elif not isinstance(child, (dict, list)):
            raise FieldPathError(
                f"Cannot traverse through {type(child).__name__} value at '{path}'."
            )
        current = child

    _write(current, segments[-1], copy.deepcopy(value), path)
    return result


def remove_value(document: Any, path: str) -> Any:
    """Return a copy of `document` with the value at `path` removed.

    Missing keys and out-of-range indexes are no-ops; ``[-]`` and ``[-1]``
    remove the last element of a list.

    """
    segments = parse_field_path(path)
    result = copy.deepcopy(document)

    parent = result
    for segment in segments[:-1]:
        parent = _read(parent, segment)
        if parent is None:
            return result

    last = segments[-1]
    if is_index_segment(last):
        if isinstance(parent, list):
            position = _position(parent, last)
            if position is not None:
                del parent[position]
    elif isinstance(parent, dict):
        parent.pop(last, None)
    return result


def is_array_field(document: Any, path: str) -> bool:
    """Return True when the value at `path` is a list."""
    return isinstance(get_value(document, path), list)


def get_array_length(document: Any, path: str) -> int:
    """Return the length of the list at `path`, or 0 when it is not a list."""
    value = get_value(document, path)
    return len(value) if isinstance(value, list) else 0


def validate_field_path(document: Any, path: str) -> FieldPathValidation:
    """Check that every step of `path` exists in `document`.

    Args:
        document (Any): The document to check against.
        path (str): The field path.

    Returns:
        FieldPathValidation: `valid=True` when the whole path resolves. Otherwise
            an error message and, for a misspelled key, the path with the closest
            existing key substituted.

    Notes:
        1. Malformed paths are reported as invalid rather than raised.
        2. Closest keys are found with `difflib.get_close_matches`.

    """
    try:
        segments = parse_field_path(path)
    except FieldPathError as e:
        return FieldPathValidation(valid=False, error=str(e))

    current = document
    for position, segment in enumerate(segments):
        if is_index_segment(segment):
            if not isinstance(current, list):
                return FieldPathValidation(
                    valid=False,
                    error=f"'{format_field_path(segments[:position])}' is not an array.",
                )
            if segment is not END and _position(current, segment) is None:
                return FieldPathValidation(
                    valid=False,
                    error=f"Index {segment} is out of range (length {len(current)}).",
                )
            if not current:
                return FieldPathValidation(valid=False, error="Array is empty.")
            current = _read(current, segment)
            continue

        if not isinstance(current, dict):
            return FieldPathValidation(
                valid=False,
                error=f"Cannot read '{segment}' from a non-object value.",
            )
        if segment not in current:
            suggestion = None
            matches = difflib.get_close_matches(segment, list(current.keys()), n=1)
            if matches:
                suggested = [*segments[:position], matches[0], *segments[position + 1 :]]
                suggestion = format_field_path(suggested)
            return FieldPathValidation(
                valid=False,
                error=f"Field '{segment}' not found.",
                suggestion=suggestion,
            )
        current = current[segment]

    return FieldPathValidation(valid=True)
