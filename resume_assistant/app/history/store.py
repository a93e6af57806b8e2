import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from resume_assistant.app.models.history_entry import (
    HistoryEntry,
    HistoryEntryData,
    HistoryStack,
    HistoryTimeline,
)

log = logging.getLogger(__name__)


class ConcurrentModificationError(RuntimeError):
    """Raised when a timeline changed between reading and writing it."""

    def __init__(self, user_id: str, expected: int | None, actual: int | None):
        super().__init__(
            f"History for user '{user_id}' was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.user_id = user_id
        self.expected = expected
        self.actual = actual


class HistoryEntryNotFoundError(LookupError):
    """Raised when a history entry id does not exist."""


class HistoryEntrySnapshot(BaseModel):
    """A read-only copy of a history entry, detached from the session."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    user_id: str
    document_version_id: str
    score: int | None = None
    diffs: list[dict[str, Any]] | None = None
    notes: str | None = None
    job: dict[str, Any] | None = None
    artifacts: list[dict[str, Any]] = Field(default_factory=list)
    stack: str
    position: int
    created_at: datetime


class TimelineSnapshot(BaseModel):
    """A user's timeline; both stacks are ordered bottom to top."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    version: int = 0
    past: list[HistoryEntrySnapshot] = Field(default_factory=list)
    future: list[HistoryEntrySnapshot] = Field(default_factory=list)

    @property
    def current(self) -> HistoryEntrySnapshot | None:
        return self.past[-1] if self.past else None


class OptimizationPatch(BaseModel):
    """The only fields of a committed entry that may change afterwards."""

    score: int | None = None
    notes: str | None = None


def _snapshot(entry: HistoryEntry) -> HistoryEntrySnapshot:
    return HistoryEntrySnapshot.model_validate(entry)


def _stack_query(db: Session, user_id: str, stack: HistoryStack):
    return db.query(HistoryEntry).filter(
        HistoryEntry.user_id == user_id,
        HistoryEntry.stack == stack.value,
    )


def _top(db: Session, user_id: str, stack: HistoryStack) -> HistoryEntry | None:
    return (
        _stack_query(db, user_id, stack)
        .order_by(HistoryEntry.position.desc(), HistoryEntry.id.desc())
        .first()
    )


def _next_position(db: Session, user_id: str, stack: HistoryStack) -> int:
    highest = (
        db.query(func.max(HistoryEntry.position))
        .filter(HistoryEntry.user_id == user_id, HistoryEntry.stack == stack.value)
        .scalar()
    )
    return (highest or 0) + 1


def _claim_version(db: Session, user_id: str, expected_version: int | None) -> int:
    """Increment the timeline version with a compare-and-swap.

    Args:
        db (Session): An open session; the caller commits.
        user_id (str): The timeline owner.
        expected_version (int | None): The version the caller last saw, or None to
            accept whatever is current.

    Returns:
        int: The new version.

    Raises:
        ConcurrentModificationError: If `expected_version` is stale, or another writer
            incremented the version between the read and the update.

    """
    timeline = db.get(HistoryTimeline, user_id)
    if timeline is None:
        timeline = HistoryTimeline(user_id=user_id, version=0)
        db.add(timeline)
        try:
            db.flush()
        except IntegrityError as e:
            db.rollback()
            raise ConcurrentModificationError(user_id, expected_version, None) from e
    current = timeline.version

    if expected_version is not None and expected_version != current:
        raise ConcurrentModificationError(user_id, expected_version, current)

    result = db.execute(
        update(HistoryTimeline)
        .where(HistoryTimeline.user_id == user_id, HistoryTimeline.version == current)
        .values(version=current + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConcurrentModificationError(user_id, current, None)
    return current + 1


class HistoryStore:
    """Per-user undo/redo stacks of committed edits, stored with SQLAlchemy.

    Every mutation runs in its own session and transaction. Concurrent writers
    are detected through the timeline version: each mutation increments it with
    a conditional UPDATE, and the loser of a race gets ConcurrentModificationError.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def save(
        self,
        data: HistoryEntryData,
        expected_version: int | None = None,
    ) -> HistoryEntrySnapshot:
        """Push a committed edit onto the past stack and clear the future stack.

        Args:
            data (HistoryEntryData): The entry to record.
            expected_version (int | None): The timeline version the caller last saw.

        Returns:
            HistoryEntrySnapshot: The stored entry.

        Raises:
            ConcurrentModificationError: If the timeline changed concurrently.

        Notes:
            1. Claim the next timeline version.
            2. Delete the future stack; it can no longer be redone.
            3. Insert the entry above the current top of the past stack.
            4. This function performs database access.

        """
        _msg = f"HistoryStore.save starting for user {data.user_id}"
        log.debug(_msg)

        with self._session_factory() as db:
            _claim_version(db, data.user_id, expected_version)
            _stack_query(db, data.user_id, HistoryStack.FUTURE).delete(
                synchronize_session=False
            )
            entry = HistoryEntry(data)
            entry.position = _next_position(db, data.user_id, HistoryStack.PAST)
            db.add(entry)
            db.commit()
            db.refresh(entry)
            snapshot = _snapshot(entry)

        _msg = f"HistoryStore.save returning entry {snapshot.id}"
        log.debug(_msg)
        return snapshot

    def undo(
        self,
        user_id: str,
        expected_version: int | None = None,
    ) -> HistoryEntrySnapshot | None:
        """Move the top of the past stack to the future stack.

        Args:
            user_id (str): The timeline owner.
            expected_version (int | None): The timeline version the caller last saw.

        Returns:
            HistoryEntrySnapshot | None: The new top of the past stack, or None when the
                past stack is now (or was already) empty.

        Raises:
            ConcurrentModificationError: If the timeline changed concurrently.

        """
        _msg = f"HistoryStore.undo starting for user {user_id}"
        log.debug(_msg)

        with self._session_factory() as db:
            moved = self._move(db, user_id, HistoryStack.PAST, HistoryStack.FUTURE, expected_version)
            current = _top(db, user_id, HistoryStack.PAST) if moved else None
            snapshot = _snapshot(current) if current else None
            db.commit()

        return snapshot

    def redo(
        self,
        user_id: str,
        expected_version: int | None = None,
    ) -> HistoryEntrySnapshot | None:
        """Move the top of the future stack back onto the past stack.

        Returns:
            HistoryEntrySnapshot | None: The redone entry, now the top of the past
                stack, or None when there was nothing to redo.

        Raises:
            ConcurrentModificationError: If the timeline changed concurrently.

        """
        _msg = f"HistoryStore.redo starting for user {user_id}"
        log.debug(_msg)

        with self._session_factory() as db:
            moved = self._move(db, user_id, HistoryStack.FUTURE, HistoryStack.PAST, expected_version)
            snapshot = _snapshot(moved) if moved else None
            db.commit()

        return snapshot

    @staticmethod
    def _move(
        db: Session,
        user_id: str,
        source: HistoryStack,
        target: HistoryStack,
        expected_version: int | None,
    ) -> HistoryEntry | None:
        entry = _top(db, user_id, source)
        if entry is None:
            timeline = db.get(HistoryTimeline, user_id)
            actual = timeline.version if timeline else 0
            if expected_version is not None and expected_version != actual:
                raise ConcurrentModificationError(user_id, expected_version, actual)
            _msg = f"Nothing to move from {source.value} for user {user_id}"
            log.debug(_msg)
            return None

        _claim_version(db, user_id, expected_version)
        entry.position = _next_position(db, user_id, target)
        entry.stack = target.value
        db.flush()
        return entry

    def get_timeline(self, user_id: str) -> TimelineSnapshot:
        """Return read-only copies of a user's past and future stacks.

        A user without history gets an empty timeline at version 0.
        """
        with self._session_factory() as db:
            timeline = db.get(HistoryTimeline, user_id)
            stacks = {}
            for stack in HistoryStack:
                entries = (
                    _stack_query(db, user_id, stack)
                    .order_by(HistoryEntry.position.asc(), HistoryEntry.id.asc())
                    .all()
                )
                stacks[stack] = [_snapshot(entry) for entry in entries]

            return TimelineSnapshot(
                user_id=user_id,
                version=timeline.version if timeline else 0,
                past=stacks[HistoryStack.PAST],
                future=stacks[HistoryStack.FUTURE],
            )

    def get_entry(self, entry_id: int) -> HistoryEntrySnapshot:
        """Return one entry.

        Raises:
            HistoryEntryNotFoundError: If no entry has this id.

        """
        with self._session_factory() as db:
            entry = db.get(HistoryEntry, entry_id)
            if entry is None:
                raise HistoryEntryNotFoundError(f"History entry {entry_id} not found")
            return _snapshot(entry)

    def update_optimization(
        self,
        entry_id: int,
        patch: OptimizationPatch | dict[str, Any],
    ) -> HistoryEntrySnapshot:
        """Update the score and notes of a committed entry.

        Args:
            entry_id (int): The entry to update.
            patch (OptimizationPatch | dict[str, Any]): The fields to change; unset
                fields are left alone.

        Returns:
            HistoryEntrySnapshot: The updated entry.

        Raises:
            HistoryEntryNotFoundError: If no entry has this id.

        Notes:
            1. This does not change the timeline version; the stacks are untouched.
            2. This function performs database access.

        """
        if isinstance(patch, dict):
            patch = OptimizationPatch.model_validate(patch)
        changes = patch.model_dump(exclude_unset=True)

        with self._session_factory() as db:
            entry = db.get(HistoryEntry, entry_id)
            if entry is None:
                raise HistoryEntryNotFoundError(f"History entry {entry_id} not found")
            for key, value in changes.items():
                setattr(entry, key, value)
            db.commit()
            db.refresh(entry)
            return _snapshot(entry)
