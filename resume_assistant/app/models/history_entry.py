import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from resume_assistant.app.models import Base

log = logging.getLogger(__name__)


class HistoryStack(str, Enum):
    """The stack a history entry currently belongs to."""

    PAST = "past"
    FUTURE = "future"


@dataclass
class HistoryEntryData:
    """Dataclass to hold data for HistoryEntry initialization."""

    user_id: str
    document_version_id: str
    score: int | None = None
    diffs: list[dict[str, Any]] | None = None
    notes: str | None = None
    job: dict[str, Any] | None = None
    artifacts: list[dict[str, Any]] = field(default_factory=list)


class HistoryEntry(Base):
    """A committed edit in a user's history timeline.

    Entries are never rewritten once created, apart from the optimization
    patch (score and notes). Undo and redo only move them between the `past`
    and `future` stacks by changing `stack` and `position`.

    Attributes:
        id (int): Unique identifier for the entry.
        user_id (str): Identifier of the user who owns the timeline.
        document_version_id (str): The committed document version this entry points at.
        score (int | None): ATS score of the committed document.
        diffs (list | None): Human-readable diff log of the edit.
        notes (str | None): Free-form notes.
        job (dict | None): Title, company and URL of the target job, if any.
        artifacts (list): Export artifacts produced for the version.
        stack (str): Either "past" or "future".
        position (int): Order within the stack; the highest position is the top.
        created_at (datetime): Timestamp when the entry was saved.

    """

    __tablename__ = "history_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    document_version_id = Column(String, nullable=False)
    score = Column(Integer, nullable=True)
    diffs = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    job = Column(JSON, nullable=True)
    artifacts = Column(JSON, nullable=False, default=list)
    stack = Column(String, nullable=False, default=HistoryStack.PAST.value)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __init__(self, data: HistoryEntryData):
        """Initialize a HistoryEntry instance.

        Args:
            data (HistoryEntryData): An object containing the data for the new entry.

        Notes:
            1. Assigns attributes from the `data` object.
            2. New entries always start on the past stack; the store assigns the position.
            3. This function does not perform disk, network, or database access.

        """
        _msg = f"Initializing HistoryEntry for version: {data.document_version_id}"
        log.debug(_msg)

        self.user_id = data.user_id
        self.document_version_id = data.document_version_id
        self.score = data.score
        self.diffs = data.diffs
        self.notes = data.notes
        self.job = data.job
        self.artifacts = list(data.artifacts)
        self.stack = HistoryStack.PAST.value
        self.position = 0


class HistoryTimeline(Base):
    """Optimistic-concurrency counter for a user's timeline.

    Attributes:
        user_id (str): Identifier of the user; one row per user.
        version (int): Incremented by every successful save, undo or redo.

    """

    __tablename__ = "history_timelines"

    user_id = Column(String, primary_key=True)
    version = Column(Integer, nullable=False, default=0)
