import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Integer, String

from resume_assistant.app.models import Base

log = logging.getLogger(__name__)


@dataclass
class DocumentVersionData:
    """Dataclass to hold data for DocumentVersion initialization."""

    user_id: str
    document: dict[str, Any]
    version_number: int = 1


class DocumentVersion(Base):
    """An immutable committed version of a user's resume document.

    Attributes:
        id (int): Unique identifier for the version.
        user_id (str): Identifier of the user who owns the document.
        version_number (int): Sequential number of this version within the user's documents.
        document (dict): The full JSON resume document as committed.
        created_at (datetime): Timestamp when the version was committed.

    """

    __tablename__ = "document_versions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    version_number = Column(Integer, nullable=False, default=1)
    document = Column(JSON, nullable=False)
    created_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __init__(self, data: DocumentVersionData):
        """Initialize a DocumentVersion instance.

        Args:
            data (DocumentVersionData): An object containing the data for the new version.

        Notes:
            1. Assigns attributes from the `data` object.
            2. This function does not perform disk, network, or database access.

        """
        _msg = f"Initializing DocumentVersion for user: {data.user_id}"
        log.debug(_msg)

        self.user_id = data.user_id
        self.document = data.document
        self.version_number = data.version_number
