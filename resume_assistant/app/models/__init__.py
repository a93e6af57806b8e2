import logging

from sqlalchemy.orm import declarative_base

log = logging.getLogger(__name__)

# Base model that other models will inherit from
Base = declarative_base()

# Import all models here to ensure they are registered with SQLAlchemy's metadata
from .document_version import DocumentVersion  # noqa
from .history_entry import HistoryEntry, HistoryTimeline  # noqa
