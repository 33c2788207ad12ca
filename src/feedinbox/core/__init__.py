"""核心业务逻辑."""

from feedinbox.core.ingestion import IngestionService
from feedinbox.core.store import FeedStore
from feedinbox.core.sync import BatchSummary, SyncService, SyncStage

__all__ = [
    "BatchSummary",
    "FeedStore",
    "IngestionService",
    "SyncService",
    "SyncStage",
]
