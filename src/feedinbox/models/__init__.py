"""数据模型."""

from feedinbox.models.category import FeedCategory, FeedCategoryLink
from feedinbox.models.database import get_session, init_db
from feedinbox.models.feed import Feed
from feedinbox.models.feed_item import FeedItem

__all__ = [
    "Feed",
    "FeedCategory",
    "FeedCategoryLink",
    "FeedItem",
    "get_session",
    "init_db",
]
