"""Feed 分类模型."""

import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from feedinbox.utils.timeutils import utc_now


class FeedCategory(SQLModel, table=True):
    """用户自定义的 Feed 分类."""

    __tablename__ = "feed_categories"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_feed_categories_user_name"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), primary_key=True
    )
    user_id: str = Field(index=True)
    name: str
    color: str = Field(default="#6366f1")
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now)


class FeedCategoryLink(SQLModel, table=True):
    """Feed 与分类的多对多关联."""

    __tablename__ = "feed_category_feeds"  # type: ignore[assignment]

    feed_id: str = Field(foreign_key="feeds.id", primary_key=True)
    category_id: str = Field(foreign_key="feed_categories.id", primary_key=True)
