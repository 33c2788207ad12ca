"""FeedItem 条目模型."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Text, UniqueConstraint
from sqlmodel import Field, SQLModel

from feedinbox.utils.timeutils import to_utc_iso, utc_now


class FeedItem(SQLModel, table=True):
    """Feed 中的一篇文章，按 (feed_id, guid) 唯一."""

    __tablename__ = "feed_items"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("feed_id", "guid", name="uq_feed_items_feed_guid"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), primary_key=True
    )
    feed_id: str = Field(foreign_key="feeds.id", index=True, description="关联 Feed")
    user_id: str = Field(index=True, description="所属用户")
    guid: str = Field(description="Feed 内唯一标识")
    url: str = Field(default="", description="原文链接")
    title: str = Field(description="标题")
    excerpt: str = Field(default="", description="纯文本摘要（≤300 字符）")
    content: str = Field(
        default="", sa_column=Column(Text, nullable=False, default="")
    )
    author: str = Field(default="", description="作者")
    image_url: str | None = Field(default=None, description="封面图")
    published_at: datetime | None = Field(default=None, description="发布时间")
    is_seen: bool = Field(default=False, description="是否已看")
    is_saved: bool = Field(default=False, description="是否已存入收藏库")
    created_at: datetime = Field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """序列化为 API 响应."""
        return {
            "id": self.id,
            "feed_id": self.feed_id,
            "guid": self.guid,
            "url": self.url,
            "title": self.title,
            "excerpt": self.excerpt,
            "content": self.content,
            "author": self.author,
            "image_url": self.image_url,
            "published_at": to_utc_iso(self.published_at),
            "is_seen": self.is_seen,
            "is_saved": self.is_saved,
        }
