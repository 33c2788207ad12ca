"""Feed 订阅源模型."""

import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from feedinbox.utils.timeutils import to_utc_iso, utc_now


class Feed(SQLModel, table=True):
    """用户订阅的 RSS/Atom 源."""

    __tablename__ = "feeds"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("user_id", "feed_url", name="uq_feeds_user_feed_url"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), primary_key=True
    )
    user_id: str = Field(index=True, description="所属用户")
    feed_url: str = Field(description="Feed URL")
    title: str = Field(description="Feed 标题")
    description: str = Field(default="", description="Feed 描述")
    site_url: str | None = Field(default=None, description="网站 URL")
    last_fetched_at: datetime | None = Field(
        default=None, description="最近一次抓取时间（成功或失败）"
    )
    fetch_error: str | None = Field(default=None, description="最近一次抓取错误")
    item_count: int = Field(default=0, ge=0, description="累计入库条目数")
    is_paused: bool = Field(default=False, description="是否暂停刷新")
    created_at: datetime = Field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """序列化为 API 响应."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "feed_url": self.feed_url,
            "title": self.title,
            "description": self.description,
            "site_url": self.site_url,
            "last_fetched_at": to_utc_iso(self.last_fetched_at),
            "fetch_error": self.fetch_error,
            "item_count": self.item_count,
            "is_paused": self.is_paused,
            "created_at": to_utc_iso(self.created_at),
        }
