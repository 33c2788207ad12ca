"""订阅源数据存取."""

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedinbox.errors import ConflictError
from feedinbox.models.category import FeedCategory, FeedCategoryLink
from feedinbox.models.feed import Feed
from feedinbox.models.feed_item import FeedItem
from feedinbox.parser import ParsedItem

logger = logging.getLogger(__name__)


class GuidConflictError(Exception):
    """插入条目时 (feed_id, guid) 唯一约束冲突（并发写入）."""


class FeedStore:
    """Feed / FeedItem / 分类的存取操作，每个请求使用独立会话."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Feed ---

    async def add_feed(self, feed: Feed) -> Feed:
        """
        新增订阅.

        Raises:
            ConflictError: 该用户已订阅同一 URL
        """
        self.session.add(feed)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            msg = "Already subscribed to this feed"
            raise ConflictError(msg) from e
        return feed

    async def get_feed(self, user_id: str, feed_id: str) -> Feed | None:
        """按 ID 获取 Feed（限定所属用户）."""
        stmt = select(Feed).where(Feed.id == feed_id, Feed.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_feed_by_id(self, feed_id: str) -> Feed | None:
        return await self.session.get(Feed, feed_id)

    async def list_feeds(self, user_id: str) -> list[Feed]:
        stmt = select(Feed).where(Feed.user_id == user_id).order_by(Feed.title.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active_feeds(self, user_id: str) -> list[Feed]:
        """获取未暂停的 Feed."""
        stmt = (
            select(Feed)
            .where(Feed.user_id == user_id, Feed.is_paused == False)  # noqa: E712
            .order_by(Feed.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active_user_ids(self) -> list[str]:
        """获取拥有未暂停 Feed 的用户."""
        stmt = (
            select(Feed.user_id)
            .where(Feed.is_paused == False)  # noqa: E712
            .distinct()
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_paused(self, feed: Feed, paused: bool) -> Feed:
        feed.is_paused = paused
        await self.session.commit()
        return feed

    async def delete_feed(self, feed: Feed) -> None:
        """删除 Feed，并级联删除其条目和分类关联."""
        feed_id = feed.id
        await self.session.execute(delete(FeedItem).where(FeedItem.feed_id == feed_id))
        await self.session.execute(
            delete(FeedCategoryLink).where(FeedCategoryLink.feed_id == feed_id)
        )
        await self.session.delete(feed)
        await self.session.commit()

    async def refresh(self, feed: Feed) -> None:
        """回滚后重新加载 Feed（回滚会使已加载对象过期）."""
        await self.session.refresh(feed)

    # --- 同步 ---

    async def load_guids(self, feed_id: str) -> set[str]:
        """加载该 Feed 已入库的全部 GUID（每次同步重新加载）."""
        stmt = select(FeedItem.guid).where(FeedItem.feed_id == feed_id)
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def save_sync_result(
        self, feed: Feed, items: Sequence[ParsedItem], fetched_at: datetime
    ) -> int:
        """
        插入新条目并更新 Feed 元数据，同一事务提交.

        Raises:
            GuidConflictError: 其他写入方已插入相同 GUID，事务已回滚
        """
        rows = [
            FeedItem(
                feed_id=feed.id,
                user_id=feed.user_id,
                guid=item.guid,
                url=item.url,
                title=item.title,
                excerpt=item.excerpt,
                content=item.content,
                author=item.author,
                image_url=item.image_url,
                published_at=item.published_at,
                is_seen=False,
                is_saved=False,
            )
            for item in items
        ]
        self.session.add_all(rows)

        feed.last_fetched_at = fetched_at
        feed.fetch_error = None
        feed.item_count = (feed.item_count or 0) + len(rows)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            await self.session.refresh(feed)
            msg = f"GUID conflict while inserting items for feed {feed.id}"
            raise GuidConflictError(msg) from e
        return len(rows)

    async def save_sync_failure(
        self, feed: Feed, error: str, fetched_at: datetime
    ) -> None:
        """记录同步失败：更新抓取时间和错误信息，条目计数不变."""
        await self.session.rollback()
        await self.session.refresh(feed)
        feed.last_fetched_at = fetched_at
        feed.fetch_error = error
        await self.session.commit()

    # --- 分类 ---

    async def list_categories(self, user_id: str) -> list[FeedCategory]:
        stmt = (
            select(FeedCategory)
            .where(FeedCategory.user_id == user_id)
            .order_by(FeedCategory.sort_order.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_category(self, category: FeedCategory) -> FeedCategory:
        """
        新增分类.

        Raises:
            ConflictError: 同名分类已存在
        """
        self.session.add(category)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            msg = "Category already exists"
            raise ConflictError(msg) from e
        return category

    async def link_categories(
        self, feed: Feed, category_ids: Sequence[str]
    ) -> int:
        """关联分类，忽略不属于该用户的分类 ID."""
        if not category_ids:
            return 0

        stmt = select(FeedCategory.id).where(
            FeedCategory.user_id == feed.user_id,
            FeedCategory.id.in_(list(category_ids)),  # type: ignore[attr-defined]
        )
        result = await self.session.execute(stmt)
        valid_ids = set(result.scalars().all())

        linked = 0
        for category_id in dict.fromkeys(category_ids):
            if category_id in valid_ids:
                self.session.add(
                    FeedCategoryLink(feed_id=feed.id, category_id=category_id)
                )
                linked += 1
            else:
                logger.warning("忽略未知分类 %s", category_id)

        await self.session.commit()
        return linked

    async def category_ids_by_feed(self, user_id: str) -> dict[str, list[str]]:
        stmt = (
            select(FeedCategoryLink.feed_id, FeedCategoryLink.category_id)
            .join(Feed, Feed.id == FeedCategoryLink.feed_id)
            .where(Feed.user_id == user_id)
        )
        result = await self.session.execute(stmt)
        mapping: dict[str, list[str]] = {}
        for feed_id, category_id in result.all():
            mapping.setdefault(feed_id, []).append(category_id)
        return mapping

    # --- 条目 ---

    async def list_items(
        self,
        user_id: str,
        seen: bool | None = None,
        category_id: str | None = None,
        limit: int = 100,
    ) -> list[tuple[FeedItem, str]]:
        """获取条目及所属 Feed 标题，按发布时间倒序."""
        stmt = (
            select(FeedItem, Feed.title)
            .join(Feed, Feed.id == FeedItem.feed_id)
            .where(FeedItem.user_id == user_id)
        )
        if seen is not None:
            stmt = stmt.where(FeedItem.is_seen == seen)
        if category_id:
            stmt = stmt.join(
                FeedCategoryLink, FeedCategoryLink.feed_id == FeedItem.feed_id
            ).where(FeedCategoryLink.category_id == category_id)

        stmt = stmt.order_by(
            FeedItem.published_at.desc().nulls_last(),  # type: ignore[union-attr]
            FeedItem.created_at.desc(),
        ).limit(limit)

        result = await self.session.execute(stmt)
        return [(item, feed_title) for item, feed_title in result.all()]

    async def mark_seen(self, user_id: str, item_ids: Sequence[str]) -> int:
        """标记条目已看，返回实际更新数."""
        if not item_ids:
            return 0
        stmt = (
            update(FeedItem)
            .where(
                FeedItem.user_id == user_id,
                FeedItem.id.in_(list(item_ids)),  # type: ignore[attr-defined]
                FeedItem.is_seen == False,  # noqa: E712
            )
            .values(is_seen=True)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount or 0

    async def get_item(self, user_id: str, item_id: str) -> FeedItem | None:
        stmt = select(FeedItem).where(
            FeedItem.id == item_id, FeedItem.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_saved(self, item: FeedItem, saved: bool) -> FeedItem:
        item.is_saved = saved
        await self.session.commit()
        return item

    async def count_unseen(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(FeedItem).where(
            FeedItem.user_id == user_id,
            FeedItem.is_seen == False,  # noqa: E712
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()
