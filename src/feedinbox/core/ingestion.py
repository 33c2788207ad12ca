"""订阅源摄取编排：发现、订阅、单个刷新、批量刷新."""

import logging
from collections.abc import Sequence
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncSession

from feedinbox.core.store import FeedStore
from feedinbox.core.sync import BatchSummary, CancelCheck, SyncService
from feedinbox.errors import (
    FormatError,
    NotFoundError,
    UpstreamFormatError,
    ValidationError,
)
from feedinbox.fetcher.client import FeedFetcher
from feedinbox.fetcher.discovery import DiscoveredFeed, FeedDiscoverer
from feedinbox.models.feed import Feed
from feedinbox.parser import parse_feed

logger = logging.getLogger(__name__)


def validate_url(url: str) -> str:
    """校验 URL 格式，仅支持 http/https."""
    url = url.strip()
    try:
        result = urlparse(url)
    except ValueError as e:
        msg = "Invalid URL format"
        raise ValidationError(msg) from e
    if result.scheme not in ("http", "https") or not result.netloc:
        msg = "Invalid URL format: only http and https URLs are supported"
        raise ValidationError(msg)
    return url


class IngestionService:
    """组合抓取、发现、解析与同步；每次请求创建一个实例."""

    def __init__(self, session: AsyncSession, fetcher: FeedFetcher) -> None:
        self.store = FeedStore(session)
        self.fetcher = fetcher
        self.sync = SyncService(self.store, fetcher)

    async def discover(self, url: str) -> DiscoveredFeed:
        """发现订阅源并返回预览信息，不写库."""
        url = validate_url(url)
        discovered = await FeedDiscoverer(self.fetcher).discover(url)
        logger.info("发现订阅源: %s -> %s", url, discovered.feed_url)
        return discovered

    async def subscribe(
        self,
        user_id: str,
        url: str,
        category_ids: Sequence[str] | None = None,
    ) -> tuple[Feed, int]:
        """
        订阅 Feed 并导入当前全部条目.

        url 应为已发现的订阅源地址，这里不再走发现流程。

        Returns:
            (新建的 Feed, 导入条目数)

        Raises:
            ConflictError: 已订阅同一 URL
        """
        url = validate_url(url)
        body = await self.fetcher.fetch(url)
        parsed = parse_feed(body, url)

        feed = await self.store.add_feed(
            Feed(
                user_id=user_id,
                feed_url=url,
                title=parsed.title,
                description=parsed.description,
                site_url=parsed.site_url,
            )
        )
        logger.info("用户 %s 订阅了 %s", user_id, url)

        if category_ids:
            await self.store.link_categories(feed, category_ids)

        items_added = await self.sync.apply(feed, parsed)
        return feed, items_added

    async def fetch(self, user_id: str, feed_id: str) -> int:
        """
        刷新单个 Feed，返回新增条目数.

        Raises:
            NotFoundError: Feed 不存在或不属于该用户
            UpstreamFormatError: 上游内容已无法解析为订阅源
        """
        feed = await self.store.get_feed(user_id, feed_id)
        if feed is None:
            msg = "Feed not found"
            raise NotFoundError(msg)
        try:
            return await self.sync.sync_feed(feed)
        except FormatError as e:
            raise UpstreamFormatError(e.message) from e

    async def fetch_all(
        self, user_id: str, is_cancelled: CancelCheck | None = None
    ) -> BatchSummary:
        """刷新用户所有未暂停的 Feed."""
        feeds = await self.store.list_active_feeds(user_id)
        summary = await self.sync.sync_all(feeds, is_cancelled=is_cancelled)
        logger.info(
            "用户 %s 批量刷新完成: 成功=%d, 新条目=%d, 失败=%d",
            user_id,
            summary.feeds_refreshed,
            summary.new_items,
            len(summary.errors),
        )
        return summary
