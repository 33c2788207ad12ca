"""增量同步 - 抓取、解析、比对 GUID、写入新条目."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from feedinbox.core.store import FeedStore, GuidConflictError
from feedinbox.fetcher.client import FeedFetcher
from feedinbox.models.feed import Feed
from feedinbox.parser import ParsedFeed, ParsedItem, parse_feed
from feedinbox.utils.timeutils import utc_now

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], Awaitable[bool]]


class SyncStage(str, Enum):
    """单次同步的阶段."""

    FETCHING = "fetching"
    PARSING = "parsing"
    DIFFING = "diffing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FeedSyncError:
    """批量同步中单个 Feed 的失败记录."""

    feed_id: str
    error: str


@dataclass
class BatchSummary:
    """批量同步结果，部分失败属于正常情况."""

    feeds_refreshed: int = 0
    new_items: int = 0
    errors: list[FeedSyncError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "feeds_refreshed": self.feeds_refreshed,
            "new_items": self.new_items,
            "errors": [
                {"feed_id": error.feed_id, "error": error.error}
                for error in self.errors
            ],
        }


def select_new_items(
    items: Iterable[ParsedItem], existing_guids: set[str]
) -> list[ParsedItem]:
    """过滤出未入库的条目，保持解析顺序；同一文档内重复的 GUID 只保留第一个."""
    seen = set(existing_guids)
    new_items: list[ParsedItem] = []
    for item in items:
        if item.guid in seen:
            continue
        seen.add(item.guid)
        new_items.append(item)
    return new_items


class SyncService:
    """单个 Feed 的增量同步."""

    def __init__(self, store: FeedStore, fetcher: FeedFetcher) -> None:
        self.store = store
        self.fetcher = fetcher

    async def sync_feed(self, feed: Feed) -> int:
        """
        执行一次完整同步，返回新增条目数.

        无论成功失败都会更新 Feed 的抓取时间；失败时记录错误并向上抛出。
        """
        feed_url = feed.feed_url
        stage = SyncStage.FETCHING
        try:
            self._log_stage(feed, stage)
            body = await self.fetcher.fetch(feed_url)

            stage = SyncStage.PARSING
            self._log_stage(feed, stage)
            parsed = parse_feed(body, feed_url)
        except Exception as e:
            await self._record_failure(feed, stage, e)
            raise

        return await self.apply(feed, parsed)

    async def apply(self, feed: Feed, parsed: ParsedFeed) -> int:
        """对已解析的文档执行比对与写入，返回新增条目数."""
        stage = SyncStage.DIFFING
        try:
            # 并发写入导致 GUID 冲突时，重新加载 GUID 再比对一次
            for attempt in range(2):
                stage = SyncStage.DIFFING
                self._log_stage(feed, stage)
                existing_guids = await self.store.load_guids(feed.id)
                new_items = select_new_items(parsed.items, existing_guids)

                stage = SyncStage.PERSISTING
                self._log_stage(feed, stage)
                try:
                    inserted = await self.store.save_sync_result(
                        feed, new_items, utc_now()
                    )
                except GuidConflictError:
                    if attempt == 1:
                        raise
                    logger.info("Feed '%s' GUID 冲突，重新比对", feed.title)
                    continue

                self._log_stage(feed, SyncStage.DONE)
                logger.info("Feed '%s': %d 条新条目", feed.title, inserted)
                return inserted
        except Exception as e:
            await self._record_failure(feed, stage, e)
            raise

        return 0

    async def sync_all(
        self,
        feeds: Iterable[Feed],
        is_cancelled: CancelCheck | None = None,
    ) -> BatchSummary:
        """
        逐个同步 Feed，单个失败不影响其他 Feed.

        is_cancelled 返回 True 时不再开始新的 Feed，进行中的 Feed 正常完成。
        """
        summary = BatchSummary()
        # 失败回滚会让已加载对象过期，按 ID 重新获取
        feed_ids = [feed.id for feed in feeds]

        for index, feed_id in enumerate(feed_ids):
            if is_cancelled is not None and await is_cancelled():
                logger.info(
                    "请求已取消，跳过剩余 %d 个 Feed", len(feed_ids) - index
                )
                break

            feed = await self.store.get_feed_by_id(feed_id)
            if feed is None:
                continue

            try:
                summary.new_items += await self.sync_feed(feed)
                summary.feeds_refreshed += 1
            except Exception as e:
                logger.warning("Feed %s 同步失败: %s", feed_id, e)
                summary.errors.append(FeedSyncError(feed_id=feed_id, error=str(e)))

        return summary

    async def _record_failure(
        self, feed: Feed, stage: SyncStage, error: Exception
    ) -> None:
        logger.debug("Feed %s 在 %s 阶段失败: %s", feed.id, stage.value, error)
        self._log_stage(feed, SyncStage.FAILED)
        await self.store.save_sync_failure(feed, str(error), utc_now())

    def _log_stage(self, feed: Feed, stage: SyncStage) -> None:
        logger.debug("Feed %s -> %s", feed.id, stage.value)
