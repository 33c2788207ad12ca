"""定时任务定义."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedinbox.config import Settings

logger = logging.getLogger(__name__)


async def refresh_task(settings: Settings) -> None:
    """定时刷新：为每个拥有未暂停 Feed 的用户执行一次批量刷新."""
    from feedinbox.core.ingestion import IngestionService
    from feedinbox.core.store import FeedStore
    from feedinbox.fetcher.client import FeedFetcher
    from feedinbox.models.database import async_session_maker

    logger.info("开始定时刷新任务...")

    session_factory = async_session_maker()
    async with FeedFetcher(
        timeout=settings.fetch_timeout_seconds,
        user_agent=settings.user_agent,
    ) as fetcher:
        async with session_factory() as session:
            user_ids = await FeedStore(session).list_active_user_ids()

        for user_id in user_ids:
            # 每个用户使用独立会话
            async with session_factory() as session:
                try:
                    summary = await IngestionService(session, fetcher).fetch_all(
                        user_id
                    )
                except Exception as e:
                    logger.exception(f"用户 {user_id} 刷新失败: {e}")
                    continue

            logger.info(
                f"用户 {user_id} 刷新完成: 新条目={summary.new_items}, "
                f"失败={len(summary.errors)}"
            )


def create_scheduler(settings: Settings) -> AsyncIOScheduler:
    """创建并启动定时任务调度器."""
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        refresh_task,
        "interval",
        minutes=settings.refresh_interval_minutes,
        args=[settings],
        id="refresh_task",
        name="订阅源定时刷新",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        f"定时任务调度器已启动，刷新间隔: {settings.refresh_interval_minutes} 分钟"
    )

    return scheduler


async def shutdown_scheduler(scheduler: AsyncIOScheduler | None) -> None:
    """关闭定时任务调度器."""
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
