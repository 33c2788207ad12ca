"""API 依赖."""

from collections.abc import AsyncGenerator

from feedinbox.config import get_settings
from feedinbox.fetcher.client import FeedFetcher


async def get_fetcher() -> AsyncGenerator[FeedFetcher, None]:
    """每个请求创建独立的抓取客户端（用于依赖注入）."""
    settings = get_settings()
    async with FeedFetcher(
        timeout=settings.fetch_timeout_seconds,
        user_agent=settings.user_agent,
    ) as fetcher:
        yield fetcher
