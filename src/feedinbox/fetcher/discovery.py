"""从任意网页 / 站点 URL 发现真实的订阅源地址."""

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from feedinbox.errors import FetchError, FormatError, NotFoundError
from feedinbox.fetcher.client import FeedFetcher
from feedinbox.parser import ParsedFeed, looks_like_feed, parse_feed
from feedinbox.utils.html_parser import find_feed_links

logger = logging.getLogger(__name__)

# 常见订阅源路径，按顺序探测
COMMON_FEED_PATHS = (
    "/feed",
    "/rss",
    "/feed.xml",
    "/rss.xml",
    "/atom.xml",
    "/index.xml",
)


@dataclass
class DiscoveredFeed:
    """发现结果（仅用于预览，不落库）."""

    feed_url: str
    title: str
    description: str
    site_url: str
    item_count: int

    @classmethod
    def from_parsed(cls, feed_url: str, parsed: ParsedFeed) -> "DiscoveredFeed":
        return cls(
            feed_url=feed_url,
            title=parsed.title,
            description=parsed.description,
            site_url=parsed.site_url,
            item_count=len(parsed.items),
        )


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def rewrite_platform_url(url: str) -> str:
    """
    已知博客平台的 URL 改写为其订阅源地址.

    已经是订阅源路径的 URL 原样返回；未知平台原样返回。
    """
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    path = parts.path or "/"
    origin = _origin(url)

    # Substack（含自定义域名下的 /p/ 文章页）
    if host.endswith(".substack.com") or "/p/" in path:
        return url if path == "/feed" else f"{origin}/feed"

    # Medium 用户主页: medium.com/@user -> medium.com/feed/@user
    if host in ("medium.com", "www.medium.com"):
        if path.startswith("/feed/"):
            return url
        segments = [s for s in path.split("/") if s]
        if segments and segments[0].startswith("@"):
            return f"{origin}/feed/{segments[0]}"
        return url

    if host.endswith(".blogspot.com"):
        if path.startswith("/feeds/"):
            return url
        return f"{origin}/feeds/posts/default"

    if host.endswith(".wordpress.com"):
        return url if path.rstrip("/").endswith("/feed") else f"{origin}/feed"

    return url


class FeedDiscoverer:
    """按策略顺序尝试定位订阅源，首个成功即返回."""

    def __init__(self, fetcher: FeedFetcher) -> None:
        self.fetcher = fetcher
        self.last_error = ""

    async def discover(self, url: str) -> DiscoveredFeed:
        """
        发现订阅源.

        顺序：平台改写 → 直接抓取 → 页面 <link> 声明 → 常见路径探测。

        Raises:
            NotFoundError: 所有策略均失败，消息中附带最近一次错误
        """
        self.last_error = ""

        candidate = rewrite_platform_url(url)
        found = await self._try_direct(candidate)
        if found:
            return found

        found = await self._try_html_links(url)
        if found:
            return found

        found = await self._try_common_paths(url)
        if found:
            return found

        msg = f"Could not find RSS/Atom feed for this URL. {self.last_error}".strip()
        raise NotFoundError(msg)

    async def _fetch_feed(self, url: str, require_marker: bool) -> DiscoveredFeed | None:
        """抓取并解析候选地址，可恢复的错误记录为 last_error."""
        try:
            body = await self.fetcher.fetch(url)
            if require_marker and not looks_like_feed(body):
                logger.debug("%s 不包含订阅源标记", url)
                return None
            parsed = parse_feed(body, url)
        except (FetchError, FormatError) as e:
            self.last_error = f"{url}: {e.message}"
            logger.debug("候选地址失败 %s", self.last_error)
            return None

        return DiscoveredFeed.from_parsed(url, parsed)

    async def _try_direct(self, url: str) -> DiscoveredFeed | None:
        logger.debug("尝试直接抓取: %s", url)
        return await self._fetch_feed(url, require_marker=True)

    async def _try_html_links(self, url: str) -> DiscoveredFeed | None:
        try:
            html = await self.fetcher.fetch(url)
        except FetchError as e:
            self.last_error = f"{url}: {e.message}"
            return None

        for link in find_feed_links(html, url):
            logger.debug("页面声明的订阅源: %s", link)
            found = await self._fetch_feed(link, require_marker=False)
            if found:
                return found
        return None

    async def _try_common_paths(self, url: str) -> DiscoveredFeed | None:
        origin = _origin(url)
        for path in COMMON_FEED_PATHS:
            found = await self._fetch_feed(f"{origin}{path}", require_marker=True)
            if found:
                return found
        return None
