"""测试订阅源抓取."""

import httpx
import pytest
from conftest import FEED_URL, FakeFeedServer, build_rss

from feedinbox.config import BROWSER_USER_AGENT
from feedinbox.errors import FetchError
from feedinbox.fetcher.client import FEED_ACCEPT, FeedFetcher


class TestFeedFetcher:
    """测试 FeedFetcher.fetch."""

    async def test_returns_body(
        self, feed_server: FakeFeedServer, fetcher: FeedFetcher
    ) -> None:
        """2xx 返回正文."""
        body = build_rss(1)
        feed_server.add(FEED_URL, body)
        assert await fetcher.fetch(FEED_URL) == body

    async def test_sends_browser_headers(self) -> None:
        """请求带浏览器 User-Agent 和订阅源 Accept."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, text="ok")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await FeedFetcher(client=client).fetch(FEED_URL)

        assert captured[0].headers["User-Agent"] == BROWSER_USER_AGENT
        assert captured[0].headers["Accept"] == FEED_ACCEPT

    async def test_non_2xx_raises_with_status(
        self, feed_server: FakeFeedServer, fetcher: FeedFetcher
    ) -> None:
        """非 2xx 抛出带状态码的 FetchError."""
        feed_server.add(FEED_URL, "gone", status=410)
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(FEED_URL)
        assert exc_info.value.status == 410
        assert exc_info.value.message == "Failed to fetch feed: 410"

    async def test_unknown_url_is_404(self, fetcher: FeedFetcher) -> None:
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://missing.example.com/feed")
        assert exc_info.value.status == 404

    async def test_timeout(
        self, feed_server: FakeFeedServer, fetcher: FeedFetcher
    ) -> None:
        """超时转为 FetchError，不会挂起."""
        feed_server.fail(FEED_URL, httpx.ReadTimeout)
        with pytest.raises(FetchError, match="Timed out"):
            await fetcher.fetch(FEED_URL)

    async def test_network_error(
        self, feed_server: FakeFeedServer, fetcher: FeedFetcher
    ) -> None:
        feed_server.fail(FEED_URL, httpx.ConnectError)
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(FEED_URL)
        assert exc_info.value.status is None

    async def test_follows_redirects(
        self, feed_server: FakeFeedServer, fetcher: FeedFetcher
    ) -> None:
        feed_server.routes["https://example.com/old"] = lambda request: httpx.Response(
            301, headers={"Location": FEED_URL}
        )
        feed_server.add(FEED_URL, "moved")
        assert await fetcher.fetch("https://example.com/old") == "moved"

    async def test_injected_client_not_closed(self) -> None:
        """外部注入的客户端由调用方关闭."""
        async with httpx.AsyncClient() as client:
            async with FeedFetcher(client=client):
                pass
            assert not client.is_closed
