"""订阅源 HTTP 抓取."""

import logging
from types import TracebackType

import httpx

from feedinbox.config import BROWSER_USER_AGENT
from feedinbox.errors import FetchError

logger = logging.getLogger(__name__)

FEED_ACCEPT = (
    "application/rss+xml, application/atom+xml, application/xml, text/xml, */*"
)


class FeedFetcher:
    """以浏览器身份发起 GET 请求，返回响应正文."""

    def __init__(
        self,
        timeout: float = 20.0,
        user_agent: str = BROWSER_USER_AGENT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._headers = {"User-Agent": user_agent, "Accept": FEED_ACCEPT}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
        )

    async def close(self) -> None:
        """关闭客户端（外部注入的客户端由调用方负责关闭）."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FeedFetcher":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def fetch(self, url: str) -> str:
        """
        抓取 URL 并返回文本正文.

        不做重试，重试策略由调用方决定。

        Raises:
            FetchError: 非 2xx 响应、网络错误、超时或非法 URL
        """
        try:
            response = await self._client.get(url, headers=self._headers)
        except httpx.TimeoutException as e:
            msg = f"Timed out fetching {url}"
            raise FetchError(msg) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            msg = f"Failed to fetch feed: {e}"
            raise FetchError(msg) from e

        if not 200 <= response.status_code < 300:
            logger.debug("抓取 %s 返回 HTTP %d", url, response.status_code)
            msg = f"Failed to fetch feed: {response.status_code}"
            raise FetchError(msg, status=response.status_code)

        return response.text
