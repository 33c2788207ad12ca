"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from feedinbox.api.deps import get_fetcher
from feedinbox.fetcher.client import FeedFetcher
from feedinbox.main import app
from feedinbox.models.database import get_session
from feedinbox.models.feed import Feed

FEED_URL = "https://example.com/feed.xml"

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Blog</title>
  <subtitle>Notes in Atom</subtitle>
  <link href="https://atom.example.com/" rel="alternate"/>
  <link href="https://atom.example.com/atom.xml" rel="self"/>
  <author><name>Feed Author</name></author>
  <entry>
    <id>urn:uuid:entry-1</id>
    <title>First entry</title>
    <link href="/posts/1" rel="alternate"/>
    <published>2024-01-02T10:00:00Z</published>
    <content type="html">&lt;p&gt;Hello &lt;b&gt;Atom&lt;/b&gt;&lt;/p&gt;</content>
  </entry>
  <entry>
    <id>urn:uuid:entry-2</id>
    <title>Second entry</title>
    <link href="https://atom.example.com/posts/2"/>
    <updated>2024-01-03T10:00:00+02:00</updated>
    <summary>Short summary</summary>
    <author><name>Entry Author</name></author>
  </entry>
</feed>
"""

RDF_FEED = """<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/"
         xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel rdf:about="https://rdf.example.com/">
    <title>RDF Site</title>
    <link>https://rdf.example.com/</link>
    <description>An RSS 1.0 feed</description>
  </channel>
  <item rdf:about="https://rdf.example.com/a">
    <title>Item A</title>
    <link>https://rdf.example.com/a</link>
    <description>About A</description>
    <dc:creator>Alice</dc:creator>
    <dc:date>2024-02-01T08:30:00Z</dc:date>
  </item>
  <item rdf:about="https://rdf.example.com/b">
    <title>Item B</title>
    <link>https://rdf.example.com/b</link>
  </item>
</rdf:RDF>
"""

HTML_WITH_FEED_LINK = """<!DOCTYPE html>
<html>
<head>
  <title>Example Blog</title>
  <link rel="stylesheet" href="/style.css">
  <link rel="alternate" type="application/rss+xml" title="RSS" href="/feed.xml">
</head>
<body><p>Welcome</p></body>
</html>
"""

HTML_WITHOUT_FEED = """<!DOCTYPE html>
<html><head><title>Plain page</title></head><body><p>No feeds.</p></body></html>
"""

RSS_UNDECLARED_PREFIXES = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Loose Feed</title>
    <link>https://loose.example.com/</link>
    <description>Prefixes without xmlns</description>
    <item>
      <title>Loose post</title>
      <link>https://loose.example.com/1</link>
      <guid>loose-1</guid>
      <dc:creator>Dana</dc:creator>
      <content:encoded>&lt;p&gt;Full body&lt;/p&gt;</content:encoded>
    </item>
  </channel>
</rss>
"""


def build_rss(
    count: int = 5,
    title: str = "Example Feed",
    guid_prefix: str = "item",
) -> str:
    """生成包含 count 个条目的 RSS 2.0 文档."""
    items = "".join(
        f"""
    <item>
      <title>Post {i}</title>
      <link>https://example.com/posts/{i}</link>
      <guid>{guid_prefix}-{i}</guid>
      <description>&lt;p&gt;Body of post {i}&lt;/p&gt;</description>
      <pubDate>Mon, 0{i % 9 + 1} Jan 2024 12:00:00 GMT</pubDate>
    </item>"""
        for i in range(1, count + 1)
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>{title}</title>
    <link>https://example.com/</link>
    <atom:link href="https://example.com/feed.xml" rel="self"/>
    <description>Example description</description>{items}
  </channel>
</rss>
"""


class FakeFeedServer:
    """基于 httpx.MockTransport 的假订阅源服务器，未注册的 URL 返回 404."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requested: list[str] = []

    def add(self, url: str, body: str, status: int = 200) -> None:
        self.routes[url] = lambda request: httpx.Response(status, text=body)

    def fail(self, url: str, error: type[httpx.TransportError]) -> None:
        def raise_error(request: httpx.Request) -> httpx.Response:
            raise error("simulated failure", request=request)

        self.routes[url] = raise_error

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="Not Found")
        return route(request)


@pytest.fixture
def feed_server() -> FakeFeedServer:
    """假订阅源服务器."""
    return FakeFeedServer()


@pytest.fixture
async def fetcher(feed_server: FakeFeedServer) -> AsyncGenerator[FeedFetcher, None]:
    """使用假服务器的抓取客户端."""
    transport = httpx.MockTransport(feed_server.handler)
    async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
        yield FeedFetcher(client=client)


@pytest.fixture
async def test_engine():
    """创建测试数据库引擎."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """创建测试会话工厂."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def session(
    test_session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """创建测试会话."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def sample_feed(session: AsyncSession) -> Feed:
    """创建测试用的 Feed."""
    feed = Feed(
        id="feed-001",
        user_id="user-1",
        feed_url=FEED_URL,
        title="Example Feed",
        site_url="https://example.com/",
    )
    session.add(feed)
    await session.commit()
    return feed


@pytest.fixture
async def client(
    test_session_factory: async_sessionmaker[AsyncSession],
    fetcher: FeedFetcher,
) -> AsyncGenerator[AsyncClient, None]:
    """创建测试客户端，数据库与抓取均替换为测试实现."""

    async def override_get_session():
        async with test_session_factory() as session:
            yield session

    async def override_get_fetcher():
        yield fetcher

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_fetcher] = override_get_fetcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
