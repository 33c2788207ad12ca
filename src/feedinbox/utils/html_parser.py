"""HTML 解析工具."""

import re
import warnings
from urllib.parse import urljoin

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

EXCERPT_LENGTH = 300
CONTENT_MAX_LENGTH = 50_000

# <link type="..."> 中明确表示订阅源的 MIME 类型
FEED_MIME_TYPES = ("application/rss+xml", "application/atom+xml")


def _soup(html: str) -> BeautifulSoup:
    with warnings.catch_warnings():
        # 纯文本摘要可能只是一个 URL，bs4 会对此发出警告
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        return BeautifulSoup(html, "lxml")


def html_to_text(html: str) -> str:
    """
    将 HTML 转换为单行纯文本.

    去除标签、解码实体，并把连续空白折叠为一个空格。

    Args:
        html: HTML 内容

    Returns:
        提取的纯文本内容
    """
    if not html:
        return ""

    soup = _soup(html)

    # 移除 script 和 style 标签
    for element in soup(["script", "style"]):
        element.decompose()

    text = soup.get_text(separator=" ")

    # 清理多余空白
    return re.sub(r"\s+", " ", text).strip()


def make_excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    """截取纯文本前 length 个字符，超出时追加省略号."""
    excerpt = text[:length].strip()
    if len(text) > length:
        excerpt += "..."
    return excerpt


def truncate_content(text: str, limit: int = CONTENT_MAX_LENGTH) -> str:
    """内容超出上限时直接截断."""
    return text[:limit]


def extract_first_image(html: str) -> str | None:
    """
    提取 HTML 中的第一张图片 URL.

    Args:
        html: HTML 内容

    Returns:
        图片 URL 或 None
    """
    if not html or "<img" not in html.lower():
        return None

    img = _soup(html).find("img", src=True)

    if img:
        src = img["src"]
        # 确保是字符串
        if isinstance(src, list):
            src = src[0] if src else None
        return src.strip() if src else None

    return None


def find_feed_links(html: str, base_url: str) -> list[str]:
    """
    按文档顺序提取页面中声明的订阅源地址.

    匹配 type 为 RSS/Atom MIME 的 <link>，或 rel=alternate 且 type 含 xml 的 <link>。
    相对地址按页面 URL 解析为绝对地址。

    Args:
        html: 页面 HTML
        base_url: 页面 URL

    Returns:
        去重后的候选 Feed URL 列表
    """
    if not html:
        return []

    candidates: list[str] = []
    for link in _soup(html).find_all("link", href=True):
        link_type = (link.get("type") or "").strip().lower()
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        rel = [r.lower() for r in rel]

        is_feed_type = link_type in FEED_MIME_TYPES
        is_alternate_xml = "alternate" in rel and "xml" in link_type
        if not (is_feed_type or is_alternate_xml):
            continue

        href = link["href"].strip()
        if not href:
            continue

        url = urljoin(base_url, href)
        if url.startswith(("http://", "https://")) and url not in candidates:
            candidates.append(url)

    return candidates
