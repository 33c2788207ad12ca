"""各方言解析器共享的数据结构与取值工具."""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from dateutil import parser as date_parser
from lxml import etree

from feedinbox.utils.html_parser import (
    extract_first_image,
    html_to_text,
    make_excerpt,
    truncate_content,
)

NAMESPACES = {
    "atom": "http://www.w3.org/2005/Atom",
    "content": "http://purl.org/rss/1.0/modules/content/",
    "dc": "http://purl.org/dc/elements/1.1/",
    "media": "http://search.yahoo.com/mrss/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
}
ATOM_03_NS = "http://purl.org/atom/ns#"
RSS_10_NS = "http://purl.org/rss/1.0/"
RSS_090_NS = "http://my.netscape.com/rdf/simple/0.9/"

UNKNOWN_FEED_TITLE = "Unknown Feed"
UNTITLED_ITEM = "Untitled"


@dataclass
class ParsedItem:
    """归一化后的条目（入库前）."""

    guid: str
    url: str
    title: str
    excerpt: str
    content: str
    author: str
    image_url: str | None = None
    published_at: datetime | None = None


@dataclass
class ParsedFeed:
    """一次抓取解析后的订阅源."""

    title: str
    description: str
    site_url: str
    items: list[ParsedItem] = field(default_factory=list)


class NodeReader:
    """
    按元素名读取子节点.

    不带前缀的名字只匹配方言自身的命名空间（core_namespaces），
    避免 RSS 中的 <atom:link> 被当作 <link>；带前缀的名字按 NAMESPACES 精确匹配。
    """

    def __init__(self, core_namespaces: frozenset[str]) -> None:
        self.core_namespaces = core_namespaces

    def _matches(self, element: etree._Element, name: str) -> bool:
        if not isinstance(element.tag, str):
            # 注释、处理指令
            return False
        namespace, tag_prefix, tag_local = split_tag(element.tag)
        prefix, _, local = name.rpartition(":")
        if tag_local != local:
            return False
        if tag_prefix:
            # 未声明的前缀按字面前缀匹配
            return tag_prefix == prefix
        if prefix:
            return namespace == NAMESPACES[prefix]
        return namespace in self.core_namespaces

    def children(self, parent: etree._Element, name: str) -> list[etree._Element]:
        """返回所有匹配的直接子元素（保持文档顺序）."""
        return [child for child in parent if self._matches(child, name)]

    def child(self, parent: etree._Element, name: str) -> etree._Element | None:
        """返回第一个匹配的直接子元素."""
        for child in parent:
            if self._matches(child, name):
                return child
        return None

    def text(self, parent: etree._Element, *names: str) -> str:
        """按顺序尝试多个元素名，返回第一个非空文本."""
        for name in names:
            value = node_text(self.child(parent, name))
            if value:
                return value
        return ""


def split_tag(tag: str) -> tuple[str, str, str]:
    """
    拆分元素标签为 (命名空间, 未声明的前缀, 本地名).

    recover 模式下，未声明命名空间的 <dc:creator> 会保留为字面标签 "dc:creator"，
    etree.QName 无法处理这种标签。
    """
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, "", local
    prefix, _, local = tag.rpartition(":")
    return "", prefix, local


def node_text(element: etree._Element | None) -> str:
    """
    取元素内容.

    含子元素时（如 Atom xhtml 内容、未转义的 HTML 描述）返回内部标记，
    否则返回文本。
    """
    if element is None:
        return ""
    if any(isinstance(child.tag, str) for child in element):
        parts = [element.text or ""]
        parts.extend(
            etree.tostring(child, encoding="unicode", with_tail=True)
            for child in element
        )
        return "".join(parts).strip()
    return (element.text or "").strip()


def clean_title(value: str, default: str) -> str:
    """折叠标题中的空白，空标题使用默认值."""
    return " ".join(value.split()) or default


def fallback_guid() -> str:
    """没有自然标识时生成唯一 GUID（时间戳 + 随机数）."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}"


def parse_date(value: str) -> datetime | None:
    """
    解析 RFC 822 / ISO 8601 日期为 UTC 时间.

    任何解析失败都返回 None，不抛异常。
    """
    value = value.strip()
    if not value:
        return None

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None

    try:
        if parsed is None:
            parsed = date_parser.parse(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def resolve_image(
    reader: NodeReader, node: etree._Element, raw_content: str
) -> str | None:
    """图片来源优先级：media:content/thumbnail → 图片类型 enclosure → 正文首图."""
    containers = [node, *reader.children(node, "media:group")]
    for name in ("media:content", "media:thumbnail"):
        for container in containers:
            for media in reader.children(container, name):
                url = (media.get("url") or "").strip()
                if url:
                    return url

    for enclosure in reader.children(node, "enclosure"):
        enclosure_type = (enclosure.get("type") or "").strip().lower()
        url = (enclosure.get("url") or "").strip()
        if enclosure_type.startswith("image") and url:
            return url

    return extract_first_image(raw_content)


def build_item(
    *,
    guid: str,
    url: str,
    title: str,
    raw_content: str,
    author: str,
    image_url: str | None,
    published_at: datetime | None,
) -> ParsedItem:
    """由原始字段构建归一化条目（摘要、纯文本内容在此统一计算）."""
    plain_text = html_to_text(raw_content)
    return ParsedItem(
        guid=guid,
        url=url,
        title=clean_title(title, UNTITLED_ITEM),
        excerpt=make_excerpt(plain_text),
        content=truncate_content(plain_text),
        author=author.strip(),
        image_url=image_url,
        published_at=published_at,
    )
