"""订阅源文档识别与解析入口."""

import logging
import re
from html.entities import name2codepoint

from lxml import etree

from feedinbox.errors import FormatError
from feedinbox.parser.atom import AtomFeed
from feedinbox.parser.common import NAMESPACES, ParsedFeed, split_tag
from feedinbox.parser.rdf import RdfChannel
from feedinbox.parser.rss import RssChannel

logger = logging.getLogger(__name__)

FeedDocument = RssChannel | AtomFeed | RdfChannel

# 正文中出现任一标记即视为可能是订阅源
FEED_MARKERS = ("<rss", "<feed", "<channel", "rdf:RDF")

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
_CDATA_SECTION = re.compile(r"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
_BARE_AMPERSAND = re.compile(r"&(?!#[0-9]+;|#[xX][0-9a-fA-F]+;|[A-Za-z][A-Za-z0-9]*;)")
_NAMED_ENTITY = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_XML_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})


def looks_like_feed(body: str) -> bool:
    """粗略判断正文是否包含订阅源根元素标记."""
    return any(marker in body for marker in FEED_MARKERS)


def _replace_entity(match: re.Match[str]) -> str:
    name = match.group(1)
    if name in _XML_ENTITIES:
        return match.group(0)
    codepoint = name2codepoint.get(name)
    if codepoint is None:
        # 未知实体按字面文本保留
        return f"&amp;{name};"
    return f"&#{codepoint};"


def repair_entities(text: str) -> str:
    """
    修复订阅源中常见的实体错误.

    recover 模式遇到裸 & 或 HTML 命名实体（&nbsp; &eacute;）会丢弃其后的文本，
    这里转义裸 &，并把 HTML 命名实体改写为数字字符引用。CDATA 段保持不变。
    """
    parts = _CDATA_SECTION.split(text)
    for index in range(0, len(parts), 2):
        part = _BARE_AMPERSAND.sub("&amp;", parts[index])
        parts[index] = _NAMED_ENTITY.sub(_replace_entity, part)
    return "".join(parts)


def _load_xml(raw: str) -> etree._Element | None:
    """宽松解析 XML，容忍标签未闭合等常见错误."""
    # 文本已解码，去掉声明中的 encoding 以免与 UTF-8 字节冲突
    text = _XML_DECLARATION.sub("", raw.lstrip("\ufeff"), count=1).strip()
    if not text:
        return None

    parser = etree.XMLParser(
        recover=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        encoding="utf-8",
    )
    try:
        return etree.fromstring(repair_entities(text).encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        logger.debug("XML 解析失败: %s", e)
        return None


def classify(root: etree._Element) -> FeedDocument:
    """
    识别文档方言.

    Raises:
        FormatError: 根元素不是 rss/channel、feed 或 rdf:RDF
    """
    tag = root.tag if isinstance(root.tag, str) else ""
    namespace, prefix, localname = split_tag(tag)

    if localname == "rss":
        channel = RssChannel.find_channel(root)
        if channel is not None:
            return RssChannel(channel)
    elif localname == "feed":
        return AtomFeed(root)
    elif localname == "RDF" and (namespace == NAMESPACES["rdf"] or prefix == "rdf"):
        return RdfChannel(root)

    msg = "Unknown feed format - could not find rss, feed, or rdf:RDF root element"
    raise FormatError(msg)


def parse_feed(raw: str, feed_url: str) -> ParsedFeed:
    """
    将 RSS 2.0 / Atom / RDF 文本解析为 ParsedFeed.

    Args:
        raw: 抓取到的正文
        feed_url: 抓取所用的 URL，缺少站点链接时作为 site_url

    Returns:
        归一化后的订阅源，条目保持文档原有顺序

    Raises:
        FormatError: 无法解析或无法识别的文档
    """
    root = _load_xml(raw or "")
    if root is None:
        msg = "Could not parse feed: document is not well-formed XML"
        raise FormatError(msg)

    document = classify(root)
    try:
        parsed = document.to_parsed(feed_url)
    except (ValueError, etree.LxmlError) as e:
        logger.warning("解析 %s 失败: %s", feed_url, e)
        msg = f"Could not parse feed: {e}"
        raise FormatError(msg) from e

    logger.debug(
        "解析 %s 完成: 方言=%s, 条目数=%d",
        feed_url,
        type(document).__name__,
        len(parsed.items),
    )
    return parsed
