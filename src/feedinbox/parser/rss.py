"""RSS 2.0 解析."""

from dataclasses import dataclass

from lxml import etree

from feedinbox.parser.common import (
    UNKNOWN_FEED_TITLE,
    NodeReader,
    ParsedFeed,
    ParsedItem,
    build_item,
    clean_title,
    fallback_guid,
    parse_date,
    resolve_image,
)

_reader = NodeReader(frozenset({""}))


@dataclass(frozen=True)
class RssChannel:
    """<rss><channel> 文档."""

    channel: etree._Element

    @classmethod
    def find_channel(cls, root: etree._Element) -> etree._Element | None:
        return _reader.child(root, "channel")

    def to_parsed(self, feed_url: str) -> ParsedFeed:
        channel = self.channel
        return ParsedFeed(
            title=clean_title(_reader.text(channel, "title"), UNKNOWN_FEED_TITLE),
            description=_reader.text(channel, "description"),
            site_url=_reader.text(channel, "link") or feed_url,
            items=[_parse_item(node) for node in _reader.children(channel, "item")],
        )


def _parse_item(node: etree._Element) -> ParsedItem:
    link = _reader.text(node, "link")
    raw_content = _reader.text(node, "content:encoded", "description")

    return build_item(
        guid=_reader.text(node, "guid") or link or fallback_guid(),
        url=link,
        title=_reader.text(node, "title"),
        raw_content=raw_content,
        author=_reader.text(node, "author", "dc:creator"),
        image_url=resolve_image(_reader, node, raw_content),
        published_at=parse_date(_reader.text(node, "pubDate", "dc:date")),
    )
