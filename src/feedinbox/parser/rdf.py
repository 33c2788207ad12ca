"""RDF / RSS 1.0 解析."""

from dataclasses import dataclass

from lxml import etree

from feedinbox.parser.common import (
    NAMESPACES,
    RSS_10_NS,
    RSS_090_NS,
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

_reader = NodeReader(frozenset({"", RSS_10_NS, RSS_090_NS}))

RDF_ABOUT = f"{{{NAMESPACES['rdf']}}}about"


@dataclass(frozen=True)
class RdfChannel:
    """<rdf:RDF> 文档，<item> 与 <channel> 同级."""

    root: etree._Element

    def to_parsed(self, feed_url: str) -> ParsedFeed:
        channel = _reader.child(self.root, "channel")
        if channel is None:
            title, description, link = "", "", ""
        else:
            title = _reader.text(channel, "title")
            description = _reader.text(channel, "description")
            link = _reader.text(channel, "link")

        return ParsedFeed(
            title=clean_title(title, UNKNOWN_FEED_TITLE),
            description=description,
            site_url=link or feed_url,
            items=[_parse_item(node) for node in _reader.children(self.root, "item")],
        )


def _parse_item(node: etree._Element) -> ParsedItem:
    link = _reader.text(node, "link")
    raw_content = _reader.text(node, "content:encoded", "description")

    return build_item(
        guid=(node.get(RDF_ABOUT) or "").strip() or link or fallback_guid(),
        url=link,
        title=_reader.text(node, "title"),
        raw_content=raw_content,
        author=_reader.text(node, "dc:creator"),
        image_url=resolve_image(_reader, node, raw_content),
        published_at=parse_date(_reader.text(node, "dc:date")),
    )
