"""Atom 解析（兼容 Atom 0.3）."""

from dataclasses import dataclass
from urllib.parse import urljoin

from lxml import etree

from feedinbox.parser.common import (
    ATOM_03_NS,
    NAMESPACES,
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

_reader = NodeReader(frozenset({"", NAMESPACES["atom"], ATOM_03_NS}))


@dataclass(frozen=True)
class AtomFeed:
    """<feed> 文档."""

    root: etree._Element

    def to_parsed(self, feed_url: str) -> ParsedFeed:
        root = self.root
        site_url = _alternate_href(root)
        feed_author = _author_name(root)

        return ParsedFeed(
            title=clean_title(_reader.text(root, "title"), UNKNOWN_FEED_TITLE),
            description=_reader.text(root, "subtitle", "tagline"),
            site_url=urljoin(feed_url, site_url) if site_url else feed_url,
            items=[
                _parse_entry(entry, feed_url, feed_author)
                for entry in _reader.children(root, "entry")
            ],
        )


def _alternate_href(node: etree._Element) -> str:
    """取 rel=alternate（或未声明 rel）的第一个 <link href>."""
    for link in _reader.children(node, "link"):
        rel = (link.get("rel") or "alternate").strip().lower()
        href = (link.get("href") or "").strip()
        if rel == "alternate" and href:
            return href
    return ""


def _author_name(node: etree._Element) -> str:
    author = _reader.child(node, "author")
    if author is None:
        return ""
    return _reader.text(author, "name")


def _parse_entry(
    entry: etree._Element, feed_url: str, feed_author: str
) -> ParsedItem:
    href = _alternate_href(entry)
    url = urljoin(feed_url, href) if href else ""
    raw_content = _reader.text(entry, "content", "summary")

    return build_item(
        guid=_reader.text(entry, "id") or url or fallback_guid(),
        url=url,
        title=_reader.text(entry, "title"),
        raw_content=raw_content,
        author=_author_name(entry) or _reader.text(entry, "dc:creator") or feed_author,
        image_url=resolve_image(_reader, entry, raw_content),
        published_at=parse_date(
            _reader.text(entry, "published", "updated", "issued", "modified")
        ),
    )
