"""RSS / Atom / RDF 订阅源解析."""

from feedinbox.parser.atom import AtomFeed
from feedinbox.parser.common import ParsedFeed, ParsedItem
from feedinbox.parser.feed_parser import (
    FeedDocument,
    classify,
    looks_like_feed,
    parse_feed,
)
from feedinbox.parser.rdf import RdfChannel
from feedinbox.parser.rss import RssChannel

__all__ = [
    "AtomFeed",
    "FeedDocument",
    "ParsedFeed",
    "ParsedItem",
    "RdfChannel",
    "RssChannel",
    "classify",
    "looks_like_feed",
    "parse_feed",
]
