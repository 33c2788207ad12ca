"""订阅源抓取与发现."""

from feedinbox.fetcher.client import FeedFetcher
from feedinbox.fetcher.discovery import DiscoveredFeed, FeedDiscoverer

__all__ = [
    "DiscoveredFeed",
    "FeedDiscoverer",
    "FeedFetcher",
]
