"""Shared data models for miniflux_sync."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

BOOL_OPTIONS = (
    "crawler",
    "disabled",
    "ignore_http_cache",
    "fetch_via_proxy",
    "allow_self_signed_certificates",
    "disable_http2",
    "hide_globally",
)

STRING_OPTIONS = (
    "username",
    "password",
    "user_agent",
    "cookie",
    "scraper_rules",
    "rewrite_rules",
    "blocklist_rules",
    "keeplist_rules",
)


@dataclass(frozen=True)
class FeedOptions:
    """Per-feed settings where ``None`` means "not specified".

    A value of ``False`` or ``""`` is an explicit setting and is compared like
    any other value.
    """

    crawler: Optional[bool] = None
    username: Optional[str] = None
    password: Optional[str] = None
    user_agent: Optional[str] = None
    cookie: Optional[str] = None
    disabled: Optional[bool] = None
    ignore_http_cache: Optional[bool] = None
    fetch_via_proxy: Optional[bool] = None
    allow_self_signed_certificates: Optional[bool] = None
    disable_http2: Optional[bool] = None
    scraper_rules: Optional[str] = None
    rewrite_rules: Optional[str] = None
    blocklist_rules: Optional[str] = None
    keeplist_rules: Optional[str] = None
    hide_globally: Optional[bool] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "FeedOptions":
        """Build options from YAML/API style keys, ignoring unknown keys."""
        values: Dict[str, Any] = {}
        for name in BOOL_OPTIONS:
            value = mapping.get(name)
            if value is None:
                continue
            if not isinstance(value, bool):
                raise ValueError(f"Option '{name}' must be a boolean, got {value!r}")
            values[name] = value
        for name in STRING_OPTIONS:
            value = mapping.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"Option '{name}' must be a string, got {value!r}")
            values[name] = value
        return cls(**values)

    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is None for item in fields(self))

    def equals_from(self, other: "FeedOptions") -> bool:
        """Compare against ``other`` using only the options set on ``self``."""
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            if getattr(other, item.name) != value:
                return False
        return True

    def as_dict(self) -> Dict[str, Any]:
        """Return only the options that are set."""
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class Feed:
    """A subscription identified by its URL."""

    url: str
    options: FeedOptions = field(default_factory=FeedOptions)


class State:
    """Categorized feeds as declared locally or observed on the server.

    The state is built once and never mutated afterwards. Feeds and feed URLs
    are two views over the same data.
    """

    def __init__(
        self, feeds_by_category: Optional[Mapping[str, Iterable[Feed]]] = None
    ) -> None:
        feeds: Dict[str, Tuple[Feed, ...]] = {}
        urls: Dict[str, Tuple[str, ...]] = {}
        for title, category_feeds in (feeds_by_category or {}).items():
            feeds[title] = tuple(category_feeds)
            urls[title] = tuple(feed.url for feed in feeds[title])
        self._feeds = feeds
        self._urls = urls

    @classmethod
    def empty(cls) -> "State":
        return cls()

    @classmethod
    def from_urls(cls, urls_by_category: Mapping[str, Iterable[str]]) -> "State":
        """Build a state whose feeds carry no options."""
        return cls(
            {
                title: [Feed(url=url) for url in urls]
                for title, urls in urls_by_category.items()
            }
        )

    def category_exists(self, title: str) -> bool:
        return title in self._urls

    def feed_exists(self, url: str, title: str) -> bool:
        return url in self._urls.get(title, ())

    def category_titles(self) -> Set[str]:
        return set(self._urls)

    def feed_options(self, url: str) -> FeedOptions:
        """Return the options of the first feed with ``url``, or empty options."""
        for category_feeds in self._feeds.values():
            for feed in category_feeds:
                if feed.url == url:
                    return feed.options
        return FeedOptions()

    def feeds_by_category(self) -> Dict[str, List[Feed]]:
        return {title: list(feeds) for title, feeds in self._feeds.items()}

    def feed_urls_by_category(self) -> Dict[str, List[str]]:
        return {title: list(urls) for title, urls in self._urls.items()}

    def feed_urls(self) -> List[str]:
        return [url for urls in self._urls.values() for url in urls]

    def duplicate_feed_urls(self) -> List[str]:
        seen: Set[str] = set()
        duplicates: List[str] = []
        for url in self.feed_urls():
            if url in seen and url not in duplicates:
                duplicates.append(url)
            seen.add(url)
        return duplicates

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return self._feeds == other._feeds

    def __repr__(self) -> str:
        return f"State({self.feed_urls_by_category()!r})"
