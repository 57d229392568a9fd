"""Execute diff actions against a Miniflux instance."""

from __future__ import annotations

import logging
from typing import Iterable, List

from .actions import (
    Action,
    CreateCategory,
    CreateFeed,
    DeleteCategory,
    DeleteFeed,
    UpdateFeed,
)
from .api import MinifluxClient

logger = logging.getLogger(__name__)

_KNOWN_ACTIONS = (CreateCategory, CreateFeed, UpdateFeed, DeleteCategory, DeleteFeed)


class ReferenceNotFoundError(LookupError):
    """Raised when a category title or feed URL has no matching server object."""


def find_category_id(title: str, categories: List[dict]) -> int:
    for category in categories:
        if category.get("title") == title:
            return category["id"]
    raise ReferenceNotFoundError(f'category not found: "{title}"')


def find_feed_id(url: str, category_title: str, feeds: List[dict]) -> int:
    """Return the id of the feed with ``url`` filed under ``category_title``.

    The same URL may be subscribed in several categories on the server, so
    the category is part of the match.
    """
    for feed in feeds:
        category = feed.get("category") or {}
        if feed.get("feed_url") == url and category.get("title") == category_title:
            return feed["id"]
    raise ReferenceNotFoundError(
        f'feed not found: "{url}" in category "{category_title}"'
    )


def _remove_by_id(items: List[dict], item_id: int) -> None:
    for index, item in enumerate(items):
        if item.get("id") == item_id:
            del items[index]
            return


def apply_actions(
    client: MinifluxClient,
    actions: Iterable[Action],
    feeds: List[dict],
    categories: List[dict],
) -> None:
    """Apply ``actions`` in order, stopping at the first failure.

    ``feeds`` and ``categories`` are the server listings fetched before the
    diff. They are updated in place as objects are created and deleted so
    that later actions can resolve ids produced by earlier ones.
    """
    logger.info("Performing actions")

    for action in actions:
        if not isinstance(action, _KNOWN_ACTIONS):
            raise TypeError(f'unknown action type: "{type(action).__name__}"')

        logger.info("Applying: %s", action.describe())

        if isinstance(action, CreateCategory):
            category = client.create_category(action.category_title)
            categories.append(category)

        elif isinstance(action, CreateFeed):
            category_id = find_category_id(action.category_title, categories)
            feed_id = client.create_feed(action.feed_url, category_id, action.options)
            feeds.append(client.feed(feed_id))

        elif isinstance(action, UpdateFeed):
            feed_id = find_feed_id(action.feed_url, action.category_title, feeds)
            client.update_feed(feed_id, action.options)

        elif isinstance(action, DeleteCategory):
            category_id = find_category_id(action.category_title, categories)
            client.delete_category(category_id)
            _remove_by_id(categories, category_id)

        elif isinstance(action, DeleteFeed):
            feed_id = find_feed_id(action.feed_url, action.category_title, feeds)
            client.delete_feed(feed_id)
            _remove_by_id(feeds, feed_id)
