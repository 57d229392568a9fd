"""Compute the actions that bring the remote state in line with the local one."""

from __future__ import annotations

import logging
from typing import List

from .actions import (
    Action,
    CreateCategory,
    CreateFeed,
    DeleteCategory,
    DeleteFeed,
    UpdateFeed,
    sort_actions,
)
from .models import FeedOptions, State

logger = logging.getLogger(__name__)


def needs_update(local: FeedOptions, remote: FeedOptions) -> bool:
    """Return True when the locally declared options are not reflected remotely."""
    if local.is_empty():
        return False
    return not local.equals_from(remote)


def calculate_diff(local: State, remote: State) -> List[Action]:
    """Return the ordered actions turning ``remote`` into ``local``.

    Feeds are matched on their (category, url) pair, so a feed that moved to
    another category is deleted from the old one and created in the new one.
    Categories are only deleted when they are no longer declared locally.
    """
    actions: List[Action] = []

    for category_title, feed_urls in remote.feed_urls_by_category().items():
        for feed_url in feed_urls:
            if not local.feed_exists(feed_url, category_title):
                actions.append(DeleteFeed(category_title, feed_url))

    for category_title in remote.category_titles():
        if not local.category_exists(category_title):
            actions.append(DeleteCategory(category_title))

    for category_title in local.category_titles():
        if not remote.category_exists(category_title):
            actions.append(CreateCategory(category_title))

    local_feeds = local.feeds_by_category()

    for category_title, feeds in local_feeds.items():
        for feed in feeds:
            if not remote.feed_exists(feed.url, category_title):
                actions.append(CreateFeed(category_title, feed.url, feed.options))

    for category_title, feeds in local_feeds.items():
        for feed in feeds:
            if not remote.feed_exists(feed.url, category_title):
                continue
            if needs_update(feed.options, remote.feed_options(feed.url)):
                actions.append(UpdateFeed(category_title, feed.url, feed.options))

    ordered = sort_actions(actions)
    logger.debug("Calculated %d actions", len(ordered))
    return ordered
