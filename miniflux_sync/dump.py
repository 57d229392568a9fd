"""Export a State in the feed declaration format."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .models import BOOL_OPTIONS, STRING_OPTIONS, FeedOptions, State

logger = logging.getLogger(__name__)


def non_default_options(options: FeedOptions) -> Dict[str, Any]:
    """Return options that differ from Miniflux defaults (False / "")."""
    values: Dict[str, Any] = {}
    for name in BOOL_OPTIONS:
        if getattr(options, name):
            values[name] = True
    for name in STRING_OPTIONS:
        value = getattr(options, name)
        if value:
            values[name] = value
    return values


def build_dump_output(state: State) -> Dict[str, List[Any]]:
    """Convert ``state`` to the structure written to the YAML dump.

    Feeds without non-default options are written as bare URLs.
    """
    output: Dict[str, List[Any]] = {}
    feeds_by_category = state.feeds_by_category()
    for category in sorted(feeds_by_category):
        entries: List[Any] = []
        for feed in feeds_by_category[category]:
            options = non_default_options(feed.options)
            if options:
                entries.append({"url": feed.url, **options})
            else:
                entries.append(feed.url)
        output[category] = entries
    return output


def default_dump_path(now: Optional[datetime] = None) -> str:
    timestamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    return f"./miniflux-sync-remote-{timestamp}.yml"


def write_dump(state: State, path: str) -> Path:
    """Write ``state`` to ``path`` as YAML readable by the declaration loader."""
    location = Path(path)
    if location.parent and not location.parent.exists():
        location.parent.mkdir(parents=True, exist_ok=True)

    content = yaml.safe_dump(
        build_dump_output(state),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    # The dump may hold feed passwords and cookies; never expose it to others.
    fd = os.open(location, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)
    # Pre-existing files keep their mode through O_CREAT.
    os.chmod(location, 0o600)
    logger.info("Wrote export data to %s", location)
    return location
