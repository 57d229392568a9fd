"""Reconciling operations produced by the diff and consumed by the applier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple, Union

from .models import FeedOptions


@dataclass(frozen=True)
class CreateCategory:
    category_title: str

    def describe(self) -> str:
        return f"create category '{self.category_title}'"


@dataclass(frozen=True)
class DeleteCategory:
    category_title: str

    def describe(self) -> str:
        return f"delete category '{self.category_title}'"


@dataclass(frozen=True)
class CreateFeed:
    category_title: str
    feed_url: str
    options: FeedOptions = field(default_factory=FeedOptions)

    def describe(self) -> str:
        return f"create feed '{self.feed_url}' in category '{self.category_title}'"


@dataclass(frozen=True)
class UpdateFeed:
    category_title: str
    feed_url: str
    options: FeedOptions = field(default_factory=FeedOptions)

    def describe(self) -> str:
        changed = ", ".join(sorted(self.options.as_dict()))
        return (
            f"update feed '{self.feed_url}' in category '{self.category_title}'"
            f" ({changed})"
        )


@dataclass(frozen=True)
class DeleteFeed:
    category_title: str
    feed_url: str

    def describe(self) -> str:
        return f"delete feed '{self.feed_url}' from category '{self.category_title}'"


Action = Union[CreateCategory, DeleteCategory, CreateFeed, UpdateFeed, DeleteFeed]

# Feeds leave a category before it is deleted; a category exists before feeds
# are created in it.
_EXECUTION_RANK = {
    DeleteFeed: 0,
    DeleteCategory: 1,
    CreateCategory: 2,
    CreateFeed: 3,
    UpdateFeed: 4,
}


def sort_key(action: Action) -> Tuple[int, str, str]:
    """Return the execution order key for ``action``."""
    rank = _EXECUTION_RANK.get(type(action))
    if rank is None:
        raise TypeError(f"Unknown action type: {type(action).__name__}")
    return rank, action.category_title, getattr(action, "feed_url", "")


def sort_actions(actions: Iterable[Action]) -> List[Action]:
    return sorted(actions, key=sort_key)
