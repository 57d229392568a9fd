import itertools
import json

import pytest

from miniflux_sync.api import MinifluxAPIError


class FakeMiniflux:
    """In-memory stand-in for the client methods used by the applier and runner."""

    def __init__(self, categories=None, feeds=None):
        self._ids = itertools.count(100)
        self.categories_data = [dict(item) for item in (categories or [])]
        self.feeds_data = [dict(item) for item in (feeds or [])]
        self.calls = []
        self.fail_on = None

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_on == name:
            raise MinifluxAPIError(f"{name} failed", status_code=500)

    def feeds(self):
        return [dict(item) for item in self.feeds_data]

    def categories(self):
        return [dict(item) for item in self.categories_data]

    def feed(self, feed_id):
        for feed in self.feeds_data:
            if feed["id"] == feed_id:
                return dict(feed)
        raise MinifluxAPIError("not found", status_code=404)

    def create_category(self, title):
        self._record("create_category", title)
        category = {"id": next(self._ids), "title": title}
        self.categories_data.append(category)
        return dict(category)

    def delete_category(self, category_id):
        self._record("delete_category", category_id)
        self.categories_data = [
            item for item in self.categories_data if item["id"] != category_id
        ]

    def create_feed(self, feed_url, category_id, options=None):
        self._record("create_feed", feed_url, category_id, options)
        category = next(
            item for item in self.categories_data if item["id"] == category_id
        )
        feed = {
            "id": next(self._ids),
            "feed_url": feed_url,
            "category": dict(category),
        }
        if options is not None:
            feed.update(options.as_dict())
        self.feeds_data.append(feed)
        return feed["id"]

    def update_feed(self, feed_id, options):
        self._record("update_feed", feed_id, options)
        for feed in self.feeds_data:
            if feed["id"] == feed_id:
                feed.update(options.as_dict())
                return dict(feed)
        raise MinifluxAPIError("not found", status_code=404)

    def delete_feed(self, feed_id):
        self._record("delete_feed", feed_id)
        self.feeds_data = [item for item in self.feeds_data if item["id"] != feed_id]


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        if payload is not None:
            self.text = json.dumps(payload)
        else:
            self.text = text or ""
        self.content = self.text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Records requests and replays queued responses."""

    def __init__(self, responses=None):
        self.headers = {}
        self.auth = None
        self.requests = []
        self.responses = list(responses or [])

    def request(self, method, url, json=None, timeout=None):
        self.requests.append(
            {"method": method, "url": url, "json": json, "timeout": timeout}
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_miniflux():
    return FakeMiniflux(
        categories=[{"id": 1, "title": "Tech"}, {"id": 2, "title": "News"}],
        feeds=[
            {
                "id": 10,
                "feed_url": "https://tech.example.com/feed.xml",
                "category": {"id": 1, "title": "Tech"},
                "crawler": False,
            },
            {
                "id": 11,
                "feed_url": "https://news.example.com/rss",
                "category": {"id": 2, "title": "News"},
                "crawler": True,
                "user_agent": "Custom UA",
            },
        ],
    )


@pytest.fixture
def write_yaml(tmp_path):
    def _write(content, name="feeds.yml"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_miniflux():
    return FakeMiniflux
