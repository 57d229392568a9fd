"""Miniflux REST client and conversion of server data into a State."""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from .models import BOOL_OPTIONS, STRING_OPTIONS, Feed, FeedOptions, State

logger = logging.getLogger(__name__)


class MinifluxAPIError(RuntimeError):
    """Raised when a Miniflux API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteStateError(RuntimeError):
    """Raised when server data breaks an assumption the sync relies on."""


class MinifluxClient:
    """Minimal client for the parts of the Miniflux API used by the sync."""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Accept": "application/json", "User-Agent": "miniflux-sync"}
        )
        if api_key:
            self.session.headers["X-Auth-Token"] = api_key
        elif username and password:
            self.session.auth = (username, password)

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = f"{self.base_url}/v1{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method, url, json=payload, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise MinifluxAPIError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise MinifluxAPIError(
                f"{method} {path} failed with status {response.status_code}: "
                f"{_error_message(response)}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MinifluxAPIError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
            ) from exc

    def feeds(self) -> List[dict]:
        return self._request("GET", "/feeds") or []

    def categories(self) -> List[dict]:
        return self._request("GET", "/categories") or []

    def feed(self, feed_id: int) -> dict:
        return self._request("GET", f"/feeds/{feed_id}")

    def create_category(self, title: str) -> dict:
        return self._request("POST", "/categories", {"title": title})

    def delete_category(self, category_id: int) -> None:
        self._request("DELETE", f"/categories/{category_id}")

    def create_feed(
        self, feed_url: str, category_id: int, options: Optional[FeedOptions] = None
    ) -> int:
        """Subscribe to ``feed_url`` and return the new feed id."""
        payload: Dict[str, Any] = {"feed_url": feed_url, "category_id": category_id}
        if options is not None:
            payload.update(options.as_dict())
        result = self._request("POST", "/feeds", payload)
        try:
            return int(result["feed_id"])
        except (TypeError, KeyError, ValueError) as exc:
            raise MinifluxAPIError("Feed creation response has no feed_id") from exc

    def update_feed(self, feed_id: int, options: FeedOptions) -> dict:
        return self._request("PUT", f"/feeds/{feed_id}", options.as_dict())

    def delete_feed(self, feed_id: int) -> None:
        self._request("DELETE", f"/feeds/{feed_id}")


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason or "unknown error"
    if isinstance(body, dict) and body.get("error_message"):
        return str(body["error_message"])
    return response.reason or "unknown error"


def fetch_data(client: MinifluxClient) -> Tuple[List[dict], List[dict]]:
    """Fetch feeds and categories concurrently."""
    logger.info("Fetching feeds and categories from Miniflux")
    with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
        feeds_future = executor.submit(client.feeds)
        categories_future = executor.submit(client.categories)
        feeds = feeds_future.result()
        categories = categories_future.result()

    logger.info("Fetched %d feeds and %d categories", len(feeds), len(categories))
    return feeds, categories


def extract_feed_options(feed: dict) -> FeedOptions:
    """Read the configurable options of a feed returned by the API.

    Booleans are always set. Strings are only set when non-empty, since the
    API reports unset strings as "".
    """
    values: Dict[str, Any] = {}
    for name in BOOL_OPTIONS:
        values[name] = bool(feed.get(name, False))
    for name in STRING_OPTIONS:
        value = feed.get(name)
        if value:
            values[name] = str(value)
    return FeedOptions(**values)


def build_remote_state(feeds: List[dict], categories: List[dict]) -> State:
    """Build the remote state from API feed and category listings."""
    feeds_by_category: Dict[str, List[Feed]] = {
        category["title"]: [] for category in categories
    }

    for feed in feeds:
        category = feed.get("category")
        if not category:
            raise RemoteStateError(f"feed has no category: {feed.get('feed_url')}")
        feeds_by_category.setdefault(category["title"], []).append(
            Feed(url=feed["feed_url"], options=extract_feed_options(feed))
        )

    state = State(feeds_by_category)
    for url in state.duplicate_feed_urls():
        logger.warning("Feed '%s' appears more than once on the server", url)
    return state
