"""Configuration loading for the feed declaration and the application."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set
from xml.etree import ElementTree as ET

import yaml

from .models import Feed, FeedOptions, State

logger = logging.getLogger(__name__)

ENV_ENDPOINT = "MINIFLUX_SYNC_ENDPOINT"
ENV_API_KEY = "MINIFLUX_SYNC_API_KEY"
ENV_USERNAME = "MINIFLUX_SYNC_USERNAME"
ENV_PASSWORD = "MINIFLUX_SYNC_PASSWORD"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    feeds_file: Optional[str] = None
    env_file: Optional[str] = None
    timeout: float = 30.0
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _parse_feed_entry(category: str, entry: object) -> Feed:
    if isinstance(entry, str):
        return Feed(url=entry)

    if not isinstance(entry, dict):
        raise ValueError(
            f"Feed entry in category '{category}' must be a URL or a mapping."
        )

    url = entry.get("url")
    if not url or not isinstance(url, str):
        raise ValueError(f"Feed entry in category '{category}' must have a url field.")

    try:
        options = FeedOptions.from_mapping(entry)
    except ValueError as exc:
        raise ValueError(f"Invalid options for feed '{url}': {exc}") from exc
    return Feed(url=url, options=options)


def parse_feeds_config(path: str) -> State:
    """Parse the YAML feed declaration and return the local state."""
    logger.info("Loading feed declaration from %s", path)
    with open(path, "r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ValueError(f"Feed declaration is not valid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("Feed declaration must map category titles to feed lists.")

    feeds_by_category: Dict[str, List[Feed]] = {}
    seen_urls: Set[str] = set()

    for category, entries in raw.items():
        title = str(category)
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise ValueError(f"Category '{title}' must contain a list of feeds.")

        feeds = feeds_by_category.setdefault(title, [])
        for entry in entries:
            feed = _parse_feed_entry(title, entry)
            if feed.url in seen_urls:
                raise ValueError(f'duplicate url found across categories: "{feed.url}"')
            seen_urls.add(feed.url)
            feeds.append(feed)
            logger.debug("Registered feed '%s' (category='%s')", feed.url, title)

    logger.info(
        "Loaded %d feeds in %d categories from declaration",
        len(seen_urls),
        len(feeds_by_category),
    )
    return State(feeds_by_category)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def parse_env_config(path: str) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars = {}
    if not path:
        return env_vars

    logger.info("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
        root = tree.getroot()
        for var in root.findall("variable"):
            name = var.attrib.get("name")
            value = var.text
            if name and value:
                env_vars[name] = value.strip()
    except Exception as exc:
        logger.warning("Failed to load environment config: %s", exc)
        raise

    return env_vars


def _text(root: ET.Element, tag: str) -> Optional[str]:
    value = root.findtext(tag)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    feeds = _text(root, "feeds")
    env = _text(root, "env")

    timeout_text = _text(root, "timeout")
    try:
        timeout = float(timeout_text) if timeout_text else 30.0
    except ValueError as exc:
        raise ValueError(f"Invalid <timeout> value: {timeout_text}") from exc
    if timeout <= 0:
        raise ValueError("<timeout> must be positive.")

    # Logging
    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO").strip()
        log_file = _text(log_node, "file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    return AppConfig(
        endpoint=_text(root, "endpoint"),
        api_key=_text(root, "api-key"),
        username=_text(root, "username"),
        password=_text(root, "password"),
        feeds_file=_resolve_path(config_path, feeds) if feeds else None,
        env_file=_resolve_path(config_path, env) if env else None,
        timeout=timeout,
        logging=logging_config,
    )


def resolve_credentials(
    app_config: AppConfig, environ: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """Fill connection settings missing from the config file from the environment."""
    env = os.environ if environ is None else environ

    app_config.endpoint = app_config.endpoint or env.get(ENV_ENDPOINT)
    app_config.api_key = app_config.api_key or env.get(ENV_API_KEY)
    app_config.username = app_config.username or env.get(ENV_USERNAME)
    app_config.password = app_config.password or env.get(ENV_PASSWORD)

    if not app_config.endpoint:
        raise ValueError(
            f"Miniflux endpoint is not configured. Set <endpoint> or {ENV_ENDPOINT}."
        )
    if not app_config.api_key and not (app_config.username and app_config.password):
        raise ValueError(
            f"Miniflux credentials are not configured. Set {ENV_API_KEY} "
            f"or both {ENV_USERNAME} and {ENV_PASSWORD}."
        )
    return app_config
