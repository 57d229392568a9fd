"""High-level orchestration for the miniflux_sync application."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .actions import Action
from .api import MinifluxClient, build_remote_state, fetch_data
from .apply import apply_actions
from .config import parse_feeds_config
from .diff import calculate_diff
from .dump import default_dump_path, write_dump

logger = logging.getLogger(__name__)

COMMANDS = ("sync", "dump")


@dataclass
class RunConfig:
    """Runtime options for executing the application."""

    command: str
    endpoint: str
    api_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    feeds_file: Optional[str] = None
    dump_path: Optional[str] = None
    dry_run: bool = False
    timeout: float = 30.0


@dataclass
class RunResult:
    """Returned data after executing the app."""

    output_text: str
    actions: List[Action] = field(default_factory=list)
    applied: bool = False


def build_client(config: RunConfig) -> MinifluxClient:
    return MinifluxClient(
        config.endpoint,
        api_key=config.api_key,
        username=config.username,
        password=config.password,
        timeout=config.timeout,
    )


def _format_actions(actions: List[Action]) -> str:
    return "\n".join(action.describe() for action in actions)


def _sync(config: RunConfig, client: MinifluxClient) -> RunResult:
    if not config.feeds_file:
        raise ValueError("No feed declaration file configured for sync.")

    local_state = parse_feeds_config(config.feeds_file)

    feeds, categories = fetch_data(client)
    remote_state = build_remote_state(feeds, categories)

    actions = calculate_diff(local_state, remote_state)
    if not actions:
        logger.info("No changes required")
        return RunResult(output_text="No changes required.")

    for action in actions:
        logger.info("Planned: %s", action.describe())

    if config.dry_run:
        logger.info("Dry run; %d actions not applied", len(actions))
        return RunResult(output_text=_format_actions(actions), actions=actions)

    apply_actions(client, actions, feeds, categories)
    logger.info("Applied %d actions", len(actions))
    return RunResult(
        output_text=_format_actions(actions), actions=actions, applied=True
    )


def _dump(config: RunConfig, client: MinifluxClient) -> RunResult:
    logger.info("Exporting data from Miniflux")
    feeds, categories = fetch_data(client)
    remote_state = build_remote_state(feeds, categories)

    path = config.dump_path
    if path:
        logger.info("Using export path %s", path)
    else:
        path = default_dump_path()

    location = write_dump(remote_state, path)
    return RunResult(output_text=str(location))


def execute(config: RunConfig, client: Optional[MinifluxClient] = None) -> RunResult:
    """Run the requested command and return the result payload."""
    if config.command not in COMMANDS:
        raise ValueError(f"Unknown command: {config.command}")

    client = client or build_client(config)

    if config.command == "sync":
        return _sync(config, client)
    return _dump(config, client)
