"""Command-line interface for the miniflux_sync application."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import pprint
from pathlib import Path
from typing import List, Optional

from .api import MinifluxAPIError
from .config import AppConfig, parse_app_config, parse_env_config, resolve_credentials
from .runner import RunConfig, execute

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Synchronise Miniflux feeds and categories with a YAML file."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to an optional configuration XML file.",
    )
    parser.add_argument(
        "--endpoint",
        default=None,
        help="Miniflux base URL. Overrides config and environment.",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="Miniflux API key. Overrides config and environment.",
    )

    # Overrides for logging/debugging
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser(
        "sync", help="Update Miniflux to match the feed declaration."
    )
    sync_parser.add_argument(
        "--path",
        metavar="PATH",
        help="Path to the YAML feed declaration. Overrides config.",
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the planned actions without applying them.",
    )

    dump_parser = subparsers.add_parser(
        "dump", help="Export the current Miniflux feeds to a YAML file."
    )
    dump_parser.add_argument(
        "--path",
        metavar="PATH",
        help="Where to write the export. Defaults to a timestamped file.",
    )

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config) if args.config else AppConfig()

        # Load env config if present
        if app_config.env_file:
            env_vars = parse_env_config(app_config.env_file)
            os.environ.update(env_vars)

        # Determine logging settings (CLI overrides Config)
        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file

        configure_logging(log_level, log_file)

        app_config.endpoint = args.endpoint or app_config.endpoint
        app_config.api_key = args.api_key or app_config.api_key
        resolve_credentials(app_config)

        config = RunConfig(
            command=args.command,
            endpoint=app_config.endpoint,
            api_key=app_config.api_key,
            username=app_config.username,
            password=app_config.password,
            feeds_file=(args.path if args.command == "sync" else None)
            or app_config.feeds_file,
            dump_path=args.path if args.command == "dump" else None,
            dry_run=getattr(args, "dry_run", False),
            timeout=app_config.timeout,
        )

        config_dict = dataclasses.asdict(config)
        for secret in ("api_key", "password"):
            if config_dict.get(secret):
                config_dict[secret] = "***MASKED***"

        logger.info("Active Configuration:\n%s", pprint.pformat(config_dict))

        result = execute(config)
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError, LookupError, MinifluxAPIError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    print(result.output_text)
    return 0
