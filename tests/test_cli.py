import logging
import textwrap
from types import SimpleNamespace

import pytest

from miniflux_sync import cli
import miniflux_sync.runner as runner
from miniflux_sync.api import MinifluxAPIError
from miniflux_sync.config import AppConfig, LoggingConfig


@pytest.fixture
def restore_root_handlers():
    original_handlers = list(logging.getLogger().handlers)
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
    yield
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        logging.getLogger().addHandler(handler)


@pytest.fixture
def captured_run(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    captured = {}

    def fake_execute(config):
        captured["config"] = config
        return SimpleNamespace(output_text="done", actions=[], applied=False)

    monkeypatch.setattr(cli, "execute", fake_execute)
    return captured


def test_configure_logging_defaults_to_console_only(restore_root_handlers):
    cli.configure_logging("INFO")

    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.StreamHandler) for handler in handlers)
    assert not any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_with_log_file_creates_file_handler(
    restore_root_handlers, tmp_path
):
    log_path = tmp_path / "logs" / "custom.log"
    cli.configure_logging("INFO", str(log_path))

    assert log_path.exists()
    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        cli.configure_logging("CHATTY")


def test_main_sync_uses_environment_credentials(monkeypatch, captured_run, capsys):
    monkeypatch.setenv("MINIFLUX_SYNC_ENDPOINT", "https://env.example.com")
    monkeypatch.setenv("MINIFLUX_SYNC_API_KEY", "env-key")

    exit_code = cli.main(["sync", "--path", "feeds.yml", "--dry-run"])

    assert exit_code == 0
    config = captured_run["config"]
    assert config.command == "sync"
    assert config.endpoint == "https://env.example.com"
    assert config.api_key == "env-key"
    assert config.feeds_file == "feeds.yml"
    assert config.dry_run is True
    assert capsys.readouterr().out.strip() == "done"


def test_main_loads_config_file(monkeypatch, captured_run):
    mock_app_config = AppConfig(
        endpoint="https://file.example.com",
        username="user",
        password="pass",
        feeds_file="/abs/feeds.yml",
        timeout=5,
    )
    monkeypatch.setattr(cli, "parse_app_config", lambda path: mock_app_config)

    exit_code = cli.main(["--config", "configs/test.xml", "sync"])

    assert exit_code == 0
    config = captured_run["config"]
    assert config.endpoint == "https://file.example.com"
    assert config.username == "user"
    assert config.feeds_file == "/abs/feeds.yml"
    assert config.timeout == 5
    assert config.dry_run is False


def test_main_env_file_populates_environment(monkeypatch, captured_run, tmp_path):
    env_file = tmp_path / "env.xml"
    env_file.write_text(
        textwrap.dedent(
            """
            <environment>
                <variable name="MINIFLUX_SYNC_ENDPOINT">https://xml.example.com</variable>
                <variable name="MINIFLUX_SYNC_API_KEY">xml-key</variable>
            </environment>
            """
        ),
        encoding="utf-8",
    )
    config_file = tmp_path / "config.xml"
    config_file.write_text("<config><env>env.xml</env></config>", encoding="utf-8")

    # main() writes into os.environ directly; register the keys for cleanup.
    monkeypatch.setenv("MINIFLUX_SYNC_ENDPOINT", "")
    monkeypatch.setenv("MINIFLUX_SYNC_API_KEY", "")

    exit_code = cli.main(["--config", str(config_file), "dump", "--path", "out.yml"])

    assert exit_code == 0
    config = captured_run["config"]
    assert config.endpoint == "https://xml.example.com"
    assert config.api_key == "xml-key"
    assert config.dump_path == "out.yml"
    assert config.feeds_file is None


def test_main_cli_overrides(monkeypatch):
    captured_log_config = {}

    def fake_configure(level, log_file=None):
        captured_log_config["level"] = level
        captured_log_config["file"] = log_file

    monkeypatch.setattr(cli, "configure_logging", fake_configure)

    mock_app_config = AppConfig(
        endpoint="https://file.example.com",
        api_key="file-key",
        logging=LoggingConfig(level="INFO", file="config.log"),
    )
    monkeypatch.setattr(cli, "parse_app_config", lambda path: mock_app_config)
    captured = {}

    def fake_execute(config):
        captured["config"] = config
        return SimpleNamespace(output_text="")

    monkeypatch.setattr(cli, "execute", fake_execute)

    cli.main(
        [
            "--config",
            "config.xml",
            "--log-level",
            "DEBUG",
            "--log-file",
            "cli.log",
            "--endpoint",
            "https://cli.example.com",
            "--api-key",
            "cli-key",
            "sync",
        ]
    )

    assert captured_log_config == {"level": "DEBUG", "file": "cli.log"}
    assert captured["config"].endpoint == "https://cli.example.com"
    assert captured["config"].api_key == "cli-key"


def test_main_missing_credentials_is_usage_error(monkeypatch, captured_run):
    monkeypatch.delenv("MINIFLUX_SYNC_ENDPOINT", raising=False)
    monkeypatch.delenv("MINIFLUX_SYNC_API_KEY", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["sync"])

    assert excinfo.value.code == 2


def test_main_returns_error_code_on_api_failure(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setenv("MINIFLUX_SYNC_ENDPOINT", "https://env.example.com")
    monkeypatch.setenv("MINIFLUX_SYNC_API_KEY", "env-key")

    def failing_execute(config):
        raise MinifluxAPIError("GET /feeds failed with status 401: Unauthorized")

    monkeypatch.setattr(cli, "execute", failing_execute)

    assert cli.main(["dump"]) == 1


def test_main_requires_subcommand():
    with pytest.raises(SystemExit):
        cli.main([])


def test_main_server_without_category_exits_with_error_code(
    monkeypatch, make_miniflux, tmp_path
):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setenv("MINIFLUX_SYNC_ENDPOINT", "https://env.example.com")
    monkeypatch.setenv("MINIFLUX_SYNC_API_KEY", "env-key")
    server = make_miniflux(
        feeds=[{"id": 1, "feed_url": "https://x", "category": None}]
    )
    monkeypatch.setattr(runner, "build_client", lambda config: server)

    exit_code = cli.main(["dump", "--path", str(tmp_path / "out.yml")])

    assert exit_code == 1
    assert not (tmp_path / "out.yml").exists()
