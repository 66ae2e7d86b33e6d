from pathlib import Path

import pytest
import yaml

from modwarden.configuration.app_configuration import (
    DEFAULT_LOG_CHANNEL_NAMES,
    DEFAULT_WARN_ROLES,
    AppConfig,
)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    config_payload = {
        "database": {"path": str(tmp_path / "ledger.db")},
        "logging": {"channel_names": ["audit"]},
        "moderation": {"warn_roles": ["Staff"], "nickname_roles": ["Helper"]},
        "presence": {"activity": "the rules"},
        "handlers": {"packages": {"Command": "my_bot.commands"}},
    }
    config_path.write_text(yaml.safe_dump(config_payload), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.database_path == (tmp_path / "ledger.db").resolve()
    assert config.log_channel_names == ["audit"]
    assert config.warn_roles == ["Staff"]
    assert config.nickname_roles == ["Helper"]
    assert config.presence_activity == "the rules"
    assert config.handler_packages == {"command": "my_bot.commands"}
    assert config.get("presence") == {"activity": "the rules"}


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.database_path.name == "bot.db"
    assert config.log_channel_names == DEFAULT_LOG_CHANNEL_NAMES
    assert config.warn_roles == DEFAULT_WARN_ROLES
    assert config.nickname_roles == []
    assert config.presence_activity == "your server"
    assert config.handler_packages == {}


def test_app_config_invalid_yaml_returns_defaults(config_path: Path) -> None:
    config_path.write_text("moderation: [unclosed", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}
    assert config.warn_roles == DEFAULT_WARN_ROLES


def test_app_config_non_mapping_document_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_app_config_malformed_sections_fall_back(config_path: Path) -> None:
    config_path.write_text(
        yaml.safe_dump({"moderation": "oops", "logging": {"channel_names": "logs"}, "handlers": {"packages": []}}),
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.warn_roles == DEFAULT_WARN_ROLES
    assert config.log_channel_names == DEFAULT_LOG_CHANNEL_NAMES
    assert config.handler_packages == {}


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"presence": {"activity": "first"}}), encoding="utf-8")
    config = AppConfig(config_path)
    assert config.presence_activity == "first"

    config_path.write_text(yaml.safe_dump({"presence": {"activity": "second"}}), encoding="utf-8")
    config.reload()

    assert config.presence_activity == "second"


def test_shipped_config_file_is_valid() -> None:
    shipped = Path(__file__).resolve().parents[1] / "config" / "app_config.yml"

    config = AppConfig(shipped)

    assert config.data
    assert config.warn_roles == DEFAULT_WARN_ROLES
    assert config.nickname_roles == ["Moderator"]
    assert config.handler_packages == {}
