from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from modwarden.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DATABASE_PATH = "./data/bot.db"

DEFAULT_LOG_CHANNEL_NAMES = [
    "logs",
    "mod-logs",
    "moderation-logs",
    "audit-logs",
    "staff-logs",
    "mod-log",
]

DEFAULT_WARN_ROLES = [
    "Community Moderator",
    "Trial Community Moderator",
    "Trial VC Moderator",
    "VC Moderator",
    "Community Manager",
    "Administrator",
]

DEFAULT_PRESENCE_ACTIVITY = "your server"


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the sections ModWarden reads. Every shortcut falls
    back to a default when its section is missing or malformed, so a bot
    without a config file still starts.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    @staticmethod
    def _string_list(value: Any, default: List[str]) -> List[str]:
        if not isinstance(value, list):
            return list(default)
        return [str(item) for item in value if item is not None]

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file and return the loaded mapping ({} on error)."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Location of the SQLite infraction ledger, relative to the working directory."""
        value = self._section("database").get("path") or DEFAULT_DATABASE_PATH
        return Path(str(value)).resolve()

    @property
    def log_channel_names(self) -> List[str]:
        """Channel names searched, in order, for the moderation audit log."""
        return self._string_list(self._section("logging").get("channel_names"), DEFAULT_LOG_CHANNEL_NAMES)

    @property
    def warn_roles(self) -> List[str]:
        """Role name fragments that allow a member to warn and to read infractions."""
        return self._string_list(self._section("moderation").get("warn_roles"), DEFAULT_WARN_ROLES)

    @property
    def nickname_roles(self) -> List[str]:
        """Role name fragments that allow a member to change other members' nicknames."""
        return self._string_list(self._section("moderation").get("nickname_roles"), [])

    @property
    def presence_activity(self) -> str:
        value = self._section("presence").get("activity")
        return str(value) if value else DEFAULT_PRESENCE_ACTIVITY

    @property
    def handler_packages(self) -> Dict[str, str]:
        """Per-kind overrides for handler discovery, e.g. ``{"command": "my_bot.commands"}``.

        Keys are lower-cased handler kind names; values are dotted package names.
        """
        packages = self._section("handlers").get("packages", {})
        if not isinstance(packages, dict):
            return {}
        return {str(kind).lower(): str(package) for kind, package in packages.items() if package}


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
