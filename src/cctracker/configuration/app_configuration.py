from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from cctracker.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_INTERVAL_SECONDS = 300.0
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_THREAD_URL_BASE = "https://www.smogon.com/forums/threads/"
DEFAULT_FORUM_API_URL = "https://www.smogon.com/forums/api"
DEFAULT_DATABASE_PATH = "./data/cctracker.db"


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the C&C tracker and database settings. Uses fcntl file
    locks so a config rewrite by another process is never read half-written.
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
            logger.warning("[APP CONFIGURATION] Config %s is not a mapping; using defaults", self.config_path)
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        Callers should not mutate it; use get(...) or the typed properties.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # C&C status tracking
    # --------------------------
    @property
    def cc_enabled(self) -> bool:
        """Whether the C&C polling loop should run. Defaults to True."""
        return bool(self._section("cc_status").get("enabled", True))

    @property
    def cc_interval_seconds(self) -> float:
        """Seconds between reconciliation cycles. Default is 300 (5 minutes)."""
        return float(self._section("cc_status").get("interval_seconds", DEFAULT_INTERVAL_SECONDS))

    @property
    def cc_fetch_timeout_seconds(self) -> float:
        """Upper bound on a single snapshot fetch before it counts as failed."""
        return float(self._section("cc_status").get("fetch_timeout_seconds", DEFAULT_FETCH_TIMEOUT_SECONDS))

    @property
    def forum_api_url(self) -> str:
        value = self._section("cc_status").get("forum_api_url") or DEFAULT_FORUM_API_URL
        return str(value).rstrip("/")

    @property
    def thread_url_base(self) -> str:
        """Base URL that thread ids are appended to in alert messages.

        Always ends with a slash.
        """
        value = str(self._section("cc_status").get("thread_url_base") or DEFAULT_THREAD_URL_BASE)
        return value if value.endswith("/") else value + "/"

    @property
    def prefix_labels(self) -> Dict[int, str]:
        """Forum prefix id -> label overrides for payloads that only carry an id."""
        raw = self._section("cc_status").get("prefix_labels", {})
        if not isinstance(raw, dict):
            return {}
        labels: Dict[int, str] = {}
        for key, value in raw.items():
            try:
                labels[int(key)] = str(value)
            except (TypeError, ValueError):
                logger.warning("[APP CONFIGURATION] Ignoring non-numeric prefix id %r", key)
        return labels

    # --------------------------
    # Database
    # --------------------------
    @property
    def database_path(self) -> Path:
        value = self._section("database").get("path") or DEFAULT_DATABASE_PATH
        return Path(str(value)).resolve()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
