from pathlib import Path

import pytest

from cctracker.configuration.app_configuration import (
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_FORUM_API_URL,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_THREAD_URL_BASE,
    AppConfig,
)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    config_path.write_text(
        """
cc_status:
  enabled: false
  interval_seconds: 120
  fetch_timeout_seconds: 10
  forum_api_url: https://forum.example/api/
  thread_url_base: https://forum.example/threads
  prefix_labels:
    3: Quality Control
    "7": Copyediting
    bogus: WIP
database:
  path: {db}
""".format(db=tmp_path / "cc.db"),
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.cc_enabled is False
    assert config.cc_interval_seconds == pytest.approx(120.0)
    assert config.cc_fetch_timeout_seconds == pytest.approx(10.0)
    assert config.forum_api_url == "https://forum.example/api"
    assert config.thread_url_base == "https://forum.example/threads/"
    assert config.prefix_labels == {3: "Quality Control", 7: "Copyediting"}
    assert config.database_path == (tmp_path / "cc.db").resolve()
    assert config.get("cc_status")["interval_seconds"] == 120


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.cc_enabled is True
    assert config.cc_interval_seconds == DEFAULT_INTERVAL_SECONDS
    assert config.cc_fetch_timeout_seconds == DEFAULT_FETCH_TIMEOUT_SECONDS
    assert config.forum_api_url == DEFAULT_FORUM_API_URL
    assert config.thread_url_base == DEFAULT_THREAD_URL_BASE
    assert config.prefix_labels == {}
    assert config.database_path.name == "cctracker.db"


@pytest.mark.parametrize("content", ["- just\n- a list\n", "cc_status: 5\n", ": : not yaml ["])
def test_app_config_bad_content_uses_defaults(config_path: Path, content: str) -> None:
    config_path.write_text(content, encoding="utf-8")

    config = AppConfig(config_path)

    assert config.cc_interval_seconds == DEFAULT_INTERVAL_SECONDS
    assert config.prefix_labels == {}


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("cc_status:\n  interval_seconds: 60\n", encoding="utf-8")
    config = AppConfig(config_path)
    assert config.cc_interval_seconds == 60

    config_path.write_text("cc_status:\n  interval_seconds: 90\n", encoding="utf-8")
    config.reload()
    assert config.cc_interval_seconds == 90
