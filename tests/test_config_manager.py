"""ConfigManager と create_client のテスト"""

import json
import logging

import pytest

from pivotal_tracker import (
    AppConfig, ConfigManager, ConfigurationError, LoggingConfig, PivotalTrackerClient,
    TrackerConfig, configure_logging, create_client
)
from pivotal_tracker.utils.logger import get_log_files


@pytest.fixture
def manager(tmp_path) -> ConfigManager:
    return ConfigManager(str(tmp_path / "config"))


def test_load_returns_defaults_when_file_missing(manager):
    config = manager.load_config()

    assert manager.config_exists() is False
    assert config.tracker.api_token == ""
    assert config.tracker.base_url == "https://www.pivotaltracker.com/services/v5"
    assert config.tracker.timeout == 30
    assert config.logging.level == "INFO"


def test_save_and_load_round_trip_encrypts_token(manager):
    config = AppConfig(tracker=TrackerConfig(api_token="secret-token", project_id="42"))

    manager.save_config(config)

    raw = json.loads(manager.config_file.read_text(encoding='utf-8'))
    assert raw["tracker"]["api_token"] != "secret-token"
    assert raw["tracker"]["project_id"] == "42"

    loaded = manager.load_config()
    assert loaded.tracker.api_token == "secret-token"
    assert loaded.tracker.project_id == "42"


def test_save_does_not_mutate_config(manager):
    config = AppConfig(tracker=TrackerConfig(api_token="secret-token", project_id="42"))

    manager.save_config(config)

    assert config.tracker.api_token == "secret-token"


def test_key_is_reused_by_new_manager(tmp_path):
    config_dir = str(tmp_path / "config")
    ConfigManager(config_dir).save_config(
        AppConfig(tracker=TrackerConfig(api_token="abc", project_id="1"))
    )

    assert ConfigManager(config_dir).load_config().tracker.api_token == "abc"


def test_numeric_project_id_is_read_as_string(manager):
    manager.config_file.write_text(json.dumps({"tracker": {"project_id": 42}}), encoding='utf-8')

    assert manager.load_config().tracker.project_id == "42"


def test_invalid_json_raises_configuration_error(manager):
    manager.config_file.write_text("{not json", encoding='utf-8')

    with pytest.raises(ConfigurationError):
        manager.load_config()


def test_undecryptable_token_raises_configuration_error(manager):
    manager.config_file.write_text(
        json.dumps({"tracker": {"api_token": "bm90LWVuY3J5cHRlZA=="}}), encoding='utf-8'
    )

    with pytest.raises(ConfigurationError) as excinfo:
        manager.load_config()
    assert excinfo.value.details['config_key'] == "tracker.api_token"


@pytest.mark.parametrize("data, section", [
    ({"tracker": None}, "tracker"),
    ({"tracker": []}, "tracker"),
    ({"tracker": "T1"}, "tracker"),
    ({"logging": 5}, "logging"),
])
def test_non_object_section_raises_configuration_error(manager, data, section):
    manager.config_file.write_text(json.dumps(data), encoding='utf-8')

    with pytest.raises(ConfigurationError) as excinfo:
        manager.load_config()
    assert excinfo.value.details['config_key'] == section


def test_corrupt_key_file_raises_configuration_error(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "key.key").write_bytes(b"not-a-fernet-key")

    with pytest.raises(ConfigurationError) as excinfo:
        ConfigManager(str(config_dir))
    assert excinfo.value.details['config_key'] == "key_file"


@pytest.mark.parametrize("tracker, key", [
    (TrackerConfig(base_url="ftp://example.com"), "tracker.base_url"),
    (TrackerConfig(timeout=0), "tracker.timeout"),
    (TrackerConfig(timeout=True), "tracker.timeout"),
    (TrackerConfig(api_token=None), "tracker.api_token"),
])
def test_validate_rejects_invalid_values(manager, tracker, key):
    with pytest.raises(ConfigurationError) as excinfo:
        manager.validate_config(AppConfig(tracker=tracker))
    assert excinfo.value.details['config_key'] == key


def test_validate_rejects_unknown_log_level(manager):
    config = AppConfig()
    config.logging.level = "VERBOSE"

    with pytest.raises(ConfigurationError):
        manager.validate_config(config)


def test_reset_removes_files_and_regenerates_key(manager):
    manager.save_config(AppConfig(tracker=TrackerConfig(api_token="abc", project_id="1")))
    old_key = manager.key_file.read_bytes()

    manager.reset_config()

    assert manager.config_exists() is False
    assert manager.key_file.exists()
    assert manager.key_file.read_bytes() != old_key


def test_get_config_path(manager):
    assert manager.get_config_path().endswith("config.json")


def test_create_client_from_config():
    config = AppConfig(tracker=TrackerConfig(
        api_token="T1", project_id="42", base_url="https://tracker.example.com/services/v5", timeout=10
    ))

    client = create_client(config)

    assert isinstance(client, PivotalTrackerClient)
    assert client.project_id == "42"
    assert client.client.base_url == "https://tracker.example.com/services/v5"
    assert client.client.timeout == 10
    client.close()


@pytest.mark.parametrize("tracker", [
    TrackerConfig(api_token="", project_id="42"),
    TrackerConfig(api_token="T1", project_id=""),
])
def test_create_client_requires_token_and_project(tracker):
    with pytest.raises(ConfigurationError):
        create_client(AppConfig(tracker=tracker))


def test_configure_logging_applies_logging_section(tmp_path, reset_library_logger):
    config = AppConfig(logging=LoggingConfig(level="WARNING", log_dir=str(tmp_path)))

    logger = configure_logging(config)

    assert logger.name == 'pivotal_tracker'
    assert logger.level == logging.WARNING
    assert set(get_log_files()) == {'main', 'error'}


def test_configure_logging_debug_mode(reset_library_logger):
    logger = configure_logging(AppConfig(logging=LoggingConfig(debug_mode=True)))

    assert logger.level == logging.DEBUG
