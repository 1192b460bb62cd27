"""Unit tests for INI configuration loading, migration and validation."""

import configparser
from pathlib import Path

import pytest
from pydantic import ValidationError

from uniconv.exceptions import ConfigurationError
from uniconv.models.config import DEFAULT_RATES_API_URL, ConverterConfig
from uniconv.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    return tmp_path / "uniconv" / "config.ini"


def _write(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")


# ============ Model ============


class TestConverterConfig:
    """Tests for the pydantic configuration model."""

    def test_defaults_are_valid(self) -> None:
        config = ConverterConfig()
        assert config.rates_api_url == DEFAULT_RATES_API_URL
        assert config.retry_attempts == 3
        assert not config.offline

    def test_trailing_slash_stripped(self) -> None:
        config = ConverterConfig(time_api_url="https://time.example.com/api/ ")
        assert config.time_api_url == "https://time.example.com/api"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"rates_api_url": "ftp://rates.example.com"},
            {"request_timeout": 0},
            {"retry_attempts": 11},
            {"retry_base_delay": -1},
            {"cleanup_interval": 0.5},
            {"memo_max_entries": 0},
            {"primary_max_value_kb": 6000},
            {"secondary_max_value_kb": 10},
        ],
    )
    def test_rejects_invalid_settings(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            ConverterConfig(**overrides)

    def test_ini_keys_exclude_runtime_fields(self) -> None:
        keys = ConverterConfig.get_ini_keys()
        assert "offline" not in keys
        assert "data_dir" not in keys
        assert "memo_ttl" in keys


# ============ Manager ============


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_missing_file_uses_defaults(self, config_file: Path) -> None:
        config = ConfigManager(config_file).load_config()
        assert config.request_timeout == 10.0
        assert config.data_dir == str(config_file.parent)
        assert not config_file.exists()

    def test_save_then_load(self, config_file: Path) -> None:
        manager = ConfigManager(config_file)
        manager.save_new_config({"retry_attempts": 5, "user_agent": "tests/1.0"})

        parser = configparser.ConfigParser(interpolation=None)
        parser.read(config_file, encoding="utf-8")
        assert set(parser["DEFAULT"]) == ConverterConfig.get_ini_keys()

        config = ConfigManager(config_file).load_config()
        assert config.retry_attempts == 5
        assert config.user_agent == "tests/1.0"

    def test_cli_options_override_file(self, config_file: Path) -> None:
        ConfigManager(config_file).save_new_config()
        config = ConfigManager(config_file).load_config(
            {"offline": True, "retry_attempts": None}
        )
        assert config.offline
        assert config.retry_attempts == 3

    def test_missing_keys_are_migrated(self, config_file: Path) -> None:
        _write(config_file, "[DEFAULT]\nretry_attempts = 7\n")
        config = ConfigManager(config_file).load_config()
        assert config.retry_attempts == 7
        assert config.memo_max_entries == 1000

        raw = ConfigManager(config_file).read_raw()
        assert raw["retry_attempts"] == "7"
        assert "memo_ttl" in raw

    @pytest.mark.parametrize(
        "body",
        [
            "this is not an ini file\n",
            "[DEFAULT]\nrequest_timeout = soon\n",
            "[DEFAULT]\nretry_attempts = 50\n",
            "[DEFAULT]\nrates_api_url = rates.example.com\n",
        ],
    )
    def test_invalid_files_raise_configuration_error(
        self, config_file: Path, body: str
    ) -> None:
        _write(config_file, body)
        with pytest.raises(ConfigurationError):
            ConfigManager(config_file).load_config()

    def test_read_raw_without_file(self, config_file: Path) -> None:
        assert ConfigManager(config_file).read_raw() == {}
