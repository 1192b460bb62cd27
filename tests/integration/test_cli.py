"""
End-to-end tests for the Typer CLI.

Every test points the CLI at a temporary configuration directory and runs
offline, so the local store is exercised without touching the network.
"""

import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from uniconv import __version__
from uniconv.__main__ import main
from uniconv.cli import app as cli_module
from uniconv.exceptions import (
    ConversionError,
    InvalidInputError,
    NetworkError,
    PreferencesImportError,
)

runner = CliRunner()


@pytest.fixture(autouse=True)
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirects the CLI's config file (and thus its data dir) into tmp_path."""
    path = tmp_path / "uniconv" / "config.ini"
    monkeypatch.setattr(cli_module, "CONFIG_DIR", path.parent)
    monkeypatch.setattr(cli_module, "CONFIG_FILE", path)
    return path


def invoke(*args: str, input: str | None = None):
    return runner.invoke(cli_module.app, ["--offline", *args], input=input)


# ============ Global options ============


class TestGlobalOptions:
    """Tests for the top-level callback."""

    def test_version(self) -> None:
        result = runner.invoke(cli_module.app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_show_config_without_file(self, config_file: Path) -> None:
        result = runner.invoke(cli_module.app, ["--show-config"])
        assert result.exit_code == 0
        assert "No configuration file" in result.output

    def test_no_command_prints_help(self) -> None:
        result = runner.invoke(cli_module.app, [])
        assert result.exit_code == 0
        assert "convert" in result.output


class TestInit:
    """Tests for `uniconv init`."""

    def test_writes_config_file(self, config_file: Path) -> None:
        result = runner.invoke(cli_module.app, ["init"])
        assert result.exit_code == 0
        assert config_file.is_file()
        assert "rates_api_url" in config_file.read_text(encoding="utf-8")

    def test_existing_file_needs_confirmation(self, config_file: Path) -> None:
        runner.invoke(cli_module.app, ["init"])
        config_file.write_text("[DEFAULT]\nretry_attempts = 4\n", encoding="utf-8")

        declined = runner.invoke(cli_module.app, ["init"], input="n\n")
        assert declined.exit_code == 1
        assert "retry_attempts = 4" in config_file.read_text(encoding="utf-8")

        forced = runner.invoke(cli_module.app, ["init", "--force"])
        assert forced.exit_code == 0
        assert "retry_attempts = 3" in config_file.read_text(encoding="utf-8")


# ============ Units ============


class TestConvertCommand:
    """Tests for `uniconv convert` and `uniconv units`."""

    def test_convert_uses_saved_decimal_places(self) -> None:
        result = invoke("convert", "5", "km", "mi")
        assert result.exit_code == 0, result.output
        assert "3.106856" in result.output

    def test_convert_with_explicit_decimals(self) -> None:
        result = invoke("convert", "5", "kilometer", "mile", "-d", "2")
        assert result.exit_code == 0, result.output
        assert "3.11" in result.output
        assert "3.106" not in result.output

    def test_temperature(self) -> None:
        result = invoke("convert", "100", "celsius", "fahrenheit")
        assert result.exit_code == 0, result.output
        assert "212" in result.output

    def test_invalid_number(self) -> None:
        result = invoke("convert", "lots", "km", "mi")
        assert isinstance(result.exception, InvalidInputError)

    def test_mismatched_categories(self) -> None:
        result = invoke("convert", "1", "kilogram", "meter")
        assert isinstance(result.exception, ConversionError)

    def test_list_categories(self) -> None:
        result = invoke("units")
        assert result.exit_code == 0
        assert "temperature" in result.output

    def test_search_units(self) -> None:
        result = invoke("units", "--search", "inch")
        assert result.exit_code == 0
        assert "inch" in result.output

    def test_unknown_category(self) -> None:
        result = invoke("units", "happiness")
        assert isinstance(result.exception, InvalidInputError)


# ============ Currency ============


class TestCurrencyCommands:
    """Currency commands while offline with an empty cache."""

    def test_conversion_without_cache_fails(self) -> None:
        result = invoke("currency", "10", "USD", "EUR")
        assert isinstance(result.exception, NetworkError)

    def test_list_currencies(self) -> None:
        result = invoke("currencies")
        assert result.exit_code == 0
        assert "JPY" in result.output


# ============ Time zones ============


class TestTimeCommands:
    """Tests for the time zone commands."""

    def test_convert_time(self) -> None:
        result = invoke(
            "convert-time", "2024-01-15T12:00", "America/New_York", "Europe/London"
        )
        assert result.exit_code == 0, result.output
        assert "17:00:00" in result.output

    def test_convert_time_rejects_bad_date(self) -> None:
        result = invoke("convert-time", "yesterday-ish", "UTC", "Asia/Tokyo")
        assert isinstance(result.exception, InvalidInputError)

    def test_current_time_offline(self) -> None:
        result = invoke("time", "Asia/Tokyo")
        assert result.exit_code == 0, result.output
        assert "Tokyo" in result.output

    def test_zone_search(self) -> None:
        result = invoke("zones", "japan")
        assert result.exit_code == 0
        assert "Asia/Tokyo" in result.output

    def test_zone_search_without_match(self) -> None:
        result = invoke("zones", "atlantis")
        assert result.exit_code == 0
        assert "No time zones match" in result.output


# ============ Preferences ============


class TestPrefsCommands:
    """Tests for the `prefs` sub-commands."""

    def test_set_persists_between_runs(self, tmp_path: Path) -> None:
        assert invoke("prefs", "set", "decimal_places", "2").exit_code == 0

        backup = tmp_path / "prefs.json"
        result = invoke("prefs", "export", "--output", str(backup))
        assert result.exit_code == 0
        document = json.loads(backup.read_text(encoding="utf-8"))
        assert document["preferences"]["decimal_places"] == 2

        converted = invoke("convert", "5", "km", "mi")
        assert "3.11" in converted.output

    def test_set_rejects_invalid_value(self) -> None:
        result = invoke("prefs", "set", "theme", "neon")
        assert isinstance(result.exception, InvalidInputError)

    def test_show(self) -> None:
        result = invoke("prefs", "show")
        assert result.exit_code == 0
        assert "default_currency" in result.output

    def test_import_round_trip(self, tmp_path: Path) -> None:
        backup = tmp_path / "prefs.json"
        backup.write_text(
            json.dumps({"preferences": {"theme": "dark"}, "version": "1.0"}),
            encoding="utf-8",
        )
        assert invoke("prefs", "import", str(backup)).exit_code == 0

        exported = tmp_path / "out.json"
        invoke("prefs", "export", "-o", str(exported))
        document = json.loads(exported.read_text(encoding="utf-8"))
        assert document["preferences"]["theme"] == "dark"

    def test_import_rejects_malformed_file(self, tmp_path: Path) -> None:
        backup = tmp_path / "prefs.json"
        backup.write_text("{broken", encoding="utf-8")
        result = invoke("prefs", "import", str(backup))
        assert isinstance(result.exception, PreferencesImportError)

    def test_reset_requires_confirmation(self) -> None:
        invoke("prefs", "set", "theme", "dark")
        assert invoke("prefs", "reset", input="n\n").exit_code == 1
        assert invoke("prefs", "reset", "--yes").exit_code == 0


# ============ Cache and diagnostics ============


class TestCacheCommands:
    """Tests for the `cache` sub-commands and `diagnose`."""

    def test_stats(self) -> None:
        result = invoke("cache", "stats")
        assert result.exit_code == 0, result.output
        assert "Entries" in result.output

    def test_clear_keeps_preferences(self, tmp_path: Path) -> None:
        invoke("prefs", "set", "font_size", "large")
        result = invoke("cache", "clear")
        assert result.exit_code == 0
        assert "Cache cleared" in result.output

        exported = tmp_path / "out.json"
        invoke("prefs", "export", "-o", str(exported))
        document = json.loads(exported.read_text(encoding="utf-8"))
        assert document["preferences"]["font_size"] == "large"

    def test_full_clear_needs_confirmation(self) -> None:
        assert invoke("cache", "clear", "--all", input="n\n").exit_code == 1
        assert invoke("cache", "clear", "--all", "--yes").exit_code == 0

    def test_vacuum(self) -> None:
        result = invoke("cache", "vacuum")
        assert result.exit_code == 0, result.output
        assert "optimized" in result.output

    def test_diagnose_offline(self) -> None:
        result = invoke("diagnose")
        assert result.exit_code == 0, result.output
        assert "Offline mode" in result.output
        assert "All checks passed" in result.output


# ============ Entry point ============


class TestMain:
    """Tests for error rendering in the console entry point."""

    def test_converter_error_is_rendered_with_suggestions(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setattr(
            sys, "argv", ["uniconv", "--offline", "convert", "lots", "km", "mi"]
        )
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        output = capsys.readouterr().out
        assert "VALIDATION_ERROR" in output
        assert "Suggestions" in output
