"""Unit tests covering environment variable and TOML overrides for settings."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

from claims_analytics.settings.config import PROJECT_ROOT, reload_settings


def _clear_env(monkeypatch: object, *names: str) -> None:
    """Remove env vars for every alias and prefixed variant."""

    for name in names:
        monkeypatch.delenv(name, raising=False)
        if name.startswith("CLAIMS_"):
            monkeypatch.delenv(name.removeprefix("CLAIMS_"), raising=False)
        else:
            monkeypatch.delenv(f"CLAIMS_{name}", raising=False)


def test_reporting_defaults_and_env_overrides(monkeypatch: object) -> None:
    """Reporting knobs follow CLAIMS_REPORTING__* overrides."""

    _clear_env(
        monkeypatch,
        "CLAIMS_REPORTING__TREND_MONTHS",
        "CLAIMS_REPORTING__DEFAULT_FORMATS",
        "CLAIMS_REPORTING__CACHE_SIZE",
        "CLAIMS_SETTINGS_FILE",
        "CLAIMS_ENV",
    )

    default_settings = reload_settings(env="dev")
    assert default_settings.reporting.trend_months == 6
    assert default_settings.reporting.default_page_size == 10
    assert default_settings.reporting.default_formats == ["csv"]
    assert default_settings.reporting.report_title == "COMPREHENSIVE ADMIN REPORT"

    monkeypatch.setenv("CLAIMS_REPORTING__TREND_MONTHS", "12")
    monkeypatch.setenv("CLAIMS_REPORTING__DEFAULT_FORMATS", json.dumps(["PDF", "csv"]))
    monkeypatch.setenv("CLAIMS_REPORTING__CACHE_SIZE", "0")

    overridden = reload_settings(env="dev")
    assert overridden.reporting.trend_months == 12
    assert overridden.reporting.default_formats == ["pdf", "csv"]
    assert overridden.reporting.cache_size == 0


def test_reports_dir_resolves_against_project_root(monkeypatch: object) -> None:
    _clear_env(monkeypatch, "CLAIMS_REPORTING__REPORTS_DIR", "CLAIMS_SETTINGS_FILE")

    settings = reload_settings(env="dev")
    assert settings.reporting.reports_dir == (PROJECT_ROOT / "data" / "reports").resolve()

    monkeypatch.setenv("CLAIMS_REPORTING__REPORTS_DIR", "/tmp/claims-reports")
    assert reload_settings(env="dev").reporting.reports_dir == Path("/tmp/claims-reports")


def test_settings_file_override(tmp_path, monkeypatch: object) -> None:
    """TOML config files populate settings without manual env vars."""

    _clear_env(monkeypatch, "CLAIMS_REPORTING__RECENT_CLAIMS_LIMIT", "CLAIMS_RUNTIME__LOG_LEVEL", "CLAIMS_ENV")

    settings_file = tmp_path / "settings.local.toml"
    settings_file.write_text(
        textwrap.dedent(
            """
            [runtime]
            log_level = "DEBUG"

            [reporting]
            recent_claims_limit = 5
            currency_symbol = "INR "
            """
        ).strip(),
        encoding="utf-8",
    )

    monkeypatch.setenv("CLAIMS_SETTINGS_FILE", str(settings_file))
    from_file = reload_settings(env="dev")
    assert from_file.log_level == "DEBUG"
    assert from_file.reporting.recent_claims_limit == 5
    assert from_file.reporting.currency_symbol == "INR "
    assert settings_file in from_file.config_files

    monkeypatch.setenv("CLAIMS_REPORTING__RECENT_CLAIMS_LIMIT", "3")
    assert reload_settings(env="dev").reporting.recent_claims_limit == 3


def test_local_config_file_takes_precedence_over_default(tmp_path, monkeypatch: object) -> None:
    _clear_env(monkeypatch, "CLAIMS_SETTINGS_FILE", "CLAIMS_REPORTING__TREND_MONTHS")

    local_file = tmp_path / "settings.local.toml"
    local_file.write_text("[reporting]\ntrend_months = 3\n", encoding="utf-8")
    default_file = tmp_path / "settings.default.toml"
    default_file.write_text("[reporting]\ntrend_months = 9\nemployee_summary_limit = 4\n", encoding="utf-8")

    monkeypatch.setattr("claims_analytics.settings.config.LOCAL_CONFIG_FILE", local_file)
    monkeypatch.setattr("claims_analytics.settings.config.DEFAULT_CONFIG_FILE", default_file)

    settings = reload_settings(env="dev")
    assert settings.reporting.trend_months == 3
    assert local_file in settings.config_files
    assert default_file in settings.config_files


def test_local_env_disables_structured_logging_and_statsd(monkeypatch: object) -> None:
    _clear_env(monkeypatch, "CLAIMS_OBSERVABILITY__STATSD_HOST", "OBS_STATSD_HOST", "CLAIMS_ENV")
    monkeypatch.setenv("CLAIMS_OBSERVABILITY__STATSD_HOST", "127.0.0.1")

    remote = reload_settings(env="dev")
    assert remote.observability.statsd_host == "127.0.0.1"
    assert remote.observability.structured_logging is True

    local = reload_settings(env="local")
    assert local.is_local
    assert local.observability.statsd_host is None
    assert local.observability.structured_logging is False
