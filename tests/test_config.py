import logging

import pytest
from pydantic import ValidationError

from revenue_reports.config import DEFAULT_WINDOW, ReportSettings, configure_logging, load_settings


def test_defaults_without_environment(monkeypatch):
    for name in (
        "REVENUE_REPORTS_DATABASE_URL",
        "REVENUE_REPORTS_TIMEZONE",
        "REVENUE_REPORTS_DEFAULT_WINDOW",
        "REVENUE_REPORTS_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("revenue_reports.config.load_dotenv", lambda: False)

    settings = load_settings()

    assert settings.database_url is None
    assert settings.timezone == "UTC"
    assert settings.default_window == DEFAULT_WINDOW == "6m"
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setattr("revenue_reports.config.load_dotenv", lambda: False)
    monkeypatch.setenv("REVENUE_REPORTS_DATABASE_URL", "sqlite://")
    monkeypatch.setenv("REVENUE_REPORTS_TIMEZONE", "Asia/Kolkata")
    monkeypatch.setenv("REVENUE_REPORTS_DEFAULT_WINDOW", "1y")

    settings = load_settings()

    assert settings.database_url == "sqlite://"
    assert settings.timezone == "Asia/Kolkata"
    assert settings.default_window == "1y"


def test_configure_logging_ignores_unknown_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    configure_logging(ReportSettings(log_level="chatty"))

    assert calls["level"] == logging.INFO


def test_unknown_default_window_is_rejected(monkeypatch):
    monkeypatch.setattr("revenue_reports.config.load_dotenv", lambda: False)
    monkeypatch.setenv("REVENUE_REPORTS_DEFAULT_WINDOW", "2y")

    with pytest.raises(ValidationError):
        load_settings()


def test_month_count_default_window_is_accepted():
    assert ReportSettings(default_window="12").default_window == "12"
