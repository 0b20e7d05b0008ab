"""
Unit Tests - Configuration
"""
import logging
import sys
from datetime import date

import pytest
import structlog
from pydantic import ValidationError
from structlog.processors import JSONRenderer
from structlog.stdlib import ProcessorFormatter

from thelook_metrics.config import Settings
from thelook_metrics.config.logging import build_renderer, configure_logging
from thelook_metrics.config.settings import ReportSettings, SourceSettings


class TestSettings:
    """Tests for Settings"""

    def test_report_defaults(self, test_settings):
        """Reporting defaults match the standard analysis"""
        report = test_settings.report

        assert report.start_date == date(2019, 1, 1)
        assert report.end_date == date(2022, 12, 31)
        assert report.churn_window_days == 90
        assert report.launch_date == date(2022, 1, 15)
        assert report.high_value_threshold == 100.0

    def test_report_env_override(self, monkeypatch):
        """REPORT_* variables override defaults"""
        monkeypatch.setenv("REPORT_CHURN_WINDOW_DAYS", "30")
        monkeypatch.setenv("REPORT_START_DATE", "2021-06-01")

        report = ReportSettings()

        assert report.churn_window_days == 30
        assert report.start_date == date(2021, 6, 1)

    def test_source_kind_normalized(self, monkeypatch):
        """Source kind is case-insensitive"""
        monkeypatch.setenv("SOURCE_KIND", "Database")

        assert SourceSettings().kind == "database"

    def test_source_kind_rejected(self, monkeypatch):
        """Unknown source kinds are rejected"""
        monkeypatch.setenv("SOURCE_KIND", "s3")

        with pytest.raises(ValidationError):
            SourceSettings()

    def test_invalid_environment(self):
        """Unknown environments are rejected"""
        with pytest.raises(ValidationError):
            Settings(app_env="qa")

    def test_source_url_prefers_explicit_url(self):
        """SOURCE_URL wins over POSTGRES_* settings"""
        settings = Settings(app_env="testing")
        assert settings.source_url.startswith("postgresql+psycopg2://")

        settings.source.url = "sqlite:///thelook.db"
        assert settings.source_url == "sqlite:///thelook.db"

    def test_is_production(self):
        assert Settings(app_env="production").is_production
        assert not Settings(app_env="testing").is_production


@pytest.fixture
def restore_logging():
    """Undo configure_logging changes to the root logger"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging"""

    def test_single_stderr_handler(self, restore_logging):
        """Logs go to one stderr handler through a ProcessorFormatter"""
        configure_logging("debug", "json")
        configure_logging("debug", "json")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr
        assert isinstance(handlers[0].formatter, ProcessorFormatter)
        assert logging.getLogger().level == logging.DEBUG

    def test_sqlalchemy_quiet_unless_debug(self, restore_logging):
        """SQL engine logging is raised to WARNING outside DEBUG"""
        configure_logging("INFO", "text")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

        configure_logging("DEBUG", "text")
        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG

    def test_renderer_choice(self):
        assert isinstance(build_renderer("json"), JSONRenderer)
        assert isinstance(build_renderer("text"), structlog.dev.ConsoleRenderer)
