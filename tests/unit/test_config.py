"""
Unit Tests - Configuration
"""
import logging

import pytest
import structlog
from pydantic import ValidationError

from aquametrics.config.logging import CHATTY_LOGGERS, base_context, configure_logging
from aquametrics.config.settings import (
    DatabaseSettings,
    MetricsSettings,
    MonitoringSettings,
    RowSourceSettings,
    Settings,
)


class TestSettings:
    """Tests for the settings sections"""

    def test_metrics_defaults(self):
        metrics = MetricsSettings()

        assert metrics.default_time_period == "week"
        assert metrics.consolidated_scope == "all"
        assert metrics.summary_page_size == 50
        assert metrics.trend_page_size == 500
        assert metrics.recent_entries_limit == 5

    def test_testing_environment(self):
        settings = Settings()

        assert settings.app_env == "testing"
        assert not settings.is_production
        assert not settings.is_development

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(APP_ENV="qa")

    def test_backend_is_normalized(self):
        assert RowSourceSettings(backend="REST").backend == "rest"

    def test_async_url(self):
        database = DatabaseSettings(host="db", port=5433, user="farm", password="pw", POSTGRES_DB="site")
        assert database.async_url == "postgresql+asyncpg://farm:pw@db:5433/site"

    def test_url_override(self):
        database = DatabaseSettings(url="sqlite+aiosqlite:///farm.db")
        assert database.async_url == "sqlite+aiosqlite:///farm.db"


@pytest.fixture
def restore_logging():
    """Put the root logger and structlog back as they were"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    levels = {name: logging.getLogger(name).level for name in CHATTY_LOGGERS}
    yield
    root.handlers = handlers
    root.setLevel(level)
    for name, saved in levels.items():
        logging.getLogger(name).setLevel(saved)
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging"""

    def test_base_context(self):
        settings = Settings(row_source=RowSourceSettings(backend="rest"))
        add_context = base_context(settings)

        event = add_context(None, "info", {"event": "Rows fetched", "row_source": "sql"})

        assert event["app"] == "aquametrics"
        assert event["environment"] == "testing"
        # fields already on the event win
        assert event["row_source"] == "sql"

    def test_levels(self, restore_logging):
        settings = Settings(monitoring=MonitoringSettings(LOG_FORMAT="text"))

        configure_logging("debug", settings)

        assert logging.getLogger().level == logging.DEBUG
        assert len(logging.getLogger().handlers) == 1
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_sql_echo_keeps_engine_logger(self, restore_logging):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.NOTSET)
        settings = Settings(database=DatabaseSettings(echo=True))

        configure_logging("INFO", settings)

        assert logging.getLogger("sqlalchemy.engine").level == logging.NOTSET
        assert logging.getLogger("requests").level == logging.WARNING
