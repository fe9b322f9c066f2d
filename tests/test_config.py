import logging

from helpdesk.core.config import Settings
from helpdesk.core.logging import TicketContextFilter, logging_config, parse_otlp_headers
from helpdesk.services import to_asyncpg_dsn


def test_nested_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("AUTOMATION__FOLLOW_UP_INACTIVITY_DAYS", "5")
    monkeypatch.setenv("AUTOMATION__MAX_ATTEMPTS", "4")
    monkeypatch.setenv("SLA__ENABLED", "false")

    settings = Settings(_env_file=None)

    assert settings.automation.follow_up_inactivity_days == 5
    assert settings.automation.max_attempts == 4
    assert settings.automation.auto_close_days == 7
    assert settings.sla.enabled is False


def test_default_sla_tables():
    settings = Settings(_env_file=None)

    assert settings.sla.rules["urgent"].first_response == 30
    assert settings.sla.type_overrides["commercial"]["high"].resolution == 240
    assert settings.sla.types["commercial"].default_priority == "high"
    assert settings.automation.backoff_seconds == (60.0, 180.0, 600.0)


def test_logging_config_falls_back_to_info_for_unknown_level():
    config = logging_config(Settings(_env_file=None, log_level="chatty"))

    assert config["root"]["level"] == logging.INFO
    assert config["loggers"]["helpdesk"]["level"] == logging.INFO
    assert config["handlers"]["console"]["filters"] == ["ticket_context"]


def test_context_filter_keeps_explicit_values():
    record = logging.LogRecord("helpdesk", logging.INFO, __file__, 1, "msg", None, None)
    record.ticket_id = "t-1"

    assert TicketContextFilter().filter(record) is True
    assert record.ticket_id == "t-1"
    assert record.task_id == "-"


def test_dsn_and_header_helpers():
    assert to_asyncpg_dsn("postgresql://u:p@db/helpdesk") == "postgresql+asyncpg://u:p@db/helpdesk"
    assert to_asyncpg_dsn("sqlite+aiosqlite:///:memory:") == "sqlite+aiosqlite:///:memory:"
    assert parse_otlp_headers("authorization=Bearer x, bad, team = ops") == {
        "authorization": "Bearer x",
        "team": "ops",
    }
    assert parse_otlp_headers(None) == {}
