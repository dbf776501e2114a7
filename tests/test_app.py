"""Application factory, configuration and logging setup."""

from __future__ import annotations

import json
import logging

import pytest
from sqlalchemy import text

import config
from services.logging_setup import JsonFormatter


class TestRuntimeValidation:
    def test_development_is_not_checked(self):
        config.validate_runtime({"ENV_NAME": "development", "SECRET_KEY": "x"})

    def test_weak_production_secret(self):
        with pytest.raises(RuntimeError):
            config.validate_runtime({
                "ENV_NAME": "production",
                "SECRET_KEY": "dev-key-change-in-production",
                "ADMIN_API_TOKEN": "a" * 32,
            })

    def test_production_needs_admin_token(self):
        with pytest.raises(RuntimeError):
            config.validate_runtime({"ENV_NAME": "production", "SECRET_KEY": "s" * 32, "ADMIN_API_TOKEN": ""})

    def test_valid_production(self):
        config.validate_runtime({"ENV_NAME": "production", "SECRET_KEY": "s" * 32, "ADMIN_API_TOKEN": "t" * 16})

    def test_profile_selection(self, monkeypatch):
        monkeypatch.setenv("FLASK_ENV", "production")
        assert config.get_config() is config.ProductionConfig
        monkeypatch.setenv("FLASK_ENV", "development")
        monkeypatch.delenv("PRODUCTION", raising=False)
        assert config.get_config() is config.DevelopmentConfig


def test_json_formatter():
    record = logging.LogRecord("services.scoring", logging.INFO, __file__, 1, "ranked %d", (3,), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "ranked 3"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "services.scoring"


def test_foreign_keys_enforced(app, session):
    value = session.execute(text("PRAGMA foreign_keys")).scalar()
    assert value == 1


def test_json_formatter_merges_extra_and_request(app):
    record = logging.LogRecord("services.tournament_commit", logging.INFO, __file__, 1, "committed", (), None)
    record.tournament_id = 7
    with app.test_request_context("/api/upload/commit", method="POST"):
        payload = json.loads(JsonFormatter().format(record))
    assert payload["tournament_id"] == 7
    assert payload["method"] == "POST"
    assert payload["path"] == "/api/upload/commit"
