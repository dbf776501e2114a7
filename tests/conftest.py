"""Shared fixtures: an application on in-memory SQLite and its session."""

from __future__ import annotations

import pytest

import config
from app import create_app
from database import db

ADMIN_HEADERS = {"X-Admin-Token": config.TestingConfig.ADMIN_API_TOKEN}

ALL_EVENTS = list(config.EVENTS)


@pytest.fixture()
def app():
    app = create_app(config.TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def session(app):
    return db.session


@pytest.fixture()
def client(app):
    return app.test_client()


def make_row(name, email=None, **earned):
    """Competitor payload as the parser emits it; unspecified events are None."""
    row = {"name": name, "email": email}
    for event in config.EVENTS:
        row[f"{event}_earned"] = earned.get(event)
    return row


def commit(session, name, date, rows, events=None, total_points=None):
    from services.tournament_commit import commit_tournament

    events = ALL_EVENTS if events is None else events
    return commit_tournament(
        session,
        {"name": name, "date": date},
        events,
        total_points or {},
        rows,
        authorized=True,
    )
