"""
Competitor, tournament and single-result administration.

Manual counterparts of the bulk upload: every write validates first, checks
for duplicates, and commits or rolls back as one unit.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import config
from models import Competitor, Tournament, TournamentResult
from services.audit import log_action
from services.errors import ConflictError, NotFoundError, PersistenceError
from services.validation import (
    EventSettingsValidator,
    ValidationResult,
    name_key,
    normalize_email,
    normalize_name,
    parse_date,
    validate_earned_values,
)

logger = logging.getLogger(__name__)

DUPLICATE_TOURNAMENT_MESSAGE = (
    'A tournament with this name and date already exists. '
    'Delete it first or use a different date.'
)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def find_duplicate_tournament(session, name: str | None, tournament_date) -> Tournament | None:
    """Return the tournament sharing this (name-or-null, date) pair, if any."""
    query = session.query(Tournament).filter(Tournament.date == tournament_date)
    if name is None:
        query = query.filter(Tournament.name.is_(None))
    else:
        query = query.filter(Tournament.name == name)
    return query.first()


def find_competitor_by_email(session, email: str | None, exclude_id: int = None) -> Competitor | None:
    if not email:
        return None
    query = session.query(Competitor).filter(Competitor.email == email)
    if exclude_id is not None:
        query = query.filter(Competitor.id != exclude_id)
    return query.first()


def find_competitor_by_name(session, name: str, exclude_id: int = None) -> Competitor | None:
    """Case-insensitive name lookup (Unicode case folding); the oldest competitor wins."""
    query = session.query(Competitor).filter(Competitor.name_key == name_key(name))
    if exclude_id is not None:
        query = query.filter(Competitor.id != exclude_id)
    return query.order_by(Competitor.id).first()


def get_competitor(session, competitor_id: int) -> Competitor:
    competitor = session.get(Competitor, competitor_id)
    if competitor is None:
        raise NotFoundError('Competitor')
    return competitor


def get_tournament(session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        raise NotFoundError('Tournament')
    return tournament


def list_competitors(session) -> list:
    return session.query(Competitor).order_by(Competitor.name, Competitor.id).all()


def list_tournaments(session) -> list:
    return session.query(Tournament).order_by(Tournament.date.desc(), Tournament.id.desc()).all()


def _commit(session, conflict: ConflictError = None):
    """Commit the session, translating storage failures after rolling back."""
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if conflict is not None:
            raise conflict from exc
        logger.error('Constraint violation during commit: %s', exc.orig)
        raise PersistenceError('Database constraint violation; nothing was saved.') from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception('Database error during commit')
        raise PersistenceError('Database error; nothing was saved.') from exc


# ---------------------------------------------------------------------------
# Competitors
# ---------------------------------------------------------------------------

def _check_competitor_identity(session, name: str, email: str | None, exclude_id: int = None):
    existing = find_competitor_by_email(session, email, exclude_id)
    if existing is not None:
        raise ConflictError('A competitor with this email already exists',
                            conflicting_id=existing.id, entity_type='competitor')
    existing = find_competitor_by_name(session, name, exclude_id)
    if existing is not None:
        raise ConflictError('A competitor with this name already exists',
                            conflicting_id=existing.id, entity_type='competitor')


def _validated_identity(name, email) -> tuple:
    result = ValidationResult()
    clean_name = normalize_name(name)
    if clean_name is None:
        result.add_error('NAME_REQUIRED', 'Name is required', 'name')
    result.raise_if_invalid()
    return clean_name, normalize_email(email)


def create_competitor(session, name, email=None) -> Competitor:
    name, email = _validated_identity(name, email)
    _check_competitor_identity(session, name, email)

    competitor = Competitor(name=name, email=email)
    session.add(competitor)
    session.flush()
    log_action(session, 'competitor_created', 'competitor', competitor.id, {'name': name})
    _commit(session, ConflictError('A competitor with this name or email already exists',
                                   entity_type='competitor'))
    return competitor


def update_competitor(session, competitor_id: int, name, email=None) -> Competitor:
    competitor = get_competitor(session, competitor_id)
    name, email = _validated_identity(name, email)
    _check_competitor_identity(session, name, email, exclude_id=competitor.id)

    details = {'from': {'name': competitor.name, 'email': competitor.email},
               'to': {'name': name, 'email': email}}
    competitor.name = name
    competitor.email = email
    log_action(session, 'competitor_updated', 'competitor', competitor.id, details)
    _commit(session, ConflictError('Another competitor with this email already exists',
                                   entity_type='competitor'))
    return competitor


def delete_competitor(session, competitor_id: int) -> None:
    """Delete a competitor and, through the cascade, all of their results."""
    competitor = get_competitor(session, competitor_id)
    log_action(session, 'competitor_deleted', 'competitor', competitor.id, {'name': competitor.name})
    session.delete(competitor)
    _commit(session)


# ---------------------------------------------------------------------------
# Tournaments
# ---------------------------------------------------------------------------

def build_tournament(name: str | None, tournament_date, active_events, total_points: dict) -> Tournament:
    """Create an unsaved Tournament with one flag and one total per event."""
    tournament = Tournament(name=name, date=tournament_date)
    for event in config.EVENTS:
        setattr(tournament, f'has_{event}', event in active_events)
        setattr(tournament, f'total_points_{event}', total_points[event])
    return tournament


def create_tournament(session, name, tournament_date, active_events, total_points=None) -> Tournament:
    """Create a tournament manually, with no results attached."""
    result = ValidationResult()
    name = normalize_name(name)
    tournament_date = parse_date(tournament_date, result, 'date')
    events, totals = EventSettingsValidator.validate(active_events, total_points, result)
    result.raise_if_invalid()

    duplicate = find_duplicate_tournament(session, name, tournament_date)
    if duplicate is not None:
        raise ConflictError(DUPLICATE_TOURNAMENT_MESSAGE, conflicting_id=duplicate.id,
                            entity_type='tournament')

    tournament = build_tournament(name, tournament_date, events, totals)
    session.add(tournament)
    try:
        session.flush()
    except IntegrityError as exc:
        session.rollback()
        duplicate = find_duplicate_tournament(session, name, tournament_date)
        raise ConflictError(DUPLICATE_TOURNAMENT_MESSAGE,
                            conflicting_id=duplicate.id if duplicate else None,
                            entity_type='tournament') from exc
    log_action(session, 'tournament_created', 'tournament', tournament.id,
               {'name': name, 'date': tournament_date.isoformat(), 'events': sorted(events)})
    _commit(session, ConflictError(DUPLICATE_TOURNAMENT_MESSAGE, entity_type='tournament'))
    return tournament


def delete_tournament(session, tournament_id: int) -> None:
    """Delete a tournament and, through the cascade, all of its results."""
    tournament = get_tournament(session, tournament_id)
    log_action(session, 'tournament_deleted', 'tournament', tournament.id,
               {'name': tournament.name, 'date': tournament.date.isoformat()})
    session.delete(tournament)
    _commit(session)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def upsert_result(session, competitor_id: int, tournament_id: int, values: dict) -> TournamentResult:
    """
    Add or replace one competitor's result in one tournament.

    Events the tournament did not hold are stored as None whatever the
    payload says.
    """
    competitor = get_competitor(session, competitor_id)
    tournament = get_tournament(session, tournament_id)

    result = ValidationResult()
    earned = validate_earned_values(values, tournament.active_events, result, competitor.name)
    result.raise_if_invalid()

    row = (
        session.query(TournamentResult)
        .filter_by(competitor_id=competitor.id, tournament_id=tournament.id)
        .first()
    )
    is_new = row is None
    if is_new:
        row = TournamentResult(competitor_id=competitor.id, tournament_id=tournament.id)
        session.add(row)
    for event in config.EVENTS:
        row.set_earned(event, earned[event])

    session.flush()
    log_action(session, 'result_created' if is_new else 'result_updated', 'tournament_result', row.id,
               {'competitor_id': competitor.id, 'tournament_id': tournament.id,
                **{f'{e}_earned': earned[e] for e in config.EVENTS}})
    _commit(session)
    return row
