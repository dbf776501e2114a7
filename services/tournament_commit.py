"""
Commit coordinator for parsed results sheets.

Persists a previewed tournament in one transaction: the tournament row, any
new competitors, renames of known competitors, and one result per competitor.
Either all of it is stored or none of it is.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import config
from models import Competitor, TournamentResult
from services.audit import log_action
from services.errors import ConflictError, NotAuthorizedError, PersistenceError
from services.registry import (
    DUPLICATE_TOURNAMENT_MESSAGE,
    build_tournament,
    find_competitor_by_email,
    find_competitor_by_name,
    find_duplicate_tournament,
)
from services.validation import (
    EventSettingsValidator,
    ValidationResult,
    normalize_email,
    normalize_name,
    parse_date,
    validate_earned_values,
)

logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    tournament_id: int
    new_competitors: list = field(default_factory=list)
    updated_competitors: list = field(default_factory=list)
    renamed_competitors: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _validate_commit(meta: dict, active_events, total_points, competitors) -> tuple:
    """Check every input before the transaction starts; raise ValidationError on failure."""
    result = ValidationResult()
    name = normalize_name(meta.get('name'))
    tournament_date = parse_date(meta.get('date'), result)
    events, totals = EventSettingsValidator.validate(active_events, total_points, result)

    rows = []
    if not competitors:
        result.add_error('NO_COMPETITORS', 'No competitors provided', 'competitors')
    for index, entry in enumerate(competitors or []):
        entry_name = normalize_name(entry.get('name'))
        if entry_name is None:
            result.add_error('NAME_REQUIRED', f'Competitor {index + 1}: name is required', 'name')
            continue
        earned = validate_earned_values(entry, events, result, entry_name)
        rows.append({'name': entry_name, 'email': normalize_email(entry.get('email')), 'earned': earned})

    result.raise_if_invalid()
    return name, tournament_date, events, totals, rows


def match_existing_competitor(session, name: str, email: str | None = None) -> Competitor | None:
    """
    Find the stored competitor a parsed row refers to, without writing.

    Email is tried first. A case-insensitive name match only counts when the
    stored competitor has no email of its own; a different stored email
    means a different person.
    """
    competitor = find_competitor_by_email(session, email)
    if competitor is not None:
        return competitor
    candidate = find_competitor_by_name(session, name)
    if candidate is not None and (email is None or candidate.email is None):
        return candidate
    return None


def _resolve_competitor(session, name: str, email: str | None) -> tuple:
    """
    Find the stored competitor for a parsed row, or create one.

    Returns:
        (competitor, created, previous_name); previous_name is None unless
        the stored display name was replaced
    """
    competitor = match_existing_competitor(session, name, email)
    if competitor is None:
        competitor = Competitor(name=name, email=email)
        session.add(competitor)
        session.flush()
        return competitor, True, None

    previous_name = None
    if competitor.name != name:
        previous_name = competitor.name
        competitor.name = name
    if email and competitor.email is None:
        competitor.email = email
    return competitor, False, previous_name


def _write_tournament(session, name, tournament_date, events, totals, rows) -> CommitResult:
    tournament = build_tournament(name, tournament_date, events, totals)
    session.add(tournament)
    session.flush()

    outcome = CommitResult(tournament_id=tournament.id)
    claimed = {}
    for row in rows:
        competitor, created, previous_name = _resolve_competitor(session, row['name'], row['email'])
        if competitor.id in claimed:
            raise ConflictError(
                f'"{row["name"]}" and "{claimed[competitor.id]}" both match the same competitor',
                conflicting_id=competitor.id, entity_type='competitor'
            )
        claimed[competitor.id] = row['name']

        if created:
            outcome.new_competitors.append(competitor.name)
        else:
            outcome.updated_competitors.append(competitor.name)
        if previous_name is not None:
            outcome.renamed_competitors.append(
                {'id': competitor.id, 'from': previous_name, 'to': competitor.name}
            )

        result = TournamentResult(competitor_id=competitor.id, tournament_id=tournament.id)
        for event in config.EVENTS:
            # Held events keep their value, others are stored as not held
            result.set_earned(event, row['earned'][event] if event in events else None)
        session.add(result)

    session.flush()
    return outcome


def commit_tournament(session, meta: dict, active_events, total_points: dict, competitors: list,
                      *, authorized: bool) -> CommitResult:
    """
    Persist a previewed tournament and its results atomically.

    Args:
        session: SQLAlchemy session; committed on success, rolled back on failure
        meta: Dict with 'name' (optional) and 'date' (YYYY-MM-DD)
        active_events: Events the tournament held
        total_points: Event -> maximum points; missing events default to 120
        competitors: Parsed competitor dicts (name, email, <event>_earned)
        authorized: Caller's externally decided permission to write

    Returns:
        CommitResult with the new tournament id and competitor name lists

    Raises:
        NotAuthorizedError, ValidationError: before any database access
        ConflictError: duplicate tournament or competitor identity
        PersistenceError: storage failure, after a full rollback
    """
    if not authorized:
        raise NotAuthorizedError('Not authorized to commit tournament results')

    name, tournament_date, events, totals, rows = _validate_commit(
        meta, active_events, total_points, competitors
    )

    try:
        duplicate = find_duplicate_tournament(session, name, tournament_date)
        if duplicate is not None:
            raise ConflictError(DUPLICATE_TOURNAMENT_MESSAGE, conflicting_id=duplicate.id,
                                entity_type='tournament')

        outcome = _write_tournament(session, name, tournament_date, events, totals, rows)
        log_action(session, 'tournament_committed', 'tournament', outcome.tournament_id, {
            'name': name,
            'date': tournament_date.isoformat(),
            'events': sorted(events),
            'new_competitors': len(outcome.new_competitors),
            'updated_competitors': len(outcome.updated_competitors),
        })
        session.commit()
    except ConflictError as exc:
        session.rollback()
        logger.warning('Tournament commit rejected: %s (conflicting id %s)', exc.message, exc.conflicting_id)
        raise
    except IntegrityError as exc:
        session.rollback()
        # The unique index caught a duplicate the pre-check could not see
        duplicate = find_duplicate_tournament(session, name, tournament_date)
        if duplicate is not None:
            logger.warning('Tournament commit lost race for %r on %s', name, tournament_date)
            raise ConflictError(DUPLICATE_TOURNAMENT_MESSAGE, conflicting_id=duplicate.id,
                                entity_type='tournament') from exc
        logger.error('Constraint violation during tournament commit: %s', exc.orig)
        raise PersistenceError('Database constraint violation during commit; nothing was saved.') from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception('Database error during tournament commit')
        raise PersistenceError('Database error during commit; nothing was saved.') from exc

    logger.info('Committed tournament %s (%r, %s): %d new, %d existing competitor(s)',
                outcome.tournament_id, name, tournament_date, len(outcome.new_competitors),
                len(outcome.updated_competitors),
                extra={'tournament_id': outcome.tournament_id, 'results': len(rows)})
    return outcome
