"""
Score engine and ranking aggregation.

Scores are never stored. Every read recomputes them from the raw
TournamentResult rows so the numbers can always be reproduced from the
data on disk.

Scoring rules:
- event score: mean over qualifying tournaments of earned / total * 100,
  where a tournament qualifies if it held the event and the earned value
  is not null (0 counts, null does not)
- total score: sum of the four event scores, a missing event counting as 0,
  always divided by 4
- ranking: total descending, standard competition ranking on exact ties
"""
from __future__ import annotations

import math
from collections import defaultdict

import config
from models import Competitor, Tournament, TournamentResult


def _check_event(event: str):
    if event not in config.EVENTS:
        raise ValueError(f'Unknown event: {event!r}')


def mean_percentage(pairs) -> float | None:
    """
    Average of earned/total percentages over the full set of pairs.

    This is a direct mean, not a running average: 80/100, 120/200 and
    120/150 give 73.33, where folding each new value into the previous
    average would give 75.
    """
    scores = [(earned / total) * 100 for earned, total in pairs]
    if not scores:
        return None
    return math.fsum(scores) / len(scores)


def total_score(event_scores: dict) -> float:
    """Mean of the four event scores with missing events counted as 0."""
    return math.fsum(event_scores.get(e) or 0 for e in config.EVENTS) / len(config.EVENTS)


def _qualifying_pairs(session, competitor_id: int = None) -> dict:
    """
    Load (earned, total) pairs per competitor and event.

    Returns:
        Dict of competitor_id -> {event: [(earned, total), ...]}
    """
    query = (
        session.query(TournamentResult, Tournament)
        .join(Tournament, Tournament.id == TournamentResult.tournament_id)
        .order_by(Tournament.date, Tournament.id)
    )
    if competitor_id is not None:
        query = query.filter(TournamentResult.competitor_id == competitor_id)

    pairs = defaultdict(lambda: {e: [] for e in config.EVENTS})
    for result, tournament in query.all():
        for event in config.EVENTS:
            earned = result.earned(event)
            if tournament.holds(event) and earned is not None:
                pairs[result.competitor_id][event].append((earned, tournament.total_points_for(event)))
    return pairs


def _scores_from_pairs(event_pairs: dict) -> dict:
    scores = {event: mean_percentage(event_pairs[event]) for event in config.EVENTS}
    scores['total'] = total_score(scores)
    return scores


def compute_event_score(session, competitor_id: int, event: str) -> float | None:
    """Return one event score for a competitor, or None if they never played it."""
    _check_event(event)
    pairs = _qualifying_pairs(session, competitor_id)
    return mean_percentage(pairs[competitor_id][event])


def compute_competitor_scores(session, competitor_id: int) -> dict:
    """
    Compute all scores for a single competitor.

    Returns:
        Dict with one key per event (None if never played) and 'total'
    """
    pairs = _qualifying_pairs(session, competitor_id)
    return _scores_from_pairs(pairs[competitor_id])


def assign_competition_ranks(entries: list, key: str = 'total') -> list:
    """
    Assign ranks to entries already sorted by key descending.

    Tied entries share a rank and use up the slots after it: a two-way tie
    for 1st is followed by 3rd. Ties are exact equality; totals are derived
    deterministically from stored values, so no tolerance is applied.
    """
    rank = 1
    for i, entry in enumerate(entries):
        if i > 0 and entry[key] != entries[i - 1][key]:
            rank = i + 1
        entry['rank'] = rank
    return entries


def compute_rankings(session) -> list:
    """
    Compute full rankings: every competitor with scores, sorted by total.

    Competitors without any results are included with a total of 0.
    """
    competitors = session.query(Competitor).order_by(Competitor.name, Competitor.id).all()
    pairs = _qualifying_pairs(session)

    rankings = []
    for competitor in competitors:
        rankings.append({
            'id': competitor.id,
            'name': competitor.name,
            **_scores_from_pairs(pairs[competitor.id]),
        })

    # Stable sort keeps name order within a tie
    rankings.sort(key=lambda r: r['total'], reverse=True)
    return assign_competition_ranks(rankings)


def compute_competitor_history(session, competitor_id: int) -> list:
    """
    Get full tournament history for a single competitor, oldest first.

    Each row carries the tournament and, per event, the percentage earned,
    or None when the event was not held or no value was recorded.
    """
    rows = (
        session.query(TournamentResult, Tournament)
        .join(Tournament, Tournament.id == TournamentResult.tournament_id)
        .filter(TournamentResult.competitor_id == competitor_id)
        .order_by(Tournament.date, Tournament.id)
        .all()
    )

    history = []
    for result, tournament in rows:
        entry = {
            'tournament_id': tournament.id,
            'tournament_name': tournament.name,
            'tournament_date': tournament.date.isoformat(),
        }
        for event in config.EVENTS:
            earned = result.earned(event)
            if tournament.holds(event) and earned is not None:
                entry[event] = (earned / tournament.total_points_for(event)) * 100
            else:
                entry[event] = None
        history.append(entry)
    return history
