"""
SQLAlchemy models for the rankings service.
"""
from .competitor import Competitor
from .tournament import Tournament
from .tournament_result import TournamentResult
from .audit_log import AuditLog

__all__ = [
    'Competitor',
    'Tournament',
    'TournamentResult',
    'AuditLog',
]
