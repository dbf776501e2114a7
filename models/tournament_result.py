"""
TournamentResult model: raw earned points for one competitor in one tournament.
"""
from datetime import datetime
from database import db
import config


class TournamentResult(db.Model):
    """
    Represents a competitor's raw result in a tournament.

    An ``<event>_earned`` of None means the event was not held in the
    tournament; 0 means it was held and the competitor scored nothing.
    """

    __tablename__ = 'tournament_results'
    __table_args__ = (
        db.UniqueConstraint('competitor_id', 'tournament_id', name='uq_tournament_result_competitor'),
        db.Index('ix_tournament_results_tournament', 'tournament_id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    competitor_id = db.Column(db.Integer, db.ForeignKey('competitors.id', ondelete='CASCADE'), nullable=False)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id', ondelete='CASCADE'), nullable=False)

    # Raw points earned per event
    knockdowns_earned = db.Column(db.Float, nullable=True)
    distance_earned = db.Column(db.Float, nullable=True)
    speed_earned = db.Column(db.Float, nullable=True)
    woods_earned = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {
        'version_id_col': version_id,
    }

    def __repr__(self):
        return f'<TournamentResult competitor={self.competitor_id} tournament={self.tournament_id}>'

    def earned(self, event: str):
        return getattr(self, f'{event}_earned')

    def set_earned(self, event: str, value):
        setattr(self, f'{event}_earned', value)

    def to_dict(self) -> dict:
        payload = {
            'id': self.id,
            'competitor_id': self.competitor_id,
            'tournament_id': self.tournament_id,
        }
        for event in config.EVENTS:
            payload[f'{event}_earned'] = self.earned(event)
        return payload
