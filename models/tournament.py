"""
Tournament model: one dated competition and the events it held.
"""
from datetime import datetime
from database import db
import config


class Tournament(db.Model):
    """Represents a single tournament (e.g., Spring Championship 2024)."""

    __tablename__ = 'tournaments'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=True)
    date = db.Column(db.Date, nullable=False)

    # Which events were held
    has_knockdowns = db.Column(db.Boolean, nullable=False, default=True)
    has_distance = db.Column(db.Boolean, nullable=False, default=True)
    has_speed = db.Column(db.Boolean, nullable=False, default=True)
    has_woods = db.Column(db.Boolean, nullable=False, default=True)

    # Maximum points available per event
    total_points_knockdowns = db.Column(db.Float, nullable=False, default=config.DEFAULT_TOTAL_POINTS)
    total_points_distance = db.Column(db.Float, nullable=False, default=config.DEFAULT_TOTAL_POINTS)
    total_points_speed = db.Column(db.Float, nullable=False, default=config.DEFAULT_TOTAL_POINTS)
    total_points_woods = db.Column(db.Float, nullable=False, default=config.DEFAULT_TOTAL_POINTS)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    results = db.relationship('TournamentResult', backref='tournament', lazy='dynamic',
                              cascade='all, delete-orphan', passive_deletes=True)

    def __repr__(self):
        return f'<Tournament {self.name or "(unnamed)"} {self.date}>'

    def holds(self, event: str) -> bool:
        """Return True when the event was part of this tournament."""
        return bool(getattr(self, f'has_{event}'))

    def total_points_for(self, event: str) -> float:
        return getattr(self, f'total_points_{event}')

    @property
    def active_events(self) -> list:
        return [e for e in config.EVENTS if self.holds(e)]

    def to_dict(self) -> dict:
        payload = {
            'id': self.id,
            'name': self.name,
            'date': self.date.isoformat() if self.date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        for event in config.EVENTS:
            payload[f'has_{event}'] = self.holds(event)
            payload[f'total_points_{event}'] = self.total_points_for(event)
        return payload


# NULL names never collide in a plain unique constraint, so coalesce them.
db.Index(
    'uq_tournaments_date_name',
    Tournament.date,
    db.func.coalesce(Tournament.name, ''),
    unique=True,
)
