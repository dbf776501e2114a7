"""
Competitor model: a ranked person, independent of any single tournament.
"""
from datetime import datetime
from sqlalchemy.orm import validates
from database import db
from services.validation import name_key


class Competitor(db.Model):
    """Represents a competitor across every tournament they have entered."""

    __tablename__ = 'competitors'

    id = db.Column(db.Integer, primary_key=True)

    # Display name, updated when a later upload spells it differently
    name = db.Column(db.String(200), nullable=False)

    # Case-folded name used for matching; kept in step with name
    name_key = db.Column(db.String(200), nullable=False, index=True)

    # Stored lower-cased; the primary dedup key when present
    email = db.Column(db.String(200), nullable=True, unique=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    results = db.relationship('TournamentResult', backref='competitor', lazy='dynamic',
                              cascade='all, delete-orphan', passive_deletes=True)

    def __repr__(self):
        return f'<Competitor {self.name}>'

    @validates('name')
    def _sync_name_key(self, key, value):
        self.name_key = name_key(value) if value is not None else None
        return value

    @property
    def tournament_count(self):
        """Return count of tournaments this competitor has results in."""
        return self.results.count()

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
