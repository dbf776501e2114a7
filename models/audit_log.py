"""Audit trail of uploads, commits and manual edits."""
import json
from datetime import datetime
from database import db


class AuditLog(db.Model):
    """
    One ranking-affecting action.

    Rows are only ever appended; deleting a tournament or competitor leaves
    its entries in place, which is why ``entity_id`` is not a foreign key.
    """

    __tablename__ = 'audit_logs'
    __table_args__ = (
        db.Index('ix_audit_logs_created_at', 'created_at'),
        db.Index('ix_audit_logs_action', 'action'),
    )

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(80), nullable=False)
    entity_type = db.Column(db.String(80), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    details_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f'<AuditLog {self.action} {self.entity_type}:{self.entity_id}>'

    @property
    def details(self) -> dict:
        return json.loads(self.details_json) if self.details_json else {}

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'details': self.details,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
