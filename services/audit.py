"""Helpers for writing audit logs."""
import json
from flask import has_request_context, request
from models.audit_log import AuditLog


def log_action(session, action: str, entity_type: str, entity_id: int | None = None,
               details: dict | None = None) -> AuditLog:
    """Append an audit log record to the caller's transaction."""
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        user_agent = (request.user_agent.string or '')[:255]

    entry = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        ip_address=ip_address,
        user_agent=user_agent,
        details_json=json.dumps(details or {}),
    )
    session.add(entry)
    return entry
