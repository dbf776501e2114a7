"""Request-level write permission.

Identity and roles live outside this service. The only decision made here is
whether the request carries the configured admin token; the services receive
the answer as a plain boolean.
"""
import hmac

from flask import current_app, request

ADMIN_TOKEN_HEADER = 'X-Admin-Token'


def is_authorized_request() -> bool:
    expected = current_app.config.get('ADMIN_API_TOKEN') or ''
    supplied = request.headers.get(ADMIN_TOKEN_HEADER, '')
    if not expected or not supplied:
        return False
    return hmac.compare_digest(supplied.encode('utf-8'), expected.encode('utf-8'))
