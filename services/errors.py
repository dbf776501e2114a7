"""
Error taxonomy for ingestion, scoring and commit.

Every error carries an HTTP status and a machine-readable code so the route
layer can render it without knowing which service raised it.
"""
from __future__ import annotations


class RankingsError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {'error': self.message, 'code': self.code}
        if self.details:
            payload['details'] = self.details
        return payload


class FatalParseError(RankingsError):
    """The sheet cannot be ingested; new input is required."""

    status_code = 422
    code = 'FILE_PROCESSING_ERROR'

    def __init__(self, message: str, errors: list | None = None, warnings: list | None = None):
        super().__init__(message, details=errors or [message])
        self.errors = list(errors or [message])
        self.warnings = list(warnings or [])

    def to_dict(self) -> dict:
        return {
            'error': self.message,
            'code': self.code,
            'errors': self.errors,
            'warnings': self.warnings,
        }


class ValidationError(RankingsError):
    """A required field is missing or malformed."""

    status_code = 400
    code = 'VALIDATION_FAILED'


class ConflictError(RankingsError):
    """Duplicate tournament or competitor identity."""

    status_code = 409
    code = 'CONFLICT'

    def __init__(self, message: str, conflicting_id: int | None = None, entity_type: str | None = None):
        super().__init__(message)
        self.conflicting_id = conflicting_id
        self.entity_type = entity_type

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.conflicting_id is not None:
            payload['conflicting_id'] = self.conflicting_id
        if self.entity_type:
            payload['entity_type'] = self.entity_type
        return payload


class NotFoundError(RankingsError):
    status_code = 404
    code = 'RESOURCE_NOT_FOUND'

    def __init__(self, resource: str = 'Resource'):
        super().__init__(f'{resource} not found')


class NotAuthorizedError(RankingsError):
    status_code = 403
    code = 'AUTHORIZATION_FAILED'

    def __init__(self, message: str = 'Insufficient permissions'):
        super().__init__(message)


class PersistenceError(RankingsError):
    """Storage failure; the surrounding transaction was rolled back."""

    status_code = 500
    code = 'DATABASE_ERROR'
