"""
Validation service for tournament settings and result payloads.

Provides validation for:
- Tournament metadata (date, name)
- Event settings (active events, total points per event)
- Earned values on committed or manually entered results
- Competitor identity fields (name, email)

Validators collect every problem before raising, so a caller fixing its input
sees all of them at once.
"""
from __future__ import annotations

import math
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

import config
from services.errors import ValidationError


class ValidationIssue:
    """Represents a single validation problem."""

    def __init__(self, code: str, message: str, field: str = None):
        self.code = code
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'message': self.message,
            'field': self.field,
        }


class ValidationResult:
    """Collection of validation results."""

    def __init__(self):
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, code: str, message: str, field: str = None):
        self.errors.append(ValidationIssue(code, message, field))

    def add_warning(self, code: str, message: str, field: str = None):
        self.warnings.append(ValidationIssue(code, message, field))

    def merge(self, other: 'ValidationResult'):
        """Merge another ValidationResult into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def raise_if_invalid(self):
        """Raise ValidationError carrying every collected error."""
        if self.is_valid:
            return
        message = self.errors[0].message if len(self.errors) == 1 else 'Validation failed'
        raise ValidationError(message, details=[e.to_dict() for e in self.errors])

    def to_dict(self) -> dict:
        return {
            'is_valid': self.is_valid,
            'error_count': len(self.errors),
            'warning_count': len(self.warnings),
            'errors': [e.to_dict() for e in self.errors],
            'warnings': [w.to_dict() for w in self.warnings],
        }


def normalize_name(value) -> Optional[str]:
    """Trim a display name; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def name_key(name: str) -> str:
    """Case-insensitive identity of a display name; folds non-ASCII letters too."""
    return name.strip().casefold()


def normalize_email(value) -> Optional[str]:
    """Trim and lower-case an email; blank becomes None."""
    text = normalize_name(value)
    return text.lower() if text else None


def parse_date(value, result: ValidationResult, field: str = 'tournament_date') -> Optional[date]:
    """Accept a date, datetime or YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = normalize_name(value)
    if text is None:
        result.add_error('DATE_REQUIRED', 'Tournament date is required', field)
        return None
    try:
        return datetime.strptime(text, '%Y-%m-%d').date()
    except ValueError:
        result.add_error('DATE_INVALID', f'{field} must be a valid date in YYYY-MM-DD format', field)
        return None


def coerce_number(value) -> Optional[float]:
    """Return a finite float for numeric input, or None if it is not a number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


class EventSettingsValidator:
    """Validates which events a tournament held and their point totals."""

    @classmethod
    def validate(cls, active_events: Iterable[str], total_points: Optional[Dict] = None,
                 result: ValidationResult = None) -> Tuple[frozenset, Dict[str, float]]:
        """
        Return (active events, per-event totals) with missing totals defaulted.

        Problems are added to ``result`` when one is passed; without one, a
        ValidationError is raised here.
        """
        owns_result = result is None
        result = result if result is not None else ValidationResult()
        total_points = total_points or {}

        events = []
        unknown = []
        for event in active_events or []:
            if event not in config.EVENTS:
                unknown.append(event)
                result.add_error(
                    'UNKNOWN_EVENT',
                    f'Unknown event "{event}"; expected one of: {", ".join(config.EVENTS)}',
                    'active_events'
                )
            else:
                events.append(event)
        if not events and not unknown:
            result.add_error('NO_EVENTS', 'At least one event must be selected', 'active_events')

        totals = {}
        for event in config.EVENTS:
            raw = total_points.get(event)
            if raw is None or raw == '':
                totals[event] = config.DEFAULT_TOTAL_POINTS
                continue
            number = coerce_number(raw)
            if number is None or number <= 0:
                result.add_error(
                    'TOTAL_POINTS_INVALID',
                    f'total_points_{event} must be a positive number',
                    f'total_points_{event}'
                )
                continue
            totals[event] = number

        if owns_result:
            result.raise_if_invalid()
        return frozenset(events), totals


def validate_earned_values(values: Dict, active_events: Iterable[str], result: ValidationResult,
                           label: str = 'result') -> Dict[str, Optional[float]]:
    """
    Return per-event earned values that honour the tournament's events.

    Inactive events are always None whatever the payload says. Active events
    must carry a non-negative number; None would erase the held/not-held
    distinction, so it is rejected rather than stored.
    """
    active = set(active_events)
    earned = {}
    for event in config.EVENTS:
        if event not in active:
            earned[event] = None
            continue
        raw = values.get(f'{event}_earned')
        number = coerce_number(raw)
        if number is None:
            result.add_error(
                'EARNED_INVALID',
                f'{label}: "{event}" is held in this tournament and needs a numeric value',
                f'{event}_earned'
            )
        elif number < 0:
            result.add_error(
                'EARNED_NEGATIVE',
                f'{label}: "{event}" cannot be negative',
                f'{event}_earned'
            )
        earned[event] = number
    return earned
