"""
Results spreadsheet parser.

Turns a human-produced results sheet into per-competitor earned points for a
tournament's active events. The sheet's shape is not known in advance: the
header row is searched for, columns are matched through the alias table in
config.COLUMN_ALIASES, and every cell is classified as accepted, defaulted
with a warning, or fatal.

Nothing here touches the database; the result is a preview that the commit
coordinator persists once the caller confirms it.
"""
from __future__ import annotations

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Optional

import config
from services.errors import FatalParseError
from services.validation import EventSettingsValidator, name_key, normalize_email

logger = logging.getLogger(__name__)

_DELIMITERS = (',', '\t', ';')
_NUMBER_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')


def normalize_header(value) -> str:
    """Lower-case and drop everything that is not a letter or digit."""
    return re.sub(r'[^a-z0-9]', '', str(value).lower())


_NORMALIZED_ALIASES = {
    name: frozenset(normalize_header(alias) for alias in aliases)
    for name, aliases in config.COLUMN_ALIASES.items()
}

# Header fields in mapping order; name first so it always wins its cell
_FIELDS = ('name',) + config.EVENTS + ('email',)


@dataclass(frozen=True)
class ParseSettings:
    """Which events the tournament held and the points available in each."""

    active_events: frozenset
    total_points: dict

    @classmethod
    def build(cls, active_events, total_points=None) -> 'ParseSettings':
        events, totals = EventSettingsValidator.validate(active_events, total_points)
        return cls(active_events=events, total_points=totals)


@dataclass
class RowWarning:
    """A recoverable finding: the value was defaulted or needs a second look."""

    message: str
    row: Optional[int] = None
    field: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ParseResult:
    competitors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def warn(self, message: str, row: int = None, field_name: str = None):
        self.warnings.append(RowWarning(message, row, field_name))

    def raise_for_errors(self):
        """Raise FatalParseError if parsing failed; the preview must be re-run."""
        if self.errors:
            raise FatalParseError(self.errors[0], errors=self.errors,
                                  warnings=[str(w) for w in self.warnings])

    def to_dict(self) -> dict:
        return {
            'competitors': self.competitors,
            'warnings': [str(w) for w in self.warnings],
            'errors': list(self.errors),
        }


def detect_column(header, field_name: str) -> bool:
    """Return True when a header cell is an accepted spelling of the field."""
    return normalize_header(header) in _NORMALIZED_ALIASES[field_name]


def find_header_row(rows: list, scan_rows: int = config.HEADER_SCAN_ROWS) -> Optional[int]:
    """Return the index of the first row holding a name-like column."""
    for index, row in enumerate(rows[:scan_rows]):
        if any(detect_column(cell, 'name') for cell in row):
            return index
    return None


def map_columns(header_row: list) -> dict:
    """Map canonical field -> column index; the first matching column wins."""
    columns = {}
    for index, header in enumerate(header_row):
        for field_name in _FIELDS:
            if field_name not in columns and detect_column(header, field_name):
                columns[field_name] = index
    return columns


def _guess_delimiter(lines: list) -> str:
    lines = [line for line in lines if line.strip()]
    # A tab on every line beats commas inside names such as "Doe, John"
    if lines and all('\t' in line for line in lines):
        return '\t'
    # Otherwise the most widespread delimiter wins; ties fall back to declaration order
    return max(_DELIMITERS, key=lambda d: sum(1 for line in lines if d in line))


def read_csv_rows(raw_text: str) -> list:
    """
    Tokenize delimited text into rows of stripped strings.

    Blank rows are dropped. Raises FatalParseError if the text cannot be
    tokenized.
    """
    text = (raw_text or '').lstrip('\ufeff').strip()
    if not text:
        return []
    delimiter = _guess_delimiter(text.splitlines()[:20])
    try:
        reader = csv.reader(io.StringIO(text), delimiter=delimiter)
        rows = [[cell.strip() for cell in row] for row in reader]
    except csv.Error as exc:
        raise FatalParseError(
            'Could not parse CSV; check that the file uses comma or tab separators.'
        ) from exc
    return [row for row in rows if any(row)]


def _cell(row: list, index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ''
    value = row[index]
    return '' if value is None else str(value).strip()


def _parse_number(text: str) -> Optional[float]:
    if not _NUMBER_RE.match(text):
        return None
    value = float(text)
    # Overflowing literals such as 1e999 parse to inf
    return value if math.isfinite(value) else None


def _classify_cell(result: ParseResult, raw: str, event: str, total: float,
                   line: int, name: str) -> float:
    """Return the earned value for one active-event cell, warning as needed."""
    if not raw:
        result.warn(f'Row {line} ({name}): Blank "{event}" value treated as 0.', line, event)
        return 0.0

    value = _parse_number(raw)
    if value is None:
        result.warn(f'Row {line} ({name}): Non-numeric value "{raw}" in "{event}"; treated as 0.',
                    line, event)
        return 0.0
    if value < 0:
        result.warn(f'Row {line} ({name}): Negative value "{raw}" in "{event}"; treated as 0.',
                    line, event)
        return 0.0
    if value > total:
        # Suspicious but not invalid; kept as entered
        result.warn(
            f'Row {line} ({name}): Value "{raw}" in "{event}" exceeds total points ({total:g}); '
            f'accepted but verify.',
            line, event
        )
    return value


def _classify_rows(rows: list, settings: ParseSettings, result: ParseResult) -> list:
    if len(rows) < 2:
        raise FatalParseError('CSV appears to be empty or has no data rows.')

    header_index = find_header_row(rows)
    if header_index is None:
        raise FatalParseError(
            'Could not find a header row. Make sure one of your columns is labeled '
            '"name", "competitor", "athlete", or similar.'
        )
    if header_index > 0:
        result.warn(f'Header row found at row {header_index + 1} '
                    f'(skipped {header_index} row(s) above it).', header_index + 1)

    columns = map_columns(rows[header_index])
    if 'name' not in columns:
        raise FatalParseError('No name column found in header row.')

    for event in config.EVENTS:
        if event in settings.active_events and event not in columns:
            result.warn(
                f'Event "{event}" is marked active but no matching column was found in the CSV. '
                f'All competitors will receive a score of 0 for this event.',
                field_name=event
            )

    competitors = []
    seen_names = set()
    for offset, row in enumerate(rows[header_index + 1:]):
        line = header_index + offset + 2
        name = _cell(row, columns['name'])
        if not name:
            result.warn(f'Row {line}: Empty name; skipped.', line, 'name')
            continue

        if name_key(name) in seen_names:
            result.warn(
                f'Row {line}: Duplicate name "{name}"; skipped. '
                f'If this is a different person, resolve before uploading.',
                line, 'name'
            )
            continue
        seen_names.add(name_key(name))

        competitor = {
            'name': name,
            'email': normalize_email(_cell(row, columns.get('email'))) if 'email' in columns else None,
        }
        for event in config.EVENTS:
            key = f'{event}_earned'
            if event not in settings.active_events:
                competitor[key] = None
            elif event not in columns:
                competitor[key] = 0.0
            else:
                competitor[key] = _classify_cell(
                    result, _cell(row, columns[event]), event,
                    settings.total_points[event], line, name
                )
        competitors.append(competitor)

    if not competitors:
        raise FatalParseError('No valid competitor rows found after parsing.')
    return competitors


def parse_rows(rows: list, settings: ParseSettings) -> ParseResult:
    """Classify already-tokenized rows (CSV or workbook) into a ParseResult."""
    result = ParseResult()
    try:
        result.competitors = _classify_rows(rows, settings, result)
    except FatalParseError as exc:
        result.competitors = []
        result.errors.extend(exc.errors)

    logger.info('Parsed %d competitor(s) with %d warning(s) and %d error(s)',
                len(result.competitors), len(result.warnings), len(result.errors))
    return result


def parse_csv(raw_text: str, settings: ParseSettings) -> ParseResult:
    """
    Parse raw results text for a tournament with the given settings.

    Each competitor dict holds ``name``, ``email`` and ``<event>_earned`` for
    all four events: None when the event is not active, 0 when it is active
    but blank or unusable in the sheet.
    """
    try:
        rows = read_csv_rows(raw_text)
    except FatalParseError as exc:
        result = ParseResult(errors=list(exc.errors))
        logger.info('Rejected unreadable results file: %s', exc.message)
        return result
    return parse_rows(rows, settings)
