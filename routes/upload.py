"""
Results upload routes.

Preview -> Confirm flow: the preview parses an uploaded sheet and records an
audit entry, but stores no competitors, tournaments or results; the commit
persists the confirmed competitors as one tournament.
"""
from flask import Blueprint, jsonify, request

import config
from database import db
from services.audit import log_action
from services.authorization import is_authorized_request
from services.csv_parser import ParseResult, ParseSettings, parse_csv, parse_rows
from services.errors import FatalParseError, ValidationError
from services.excel_io import read_workbook_rows
from services.tournament_commit import commit_tournament, match_existing_competitor
from services.upload_security import read_upload_text, validate_results_upload

upload_bp = Blueprint('upload', __name__)

_TRUTHY = {'true', '1', 'yes', 'on'}


def _settings_from_form(form) -> ParseSettings:
    active_events = [e for e in config.EVENTS if str(form.get(f'has_{e}', '')).strip().lower() in _TRUTHY]
    total_points = {e: form.get(f'total_points_{e}') for e in config.EVENTS}
    return ParseSettings.build(active_events, total_points)


def _parse_upload(f, extension: str, settings: ParseSettings) -> ParseResult:
    if extension == 'csv':
        try:
            text = read_upload_text(f)
        except UnicodeDecodeError:
            return ParseResult(errors=['CSV files must be UTF-8 encoded.'])
        return parse_csv(text, settings)

    try:
        rows = read_workbook_rows(f.stream)
    except FatalParseError as exc:
        return ParseResult(errors=list(exc.errors))
    return parse_rows(rows, settings)


# ---------------------------------------------------------------------------
# POST /api/upload/preview: parse only; writes an audit entry, no results
# ---------------------------------------------------------------------------
@upload_bp.route('/preview', methods=['POST'])
def preview():
    """Parse an uploaded sheet for review; only an audit entry is written."""
    f = request.files.get('file') or request.files.get('csv')
    if f is None or f.filename == '':
        raise ValidationError('No results file uploaded')

    validation = validate_results_upload(f, config.UPLOAD_EXTENSIONS)
    if not validation.ok:
        raise ValidationError(validation.error)

    settings = _settings_from_form(request.form)
    result = _parse_upload(f, validation.extension, settings)
    if not result.ok:
        return jsonify(result.to_dict()), 422

    # Show the admin which rows will reuse an existing competitor
    enriched = []
    for competitor in result.competitors:
        existing = match_existing_competitor(db.session, competitor['name'], competitor.get('email'))
        enriched.append({
            **competitor,
            'existing_competitor_id': existing.id if existing else None,
            'is_new': existing is None,
        })

    log_action(db.session, 'results_previewed', 'upload', None, {
        'filename': validation.safe_name,
        'competitors': len(enriched),
        'warnings': len(result.warnings),
    })
    db.session.commit()

    payload = result.to_dict()
    payload.update({
        'competitors': enriched,
        'active_events': [e for e in config.EVENTS if e in settings.active_events],
        'total_points': settings.total_points,
    })
    return jsonify(payload)


# ---------------------------------------------------------------------------
# POST /api/upload/commit: write the confirmed preview
# ---------------------------------------------------------------------------
@upload_bp.route('/commit', methods=['POST'])
def commit():
    payload = request.get_json(silent=True) or {}

    if payload.get('errors'):
        raise FatalParseError(
            'The preview reported errors; fix the file and run the preview again before committing.',
            errors=list(payload['errors'])
        )

    outcome = commit_tournament(
        db.session,
        {'name': payload.get('tournament_name'), 'date': payload.get('tournament_date')},
        payload.get('active_events') or [],
        payload.get('total_points') or {},
        payload.get('competitors') or [],
        authorized=is_authorized_request(),
    )
    return jsonify({'success': True, **outcome.to_dict()}), 201
