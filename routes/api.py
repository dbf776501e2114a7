"""JSON API endpoints for rankings, competitors, tournaments and results."""
import os
import tempfile

from flask import Blueprint, after_this_request, jsonify, request, send_file

from database import db
from services import registry
from services.errors import ValidationError
from services.excel_io import export_rankings_to_excel
from services.scoring import compute_competitor_history, compute_competitor_scores, compute_rankings

api_bp = Blueprint('api', __name__)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------

@api_bp.route('/rankings')
def rankings():
    return jsonify(compute_rankings(db.session))


@api_bp.route('/rankings/public')
def public_rankings():
    """Rankings table for unauthenticated visitors."""
    return jsonify(compute_rankings(db.session))


@api_bp.route('/rankings/export')
def export_rankings():
    """Download the current rankings as an Excel workbook."""
    fd, path = tempfile.mkstemp(suffix='.xlsx')
    os.close(fd)
    export_rankings_to_excel(compute_rankings(db.session), path)

    @after_this_request
    def _cleanup(response):
        try:
            os.remove(path)
        except OSError:
            pass
        return response

    return send_file(path, as_attachment=True, download_name='rankings.xlsx')


# ---------------------------------------------------------------------------
# Competitors
# ---------------------------------------------------------------------------

@api_bp.route('/competitors')
def list_competitors():
    return jsonify([c.to_dict() for c in registry.list_competitors(db.session)])


@api_bp.route('/competitors', methods=['POST'])
def create_competitor():
    payload = _json_body()
    competitor = registry.create_competitor(db.session, payload.get('name'), payload.get('email'))
    return jsonify(competitor.to_dict()), 201


@api_bp.route('/competitors/<int:competitor_id>')
def competitor_detail(competitor_id):
    """Competitor with current scores and per-tournament history."""
    competitor = registry.get_competitor(db.session, competitor_id)
    return jsonify({
        **competitor.to_dict(),
        'scores': compute_competitor_scores(db.session, competitor.id),
        'history': compute_competitor_history(db.session, competitor.id),
    })


@api_bp.route('/competitors/<int:competitor_id>', methods=['PUT'])
def update_competitor(competitor_id):
    payload = _json_body()
    competitor = registry.update_competitor(db.session, competitor_id, payload.get('name'), payload.get('email'))
    return jsonify(competitor.to_dict())


@api_bp.route('/competitors/<int:competitor_id>', methods=['DELETE'])
def delete_competitor(competitor_id):
    registry.delete_competitor(db.session, competitor_id)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Tournaments
# ---------------------------------------------------------------------------

@api_bp.route('/tournaments')
def list_tournaments():
    return jsonify([t.to_dict() for t in registry.list_tournaments(db.session)])


@api_bp.route('/tournaments', methods=['POST'])
def create_tournament():
    payload = _json_body()
    tournament = registry.create_tournament(
        db.session,
        payload.get('name'),
        payload.get('date'),
        payload.get('active_events') or [],
        payload.get('total_points') or {},
    )
    return jsonify(tournament.to_dict()), 201


@api_bp.route('/tournaments/<int:tournament_id>', methods=['DELETE'])
def delete_tournament(tournament_id):
    registry.delete_tournament(db.session, tournament_id)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@api_bp.route('/results', methods=['POST'])
def upsert_result():
    """Add or update a single result by hand."""
    payload = _json_body()
    try:
        competitor_id = int(payload.get('competitor_id'))
        tournament_id = int(payload.get('tournament_id'))
    except (TypeError, ValueError):
        raise ValidationError('competitor_id and tournament_id are required')
    result = registry.upsert_result(db.session, competitor_id, tournament_id, payload)
    return jsonify({'success': True, 'result': result.to_dict()})
