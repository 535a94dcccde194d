"""
Host routes: open and close sessions, one-shot overview, CSV export.
Live updates go over Socket.IO, see routes/live.py.
"""

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    request,
)

from ..repository import StoreError
from ..services.aggregation import AggregationPipeline
from ..services.session_state import HostController
from ..utils.export import export_filename, results_to_csv
from ..utils.links import join_url
from .main import get_store

host_bp = Blueprint('host', __name__, url_prefix='/host')

STATUS_BY_KIND = {
    'store': 503,
    'not_found': 404,
    'closed': 409,
}


def join_url_for(session_id: str) -> str:
    base = current_app.config.get('COINTOSS_PUBLIC_URL') or request.host_url
    lang = request.args.get('lang') or current_app.config.get('COINTOSS_DEFAULT_LANG', 'en')
    return join_url(base, session_id, lang)


def _load_session(session_id):
    """Return (session, error_response); exactly one of them is None."""
    try:
        found = get_store().get_session_by_id(session_id)
    except StoreError:
        return None, (jsonify({'success': False, 'error': 'Could not load the session. Please try again.'}), 503)
    if found is None:
        return None, (jsonify({'success': False, 'error': 'Session not found.'}), 404)
    return found, None


@host_bp.route('/sessions', methods=['POST'])
def open_session():
    """Open a new session for participants to join"""
    controller = HostController(get_store())
    outcome = controller.open_session()
    if not outcome.success:
        return jsonify(outcome.to_dict()), STATUS_BY_KIND.get(outcome.kind, 500)

    opened = outcome.value
    return jsonify({
        'success': True,
        'session': opened.to_dict(),
        'join_url': join_url_for(opened.id),
    }), 201


@host_bp.route('/sessions/<session_id>/close', methods=['POST'])
def close_session(session_id):
    """Stop accepting results; there is no reopening"""
    controller = HostController(get_store())
    outcome = controller.close_session(session_id)
    if not outcome.success:
        return jsonify(outcome.to_dict()), STATUS_BY_KIND.get(outcome.kind, 500)
    return jsonify({'success': True, 'session': outcome.value.to_dict()})


@host_bp.route('/sessions/<session_id>')
def session_overview(session_id):
    """Current session status, aggregate and latest submissions"""
    found, error = _load_session(session_id)
    if error:
        return error

    pipeline = AggregationPipeline(get_store())
    try:
        pipeline.activate(session_id)
        snapshot = pipeline.snapshot()
    finally:
        pipeline.close()

    if snapshot['error']:
        return jsonify({'success': False, 'error': snapshot['error']}), 503

    snapshot.update({
        'success': True,
        'session': found.to_dict(),
        'join_url': join_url_for(session_id),
    })
    return jsonify(snapshot)


@host_bp.route('/sessions/<session_id>/export.csv')
def export_csv(session_id):
    found, error = _load_session(session_id)
    if error:
        return error
    try:
        results = get_store().list_results_for_session(session_id)
    except StoreError:
        return jsonify({'success': False, 'error': 'Could not load results. Please try again.'}), 503

    return Response(
        results_to_csv(results),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{export_filename(found.id)}"'},
    )
