"""
Participant routes: check the session, flip, submit once.

The in-progress flips and the "already submitted" markers live in the signed
session cookie, i.e. on the participant's own device. The cookie is
permanent (PERMANENT_SESSION_LIFETIME) so a browser restart keeps them.
"""

from flask import Blueprint, jsonify, request, session

from ..services.ingestion import MarkerStore, ParticipantFlow
from .main import get_store

join_bp = Blueprint('join', __name__, url_prefix='/join')

STATUS_BY_KIND = {
    'validation': 400,
    'closed': 409,
    'duplicate': 409,
    'busy': 409,
    'store': 503,
}


def _requested_session_id():
    data = request.get_json(silent=True) or {}
    return data.get('session') or request.args.get('session')


def _restore_flow() -> ParticipantFlow:
    saved = session.get('join') or {}
    return ParticipantFlow(
        get_store(),
        MarkerStore(session),
        flips=saved.get('flips'),
        flips_session=saved.get('session_id'),
    )


def _save_flow(flow: ParticipantFlow) -> None:
    # Outlive the browser session, like the device's local storage would
    session.permanent = True
    session['join'] = {'session_id': flow.flips_session, 'flips': list(flow.sequence.flips)}


@join_bp.route('', methods=['GET'])
def join_state():
    """Session state plus this device's progress"""
    flow = _restore_flow()
    flow.enter(request.args.get('session'))
    _save_flow(flow)
    return jsonify(flow.to_dict())


@join_bp.route('/flip', methods=['POST'])
def flip():
    flow = _restore_flow()
    flow.enter(_requested_session_id())
    if not flow.can_interact:
        _save_flow(flow)
        return jsonify({'success': False, 'error': 'Flipping is not available.', **flow.to_dict()}), 409

    value = flow.flip()
    _save_flow(flow)
    return jsonify({'success': True, 'flipped': value, **flow.to_dict()})


@join_bp.route('/reset', methods=['POST'])
def reset():
    flow = _restore_flow()
    flow.enter(_requested_session_id())
    if not flow.reset():
        _save_flow(flow)
        return jsonify({'success': False, 'error': 'Reset is not available.', **flow.to_dict()}), 409
    _save_flow(flow)
    return jsonify({'success': True, **flow.to_dict()})


@join_bp.route('/submit', methods=['POST'])
def submit():
    """Submit the completed flips once per device and session"""
    data = request.get_json(silent=True) or {}
    flow = _restore_flow()
    flow.enter(_requested_session_id())
    outcome = flow.submit(data.get('nickname'))
    _save_flow(flow)

    body = {**flow.to_dict(), **outcome.to_dict()}
    if not outcome.success:
        return jsonify(body), STATUS_BY_KIND.get(outcome.kind, 500)
    return jsonify(body), 201
