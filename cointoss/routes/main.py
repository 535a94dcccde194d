"""
Main routes for the coin toss experiment system.
"""

from flask import Blueprint, current_app, jsonify

from .. import FLIP_TARGET, __version__

main_bp = Blueprint('main', __name__)


def get_store():
    return current_app.extensions['cointoss_store']


@main_bp.route('/')
def index():
    """Entry points for hosts and participants"""
    return jsonify({
        'app': 'cointoss',
        'version': __version__,
        'flip_target': FLIP_TARGET,
        'host': '/host/sessions',
        'join': '/join?session=<session_id>',
    })


@main_bp.route('/health')
def health():
    return jsonify({'status': 'ok'})
