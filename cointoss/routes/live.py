"""
Socket.IO handlers for host dashboards (namespace /host).

A host emits 'watch' with {'session': <id>} and joins the room named after
that session. It then receives 'aggregate' events carrying the pipeline
snapshot every time the session's result set changes.
"""

import logging

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from ..extensions import HOST_NAMESPACE, socketio
from ..repository import StoreError
from .host import join_url_for
from .main import get_store

logger = logging.getLogger(__name__)


def get_live():
    return current_app.extensions['cointoss_live']


@socketio.on('watch', namespace=HOST_NAMESPACE)
def on_watch(data):
    session_id = (data or {}).get('session')
    if not session_id:
        emit('watch_error', {'error': 'No session given.'})
        return
    try:
        found = get_store().get_session_by_id(session_id)
    except StoreError:
        emit('watch_error', {'error': 'Could not load the session. Please try again.'})
        return
    if found is None:
        emit('watch_error', {'error': 'Session not found.'})
        return

    live = get_live()
    previous = live.watching(request.sid)
    if previous and previous != session_id:
        leave_room(previous)
    join_room(session_id)
    snapshot = live.watch(request.sid, session_id)

    emit('watching', {'session': found.to_dict(), 'join_url': join_url_for(session_id)})
    emit('aggregate', snapshot)


@socketio.on('unwatch', namespace=HOST_NAMESPACE)
def on_unwatch():
    session_id = get_live().unwatch(request.sid)
    if session_id:
        leave_room(session_id)


@socketio.on('disconnect', namespace=HOST_NAMESPACE)
def on_disconnect(reason=None):
    session_id = get_live().unwatch(request.sid)
    if session_id:
        logger.info("[HostSocket] %s left session %s (%s)", request.sid, session_id, reason)
