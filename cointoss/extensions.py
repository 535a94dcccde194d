"""Flask extensions shared by the app factory and the handlers."""

from flask_socketio import SocketIO

HOST_NAMESPACE = '/host'

socketio = SocketIO()


def emit_to_room(event: str, data: dict, room: str) -> None:
    socketio.emit(event, data, to=room, namespace=HOST_NAMESPACE)
