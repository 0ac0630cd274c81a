from flask_socketio import emit
from flask import request
from pintintin import socketio
from typing import Set
import time
import uuid

ANONYMOUS_USER = 'Anónimo'

# Connected socket ids; drives the live participant count
_connected: Set[str] = set()


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _broadcast_user_count() -> None:
    socketio.emit('user_count', len(_connected), namespace=request.namespace)


def handle_connect():
    _connected.add(_get_sid())
    emit('connected', {'message': 'Connected to /ws'})
    _broadcast_user_count()


def handle_disconnect(*args):
    _connected.discard(_get_sid())
    _broadcast_user_count()


def handle_send_message(data):
    """Relay a chat message to every connected client, sender included."""
    data = data or {}
    text = data.get('text')
    if not isinstance(text, str) or not text.strip():
        emit('error', {'message': 'text is required'})
        return
    user = data.get('user')
    message = {
        'id': data.get('id') or str(uuid.uuid4()),
        'user': user.strip() if isinstance(user, str) and user.strip() else ANONYMOUS_USER,
        'text': text,
        'timestamp': data.get('timestamp') or int(time.time() * 1000),
    }
    socketio.emit('receive_message', message, namespace=request.namespace)


def handle_ping(data):
    emit('pong', data or {})


def connected_count() -> int:
    return len(_connected)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('send_message', handle_send_message, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
