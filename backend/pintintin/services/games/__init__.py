"""Game domain services: session engine, ledger and state persistence.

The engine and ledger are pure logic over in-memory values. HTTP routes
and socket handlers reach them through the app's ``GameState`` so that
transport concerns stay out of the game rules.
"""

from flask import current_app

EXTENSION_KEY = 'pintintin'


def get_state(app=None):
    """Return the app's ``GameState``, loading it from storage on first use."""
    from .store import load_state

    app = app or current_app._get_current_object()
    state = app.extensions[EXTENSION_KEY]
    state.ensure_loaded(lambda s: load_state(app, s))
    return state


def publish_change(app, state, reason: str) -> None:
    """Persist the new snapshot and tell connected clients to refresh.

    Call inside ``state.mutation()``.
    """
    from pintintin import socketio
    from .store import schedule_save

    schedule_save(app, state)
    socketio.emit('state_update', {'reason': reason, 'game_count': state.ledger.game_count}, namespace='/ws')
