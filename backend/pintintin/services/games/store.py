"""Persistence adapter: a key-value view of the game state over ``state_record``.

Loading tolerates missing or unreadable keys by keeping the default value.
Saving is write-after-mutate and never blocks or fails the request that
triggered it.
"""

import json
import threading

from pintintin import db, socketio
from pintintin.models import StateRecord
from .state import GameState, KEY_ACTIVE, KEY_COUNT, KEY_HISTORY, KEY_PLAYERS, KEY_USERNAME

STATE_KEYS = (KEY_PLAYERS, KEY_HISTORY, KEY_COUNT, KEY_ACTIVE, KEY_USERNAME)

# Saves run on background tasks; only the newest version of a state may land
_save_lock = threading.Lock()


def load_state(app, state: GameState) -> GameState:
    """Populate ``state`` from the database. Must run inside an app context."""
    records = {r.key: r for r in StateRecord.query.filter(StateRecord.key.in_(STATE_KEYS)).all()}
    for key in STATE_KEYS:
        record = records.get(key)
        if record is None:
            continue
        try:
            state.apply_snapshot({key: record.load()})
        except Exception as exc:
            app.logger.warning(f"[store-load] key={key} unreadable, using default: {exc}")
    state.loaded = True
    app.logger.info(
        f"[store-load] players={len(state.ledger.roster)} history={len(state.ledger.log)} "
        f"count={state.ledger.game_count} active={state.active.id if state.active else None}"
    )
    return state


def save_snapshot(app, snapshot, version=None, state=None) -> None:
    """Write every key of ``snapshot``.

    When ``state`` is given, a snapshot older than the last one stored for
    that state is skipped.
    """
    with _save_lock, app.app_context():
        if state is not None:
            if version < state.saved_version:
                app.logger.info(f"[store-save] skipping stale snapshot version={version}")
                return
            state.saved_version = version
        try:
            for key in STATE_KEYS:
                record = db.session.get(StateRecord, key)
                if record is None:
                    record = StateRecord(key=key)
                record.dump(snapshot.get(key))
                db.session.add(record)
            db.session.commit()
            app.logger.info(f"[store-save] keys={len(STATE_KEYS)}")
        except Exception as exc:
            db.session.rollback()
            app.logger.error(f"[store-save] failed: {exc}")


def schedule_save(app, state: GameState) -> None:
    """Persist the current ``state`` without holding up the caller.

    Must be called inside ``state.mutation()``. Runs inline in TESTING mode
    so tests can assert on stored rows.
    """
    # Detach from live objects before handing off to another task
    snapshot = json.loads(json.dumps(state.to_snapshot()))
    version = state.version
    if app.config.get('TESTING'):
        save_snapshot(app, snapshot, version, state)
    else:
        socketio.start_background_task(save_snapshot, app, snapshot, version, state)
