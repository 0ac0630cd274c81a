"""Application state aggregate.

``GameState`` owns the ledger and the active session for one Flask app.
All writes go through ``mutation()``, which admits a single writer at a
time and rejects overlapping attempts instead of letting them race. Each
mutation bumps ``version``; snapshots for storage are taken inside the
mutation so a snapshot and its version always match.
"""

import threading
from contextlib import contextmanager
from typing import Iterable, Optional

from . import session as engine
from .errors import ConcurrentMutationError, NoActiveSessionError, SessionInProgressError
from .ledger import HistoryEntry, Ledger, Player
from .session import Session

KEY_PLAYERS = 'pintintin_players'
KEY_HISTORY = 'pintintin_history'
KEY_COUNT = 'pintintin_count'
KEY_ACTIVE = 'pintintin_active'
KEY_USERNAME = 'pintintin_username'


class GameState:
    def __init__(self, ledger: Optional[Ledger] = None, active: Optional[Session] = None, username: str = ''):
        self.ledger = ledger or Ledger()
        self.active = active
        self.username = username
        self.loaded = False
        self.version = 0
        self.saved_version = 0
        self._lock = threading.Lock()

    @contextmanager
    def mutation(self):
        if not self._lock.acquire(blocking=False):
            raise ConcurrentMutationError('Another change is being applied, try again')
        try:
            self.version += 1
            yield self
        finally:
            self._lock.release()

    def ensure_loaded(self, loader) -> None:
        """Run ``loader(self)`` once, before any mutation can start."""
        if self.loaded:
            return
        with self._lock:
            if not self.loaded:
                loader(self)

    # ---- session lifecycle ----

    def start_session(self, trio: Iterable[str], confirm: bool = False) -> Session:
        if self.active is not None and not self.active.is_finished and not confirm:
            raise SessionInProgressError('A game is in progress; confirm to discard it')
        new_session = engine.create_session(trio, self.ledger.roster)
        self.active = new_session
        return new_session

    def score(self, player_id: str, points: int) -> Optional[HistoryEntry]:
        updated, event = engine.apply_points(self.active, player_id, points)
        return self._commit(updated, event)

    def foul(self, player_id: str, foul_label: str) -> HistoryEntry:
        updated, event = engine.apply_foul(self.active, player_id, foul_label)
        return self._commit(updated, event)

    def resolve_tie(self, loser_id: str) -> HistoryEntry:
        updated, event = engine.resolve_tie(self.active, loser_id)
        return self._commit(updated, event)

    def _commit(self, updated: Session, event) -> Optional[HistoryEntry]:
        self.active = updated
        if event is None:
            return None
        return self.ledger.record_finish(event)

    def discard_session(self) -> Session:
        if self.active is None:
            raise NoActiveSessionError('There is no game to close')
        discarded, self.active = self.active, None
        return discarded

    # ---- roster / admin ----

    def add_player(self, name: str) -> Player:
        return self.ledger.add_player(name)

    def remove_player(self, player_id: str) -> bool:
        """Remove a roster player. Returns True when the active game was discarded."""
        self.ledger.remove_player(player_id)
        if self.active is not None and self.active.has_player(player_id):
            self.active = None
            return True
        return False

    def reset_counter(self) -> None:
        self.ledger.reset_counter()

    # ---- snapshots ----

    def to_snapshot(self):
        return {
            KEY_PLAYERS: [p.to_dict() for p in self.ledger.roster],
            KEY_HISTORY: [e.to_dict() for e in self.ledger.log],
            KEY_COUNT: self.ledger.game_count,
            KEY_ACTIVE: self.active.to_dict() if self.active else None,
            KEY_USERNAME: self.username,
        }

    def apply_snapshot(self, snapshot) -> None:
        """Restore the keys present in ``snapshot``; absent keys keep their value."""
        if KEY_PLAYERS in snapshot:
            self.ledger.roster = [Player.from_dict(p) for p in snapshot[KEY_PLAYERS] or []]
        if KEY_HISTORY in snapshot:
            self.ledger.log = [HistoryEntry.from_dict(e) for e in snapshot[KEY_HISTORY] or []]
        if KEY_COUNT in snapshot:
            self.ledger.game_count = max(0, int(snapshot[KEY_COUNT] or 0))
        if KEY_ACTIVE in snapshot:
            active = snapshot[KEY_ACTIVE]
            self.active = Session.from_dict(active) if active else None
        if KEY_USERNAME in snapshot:
            self.username = snapshot[KEY_USERNAME] or ''

    def public_dict(self):
        """Observer view returned to every role."""
        return {
            'players': [p.to_dict() for p in self.ledger.standings()],
            'history': [e.to_dict() for e in self.ledger.log],
            'game_count': self.ledger.game_count,
            'active_game': self.active.to_dict() if self.active else None,
        }
