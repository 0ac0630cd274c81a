"""History and roster ledger.

The ledger is the only writer of the roster loss counts, the history log and
the global game counter. ``record_finish`` updates all three from a single
``GameFinished`` event so they can never drift apart.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

from .constants import LOSS_FOUL
from .errors import InvalidPlayerNameError, UnknownPlayerError
from .session import GameFinished


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    losses: int = 0

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'losses': self.losses}

    @classmethod
    def from_dict(cls, data) -> 'Player':
        return cls(id=data['id'], name=data['name'], losses=max(0, int(data.get('losses', 0))))


@dataclass(frozen=True)
class FinalScore:
    player_id: str
    name: str
    score: int


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    player_id: str
    opponents: Tuple[str, ...]
    final_scores: Tuple[FinalScore, ...]
    loss_type: str
    date: int
    foul_type: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'opponents': list(self.opponents),
            'final_scores': {s.player_id: {'name': s.name, 'score': s.score} for s in self.final_scores},
            'loss_type': self.loss_type,
            'foul_type': self.foul_type,
            'date': self.date,
        }

    @classmethod
    def from_dict(cls, data) -> 'HistoryEntry':
        return cls(
            id=data['id'],
            player_id=data['player_id'],
            opponents=tuple(data.get('opponents') or ()),
            final_scores=tuple(
                FinalScore(player_id=pid, name=v.get('name', pid), score=int(v.get('score', 0)))
                for pid, v in (data.get('final_scores') or {}).items()
            ),
            loss_type=data['loss_type'],
            foul_type=data.get('foul_type'),
            date=int(data.get('date', 0)),
        )


@dataclass
class Ledger:
    roster: List[Player] = field(default_factory=list)
    log: List[HistoryEntry] = field(default_factory=list)
    game_count: int = 0
    clock: Callable[[], int] = _now_ms

    # ---- roster ----

    def find_player(self, player_id: str) -> Optional[Player]:
        for p in self.roster:
            if p.id == player_id:
                return p
        return None

    def get_player(self, player_id: str) -> Player:
        player = self.find_player(player_id)
        if player is None:
            raise UnknownPlayerError(f'Player {player_id} not found')
        return player

    def add_player(self, name: str) -> Player:
        clean = (name or '').strip() if isinstance(name, str) else ''
        if not clean:
            raise InvalidPlayerNameError('Player name cannot be empty')
        player = Player(id=str(uuid.uuid4()), name=clean)
        self.roster.append(player)
        return player

    def remove_player(self, player_id: str) -> Player:
        player = self.get_player(player_id)
        self.roster = [p for p in self.roster if p.id != player_id]
        return player

    def standings(self) -> List[Player]:
        return sorted(self.roster, key=lambda p: p.losses, reverse=True)

    # ---- history ----

    def record_finish(self, event: GameFinished) -> HistoryEntry:
        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            player_id=event.loser_id,
            opponents=event.opponents,
            final_scores=tuple(FinalScore(player_id=p.id, name=p.name, score=p.score) for p in event.players),
            loss_type=event.loss_type,
            foul_type=event.foul_type if event.loss_type == LOSS_FOUL else None,
            date=self.clock(),
        )
        self.log.insert(0, entry)
        # A loser removed from the roster mid-flight still gets the entry
        self.roster = [replace(p, losses=p.losses + 1) if p.id == event.loser_id else p for p in self.roster]
        self.game_count += 1
        return entry

    def reset_counter(self) -> None:
        self.game_count = 0

    def query_by_player(self, player_id: str) -> List[HistoryEntry]:
        return [e for e in self.log if e.player_id == player_id]
