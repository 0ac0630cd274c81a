"""Session engine: the rules of one in-flight Pintintin game.

A ``Session`` is an immutable value. Each operation validates first and
returns a new session, so a rejected call leaves the caller's session
untouched. Operations that end the game also return a ``GameFinished``
event for the ledger to record.
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Tuple

from .constants import (
    LOSS_FOUL,
    LOSS_POINTS,
    PLAYERS_PER_GAME,
    STATE_FINISHED,
    STATE_OPEN,
    STATE_TIE_PENDING,
    WIN_THRESHOLD,
)
from .errors import (
    InvalidFoulError,
    InvalidLoserError,
    InvalidPointsError,
    InvalidTrioError,
    NoActiveSessionError,
    TiePendingError,
    UnknownPlayerError,
)


@dataclass(frozen=True)
class SessionPlayer:
    id: str
    name: str
    score: int = 0

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'score': self.score}


@dataclass(frozen=True)
class Session:
    players: Tuple[SessionPlayer, ...]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_finished: bool = False
    winner_id: Optional[str] = None
    winner_ids: Tuple[str, ...] = ()
    loser_id: Optional[str] = None
    tie_for_loser: bool = False

    def __post_init__(self):
        if len(self.players) != PLAYERS_PER_GAME:
            raise InvalidTrioError(f'A game needs exactly {PLAYERS_PER_GAME} players, got {len(self.players)}')
        if len({p.id for p in self.players}) != PLAYERS_PER_GAME:
            raise InvalidTrioError('Players in a game must be distinct')

    @property
    def state(self) -> str:
        if self.is_finished:
            return STATE_FINISHED
        if self.tie_for_loser:
            return STATE_TIE_PENDING
        return STATE_OPEN

    def player(self, player_id: str) -> SessionPlayer:
        for p in self.players:
            if p.id == player_id:
                return p
        raise UnknownPlayerError(f'Player {player_id} is not part of this game')

    def has_player(self, player_id: str) -> bool:
        return any(p.id == player_id for p in self.players)

    def others(self, player_id: str) -> Tuple[SessionPlayer, ...]:
        return tuple(p for p in self.players if p.id != player_id)

    def to_dict(self):
        return {
            'id': self.id,
            'players': [p.to_dict() for p in self.players],
            'is_finished': self.is_finished,
            'winner_id': self.winner_id,
            'winner_ids': list(self.winner_ids),
            'loser_id': self.loser_id,
            'tie_for_loser': self.tie_for_loser,
            'state': self.state,
        }

    @classmethod
    def from_dict(cls, data) -> 'Session':
        return cls(
            id=data['id'],
            players=tuple(SessionPlayer(id=p['id'], name=p['name'], score=int(p.get('score', 0))) for p in data['players']),
            is_finished=bool(data.get('is_finished', False)),
            winner_id=data.get('winner_id'),
            winner_ids=tuple(data.get('winner_ids') or ()),
            loser_id=data.get('loser_id'),
            tie_for_loser=bool(data.get('tie_for_loser', False)),
        )


@dataclass(frozen=True)
class GameFinished:
    """Terminal event emitted once per finished session."""
    session_id: str
    players: Tuple[SessionPlayer, ...]
    loser_id: str
    winner_ids: Tuple[str, ...]
    loss_type: str
    foul_type: Optional[str] = None

    @property
    def opponents(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.players if p.id != self.loser_id)


def create_session(trio: Iterable[str], roster) -> Session:
    """Start a game for three distinct roster players, in selection order.

    ``roster`` is any iterable of objects exposing ``id`` and ``name``.
    """
    ids = list(trio or [])
    if not all(isinstance(pid, str) for pid in ids):
        raise InvalidTrioError('Player ids must be strings')
    if len(ids) != PLAYERS_PER_GAME or len(set(ids)) != PLAYERS_PER_GAME:
        raise InvalidTrioError(f'Select exactly {PLAYERS_PER_GAME} distinct players')
    by_id = {p.id: p for p in roster}
    missing = [pid for pid in ids if pid not in by_id]
    if missing:
        raise InvalidTrioError(f'Unknown players: {", ".join(missing)}')
    return Session(players=tuple(SessionPlayer(id=pid, name=by_id[pid].name) for pid in ids))


def _require_open(session: Optional[Session]) -> Session:
    if session is None or session.is_finished:
        raise NoActiveSessionError('There is no game in progress')
    return session


def apply_points(session: Optional[Session], player_id: str, points: int) -> Tuple[Session, Optional[GameFinished]]:
    """Add points to a player and evaluate the win condition.

    Returns the updated session and, when a unique loser could be named,
    the ``GameFinished`` event. A tie between the two non-winners leaves
    the session in ``tie_pending`` with no event.
    """
    session = _require_open(session)
    if session.tie_for_loser:
        raise TiePendingError('The game is waiting for the tie-break result')
    scorer = session.player(player_id)
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise InvalidPointsError('Points must be a positive integer')

    players = tuple(replace(p, score=p.score + points) if p.id == scorer.id else p for p in session.players)
    updated = replace(session, players=players)
    if scorer.score + points < WIN_THRESHOLD:
        return updated, None

    non_winners = updated.others(scorer.id)
    min_score = min(p.score for p in non_winners)
    losers = [p for p in non_winners if p.score == min_score]
    if len(losers) > 1:
        return replace(updated, winner_id=scorer.id, tie_for_loser=True), None
    return _finalize(updated, (scorer.id,), losers[0].id, LOSS_POINTS)


def resolve_tie(session: Optional[Session], chosen_loser_id: str) -> Tuple[Session, GameFinished]:
    """Name the loser of a tie after the extra hand has been played."""
    session = _require_open(session)
    if not session.tie_for_loser:
        raise NoActiveSessionError('The game is not waiting for a tie-break')
    tied = {p.id for p in session.others(session.winner_id)}
    if chosen_loser_id not in tied:
        raise InvalidLoserError('The loser must be one of the two tied players')
    return _finalize(session, (session.winner_id,), chosen_loser_id, LOSS_POINTS)


def apply_foul(session: Optional[Session], offending_player_id: str, foul_label: str) -> Tuple[Session, GameFinished]:
    """End the game at once: the offender loses, both others win."""
    session = _require_open(session)
    session.player(offending_player_id)
    label = (foul_label or '').strip() if isinstance(foul_label, str) else ''
    if not label:
        raise InvalidFoulError('A foul needs a label')
    winners = tuple(p.id for p in session.others(offending_player_id))
    return _finalize(session, winners, offending_player_id, LOSS_FOUL, label)


def _finalize(session, winner_ids, loser_id, loss_type, foul_type=None):
    finished = replace(
        session,
        is_finished=True,
        winner_id=winner_ids[0],
        winner_ids=winner_ids if loss_type == LOSS_FOUL else (),
        loser_id=loser_id,
        tie_for_loser=False,
    )
    event = GameFinished(
        session_id=finished.id,
        players=finished.players,
        loser_id=loser_id,
        winner_ids=tuple(winner_ids),
        loss_type=loss_type,
        foul_type=foul_type,
    )
    return finished, event
