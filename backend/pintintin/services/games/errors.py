"""Game domain errors.

Every rejection raised by the engine, the ledger or the state aggregate is a
``GameError``. Routes translate them into JSON responses using ``status``.
"""


class GameError(Exception):
    status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message, 'code': type(self).__name__}


class InvalidTrioError(GameError):
    """A game needs exactly three distinct players from the roster."""


class NoActiveSessionError(GameError):
    status = 409


class UnknownPlayerError(GameError):
    status = 404


class InvalidLoserError(GameError):
    """Tie resolution named someone outside the tied pair."""


class InvalidPointsError(GameError):
    pass


class InvalidFoulError(GameError):
    pass


class InvalidPlayerNameError(GameError):
    pass


class SessionInProgressError(GameError):
    """Starting a game would discard an unfinished one without confirmation."""
    status = 409


class ConcurrentMutationError(GameError):
    status = 409


class TiePendingError(GameError):
    """Points cannot be added while the tie-break result is awaited."""
    status = 409
