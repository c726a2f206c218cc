"""Error taxonomy for matchmaking, rounds and session lifecycle.

Every error carries the HTTP status the request boundary answers with and a
stable ``kind`` string clients can switch on.
"""

from typing import Any


class GameError(Exception):
    """Base exception for all game errors."""

    status_code = 400
    kind = 'game_error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {'error': self.message, 'kind': self.kind}


class UnknownPlayer(GameError):
    status_code = 404
    kind = 'unknown_player'

    def __init__(self, player_id: Any):
        super().__init__(f'Player not found: {player_id}')
        self.player_id = player_id


class SessionNotFound(GameError):
    status_code = 404
    kind = 'session_not_found'

    def __init__(self, session_id: str):
        super().__init__(f'Game session not found: {session_id}')
        self.session_id = session_id


class NotAParticipant(GameError):
    status_code = 403
    kind = 'not_a_participant'

    def __init__(self, session_id: str, player_id: Any):
        super().__init__('You are not a participant in this game')
        self.session_id = session_id
        self.player_id = player_id


class SessionNotActive(GameError):
    status_code = 409
    kind = 'session_not_active'

    def __init__(self, session_id: str, status: str):
        super().__init__(f'Game is not active (status: {status})')
        self.session_id = session_id
        self.status = status


class AlreadyTerminated(GameError):
    status_code = 409
    kind = 'already_terminated'

    def __init__(self, session_id: str, status: str):
        super().__init__(f'Game is already {status}')
        self.session_id = session_id
        self.status = status


class DuplicateMove(GameError):
    status_code = 409
    kind = 'duplicate_move'

    def __init__(self, session_id: str, round_number: int):
        super().__init__('You already made a move for this round')
        self.session_id = session_id
        self.round_number = round_number


class InvalidMove(GameError):
    status_code = 400
    kind = 'invalid_move'

    def __init__(self, move: Any, reason: str | None = None):
        super().__init__(reason or f'Invalid move: {move!r}')
        self.move = move


class InvalidSettings(GameError):
    status_code = 400
    kind = 'invalid_settings'


class VersionConflict(GameError):
    """A session write lost an optimistic version check. Retriable."""

    status_code = 409
    kind = 'version_conflict'
    retriable = True

    def __init__(self, session_id: str | None = None):
        super().__init__('The game session was modified concurrently, please retry')
        self.session_id = session_id


class JudgeUnavailable(GameError):
    """The word judge timed out, failed or answered garbage.

    Recovered inside the word evaluator; never reaches a caller.
    """

    status_code = 503
    kind = 'judge_unavailable'
