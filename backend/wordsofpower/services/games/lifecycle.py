"""Session state machine.

waiting -> active -> completed
waiting -> active -> abandoned
waiting -> abandoned

Nothing leaves completed or abandoned.
"""

from flask import current_app

from wordsofpower.models import (
    ABANDONED,
    ACTIVE,
    COMPLETED,
    GameSession,
    WAITING,
    utcnow,
)
from .concurrency import run_with_retries, session_locks
from .errors import AlreadyTerminated, GameError, NotAParticipant, SessionNotFound
from .repository import SessionRepository, coerce_player_id


def activate(session: GameSession, player2_id: int) -> None:
    """Seat the second player and start the match. Opening round 1 is up to the caller."""
    if session.status != WAITING or session.player2_id is not None:
        raise GameError(f'Session {session.id} cannot be activated from {session.status}')
    if player2_id == session.player1_id:
        raise GameError('A player cannot occupy both seats')
    session.player2_id = player2_id
    session.status = ACTIVE
    session.started_at = utcnow()


def match_is_decided(session: GameSession) -> bool:
    if session.end_rule == 'fixed_count':
        return session.current_round >= session.max_rounds
    # majority: more than half of max_rounds, or nothing left to play
    majority = session.max_rounds / 2
    return (
        session.player1_score > majority
        or session.player2_score > majority
        or session.current_round >= session.max_rounds
    )


def complete(session: GameSession) -> None:
    session.status = COMPLETED
    session.ended_at = utcnow()
    if session.player1_score > session.player2_score:
        session.winner_id = session.player1_id
    elif session.player2_score > session.player1_score:
        session.winner_id = session.player2_id
    else:
        session.winner_id = None


def advance_after_resolution(session: GameSession) -> bool:
    """Called once per resolved round. Returns True when the match is over.

    Otherwise moves ``current_round`` forward; the caller opens that round.
    """
    if match_is_decided(session):
        complete(session)
        return True
    session.current_round += 1
    return False


def _abandon_once(repo: SessionRepository, session_id, player_id) -> GameSession:
    session = repo.load_for_update(session_id)
    if session is None:
        raise SessionNotFound(session_id)
    if session.is_terminal:
        raise AlreadyTerminated(session.id, session.status)
    slot = session.slot_of(player_id)
    if slot is None or (session.is_solo and slot == 2):
        raise NotAParticipant(session.id, player_id)

    # Forfeit: the other player wins an active match
    if session.status == ACTIVE:
        session.winner_id = session.opponent_of(player_id)
    session.status = ABANDONED
    session.ended_at = utcnow()
    repo.save_session(session)

    current_app.logger.info(
        f"[abandon] session={session.id} by={player_id} winner={session.winner_id}"
    )
    return session


def abandon(session_id, player_id) -> GameSession:
    """End ``session_id`` on behalf of ``player_id``."""
    repo = SessionRepository()
    player_id = coerce_player_id(player_id)

    def attempt():
        with session_locks.hold(session_id):
            try:
                return _abandon_once(repo, session_id, player_id)
            except GameError:
                repo.rollback()
                raise

    return run_with_retries(attempt, label='abandon')
