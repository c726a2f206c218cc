"""Round tracking: move submission, resolution and scoring."""

from dataclasses import dataclass

from flask import current_app

from wordsofpower.models import ACTIVE, GameSession, Round, utcnow
from . import lifecycle
from .concurrency import run_with_retries, session_locks
from .errors import (
    DuplicateMove,
    GameError,
    InvalidMove,
    NotAParticipant,
    SessionNotActive,
    SessionNotFound,
)
from .evaluators import TIE, WIN_A, WIN_B, OutcomeEvaluator, get_evaluator
from .repository import SessionRepository, coerce_player_id
from .words import pick_challenge_word, pick_rps_move

MAX_CHALLENGE_LENGTH = 255


@dataclass
class RoundOutcome:
    session: GameSession
    round: Round
    resolved: bool

    def result_for(self, player_id) -> str | None:
        """``win``, ``lose`` or ``tie`` from ``player_id``'s side; None while pending."""
        if not self.round.is_resolved:
            return None
        if self.round.result == 'tie':
            return 'tie'
        return 'win' if self.round.winner_id == player_id else 'lose'


def system_challenge(session: GameSession) -> str | None:
    """Word the system opens a solo word round with."""
    if session.is_solo and session.game_mode == 'words':
        return pick_challenge_word()
    return None


def open_round(session: GameSession, round_number: int, challenge: str | None = None) -> Round:
    """Return round ``round_number``, appending an empty one if it does not exist yet."""
    existing = session.round_by_number(round_number)
    if existing is not None:
        if existing.challenge is None and challenge:
            existing.challenge = challenge
        return existing
    rnd = Round(round_number=round_number, challenge=challenge, timestamp=utcnow())
    session.rounds.append(rnd)
    return rnd


def _play_system_move(session: GameSession, rnd: Round) -> None:
    if session.game_mode == 'words':
        if rnd.challenge is None:
            rnd.challenge = pick_challenge_word()
        rnd.player2_move = rnd.challenge
    else:
        rnd.player2_move = pick_rps_move()
    rnd.player2_submitted_at = utcnow()


def resolve_round(session: GameSession, rnd: Round, evaluator: OutcomeEvaluator) -> None:
    """Evaluate a round with both moves in, record the result and update scores."""
    if session.is_solo:
        # The system word is the first argument of every judged comparison
        outcome = evaluator.evaluate(rnd.player2_move, rnd.player1_move)
        side = {WIN_A: 'player2', WIN_B: 'player1', TIE: 'tie'}[outcome.result]
    else:
        outcome = evaluator.evaluate(rnd.player1_move, rnd.player2_move)
        side = {WIN_A: 'player1', WIN_B: 'player2', TIE: 'tie'}[outcome.result]

    rnd.result = side
    rnd.explanation = outcome.explanation
    if side == 'player1':
        rnd.winner_id = session.player1_id
        session.player1_score += 1
    elif side == 'player2':
        rnd.winner_id = session.player2_id
        session.player2_score += 1
    else:
        rnd.winner_id = None


def _clean_challenge(challenge):
    if challenge is None:
        return None
    if not isinstance(challenge, str):
        raise InvalidMove(challenge, 'Challenge must be a string')
    challenge = challenge.strip()
    if len(challenge) > MAX_CHALLENGE_LENGTH:
        raise InvalidMove(challenge, f'Challenge is limited to {MAX_CHALLENGE_LENGTH} characters')
    return challenge or None


def _submit_move_once(repo: SessionRepository, session_id, player_id, move, challenge) -> RoundOutcome:
    session = repo.load_for_update(session_id)
    if session is None:
        raise SessionNotFound(session_id)
    if session.status != ACTIVE:
        raise SessionNotActive(session.id, session.status)

    slot = session.slot_of(player_id)
    if slot is None or (session.is_solo and slot == 2):
        raise NotAParticipant(session.id, player_id)

    evaluator = get_evaluator(session.game_mode)
    move = evaluator.normalize_move(move)
    challenge = _clean_challenge(challenge)

    rnd = open_round(session, session.current_round)
    if rnd.move_for(slot) is not None:
        raise DuplicateMove(session.id, rnd.round_number)

    if challenge and rnd.challenge is None:
        rnd.challenge = challenge
    if slot == 1:
        rnd.player1_move = move
        rnd.player1_submitted_at = utcnow()
    else:
        rnd.player2_move = move
        rnd.player2_submitted_at = utcnow()

    if session.is_solo:
        _play_system_move(session, rnd)

    resolved = False
    if rnd.player1_move is not None and rnd.player2_move is not None and not rnd.is_resolved:
        resolve_round(session, rnd, evaluator)
        resolved = True
        match_over = lifecycle.advance_after_resolution(session)
        if not match_over:
            open_round(session, session.current_round, challenge=system_challenge(session))

    repo.save_session(session)

    current_app.logger.info(
        f"[move] session={session.id} round={rnd.round_number} player={player_id} resolved={resolved}"
    )
    if resolved:
        current_app.logger.info(
            f"[round-resolved] session={session.id} round={rnd.round_number} result={rnd.result} "
            f"scores={session.player1_score}-{session.player2_score} status={session.status}"
        )
    return RoundOutcome(session=session, round=rnd, resolved=resolved)


def submit_move(session_id, player_id, move, challenge=None) -> RoundOutcome:
    """Record ``player_id``'s move for the current round of ``session_id``.

    Resolves the round once both moves are in, then lets the state machine
    advance to the next round or end the match. All of it is committed
    together; any error leaves the session untouched.
    """
    repo = SessionRepository()
    player_id = coerce_player_id(player_id)

    def attempt():
        with session_locks.hold(session_id):
            try:
                return _submit_move_once(repo, session_id, player_id, move, challenge)
            except GameError:
                repo.rollback()
                raise

    return run_with_retries(attempt, label='submit_move')
