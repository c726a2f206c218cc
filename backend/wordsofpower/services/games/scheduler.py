import time
from typing import Set, Tuple

from wordsofpower import socketio
from wordsofpower.socketio_events import broadcast_state
from wordsofpower.models import ACTIVE
from .concurrency import session_locks
from .errors import GameError
from .lifecycle import abandon
from .repository import SessionRepository


_scheduled_move_keys: Set[Tuple[str, int]] = set()


def _idle_player(session, round_number):
    """Return the player who still owes a move when exactly one move is in."""
    rnd = session.round_by_number(round_number)
    if rnd is None or rnd.is_resolved:
        return None
    if rnd.player1_move is not None and rnd.player2_move is None:
        return session.player2_id
    if rnd.player2_move is not None and rnd.player1_move is None:
        return session.player1_id
    return None


def schedule_move_timer(app, session_id: str) -> None:
    """Forfeit whoever leaves the current round half-played past MOVE_TIMEOUT_SEC.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Ensures a single timer per (session_id, round)
    - On fire, does nothing if the session moved on (status or round changed, or both moves in)
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    duration = int(app.config.get('MOVE_TIMEOUT_SEC', 0))
    if duration <= 0:
        return

    with app.app_context():
        session = SessionRepository().find_session(session_id)
        if not session or session.status != ACTIVE:
            return
        round_number = session.current_round
        if _idle_player(session, round_number) is None:
            return

        key = (session.id, round_number)
        if key in _scheduled_move_keys:
            app.logger.info(f"[timer-skip] session={session.id} round={round_number} already scheduled")
            return
        _scheduled_move_keys.add(key)
        app.logger.info(f"[timer-set] session={session.id} round={round_number} duration={duration}s")

    def _worker(sid: str, expected_round: int, delay: int):
        time.sleep(delay)
        with app.app_context(), session_locks.hold(sid):
            _scheduled_move_keys.discard((sid, expected_round))
            s = SessionRepository().load_for_update(sid)
            if not s:
                return
            app.logger.info(
                f"[timer-fire] session={sid} expected_round={expected_round} "
                f"actual_round={s.current_round} status={s.status}"
            )
            if s.status != ACTIVE or s.current_round != expected_round:
                app.logger.info(f"[timer-abort] session={sid} mismatch status/round")
                return
            idle = _idle_player(s, expected_round)
            if idle is None:
                app.logger.info(f"[timer-abort] session={sid} round no longer half-played")
                return
            try:
                ended = abandon(sid, idle)
            except GameError as exc:
                # Lost a race with a move or an explicit abandon
                app.logger.info(f"[timer-abort] session={sid} {exc.kind}")
                return
            app.logger.info(f"[timeout-forfeit] session={sid} idle={idle} winner={ended.winner_id}")
            broadcast_state(ended)

    if app.config.get('TESTING'):
        _worker(session_id, round_number, duration)
    else:
        socketio.start_background_task(_worker, session_id, round_number, duration)
