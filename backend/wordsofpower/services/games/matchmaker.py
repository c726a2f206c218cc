"""Matchmaking: seat a player in a waiting session or open a new one."""

from typing import NamedTuple

from flask import current_app

from wordsofpower import db
from wordsofpower.models import END_RULES, GAME_MODES, GameSession, WAITING
from .concurrency import matchmaking_lock, run_with_retries, session_locks
from .errors import GameError, InvalidSettings, UnknownPlayer, VersionConflict
from .lifecycle import activate
from .repository import SessionRepository, coerce_int
from .rounds import open_round, system_challenge

MAX_ROUNDS_LIMIT = 15

CREATED = 'created'
JOINED = 'joined'
RESUMED = 'resumed'


class Placement(NamedTuple):
    session: GameSession
    action: str  # created, joined, resumed

    @property
    def created(self) -> bool:
        return self.action == CREATED


def match_settings(game_mode=None, end_rule=None, max_rounds=None) -> tuple[str, str, int]:
    """Fill in configured defaults and validate."""
    cfg = current_app.config
    game_mode = game_mode or cfg.get('DEFAULT_GAME_MODE', 'rps')
    end_rule = end_rule or cfg.get('DEFAULT_END_RULE', 'majority')
    if max_rounds is None:
        max_rounds = cfg.get('DEFAULT_MAX_ROUNDS', 3)

    if game_mode not in GAME_MODES:
        raise InvalidSettings(f"game_mode must be one of {', '.join(GAME_MODES)}")
    if end_rule not in END_RULES:
        raise InvalidSettings(f"end_rule must be one of {', '.join(END_RULES)}")
    max_rounds = coerce_int(max_rounds)
    if max_rounds is None:
        raise InvalidSettings('max_rounds must be a whole number')
    if not 1 <= max_rounds <= MAX_ROUNDS_LIMIT:
        raise InvalidSettings(f'max_rounds must be between 1 and {MAX_ROUNDS_LIMIT}')
    return game_mode, end_rule, max_rounds


def _require_player(repo: SessionRepository, player_id):
    player = repo.find_player(player_id)
    if player is None or player.is_system:
        raise UnknownPlayer(player_id)
    return player


def _claim(repo: SessionRepository, waiting: GameSession, player_id: int) -> GameSession:
    with session_locks.hold(waiting.id):
        db.session.refresh(waiting)
        if waiting.status != WAITING or waiting.player2_id is not None:
            # Taken or abandoned since the search; search again
            raise VersionConflict(waiting.id)
        activate(waiting, player_id)
        open_round(waiting, 1, challenge=system_challenge(waiting))
        repo.save_session(waiting)
    return waiting


def join_or_create(player_id, game_mode=None, end_rule=None, max_rounds=None) -> Placement:
    """Place ``player_id`` in a match.

    Returns the player's open session if there is one, else claims the
    oldest waiting session of the same mode, else creates a waiting one.
    """
    repo = SessionRepository()
    player = _require_player(repo, player_id)
    game_mode, end_rule, max_rounds = match_settings(game_mode, end_rule, max_rounds)

    def attempt():
        with matchmaking_lock:
            db.session.expire_all()
            try:
                existing = repo.find_active_or_waiting_session_for_player(player.id)
                if existing is not None:
                    return Placement(existing, RESUMED)

                waiting = repo.find_waiting_session(player.id, game_mode)
                if waiting is not None:
                    session = _claim(repo, waiting, player.id)
                    current_app.logger.info(
                        f"[matchmaker-join] session={session.id} player1={session.player1_id} player2={player.id}"
                    )
                    return Placement(session, JOINED)

                session = repo.create_session(player.id, game_mode, end_rule, max_rounds)
                repo.save_session(session)
                current_app.logger.info(
                    f"[matchmaker-create] session={session.id} player1={player.id} mode={game_mode} "
                    f"end_rule={end_rule} max_rounds={max_rounds}"
                )
                return Placement(session, CREATED)
            except GameError:
                repo.rollback()
                raise

    return run_with_retries(attempt, label='join_or_create')


def start_solo(player_id, game_mode=None, end_rule=None, max_rounds=None) -> Placement:
    """Start a match against the system player, active from the first call."""
    repo = SessionRepository()
    player = _require_player(repo, player_id)
    game_mode, end_rule, max_rounds = match_settings(game_mode, end_rule, max_rounds)
    system_player = repo.get_system_player()

    def attempt():
        with matchmaking_lock:
            db.session.expire_all()
            try:
                existing = repo.find_active_or_waiting_session_for_player(player.id)
                if existing is not None:
                    return Placement(existing, RESUMED)

                session = repo.create_session(player.id, game_mode, end_rule, max_rounds)
                activate(session, system_player.id)
                # player2 relationship must be loaded for is_solo before the first flush
                session.player2 = system_player
                open_round(session, 1, challenge=system_challenge(session))
                repo.save_session(session)
                current_app.logger.info(
                    f"[matchmaker-solo] session={session.id} player1={player.id} mode={game_mode}"
                )
                return Placement(session, CREATED)
            except GameError:
                repo.rollback()
                raise

    return run_with_retries(attempt, label='start_solo')
