"""Database access for players and game sessions.

Every session write goes through ``save_session`` so the optimistic
version check on ``GameSession.version`` applies to all of them.
"""

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from wordsofpower import db
from wordsofpower.models import (
    GameSession,
    OPEN_STATUSES,
    Player,
    WAITING,
    utcnow,
)
from .errors import VersionConflict


def coerce_int(value) -> int | None:
    """Whole numbers arrive as ints, integral floats or numeric strings; anything else is None.

    Booleans and fractional floats are rejected rather than truncated.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def coerce_player_id(value) -> int | None:
    return coerce_int(value)


class SessionRepository:

    def find_player(self, player_id) -> Player | None:
        player_id = coerce_player_id(player_id)
        if player_id is None:
            return None
        return db.session.get(Player, player_id)

    def get_system_player(self) -> Player:
        email = current_app.config.get('SYSTEM_PLAYER_EMAIL', 'system@wordsofpower.local')
        player = Player.query.filter_by(email=email).first()
        if player:
            return player
        player = Player(email=email, is_system=True)
        db.session.add(player)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request created it first
            db.session.rollback()
            player = Player.query.filter_by(email=email).one()
        return player

    def create_session(self, player1_id: int, game_mode: str, end_rule: str, max_rounds: int) -> GameSession:
        """Build a waiting session. Nothing is written until ``save_session``."""
        session = GameSession(
            player1_id=player1_id,
            player2_id=None,
            status=WAITING,
            game_mode=game_mode,
            end_rule=end_rule,
            max_rounds=max_rounds,
            current_round=1,
            player1_score=0,
            player2_score=0,
            created_at=utcnow(),
        )
        db.session.add(session)
        return session

    def find_session(self, session_id) -> GameSession | None:
        if not session_id:
            return None
        return db.session.get(GameSession, str(session_id))

    def load_for_update(self, session_id) -> GameSession | None:
        """Load ``session_id`` bypassing anything cached in the identity map."""
        db.session.expire_all()
        return self.find_session(session_id)

    def find_waiting_session(self, excluding_player: int, game_mode: str | None = None) -> GameSession | None:
        query = GameSession.query.filter(
            GameSession.status == WAITING,
            GameSession.player2_id.is_(None),
            GameSession.player1_id != excluding_player,
        )
        if game_mode:
            query = query.filter(GameSession.game_mode == game_mode)
        return query.order_by(GameSession.created_at, GameSession.id).first()

    def find_active_or_waiting_session_for_player(self, player_id: int) -> GameSession | None:
        return (
            GameSession.query
            .filter(
                or_(GameSession.player1_id == player_id, GameSession.player2_id == player_id),
                GameSession.status.in_(OPEN_STATUSES),
            )
            .order_by(GameSession.created_at.desc())
            .first()
        )

    def list_sessions(self, status: str | None = None, player_id: int | None = None) -> list[GameSession]:
        query = GameSession.query
        if status:
            query = query.filter(GameSession.status == status)
        if player_id is not None:
            query = query.filter(
                or_(GameSession.player1_id == player_id, GameSession.player2_id == player_id)
            )
        return query.order_by(GameSession.created_at.desc()).all()

    def save_session(self, session: GameSession, expected_version: int | None = None) -> GameSession:
        """Commit pending changes to ``session`` and its rounds as one unit.

        Raises ``VersionConflict`` (after rolling back) when the row changed
        since it was loaded, or when ``expected_version`` does not match.
        """
        if expected_version is not None and session.version != expected_version:
            db.session.rollback()
            raise VersionConflict(session.id)
        session.updated_at = utcnow()
        db.session.add(session)
        try:
            db.session.commit()
        except (StaleDataError, IntegrityError) as exc:
            # IntegrityError: a concurrent writer opened the same round number
            db.session.rollback()
            raise VersionConflict(session.id) from exc
        return session

    def rollback(self) -> None:
        db.session.rollback()
