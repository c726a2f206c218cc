from datetime import datetime, timezone
import uuid

from flask_login import UserMixin

from wordsofpower import db, bcrypt

WAITING = 'waiting'
ACTIVE = 'active'
COMPLETED = 'completed'
ABANDONED = 'abandoned'
OPEN_STATUSES = (WAITING, ACTIVE)
TERMINAL_STATUSES = (COMPLETED, ABANDONED)

GAME_MODES = ('rps', 'words')
END_RULES = ('majority', 'fixed_count')


def utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=True)
    is_system = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'is_system': self.is_system,
            'created_at': _iso(self.created_at),
        }


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    player1_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True, index=True)
    player2_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True, index=True)
    status = db.Column(db.String(16), default=WAITING, nullable=False, index=True)  # waiting, active, completed, abandoned
    game_mode = db.Column(db.String(16), default='rps', nullable=False)
    end_rule = db.Column(db.String(16), default='majority', nullable=False)
    current_round = db.Column(db.Integer, default=1, nullable=False)
    max_rounds = db.Column(db.Integer, default=3, nullable=False)
    player1_score = db.Column(db.Integer, default=0, nullable=False)
    player2_score = db.Column(db.Integer, default=0, nullable=False)
    winner_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=True)
    # Bumped by every UPDATE; a stale write raises StaleDataError
    version = db.Column(db.Integer, nullable=False)

    player1 = db.relationship('Player', foreign_keys=[player1_id])
    player2 = db.relationship('Player', foreign_keys=[player2_id])
    winner = db.relationship('Player', foreign_keys=[winner_id])
    rounds = db.relationship(
        'Round',
        back_populates='session',
        order_by='Round.round_number',
        cascade='all, delete-orphan',
    )

    __mapper_args__ = {'version_id_col': version}

    @property
    def is_solo(self):
        return self.player2 is not None and self.player2.is_system

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def slot_of(self, player_id):
        """Return 1 or 2 for a participant, None otherwise."""
        if player_id is None:
            return None
        if player_id == self.player1_id:
            return 1
        if player_id == self.player2_id:
            return 2
        return None

    def opponent_of(self, player_id):
        slot = self.slot_of(player_id)
        if slot == 1:
            return self.player2_id
        if slot == 2:
            return self.player1_id
        return None

    def round_by_number(self, round_number):
        for rnd in self.rounds:
            if rnd.round_number == round_number:
                return rnd
        return None

    @property
    def current(self):
        return self.round_by_number(self.current_round)

    def to_dict(self, viewer_id=None):
        """Unresolved moves are shown only to the player who made them."""
        viewer_slot = self.slot_of(viewer_id)
        return {
            'id': self.id,
            'player1': self.player1_id,
            'player2': self.player2_id,
            'status': self.status,
            'game_mode': self.game_mode,
            'end_rule': self.end_rule,
            'is_solo': self.is_solo,
            'current_round': self.current_round,
            'max_rounds': self.max_rounds,
            'scores': {'player1': self.player1_score, 'player2': self.player2_score},
            'rounds': [r.to_dict(viewer_slot) for r in self.rounds],
            'winner': self.winner_id,
            'created_at': _iso(self.created_at),
            'started_at': _iso(self.started_at),
            'ended_at': _iso(self.ended_at),
            'version': self.version,
        }


class Round(db.Model):
    __tablename__ = 'round'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'round_number', name='uq_round_session_number'),
    )
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(32), db.ForeignKey('game_session.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    challenge = db.Column(db.String(255), nullable=True)
    player1_move = db.Column(db.String(255), nullable=True)
    player2_move = db.Column(db.String(255), nullable=True)
    player1_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    player2_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    winner_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True)
    result = db.Column(db.String(16), nullable=True)  # player1, player2, tie; null while pending
    explanation = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    session = db.relationship('GameSession', back_populates='rounds')

    @property
    def is_resolved(self):
        return self.result is not None

    def move_for(self, slot):
        return self.player1_move if slot == 1 else self.player2_move

    def visible_move(self, slot, viewer_slot=None):
        if self.is_resolved or slot == viewer_slot:
            return self.move_for(slot)
        return None

    def to_dict(self, viewer_slot=None):
        return {
            'round_number': self.round_number,
            'challenge': self.challenge,
            'player1_move': self.visible_move(1, viewer_slot),
            'player2_move': self.visible_move(2, viewer_slot),
            'player1_submitted_at': _iso(self.player1_submitted_at),
            'player2_submitted_at': _iso(self.player2_submitted_at),
            'winner': self.winner_id,
            'result': self.result,
            'explanation': self.explanation,
            'timestamp': _iso(self.timestamp),
        }
