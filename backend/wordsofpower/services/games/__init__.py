"""Game domain services: matchmaking, rounds, session lifecycle, evaluation.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics.
"""

from .errors import (  # noqa: F401
    AlreadyTerminated,
    DuplicateMove,
    GameError,
    InvalidMove,
    InvalidSettings,
    JudgeUnavailable,
    NotAParticipant,
    SessionNotActive,
    SessionNotFound,
    UnknownPlayer,
    VersionConflict,
)
from .lifecycle import abandon  # noqa: F401
from .matchmaker import join_or_create, start_solo  # noqa: F401
from .rounds import RoundOutcome, open_round, submit_move  # noqa: F401
