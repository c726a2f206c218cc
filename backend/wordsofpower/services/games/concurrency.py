import threading
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from flask import current_app

from wordsofpower import db
from .errors import VersionConflict

T = TypeVar('T')


class SessionLocks:
    """One lock per session id, alive only while somebody holds or waits on it.

    Serializes writers of the same session inside this process. Writers in
    other processes are caught by the version check in ``save_session``.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # session id -> [lock, number of holders and waiters]
        self._locks: dict[str, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        key = str(session_id)
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


session_locks = SessionLocks()
# Search-and-claim in the matchmaker runs under this lock
matchmaking_lock = threading.RLock()


def run_with_retries(operation: Callable[[], T], attempts: int | None = None, label: str = 'write') -> T:
    """Run ``operation`` again after a ``VersionConflict``, up to ``attempts`` times.

    The database session is rolled back and expired between attempts so the
    next run reloads fresh rows.
    """
    if attempts is None:
        attempts = int(current_app.config.get('MAX_WRITE_RETRIES', 3))
    attempt = 1
    while True:
        try:
            return operation()
        except VersionConflict as exc:
            db.session.rollback()
            db.session.expire_all()
            current_app.logger.info(
                f"[retry] op={label} session={exc.session_id} attempt={attempt}/{attempts}"
            )
            if attempt >= attempts:
                raise
            attempt += 1
