import itertools
import os
import sys
import pytest

# Ensure the backend root (containing the `wordsofpower` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from wordsofpower import create_app, db, socketio
from wordsofpower.models import Player
from wordsofpower.services.games.judge import Verdict


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    DEFAULT_GAME_MODE = 'rps'
    DEFAULT_END_RULE = 'majority'
    DEFAULT_MAX_ROUNDS = 3
    MAX_WRITE_RETRIES = 3
    JUDGE_URL = None
    JUDGE_API_KEY = None
    JUDGE_TIMEOUT_SEC = 0.5
    MOVE_TIMEOUT_SEC = 0
    SYSTEM_PLAYER_EMAIL = 'system@wordsofpower.test'


class FakeJudge:
    """Stands in for the external word judge."""

    def __init__(self, verdict=None, error=None):
        self.verdict = verdict or Verdict(result='tie', explanation='Evenly matched')
        self.error = error
        self.calls = []

    def judge(self, system_word, player_word, timeout):
        self.calls.append((system_word, player_word, timeout))
        if self.error is not None:
            raise self.error
        return self.verdict


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def make_player(flask_app):
    """Create a player row and return its id."""
    counter = itertools.count(1)

    def _make(email=None):
        player = Player(email=email or f'player{next(counter)}@example.com')
        db.session.add(player)
        db.session.commit()
        return player.id

    return _make


@pytest.fixture()
def fake_judge(flask_app):
    judge = FakeJudge()
    flask_app.extensions['word_judge'] = judge
    return judge
