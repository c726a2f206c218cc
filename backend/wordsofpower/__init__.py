from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # The word judge lives on the app so tests can swap in a fake
    from wordsofpower.services.games.judge import HttpWordJudge
    flask_app.extensions['word_judge'] = HttpWordJudge.from_config(flask_app.config)

    from wordsofpower.routes import main
    flask_app.register_blueprint(main)

    from wordsofpower.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from wordsofpower.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from wordsofpower.models import Player

    @login_manager.user_loader
    def load_user(player_id):
        return db.session.get(Player, int(player_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from wordsofpower.services.games.repository import SessionRepository
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed players
            for email in ['player1@example.com', 'player2@example.com', 'player3@example.com']:
                player = Player(email=email)
                player.set_password('password')
                db.session.add(player)
            db.session.commit()

            SessionRepository().get_system_player()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
