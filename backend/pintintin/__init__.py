from flask import Flask, jsonify
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
socketio = SocketIO(async_mode=None)

SAMPLE_PLAYERS = ['Ana', 'Beto', 'Carla']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One game state per application; loaded lazily on first access
    from pintintin.services.games import EXTENSION_KEY
    from pintintin.services.games.state import GameState
    flask_app.extensions[EXTENSION_KEY] = GameState()

    from pintintin.main import main
    flask_app.register_blueprint(main)

    from pintintin.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/game')

    from pintintin.api.players import players
    flask_app.register_blueprint(players, url_prefix='/api/players')

    # Register Socket.IO event handlers
    from pintintin.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from pintintin.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    from pintintin.services.games.errors import GameError

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        flask_app.logger.info(f"[rejected] {type(exc).__name__}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with sample players."""
        from pintintin.services.games import get_state
        from pintintin.services.games.store import save_snapshot
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            admin = User(username=flask_app.config['ADMIN_USERNAME'])
            admin.set_password(flask_app.config['ADMIN_PASSWORD'])
            db.session.add(admin)
            db.session.commit()

            flask_app.extensions[EXTENSION_KEY] = GameState()
            state = get_state(flask_app)
            with state.mutation():
                for name in SAMPLE_PLAYERS:
                    state.add_player(name)
                save_snapshot(flask_app, state.to_snapshot(), state.version, state)
            print('Database has been reset and seeded!')

    @click.command('reset-counter')
    @click.option('--yes', is_flag=True, help='Confirm the reset; the counter cannot be restored.')
    def reset_counter_command(yes):
        """Sets the global game counter back to zero."""
        from pintintin.services.games import get_state
        from pintintin.services.games.store import save_snapshot
        if not yes:
            raise click.UsageError('Refusing to reset the game counter without --yes')
        with flask_app.app_context():
            state = get_state(flask_app)
            with state.mutation():
                state.reset_counter()
                save_snapshot(flask_app, state.to_snapshot(), state.version, state)
            flask_app.logger.info('[counter-reset] via cli')
            print('Global game counter reset to 0.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(reset_counter_command)

    return flask_app
