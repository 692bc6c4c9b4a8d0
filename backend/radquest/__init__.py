from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
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
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One judgment client per app; tests swap it through app.extensions
    from radquest.services.evaluation import ReasoningEvaluator
    flask_app.extensions['radquest.evaluator'] = ReasoningEvaluator.from_config(flask_app.config)

    from radquest.main import main
    flask_app.register_blueprint(main)

    from radquest.api.levels import levels
    flask_app.register_blueprint(levels, url_prefix='/api/levels')

    from radquest.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from radquest.seed import seed_demo_content
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_demo_content()
            print('Database has been reset and seeded!')

    @click.command('stats-audit')
    def stats_audit_command():
        """Compares every player's stats with the sum of their attempts."""
        from radquest.models import Player
        from radquest.services.stats import get_stats, recompute_stats
        with flask_app.app_context():
            mismatches = 0
            for player in Player.query.order_by(Player.id).all():
                stats = get_stats(player.id)
                points, dose = recompute_stats(player.id)
                if stats.knowledge_points != points or abs(stats.dose - dose) > 1e-9:
                    mismatches += 1
                    print(f'player={player.id} stats=({stats.knowledge_points}, {stats.dose}) attempts=({points}, {dose})')
            print(f'{mismatches} mismatching player(s)')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(stats_audit_command)

    return flask_app
