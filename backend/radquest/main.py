from flask import Blueprint, jsonify, request, abort, current_app
from radquest import db
from radquest.errors import InvalidSubmission, PersistenceFailure
from radquest.models import Player
from radquest.services import ledger, lifecycle
from radquest.services.stats import get_stats

main = Blueprint('main', __name__)


@main.app_errorhandler(InvalidSubmission)
def handle_invalid_submission(exc):
    current_app.logger.info(f"[rejected] {request.method} {request.path}: {exc.reason}")
    return jsonify({'error': exc.reason}), exc.status


@main.app_errorhandler(PersistenceFailure)
def handle_persistence_failure(exc):
    return jsonify({'error': str(exc), 'retryable': True}), 503


def _player_or_404(player_id):
    player = db.session.get(Player, player_id)
    if player is None:
        abort(404)
    return player


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Radquest game server!'})


@main.route('/players/<int:player_id>/stats')
def player_stats(player_id):
    _player_or_404(player_id)
    return jsonify(get_stats(player_id).to_dict())


@main.route('/players/<int:player_id>/progress')
def player_progress(player_id):
    _player_or_404(player_id)
    return jsonify([p.to_dict() for p in lifecycle.get_progress(player_id)])


@main.route('/players/<int:player_id>/attempts')
def player_attempts(player_id):
    _player_or_404(player_id)
    level_id = request.args.get('level_id', type=int)
    return jsonify([a.to_dict() for a in ledger.list_attempts(player_id, level_id=level_id)])
