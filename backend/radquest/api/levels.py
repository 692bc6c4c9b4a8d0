from flask import Blueprint, jsonify, request, abort
from radquest import socketio
from radquest.errors import InvalidSubmission
from radquest.services import catalog, ledger, lifecycle
from radquest.services.stats import get_stats


levels = Blueprint('levels', __name__)


def _int_field(data, name, required=True):
    value = data.get(name)
    if value is None:
        if required:
            raise InvalidSubmission(f'{name} is required')
        return None
    if isinstance(value, bool):
        raise InvalidSubmission(f'{name} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidSubmission(f'{name} must be an integer')


def _text_field(data, name):
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise InvalidSubmission(f'{name} must be a string')
    return value


def _emit_progress(player_id, progress):
    socketio.emit('progress_update', progress.to_dict(), to=f"player:{player_id}", namespace='/ws')


@levels.route('', methods=['GET'])
def list_levels():
    return jsonify([lvl.to_dict() for lvl in catalog.list_levels()])


@levels.route('/<int:level_id>', methods=['GET'])
def get_level(level_id):
    level = catalog.get_level(level_id)
    if level is None or not level.is_active:
        abort(404)
    payload = level.to_dict()
    tasks = []
    for task in catalog.get_level_tasks(level.id):
        td = task.to_dict()
        # Scoring fields stay server-side
        td['options'] = [opt.to_dict() for opt in catalog.get_task_options(task.id)]
        tasks.append(td)
    payload['tasks'] = tasks
    return jsonify(payload)


@levels.route('/<int:level_id>/start', methods=['POST'])
def start_level(level_id):
    data = request.get_json(silent=True) or {}
    player_id = _int_field(data, 'player_id')
    progress = lifecycle.start(player_id, level_id)
    _emit_progress(player_id, progress)
    return jsonify(progress.to_dict())


@levels.route('/<int:level_id>/complete', methods=['POST'])
def complete_level(level_id):
    data = request.get_json(silent=True) or {}
    player_id = _int_field(data, 'player_id')
    progress = lifecycle.complete(player_id, level_id)
    _emit_progress(player_id, progress)
    return jsonify(progress.to_dict())


@levels.route('/<int:level_id>/tasks/<int:task_id>/submit', methods=['POST'])
def submit_answer(level_id, task_id):
    data = request.get_json(silent=True) or {}
    player_id = _int_field(data, 'player_id')
    result = ledger.submit(
        player_id=player_id,
        level_id=level_id,
        task_id=task_id,
        chosen_option_id=_int_field(data, 'option_id', required=False),
        answer_text=_text_field(data, 'answer'),
        reasoning_text=_text_field(data, 'reasoning'),
    )
    # Push authoritative counters; clients never compute them
    socketio.emit('stats_update', get_stats(player_id).to_dict(), to=f"player:{player_id}", namespace='/ws')
    return jsonify(result.to_dict()), 201
