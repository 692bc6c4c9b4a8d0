from flask_socketio import join_room, leave_room, emit
from radquest import socketio, db
from radquest.models import Player
from radquest.services.stats import get_stats


def _player_room(data):
    """Validate the payload; emit an error and return None when it is unusable."""
    player_id = (data or {}).get('player_id')
    try:
        player_id = int(player_id)
    except (TypeError, ValueError):
        emit('error', {'message': 'player_id is required'})
        return None, None
    if db.session.get(Player, player_id) is None:
        emit('error', {'message': f'Unknown player {player_id}'})
        return None, None
    return player_id, f"player:{player_id}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_player(data):
    player_id, room = _player_room(data)
    if room is None:
        return
    join_room(room)
    emit('joined', {'room': room})
    # Fresh clients get the current counters right away
    emit('stats_update', get_stats(player_id).to_dict())


def handle_leave_player(data):
    player_id, room = _player_room(data)
    if room is None:
        return
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('join_player', handle_join_player, namespace='/ws')
    socketio.on_event('leave_player', handle_leave_player, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('join_player', handle_join_player, namespace='/')
        socketio.on_event('leave_player', handle_leave_player, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
