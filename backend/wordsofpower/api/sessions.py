from flask import Blueprint, jsonify, request, current_app
from wordsofpower import db
from wordsofpower.models import GameSession
from wordsofpower.services.games import (
    GameError,
    SessionNotFound,
    UnknownPlayer,
    abandon,
    join_or_create,
    start_solo,
    submit_move,
)
from wordsofpower.services.games.repository import SessionRepository, coerce_player_id
from wordsofpower.services.games.scheduler import schedule_move_timer
from wordsofpower.socketio_events import broadcast_state


sessions = Blueprint('sessions', __name__)


@sessions.errorhandler(GameError)
def handle_game_error(exc: GameError):
    db.session.rollback()
    current_app.logger.info(f"[rejected] {request.method} {request.path} kind={exc.kind} message={exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


def _player_id_from(data):
    player_id = coerce_player_id(data.get('player_id'))
    if player_id is None:
        return None, (jsonify({'error': 'Player ID is required'}), 400)
    return player_id, None


def _round_message(outcome, player_id) -> str:
    result = outcome.result_for(player_id)
    if result is None:
        return 'Move recorded'
    message = {
        'win': 'You won this round!',
        'lose': 'You lost this round!',
        'tie': 'This round is a tie!',
    }[result]
    session = outcome.session
    if session.status == 'completed':
        if session.winner_id is None:
            message += ' The game ended in a tie!'
        elif session.winner_id == player_id:
            message += ' You won the game!'
        else:
            message += ' You lost the game!'
    return message


@sessions.route('/join', methods=['POST'])
def join_session():
    """
    Puts the player into a match: their open session, a waiting one, or a new one.
    """
    data = request.get_json(silent=True) or {}
    player_id, error = _player_id_from(data)
    if error:
        return error

    placement = join_or_create(
        player_id,
        game_mode=data.get('game_mode'),
        end_rule=data.get('end_rule'),
        max_rounds=data.get('max_rounds'),
    )
    session = placement.session
    messages = {
        'created': 'Game session created successfully',
        'joined': 'Joined existing game session',
        'resumed': 'You already have an open game session',
    }
    payload = {'message': messages[placement.action], 'action': placement.action, 'session': session.to_dict(player_id)}
    if placement.action == 'joined':
        broadcast_state(session)
    return jsonify(payload), 201 if placement.created else 200


@sessions.route('/solo', methods=['POST'])
def solo_session():
    data = request.get_json(silent=True) or {}
    player_id, error = _player_id_from(data)
    if error:
        return error

    placement = start_solo(
        player_id,
        game_mode=data.get('game_mode'),
        end_rule=data.get('end_rule'),
        max_rounds=data.get('max_rounds'),
    )
    payload = {'action': placement.action, 'session': placement.session.to_dict(player_id)}
    return jsonify(payload), 201 if placement.created else 200


@sessions.route('', methods=['GET'])
def list_sessions():
    status = request.args.get('status')
    return jsonify([s.to_dict() for s in SessionRepository().list_sessions(status=status)])


@sessions.route('/<string:session_id>', methods=['GET'])
def get_session(session_id):
    session = SessionRepository().find_session(session_id)
    if session is None:
        raise SessionNotFound(session_id)
    # The viewer sees their own move before the round resolves
    viewer_id = coerce_player_id(request.args.get('player_id'))
    return jsonify(session.to_dict(viewer_id))


@sessions.route('/player/<int:player_id>', methods=['GET'])
def get_player_sessions(player_id):
    """
    Returns the player's waiting and active sessions.
    """
    repo = SessionRepository()
    if repo.find_player(player_id) is None:
        raise UnknownPlayer(player_id)
    open_sessions = [
        s for s in repo.list_sessions(player_id=player_id)
        if s.status in ('waiting', 'active')
    ]
    return jsonify([s.to_dict(player_id) for s in open_sessions])


@sessions.route('/<string:session_id>/move', methods=['POST'])
def make_move(session_id):
    data = request.get_json(silent=True) or {}
    player_id, error = _player_id_from(data)
    if error:
        return error
    move = data.get('move')
    if move is None or move == '':
        return jsonify({'error': 'Move is required'}), 400

    outcome = submit_move(session_id, player_id, move, challenge=data.get('challenge'))
    session = outcome.session
    payload = {
        'message': _round_message(outcome, player_id),
        'round_result': outcome.result_for(player_id),
        'resolved': outcome.resolved,
        'round': outcome.round.to_dict(session.slot_of(player_id)),
        'current_round': session.current_round,
        'game_status': session.status,
        'scores': {'player1': session.player1_score, 'player2': session.player2_score},
        'session': session.to_dict(player_id),
    }
    broadcast_state(session)
    if not outcome.resolved:
        schedule_move_timer(current_app._get_current_object(), session.id)
    return jsonify(payload), 200


@sessions.route('/<string:session_id>/abandon', methods=['POST'])
def abandon_session(session_id):
    data = request.get_json(silent=True) or {}
    player_id, error = _player_id_from(data)
    if error:
        return error

    session: GameSession = abandon(session_id, player_id)
    broadcast_state(session)
    return jsonify({'message': 'Game abandoned successfully', 'session': session.to_dict(player_id)}), 200
