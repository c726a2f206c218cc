from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required
from wordsofpower import db
from wordsofpower.models import Player

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Words of Power game server!'})

@main.route('/users/add', methods=['POST'])
def add_user():
    data = request.get_json(silent=True)
    if not data or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Email and password are required'}), 400

    if Player.query.filter_by(email=data['email']).first():
        return jsonify({'error': 'User already exists'}), 409

    player = Player(email=data['email'])
    player.set_password(data['password'])
    db.session.add(player)
    db.session.commit()

    return jsonify({'message': 'User registered successfully', 'user': player.to_dict()}), 201

@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    if not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Email and password are required'}), 400
    player = Player.query.filter_by(email=data.get('email')).first()
    if player and not player.is_system and player.check_password(data.get('password')):
        login_user(player, remember=True)
        return jsonify({'message': 'Login successful', 'user': player.to_dict()})
    return jsonify({'error': 'Invalid email or password'}), 401

@main.route('/logout')
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})

@main.route('/users', methods=['GET'])
def list_users():
    players = Player.query.filter_by(is_system=False).order_by(Player.id).all()
    return jsonify([p.to_dict() for p in players])

@main.route('/users/<int:player_id>', methods=['GET'])
def get_user(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'User not found'}), 404
    return jsonify(player.to_dict())
