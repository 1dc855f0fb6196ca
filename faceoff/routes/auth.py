import re

from flask import Blueprint, current_app, jsonify, request
from werkzeug.security import check_password_hash, generate_password_hash

from faceoff.auth_utils import login_required, login_user, logout_user

auth_bp = Blueprint('auth', __name__)

_USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]{3,80}$')


def _store():
    return current_app.extensions['match_store']


def _credentials_from_request():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, None
    username = str(data.get('username') or '').strip()
    password = data.get('password')
    return username, (str(password) if password is not None else '')


def _password_complexity_error(raw_password):
    password = str(raw_password or '')
    if len(password) < 8:
        return 'Password must be at least 8 characters long'
    if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
        return 'Password must include at least one letter and one number'
    return None


@auth_bp.route('/register', methods=['POST'])
def register():
    username, password = _credentials_from_request()
    if not username or not password:
        return jsonify({'message': 'Username and password are required'}), 400
    if not _USERNAME_PATTERN.match(username):
        return jsonify({
            'message': 'Username must be 3-80 letters, numbers, dots, dashes or underscores',
        }), 400
    password_error = _password_complexity_error(password)
    if password_error:
        return jsonify({'message': password_error}), 400

    store = _store()
    if store.get_user_by_username(username):
        return jsonify({'message': 'Username already exists'}), 400

    user = store.create_user(username, generate_password_hash(password))
    login_user(user)
    current_app.logger.info('Registered user %s', user.id)
    return jsonify(user.to_dict()), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    username, password = _credentials_from_request()
    if not username or not password:
        return jsonify({'message': 'Username and password are required'}), 400

    user = _store().get_user_by_username(username)
    if not user or not check_password_hash(user.password_hash, password):
        return jsonify({'message': 'Invalid username or password'}), 401

    login_user(user)
    return jsonify(user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'message': 'Logged out'})


@auth_bp.route('/user', methods=['GET'])
@login_required
def current_user():
    return jsonify(request.current_user.to_dict())


@auth_bp.route('/user', methods=['DELETE'])
@login_required
def delete_account():
    """Delete the signed-in account and every match it took part in."""
    user_id = request.current_user.id
    _store().delete_user(user_id)
    logout_user()
    current_app.logger.info('Deleted user %s', user_id)
    return jsonify({'message': 'Account deleted'})
