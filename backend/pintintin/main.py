from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_user, logout_user, login_required, current_user
from pintintin import db
from pintintin.auth import ROLE_SESSION_KEY, current_role
from pintintin.models import User, ROLE_ADMIN, ROLE_GUEST, ROLE_USER
from pintintin.services.games import get_state
from pintintin.services.games.store import schedule_save

main = Blueprint('main', __name__)


def _ensure_admin():
    name = current_app.config['ADMIN_USERNAME']
    admin = User.query.filter_by(username=name).first()
    if not admin:
        admin = User(username=name)
        admin.set_password(current_app.config['ADMIN_PASSWORD'])
        db.session.add(admin)
        db.session.commit()
    return admin


def _get_or_create_user(username):
    user = User.query.filter_by(username=username).first()
    if not user:
        user = User(username=username)
        db.session.add(user)
        db.session.commit()
    return user


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Pintintin score keeper!'})


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    # Opening a shared game link logs the visitor in as a guest
    as_guest = data.get('role') == ROLE_GUEST or bool(request.args.get('game') or request.args.get('guest'))

    if as_guest:
        username = username or current_app.config['GUEST_DISPLAY_NAME']
        user = _get_or_create_user(username)
        role = ROLE_GUEST
    elif username == current_app.config['ADMIN_USERNAME']:
        user = _ensure_admin()
        if not user.check_password(data.get('password')):
            current_app.logger.info(f"[login-denied] username={username}")
            return jsonify({'success': False, 'message': 'Invalid administrator credentials'}), 401
        role = ROLE_ADMIN
    else:
        if not username:
            return jsonify({'success': False, 'message': 'Username is required'}), 400
        user = _get_or_create_user(username)
        role = ROLE_USER

    state = get_state()
    with state.mutation():
        state.username = username
        schedule_save(current_app._get_current_object(), state)

    login_user(user, remember=True)
    session[ROLE_SESSION_KEY] = role
    current_app.logger.info(f"[login] username={username} role={role}")
    return jsonify({'success': True, 'user': user.to_dict(), 'role': role})


@main.route('/check_login', methods=['GET'])
@login_required
def check_login():
    return jsonify({'success': True, 'user': current_user.to_dict(), 'role': current_role()})


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    session.pop(ROLE_SESSION_KEY, None)
    return jsonify({'success': True})
