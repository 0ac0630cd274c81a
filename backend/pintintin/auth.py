"""Capability gate.

The game core only needs to know which role the caller holds. Roles live in
the Flask session next to the Flask-Login user id.
"""

from functools import wraps

from flask import jsonify, session
from flask_login import current_user

from pintintin.models import ROLE_ADMIN, ROLE_GUEST, ROLE_USER

ROLE_SESSION_KEY = 'role'

# Roles allowed to change game state
MUTATOR_ROLES = (ROLE_USER, ROLE_ADMIN)


def current_role():
    if not current_user.is_authenticated:
        return None
    return session.get(ROLE_SESSION_KEY, ROLE_GUEST)


def role_required(*roles):
    """Reject the request unless the caller is logged in with one of ``roles``."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            role = current_role()
            if role is None:
                return jsonify({'error': 'Login required'}), 401
            if role not in roles:
                return jsonify({'error': f'The {role} role cannot do this'}), 403
            return view(*args, **kwargs)
        return wrapped
    return decorator
