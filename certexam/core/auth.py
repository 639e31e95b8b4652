from flask import jsonify, session
from functools import wraps

from .models import UserIdentity


def current_user():
    """Identity claims stored in the Flask session by the SSO login handler"""
    user_id = session.get('user_id')
    if user_id is None:
        return None
    return UserIdentity(
        user_id=str(user_id),
        name=session.get('name', ''),
        email=session.get('email', ''),
        paid_exam_ids=frozenset(session.get('paid_exam_ids') or ()),
        unlimited_practice=bool(session.get('unlimited_practice', False)),
    )


def login_required(f):
    """Reject requests without a logged-in user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'error': 'Authentication required', 'code': 'unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function


def init_auth_routes(app):
    """Logout endpoint; login is handled by the external SSO site"""

    @app.route('/auth/logout', methods=['GET', 'POST'])
    def logout():
        user_id = session.get('user_id')
        session.clear()
        if user_id is not None:
            app.logger.info(f"User {user_id} logged out")
        return jsonify({'status': 'logged_out'})
