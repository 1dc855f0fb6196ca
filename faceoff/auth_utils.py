from functools import wraps

from flask import request, session

from faceoff.app import db
from faceoff.errors import Unauthenticated
from faceoff.models import User

SESSION_USER_KEY = 'user_id'


def login_user(user):
    """Bind ``user`` to the signed session cookie."""
    session.clear()
    session[SESSION_USER_KEY] = user.id
    session.permanent = True


def logout_user():
    session.clear()


def get_session_user():
    """Resolve the user stored in the session cookie, if any."""
    raw_user_id = session.get(SESSION_USER_KEY)
    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError):
        return None
    user = db.session.get(User, user_id)
    if not user:
        # Account was deleted while the cookie was still live.
        session.pop(SESSION_USER_KEY, None)
    return user


def login_required(f):
    """Decorator to require authentication on a route."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = get_session_user()
        if not user:
            raise Unauthenticated()
        request.current_user = user
        return f(*args, **kwargs)
    return decorated
