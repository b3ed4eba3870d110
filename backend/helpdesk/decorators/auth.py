from functools import wraps
from flask import g
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from helpdesk import get_db
from helpdesk.errors import Unauthorized
from helpdesk.models.user import User


def _load_actor() -> User:
    verify_jwt_in_request()
    # Identity stored as string, cast back to int for DB lookup
    user = get_db().get(User, int(get_jwt_identity()))
    if user is None or not user.is_active:
        raise Unauthorized(description='Invalid token or user inactive')
    g.current_user = user
    return user


def require_actor(fn):
    """Resolve the bearer token to an active User and expose it as ``g.current_user``."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        _load_actor()
        return fn(*args, **kwargs)
    return wrapper


def current_actor() -> User:
    return g.current_user
