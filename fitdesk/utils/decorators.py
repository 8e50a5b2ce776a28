from functools import wraps
from flask_login import current_user

from fitdesk.models.user import Role
from fitdesk.utils.errors import AuthenticationError, AuthorizationError
from fitdesk.utils.security import get_session_claims


def role_required(*roles):
    """
    Decorator to require specific roles on JSON endpoints

    Usage:
        @role_required(Role.SUPER_ADMIN)
        def my_view():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise AuthenticationError()

            if current_user.role not in roles:
                raise AuthorizationError()

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def super_admin_required(f):
    """Decorator to require super admin role"""
    return role_required(Role.SUPER_ADMIN)(f)


def gym_owner_required(f):
    """Decorator to require a gym owner with a gym"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise AuthenticationError()

        if not current_user.is_gym_owner or not current_gym_id():
            raise AuthorizationError()

        return f(*args, **kwargs)
    return decorated_function


def current_gym_id():
    """Gym id of the signed-in owner, taken from the session token"""
    claims = get_session_claims() or {}
    gym_id = claims.get('gymId')
    if not gym_id or current_user.gym_id != gym_id:
        return None
    return gym_id
