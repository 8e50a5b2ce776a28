"""
Request gate.

Every request is checked against the session token before it reaches a
view. The decision itself is a pure function of the path and the token
claims so it can be exercised without a request context.
"""

import logging
from collections import namedtuple

from flask import jsonify, redirect, request

from fitdesk.models.user import Role
from fitdesk.utils.security import clear_session_cookie, get_session_claims, get_session_token

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ('/login', '/api/auth/login', '/api/health')
PUBLIC_PREFIXES = ('/api/auth/', '/static/')
SUPER_ADMIN_PREFIX = '/admin'
GYM_OWNER_PREFIX = '/dashboard'

ALLOW = 'allow'
DENY = 'deny'
REDIRECT = 'redirect'

Decision = namedtuple('Decision', ['action', 'location', 'clear_cookie'])


def _allow():
    return Decision(ALLOW, None, False)


def _redirect(location, clear_cookie=False):
    return Decision(REDIRECT, location, clear_cookie)


def is_public(path):
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def is_api(path):
    return path.startswith('/api/')


def decide(path, has_token, claims):
    """
    Decide what happens to a request.

    Args:
        path: request path
        has_token: whether a session cookie was sent at all
        claims: verified token claims, or None when absent or invalid

    Returns:
        Decision(action, location, clear_cookie)
    """
    if is_public(path):
        return _allow()

    if claims is None:
        # A cookie that fails verification is dropped
        clear = has_token
        if is_api(path):
            return Decision(DENY, None, clear)
        return _redirect('/login', clear)

    role = claims.get('role')

    if path.startswith(SUPER_ADMIN_PREFIX):
        if role != Role.SUPER_ADMIN:
            return _redirect('/dashboard')
        return _allow()

    if path == '/':
        return _redirect(Role.landing_page(role))

    if path.startswith(GYM_OWNER_PREFIX):
        if role != Role.GYM_OWNER:
            if role == Role.SUPER_ADMIN:
                return _redirect('/admin')
            return _redirect('/login', True)
        if not claims.get('gymId'):
            return _redirect('/login', True)
        return _allow()

    return _allow()


def register_gate(app):
    """Install the gate as a before_request hook"""

    @app.before_request
    def check_session():
        path = request.path
        if is_public(path):
            return None

        has_token = bool(get_session_token())
        claims = get_session_claims() if has_token else None
        decision = decide(path, has_token, claims)

        if decision.action == ALLOW:
            return None

        logger.debug('Gate %s %s -> %s %s', request.method, path,
                     decision.action, decision.location or '')

        if decision.action == DENY:
            response = jsonify({'error': 'Unauthorized'})
            response.status_code = 401
        else:
            response = redirect(decision.location)

        if decision.clear_cookie:
            clear_session_cookie(response)
        return response
