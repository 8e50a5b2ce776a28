"""
Session token handling.

The session is a signed JWT kept in an HttpOnly cookie. Claims:
sub (user id), email, role, gymId, iat, exp.
"""

import logging
from datetime import datetime, timezone

import jwt
from flask import current_app, g, request

logger = logging.getLogger(__name__)

_MISSING = object()


def create_token(claims):
    """Sign a session token for the given claims"""
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload['iat'] = now
    payload['exp'] = now + current_app.config['JWT_EXPIRES_IN']
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config['JWT_ALGORITHM']
    )


def decode_token(token):
    """
    Verify a session token.

    Returns the claims dict, or None when the token is expired, tampered
    with or malformed.
    """
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config['JWT_ALGORITHM']]
        )
    except jwt.ExpiredSignatureError:
        logger.debug('Session token expired')
        return None
    except jwt.InvalidTokenError as e:
        logger.debug('Invalid session token: %s', e)
        return None

    if not claims.get('sub') or claims.get('role') is None:
        return None
    return claims


def get_session_token():
    return request.cookies.get(current_app.config['AUTH_COOKIE_NAME'])


def get_session_claims():
    """Verified claims for the current request, cached on g"""
    claims = g.get('session_claims', _MISSING)
    if claims is _MISSING:
        claims = decode_token(get_session_token())
        g.session_claims = claims
    return claims


def set_session_cookie(response, token):
    response.set_cookie(
        current_app.config['AUTH_COOKIE_NAME'],
        token,
        max_age=int(current_app.config['JWT_EXPIRES_IN'].total_seconds()),
        httponly=True,
        secure=current_app.config['AUTH_COOKIE_SECURE'],
        samesite='Lax',
        path='/'
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(
        current_app.config['AUTH_COOKIE_NAME'],
        path='/',
        httponly=True,
        secure=current_app.config['AUTH_COOKIE_SECURE'],
        samesite='Lax'
    )
    return response
