import logging
from datetime import datetime

from flask import Blueprint, jsonify

from fitdesk.forms import LoginAPIForm
from fitdesk.models.user import User, Role
from fitdesk.utils.errors import AuthenticationError
from fitdesk.utils.security import create_token, set_session_cookie, clear_session_cookie

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def authenticate(email, password):
    """
    Check credentials and issue a session token

    Returns:
        (user, token)

    Raises:
        AuthenticationError on unknown email or wrong password
    """
    email = (email or '').strip().lower()
    user = User.query.filter_by(email=email).first()

    if user is None or not user.check_password(password or ''):
        logger.info('Failed login for %s', email)
        raise AuthenticationError('Invalid email or password')

    token = create_token(user.token_claims())
    user.update_last_login()
    logger.info('User %s logged in (%s)', user.email, user.role)
    return user, token


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """Sign in and set the session cookie"""
    form = LoginAPIForm.from_json().validate_or_raise()

    user, token = authenticate(form.email.data, form.password.data)

    response = jsonify({'redirect': Role.landing_page(user.role)})
    return set_session_cookie(response, token)


@auth_bp.route('/auth/logout', methods=['POST'])
def logout():
    """Clear the session cookie"""
    response = jsonify({'ok': True})
    return clear_session_cookie(response)


@auth_bp.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.utcnow().isoformat()
    })
