from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fitdesk import db
from fitdesk.models.user import User, Role
from fitdesk.utils.gate import decide, ALLOW, DENY, REDIRECT

ADMIN = {'sub': '1', 'role': Role.SUPER_ADMIN, 'gymId': None}
OWNER = {'sub': '2', 'role': Role.GYM_OWNER, 'gymId': 7}
OWNER_WITHOUT_GYM = {'sub': '3', 'role': Role.GYM_OWNER, 'gymId': None}


@pytest.mark.parametrize('path', ['/login', '/api/auth/login', '/api/health',
                                  '/api/auth/logout', '/static/uploads/a.png'])
def test_public_paths_always_pass(path):
    assert decide(path, False, None).action == ALLOW
    assert decide(path, True, None).action == ALLOW


def test_missing_token_denies_api():
    decision = decide('/api/dashboard/clients', False, None)
    assert decision.action == DENY
    assert decision.clear_cookie is False


def test_missing_token_redirects_pages_to_login():
    decision = decide('/dashboard', False, None)
    assert decision == (REDIRECT, '/login', False)


def test_invalid_token_is_cleared():
    assert decide('/dashboard', True, None) == (REDIRECT, '/login', True)
    assert decide('/api/admin/dashboard', True, None) == (DENY, None, True)


def test_admin_area_requires_super_admin():
    assert decide('/admin', True, ADMIN).action == ALLOW
    assert decide('/admin/gyms', True, OWNER) == (REDIRECT, '/dashboard', False)


def test_root_redirects_by_role():
    assert decide('/', True, ADMIN).location == '/admin'
    assert decide('/', True, OWNER).location == '/dashboard'


def test_dashboard_area_rules():
    assert decide('/dashboard', True, OWNER).action == ALLOW
    assert decide('/dashboard/clients', True, ADMIN) == (REDIRECT, '/admin', False)
    assert decide('/dashboard', True, OWNER_WITHOUT_GYM) == (REDIRECT, '/login', True)
    assert decide('/dashboard', True, {'sub': '4', 'role': 'MEMBER'}) == (REDIRECT, '/login', True)


def test_other_authenticated_paths_pass():
    # Role checks for the API happen in the handlers
    assert decide('/api/admin/dashboard', True, OWNER).action == ALLOW


# ============= Through the app =============

def test_api_without_cookie_is_401(client):
    response = client.get('/api/dashboard/clients')
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized'}


def test_health_is_public(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


def test_page_without_cookie_redirects(client):
    response = client.get('/dashboard')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/login')


def test_tampered_cookie_is_cleared(app, client):
    client.set_cookie(app.config['AUTH_COOKIE_NAME'], 'not-a-jwt')
    response = client.get('/dashboard')
    assert response.status_code == 302
    set_cookie = response.headers.get('Set-Cookie', '')
    assert set_cookie.startswith(f"{app.config['AUTH_COOKIE_NAME']}=;")


def test_owner_is_sent_away_from_admin(owner_client):
    response = owner_client.get('/admin')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/dashboard')


def test_root_sends_admin_to_admin(admin_client):
    response = admin_client.get('/')
    assert response.headers['Location'].endswith('/admin')


def test_owner_dashboard_page_renders(owner_client):
    response = owner_client.get('/dashboard')
    assert response.status_code == 200
    assert b'Iron Temple' in response.data


def test_wrong_role_on_api_is_403(owner_client, admin_client):
    assert owner_client.get('/api/admin/dashboard').status_code == 403
    assert admin_client.get('/api/dashboard/clients').status_code == 403


def test_expired_cookie_is_rejected_and_cleared(app, client, seed):
    with app.app_context():
        claims = db.session.get(User, seed.owner_id).token_claims()
    issued = datetime.now(timezone.utc) - timedelta(days=8)
    claims.update(iat=issued, exp=issued + timedelta(days=7))
    token = jwt.encode(claims, app.config['JWT_SECRET_KEY'], algorithm=app.config['JWT_ALGORITHM'])
    client.set_cookie(app.config['AUTH_COOKIE_NAME'], token)

    response = client.get('/api/dashboard/clients')
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized'}
    set_cookie = response.headers.get('Set-Cookie', '')
    assert set_cookie.startswith(f"{app.config['AUTH_COOKIE_NAME']}=;")
    assert 'Max-Age=0' in set_cookie
