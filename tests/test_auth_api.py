from conftest import PASSWORD


def test_login_sets_cookie_and_redirects_by_role(app, client, seed):
    response = client.post('/api/auth/login', json={'email': 'ravi@gym.com', 'password': PASSWORD})
    assert response.status_code == 200
    assert response.get_json() == {'redirect': '/dashboard'}

    cookie = response.headers['Set-Cookie']
    assert cookie.startswith(app.config['AUTH_COOKIE_NAME'] + '=')
    assert 'HttpOnly' in cookie

    # The cookie now authenticates API calls
    assert client.get('/api/dashboard/clients').status_code == 200


def test_admin_login_redirects_to_admin(client, seed):
    response = client.post('/api/auth/login',
                           json={'email': 'ADMIN@fitdesk.com ', 'password': PASSWORD})
    assert response.get_json() == {'redirect': '/admin'}


def test_login_requires_both_fields(client, seed):
    response = client.post('/api/auth/login', json={'email': 'ravi@gym.com'})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Email and password are required'}


def test_login_rejects_wrong_password(client, seed):
    response = client.post('/api/auth/login', json={'email': 'ravi@gym.com', 'password': 'nope'})
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Invalid email or password'}


def test_login_rejects_unknown_email(client, seed):
    response = client.post('/api/auth/login', json={'email': 'ghost@gym.com', 'password': PASSWORD})
    assert response.status_code == 401


def test_login_without_json_body(client, seed):
    response = client.post('/api/auth/login', data='email=x')
    assert response.status_code == 400


def test_logout_clears_cookie(app, owner_client):
    response = owner_client.post('/api/auth/logout')
    assert response.get_json() == {'ok': True}
    assert response.headers['Set-Cookie'].startswith(app.config['AUTH_COOKIE_NAME'] + '=;')
    assert owner_client.get('/api/dashboard/clients').status_code == 401


def test_login_page_form(client, seed):
    assert client.get('/login').status_code == 200

    response = client.post('/login', data={'email': 'ravi@gym.com', 'password': PASSWORD})
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/dashboard')


def test_login_page_shows_error(client, seed):
    response = client.post('/login', data={'email': 'ravi@gym.com', 'password': 'bad'},
                           follow_redirects=True)
    assert b'Invalid email or password' in response.data


def test_token_for_deleted_user_is_rejected(app, owner_client, seed):
    from fitdesk import db
    from fitdesk.models.user import User
    from fitdesk.models.gym import Gym

    with app.app_context():
        db.session.delete(db.session.get(Gym, seed.gym_id))
        db.session.delete(db.session.get(User, seed.owner_id))
        db.session.commit()

    assert owner_client.get('/api/dashboard/clients').status_code == 401
