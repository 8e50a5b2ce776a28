from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from werkzeug.security import generate_password_hash

from fitdesk import create_app, db
from fitdesk.models.user import User, Role
from fitdesk.models.gym import Gym
from fitdesk.models.subscription import SubscriptionPlan
from fitdesk.utils.security import create_token

PASSWORD = 'secret123'
# Few iterations keep the suite fast, check_password reads the method from the hash
PASSWORD_HASH = generate_password_hash(PASSWORD, method='pbkdf2:sha256:1000')


@pytest.fixture
def app(tmp_path):
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


def _user(name, email, role):
    user = User(name=name, email=email, role=role)
    user.password_hash = PASSWORD_HASH
    return user


@pytest.fixture
def seed(app):
    """A super admin and two gyms with one owner each"""
    with app.app_context():
        today = date.today()
        plan = SubscriptionPlan(name='Basic', price=999, duration_in_days=30,
                                features=['Basic reports'])
        admin = _user('Platform Admin', 'admin@fitdesk.com', Role.SUPER_ADMIN)
        owner = _user('Ravi Sharma', 'ravi@gym.com', Role.GYM_OWNER)
        other_owner = _user('Meera Iyer', 'meera@gym.com', Role.GYM_OWNER)

        gym = Gym(name='Iron Temple', owner=owner, subscription_plan=plan,
                  subscription_start_date=today, subscription_end_date=today + timedelta(days=30))
        other_gym = Gym(name='Flex Studio', owner=other_owner, subscription_plan=plan,
                        subscription_start_date=today, subscription_end_date=today + timedelta(days=30))

        db.session.add_all([plan, admin, owner, other_owner, gym, other_gym])
        db.session.commit()

        return SimpleNamespace(
            plan_id=plan.id,
            admin_id=admin.id,
            owner_id=owner.id,
            gym_id=gym.id,
            other_gym_id=other_gym.id,
            tokens={
                'admin': create_token(admin.token_claims()),
                'owner': create_token(owner.token_claims()),
                'other_owner': create_token(other_owner.token_claims()),
            },
        )


def _client_with(app, token):
    client = app.test_client()
    client.set_cookie(app.config['AUTH_COOKIE_NAME'], token)
    return client


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app, seed):
    return _client_with(app, seed.tokens['admin'])


@pytest.fixture
def owner_client(app, seed):
    return _client_with(app, seed.tokens['owner'])


@pytest.fixture
def other_owner_client(app, seed):
    return _client_with(app, seed.tokens['other_owner'])


@pytest.fixture
def make_client(owner_client):
    """Create a client of the first gym through the API"""
    def _make(**fields):
        payload = {'fullName': 'Asha Verma', 'phone': '9876543210', 'totalAmount': 3000}
        payload.update(fields)
        response = owner_client.post('/api/dashboard/clients/create', json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make
