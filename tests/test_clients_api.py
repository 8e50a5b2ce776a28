import io
from datetime import date, timedelta
from types import SimpleNamespace

import pytest
import requests
from twilio.base.exceptions import TwilioRestException

from fitdesk import db
from fitdesk.models.client import Client
from fitdesk.models.payment import Payment
from fitdesk.utils import messaging


class FakeMessages:
    def __init__(self, sent, error=None):
        self.sent = sent
        self.error = error

    def create(self, to, from_, body):
        if self.error is not None:
            raise self.error
        self.sent.append({'to': to, 'from': from_, 'body': body})
        return SimpleNamespace(sid='SM123')


@pytest.fixture
def twilio(app, monkeypatch):
    """Configure Twilio and capture outgoing messages"""
    app.config.update(TWILIO_ACCOUNT_SID='AC123', TWILIO_AUTH_TOKEN='token',
                      TWILIO_SMS_FROM='+15550001111')
    state = SimpleNamespace(sent=[], error=None, credentials=None)

    def fake_client(account_sid, auth_token, http_client=None):
        state.credentials = (account_sid, auth_token)
        return SimpleNamespace(messages=FakeMessages(state.sent, state.error))

    monkeypatch.setattr(messaging, 'Client', fake_client)
    return state


def test_create_client_defaults(make_client):
    client = make_client()
    assert client['fullName'] == 'Asha Verma'
    assert client['subscriptionStatus'] == 'ACTIVE'
    assert client['joinDate'] == date.today().isoformat()
    assert client['amountPaid'] == 0
    assert client['pendingAmount'] == 3000


def test_create_client_requires_name(owner_client):
    response = owner_client.post('/api/dashboard/clients/create', json={'phone': '123'})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Full name is required'}


def test_create_client_rejects_unknown_status(owner_client):
    response = owner_client.post('/api/dashboard/clients/create',
                                 json={'fullName': 'A', 'subscriptionStatus': 'PAUSED'})
    assert response.status_code == 400


def test_list_clients_paginates_and_searches(owner_client, make_client):
    for name in ('Asha Verma', 'Vikram Rao', 'Neha Joshi'):
        make_client(fullName=name)

    data = owner_client.get('/api/dashboard/clients?limit=2').get_json()
    assert data['total'] == 3
    assert data['totalPages'] == 2
    assert len(data['items']) == 2

    found = owner_client.get('/api/dashboard/clients?search=vikram').get_json()
    assert [c['fullName'] for c in found['items']] == ['Vikram Rao']


def test_list_clients_by_status(owner_client, make_client):
    make_client(fullName='Active One')
    make_client(fullName='Expired One', subscriptionStatus='EXPIRED')

    data = owner_client.get('/api/dashboard/clients?status=EXPIRED').get_json()
    assert [c['fullName'] for c in data['items']] == ['Expired One']


def test_list_amount_paid_comes_from_payments(app, owner_client, make_client):
    client = make_client(amountPaid=999)
    with app.app_context():
        db.session.add(Payment(client_id=client['id'], amount=500))
        db.session.commit()

    item = owner_client.get('/api/dashboard/clients').get_json()['items'][0]
    assert item['amountPaid'] == 500
    assert item['recordedAmountPaid'] == 999


def test_clients_are_isolated_between_gyms(owner_client, other_owner_client, make_client):
    client = make_client()

    assert other_owner_client.get('/api/dashboard/clients').get_json()['total'] == 0
    assert other_owner_client.get(f"/api/dashboard/clients/{client['id']}").status_code == 404
    response = other_owner_client.patch(f"/api/dashboard/clients/{client['id']}", json={'phone': '1'})
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Client not found'}
    assert other_owner_client.delete(f"/api/dashboard/clients/{client['id']}").status_code == 404


def test_get_client_includes_payments(owner_client, make_client):
    client = make_client()
    owner_client.post('/api/dashboard/payments', json={'clientId': client['id'], 'amount': 700})

    data = owner_client.get(f"/api/dashboard/clients/{client['id']}").get_json()
    assert [p['amount'] for p in data['payments']] == [700]


def test_update_client_applies_sent_fields_only(owner_client, make_client):
    client = make_client(email='asha@example.com')

    response = owner_client.patch(f"/api/dashboard/clients/{client['id']}",
                                  json={'phone': '9111111111', 'subscriptionEndDate': '2030-01-31'})
    data = response.get_json()
    assert data['phone'] == '9111111111'
    assert data['subscriptionEndDate'] == '2030-01-31'
    assert data['email'] == 'asha@example.com'
    assert data['fullName'] == 'Asha Verma'


def test_update_client_null_clears_field(owner_client, make_client):
    client = make_client(email='asha@example.com')
    data = owner_client.patch(f"/api/dashboard/clients/{client['id']}", json={'email': None}).get_json()
    assert data['email'] is None


def test_update_client_rejects_blank_name(owner_client, make_client):
    client = make_client()
    response = owner_client.patch(f"/api/dashboard/clients/{client['id']}", json={'fullName': '  '})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Full name cannot be empty'}


def test_delete_client_removes_payments(app, owner_client, make_client):
    client = make_client()
    owner_client.post('/api/dashboard/payments', json={'clientId': client['id'], 'amount': 100})

    response = owner_client.delete(f"/api/dashboard/clients/{client['id']}")
    assert response.get_json() == {'ok': True}
    with app.app_context():
        assert db.session.get(Client, client['id']) is None
        assert Payment.query.filter_by(client_id=client['id']).count() == 0


def test_effective_status_for_lapsed_subscription(make_client):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    client = make_client(subscriptionEndDate=yesterday)
    assert client['subscriptionStatus'] == 'ACTIVE'
    assert client['effectiveStatus'] == 'EXPIRED'
    assert client['daysUntilExpiry'] == -1


# ============= Reminders =============

def test_send_reminder_by_sms(owner_client, make_client, twilio):
    soon = (date.today() + timedelta(days=3)).isoformat()
    client = make_client(subscriptionEndDate=soon)

    response = owner_client.post(f"/api/dashboard/clients/{client['id']}/send-reminder")
    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'message': 'SMS reminder sent', 'sid': 'SM123'}

    assert twilio.credentials == ('AC123', 'token')
    assert len(twilio.sent) == 1
    assert twilio.sent[0]['to'] == '+919876543210'
    assert twilio.sent[0]['from'] == '+15550001111'
    assert twilio.sent[0]['body'].startswith('Hi Asha Verma, your gym membership')


def test_send_reminder_by_whatsapp(owner_client, make_client, twilio):
    client = make_client(subscriptionStatus='EXPIRED')
    response = owner_client.post(f"/api/dashboard/clients/{client['id']}/send-reminder",
                                 json={'channel': 'whatsapp'})
    assert response.status_code == 200
    assert response.get_json()['message'] == 'WhatsApp reminder sent'
    assert twilio.sent[0]['to'] == 'whatsapp:+919876543210'
    assert twilio.sent[0]['from'] == 'whatsapp:+14155238886'


def test_send_reminder_only_when_expiring(owner_client, make_client, twilio):
    later = (date.today() + timedelta(days=20)).isoformat()
    client = make_client(subscriptionEndDate=later)

    response = owner_client.post(f"/api/dashboard/clients/{client['id']}/send-reminder")
    assert response.status_code == 400
    assert response.get_json() == {
        'error': 'Send reminder is only for expired or expiring-soon subscriptions'
    }
    assert twilio.sent == []


def test_send_reminder_needs_phone(owner_client, make_client, twilio):
    client = make_client(phone=None, subscriptionStatus='EXPIRED')
    response = owner_client.post(f"/api/dashboard/clients/{client['id']}/send-reminder")
    assert response.status_code == 400
    assert response.get_json()['error'].startswith('Client has no phone number')


def test_send_reminder_without_provider_is_503(owner_client, make_client):
    client = make_client(subscriptionStatus='EXPIRED')
    response = owner_client.post(f"/api/dashboard/clients/{client['id']}/send-reminder")
    assert response.status_code == 503
    assert 'Twilio is not configured' in response.get_json()['error']


def test_send_reminder_provider_error_is_503(owner_client, make_client, twilio):
    twilio.error = TwilioRestException(400, 'https://api.twilio.com/Messages.json',
                                       msg='The To number is not a valid phone number.')
    client = make_client(subscriptionStatus='EXPIRED')

    response = owner_client.post(f"/api/dashboard/clients/{client['id']}/send-reminder")
    assert response.status_code == 503
    assert response.get_json() == {'error': 'The To number is not a valid phone number.'}


def test_send_reminder_unreachable_provider_is_503(owner_client, make_client, twilio):
    twilio.error = requests.exceptions.ConnectionError('connection refused')
    client = make_client(subscriptionStatus='EXPIRED')

    response = owner_client.post(f"/api/dashboard/clients/{client['id']}/send-reminder")
    assert response.status_code == 503
    assert response.get_json() == {'error': 'Could not reach messaging provider'}


# ============= Photos =============

def test_upload_and_delete_photo(app, owner_client, make_client):
    client = make_client()
    url = f"/api/dashboard/clients/{client['id']}/photo"

    response = owner_client.post(url, data={'photo': (io.BytesIO(b'\x89PNG fake'), 'me.png')},
                                 content_type='multipart/form-data')
    assert response.status_code == 200
    photo = response.get_json()['profilePhoto']
    assert photo.startswith('/static/uploads/clients/') and photo.endswith('.png')

    assert owner_client.delete(url).get_json() == {'ok': True}
    assert owner_client.get(f"/api/dashboard/clients/{client['id']}").get_json()['profilePhoto'] is None


def test_upload_photo_validation(app, owner_client, make_client):
    client = make_client()
    url = f"/api/dashboard/clients/{client['id']}/photo"

    missing = owner_client.post(url, data={}, content_type='multipart/form-data')
    assert missing.get_json() == {'error': 'No file uploaded'}

    wrong_type = owner_client.post(url, data={'photo': (io.BytesIO(b'text'), 'notes.txt')},
                                   content_type='multipart/form-data')
    assert wrong_type.get_json() == {'error': 'Invalid file type. Use JPEG, PNG, GIF, or WebP.'}

    big = io.BytesIO(b'0' * (app.config['CLIENT_PHOTO_MAX_SIZE'] + 1))
    too_big = owner_client.post(url, data={'photo': (big, 'big.jpg')},
                                content_type='multipart/form-data')
    assert too_big.get_json() == {'error': 'File too large. Maximum 5MB.'}


# ============= Bulk upload =============

def test_bulk_upload(app, owner_client, seed):
    rows = [
        {'fullName': 'Row One', 'subscriptionEndDate': '03/31/25', 'totalAmount': '1500'},
        {'fullName': '', 'phone': '123'},
        {'fullName': 'Row Three', 'subscriptionStartDate': 45658, 'subscriptionStatus': 'EXPIRED',
         'totalAmount': 'abc'},
        {'fullName': 'Row Four', 'dateOfBirth': '25/12/1990', 'subscriptionStatus': 'PAUSED'},
    ]
    response = owner_client.post('/api/dashboard/clients/bulk', json={'rows': rows})
    data = response.get_json()
    assert data == {'created': 3, 'failed': 1, 'errors': ['Row 2: Full name is required']}

    with app.app_context():
        by_name = {c.full_name: c for c in Client.query.filter_by(gym_id=seed.gym_id)}
        assert by_name['Row One'].subscription_end_date == date(2025, 3, 31)
        assert float(by_name['Row One'].total_amount) == 1500
        assert by_name['Row Three'].subscription_start_date == date(2025, 1, 1)
        assert by_name['Row Three'].subscription_status == 'EXPIRED'
        assert float(by_name['Row Three'].total_amount) == 0
        assert by_name['Row Four'].date_of_birth == date(1990, 12, 25)
        assert by_name['Row Four'].subscription_status == 'ACTIVE'


def test_bulk_upload_limits(owner_client):
    empty = owner_client.post('/api/dashboard/clients/bulk', json={'rows': []})
    assert empty.get_json() == {'error': 'No rows provided'}

    too_many = owner_client.post('/api/dashboard/clients/bulk',
                                 json={'rows': [{'fullName': 'x'}] * 501})
    assert too_many.get_json() == {'error': 'Maximum 500 clients per upload'}
