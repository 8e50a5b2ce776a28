import logging
import math
from datetime import date
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, current_app

from fitdesk import db
from fitdesk.forms import ClientForm, ClientCreateForm, ReminderForm, clean
from fitdesk.models.client import Client, SubscriptionStatus
from fitdesk.models.payment import Payment
from fitdesk.utils.decorators import gym_owner_required, current_gym_id
from fitdesk.utils.errors import ValidationError, NotFoundError
from fitdesk.utils.helpers import (
    pagination_args, parse_flexible_date, validate_image, save_uploaded_file,
    delete_uploaded_file, upload_url
)
from fitdesk.utils.messaging import TwilioClient, SMS
from fitdesk.utils.notifications import notify

logger = logging.getLogger(__name__)

clients_bp = Blueprint('clients', __name__)

BULK_LIMIT = 500
REMINDER_WINDOW_DAYS = 7

REMINDER_TEMPLATE = (
    'Hi {name}, your gym membership at our facility is due for renewal. '
    'Please visit us or contact us to renew your subscription.'
)


def get_client_or_404(client_id):
    """Client of the current gym"""
    client = Client.query.filter_by(id=client_id, gym_id=current_gym_id()).first()
    if client is None:
        raise NotFoundError('Client not found')
    return client


def paid_by_client(client_ids):
    """Sum of payments per client id"""
    if not client_ids:
        return {}
    rows = db.session.query(
        Payment.client_id, db.func.coalesce(db.func.sum(Payment.amount), 0)
    ).filter(Payment.client_id.in_(client_ids)).group_by(Payment.client_id).all()
    return {client_id: float(total) for client_id, total in rows}


@clients_bp.route('')
@gym_owner_required
def index():
    """List clients"""
    page, per_page = pagination_args(request)
    search = request.args.get('search', '').strip()
    status = request.args.get('status', '')

    query = Client.query.filter_by(gym_id=current_gym_id())

    if search:
        query = query.filter(Client.full_name.ilike(f'%{search}%'))

    if status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED):
        query = query.filter(Client.subscription_status == status)

    clients = query.order_by(Client.created_at.desc(), Client.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )

    paid = paid_by_client([c.id for c in clients.items])

    return jsonify({
        'items': [c.to_dict(amount_paid=paid.get(c.id, 0.0)) for c in clients.items],
        'total': clients.total,
        'page': page,
        'limit': per_page,
        'totalPages': math.ceil(clients.total / per_page),
    })


@clients_bp.route('/create', methods=['POST'])
@gym_owner_required
def create():
    """Create new client"""
    form = ClientCreateForm.from_json().validate_or_raise()
    gym_id = current_gym_id()

    client = Client(
        gym_id=gym_id,
        full_name=form.fullName.data.strip(),
        phone=clean(form.phone.data),
        email=clean(form.email.data),
        address=clean(form.address.data),
        date_of_birth=form.dateOfBirth.data,
        join_date=form.joinDate.data or date.today(),
        subscription_start_date=form.subscriptionStartDate.data,
        subscription_end_date=form.subscriptionEndDate.data,
        subscription_status=form.subscriptionStatus.data or SubscriptionStatus.ACTIVE,
        total_amount=form.totalAmount.data or 0,
        amount_paid=form.amountPaid.data or 0
    )
    db.session.add(client)
    db.session.commit()

    logger.info('Gym %s added client %s', gym_id, client.id)
    notify(gym_id, 'Client added', f'{client.full_name} was added')

    return jsonify(client.to_dict()), 201


@clients_bp.route('/<int:client_id>')
@gym_owner_required
def view(client_id):
    """Client with payment history"""
    client = get_client_or_404(client_id)
    return jsonify(client.to_dict(include_payments=True))


@clients_bp.route('/<int:client_id>', methods=['PATCH'])
@gym_owner_required
def edit(client_id):
    """Update the fields that were sent"""
    client = get_client_or_404(client_id)
    form = ClientForm.from_json().validate_or_raise()

    if form.provided('fullName'):
        client.full_name = form.fullName.data.strip()
    for field, attr in (('phone', 'phone'), ('email', 'email'), ('address', 'address')):
        if form.provided(field):
            setattr(client, attr, clean(form[field].data))
    for field, attr in (('dateOfBirth', 'date_of_birth'),
                        ('joinDate', 'join_date'),
                        ('subscriptionStartDate', 'subscription_start_date'),
                        ('subscriptionEndDate', 'subscription_end_date')):
        if form.provided(field):
            value = form[field].data
            if attr == 'join_date' and value is None:
                continue
            setattr(client, attr, value)
    if form.provided('subscriptionStatus') and form.subscriptionStatus.data:
        client.subscription_status = form.subscriptionStatus.data
    if form.provided('totalAmount') and form.totalAmount.data is not None:
        client.total_amount = form.totalAmount.data

    db.session.commit()
    logger.info('Gym %s updated client %s', client.gym_id, client.id)

    return jsonify(client.to_dict())


@clients_bp.route('/<int:client_id>', methods=['DELETE'])
@gym_owner_required
def delete(client_id):
    """Delete client and its payments"""
    client = get_client_or_404(client_id)
    photo = client.profile_photo

    db.session.delete(client)
    db.session.commit()
    delete_uploaded_file(photo)

    logger.info('Gym %s deleted client %s', current_gym_id(), client_id)
    return jsonify({'ok': True})


@clients_bp.route('/<int:client_id>/send-reminder', methods=['POST'])
@gym_owner_required
def send_reminder(client_id):
    """Send a renewal reminder by SMS or WhatsApp"""
    client = get_client_or_404(client_id)
    form = ReminderForm.from_json(required=False).validate_or_raise()

    days = client.days_until_expiry
    expiring_soon = days is not None and 0 <= days <= REMINDER_WINDOW_DAYS
    if client.effective_status != SubscriptionStatus.EXPIRED and not expiring_soon:
        raise ValidationError('Send reminder is only for expired or expiring-soon subscriptions')

    phone = (client.phone or '').strip()
    if not phone:
        raise ValidationError('Client has no phone number. Add a phone number to send SMS reminder.')

    channel = form.channel.data or SMS
    body = REMINDER_TEMPLATE.format(name=client.full_name)
    sid = TwilioClient.from_config().send(channel, phone, body)

    logger.info('Sent %s reminder to client %s', channel, client.id)
    notify(client.gym_id, 'Reminder sent', f'Renewal reminder sent to {client.full_name}')

    label = 'WhatsApp' if channel != SMS else 'SMS'
    return jsonify({'success': True, 'message': f'{label} reminder sent', 'sid': sid})


@clients_bp.route('/<int:client_id>/photo', methods=['POST'])
@gym_owner_required
def upload_photo(client_id):
    """Upload a profile photo"""
    client = get_client_or_404(client_id)
    file = request.files.get('photo')
    validate_image(file, current_app.config['CLIENT_PHOTO_MAX_SIZE'], '5MB')

    path = save_uploaded_file(file, 'clients')
    if path is None:
        raise ValidationError('Invalid file type. Use JPEG, PNG, GIF, or WebP.')

    old_photo = client.profile_photo
    client.profile_photo = path
    db.session.commit()
    delete_uploaded_file(old_photo)

    return jsonify({'profilePhoto': upload_url(path)})


@clients_bp.route('/<int:client_id>/photo', methods=['DELETE'])
@gym_owner_required
def delete_photo(client_id):
    """Remove the profile photo"""
    client = get_client_or_404(client_id)
    photo = client.profile_photo

    client.profile_photo = None
    db.session.commit()
    delete_uploaded_file(photo)

    return jsonify({'ok': True})


def _amount(value):
    """Spreadsheet amount, anything unusable counts as 0"""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        amount = Decimal(str(value).strip() or 0)
    except InvalidOperation:
        return Decimal(0)
    if not amount.is_finite():
        return Decimal(0)
    return amount


def _text(value):
    if value is None:
        return None
    return clean(str(value))


@clients_bp.route('/bulk', methods=['POST'])
@gym_owner_required
def bulk_upload():
    """
    Create clients from spreadsheet rows

    Request body:
    {
        "rows": [
            {"fullName": "...", "phone": "...", "subscriptionEndDate": "03/31/25", ...}
        ]
    }
    """
    data = request.get_json(silent=True)
    rows = data.get('rows') if isinstance(data, dict) else None
    if not isinstance(rows, list) or not rows:
        raise ValidationError('No rows provided')
    if len(rows) > BULK_LIMIT:
        raise ValidationError(f'Maximum {BULK_LIMIT} clients per upload')

    gym_id = current_gym_id()
    created = 0
    errors = []

    for i, row in enumerate(rows, 1):
        if not isinstance(row, dict):
            errors.append(f'Row {i}: Invalid row')
            continue

        full_name = _text(row.get('fullName'))
        if not full_name:
            errors.append(f'Row {i}: Full name is required')
            continue
        if len(full_name) > 150:
            errors.append(f'Row {i} ({full_name[:20]}): Full name is too long')
            continue

        status = row.get('subscriptionStatus')
        if status not in (SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED):
            status = SubscriptionStatus.ACTIVE

        db.session.add(Client(
            gym_id=gym_id,
            full_name=full_name,
            phone=_text(row.get('phone')),
            email=_text(row.get('email')),
            address=_text(row.get('address')),
            date_of_birth=parse_flexible_date(row.get('dateOfBirth')),
            subscription_start_date=parse_flexible_date(row.get('subscriptionStartDate')),
            subscription_end_date=parse_flexible_date(row.get('subscriptionEndDate')),
            subscription_status=status,
            total_amount=_amount(row.get('totalAmount')),
            amount_paid=_amount(row.get('amountPaid'))
        ))
        created += 1

    db.session.commit()

    logger.info('Gym %s bulk upload: %s created, %s failed', gym_id, created, len(errors))
    if created:
        notify(gym_id, 'Clients imported', f'{created} client(s) added from upload')

    return jsonify({'created': created, 'failed': len(errors), 'errors': errors})
