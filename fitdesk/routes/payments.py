import logging
from datetime import datetime

from flask import Blueprint, request, jsonify

from fitdesk import db
from fitdesk.forms import PaymentForm, clean
from fitdesk.models.client import Client
from fitdesk.models.payment import Payment
from fitdesk.utils.decorators import gym_owner_required, current_gym_id
from fitdesk.utils.errors import NotFoundError
from fitdesk.utils.helpers import parse_date_param, day_bounds, to_float, format_datetime
from fitdesk.utils.insights import format_inr
from fitdesk.utils.notifications import notify

logger = logging.getLogger(__name__)

payments_bp = Blueprint('payments', __name__)

PAYMENT_LIST_LIMIT = 200


@payments_bp.route('')
@gym_owner_required
def index():
    """Payments of the gym, newest first, optionally within from/to"""
    start, end = day_bounds(parse_date_param(request.args.get('from')),
                            parse_date_param(request.args.get('to')))

    query = db.session.query(Payment, Client).join(Client, Payment.client_id == Client.id).filter(
        Client.gym_id == current_gym_id()
    )
    if start:
        query = query.filter(Payment.payment_date >= start)
    if end:
        query = query.filter(Payment.payment_date < end)

    rows = query.order_by(Payment.payment_date.desc(), Payment.id.desc()).limit(PAYMENT_LIST_LIMIT).all()
    # Total covers every matching payment, not only the listed rows
    total = query.with_entities(db.func.coalesce(db.func.sum(Payment.amount), 0)).scalar()

    payments = [{
        'id': payment.id,
        'clientId': client.id,
        'clientName': client.full_name,
        'clientPhone': client.phone,
        'amount': to_float(payment.amount),
        'paymentDate': format_datetime(payment.payment_date),
        'paymentMethod': payment.payment_method,
    } for payment, client in rows]

    return jsonify({
        'payments': payments,
        'totalRevenue': to_float(total),
    })


@payments_bp.route('', methods=['POST'])
@gym_owner_required
def create():
    """
    Record a payment for a client

    The payment row and the client's amount paid are written in one
    commit, so either both change or neither does.
    """
    form = PaymentForm.from_json().validate_or_raise()
    gym_id = current_gym_id()

    client = Client.query.filter_by(id=form.clientId.data, gym_id=gym_id).first()
    if client is None:
        raise NotFoundError('Client not found')

    payment = Payment(
        client_id=client.id,
        amount=form.amount.data,
        payment_date=form.paymentDate.data or datetime.utcnow(),
        payment_method=clean(form.paymentMethod.data)
    )
    db.session.add(payment)
    client.amount_paid = (client.amount_paid or 0) + form.amount.data
    db.session.commit()

    logger.info('Gym %s recorded payment %s for client %s', gym_id, payment.id, client.id)
    notify(gym_id, 'Payment recorded',
           f'₹{format_inr(to_float(payment.amount))} from {client.full_name}')

    return jsonify(payment.to_dict()), 201
