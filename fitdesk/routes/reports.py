from flask import Blueprint, request, jsonify

from fitdesk import db
from fitdesk.models.client import Client
from fitdesk.models.payment import Payment
from fitdesk.utils.decorators import gym_owner_required, current_gym_id
from fitdesk.utils.export import export_format, export_response
from fitdesk.utils.helpers import parse_date_param, day_bounds, format_date, to_float

reports_bp = Blueprint('reports', __name__)

PREVIEW_ROWS = 100

CLIENT_HEADERS = ['Name', 'Phone', 'Email', 'Join Date', 'Subscription End', 'Status',
                  'Total Amount', 'Amount Paid']
REVENUE_HEADERS = ['Date', 'Amount', 'Payment Method']


def _report_range():
    return parse_date_param(request.args.get('start')), parse_date_param(request.args.get('end'))


def _render(data, headers, prefix, start, end, title):
    """File download when ?export is given, JSON preview otherwise"""
    fmt = export_format(request.args.get('export'))
    if fmt:
        return export_response(data, headers, fmt, prefix, start, end, title=title)
    return jsonify({'preview': data[:PREVIEW_ROWS], 'total': len(data)})


@reports_bp.route('/clients')
@gym_owner_required
def clients():
    """Clients who joined within start/end"""
    start, end = _report_range()

    query = Client.query.filter_by(gym_id=current_gym_id())
    if start:
        query = query.filter(Client.join_date >= start)
    if end:
        query = query.filter(Client.join_date <= end)

    data = []
    for c in query.order_by(Client.created_at.desc(), Client.id.desc()).all():
        data.append({
            'Name': c.full_name,
            'Phone': c.phone or '',
            'Email': c.email or '',
            'Join Date': format_date(c.join_date) or '',
            'Subscription End': format_date(c.subscription_end_date) or '',
            'Status': c.subscription_status,
            'Total Amount': to_float(c.total_amount),
            'Amount Paid': to_float(c.amount_paid),
        })

    return _render(data, CLIENT_HEADERS, 'clients', start, end, 'Clients')


@reports_bp.route('/revenue')
@gym_owner_required
def revenue():
    """Payments received within start/end"""
    start, end = _report_range()
    start_dt, end_dt = day_bounds(start, end)

    query = db.session.query(Payment).join(Client, Payment.client_id == Client.id).filter(
        Client.gym_id == current_gym_id()
    )
    if start_dt:
        query = query.filter(Payment.payment_date >= start_dt)
    if end_dt:
        query = query.filter(Payment.payment_date < end_dt)

    data = [{
        'Date': format_date(p.payment_date),
        'Amount': to_float(p.amount),
        'Payment Method': p.payment_method or '',
    } for p in query.order_by(Payment.payment_date.asc(), Payment.id.asc()).all()]

    return _render(data, REVENUE_HEADERS, 'revenue', start, end, 'Revenue')
