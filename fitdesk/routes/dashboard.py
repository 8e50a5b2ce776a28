import logging
from datetime import datetime, date, timedelta

from flask import Blueprint, request, jsonify, current_app

from fitdesk import db
from fitdesk.forms import GymSettingsForm, clean
from fitdesk.models.client import Client, SubscriptionStatus
from fitdesk.models.gym import Gym
from fitdesk.models.payment import Payment
from fitdesk.utils.decorators import gym_owner_required, current_gym_id
from fitdesk.utils.errors import ValidationError, NotFoundError
from fitdesk.utils.helpers import (
    parse_date_param, day_bounds, month_start, month_end, add_months, last_months,
    validate_image, save_uploaded_file, delete_uploaded_file, upload_url, to_float,
    format_date, format_datetime
)
from fitdesk.utils import insights as ai
from fitdesk.utils.notifications import get_bus

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)

MONTHLY_POINTS = 12
WEEKLY_POINTS = 24
EXPIRING_SOON_DAYS = 7
EXPIRING_SOON_LIMIT = 20
RENEWAL_WINDOW_DAYS = 30


def get_gym_or_404():
    gym = db.session.get(Gym, current_gym_id())
    if gym is None:
        raise NotFoundError('Gym not found')
    return gym


def revenue_between(gym_id, start=None, end=None):
    """Sum of payments between two days, both inclusive"""
    start_dt, end_dt = day_bounds(start, end)
    query = db.session.query(db.func.coalesce(db.func.sum(Payment.amount), 0)).join(
        Client, Payment.client_id == Client.id
    ).filter(Client.gym_id == gym_id)
    if start_dt:
        query = query.filter(Payment.payment_date >= start_dt)
    if end_dt:
        query = query.filter(Payment.payment_date < end_dt)
    return to_float(query.scalar())


def clients_joined(gym_id, start=None, end=None):
    query = Client.query.filter_by(gym_id=gym_id)
    if start:
        query = query.filter(Client.join_date >= start)
    if end:
        query = query.filter(Client.join_date <= end)
    return query.count()


def growth_percent(current, previous):
    """Change vs the previous period, 100 when starting from nothing"""
    if previous > 0:
        return (current - previous) / previous * 100
    return 100 if current > 0 else 0


def pending_payments(gym_id):
    """Agreed amounts not yet paid, over all clients"""
    total, paid = db.session.query(
        db.func.coalesce(db.func.sum(Client.total_amount), 0),
        db.func.coalesce(db.func.sum(Client.amount_paid), 0)
    ).filter(Client.gym_id == gym_id).one()
    return max(0.0, to_float(total) - to_float(paid))


def recent_activity(gym_id, limit=10):
    """Newest client additions, payments and expiries, merged"""
    items = []

    for c in Client.query.filter_by(gym_id=gym_id).order_by(Client.created_at.desc()).limit(5):
        items.append(('new_client', f'{c.full_name} added', c.created_at, c.id))

    payments = db.session.query(Payment, Client.full_name).join(
        Client, Payment.client_id == Client.id
    ).filter(Client.gym_id == gym_id).order_by(Payment.payment_date.desc()).limit(5)
    for p, name in payments:
        items.append(('payment_received', f'Payment received from {name}', p.payment_date, p.id))

    expired = Client.query.filter(
        Client.gym_id == gym_id,
        Client.subscription_status == SubscriptionStatus.EXPIRED,
        Client.subscription_end_date.isnot(None)
    ).order_by(Client.subscription_end_date.desc()).limit(5)
    for c in expired:
        ended = datetime.combine(c.subscription_end_date, datetime.min.time())
        items.append(('subscription_expired', f"{c.full_name}'s subscription expired", ended, c.id))

    items.sort(key=lambda item: item[2] or datetime.min, reverse=True)
    return [{
        'type': kind,
        'label': label,
        'timestamp': format_datetime(timestamp),
        'id': item_id,
    } for kind, label, timestamp, item_id in items[:limit]]


def monthly_periods(start, end):
    """(label, first day, last day) for each month touching [start, end]"""
    periods = []
    month = month_start(start)
    while month <= end:
        periods.append((month.strftime('%b'), month, month_end(month)))
        if month >= month_start(date.max):
            break
        month = add_months(month, 1)
    return periods[-MONTHLY_POINTS:]


def weekly_periods(start, end):
    """Monday based weeks touching [start, end], the last one cut at end"""
    periods = []
    week = start - timedelta(days=start.weekday())
    while week <= end:
        # The week holding date.max ends there
        last_week = date.max - week < timedelta(days=7)
        week_end = min(date.max if last_week else week + timedelta(days=6), end)
        periods.append((f'{week.day} {week:%b}', week, week_end))
        if last_week:
            break
        week += timedelta(days=7)
    return periods[-WEEKLY_POINTS:]


# ============= Gym settings =============

@dashboard_bp.route('/gym')
@gym_owner_required
def gym_settings():
    """Invoice settings of the gym"""
    return jsonify(get_gym_or_404().invoice_settings())


@dashboard_bp.route('/gym', methods=['PATCH'])
@gym_owner_required
def update_gym_settings():
    """Update the invoice settings that were sent"""
    gym = get_gym_or_404()
    form = GymSettingsForm.from_json().validate_or_raise()

    for field, attr in (('invoiceAddress', 'invoice_address'),
                        ('invoicePhone', 'invoice_phone'),
                        ('invoiceEmail', 'invoice_email'),
                        ('gstNumber', 'gst_number')):
        if form.provided(field):
            setattr(gym, attr, clean(form[field].data))

    db.session.commit()
    logger.info('Gym %s updated invoice settings', gym.id)

    return jsonify(gym.invoice_settings())


@dashboard_bp.route('/invoice/logo', methods=['POST'])
@gym_owner_required
def upload_invoice_logo():
    """Upload the logo printed on invoices"""
    gym = get_gym_or_404()
    file = request.files.get('logo')
    validate_image(file, current_app.config['INVOICE_LOGO_MAX_SIZE'], '2MB')

    path = save_uploaded_file(file, 'invoices')
    if path is None:
        raise ValidationError('Invalid file type. Use JPEG, PNG, GIF, or WebP.')

    old_logo = gym.invoice_logo_url
    gym.invoice_logo_url = path
    db.session.commit()
    delete_uploaded_file(old_logo)

    return jsonify({'invoiceLogoUrl': upload_url(path)})


# ============= Activity & stats =============

@dashboard_bp.route('/recent-activity')
@gym_owner_required
def activity():
    return jsonify({'recentActivity': recent_activity(current_gym_id())})


@dashboard_bp.route('/stats')
@gym_owner_required
def stats():
    """
    Dashboard KPIs and charts

    Query params:
        from, to: chart range (YYYY-MM-DD), defaults to the last six months
        granularity: monthly (default) or weekly
    """
    gym_id = current_gym_id()
    today = date.today()

    range_start = parse_date_param(request.args.get('from')) or add_months(today, -5)
    range_end = parse_date_param(request.args.get('to')) or today
    granularity = request.args.get('granularity', 'monthly')

    this_start, this_end = month_start(today), month_end(today)
    last_end = this_start - timedelta(days=1)
    last_start = month_start(last_end)

    clients = Client.query.filter_by(gym_id=gym_id)
    status_counts = dict(db.session.query(
        Client.subscription_status, db.func.count(Client.id)
    ).filter(Client.gym_id == gym_id).group_by(Client.subscription_status).all())
    active_clients = status_counts.get(SubscriptionStatus.ACTIVE, 0)
    expired_clients = status_counts.get(SubscriptionStatus.EXPIRED, 0)
    cancelled_clients = status_counts.get(SubscriptionStatus.CANCELLED, 0)

    clients_this_month = clients_joined(gym_id, this_start, this_end)
    clients_last_month = clients_joined(gym_id, last_start, last_end)
    revenue_this_month = revenue_between(gym_id, this_start, this_end)
    revenue_last_month = revenue_between(gym_id, last_start, last_end)

    if granularity == 'weekly':
        periods = weekly_periods(range_start, range_end)
    else:
        periods = monthly_periods(range_start, range_end)

    chart_revenue = []
    chart_growth = []
    for label, start, end in periods:
        chart_revenue.append({
            'month': label,
            'revenue': revenue_between(gym_id, start, end),
            'periodStart': format_date(start),
            'periodEnd': format_date(end),
        })
        chart_growth.append({'month': label, 'clients': clients_joined(gym_id, end=end)})

    distribution = []
    for name, value in (('Active', active_clients),
                        ('Expired', expired_clients),
                        ('Cancelled', cancelled_clients)):
        if value > 0:
            distribution.append({'name': name, 'value': value})

    expiring = clients.filter(
        Client.subscription_status == SubscriptionStatus.ACTIVE,
        Client.subscription_end_date >= today,
        Client.subscription_end_date <= today + timedelta(days=EXPIRING_SOON_DAYS)
    ).order_by(Client.subscription_end_date.asc()).limit(EXPIRING_SOON_LIMIT).all()

    return jsonify({
        'kpis': {
            'totalClients': clients.count(),
            'activeClients': active_clients,
            'expiredClients': expired_clients,
            'revenueThisMonth': revenue_this_month,
            'revenueThisYear': revenue_between(gym_id, date(today.year, 1, 1)),
            'pendingPayments': pending_payments(gym_id),
            'revenueInRange': revenue_between(gym_id, range_start, range_end),
            'clientsThisMonth': clients_this_month,
            'clientsLastMonth': clients_last_month,
            'revenueGrowthPercent': growth_percent(revenue_this_month, revenue_last_month),
            'clientGrowthPercent': growth_percent(clients_this_month, clients_last_month),
        },
        'monthlyRevenue': chart_revenue,
        'clientGrowth': chart_growth,
        'activeVsExpired': distribution,
        'recentActivity': recent_activity(gym_id),
        'expiringSoon': [{
            'id': c.id,
            'fullName': c.full_name,
            'subscriptionEndDate': format_date(c.subscription_end_date),
        } for c in expiring],
    })


@dashboard_bp.route('/insights')
@gym_owner_required
def insights():
    """Revenue projection, churn risk and suggested follow-ups"""
    gym_id = current_gym_id()
    today = date.today()

    monthly_revenue = [revenue_between(gym_id, m, month_end(m)) for m in last_months(6, today)]
    projection = ai.project_next_month(monthly_revenue)

    last_paid = dict(db.session.query(
        Payment.client_id, db.func.max(Payment.payment_date)
    ).join(Client, Payment.client_id == Client.id).filter(
        Client.gym_id == gym_id
    ).group_by(Payment.client_id).all())

    active = Client.query.filter_by(gym_id=gym_id,
                                    subscription_status=SubscriptionStatus.ACTIVE).all()

    expiring = []
    at_risk = []
    unpaid = []
    for c in active:
        days = c.days_until_expiry
        pending = to_float(c.total_amount) - to_float(c.amount_paid) > 0
        paid_at = last_paid.get(c.id)
        paid_days_ago = (today - paid_at.date()).days if paid_at else None

        if days is not None and 0 <= days <= RENEWAL_WINDOW_DAYS:
            expiring.append(c)
        if pending:
            unpaid.append({'id': c.id, 'fullName': c.full_name})

        risk = ai.get_churn_risk_score(days, pending)
        if risk == ai.LOW:
            continue
        at_risk.append({
            'id': c.id,
            'fullName': c.full_name,
            'risk': risk,
            'riskPercent': ai.get_churn_risk_percent(days, pending, paid_days_ago),
            'reason': ai.get_churn_risk_reason(days, pending, paid_days_ago),
            'daysUntil': days,
            'totalAmount': to_float(c.total_amount),
        })

    at_risk.sort(key=lambda c: c['riskPercent'], reverse=True)
    high_risk = [c for c in at_risk if c['riskPercent'] >= 50]
    revenue_at_risk = sum(c['totalAmount'] for c in high_risk)

    # Every client inside the renewal window is counted as an expected renewal
    expected_renewals = len(expiring)
    renewal_rate = min(100, ai.round_half_up(expected_renewals / len(expiring) * 85)) if expiring else 0

    expired_count = Client.query.filter_by(gym_id=gym_id,
                                           subscription_status=SubscriptionStatus.EXPIRED).count()
    this_month = monthly_revenue[-1]
    last_month = monthly_revenue[-2]

    return jsonify({
        'monthlyRevenue': monthly_revenue,
        'projectedRevenue': round(projection.projected, 2),
        'growthPercent': round(projection.growth_percent, 1),
        'expectedRenewals': expected_renewals,
        'renewalRatePercent': renewal_rate,
        'churnRiskCount': len(at_risk),
        'churnRiskClients': at_risk,
        'revenueAtRisk': revenue_at_risk,
        'insights': ai.get_dashboard_insights(
            revenue_this_month=this_month,
            revenue_growth_percent=growth_percent(this_month, last_month),
            monthly_revenue=monthly_revenue,
            expired_clients=expired_count,
            pending_payments=pending_payments(gym_id),
            active_clients=len(active),
        ),
        'recommendedActions': ai.get_recommended_actions(high_risk, unpaid, len(expiring)),
        'revenueCommentary': ai.get_revenue_commentary(
            projection.projected, projection.growth_percent, revenue_at_risk, len(expiring)
        ),
        'benchmark': ai.get_benchmark_message(renewal_rate),
    })


# ============= Notifications =============

@dashboard_bp.route('/notifications')
@gym_owner_required
def notifications():
    """Recent notifications of this gym, newest first"""
    limit = request.args.get('limit', type=int)
    return jsonify({'notifications': get_bus().recent(current_gym_id(), limit=limit)})


@dashboard_bp.route('/notifications/dismiss', methods=['POST'])
@gym_owner_required
def dismiss_notifications():
    """Close one notification by id, or all of them"""
    data = request.get_json(silent=True) or {}
    notification_id = data.get('id') if isinstance(data, dict) else None
    count = get_bus().dismiss(notification_id=notification_id and str(notification_id),
                              gym_id=current_gym_id())
    return jsonify({'ok': True, 'dismissed': count})
