import logging
import math
from datetime import date, timedelta

from flask import Blueprint, request, jsonify
from flask_login import current_user

from fitdesk import db
from fitdesk.forms import GymOwnerForm, GymUpdateForm, ProfileForm, PlanForm, clean
from fitdesk.models.user import User, Role
from fitdesk.models.gym import Gym
from fitdesk.models.subscription import SubscriptionPlan
from fitdesk.utils.decorators import super_admin_required
from fitdesk.utils.errors import ValidationError, NotFoundError
from fitdesk.utils.export import export_format, export_response
from fitdesk.utils.helpers import (
    pagination_args, parse_date_param, day_bounds, month_start, month_end,
    last_months, format_date, to_float
)
from fitdesk.utils.insights import round_half_up
from fitdesk.utils.security import create_token, set_session_cookie

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


def _overlaps(gym, start, end):
    """Gym subscription covers part of [start, end]"""
    return (gym.subscription_start_date is not None
            and gym.subscription_end_date is not None
            and gym.subscription_start_date <= end
            and gym.subscription_end_date >= start)


def _count_created(start, end):
    start_dt, end_dt = day_bounds(start, end)
    return Gym.query.filter(Gym.created_at >= start_dt, Gym.created_at < end_dt).count()


# ============= Dashboard =============

@admin_bp.route('/dashboard')
@super_admin_required
def dashboard():
    """Platform KPIs and charts"""
    today = date.today()
    this_start, this_end = month_start(today), month_end(today)
    last_start = month_start(this_start - timedelta(days=1))
    last_end = this_start - timedelta(days=1)

    total_gyms = Gym.query.count()
    active_gyms = Gym.query.filter_by(is_active=True).all()
    expiring = [g for g in active_gyms
                if g.subscription_end_date
                and today <= g.subscription_end_date <= today + timedelta(days=30)]

    gyms_this_month = _count_created(this_start, this_end)
    gyms_last_month = _count_created(last_start, last_end)
    if gyms_last_month > 0:
        growth = (gyms_this_month - gyms_last_month) / gyms_last_month * 100
    else:
        growth = 100 if gyms_this_month > 0 else 0

    # Plans with the active gyms subscribed during this month
    plans = SubscriptionPlan.query.order_by(SubscriptionPlan.created_at).all()
    current_by_plan = {
        plan.id: [g for g in active_gyms
                  if g.subscription_plan_id == plan.id and _overlaps(g, this_start, this_end)]
        for plan in plans
    }
    mrr = sum(to_float(plan.price) * len(current_by_plan[plan.id]) for plan in plans)

    revenue_over_time = []
    gym_growth = []
    for month in last_months(12, today):
        start, end = month, month_end(month)
        revenue = sum(to_float(g.subscription_plan.price) for g in active_gyms
                      if g.subscription_plan and _overlaps(g, start, end))
        revenue_over_time.append({'month': month.strftime('%b %y'), 'revenue': revenue})
        gym_growth.append({'month': month.strftime('%b'), 'gyms': _count_created(start, end)})

    lifetime_revenue = 0.0
    for g in active_gyms:
        if not g.subscription_plan or not g.subscription_start_date or not g.subscription_end_date:
            continue
        months = max(0.0, (g.subscription_end_date - g.subscription_start_date).days / 30)
        lifetime_revenue += to_float(g.subscription_plan.price) * math.ceil(months)

    activities = []
    for g in Gym.query.order_by(Gym.created_at.desc()).limit(5):
        activities.append({
            'type': 'gym_registered',
            'label': f'{g.owner.name} registered {g.name}',
            'time': g.created_at.isoformat(),
            'color': 'emerald',
        })
    for p in SubscriptionPlan.query.order_by(SubscriptionPlan.created_at.desc()).limit(3):
        activities.append({
            'type': 'plan_created',
            'label': f'Plan "{p.name}" created',
            'time': p.created_at.isoformat(),
            'color': 'blue',
        })
    activities.sort(key=lambda a: a['time'], reverse=True)

    return jsonify({
        'kpis': {
            'totalGymOwners': total_gyms,
            'activeGyms': len(active_gyms),
            'mrr': mrr,
            'expiringIn30Days': len(expiring),
            'growthPercent': round_half_up(growth, 1),
        },
        'revenueOverTime': revenue_over_time,
        'gymGrowth': gym_growth,
        'subscriptionDistribution': [
            {'name': plan.name, 'value': len(current_by_plan[plan.id])} for plan in plans
        ],
        'lifetimeRevenue': lifetime_revenue,
        'recentActivity': activities[:10],
    })


# ============= Gym owners =============

@admin_bp.route('/gym-owners')
@super_admin_required
def gym_owners():
    """List gyms with their owners"""
    page, per_page = pagination_args(request)
    search = request.args.get('search', '').strip()
    status = request.args.get('status', '')
    plan_id = request.args.get('planId', type=int)

    query = Gym.query.join(User, Gym.owner_id == User.id)

    if search:
        query = query.filter(
            db.or_(
                Gym.name.ilike(f'%{search}%'),
                User.name.ilike(f'%{search}%'),
                User.email.ilike(f'%{search}%')
            )
        )

    if status == 'active':
        query = query.filter(Gym.is_active.is_(True))
    elif status == 'inactive':
        query = query.filter(Gym.is_active.is_(False))

    if plan_id:
        query = query.filter(Gym.subscription_plan_id == plan_id)

    gyms = query.order_by(Gym.created_at.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )

    items = []
    for g in gyms.items:
        plan = g.subscription_plan
        items.append({
            'id': g.id,
            'name': g.name,
            'ownerId': g.owner.id,
            'ownerName': g.owner.name,
            'ownerEmail': g.owner.email,
            'ownerPhone': g.owner.phone,
            'planName': plan.name if plan else None,
            'planId': g.subscription_plan_id,
            'planPrice': to_float(plan.price) if plan else None,
            'subscriptionStartDate': format_date(g.subscription_start_date),
            'subscriptionEndDate': format_date(g.subscription_end_date),
            'isActive': g.is_active,
        })

    return jsonify({
        'items': items,
        'total': gyms.total,
        'page': page,
        'limit': per_page,
        'totalPages': math.ceil(gyms.total / per_page),
    })


@admin_bp.route('/gym-owners', methods=['POST'])
@super_admin_required
def create_gym_owner():
    """Create a gym owner together with their gym"""
    form = GymOwnerForm.from_json().validate_or_raise()

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        raise ValidationError('A user with this email already exists')

    plan = None
    if form.subscriptionPlanId.data:
        plan = db.session.get(SubscriptionPlan, form.subscriptionPlanId.data)
        if plan is None:
            raise ValidationError('Subscription plan not found')

    user = User(
        name=form.name.data.strip(),
        email=email,
        phone=clean(form.phone.data),
        role=Role.GYM_OWNER
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.flush()

    gym = Gym(name=form.gymName.data.strip(), owner_id=user.id, is_active=True)
    if plan:
        duration = form.durationDays.data or 30
        gym.subscription_plan_id = plan.id
        gym.subscription_start_date = date.today()
        gym.subscription_end_date = date.today() + timedelta(days=duration)
    db.session.add(gym)
    db.session.commit()

    logger.info('Created gym %s for owner %s', gym.id, user.email)

    return jsonify({
        'id': gym.id,
        'name': gym.name,
        'ownerId': user.id,
        'ownerName': user.name,
        'ownerEmail': user.email,
    }), 201


@admin_bp.route('/gyms/<int:gym_id>', methods=['PATCH'])
@super_admin_required
def update_gym(gym_id):
    """Update gym status, plan, dates or owner details"""
    form = GymUpdateForm.from_json().validate_or_raise()

    gym = db.session.get(Gym, gym_id)
    if gym is None:
        raise NotFoundError('Gym not found')

    if not form.provided_fields():
        raise ValidationError(
            'Provide at least one of: isActive, subscriptionPlanId, subscriptionStartDate, '
            'subscriptionEndDate, name, ownerName, ownerEmail, ownerPhone'
        )

    if form.provided('isActive'):
        gym.is_active = form.isActive.data

    if form.provided('subscriptionPlanId'):
        plan_id = form.subscriptionPlanId.data
        if plan_id and db.session.get(SubscriptionPlan, plan_id) is None:
            raise ValidationError('Subscription plan not found')
        gym.subscription_plan_id = plan_id or None

    if form.provided('subscriptionStartDate'):
        gym.subscription_start_date = form.subscriptionStartDate.data
    if form.provided('subscriptionEndDate'):
        gym.subscription_end_date = form.subscriptionEndDate.data

    if form.provided('name'):
        name = clean(form.name.data)
        if not name:
            raise ValidationError('Gym name cannot be empty')
        gym.name = name

    owner = gym.owner
    if form.provided('ownerName'):
        owner_name = clean(form.ownerName.data)
        if not owner_name:
            raise ValidationError('Owner name cannot be empty')
        owner.name = owner_name

    if form.provided('ownerEmail'):
        owner_email = (clean(form.ownerEmail.data) or '').lower()
        if not owner_email:
            raise ValidationError('Owner email cannot be empty')
        taken = User.query.filter(User.email == owner_email, User.id != owner.id).first()
        if taken:
            raise ValidationError('Another account already uses this email')
        owner.email = owner_email

    if form.provided('ownerPhone'):
        owner.phone = clean(form.ownerPhone.data)

    db.session.commit()
    logger.info('Updated gym %s', gym.id)

    return jsonify({'ok': True, 'gym': gym.to_dict()})


# ============= Profile =============

@admin_bp.route('/profile', methods=['PATCH'])
@super_admin_required
def update_profile():
    """Update the super admin's own name, email or password"""
    form = ProfileForm.from_json().validate_or_raise()
    user = current_user
    changed = False

    if form.provided('name'):
        name = clean(form.name.data)
        if not name:
            raise ValidationError('Name cannot be empty')
        user.name = name
        changed = True

    if form.provided('email'):
        email = (clean(form.email.data) or '').lower()
        if not email:
            raise ValidationError('Email cannot be empty')
        if User.query.filter(User.email == email, User.id != user.id).first():
            raise ValidationError('Another account already uses this email')
        user.email = email
        changed = True

    if form.newPassword.data:
        if not form.currentPassword.data:
            raise ValidationError('Current password is required to set a new password')
        if not user.check_password(form.currentPassword.data):
            raise ValidationError('Current password is incorrect')
        user.set_password(form.newPassword.data)
        changed = True

    if not changed:
        raise ValidationError('No updates provided')

    db.session.commit()
    logger.info('Super admin %s updated profile', user.id)

    # Claims carry the email, so the session token is reissued
    response = jsonify({'ok': True})
    return set_session_cookie(response, create_token(user.token_claims()))


# ============= Subscription plans =============

@admin_bp.route('/subscription-plans')
@super_admin_required
def subscription_plans():
    """List plans with the number of gyms on each"""
    plans = SubscriptionPlan.query.order_by(SubscriptionPlan.price).all()
    return jsonify({'plans': [plan.to_dict() for plan in plans]})


@admin_bp.route('/subscription-plans', methods=['POST'])
@super_admin_required
def create_subscription_plan():
    """Create a subscription plan"""
    form = PlanForm.from_json().validate_or_raise()

    plan = SubscriptionPlan(
        name=form.name.data.strip(),
        price=form.price.data,
        duration_in_days=form.durationInDays.data,
        features=form.feature_list()
    )
    db.session.add(plan)
    db.session.commit()

    logger.info('Created subscription plan %s', plan.name)

    return jsonify(plan.to_dict(gym_count=0)), 201


# ============= Reports =============

def _report_range():
    return parse_date_param(request.args.get('start')), parse_date_param(request.args.get('end'))


@admin_bp.route('/reports/gyms')
@super_admin_required
def report_gyms():
    """Export gyms registered in a period"""
    fmt = export_format(request.args.get('export'), required=True)
    start, end = _report_range()

    query = Gym.query
    start_dt, end_dt = day_bounds(start, end)
    if start_dt:
        query = query.filter(Gym.created_at >= start_dt)
    if end_dt:
        query = query.filter(Gym.created_at < end_dt)

    headers = ['#', 'Gym', 'Owner', 'Owner Email', 'Created At', 'Client Count', 'Active']
    data = []
    for i, g in enumerate(query.order_by(Gym.created_at).all(), 1):
        data.append({
            '#': i,
            'Gym': g.name,
            'Owner': g.owner.name,
            'Owner Email': g.owner.email,
            'Created At': format_date(g.created_at),
            'Client Count': g.clients.count(),
            'Active': 'Yes' if g.is_active else 'No',
        })

    return export_response(data, headers, fmt, 'admin_gyms', start, end, title='Gyms')


@admin_bp.route('/reports/subscriptions')
@super_admin_required
def report_subscriptions():
    """Export gym subscriptions"""
    fmt = export_format(request.args.get('export'), required=True)
    start, end = _report_range()

    query = Gym.query
    if start:
        query = query.filter(Gym.subscription_start_date >= start)
    if end:
        query = query.filter(Gym.subscription_end_date <= end)

    headers = ['Gym', 'Owner', 'Owner Email', 'Plan', 'Plan Price', 'Start Date', 'End Date', 'Active']
    data = []
    for g in query.order_by(Gym.created_at).all():
        plan = g.subscription_plan
        data.append({
            'Gym': g.name,
            'Owner': g.owner.name,
            'Owner Email': g.owner.email,
            'Plan': plan.name if plan else '',
            'Plan Price': to_float(plan.price) if plan else '',
            'Start Date': format_date(g.subscription_start_date) or '',
            'End Date': format_date(g.subscription_end_date) or '',
            'Active': 'Yes' if g.is_active else 'No',
        })

    return export_response(data, headers, fmt, 'admin_subscriptions', start, end,
                           title='Subscriptions')
