"""
Derived metrics for the gym dashboard: revenue projection, churn risk
and the short insight texts shown to gym owners.
"""

import math
from collections import namedtuple

Regression = namedtuple('Regression', ['slope', 'intercept'])
Projection = namedtuple('Projection', ['projected', 'growth_percent'])

LOW = 'low'
MEDIUM = 'medium'
HIGH = 'high'

AVERAGE_RENEWAL_RATE = 78


def _plural(count, singular='', plural='s'):
    return singular if count == 1 else plural


def round_half_up(value, digits=0):
    """Round with halves going up, 2.5 -> 3 and -2.5 -> -2"""
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5)
    return int(rounded) if digits == 0 else rounded / factor


def format_inr(amount):
    """Format a rupee amount with Indian digit grouping (12,34,567)"""
    amount = float(amount or 0)
    sign = '-' if amount < 0 else ''
    digits = str(round_half_up(abs(amount)))
    if len(digits) <= 3:
        return f'{sign}{digits}'
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return f"{sign}{','.join(groups)},{tail}"


def linear_regression(points):
    """
    Least squares fit y = slope * x + intercept.

    Args:
        points: iterable of (x, y) pairs

    Returns:
        Regression(slope, intercept); (0, 0) for no points
    """
    points = list(points)
    n = len(points)
    if n == 0:
        return Regression(0.0, 0.0)

    sum_x = sum(x for x, _ in points)
    sum_y = sum(y for _, y in points)
    sum_xy = sum(x * y for x, y in points)
    sum_x2 = sum(x * x for x, _ in points)

    denominator = n * sum_x2 - sum_x * sum_x or 1
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return Regression(slope, intercept)


def project_next_month(monthly_values):
    """
    Project the value following a monthly series.

    The projection is never negative. Growth is measured against the
    last observed month and is 0 when that month is 0 or missing.
    """
    values = [float(v or 0) for v in monthly_values]
    slope, intercept = linear_regression(enumerate(values))
    projected = max(0.0, slope * len(values) + intercept)

    last = values[-1] if values else 0
    growth = (projected - last) / last * 100 if last > 0 else 0.0
    return Projection(projected, growth)


def get_churn_risk_score(days_until_expiry, has_unpaid_balance):
    """Bucket churn risk into low / medium / high"""
    if days_until_expiry is None and not has_unpaid_balance:
        return LOW
    if days_until_expiry is not None and days_until_expiry <= 7:
        return HIGH
    if days_until_expiry is not None and days_until_expiry <= 30:
        return MEDIUM
    if has_unpaid_balance:
        return MEDIUM
    return LOW


def get_churn_risk_percent(days_until_expiry, has_unpaid_balance, last_payment_days_ago):
    """Churn risk as a 0-100 score"""
    score = 0.0
    if days_until_expiry is not None:
        if days_until_expiry <= 0:
            score = 95
        elif days_until_expiry <= 7:
            score = 75 + (7 - days_until_expiry) * 3
        elif days_until_expiry <= 30:
            score = 40 + (30 - days_until_expiry) * 1.2
        elif days_until_expiry <= 60:
            score = 20 + (60 - days_until_expiry) * 0.4
        else:
            score = max(0, 15 - days_until_expiry * 0.1)

    if has_unpaid_balance:
        score = min(100, score + 25)
    if last_payment_days_ago is not None and last_payment_days_ago > 30:
        score = min(100, score + 15)

    return round_half_up(max(0, min(100, score)))


def get_churn_risk_reason(days_until_expiry, has_unpaid_balance, last_payment_days_ago):
    parts = []
    if days_until_expiry is not None:
        if days_until_expiry <= 0:
            parts.append('Subscription expired')
        elif days_until_expiry <= 7:
            parts.append(f'Expires in {days_until_expiry} day{_plural(days_until_expiry)}')
        elif days_until_expiry <= 30:
            parts.append(f'Expiring in {days_until_expiry} days')
    if has_unpaid_balance:
        parts.append('Payment overdue')
    if last_payment_days_ago is not None and last_payment_days_ago > 30:
        parts.append('No payment in 30+ days')

    if not parts:
        return 'Low engagement'
    return ' · '.join(parts)


def _preview(clients, with_risk=True):
    preview = []
    for c in clients[:3]:
        item = {'id': c['id'], 'name': c['fullName']}
        if with_risk:
            item['meta'] = f"{c['riskPercent']}% risk"
        preview.append(item)
    return preview


def get_recommended_actions(high_risk_clients, unpaid_clients, expiring_soon_count=0):
    """
    Build follow-up actions for the owner.

    Args:
        high_risk_clients: dicts with id, fullName, riskPercent
        unpaid_clients: dicts with id, fullName
        expiring_soon_count: reserved, not used in the current rules

    Returns:
        list of action dicts (id, label, count, type, clientIds,
        sublabel, clientsPreview)
    """
    actions = []

    reminder = [c for c in high_risk_clients if c['riskPercent'] >= 50][:10]
    if reminder:
        actions.append({
            'id': 'send_reminder',
            'label': 'Send renewal reminder',
            'count': len(reminder),
            'type': 'send_reminder',
            'clientIds': [c['id'] for c in reminder],
            'sublabel': f'{len(reminder)} high-risk client{_plural(len(reminder))}',
            'clientsPreview': _preview(reminder),
        })

    if unpaid_clients:
        count = len(unpaid_clients)
        actions.append({
            'id': 'follow_up_payment',
            'label': 'Follow up on unpaid subscriptions',
            'count': count,
            'type': 'follow_up_payment',
            'clientIds': [c['id'] for c in unpaid_clients],
            'sublabel': f'{count} client{_plural(count)} with pending dues',
            'clientsPreview': _preview(unpaid_clients, with_risk=False),
        })

    discount = [c for c in high_risk_clients if c['riskPercent'] >= 70][:5]
    if discount:
        actions.append({
            'id': 'offer_discount',
            'label': 'Offer discount to high churn risk',
            'count': len(discount),
            'type': 'offer_discount',
            'clientIds': [c['id'] for c in discount],
            'sublabel': f"{len(discount)} client{_plural(len(discount))} (e.g. {discount[0]['fullName']})",
            'clientsPreview': _preview(discount),
        })

    return actions


def get_revenue_commentary(projected_revenue, growth_percent, revenue_at_risk, pending_renewals_count):
    if revenue_at_risk > 0 and pending_renewals_count > 0:
        return (
            f'Revenue likely to remain flat unless {pending_renewals_count} pending '
            f'renewal{_plural(pending_renewals_count)} convert. '
            f'₹{format_inr(revenue_at_risk)} at risk if they churn.'
        )
    if growth_percent > 5:
        return 'Revenue trend is positive. Keep focusing on retention and new sign-ups.'
    if growth_percent < -10:
        return 'Revenue is declining. Consider follow-ups and offers to recover at-risk clients.'
    return 'Revenue trend is stable. Focus on converting expiring clients to retain growth.'


def get_benchmark_message(renewal_rate_percent):
    if renewal_rate_percent >= 90:
        return "You're performing well above average. Keep it up."
    if renewal_rate_percent >= AVERAGE_RENEWAL_RATE:
        return "You're performing above average."
    if renewal_rate_percent >= 60:
        return "There's room to improve. Focus on renewal follow-ups."
    return 'Renewal rate is low. Prioritise reminders and offers for expiring clients.'


def get_dashboard_insights(revenue_this_month, revenue_growth_percent, monthly_revenue,
                           expired_clients, pending_payments, active_clients):
    """
    Up to three short insight sentences for the dashboard.

    Revenue trend comes first (drop of more than 15%, then growth, then
    stable), followed by expired subscriptions and pending payments.
    """
    insights = []

    if len(monthly_revenue) >= 2:
        last = float(monthly_revenue[-1] or 0)
        prev = float(monthly_revenue[-2] or 0)
        if prev > 0 and last < prev * 0.85:
            insights.append('Revenue dropped compared to the previous period. '
                            'Consider promotions or follow-ups to boost collections.')
        elif revenue_growth_percent > 0:
            insights.append(f'Revenue is up {round_half_up(revenue_growth_percent)}% vs last month. '
                            'Keep up the momentum.')
        elif last > 0:
            insights.append('Revenue trend is stable. Focus on retention and renewals to grow.')

    if expired_clients > 0:
        verb = ' has' if expired_clients == 1 else 's have'
        insights.append(f'{expired_clients} subscription{verb} expired. '
                        'Send reminders to recover revenue.')

    if pending_payments > 0:
        insights.append('You have pending payments. Following up with clients can improve cash flow.')

    if not insights and active_clients > 0:
        insights.append('All looks good. Focus on retaining active members and attracting new ones.')

    return insights[:3]
