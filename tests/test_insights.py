import pytest

from fitdesk.utils import insights
from fitdesk.utils.insights import (
    linear_regression, project_next_month, get_churn_risk_score, get_churn_risk_percent,
    get_churn_risk_reason, get_recommended_actions, get_revenue_commentary,
    get_benchmark_message, get_dashboard_insights, format_inr, round_half_up
)


def test_regression_without_points():
    assert linear_regression([]) == (0.0, 0.0)


def test_regression_on_a_line():
    slope, intercept = linear_regression([(0, 1), (1, 3), (2, 5)])
    assert slope == pytest.approx(2)
    assert intercept == pytest.approx(1)


def test_regression_single_point_uses_floored_denominator():
    assert linear_regression([(0, 5)]) == (0.0, 5.0)


def test_projection_follows_trend():
    projected, growth = project_next_month([100, 200, 300])
    assert projected == pytest.approx(400)
    assert growth == pytest.approx(100 / 3)


def test_projection_is_never_negative():
    projected, _ = project_next_month([300, 200, 100, 0])
    assert projected == 0


def test_projection_growth_is_zero_when_last_month_is_zero():
    assert project_next_month([]) == (0.0, 0.0)
    assert project_next_month([0, 0])[1] == 0


@pytest.mark.parametrize('days, unpaid, expected', [
    (None, False, insights.LOW),
    (None, True, insights.MEDIUM),
    (0, False, insights.HIGH),
    (-5, False, insights.HIGH),
    (7, False, insights.HIGH),
    (8, False, insights.MEDIUM),
    (30, False, insights.MEDIUM),
    (31, False, insights.LOW),
    (31, True, insights.MEDIUM),
])
def test_churn_risk_score(days, unpaid, expected):
    assert get_churn_risk_score(days, unpaid) == expected


def test_churn_risk_percent_bounds():
    assert get_churn_risk_percent(0, True, 45) == 100
    assert get_churn_risk_percent(None, False, None) == 0
    assert get_churn_risk_percent(3, False, None) == 87
    assert 0 <= get_churn_risk_percent(400, False, None) <= 15


def test_churn_risk_reason():
    assert get_churn_risk_reason(None, False, None) == 'Low engagement'
    assert get_churn_risk_reason(1, True, 40) == 'Expires in 1 day · Payment overdue · No payment in 30+ days'
    assert get_churn_risk_reason(-2, False, None) == 'Subscription expired'


def test_recommended_actions():
    high_risk = [
        {'id': 1, 'fullName': 'Asha', 'riskPercent': 90},
        {'id': 2, 'fullName': 'Vikram', 'riskPercent': 60},
        {'id': 3, 'fullName': 'Neha', 'riskPercent': 40},
    ]
    unpaid = [{'id': 4, 'fullName': 'Kiran'}]

    actions = {a['id']: a for a in get_recommended_actions(high_risk, unpaid)}

    assert actions['send_reminder']['clientIds'] == [1, 2]
    assert actions['follow_up_payment']['sublabel'] == '1 client with pending dues'
    assert actions['offer_discount']['clientIds'] == [1]
    assert actions['offer_discount']['sublabel'] == '1 client (e.g. Asha)'


def test_no_actions_without_candidates():
    assert get_recommended_actions([], []) == []


def test_revenue_commentary():
    at_risk = get_revenue_commentary(5000, 0, 123456, 2)
    assert at_risk.startswith('Revenue likely to remain flat unless 2 pending renewals convert.')
    assert '₹1,23,456 at risk' in at_risk
    assert get_revenue_commentary(5000, 10, 0, 0).startswith('Revenue trend is positive')
    assert get_revenue_commentary(5000, -20, 0, 0).startswith('Revenue is declining')
    assert get_revenue_commentary(5000, 0, 0, 0).startswith('Revenue trend is stable')


@pytest.mark.parametrize('rate, start', [
    (95, "You're performing well above average"),
    (80, "You're performing above average"),
    (65, "There's room to improve"),
    (10, 'Renewal rate is low'),
])
def test_benchmark_message(rate, start):
    assert get_benchmark_message(rate).startswith(start)


def test_format_inr():
    assert format_inr(999) == '999'
    assert format_inr(1000) == '1,000'
    assert format_inr(1234567) == '12,34,567'


def test_dashboard_insights_revenue_drop_first():
    result = get_dashboard_insights(
        revenue_this_month=800, revenue_growth_percent=-20,
        monthly_revenue=[1000, 800], expired_clients=2,
        pending_payments=500, active_clients=10,
    )
    assert len(result) == 3
    assert result[0].startswith('Revenue dropped compared to the previous period.')
    assert result[1] == '2 subscriptions have expired. Send reminders to recover revenue.'
    assert result[2].startswith('You have pending payments.')


def test_dashboard_insights_growth_and_singular_expiry():
    result = get_dashboard_insights(
        revenue_this_month=1200, revenue_growth_percent=20,
        monthly_revenue=[1000, 1200], expired_clients=1,
        pending_payments=0, active_clients=3,
    )
    assert result == [
        'Revenue is up 20% vs last month. Keep up the momentum.',
        '1 subscription has expired. Send reminders to recover revenue.',
    ]


def test_dashboard_insights_fallback():
    result = get_dashboard_insights(
        revenue_this_month=0, revenue_growth_percent=0, monthly_revenue=[0],
        expired_clients=0, pending_payments=0, active_clients=1,
    )
    assert result == ['All looks good. Focus on retaining active members and attracting new ones.']
    assert get_dashboard_insights(0, 0, [], 0, 0, 0) == []


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(8.5) == 9
    assert round_half_up(-2.5) == -2
    assert round_half_up(12.25, 1) == 12.3


def test_halves_round_up_in_scores_and_text():
    assert get_churn_risk_percent(65, False, None) == 9
    assert format_inr(1234.5) == '1,235'

    result = get_dashboard_insights(
        revenue_this_month=1125, revenue_growth_percent=12.5,
        monthly_revenue=[1000, 1125], expired_clients=0,
        pending_payments=0, active_clients=1,
    )
    assert result == ['Revenue is up 13% vs last month. Keep up the momentum.']
