# practice_analytics_root/tests/test_reports.py
# REPORT ASSEMBLY TESTS - PRACTICE REPORT & SUBSCRIPTION ANALYTICS

from datetime import date

import pytest

import analytics.report as report_module
from analytics import (
    PracticeReportBuilder,
    ReportResult,
    SubscriptionAnalyticsResult,
    build_practice_report,
    build_subscription_analytics,
)
from data_processing import DateRange

# Fixtures are sourced from conftest.py


@pytest.fixture(scope="module")
def practice_report(patient_records, appointment_records, prescription_records, payment_records, june_range) -> ReportResult:
    return build_practice_report(patient_records, appointment_records, prescription_records, payment_records, june_range)


@pytest.fixture(scope="module")
def subscription_report(organization_records, subscription_records, june_range, fixed_now) -> SubscriptionAnalyticsResult:
    return build_subscription_analytics(organization_records, subscription_records, june_range, fixed_now)


# --- Practice Report Tests ---
def test_practice_report_headline_figures(practice_report):
    assert not practice_report.is_degraded
    assert practice_report.total_patients == 5
    assert practice_report.new_patients_in_range == 3
    assert practice_report.total_appointments == 6
    assert practice_report.appointments_in_range == 4
    assert practice_report.total_revenue == pytest.approx(300.0)
    assert practice_report.total_prescriptions == 5
    assert practice_report.prescriptions_in_range == 3
    assert practice_report.top_medications[0].category == 'Amoxicillin'


def test_practice_report_revenue_by_type(practice_report):
    by_type = {r.type: r.revenue for r in practice_report.revenue_by_type}
    assert by_type == {'Consultation': pytest.approx(100.0), 'card': pytest.approx(200.0)}


def test_practice_report_trends(practice_report):
    daily = practice_report.daily_appointments
    assert len(daily) == 15
    assert sum(p.value for p in daily) == practice_report.appointments_in_range
    assert [daily[0].value, daily[2].value, daily[14].value] == [2, 1, 1]

    weekly = practice_report.weekly_revenue
    assert [p.label for p in weekly] == ['Jun 01 - Jun 07', 'Jun 08 - Jun 14', 'Jun 15 - Jun 15']
    assert [p.value for p in weekly] == [pytest.approx(100.0), pytest.approx(200.0), 0.0]


def test_daily_points_match_range_length(appointment_records):
    ten_days = DateRange(start=date(2024, 6, 1), end=date(2024, 6, 10))
    result = build_practice_report(appointments=appointment_records, patients=[], prescriptions=[], payments=[], date_range=ten_days)
    assert len(result.daily_appointments) == 10
    assert sum(p.value for p in result.daily_appointments) == result.appointments_in_range == 3
    assert len(result.weekly_revenue) == 2


def test_long_range_caps_trend_buckets(appointment_records):
    quarter = DateRange(start=date(2024, 3, 1), end=date(2024, 6, 15))
    result = build_practice_report([], appointment_records, [], [], quarter)
    assert len(result.daily_appointments) == 30
    assert len(result.weekly_revenue) == 8


def test_missing_sources_degrade_gracefully(appointment_records, june_range):
    result = build_practice_report(patients=None, appointments=appointment_records, prescriptions=[], payments=None, date_range=june_range)
    assert result.is_degraded
    assert result.missing_sources == ('patients', 'payments')
    assert result.errors == ()
    assert result.total_patients == 0
    assert result.appointments_in_range == 4
    assert result.total_revenue == 0.0
    assert [p.value for p in result.weekly_revenue] == [0.0, 0.0, 0.0]


def test_failing_stage_is_recorded_and_isolated(monkeypatch, payment_records, appointment_records, june_range):
    def _broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(report_module, 'aggregate_revenue', _broken)
    result = PracticeReportBuilder(patients=[], appointments=appointment_records, prescriptions=[], payments=payment_records, date_range=june_range).build()
    assert result.errors == ('Revenue statistics could not be computed.',)
    assert result.total_revenue == 0.0
    assert result.appointments_in_range == 4


def test_inverted_range_yields_empty_sets(appointment_records, payment_records):
    inverted = DateRange(start=date(2024, 6, 15), end=date(2024, 6, 1))
    result = build_practice_report([], appointment_records, [], payment_records, inverted)
    assert result.appointments_in_range == 0
    assert result.revenue_in_range == 0.0
    assert result.daily_appointments == ()
    assert result.weekly_revenue == ()
    assert result.total_revenue == pytest.approx(300.0)


def test_report_to_dict_is_plain_data(practice_report):
    data = practice_report.to_dict()
    assert data['date_range'] == {'start': date(2024, 6, 1), 'end': date(2024, 6, 15)}
    assert data['appointments_by_type'][0] == {'category': 'Checkup', 'count': 2, 'percentage': 50.0}
    assert data['daily_appointments'][0]['label'] == 'Jun 01'


# --- Subscription Analytics Tests ---
def test_subscription_analytics_subscriber_metrics(subscription_report):
    assert not subscription_report.is_degraded
    assert subscription_report.total_subscribers == 6
    assert subscription_report.new_subscribers == 2
    assert subscription_report.subscriber_growth_pct == pytest.approx(50.0)
    assert subscription_report.churn_pct == pytest.approx(100 / 6)
    assert subscription_report.active_organizations == 5
    assert subscription_report.active_share_pct == pytest.approx(500 / 6)


def test_subscription_analytics_status_breakdowns(subscription_report):
    classified = {c.category: c.count for c in subscription_report.classified_status}
    assert classified == {
        'Active': 1, 'Trial': 1, 'ExpiringSoon': 1, 'Expired': 0,
        'Cancelled': 1, 'Deactivated': 1, 'Unlimited': 1,
    }
    lifecycle = {c.category: c.count for c in subscription_report.subscription_lifecycle}
    assert lifecycle == {'active': 2, 'trial': 1, 'expired': 1, 'cancelled': 1, 'expiring_soon': 1}


def test_subscription_analytics_revenue_and_conversion(subscription_report):
    assert subscription_report.total_revenue == pytest.approx(220.0)
    assert subscription_report.monthly_revenue == pytest.approx(180.0)
    assert subscription_report.annual_recurring_revenue == pytest.approx(2160.0)
    assert subscription_report.trial_value == pytest.approx(50.0)
    assert subscription_report.total_trials == 1
    assert subscription_report.converted_trials == 1
    assert subscription_report.conversion_rate_pct == pytest.approx(50.0)
    plans = {c.category: c.count for c in subscription_report.plan_distribution}
    assert plans == {'basic': 2, 'professional': 1, 'enterprise': 1}


def test_subscription_analytics_without_subscriptions(organization_records, june_range, fixed_now):
    result = build_subscription_analytics(organization_records, None, june_range, fixed_now)
    assert result.missing_sources == ('subscriptions',)
    classified = {c.category: c.count for c in result.classified_status}
    assert classified['Trial'] == 4
    assert classified['Deactivated'] == 1
    assert result.churn_pct == 0.0
    assert result.annual_recurring_revenue == 0.0


def test_subscription_analytics_default_range_follows_now(fixed_now):
    result = build_subscription_analytics([], [], now=fixed_now)
    assert result.date_range.end == fixed_now.date()
    assert result.total_subscribers == 0
    assert result.subscriber_growth_pct == 0.0


def test_subscription_analytics_average_revenue_per_user(subscription_report, fixed_now):
    assert subscription_report.average_revenue_per_user == pytest.approx(30.0)
    assert build_subscription_analytics([], [], now=fixed_now).average_revenue_per_user == 0.0


def test_plan_percentages_are_relative_to_all_subscribers(subscription_report):
    plans = {c.category: c.percentage for c in subscription_report.plan_distribution}
    assert plans['basic'] == pytest.approx(200 / 6)
    assert plans['professional'] == pytest.approx(100 / 6)


def test_numeric_subscription_references_classify_correctly(june_range, fixed_now):
    organizations = [{'_id': 'o1', 'isActive': True, 'subscription': 10}]
    subscriptions = [{'_id': 10, 'status': 'cancelled'}, {'status': 'active'}]
    result = build_subscription_analytics(organizations, subscriptions, june_range, fixed_now)
    classified = {c.category: c.count for c in result.classified_status}
    assert classified['Cancelled'] == 1
    assert classified['Trial'] == 0


# --- Month-over-Month Tests ---
def test_practice_report_month_over_month(patient_records, appointment_records, prescription_records, payment_records, june_range, fixed_now):
    result = build_practice_report(patient_records, appointment_records, prescription_records, payment_records, june_range, now=fixed_now)
    mom = result.month_over_month
    assert (mom['visits'].current, mom['visits'].previous, mom['visits'].change_pct) == (4, 1, 300)
    assert mom['revenue'].current == pytest.approx(300.0)
    assert mom['revenue'].change_pct == 0
    assert (mom['prescriptions'].current, mom['prescriptions'].previous) == (1, 0)
    assert mom['referrals'].current == 0
    assert result.to_dict()['month_over_month']['visits'] == {'current': 4, 'previous': 1, 'change_pct': 300}


def test_failing_month_over_month_stage_leaves_other_figures(monkeypatch, appointment_records, june_range, fixed_now):
    def _broken(*args, **kwargs):
        raise ValueError("bad month")

    monkeypatch.setattr(report_module, 'practice_month_over_month', _broken)
    result = build_practice_report([], appointment_records, [], [], june_range, now=fixed_now)
    assert result.errors == ('Month-over-month metrics could not be computed.',)
    assert result.month_over_month == {}
    assert result.appointments_in_range == 4
