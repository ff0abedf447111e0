# practice_analytics_root/analytics/report.py
# REPORT ASSEMBLY PIPELINES

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from config import FormattingConfig, settings
from data_processing import (DateRange, bucketize, daily_buckets, in_range_mask,
                             records_to_frame, reference_now,
                             resolve_record_dates, safe_percentage, safe_ratio,
                             weekly_buckets)
from .aggregators import (aggregate_appointments, aggregate_patients,
                          aggregate_prescriptions, aggregate_revenue,
                          plan_distribution, realized_amounts)
from .growth import (calculate_conversion_metrics, calculate_revenue_metrics,
                     churn_pct, practice_month_over_month,
                     subscriber_growth_pct)
from .models import CategoryCount, ReportResult, SubscriptionAnalyticsResult
from .subscription_status import (ClassifiedStatus, SubscriptionIndex,
                                  classify_organization, snapshots_frame,
                                  snapshots_from_records,
                                  summarize_subscription_lifecycle)

logger = logging.getLogger(__name__)

Records = Optional[Union[Iterable[Mapping], pd.DataFrame]]


# Results substituted for a stage that raised.
_EMPTY_PATIENTS = {'total': 0, 'new_in_range': 0, 'by_age': [], 'by_gender': []}
_EMPTY_APPOINTMENTS = {'total': 0, 'in_range': 0, 'in_range_df': pd.DataFrame(), 'by_type': [], 'by_status': []}
_EMPTY_REVENUE = {'total': 0.0, 'in_range': 0.0, 'in_range_df': pd.DataFrame(), 'by_type': []}
_EMPTY_PRESCRIPTIONS = {'total': 0, 'in_range': 0, 'top_medications': []}
_EMPTY_SUBSCRIPTION_REVENUE = {'total': 0.0, 'monthly': 0.0, 'arr': 0.0, 'trial_value': 0.0, 'growth_pct': 0.0}
_EMPTY_CONVERSION = {'total_trials': 0, 'converted': 0, 'rate_pct': 0.0}


class _ReportPipeline:
    """
    Shared plumbing: frames every source once, substituting an empty frame for
    any source that could not be fetched, and runs each stage so that one
    failing section leaves the rest of the report intact.
    """
    def __init__(self, sources: Dict[str, Records], source_context: str):
        self.source_context = source_context
        self.missing_sources: List[str] = []
        self.errors: List[str] = []
        self.frames: Dict[str, pd.DataFrame] = {}
        for name, records in sources.items():
            if records is None:
                logger.warning(f"({source_context}) Source '{name}' is unavailable; continuing with an empty collection.")
                self.missing_sources.append(name)
            self.frames[name] = records_to_frame(records)

    def _run_stage(self, name: str, stage: Callable[[], Any], fallback: Any) -> Any:
        try:
            return stage()
        except Exception as e:
            msg = f"{name} could not be computed."
            self.errors.append(msg)
            logger.error(f"({self.source_context}) {msg}: {e}", exc_info=True)
            return fallback


class PracticeReportBuilder(_ReportPipeline):
    """Builds the practice `ReportResult` for one date range."""
    def __init__(
        self,
        patients: Records = None,
        appointments: Records = None,
        prescriptions: Records = None,
        payments: Records = None,
        date_range: Optional[DateRange] = None,
        formatting: Optional[FormattingConfig] = None,
        now: Any = None,
        source_context: str = "PracticeReport"
    ):
        super().__init__(
            {'patients': patients, 'appointments': appointments, 'prescriptions': prescriptions, 'payments': payments},
            source_context,
        )
        self.now = reference_now(now)
        self.date_range = date_range or DateRange.default(self.now.date())
        self.formatting = formatting or settings.FORMATTING

    def _daily_appointments(self, in_range_df: pd.DataFrame) -> List:
        days = resolve_record_dates(in_range_df, settings.DATE_FIELD_CANDIDATES['appointments']) if not in_range_df.empty else pd.Series(dtype='datetime64[ns]')
        return bucketize(daily_buckets(self.date_range, self.formatting), days)

    def _weekly_revenue(self, in_range_df: pd.DataFrame) -> List:
        if in_range_df.empty:
            return bucketize(weekly_buckets(self.date_range, self.formatting), pd.Series(dtype='datetime64[ns]'), pd.Series(dtype=float))
        days = resolve_record_dates(in_range_df, settings.DATE_FIELD_CANDIDATES['payments'])
        return bucketize(weekly_buckets(self.date_range, self.formatting), days, realized_amounts(in_range_df))

    def build(self) -> ReportResult:
        logger.info(f"({self.source_context}) Building practice report for {self.date_range.start} to {self.date_range.end}.")
        dr = self.date_range

        patients = self._run_stage("Patient statistics", lambda: aggregate_patients(self.frames['patients'], dr), _EMPTY_PATIENTS)
        appointments = self._run_stage("Appointment statistics", lambda: aggregate_appointments(self.frames['appointments'], dr), _EMPTY_APPOINTMENTS)
        revenue = self._run_stage("Revenue statistics", lambda: aggregate_revenue(self.frames['payments'], dr), _EMPTY_REVENUE)
        prescriptions = self._run_stage("Prescription statistics", lambda: aggregate_prescriptions(self.frames['prescriptions'], dr), _EMPTY_PRESCRIPTIONS)

        daily = self._run_stage("Daily appointment trend", lambda: self._daily_appointments(appointments['in_range_df']), [])
        weekly = self._run_stage("Weekly revenue trend", lambda: self._weekly_revenue(revenue['in_range_df']), [])
        month_over_month = self._run_stage(
            "Month-over-month metrics",
            lambda: practice_month_over_month(self.frames['appointments'], self.frames['payments'], self.frames['prescriptions'], self.now),
            {},
        )

        result = ReportResult(
            date_range=dr,
            formatting=self.formatting,
            total_patients=patients['total'],
            new_patients_in_range=patients['new_in_range'],
            patients_by_age=tuple(patients['by_age']),
            patients_by_gender=tuple(patients['by_gender']),
            total_appointments=appointments['total'],
            appointments_in_range=appointments['in_range'],
            appointments_by_type=tuple(appointments['by_type']),
            appointments_by_status=tuple(appointments['by_status']),
            total_revenue=revenue['total'],
            revenue_in_range=revenue['in_range'],
            revenue_by_type=tuple(revenue['by_type']),
            total_prescriptions=prescriptions['total'],
            prescriptions_in_range=prescriptions['in_range'],
            top_medications=tuple(prescriptions['top_medications']),
            daily_appointments=tuple(daily),
            weekly_revenue=tuple(weekly),
            month_over_month=month_over_month,
            missing_sources=tuple(self.missing_sources),
            errors=tuple(self.errors),
        )
        logger.info(f"({self.source_context}) Practice report complete. Degraded: {result.is_degraded}")
        return result


class SubscriptionAnalyticsBuilder(_ReportPipeline):
    """Builds the super-admin `SubscriptionAnalyticsResult`."""
    def __init__(
        self,
        organizations: Records = None,
        subscriptions: Records = None,
        date_range: Optional[DateRange] = None,
        now: Any = None,
        formatting: Optional[FormattingConfig] = None,
        source_context: str = "SubscriptionAnalytics"
    ):
        super().__init__({'organizations': organizations, 'subscriptions': subscriptions}, source_context)
        self.now = reference_now(now)
        self.date_range = date_range or DateRange.default(self.now.date())
        self.formatting = formatting or settings.FORMATTING
        self.snapshots = snapshots_from_records(self.frames['subscriptions'].to_dict('records'))

    def _subscriber_metrics(self) -> Dict[str, Any]:
        orgs = self.frames['organizations']
        total = len(orgs)
        if orgs.empty:
            return {'total': 0, 'new': 0, 'active': 0}
        new = int(in_range_mask(orgs, self.date_range, settings.DATE_FIELD_CANDIDATES['organizations']).sum())
        active = int(orgs['isActive'].map(lambda v: isinstance(v, (bool, np.bool_)) and bool(v)).sum()) if 'isActive' in orgs.columns else 0
        return {'total': total, 'new': new, 'active': active}

    def _classified_status(self) -> List[CategoryCount]:
        counts = {status: 0 for status in ClassifiedStatus}
        index = SubscriptionIndex(self.snapshots)
        records = self.frames['organizations'].to_dict('records')
        for org in records:
            counts[classify_organization(org, self.now, index).status] += 1
        return [
            CategoryCount(category=status.value, count=n, percentage=safe_percentage(n, len(records)))
            for status, n in counts.items()
        ]

    def _lifecycle(self) -> List[CategoryCount]:
        summary = summarize_subscription_lifecycle(self.snapshots, self.now)
        total = len(self.snapshots)
        return [CategoryCount(category=k, count=n, percentage=safe_percentage(n, total)) for k, n in summary.items()]

    def build(self) -> SubscriptionAnalyticsResult:
        logger.info(f"({self.source_context}) Building subscription analytics for {len(self.frames['organizations'])} organizations and {len(self.snapshots)} subscriptions.")
        subs_df = self._run_stage("Subscription table", lambda: snapshots_frame(self.snapshots), snapshots_frame([]))

        subscribers = self._run_stage("Subscriber metrics", self._subscriber_metrics, {'total': 0, 'new': 0, 'active': 0})
        lifecycle = self._run_stage("Subscription lifecycle", self._lifecycle, [])
        classified = self._run_stage("Classified status", self._classified_status, [])
        revenue = self._run_stage("Revenue metrics", lambda: calculate_revenue_metrics(subs_df, self.now), _EMPTY_SUBSCRIPTION_REVENUE)
        conversion = self._run_stage("Conversion metrics", lambda: calculate_conversion_metrics(subs_df, self.now), _EMPTY_CONVERSION)
        plans = self._run_stage("Plan distribution", lambda: plan_distribution([s.plan_name for s in self.snapshots], subscribers['total']), [])

        cancelled = next((c.count for c in lifecycle if c.category == 'cancelled'), 0)
        result = SubscriptionAnalyticsResult(
            date_range=self.date_range,
            now=self.now,
            formatting=self.formatting,
            total_subscribers=subscribers['total'],
            new_subscribers=subscribers['new'],
            subscriber_growth_pct=subscriber_growth_pct(subscribers['total'], subscribers['new']),
            churn_pct=churn_pct(cancelled, subscribers['total']),
            active_organizations=subscribers['active'],
            active_share_pct=safe_percentage(subscribers['active'], subscribers['total']),
            subscription_lifecycle=tuple(lifecycle),
            classified_status=tuple(classified),
            total_revenue=revenue['total'],
            monthly_revenue=revenue['monthly'],
            annual_recurring_revenue=revenue['arr'],
            trial_value=revenue['trial_value'],
            average_revenue_per_user=safe_ratio(revenue['monthly'], subscribers['total']),
            revenue_growth_pct=revenue['growth_pct'],
            total_trials=conversion['total_trials'],
            converted_trials=conversion['converted'],
            conversion_rate_pct=conversion['rate_pct'],
            plan_distribution=tuple(plans),
            missing_sources=tuple(self.missing_sources),
            errors=tuple(self.errors),
        )
        logger.info(f"({self.source_context}) Subscription analytics complete. Degraded: {result.is_degraded}")
        return result


def build_practice_report(
    patients: Records = None,
    appointments: Records = None,
    prescriptions: Records = None,
    payments: Records = None,
    date_range: Optional[DateRange] = None,
    formatting: Optional[FormattingConfig] = None,
    now: Any = None
) -> ReportResult:
    """
    Public factory for the practice report. A source passed as None is treated
    as a failed fetch: it contributes an empty collection and is listed in
    `missing_sources`. `now` anchors the month-over-month metrics and the
    default range.
    """
    return PracticeReportBuilder(patients, appointments, prescriptions, payments, date_range, formatting, now).build()


def build_subscription_analytics(
    organizations: Records = None,
    subscriptions: Records = None,
    date_range: Optional[DateRange] = None,
    now: Any = None,
    formatting: Optional[FormattingConfig] = None
) -> SubscriptionAnalyticsResult:
    """Public factory for the super-admin analytics view."""
    return SubscriptionAnalyticsBuilder(organizations, subscriptions, date_range, now, formatting).build()
