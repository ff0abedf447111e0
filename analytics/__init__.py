# practice_analytics_root/analytics/__init__.py
# PUBLIC API OF THE ANALYTICS ENGINE

"""
Initializes the analytics package, making key functions and classes
available at the top level for easier importing.

This __init__.py defines the public API for the package.
"""

# From models.py
from .models import (CategoryCount, PeriodComparison, ReportResult,
                     RevenueByType, SubscriptionAnalyticsResult,
                     format_currency, format_percentage)

# From aggregators.py
from .aggregators import (aggregate_appointments, aggregate_patients,
                          aggregate_prescriptions, aggregate_revenue,
                          age_group_labels, extract_medication_names,
                          plan_distribution, top_n_categories)

# From subscription_status.py
from .subscription_status import (ClassifiedStatus, StatusClassification,
                                  SubscriptionIndex, SubscriptionSnapshot,
                                  SubscriptionState,
                                  classify_organization,
                                  classify_subscription_status, days_until,
                                  summarize_subscription_lifecycle)

# From growth.py
from .growth import (appointment_wait_minutes, calculate_conversion_metrics,
                     calculate_revenue_metrics, change_pct, churn_pct,
                     practice_month_over_month, revenue_growth_pct,
                     subscriber_growth_pct)

# From report.py
from .report import (PracticeReportBuilder, SubscriptionAnalyticsBuilder,
                     build_practice_report, build_subscription_analytics)

# --- Define the public API for the analytics package ---
__all__ = [
    # Result types and display helpers
    "CategoryCount",
    "PeriodComparison",
    "RevenueByType",
    "ReportResult",
    "SubscriptionAnalyticsResult",
    "format_currency",
    "format_percentage",

    # Domain aggregators
    "aggregate_patients",
    "aggregate_appointments",
    "aggregate_revenue",
    "aggregate_prescriptions",
    "age_group_labels",
    "extract_medication_names",
    "plan_distribution",
    "top_n_categories",

    # Subscription status classification
    "ClassifiedStatus",
    "StatusClassification",
    "SubscriptionIndex",
    "SubscriptionSnapshot",
    "SubscriptionState",
    "classify_organization",
    "classify_subscription_status",
    "days_until",
    "summarize_subscription_lifecycle",

    # Growth and conversion
    "calculate_conversion_metrics",
    "calculate_revenue_metrics",
    "churn_pct",
    "revenue_growth_pct",
    "subscriber_growth_pct",
    "appointment_wait_minutes",
    "change_pct",
    "practice_month_over_month",

    # Report assembly
    "PracticeReportBuilder",
    "SubscriptionAnalyticsBuilder",
    "build_practice_report",
    "build_subscription_analytics",
]
