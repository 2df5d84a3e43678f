"""Selectors for the hiring kernel (read side)."""

from hiring_kernel.selectors.budget_selector import (
    BreakdownLine,
    BudgetBreakdown,
    BudgetSelector,
    BusinessUnitCost,
)
from hiring_kernel.selectors.metrics_selector import (
    AdminOverview,
    BUMetrics,
    BusinessUnitStats,
    MetricsSelector,
)
from hiring_kernel.selectors.notification_selector import NotificationItem, NotificationSelector
from hiring_kernel.selectors.request_selector import RequestSelector, RequestView

__all__ = [
    "AdminOverview",
    "BUMetrics",
    "BreakdownLine",
    "BudgetBreakdown",
    "BudgetSelector",
    "BusinessUnitCost",
    "BusinessUnitStats",
    "MetricsSelector",
    "NotificationItem",
    "NotificationSelector",
    "RequestSelector",
    "RequestView",
]
