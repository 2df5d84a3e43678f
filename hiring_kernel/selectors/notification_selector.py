"""
Module: hiring_kernel.selectors.notification_selector
Responsibility: The "recently approved / hired / rejected" popup feeds.
    Each feed merges both request kinds, orders newest first and truncates.
Architecture position: Kernel > Selectors.  Pure read, no side effects.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any
from uuid import UUID

from hiring_kernel.domain.request_state import ApprovalStatus, HiredStatus
from hiring_kernel.models.hiring_request import HiringRequestBase
from hiring_kernel.selectors.base import BaseSelector

DEFAULT_FEED_LIMIT = 10


@dataclass(frozen=True)
class NotificationItem:
    request_id: UUID
    request_type: str
    position_title: str
    candidate_name: str | None
    business_unit: str
    approval_status: str
    workflow_status: str
    employee_id: str | None
    exact_join_date: date | None
    rejection_reason: str | None
    occurred_at: datetime

    @classmethod
    def from_model(cls, record: HiringRequestBase, occurred_at: datetime) -> NotificationItem:
        return cls(
            request_id=record.id,
            request_type=record.request_type.value,
            position_title=record.display_title,
            candidate_name=record.display_candidate_name,
            business_unit=record.business_unit,
            approval_status=record.approval_status,
            workflow_status=record.workflow_status,
            employee_id=record.employee_id,
            exact_join_date=record.exact_join_date,
            rejection_reason=record.rejection_reason,
            occurred_at=occurred_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _feed(
    records: Iterable[HiringRequestBase],
    timestamp: Callable[[HiringRequestBase], datetime | None],
    limit: int,
) -> list[NotificationItem]:
    items = [
        NotificationItem.from_model(r, timestamp(r) or r.updated_at) for r in records
    ]
    items.sort(key=lambda item: item.occurred_at, reverse=True)
    return items[:limit]


class NotificationSelector(BaseSelector):
    """Recency feeds for one manager."""

    def __init__(self, session, default_limit: int = DEFAULT_FEED_LIMIT):
        super().__init__(session)
        self.default_limit = default_limit

    def _limit(self, limit: int | None) -> int:
        return self.default_limit if limit is None else max(limit, 0)

    def recent_approvals(self, manager_id: UUID, limit: int | None = None) -> list[NotificationItem]:
        """Owned requests that reached Approved, most recently updated first."""
        rows = self._requests(
            lambda m: m.hiring_manager_id == manager_id,
            lambda m: m.approval_status == ApprovalStatus.APPROVED.value,
        )
        return _feed(rows, lambda r: r.updated_at, self._limit(limit))

    def hired_notifications(self, manager_id: UUID, limit: int | None = None) -> list[NotificationItem]:
        """Owned requests marked Hired with an employee id, newest hire first."""
        rows = self._requests(
            lambda m: m.hiring_manager_id == manager_id,
            lambda m: m.hired_status == HiredStatus.HIRED.value,
            lambda m: m.employee_id.is_not(None),
        )
        return _feed(rows, lambda r: r.hired_date, self._limit(limit))

    def rejection_notifications(
        self, manager_id: UUID, limit: int | None = None
    ) -> list[NotificationItem]:
        rows = self._requests(
            lambda m: m.hiring_manager_id == manager_id,
            lambda m: m.approval_status == ApprovalStatus.REJECTED.value,
        )
        return _feed(rows, lambda r: r.rejected_at, self._limit(limit))
