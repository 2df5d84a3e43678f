"""
Module: hiring_kernel.selectors.metrics_selector
Responsibility: Dashboard counters, category drill-down lists and the
    per-business-unit and admin overviews.  Everything is recomputed from
    the request tables on every read; nothing here is cached.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Counters and drill-down lists both go through
      ``domain.metrics.matches``; for any category the count equals the
      length of its list.
    - Each request lands in at most one lifecycle counter.
      ``toBeRationalized`` is an overlay and may overlap them.
    - ``teamCost`` is the summed hired value of Joined requests in the unit.

Failure modes:
    - ``UnknownMetricCategoryError`` for an unrecognised category tag.
    - ``UnauthorizedActorError`` when a BU Head reads another unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from hiring_kernel.domain.metrics import LifecycleBucket, MetricCategory, classify, matches
from hiring_kernel.domain.money import ZERO
from hiring_kernel.domain.request_state import ApprovalStatus, HiredStatus, Role
from hiring_kernel.exceptions import MissingFieldError, UnauthorizedActorError
from hiring_kernel.models.hiring_request import HiringRequestBase
from hiring_kernel.selectors.base import BaseSelector
from hiring_kernel.selectors.request_selector import RequestView


@dataclass(frozen=True)
class BUMetrics:
    """The seven dashboard counters of one business unit."""

    business_unit: str
    hiring_ticket_raised: int
    approved_yet_to_hire: int
    selected_yet_to_offer: int
    offered_yet_to_join: int
    existing_team: int
    to_be_rationalized: int
    team_cost: Decimal

    def count(self, category: MetricCategory) -> int:
        return getattr(self, category.name.lower())

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            category.counter_name: self.count(category) for category in MetricCategory
        }
        data["teamCost"] = self.team_cost
        return data


@dataclass(frozen=True)
class BusinessUnitStats:
    business_unit: str
    total_hires: int
    pending: int
    confirmed_joins: int
    rejected: int


@dataclass(frozen=True)
class AdminOverview:
    total_hires: int
    pending_requests: int
    pending_admin_approval: int


class MetricsSelector(BaseSelector):
    """Dashboard reads derived from workflow state."""

    def _unit_requests(self, business_unit: str) -> list[HiringRequestBase]:
        return list(self._requests(lambda m: m.business_unit == business_unit))

    def compute_bu_metrics(self, business_unit: str, today: date) -> BUMetrics:
        rows = [(r, r.to_state()) for r in self._unit_requests(business_unit)]
        counts = {
            category: sum(1 for _, state in rows if matches(category, state, today))
            for category in MetricCategory
        }
        team_cost = sum(
            (r.hired_value for r, state in rows if state.has_joined), ZERO
        )
        return BUMetrics(
            business_unit=business_unit,
            **{category.name.lower(): n for category, n in counts.items()},
            team_cost=team_cost,
        )

    def metrics_for_actor(
        self, actor_id: UUID, business_unit: str | None, today: date
    ) -> BUMetrics:
        """
        Dashboard read on behalf of a user.

        A BU Head may only read its own unit (and defaults to it); other
        roles may read any unit they name.
        """
        actor = self._user(actor_id).to_actor()
        unit = business_unit or actor.business_unit
        if actor.role == Role.BU_HEAD and unit != actor.business_unit:
            raise UnauthorizedActorError(
                "read metrics of another business unit", actor.role.value
            )
        if not unit:
            raise MissingFieldError("business_unit", "read metrics")
        return self.compute_bu_metrics(unit, today)

    def candidate_details(
        self,
        category: MetricCategory | str,
        business_unit: str,
        today: date,
    ) -> list[RequestView]:
        """Drill-down list behind one dashboard counter."""
        cat = MetricCategory.parse(category)
        rows = [
            r for r in self._unit_requests(business_unit)
            if matches(cat, r.to_state(), today)
        ]
        rows.sort(key=lambda r: r.updated_at, reverse=True)
        return [RequestView.from_model(r) for r in rows]

    def business_unit_stats(self, today: date) -> list[BusinessUnitStats]:
        """Per-unit totals, sorted by unit name."""
        stats: dict[str, dict[str, int]] = {}
        for record in self._requests():
            bucket = stats.setdefault(
                record.business_unit,
                {"total_hires": 0, "pending": 0, "confirmed_joins": 0, "rejected": 0},
            )
            state = record.to_state()
            lifecycle = classify(state, today)
            if record.hired_status == HiredStatus.HIRED.value:
                bucket["total_hires"] += 1
            if lifecycle == LifecycleBucket.REJECTED:
                bucket["rejected"] += 1
            elif lifecycle == LifecycleBucket.JOINED:
                bucket["confirmed_joins"] += 1
            elif state.approval_status == ApprovalStatus.PENDING:
                bucket["pending"] += 1
        return [
            BusinessUnitStats(business_unit=unit, **values)
            for unit, values in sorted(stats.items())
        ]

    def admin_overview(self) -> AdminOverview:
        total_hires = pending = pending_admin = 0
        for record in self._requests():
            state = record.to_state()
            if record.hired_status == HiredStatus.HIRED.value:
                total_hires += 1
            if state.approval_status == ApprovalStatus.PENDING:
                pending += 1
                if state.hr_head_approved and not state.admin_approved:
                    pending_admin += 1
        return AdminOverview(
            total_hires=total_hires,
            pending_requests=pending,
            pending_admin_approval=pending_admin,
        )
