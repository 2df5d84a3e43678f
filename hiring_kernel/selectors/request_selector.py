"""
Module: hiring_kernel.selectors.request_selector
Responsibility: Work queues and request lists.  Who sees which request is
    decided by the declarative rule tables in ``domain/visibility.py``; this
    module only loads candidate rows and evaluates those rules.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - The "received" queue of every role is one ``VisibilityRule`` lookup.
      No query carries a hand-written role check of its own.
    - Lists merge both request kinds and are ordered newest update first.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from hiring_kernel.domain.request_state import (
    ApprovalStatus,
    JoinStatus,
    Role,
    WorkflowStatus,
)
from hiring_kernel.domain.visibility import CANDIDATE_RULES, ReceivedScope, received_rules
from hiring_kernel.exceptions import RequestNotFoundError, UnauthorizedActorError
from hiring_kernel.models.hiring_request import HiringRequestBase, model_for
from hiring_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class RequestView:
    """Read-only projection of a hiring request."""

    id: UUID
    request_type: str
    position_title: str
    business_unit: str
    hiring_manager_id: UUID
    hiring_manager_name: str | None
    candidate_name: str | None
    candidate_designation: str | None
    candidate_skills: tuple[str, ...]
    ctc_offered: Decimal | None
    joining_date: date | None
    approval_status: str
    rejection_reason: str | None
    workflow_status: str
    tentative_candidate_name: str | None
    tentative_join_date: date | None
    exact_join_date: date | None
    exact_salary: Decimal | None
    employee_id: str | None
    hired_status: str | None
    hired_date: datetime | None
    join_confirmation_status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, record: HiringRequestBase) -> RequestView:
        return cls(
            id=record.id,
            request_type=record.request_type.value,
            position_title=record.display_title,
            business_unit=record.business_unit,
            hiring_manager_id=record.hiring_manager_id,
            hiring_manager_name=record.hiring_manager_name,
            candidate_name=record.display_candidate_name,
            candidate_designation=record.candidate_designation,
            candidate_skills=tuple(record.candidate_skills or ()),
            ctc_offered=record.ctc_offered,
            joining_date=record.joining_date,
            approval_status=record.approval_status,
            rejection_reason=record.rejection_reason,
            workflow_status=record.workflow_status,
            tentative_candidate_name=record.tentative_candidate_name,
            tentative_join_date=record.tentative_join_date,
            exact_join_date=record.exact_join_date,
            exact_salary=record.exact_salary,
            employee_id=record.employee_id,
            hired_status=record.hired_status,
            hired_date=record.hired_date,
            join_confirmation_status=record.join_confirmation_status,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["candidate_skills"] = list(self.candidate_skills)
        return data


def _newest_first(records: list[HiringRequestBase]) -> list[RequestView]:
    records.sort(key=lambda r: r.updated_at, reverse=True)
    return [RequestView.from_model(r) for r in records]


class RequestSelector(BaseSelector):
    """Work queues for each role and per-request reads."""

    def get_request(self, request_type: str, request_id: UUID) -> RequestView:
        model = model_for(request_type)
        record = self.session.get(model, request_id)
        if record is None:
            raise RequestNotFoundError(model.request_type.value, request_id)
        return RequestView.from_model(record)

    def sent_requests(self, manager_id: UUID) -> list[RequestView]:
        """Every request the manager submitted."""
        self._user(manager_id)
        return _newest_first(list(self._requests(lambda m: m.hiring_manager_id == manager_id)))

    def received_requests(
        self,
        actor_id: UUID,
        scope: ReceivedScope = ReceivedScope.BUSINESS_UNIT,
    ) -> list[RequestView]:
        """The actor's approval queue, per the role's visibility rule."""
        actor = self._user(actor_id).to_actor()
        rule = received_rules(scope)[actor.role]
        pending = self._requests(
            lambda m: m.approval_status == ApprovalStatus.PENDING.value
        )
        return _newest_first([r for r in pending if rule.allows(r.to_state(), actor)])

    def candidates_for(self, actor_id: UUID) -> list[RequestView]:
        """Requests shown on the actor's candidate-data page."""
        actor = self._user(actor_id).to_actor()
        rule = CANDIDATE_RULES[actor.role]
        return _newest_first([r for r in self._requests() if rule.allows(r.to_state(), actor)])

    def tentative_queue(self, manager_id: UUID) -> list[RequestView]:
        """Owned, Admin-approved requests still waiting for tentative details."""
        self._user(manager_id)
        rows = self._requests(
            lambda m: m.hiring_manager_id == manager_id,
            lambda m: m.workflow_status == WorkflowStatus.ADMIN_APPROVED.value,
            lambda m: m.admin_approved.is_(True),
            lambda m: m.bu_head_tentative_entered.is_(False),
            lambda m: m.approval_status != ApprovalStatus.REJECTED.value,
        )
        return _newest_first(list(rows))

    def final_details_queue(self) -> list[RequestView]:
        """Requests waiting for HR final details."""
        rows = self._requests(
            lambda m: m.workflow_status == WorkflowStatus.BU_TENTATIVE_ENTERED.value,
            lambda m: m.hr_head_final_entered.is_(False),
            lambda m: m.approval_status != ApprovalStatus.REJECTED.value,
        )
        return _newest_first(list(rows))

    def join_confirmation_queue(self, actor_id: UUID, today: date) -> list[RequestView]:
        """
        Hired requests whose join date has arrived and whose outcome is open.

        A BU Head sees its own requests; HR Head and Admin see all.
        """
        actor = self._user(actor_id).to_actor()
        if actor.role not in (Role.BU_HEAD, Role.HR_HEAD, Role.ADMIN):
            raise UnauthorizedActorError(
                "view the join confirmation queue",
                actor.role.value,
                (Role.ADMIN.value, Role.BU_HEAD.value, Role.HR_HEAD.value),
            )
        criteria = [
            lambda m: m.workflow_status == WorkflowStatus.HR_FINAL_ENTERED.value,
            lambda m: m.join_confirmation_status == JoinStatus.PENDING.value,
            lambda m: m.exact_join_date <= today,
        ]
        if actor.role == Role.BU_HEAD:
            criteria.append(lambda m: m.hiring_manager_id == actor.user_id)
        return _newest_first(list(self._requests(*criteria)))
