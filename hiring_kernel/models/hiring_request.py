"""
Module: hiring_kernel.models.hiring_request
Responsibility: ORM persistence for the two hiring request kinds.  New-hire
    and replacement requests live in separate tables but share one abstract
    lifecycle base: every approval, workflow, fulfillment and join column is
    declared once on ``HiringRequestBase``.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - CHECK constraints restrict approval_status, workflow_status,
      join_confirmation_status and hired_status to their enum values.
    - version_id turns a lost update (two writers that read the same row
      version) into StaleDataError, surfaced as OptimisticLockError.
    - candidate_skills is always a JSON array of strings; normalization
      happens before the value reaches the model.

Failure modes:
    - IntegrityError on an out-of-range status value.
    - StaleDataError when a concurrent transaction updated the row first.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from hiring_kernel.db.base import TrackedBase, UUIDString
from hiring_kernel.domain.budget import hired_value
from hiring_kernel.domain.request_state import (
    ApprovalStatus,
    HiredStatus,
    JoinStatus,
    RequestState,
    RequestType,
    WorkflowStatus,
)


def _in_clause(column: str, enum_type: type[Enum]) -> str:
    values = ", ".join(f"'{m.value}'" for m in enum_type)
    return f"{column} IN ({values})"


class HiringRequestBase(TrackedBase):
    """
    Shared lifecycle columns of a hiring request.

    Contract:
        Columns are mutated only through ``apply_changes`` with a plan from
        ``hiring_kernel.domain.workflow``, or through descriptive-field
        edits.  ``hiring_manager_id`` and ``business_unit`` never change
        after insert.
    """

    __abstract__ = True

    request_type: ClassVar[RequestType]

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        table = cls.__tablename__
        return (
            CheckConstraint(
                _in_clause("approval_status", ApprovalStatus),
                name=f"ck_{table}_approval_status",
            ),
            CheckConstraint(
                _in_clause("workflow_status", WorkflowStatus),
                name=f"ck_{table}_workflow_status",
            ),
            CheckConstraint(
                _in_clause("join_confirmation_status", JoinStatus),
                name=f"ck_{table}_join_status",
            ),
            CheckConstraint(
                "hired_status IS NULL OR " + _in_clause("hired_status", HiredStatus),
                name=f"ck_{table}_hired_status",
            ),
            Index(f"ix_{table}_business_unit", "business_unit", "approval_status"),
            Index(f"ix_{table}_manager", "hiring_manager_id", "updated_at"),
            Index(f"ix_{table}_workflow", "workflow_status", "join_confirmation_status"),
        )

    # Ownership and classification
    hiring_manager_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    hiring_manager_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    business_unit: Mapped[str] = mapped_column(String(100), nullable=False)

    # Descriptive payload
    candidate_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    candidate_designation: Mapped[str | None] = mapped_column(String(200), nullable=True)
    candidate_experience_years: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 1), nullable=True,
    )
    candidate_skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    ctc_offered: Mapped[Decimal | None] = mapped_column(nullable=True)
    joining_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Approval chain
    approval_status: Mapped[str] = mapped_column(String(20), nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    bu_head_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bu_head_approval_date: Mapped[datetime | None] = mapped_column(nullable=True)
    bu_head_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    hr_head_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hr_head_approval_date: Mapped[datetime | None] = mapped_column(nullable=True)
    hr_head_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin_approval_date: Mapped[datetime | None] = mapped_column(nullable=True)
    admin_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Fulfillment pipeline
    workflow_status: Mapped[str] = mapped_column(String(30), nullable=False)
    tentative_candidate_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    tentative_join_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    bu_head_tentative_entered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bu_head_tentative_date: Mapped[datetime | None] = mapped_column(nullable=True)
    exact_join_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    exact_salary: Mapped[Decimal | None] = mapped_column(nullable=True)
    employee_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    hr_head_final_entered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hr_head_final_date: Mapped[datetime | None] = mapped_column(nullable=True)
    hired_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    hired_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Join confirmation
    join_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    join_confirmation_status: Mapped[str] = mapped_column(String(20), nullable=False)
    join_confirmation_date: Mapped[datetime | None] = mapped_column(nullable=True)
    join_confirmation_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self.id} bu={self.business_unit} "
            f"approval={self.approval_status} workflow={self.workflow_status}>"
        )

    def to_state(self) -> RequestState:
        """Snapshot of the fields the workflow engine and predicates read."""
        return RequestState(
            request_id=self.id,
            request_type=self.request_type,
            hiring_manager_id=self.hiring_manager_id,
            business_unit=self.business_unit,
            approval_status=ApprovalStatus(self.approval_status),
            workflow_status=WorkflowStatus(self.workflow_status),
            bu_head_approved=bool(self.bu_head_approved),
            hr_head_approved=bool(self.hr_head_approved),
            admin_approved=bool(self.admin_approved),
            bu_head_tentative_entered=bool(self.bu_head_tentative_entered),
            hr_head_final_entered=bool(self.hr_head_final_entered),
            join_confirmed=bool(self.join_confirmed),
            join_confirmation_status=JoinStatus(self.join_confirmation_status),
            exact_join_date=self.exact_join_date,
        )

    def apply_changes(self, changes: Mapping[str, Any], now: datetime) -> None:
        """Write column values (enums stored by value) and bump ``updated_at``."""
        for name, value in changes.items():
            if isinstance(value, Enum):
                value = value.value
            setattr(self, name, value)
        self.updated_at = now

    @property
    def display_title(self) -> str:
        raise NotImplementedError

    @property
    def display_candidate_name(self) -> str | None:
        return self.tentative_candidate_name or self.candidate_name

    @property
    def hired_value(self) -> Decimal:
        return hired_value(self.exact_salary, self.ctc_offered)


class NewHireRequest(HiringRequestBase):
    """A request to hire into a new position."""

    __tablename__ = "new_hire_requests"

    request_type: ClassVar[RequestType] = RequestType.NEW_HIRE

    position_title: Mapped[str] = mapped_column(String(200), nullable=False)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def display_title(self) -> str:
        return self.position_title


class ReplacementRequest(HiringRequestBase):
    """A request to backfill an outgoing employee."""

    __tablename__ = "replacement_requests"

    request_type: ClassVar[RequestType] = RequestType.REPLACEMENT

    outgoing_employee_name: Mapped[str] = mapped_column(String(200), nullable=False)
    outgoing_employee_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_working_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    leaving_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def display_title(self) -> str:
        return f"Replacement for {self.outgoing_employee_name}"


REQUEST_MODELS: dict[RequestType, type[HiringRequestBase]] = {
    RequestType.NEW_HIRE: NewHireRequest,
    RequestType.REPLACEMENT: ReplacementRequest,
}


def model_for(request_type: RequestType | str) -> type[HiringRequestBase]:
    return REQUEST_MODELS[RequestType.parse(request_type)]
