"""
Request state types (``hiring_kernel.domain.request_state``).

Responsibility
--------------
Pure value objects describing where a hiring request stands: the enums
stored in the status columns, the actor issuing a command, and a frozen
``RequestState`` snapshot that the transition engine, the metric
predicates and the visibility rules all evaluate.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  No imports from ``db/``,
``models/``, ``services/`` or ``selectors/``.

Invariants enforced
-------------------
* ``WORKFLOW_ORDER`` is the only ordering of workflow stages.  A request's
  ``workflow_status`` rank never decreases (see ``workflow_rank``).
* Role names are canonical; ``Role.parse`` folds spelling variants such as
  ``"HR HEAD"`` into ``Role.HR_HEAD``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID

from hiring_kernel.exceptions import InvalidFieldValueError


class RequestType(str, Enum):
    """Discriminator for the two request tables."""

    NEW_HIRE = "new-hire"
    REPLACEMENT = "replacement"

    @classmethod
    def parse(cls, value: RequestType | str) -> RequestType:
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        raise InvalidFieldValueError(
            "request_type", value, f"expected one of {[m.value for m in cls]}"
        )


class Role(str, Enum):
    """A user's designation.  Decides which transitions they may drive."""

    BU_HEAD = "BU Head"
    HR_HEAD = "HR Head"
    ADMIN = "Admin"
    HR_EXECUTIVE = "HR Executive"

    @classmethod
    def parse(cls, value: Role | str) -> Role:
        if isinstance(value, cls):
            return value
        folded = " ".join(str(value).split()).lower()
        for member in cls:
            if member.value.lower() == folded:
                return member
        raise InvalidFieldValueError(
            "role", value, f"expected one of {[m.value for m in cls]}"
        )


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class WorkflowStatus(str, Enum):
    PENDING = "Pending"
    ADMIN_APPROVED = "Admin_Approved"
    BU_TENTATIVE_ENTERED = "BU_Tentative_Entered"
    HR_FINAL_ENTERED = "HR_Final_Entered"
    COMPLETED = "Completed"


class JoinStatus(str, Enum):
    PENDING = "Pending"
    JOINED = "Joined"
    NOT_JOINED = "Not_Joined"

    @classmethod
    def parse_outcome(cls, value: JoinStatus | str | None) -> JoinStatus:
        """Parse a join outcome.  Only Joined / Not_Joined are outcomes."""
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidFieldValueError(
                "status", value, "expected 'Joined' or 'Not_Joined'"
            )
        folded = str(value.value if isinstance(value, cls) else value)
        folded = folded.strip().lower().replace(" ", "_")
        for member in (cls.JOINED, cls.NOT_JOINED):
            if member.value.lower() == folded:
                return member
        raise InvalidFieldValueError(
            "status", value, "expected 'Joined' or 'Not_Joined'"
        )


class HiredStatus(str, Enum):
    HIRED = "Hired"


WORKFLOW_ORDER: tuple[WorkflowStatus, ...] = (
    WorkflowStatus.PENDING,
    WorkflowStatus.ADMIN_APPROVED,
    WorkflowStatus.BU_TENTATIVE_ENTERED,
    WorkflowStatus.HR_FINAL_ENTERED,
    WorkflowStatus.COMPLETED,
)


def workflow_rank(status: WorkflowStatus | str) -> int:
    """Position of a workflow stage in ``WORKFLOW_ORDER``."""
    return WORKFLOW_ORDER.index(WorkflowStatus(status))


@dataclass(frozen=True)
class Actor:
    """The user issuing a command."""

    user_id: UUID
    role: Role
    business_unit: str | None = None

    def is_owner_of(self, state: RequestState) -> bool:
        return self.user_id == state.hiring_manager_id


@dataclass(frozen=True)
class RequestState:
    """
    Snapshot of every field that decides a request's legal transitions,
    its dashboard bucket and who may see it.

    Built from an ORM row by ``HiringRequestBase.to_state()``; built directly
    in tests to enumerate reachable states.
    """

    request_id: UUID
    request_type: RequestType
    hiring_manager_id: UUID
    business_unit: str
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    workflow_status: WorkflowStatus = WorkflowStatus.PENDING
    bu_head_approved: bool = True
    hr_head_approved: bool = False
    admin_approved: bool = False
    bu_head_tentative_entered: bool = False
    hr_head_final_entered: bool = False
    join_confirmed: bool = False
    join_confirmation_status: JoinStatus = JoinStatus.PENDING
    exact_join_date: date | None = None

    @property
    def is_rejected(self) -> bool:
        return self.approval_status == ApprovalStatus.REJECTED

    @property
    def has_joined(self) -> bool:
        return self.join_confirmation_status == JoinStatus.JOINED
