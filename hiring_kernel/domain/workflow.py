"""
Workflow engine (``hiring_kernel.domain.workflow``).

Responsibility
--------------
Pure transition logic for hiring requests.  Given a ``RequestState``
snapshot, the acting user and the command payload, each ``plan_*`` function
either raises a typed error or returns a ``TransitionPlan`` describing the
exact column changes to apply.  Services apply plans; they never decide
legality themselves.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  Time is passed in as ``now``.

Invariants enforced
-------------------
* Role authorization is checked first, against ``ACTION_ROLES``.  A role
  mismatch raises an ``AuthorizationError``, never a validation error.
* Stage preconditions are checked next.  An unmet precondition raises
  ``StateConflictError``; nothing is ever silently skipped.
* ``workflow_status`` only moves forward along ``WORKFLOW_ORDER``.
* Rejection is only possible before Admin approval completes, and a
  rejected request accepts no further transition except delete / resend
  by its owner.
* Confirm join reports ``debit_budget=True`` only on the first move into
  Joined.  A repeated Joined confirmation never debits; it only writes
  any new notes it carries.

Stage map::

    Pending --HR approve--> Pending(hr) --Admin approve--> Admin_Approved
      |                        |
      +--reject----------------+--reject--> (approval_status=Rejected)

    Admin_Approved --tentative--> BU_Tentative_Entered --final--> HR_Final_Entered
    HR_Final_Entered --confirm Joined--> Completed
    HR_Final_Entered --confirm Not_Joined--> HR_Final_Entered (outcome recorded)
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any

from hiring_kernel.domain.payloads import FinalDetails, JoinConfirmation, TentativeDetails
from hiring_kernel.domain.request_state import (
    Actor,
    ApprovalStatus,
    HiredStatus,
    JoinStatus,
    RequestState,
    Role,
    WorkflowStatus,
    workflow_rank,
)
from hiring_kernel.exceptions import (
    AutomaticApprovalError,
    JoinAlreadyConfirmedError,
    NotRequestOwnerError,
    RequestNotRejectedError,
    StateConflictError,
    UnauthorizedActorError,
)


class WorkflowAction(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ENTER_TENTATIVE = "enter tentative details"
    ENTER_FINAL = "enter final details"
    CONFIRM_JOIN = "confirm join"
    DELETE = "delete"
    RESEND = "resend"
    EDIT = "edit candidate details"


ACTION_ROLES: dict[WorkflowAction, frozenset[Role]] = {
    WorkflowAction.SUBMIT: frozenset({Role.BU_HEAD}),
    WorkflowAction.APPROVE: frozenset({Role.HR_HEAD, Role.ADMIN}),
    WorkflowAction.REJECT: frozenset({Role.BU_HEAD, Role.HR_HEAD, Role.ADMIN}),
    WorkflowAction.ENTER_TENTATIVE: frozenset({Role.BU_HEAD}),
    WorkflowAction.ENTER_FINAL: frozenset({Role.HR_HEAD}),
    WorkflowAction.CONFIRM_JOIN: frozenset({Role.BU_HEAD, Role.HR_HEAD}),
    WorkflowAction.EDIT: frozenset({Role.BU_HEAD, Role.HR_HEAD, Role.ADMIN}),
}

# Actions a BU Head may only take on requests they own.
BU_HEAD_OWNER_ACTIONS: frozenset[WorkflowAction] = frozenset({
    WorkflowAction.ENTER_TENTATIVE,
    WorkflowAction.CONFIRM_JOIN,
    WorkflowAction.EDIT,
})


@dataclass(frozen=True)
class TransitionPlan:
    """
    The outcome of a legal transition.

    ``changes`` maps model column names to their new values.  An empty
    mapping means nothing needs to be written.  ``repeated`` marks a
    command that repeats an outcome already recorded.
    """

    action: WorkflowAction
    request_id: Any
    from_status: WorkflowStatus
    to_status: WorkflowStatus
    changes: dict[str, Any] = field(default_factory=dict)
    debit_budget: bool = False
    repeated: bool = False

    @property
    def is_noop(self) -> bool:
        return not self.changes


_STATE_FIELDS = frozenset(f.name for f in fields(RequestState))


def apply_plan(state: RequestState, plan: TransitionPlan) -> RequestState:
    """Return the snapshot that results from applying ``plan`` to ``state``."""
    updates = {k: v for k, v in plan.changes.items() if k in _STATE_FIELDS}
    result = replace(state, **updates)
    if workflow_rank(result.workflow_status) < workflow_rank(state.workflow_status):
        raise StateConflictError(
            state.request_id, plan.action.value, "workflow stage cannot move backwards"
        )
    return result


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def require_role(action: WorkflowAction, actor: Actor) -> None:
    allowed = ACTION_ROLES[action]
    if actor.role not in allowed:
        raise UnauthorizedActorError(
            action.value, actor.role.value, tuple(sorted(r.value for r in allowed))
        )


def require_owner(state: RequestState, actor: Actor) -> None:
    if not actor.is_owner_of(state):
        raise NotRequestOwnerError(state.request_id, actor.user_id)


def authorize(action: WorkflowAction, state: RequestState, actor: Actor) -> None:
    require_role(action, actor)
    if actor.role == Role.BU_HEAD and action in BU_HEAD_OWNER_ACTIONS:
        require_owner(state, actor)


def _require_not_rejected(state: RequestState, action: WorkflowAction) -> None:
    if state.is_rejected:
        raise StateConflictError(state.request_id, action.value, "request was rejected")


def _plan(
    action: WorkflowAction,
    state: RequestState,
    changes: dict[str, Any],
    debit_budget: bool = False,
    repeated: bool = False,
) -> TransitionPlan:
    to_status = WorkflowStatus(changes.get("workflow_status", state.workflow_status))
    return TransitionPlan(
        action=action,
        request_id=state.request_id,
        from_status=state.workflow_status,
        to_status=to_status,
        changes=changes,
        debit_budget=debit_budget,
        repeated=repeated,
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def check_submission(actor: Actor) -> None:
    require_role(WorkflowAction.SUBMIT, actor)


def initial_fields(now: datetime) -> dict[str, Any]:
    """Column values of a freshly submitted (or resent) request.

    Submission is the BU Head's own approval, so ``bu_head_approved`` starts
    true.
    """
    return {
        "approval_status": ApprovalStatus.PENDING,
        "workflow_status": WorkflowStatus.PENDING,
        "bu_head_approved": True,
        "bu_head_approval_date": now,
        "hr_head_approved": False,
        "admin_approved": False,
        "bu_head_tentative_entered": False,
        "hr_head_final_entered": False,
        "join_confirmed": False,
        "join_confirmation_status": JoinStatus.PENDING,
    }


def plan_approval(
    state: RequestState,
    actor: Actor,
    now: datetime,
    comment: str | None = None,
) -> TransitionPlan:
    action = WorkflowAction.APPROVE
    if actor.role == Role.BU_HEAD:
        raise AutomaticApprovalError(state.request_id)
    require_role(action, actor)
    _require_not_rejected(state, action)

    if actor.role == Role.HR_HEAD:
        if not state.bu_head_approved:
            raise StateConflictError(state.request_id, action.value, "BU Head approval is missing")
        if state.hr_head_approved:
            raise StateConflictError(state.request_id, action.value, "HR Head has already approved")
        return _plan(action, state, {
            "hr_head_approved": True,
            "hr_head_approval_date": now,
            "hr_head_comments": comment,
        })

    if not state.hr_head_approved:
        raise StateConflictError(state.request_id, action.value, "awaiting HR Head approval")
    if state.admin_approved:
        raise StateConflictError(state.request_id, action.value, "Admin has already approved")
    return _plan(action, state, {
        "admin_approved": True,
        "admin_approval_date": now,
        "admin_comments": comment,
        "workflow_status": WorkflowStatus.ADMIN_APPROVED,
    })


_COMMENT_COLUMNS: dict[Role, str] = {
    Role.BU_HEAD: "bu_head_comments",
    Role.HR_HEAD: "hr_head_comments",
    Role.ADMIN: "admin_comments",
}


def plan_rejection(
    state: RequestState,
    actor: Actor,
    now: datetime,
    reason: str | None = None,
    comment: str | None = None,
) -> TransitionPlan:
    action = WorkflowAction.REJECT
    require_role(action, actor)
    if actor.role == Role.BU_HEAD and actor.business_unit != state.business_unit:
        raise UnauthorizedActorError(
            "reject requests outside their business unit", actor.role.value
        )
    if state.is_rejected:
        raise StateConflictError(state.request_id, action.value, "request is already rejected")
    if state.admin_approved or state.approval_status == ApprovalStatus.APPROVED:
        raise StateConflictError(state.request_id, action.value, "Admin approval already completed")

    return _plan(action, state, {
        "approval_status": ApprovalStatus.REJECTED,
        "rejection_reason": reason or comment,
        "rejected_at": now,
        _COMMENT_COLUMNS[actor.role]: comment or reason,
    })


def plan_tentative_entry(
    state: RequestState,
    actor: Actor,
    details: TentativeDetails,
    now: datetime,
) -> TransitionPlan:
    action = WorkflowAction.ENTER_TENTATIVE
    authorize(action, state, actor)
    _require_not_rejected(state, action)
    if state.bu_head_tentative_entered:
        raise StateConflictError(state.request_id, action.value, "tentative details already entered")
    if not (state.workflow_status == WorkflowStatus.ADMIN_APPROVED and state.admin_approved):
        raise StateConflictError(state.request_id, action.value, "request is not Admin approved")

    return _plan(action, state, {
        "tentative_candidate_name": details.tentative_candidate_name,
        "tentative_join_date": details.tentative_join_date,
        "bu_head_tentative_entered": True,
        "bu_head_tentative_date": now,
        "workflow_status": WorkflowStatus.BU_TENTATIVE_ENTERED,
    })


def plan_final_entry(
    state: RequestState,
    actor: Actor,
    details: FinalDetails,
    now: datetime,
) -> TransitionPlan:
    action = WorkflowAction.ENTER_FINAL
    authorize(action, state, actor)
    _require_not_rejected(state, action)
    if state.hr_head_final_entered:
        raise StateConflictError(state.request_id, action.value, "final details already entered")
    if not (
        state.workflow_status == WorkflowStatus.BU_TENTATIVE_ENTERED
        and state.bu_head_tentative_entered
    ):
        raise StateConflictError(
            state.request_id, action.value, "tentative details have not been entered"
        )

    return _plan(action, state, {
        "exact_join_date": details.exact_join_date,
        "exact_salary": details.exact_salary,
        "employee_id": details.employee_id,
        "hr_head_final_entered": True,
        "hr_head_final_date": now,
        "workflow_status": WorkflowStatus.HR_FINAL_ENTERED,
        "hired_status": HiredStatus.HIRED,
        "hired_date": now,
        "approval_status": ApprovalStatus.APPROVED,
    })


def plan_join_confirmation(
    state: RequestState,
    actor: Actor,
    confirmation: JoinConfirmation,
    now: datetime,
) -> TransitionPlan:
    """
    Record the join outcome.

    The prior ``join_confirmation_status`` in ``state`` must have been read
    under the same lock as the write that applies this plan; that read is
    what makes the budget debit happen exactly once.
    """
    action = WorkflowAction.CONFIRM_JOIN
    authorize(action, state, actor)
    if not state.hr_head_final_entered or state.workflow_status not in (
        WorkflowStatus.HR_FINAL_ENTERED,
        WorkflowStatus.COMPLETED,
    ):
        raise StateConflictError(state.request_id, action.value, "final details have not been entered")

    if state.join_confirmation_status == JoinStatus.JOINED:
        if confirmation.status != JoinStatus.JOINED:
            raise JoinAlreadyConfirmedError(state.request_id, confirmation.status.value)
        # Repeat: only fresh notes are written; the first confirmation date stays.
        repeat_changes: dict[str, Any] = {}
        if confirmation.notes is not None:
            repeat_changes["join_confirmation_notes"] = confirmation.notes
        return _plan(action, state, repeat_changes, repeated=True)

    changes: dict[str, Any] = {
        "join_confirmed": True,
        "join_confirmation_date": now,
        "join_confirmation_status": confirmation.status,
        "join_confirmation_notes": confirmation.notes,
    }
    joined = confirmation.status == JoinStatus.JOINED
    if joined:
        changes["workflow_status"] = WorkflowStatus.COMPLETED
    return _plan(action, state, changes, debit_budget=joined)


def check_removal(state: RequestState, actor: Actor, action: WorkflowAction) -> None:
    """Delete and resend: owner only, and only once the request is rejected."""
    require_owner(state, actor)
    if not state.is_rejected:
        raise RequestNotRejectedError(state.request_id, action.value, state.approval_status.value)


def check_detail_edit(state: RequestState, actor: Actor) -> None:
    authorize(WorkflowAction.EDIT, state, actor)
