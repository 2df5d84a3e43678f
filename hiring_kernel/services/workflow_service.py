"""
WorkflowService -- the imperative shell around the workflow engine.

Responsibility:
    Executes every hiring-request command: submit, approve, reject, enter
    tentative details, enter final details, confirm join, delete, resend
    and candidate-detail edits.  Each command loads the request, resolves
    the actor, asks ``hiring_kernel.domain.workflow`` for a plan, and
    applies it.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and sibling
    services.  Transition legality lives in the domain layer; this module
    only loads, applies and logs.

Invariants enforced:
    - Checks run in a fixed order: the request exists, the actor exists,
      the actor may act, the payload is valid, the stage precondition holds.
      A failing check leaves the request untouched.
    - ``workflow_status`` never regresses; ``apply_plan`` re-checks the
      rank before anything is written.
    - Confirm join reads the prior join status under a row lock and debits
      the budget in the same transaction, so two concurrent confirmations
      debit at most once.
    - Resend deletes and re-inserts inside one savepoint: either both land
      or neither does.

Failure modes:
    - ``RequestNotFoundError`` / ``UserNotFoundError`` for unknown ids.
    - ``AuthorizationError`` subclasses for role or ownership mismatches.
    - ``ValidationError`` subclasses naming the offending field.
    - ``StateConflictError`` subclasses for unmet stage preconditions.
    - ``OptimisticLockError`` when a concurrent writer won the row.

Audit relevance:
    Every successful transition logs one snake_case event
    (``request_submitted``, ``request_approved``, ...) carrying the request
    id, the actor and the workflow stage before and after.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from hiring_kernel.domain.clock import Clock
from hiring_kernel.domain.payloads import (
    FinalDetails,
    JoinConfirmation,
    SubmissionPayload,
    TentativeDetails,
    parse_descriptive_fields,
)
from hiring_kernel.domain.request_state import Actor, RequestType
from hiring_kernel.domain.workflow import (
    TransitionPlan,
    WorkflowAction,
    apply_plan,
    authorize,
    check_detail_edit,
    check_removal,
    check_submission,
    initial_fields,
    plan_approval,
    plan_final_entry,
    plan_join_confirmation,
    plan_rejection,
    plan_tentative_entry,
    require_owner,
)
from hiring_kernel.exceptions import InvalidFieldValueError, MissingFieldError
from hiring_kernel.logging_config import get_logger
from hiring_kernel.models.hiring_request import HiringRequestBase
from hiring_kernel.services.base import BaseService
from hiring_kernel.services.budget_ledger import BudgetLedger
from hiring_kernel.services.request_store import RequestStore
from hiring_kernel.services.user_service import UserService

logger = get_logger("services.workflow")

# Columns a new request must carry that the edit form may not blank out.
_REQUIRED_DESCRIPTIVE: dict[RequestType, str] = {
    RequestType.NEW_HIRE: "position_title",
    RequestType.REPLACEMENT: "outgoing_employee_name",
}


class WorkflowService(BaseService):
    """
    Command handlers for the hiring request lifecycle.

    Contract:
        Every method flushes and returns the affected ORM row (``None`` for
        delete).  The caller commits.

    Guarantees:
        - A command that raises has written nothing: checks precede writes,
          and a flush failure propagates for the caller to roll back.
        - ``confirm_join`` debits the owning manager exactly once per
          request, on its first move into Joined.

    Non-goals:
        - No read models; see ``hiring_kernel.selectors``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: BudgetLedger | None = None,
    ):
        super().__init__(session, clock)
        self.store = RequestStore(session, self.clock)
        self.users = UserService(session, self.clock)
        self.ledger = ledger or BudgetLedger(session, self.clock)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        for_update: bool = False,
    ) -> tuple[HiringRequestBase, Actor]:
        record = self.store.get(request_type, request_id, for_update=for_update)
        actor = self.users.get_actor(actor_id)
        return record, actor

    def _apply(self, record: HiringRequestBase, plan: TransitionPlan) -> None:
        apply_plan(record.to_state(), plan)
        if plan.is_noop:
            return
        record.apply_changes(plan.changes, self.clock.now())
        self._flush(type(record).__name__, record.id)

    def _log_transition(
        self,
        event: str,
        record: HiringRequestBase,
        actor: Actor,
        plan: TransitionPlan | None = None,
        **extra: Any,
    ) -> None:
        payload = {
            "request_id": str(record.id),
            "request_type": record.request_type.value,
            "actor_id": str(actor.user_id),
            "actor_role": actor.role.value,
            "business_unit": record.business_unit,
            **extra,
        }
        if plan is not None:
            payload["from_status"] = plan.from_status.value
            payload["to_status"] = plan.to_status.value
        logger.info(event, extra=payload)

    def _submission_values(
        self, actor: Actor, submission: SubmissionPayload, manager_name: str
    ) -> dict[str, Any]:
        business_unit = submission.business_unit or actor.business_unit
        if not business_unit:
            raise MissingFieldError("business_unit", WorkflowAction.SUBMIT.value)
        if actor.business_unit and business_unit != actor.business_unit:
            raise InvalidFieldValueError(
                "business_unit", business_unit, "must be the submitter's own business unit"
            )
        return {
            **submission.fields,
            **initial_fields(self.clock.now()),
            "hiring_manager_id": actor.user_id,
            "hiring_manager_name": manager_name,
            "business_unit": business_unit,
        }

    # ------------------------------------------------------------------
    # Approval chain
    # ------------------------------------------------------------------

    def submit(
        self,
        request_type: RequestType | str,
        actor_id: UUID,
        payload: Mapping[str, Any],
    ) -> HiringRequestBase:
        """Create a request.  Submission is the BU Head's own approval."""
        rtype = RequestType.parse(request_type)
        actor = self.users.get_actor(actor_id)
        check_submission(actor)
        submission = SubmissionPayload.from_mapping(rtype, payload)
        manager = self.users.get_user(actor_id)

        record = self.store.create(
            rtype,
            self._submission_values(actor, submission, manager.name),
            created_by_id=actor.user_id,
        )
        self._log_transition("request_submitted", record, actor)
        return record

    def approve(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        comment: str | None = None,
    ) -> HiringRequestBase:
        record, actor = self._load(request_type, request_id, actor_id, for_update=True)
        plan = plan_approval(record.to_state(), actor, self.clock.now(), comment)
        self._apply(record, plan)
        self._log_transition("request_approved", record, actor, plan)
        return record

    def reject(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
        comment: str | None = None,
    ) -> HiringRequestBase:
        record, actor = self._load(request_type, request_id, actor_id, for_update=True)
        plan = plan_rejection(record.to_state(), actor, self.clock.now(), reason, comment)
        self._apply(record, plan)
        self._log_transition(
            "request_rejected", record, actor, plan, reason=record.rejection_reason
        )
        return record

    # ------------------------------------------------------------------
    # Fulfillment pipeline
    # ------------------------------------------------------------------

    def enter_tentative_details(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        payload: Mapping[str, Any],
    ) -> HiringRequestBase:
        record, actor = self._load(request_type, request_id, actor_id, for_update=True)
        state = record.to_state()
        authorize(WorkflowAction.ENTER_TENTATIVE, state, actor)
        details = TentativeDetails.from_mapping(payload)
        plan = plan_tentative_entry(state, actor, details, self.clock.now())
        self._apply(record, plan)
        self._log_transition("tentative_details_entered", record, actor, plan)
        return record

    def enter_final_details(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        payload: Mapping[str, Any],
    ) -> HiringRequestBase:
        record, actor = self._load(request_type, request_id, actor_id, for_update=True)
        state = record.to_state()
        authorize(WorkflowAction.ENTER_FINAL, state, actor)
        details = FinalDetails.from_mapping(payload)
        plan = plan_final_entry(state, actor, details, self.clock.now())
        self._apply(record, plan)
        self._log_transition(
            "final_details_entered", record, actor, plan, employee_id=record.employee_id
        )
        return record

    def confirm_join(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        payload: Mapping[str, Any],
    ) -> HiringRequestBase:
        """
        Record the join outcome and, on the first Joined, debit the budget.

        The request row is locked before its prior join status is read, and
        the manager row is locked inside ``BudgetLedger.on_join_confirmed``.
        """
        record, actor = self._load(request_type, request_id, actor_id, for_update=True)
        state = record.to_state()
        authorize(WorkflowAction.CONFIRM_JOIN, state, actor)
        confirmation = JoinConfirmation.from_mapping(payload)
        plan = plan_join_confirmation(state, actor, confirmation, self.clock.now())
        self._apply(record, plan)

        debit = None
        if plan.debit_budget:
            debit = self.ledger.on_join_confirmed(record).debit
        self._log_transition(
            "join_confirmed",
            record,
            actor,
            plan,
            join_status=confirmation.status.value,
            repeated=plan.repeated,
            debit=str(debit) if debit is not None else None,
        )
        return record

    # ------------------------------------------------------------------
    # Owner-only actions on rejected requests
    # ------------------------------------------------------------------

    def delete_request(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
    ) -> None:
        record, actor = self._load(request_type, request_id, actor_id, for_update=True)
        check_removal(record.to_state(), actor, WorkflowAction.DELETE)
        self._log_transition("request_deleted", record, actor)
        self.store.delete(request_type, request_id)

    def resend_request(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        payload: Mapping[str, Any],
    ) -> HiringRequestBase:
        """
        Replace a rejected request with a fresh submission.

        The old row is deleted and the new one inserted inside a savepoint,
        so a failed insert leaves the rejected request in place.
        """
        rtype = RequestType.parse(request_type)
        record, actor = self._load(rtype, request_id, actor_id, for_update=True)
        state = record.to_state()
        require_owner(state, actor)
        submission = SubmissionPayload.from_mapping(rtype, payload)
        check_removal(state, actor, WorkflowAction.RESEND)
        values = self._submission_values(actor, submission, record.hiring_manager_name)
        if not submission.business_unit:
            values["business_unit"] = record.business_unit

        with self.session.begin_nested():
            self.store.delete(rtype, request_id)
            new_record = self.store.create(rtype, values, created_by_id=actor.user_id)

        self._log_transition(
            "request_resent", new_record, actor, previous_request_id=str(request_id)
        )
        return new_record

    # ------------------------------------------------------------------
    # Descriptive edits
    # ------------------------------------------------------------------

    def update_candidate_details(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        actor_id: UUID,
        patch: Mapping[str, Any],
    ) -> HiringRequestBase:
        """Edit descriptive fields only; workflow columns are refused."""
        rtype = RequestType.parse(request_type)
        record, actor = self._load(rtype, request_id, actor_id, for_update=True)
        check_detail_edit(record.to_state(), actor)
        values = parse_descriptive_fields(rtype, patch, partial=True)
        required = _REQUIRED_DESCRIPTIVE[rtype]
        if required in values and values[required] is None:
            raise MissingFieldError(required, WorkflowAction.EDIT.value)

        self.store.update(rtype, request_id, values)
        self._log_transition(
            "candidate_details_updated", record, actor, fields=sorted(values)
        )
        return record
