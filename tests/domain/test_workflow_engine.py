"""
Tests for the pure workflow engine (``hiring_kernel.domain.workflow``).

Covers:
- Approval chain: HR Head then Admin, BU Head approval is automatic,
  duplicate and out-of-order approvals are state conflicts
- Rejection: who may reject, and only before Admin approval completes
- Fulfillment: tentative -> final -> join confirmation preconditions
- Join confirmation: first Joined debits, repeated Joined is a no-op,
  Joined cannot become Not_Joined
- Delete / resend guard: owner only, rejected only
- workflow_status never moves backwards (example walk + property test)
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from hiring_kernel.domain.payloads import FinalDetails, JoinConfirmation, TentativeDetails
from hiring_kernel.domain.request_state import (
    Actor,
    ApprovalStatus,
    HiredStatus,
    JoinStatus,
    RequestState,
    RequestType,
    Role,
    WorkflowStatus,
    workflow_rank,
)
from hiring_kernel.domain.workflow import (
    TransitionPlan,
    WorkflowAction,
    apply_plan,
    check_detail_edit,
    check_removal,
    check_submission,
    initial_fields,
    plan_approval,
    plan_final_entry,
    plan_join_confirmation,
    plan_rejection,
    plan_tentative_entry,
)
from hiring_kernel.exceptions import (
    AutomaticApprovalError,
    HiringKernelError,
    JoinAlreadyConfirmedError,
    NotRequestOwnerError,
    RequestNotRejectedError,
    StateConflictError,
    UnauthorizedActorError,
)

NOW = datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc)
UNIT = "Engineering"

OWNER = Actor(user_id=uuid4(), role=Role.BU_HEAD, business_unit=UNIT)
PEER_BU_HEAD = Actor(user_id=uuid4(), role=Role.BU_HEAD, business_unit=UNIT)
FOREIGN_BU_HEAD = Actor(user_id=uuid4(), role=Role.BU_HEAD, business_unit="Sales")
HR = Actor(user_id=uuid4(), role=Role.HR_HEAD)
ADMIN = Actor(user_id=uuid4(), role=Role.ADMIN)
HR_EXEC = Actor(user_id=uuid4(), role=Role.HR_EXECUTIVE)

TENTATIVE = TentativeDetails(tentative_candidate_name="A", tentative_join_date=date(2025, 1, 1))
FINAL = FinalDetails(
    exact_join_date=date(2025, 2, 1), exact_salary=Decimal("1200000"), employee_id="E1"
)
JOINED = JoinConfirmation(status=JoinStatus.JOINED)
NOT_JOINED = JoinConfirmation(status=JoinStatus.NOT_JOINED, notes="declined offer")


def make_state(**overrides) -> RequestState:
    values = {
        "request_id": uuid4(),
        "request_type": RequestType.NEW_HIRE,
        "hiring_manager_id": OWNER.user_id,
        "business_unit": UNIT,
    }
    values.update(overrides)
    return RequestState(**values)


def awaiting_admin() -> RequestState:
    return make_state(hr_head_approved=True)


def admin_approved() -> RequestState:
    return make_state(
        hr_head_approved=True,
        admin_approved=True,
        workflow_status=WorkflowStatus.ADMIN_APPROVED,
    )


def tentative_entered() -> RequestState:
    state = admin_approved()
    return apply_plan(state, plan_tentative_entry(state, OWNER, TENTATIVE, NOW))


def final_entered() -> RequestState:
    state = tentative_entered()
    return apply_plan(state, plan_final_entry(state, HR, FINAL, NOW))


# =========================================================================
# Submission
# =========================================================================


class TestSubmission:
    def test_only_bu_head_may_submit(self):
        check_submission(OWNER)
        for actor in (HR, ADMIN, HR_EXEC):
            with pytest.raises(UnauthorizedActorError):
                check_submission(actor)

    def test_initial_fields_record_bu_head_approval(self):
        fields = initial_fields(NOW)
        assert fields["approval_status"] == ApprovalStatus.PENDING
        assert fields["workflow_status"] == WorkflowStatus.PENDING
        assert fields["bu_head_approved"] is True
        assert fields["bu_head_approval_date"] == NOW
        assert fields["hr_head_approved"] is False
        assert fields["admin_approved"] is False
        assert fields["join_confirmation_status"] == JoinStatus.PENDING


# =========================================================================
# Approval chain
# =========================================================================


class TestApproval:
    def test_hr_head_approves_first(self):
        plan = plan_approval(make_state(), HR, NOW, "fine")

        assert plan.changes["hr_head_approved"] is True
        assert plan.changes["hr_head_approval_date"] == NOW
        assert plan.changes["hr_head_comments"] == "fine"
        assert plan.to_status == WorkflowStatus.PENDING

    def test_admin_approval_moves_to_admin_approved(self):
        plan = plan_approval(awaiting_admin(), ADMIN, NOW)

        assert plan.changes["admin_approved"] is True
        assert plan.from_status == WorkflowStatus.PENDING
        assert plan.to_status == WorkflowStatus.ADMIN_APPROVED

    def test_admin_before_hr_is_conflict(self):
        with pytest.raises(StateConflictError) as exc_info:
            plan_approval(make_state(), ADMIN, NOW)
        assert exc_info.value.reason == "awaiting HR Head approval"

    def test_duplicate_hr_approval_is_conflict(self):
        with pytest.raises(StateConflictError):
            plan_approval(awaiting_admin(), HR, NOW)

    def test_duplicate_admin_approval_is_conflict(self):
        with pytest.raises(StateConflictError):
            plan_approval(admin_approved(), ADMIN, NOW)

    def test_hr_approval_needs_bu_head_approval(self):
        with pytest.raises(StateConflictError):
            plan_approval(make_state(bu_head_approved=False), HR, NOW)

    def test_bu_head_approval_is_automatic(self):
        with pytest.raises(AutomaticApprovalError):
            plan_approval(make_state(), OWNER, NOW)

    def test_hr_executive_may_not_approve(self):
        with pytest.raises(UnauthorizedActorError) as exc_info:
            plan_approval(make_state(), HR_EXEC, NOW)
        assert exc_info.value.role == "HR Executive"

    def test_rejected_request_cannot_be_approved(self):
        with pytest.raises(StateConflictError):
            plan_approval(make_state(approval_status=ApprovalStatus.REJECTED), HR, NOW)


# =========================================================================
# Rejection
# =========================================================================


class TestRejection:
    def test_hr_head_rejects_pending_request(self):
        plan = plan_rejection(make_state(), HR, NOW, reason="No headcount")

        assert plan.changes["approval_status"] == ApprovalStatus.REJECTED
        assert plan.changes["rejection_reason"] == "No headcount"
        assert plan.changes["rejected_at"] == NOW
        assert plan.changes["hr_head_comments"] == "No headcount"

    def test_admin_rejects_after_hr_approval(self):
        plan = plan_rejection(awaiting_admin(), ADMIN, NOW, comment="budget freeze")
        assert plan.changes["rejection_reason"] == "budget freeze"
        assert plan.changes["admin_comments"] == "budget freeze"

    def test_bu_head_may_withdraw_in_own_unit(self):
        plan = plan_rejection(make_state(), PEER_BU_HEAD, NOW, reason="withdrawn")
        assert plan.changes["bu_head_comments"] == "withdrawn"

    def test_bu_head_may_not_reject_other_unit(self):
        with pytest.raises(UnauthorizedActorError):
            plan_rejection(make_state(), FOREIGN_BU_HEAD, NOW, reason="no")

    def test_hr_executive_may_not_reject(self):
        with pytest.raises(UnauthorizedActorError):
            plan_rejection(make_state(), HR_EXEC, NOW)

    def test_cannot_reject_after_admin_approval(self):
        with pytest.raises(StateConflictError):
            plan_rejection(admin_approved(), HR, NOW, reason="too late")

    def test_cannot_reject_twice(self):
        with pytest.raises(StateConflictError):
            plan_rejection(make_state(approval_status=ApprovalStatus.REJECTED), HR, NOW)

    def test_rejection_keeps_workflow_status(self):
        plan = plan_rejection(awaiting_admin(), ADMIN, NOW, reason="no")
        assert plan.to_status == WorkflowStatus.PENDING


# =========================================================================
# Fulfillment pipeline
# =========================================================================


class TestTentativeEntry:
    def test_owner_enters_tentative_details(self):
        plan = plan_tentative_entry(admin_approved(), OWNER, TENTATIVE, NOW)

        assert plan.to_status == WorkflowStatus.BU_TENTATIVE_ENTERED
        assert plan.changes["tentative_candidate_name"] == "A"
        assert plan.changes["tentative_join_date"] == date(2025, 1, 1)
        assert plan.changes["bu_head_tentative_entered"] is True

    def test_other_bu_head_is_not_owner(self):
        with pytest.raises(NotRequestOwnerError):
            plan_tentative_entry(admin_approved(), PEER_BU_HEAD, TENTATIVE, NOW)

    def test_hr_head_may_not_enter_tentative(self):
        with pytest.raises(UnauthorizedActorError):
            plan_tentative_entry(admin_approved(), HR, TENTATIVE, NOW)

    def test_requires_admin_approval(self):
        with pytest.raises(StateConflictError):
            plan_tentative_entry(awaiting_admin(), OWNER, TENTATIVE, NOW)

    def test_cannot_enter_twice(self):
        with pytest.raises(StateConflictError):
            plan_tentative_entry(tentative_entered(), OWNER, TENTATIVE, NOW)


class TestFinalEntry:
    def test_hr_head_enters_final_details(self):
        state = tentative_entered()
        plan = plan_final_entry(state, HR, FINAL, NOW)

        assert plan.to_status == WorkflowStatus.HR_FINAL_ENTERED
        assert plan.changes["hired_status"] == HiredStatus.HIRED
        assert plan.changes["hired_date"] == NOW
        assert plan.changes["approval_status"] == ApprovalStatus.APPROVED
        assert plan.changes["exact_salary"] == Decimal("1200000")
        assert plan.changes["employee_id"] == "E1"

    def test_final_before_tentative_is_conflict(self):
        with pytest.raises(StateConflictError) as exc_info:
            plan_final_entry(admin_approved(), HR, FINAL, NOW)
        assert exc_info.value.action == WorkflowAction.ENTER_FINAL.value

    def test_only_hr_head_enters_final(self):
        for actor in (OWNER, ADMIN, HR_EXEC):
            with pytest.raises(UnauthorizedActorError):
                plan_final_entry(tentative_entered(), actor, FINAL, NOW)

    def test_cannot_enter_twice(self):
        with pytest.raises(StateConflictError):
            plan_final_entry(final_entered(), HR, FINAL, NOW)


class TestJoinConfirmation:
    def test_first_joined_debits_and_completes(self):
        plan = plan_join_confirmation(final_entered(), OWNER, JOINED, NOW)

        assert plan.debit_budget is True
        assert plan.to_status == WorkflowStatus.COMPLETED
        assert plan.changes["join_confirmation_status"] == JoinStatus.JOINED
        assert plan.changes["join_confirmed"] is True

    def test_hr_head_may_confirm(self):
        plan = plan_join_confirmation(final_entered(), HR, JOINED, NOW)
        assert plan.debit_budget is True

    def test_admin_may_not_confirm(self):
        with pytest.raises(UnauthorizedActorError):
            plan_join_confirmation(final_entered(), ADMIN, JOINED, NOW)

    def test_other_bu_head_may_not_confirm(self):
        with pytest.raises(NotRequestOwnerError):
            plan_join_confirmation(final_entered(), PEER_BU_HEAD, JOINED, NOW)

    def test_repeated_joined_is_noop(self):
        state = final_entered()
        joined = apply_plan(state, plan_join_confirmation(state, OWNER, JOINED, NOW))

        repeat = plan_join_confirmation(joined, OWNER, JOINED, NOW)

        assert repeat.is_noop
        assert repeat.debit_budget is False
        assert apply_plan(joined, repeat) == joined
        assert repeat.repeated is True

    def test_repeated_joined_writes_new_notes_without_debit(self):
        state = final_entered()
        joined = apply_plan(state, plan_join_confirmation(state, OWNER, JOINED, NOW))
        retry = JoinConfirmation(status=JoinStatus.JOINED, notes="badge issued")

        repeat = plan_join_confirmation(joined, OWNER, retry, NOW)

        assert repeat.changes == {"join_confirmation_notes": "badge issued"}
        assert repeat.debit_budget is False
        assert repeat.repeated is True
        assert repeat.to_status == WorkflowStatus.COMPLETED

    def test_joined_cannot_become_not_joined(self):
        state = final_entered()
        joined = apply_plan(state, plan_join_confirmation(state, OWNER, JOINED, NOW))

        with pytest.raises(JoinAlreadyConfirmedError) as exc_info:
            plan_join_confirmation(joined, OWNER, NOT_JOINED, NOW)
        assert exc_info.value.requested_status == "Not_Joined"

    def test_not_joined_records_outcome_without_debit(self):
        plan = plan_join_confirmation(final_entered(), OWNER, NOT_JOINED, NOW)

        assert plan.debit_budget is False
        assert plan.to_status == WorkflowStatus.HR_FINAL_ENTERED
        assert plan.changes["join_confirmation_notes"] == "declined offer"

    def test_not_joined_may_later_join(self):
        state = final_entered()
        declined = apply_plan(state, plan_join_confirmation(state, OWNER, NOT_JOINED, NOW))

        plan = plan_join_confirmation(declined, OWNER, JOINED, NOW)

        assert plan.debit_budget is True
        assert plan.to_status == WorkflowStatus.COMPLETED

    def test_confirm_before_final_is_conflict(self):
        with pytest.raises(StateConflictError):
            plan_join_confirmation(tentative_entered(), OWNER, JOINED, NOW)


# =========================================================================
# Delete / resend / edit guards
# =========================================================================


class TestRemovalGuard:
    def test_pending_request_cannot_be_deleted(self):
        with pytest.raises(RequestNotRejectedError) as exc_info:
            check_removal(make_state(), OWNER, WorkflowAction.DELETE)
        assert exc_info.value.approval_status == "Pending"

    def test_non_owner_cannot_remove(self):
        rejected = make_state(approval_status=ApprovalStatus.REJECTED)
        for actor in (PEER_BU_HEAD, HR, ADMIN):
            with pytest.raises(NotRequestOwnerError):
                check_removal(rejected, actor, WorkflowAction.RESEND)

    def test_owner_may_remove_rejected(self):
        rejected = make_state(approval_status=ApprovalStatus.REJECTED)
        check_removal(rejected, OWNER, WorkflowAction.DELETE)
        check_removal(rejected, OWNER, WorkflowAction.RESEND)


class TestDetailEditGuard:
    def test_owner_hr_and_admin_may_edit(self):
        for actor in (OWNER, HR, ADMIN):
            check_detail_edit(make_state(), actor)

    def test_other_bu_head_may_not_edit(self):
        with pytest.raises(NotRequestOwnerError):
            check_detail_edit(make_state(), PEER_BU_HEAD)

    def test_hr_executive_may_not_edit(self):
        with pytest.raises(UnauthorizedActorError):
            check_detail_edit(make_state(), HR_EXEC)


# =========================================================================
# Monotonic workflow_status
# =========================================================================


class TestMonotonicWorkflow:
    def test_full_walk_never_regresses(self):
        state = make_state()
        steps = [
            lambda s: plan_approval(s, HR, NOW),
            lambda s: plan_approval(s, ADMIN, NOW),
            lambda s: plan_tentative_entry(s, OWNER, TENTATIVE, NOW),
            lambda s: plan_final_entry(s, HR, FINAL, NOW),
            lambda s: plan_join_confirmation(s, OWNER, JOINED, NOW),
        ]
        ranks = [workflow_rank(state.workflow_status)]
        for step in steps:
            state = apply_plan(state, step(state))
            ranks.append(workflow_rank(state.workflow_status))

        assert ranks == sorted(ranks)
        assert state.workflow_status == WorkflowStatus.COMPLETED

    def test_backward_plan_is_refused(self):
        state = admin_approved()
        backwards = TransitionPlan(
            action=WorkflowAction.APPROVE,
            request_id=state.request_id,
            from_status=state.workflow_status,
            to_status=WorkflowStatus.PENDING,
            changes={"workflow_status": WorkflowStatus.PENDING},
        )
        with pytest.raises(StateConflictError):
            apply_plan(state, backwards)


COMMANDS = {
    "hr_approve": lambda s: plan_approval(s, HR, NOW),
    "admin_approve": lambda s: plan_approval(s, ADMIN, NOW),
    "bu_approve": lambda s: plan_approval(s, OWNER, NOW),
    "hr_reject": lambda s: plan_rejection(s, HR, NOW, reason="no"),
    "admin_reject": lambda s: plan_rejection(s, ADMIN, NOW, reason="no"),
    "tentative": lambda s: plan_tentative_entry(s, OWNER, TENTATIVE, NOW),
    "final": lambda s: plan_final_entry(s, HR, FINAL, NOW),
    "joined": lambda s: plan_join_confirmation(s, OWNER, JOINED, NOW),
    "not_joined": lambda s: plan_join_confirmation(s, OWNER, NOT_JOINED, NOW),
}


class TestWorkflowProperties:
    @settings(max_examples=200, deadline=None)
    @given(st.lists(st.sampled_from(sorted(COMMANDS)), max_size=15))
    def test_any_command_sequence_is_monotonic(self, sequence):
        """Whatever commands are attempted, accepted ones never move the stage back."""
        state = make_state()
        for name in sequence:
            try:
                plan = COMMANDS[name](state)
            except HiringKernelError:
                continue
            next_state = apply_plan(state, plan)
            assert workflow_rank(next_state.workflow_status) >= workflow_rank(state.workflow_status)
            if state.is_rejected:
                pytest.fail(f"{name} was accepted on a rejected request")
            state = next_state

    @settings(max_examples=200, deadline=None)
    @given(st.lists(st.sampled_from(["joined", "not_joined"]), min_size=1, max_size=8))
    def test_at_most_one_debit_per_request(self, confirmations):
        state = final_entered()
        debits = 0
        for name in confirmations:
            try:
                plan = COMMANDS[name](state)
            except JoinAlreadyConfirmedError:
                continue
            debits += plan.debit_budget
            state = apply_plan(state, plan)

        assert debits == (1 if "joined" in confirmations else 0)
