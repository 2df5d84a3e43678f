"""
Visibility rules (``hiring_kernel.domain.visibility``).

One declarative table decides which requests each role sees in its
"received" approval queue, and a second decides whose requests appear on
the candidate-data page.  Selectors evaluate these tables; no query
re-implements a role check of its own.

The BU Head received scope is configurable.  ``business_unit`` (the
default) shows every pending request in the head's business unit;
``owned`` narrows that to requests the head submitted.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from hiring_kernel.domain.request_state import Actor, ApprovalStatus, RequestState, Role

Predicate = Callable[[RequestState, Actor], bool]


class ReceivedScope(str, Enum):
    BUSINESS_UNIT = "business_unit"
    OWNED = "owned"


@dataclass(frozen=True)
class VisibilityRule:
    role: Role
    description: str
    predicate: Predicate

    def allows(self, state: RequestState, actor: Actor) -> bool:
        return self.predicate(state, actor)


def _pending(state: RequestState) -> bool:
    return state.approval_status == ApprovalStatus.PENDING


def _awaiting_hr(state: RequestState, actor: Actor) -> bool:
    return _pending(state) and state.bu_head_approved and not state.hr_head_approved


def _awaiting_admin(state: RequestState, actor: Actor) -> bool:
    return (
        _pending(state)
        and state.bu_head_approved
        and state.hr_head_approved
        and not state.admin_approved
    )


def _pending_in_business_unit(state: RequestState, actor: Actor) -> bool:
    return _pending(state) and state.business_unit == actor.business_unit


def _pending_and_owned(state: RequestState, actor: Actor) -> bool:
    return _pending(state) and actor.is_owner_of(state)


def _nothing(state: RequestState, actor: Actor) -> bool:
    return False


def _everything(state: RequestState, actor: Actor) -> bool:
    return True


def _owned(state: RequestState, actor: Actor) -> bool:
    return actor.is_owner_of(state)


def received_rules(scope: ReceivedScope = ReceivedScope.BUSINESS_UNIT) -> dict[Role, VisibilityRule]:
    bu_rule = (
        VisibilityRule(Role.BU_HEAD, "pending requests in own business unit", _pending_in_business_unit)
        if scope == ReceivedScope.BUSINESS_UNIT
        else VisibilityRule(Role.BU_HEAD, "own pending requests", _pending_and_owned)
    )
    return {
        Role.BU_HEAD: bu_rule,
        Role.HR_HEAD: VisibilityRule(Role.HR_HEAD, "awaiting HR Head approval", _awaiting_hr),
        Role.ADMIN: VisibilityRule(Role.ADMIN, "awaiting Admin approval", _awaiting_admin),
        Role.HR_EXECUTIVE: VisibilityRule(Role.HR_EXECUTIVE, "no approval queue", _nothing),
    }


CANDIDATE_RULES: dict[Role, VisibilityRule] = {
    Role.BU_HEAD: VisibilityRule(Role.BU_HEAD, "own requests", _owned),
    Role.HR_HEAD: VisibilityRule(Role.HR_HEAD, "all requests", _everything),
    Role.ADMIN: VisibilityRule(Role.ADMIN, "all requests", _everything),
    Role.HR_EXECUTIVE: VisibilityRule(Role.HR_EXECUTIVE, "all requests", _everything),
}
