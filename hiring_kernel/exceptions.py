"""
Typed Exception Hierarchy for the Hiring Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failed workflow command must tell the caller *why* it failed: a missing
field, the wrong approver, an unknown request, or a request that is not in
the right stage.  Callers catch by type and read structured attributes; they
never parse messages.

    try:
        service.enter_final_details(RequestType.NEW_HIRE, request_id, actor_id, payload)
    except MissingFieldError as e:
        return {"code": e.code, "field": e.field}
    except StateConflictError as e:
        return {"code": e.code, "reason": e.reason}

Every class carries:
  1. A ``code`` class attribute (machine-readable, API-safe)
  2. A ``category`` class attribute used by the command gateway to choose a
     response status
  3. Structured attributes describing the failure

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    HiringKernelError (base)
    |
    +-- ValidationError                       category=validation
    |   +-- MissingFieldError
    |   +-- InvalidFieldValueError
    |   +-- AutomaticApprovalError
    |   +-- UnknownMetricCategoryError
    |   +-- DuplicateUserError
    |
    +-- AuthorizationError                    category=permission
    |   +-- UnauthorizedActorError
    |   +-- NotRequestOwnerError
    |
    +-- NotFoundError                         category=not_found
    |   +-- RequestNotFoundError
    |   +-- UserNotFoundError
    |
    +-- StateConflictError                    category=state_conflict
    |   +-- RequestNotRejectedError
    |   +-- JoinAlreadyConfirmedError
    |
    +-- LedgerError                           category=ledger
    |   +-- InvalidBudgetError
    |
    +-- ConcurrencyError                      category=concurrency
        +-- OptimisticLockError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_FIELD               | Required stage field absent or blank
                | INVALID_FIELD_VALUE         | Field present but malformed
                | BU_HEAD_APPROVAL_AUTOMATIC  | BU Head tried to approve explicitly
                | UNKNOWN_METRIC_CATEGORY     | Drill-down tag not recognised
                | DUPLICATE_USER              | Email already registered
----------------|-----------------------------|-----------------------------------------
Permission      | UNAUTHORIZED_ACTOR          | Role is not the approver for the stage
                | NOT_REQUEST_OWNER           | Actor is not the owning manager
----------------|-----------------------------|-----------------------------------------
Not found       | REQUEST_NOT_FOUND           | Unknown request id for the request type
                | USER_NOT_FOUND              | Unknown user / manager id
----------------|-----------------------------|-----------------------------------------
State conflict  | STATE_CONFLICT              | Stage precondition not met
                | REQUEST_NOT_REJECTED        | Delete/resend on a non-rejected request
                | JOIN_ALREADY_CONFIRMED      | Joined candidate re-marked Not_Joined
----------------|-----------------------------|-----------------------------------------
Ledger          | INVALID_BUDGET              | Budget write with a bad value
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Concurrent modification detected

A debit that would take ``team_cost`` below zero is NOT an exception: the
balance is clamped at zero and a ``team_budget_clamped`` warning is logged.

===============================================================================
DESIGN DECISIONS
===============================================================================

1. AuthorizationError does not inherit from the builtin PermissionError.
   The builtin is an OSError subclass for filesystem access; mixing the two
   would let ``except OSError`` swallow workflow permission failures.

2. Permission failures are never reported as "not found".  A request that
   exists but belongs to someone else raises NotRequestOwnerError.
"""

from typing import Any


class HiringKernelError(Exception):
    """
    Base exception for all hiring kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "HIRING_KERNEL_ERROR"
    category: str = "internal"

    def details(self) -> dict[str, Any]:
        """Structured attributes for API responses and logs."""
        return {
            k: v for k, v in vars(self).items() if not k.startswith("_")
        }


# Validation errors


class ValidationError(HiringKernelError):
    """Base exception for malformed or missing input."""

    code: str = "VALIDATION_ERROR"
    category: str = "validation"


class MissingFieldError(ValidationError):
    """A field required by the requested transition was not supplied."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str, action: str | None = None):
        self.field = field
        self.action = action
        suffix = f" for {action}" if action else ""
        super().__init__(f"Missing required field '{field}'{suffix}")


class InvalidFieldValueError(ValidationError):
    """A field was supplied with a value that cannot be accepted."""

    code: str = "INVALID_FIELD_VALUE"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for '{field}': {reason}")


class AutomaticApprovalError(ValidationError):
    """BU Head approval happens at submission; it is never a separate action."""

    code: str = "BU_HEAD_APPROVAL_AUTOMATIC"

    def __init__(self, request_id: Any):
        self.request_id = request_id
        super().__init__("BU Head approval is automatic upon submission")


class UnknownMetricCategoryError(ValidationError):
    """A candidate drill-down was requested for an unknown category tag."""

    code: str = "UNKNOWN_METRIC_CATEGORY"

    def __init__(self, tag: str, known: tuple[str, ...]):
        self.tag = tag
        self.known = known
        super().__init__(
            f"Unknown metric category '{tag}'. Expected one of: {', '.join(known)}"
        )


class DuplicateUserError(ValidationError):
    """A user with the given email is already registered."""

    code: str = "DUPLICATE_USER"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"User already exists: {email}")


# Permission errors


class AuthorizationError(HiringKernelError):
    """Base exception for actor/role mismatches."""

    code: str = "PERMISSION_DENIED"
    category: str = "permission"


class UnauthorizedActorError(AuthorizationError):
    """The actor's role is not allowed to perform the action at this stage."""

    code: str = "UNAUTHORIZED_ACTOR"

    def __init__(self, action: str, role: str, allowed_roles: tuple[str, ...] = ()):
        self.action = action
        self.role = role
        self.allowed_roles = allowed_roles
        allowed = f" (allowed: {', '.join(allowed_roles)})" if allowed_roles else ""
        super().__init__(f"Role '{role}' may not {action}{allowed}")


class NotRequestOwnerError(AuthorizationError):
    """The actor is not the manager who owns the request."""

    code: str = "NOT_REQUEST_OWNER"

    def __init__(self, request_id: Any, actor_id: Any):
        self.request_id = request_id
        self.actor_id = actor_id
        super().__init__(f"Not your request: {request_id}")


# Not-found errors


class NotFoundError(HiringKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"
    category: str = "not_found"


class RequestNotFoundError(NotFoundError):
    """No request of the given type has the given id."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_type: str, request_id: Any):
        self.request_type = request_type
        self.request_id = request_id
        super().__init__(f"Request not found: {request_type} {request_id}")


class UserNotFoundError(NotFoundError):
    """No user has the given id."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: Any):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


# State conflicts


class StateConflictError(HiringKernelError):
    """
    The request is not in a stage that allows the requested transition.

    Never a silent no-op: the caller must learn the action did not happen.
    """

    code: str = "STATE_CONFLICT"
    category: str = "state_conflict"

    def __init__(self, request_id: Any, action: str, reason: str):
        self.request_id = request_id
        self.action = action
        self.reason = reason
        super().__init__(f"Cannot {action} request {request_id}: {reason}")


class RequestNotRejectedError(StateConflictError):
    """Delete and resend are only allowed on rejected requests."""

    code: str = "REQUEST_NOT_REJECTED"

    def __init__(self, request_id: Any, action: str, approval_status: str):
        self.approval_status = approval_status
        super().__init__(
            request_id,
            action,
            f"{action} is only allowed on rejected requests (status is {approval_status})",
        )


class JoinAlreadyConfirmedError(StateConflictError):
    """A joined candidate cannot be re-marked as not joined."""

    code: str = "JOIN_ALREADY_CONFIRMED"

    def __init__(self, request_id: Any, requested_status: str):
        self.requested_status = requested_status
        super().__init__(
            request_id,
            "confirm join",
            f"candidate already joined; cannot change to {requested_status}",
        )


# Ledger errors


class LedgerError(HiringKernelError):
    """Base exception for team budget failures."""

    code: str = "LEDGER_ERROR"
    category: str = "ledger"


class InvalidBudgetError(LedgerError):
    """A team budget write supplied a missing, negative or non-numeric value."""

    code: str = "INVALID_BUDGET"

    def __init__(self, manager_id: Any, value: Any):
        self.manager_id = manager_id
        self.value = value
        super().__init__(f"Invalid team budget for {manager_id}: {value!r}")


# Concurrency errors


class ConcurrencyError(HiringKernelError):
    """Base exception for concurrent modification problems."""

    code: str = "CONCURRENCY_ERROR"
    category: str = "concurrency"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )
