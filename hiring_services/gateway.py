"""
hiring_services.gateway -- request/response command surface.

Responsibility:
    The boundary a UI or HTTP layer calls.  Each public method is one
    command or query: it opens a unit of work, wires kernel services and
    selectors with values from the active ``HiringConfig``, runs, commits,
    and returns a JSON-safe ``CommandResult``.

Architecture position:
    Services -- above ``hiring_kernel`` and ``hiring_config``.  The kernel
    never imports from this package.

Invariants enforced:
    - One command, one transaction.  A failing command rolls back only its
      own unit of work.
    - Typed kernel errors become an error envelope carrying the specific
      code, category and HTTP-like status; they are never downgraded to a
      generic failure.  Anything that is not a ``HiringKernelError``
      propagates after rollback.
    - ``LogContext`` carries a fresh correlation id, the actor and the
      request for the duration of every command.

Failure modes:
    - ``RuntimeError`` if no session factory was supplied and the engine
      has not been initialized.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from hiring_config import HiringConfig, get_active_config
from hiring_kernel.db.engine import get_session_factory
from hiring_kernel.domain.clock import Clock, SystemClock
from hiring_kernel.exceptions import HiringKernelError, InvalidFieldValueError
from hiring_kernel.logging_config import LogContext, get_logger
from hiring_kernel.selectors import (
    BudgetSelector,
    MetricsSelector,
    NotificationSelector,
    RequestSelector,
    RequestView,
)
from hiring_kernel.services import BudgetLedger, UserService, WorkflowService
from hiring_services.serializers import to_jsonable

logger = get_logger("gateway")

HTTP_STATUS_BY_CATEGORY: dict[str, int] = {
    "validation": 422,
    "permission": 403,
    "not_found": 404,
    "state_conflict": 409,
    "concurrency": 409,
    "ledger": 400,
    "internal": 500,
}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one gateway call."""

    ok: bool
    data: Any = None
    error: dict[str, Any] | None = None

    @property
    def status(self) -> int:
        if self.ok:
            return 200
        return self.error["status"]

    @classmethod
    def success(cls, data: Any) -> CommandResult:
        return cls(ok=True, data=to_jsonable(data))

    @classmethod
    def failure(cls, exc: HiringKernelError) -> CommandResult:
        return cls(
            ok=False,
            error={
                "code": exc.code,
                "category": exc.category,
                "status": HTTP_STATUS_BY_CATEGORY.get(exc.category, 500),
                "message": str(exc),
                "details": to_jsonable(exc.details()),
            },
        )

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error}


def _uuid(name: str, value: UUID | str | None) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise InvalidFieldValueError(name, value, "expected a UUID") from exc


class HiringGateway:
    """
    Command gateway over the hiring kernel.

    Contract:
        Every public method returns a ``CommandResult``.  ``data`` holds
        JSON types only (strings for ids, amounts and dates).

    Non-goals:
        - No transport: routing, authentication and wire format belong to
          the caller.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session] | None = None,
        config: HiringConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory or get_session_factory()
        self.config = config or get_active_config()
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def unit_of_work(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _run(
        self,
        command: str,
        fn: Callable[[Session], Any],
        *,
        actor_id: Any = None,
        request_id: Any = None,
        request_type: Any = None,
    ) -> CommandResult:
        with LogContext.bind(
            correlation_id=uuid4(),
            actor_id=actor_id,
            request_id=request_id,
            request_type=request_type,
        ):
            try:
                with self.unit_of_work() as session:
                    # Serialize before commit so no lazy load runs after close.
                    result = CommandResult.success(fn(session))
            except HiringKernelError as exc:
                logger.warning(
                    "command_failed",
                    extra={"command": command, "error_code": exc.code, "category": exc.category},
                )
                return CommandResult.failure(exc)
            logger.debug("command_succeeded", extra={"command": command})
            return result

    def _ledger(self, session: Session) -> BudgetLedger:
        return BudgetLedger(
            session,
            self.clock,
            debit_rate=self.config.budget.debit_rate,
            currency_places=self.config.budget.currency_places,
        )

    def _workflow(self, session: Session) -> WorkflowService:
        return WorkflowService(session, self.clock, ledger=self._ledger(session))

    def _budget_selector(self, session: Session) -> BudgetSelector:
        return BudgetSelector(
            session,
            debit_rate=self.config.budget.debit_rate,
            currency_places=self.config.budget.currency_places,
        )

    def _transition(
        self,
        command: str,
        request_type: str,
        request_id: Any,
        actor_id: Any,
        call: Callable[[WorkflowService, UUID, UUID], Any],
    ) -> CommandResult:
        def fn(session: Session) -> Any:
            record = call(
                self._workflow(session),
                _uuid("request_id", request_id),
                _uuid("actor_id", actor_id),
            )
            return RequestView.from_model(record) if record is not None else None

        return self._run(
            command, fn, actor_id=actor_id, request_id=request_id, request_type=request_type
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(
        self,
        name: str,
        email: str,
        role: str,
        business_unit: str | None = None,
        team_cost: Any = None,
    ) -> CommandResult:
        return self._run(
            "create_user",
            lambda s: UserService(s, self.clock).create_user(
                name, email, role, business_unit, team_cost
            ),
        )

    def get_user(self, user_id: Any) -> CommandResult:
        return self._run(
            "get_user",
            lambda s: UserService(s, self.clock).get_user(_uuid("user_id", user_id)),
        )

    # ------------------------------------------------------------------
    # Workflow commands
    # ------------------------------------------------------------------

    def submit_request(
        self, request_type: str, actor_id: Any, payload: Mapping[str, Any]
    ) -> CommandResult:
        def fn(session: Session) -> RequestView:
            record = self._workflow(session).submit(
                request_type, _uuid("actor_id", actor_id), payload
            )
            return RequestView.from_model(record)

        return self._run("submit_request", fn, actor_id=actor_id, request_type=request_type)

    def approve_request(
        self, request_type: str, request_id: Any, actor_id: Any, comment: str | None = None
    ) -> CommandResult:
        return self._transition(
            "approve_request", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.approve(request_type, rid, aid, comment),
        )

    def reject_request(
        self,
        request_type: str,
        request_id: Any,
        actor_id: Any,
        reason: str | None = None,
        comment: str | None = None,
    ) -> CommandResult:
        return self._transition(
            "reject_request", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.reject(request_type, rid, aid, reason, comment),
        )

    def enter_tentative_details(
        self, request_type: str, request_id: Any, actor_id: Any, payload: Mapping[str, Any]
    ) -> CommandResult:
        return self._transition(
            "enter_tentative_details", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.enter_tentative_details(request_type, rid, aid, payload),
        )

    def enter_final_details(
        self, request_type: str, request_id: Any, actor_id: Any, payload: Mapping[str, Any]
    ) -> CommandResult:
        return self._transition(
            "enter_final_details", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.enter_final_details(request_type, rid, aid, payload),
        )

    def confirm_join(
        self, request_type: str, request_id: Any, actor_id: Any, payload: Mapping[str, Any]
    ) -> CommandResult:
        return self._transition(
            "confirm_join", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.confirm_join(request_type, rid, aid, payload),
        )

    def delete_request(self, request_type: str, request_id: Any, actor_id: Any) -> CommandResult:
        return self._transition(
            "delete_request", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.delete_request(request_type, rid, aid),
        )

    def resend_request(
        self, request_type: str, request_id: Any, actor_id: Any, payload: Mapping[str, Any]
    ) -> CommandResult:
        return self._transition(
            "resend_request", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.resend_request(request_type, rid, aid, payload),
        )

    def update_candidate_details(
        self, request_type: str, request_id: Any, actor_id: Any, patch: Mapping[str, Any]
    ) -> CommandResult:
        return self._transition(
            "update_candidate_details", request_type, request_id, actor_id,
            lambda wf, rid, aid: wf.update_candidate_details(request_type, rid, aid, patch),
        )

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------

    def get_request(self, request_type: str, request_id: Any) -> CommandResult:
        return self._run(
            "get_request",
            lambda s: RequestSelector(s).get_request(
                request_type, _uuid("request_id", request_id)
            ),
            request_id=request_id,
            request_type=request_type,
        )

    def sent_requests(self, manager_id: Any) -> CommandResult:
        return self._run(
            "sent_requests",
            lambda s: RequestSelector(s).sent_requests(_uuid("manager_id", manager_id)),
            actor_id=manager_id,
        )

    def received_requests(self, actor_id: Any) -> CommandResult:
        scope = self.config.visibility.bu_head_received_scope
        return self._run(
            "received_requests",
            lambda s: RequestSelector(s).received_requests(_uuid("actor_id", actor_id), scope),
            actor_id=actor_id,
        )

    def candidates(self, actor_id: Any) -> CommandResult:
        return self._run(
            "candidates",
            lambda s: RequestSelector(s).candidates_for(_uuid("actor_id", actor_id)),
            actor_id=actor_id,
        )

    def tentative_queue(self, manager_id: Any) -> CommandResult:
        return self._run(
            "tentative_queue",
            lambda s: RequestSelector(s).tentative_queue(_uuid("manager_id", manager_id)),
            actor_id=manager_id,
        )

    def final_details_queue(self) -> CommandResult:
        return self._run("final_details_queue", lambda s: RequestSelector(s).final_details_queue())

    def join_confirmation_queue(self, actor_id: Any) -> CommandResult:
        return self._run(
            "join_confirmation_queue",
            lambda s: RequestSelector(s).join_confirmation_queue(
                _uuid("actor_id", actor_id), self.clock.today()
            ),
            actor_id=actor_id,
        )

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------

    def read_metrics(self, actor_id: Any, business_unit: str | None = None) -> CommandResult:
        return self._run(
            "read_metrics",
            lambda s: MetricsSelector(s).metrics_for_actor(
                _uuid("actor_id", actor_id), business_unit, self.clock.today()
            ),
            actor_id=actor_id,
        )

    def candidate_details(self, category: str, business_unit: str) -> CommandResult:
        return self._run(
            "candidate_details",
            lambda s: MetricsSelector(s).candidate_details(
                category, business_unit, self.clock.today()
            ),
        )

    def business_unit_stats(self) -> CommandResult:
        return self._run(
            "business_unit_stats",
            lambda s: MetricsSelector(s).business_unit_stats(self.clock.today()),
        )

    def admin_overview(self) -> CommandResult:
        return self._run("admin_overview", lambda s: MetricsSelector(s).admin_overview())

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    def get_team_budget(self, manager_id: Any) -> CommandResult:
        return self._run(
            "get_team_budget",
            lambda s: {
                "team_cost": self._ledger(s).get_team_budget(_uuid("manager_id", manager_id))
            },
            actor_id=manager_id,
        )

    def set_team_budget(self, manager_id: Any, value: Any) -> CommandResult:
        return self._run(
            "set_team_budget",
            lambda s: {
                "team_cost": self._ledger(s).set_team_budget(
                    _uuid("manager_id", manager_id), value
                )
            },
            actor_id=manager_id,
        )

    def reconcile_budget(self, manager_id: Any) -> CommandResult:
        def fn(session: Session) -> dict[str, Any]:
            result = self._ledger(session).reconcile(_uuid("manager_id", manager_id))
            return {
                "manager_id": result.manager_id,
                "cached_balance": result.cached_balance,
                "allocated": result.allocated,
                "consumed": result.consumed,
                "derived_balance": result.derived_balance,
                "consistent": result.is_consistent,
            }

        return self._run("reconcile_budget", fn, actor_id=manager_id)

    def budget_breakdown(self, manager_id: Any) -> CommandResult:
        return self._run(
            "budget_breakdown",
            lambda s: self._budget_selector(s).get_breakdown(_uuid("manager_id", manager_id)),
            actor_id=manager_id,
        )

    def existing_team(self, business_unit: str) -> CommandResult:
        return self._run(
            "existing_team",
            lambda s: self._budget_selector(s).existing_team(business_unit),
        )

    def business_unit_cost(self, business_unit: str) -> CommandResult:
        return self._run(
            "business_unit_cost",
            lambda s: self._budget_selector(s).business_unit_cost(business_unit),
        )

    # ------------------------------------------------------------------
    # Feeds
    # ------------------------------------------------------------------

    def _feed(self, command: str, manager_id: Any, limit: int | None) -> CommandResult:
        def fn(session: Session) -> Any:
            selector = NotificationSelector(session, self.config.feeds.default_limit)
            return getattr(selector, command)(_uuid("manager_id", manager_id), limit)

        return self._run(command, fn, actor_id=manager_id)

    def recent_approvals(self, manager_id: Any, limit: int | None = None) -> CommandResult:
        return self._feed("recent_approvals", manager_id, limit)

    def hired_notifications(self, manager_id: Any, limit: int | None = None) -> CommandResult:
        return self._feed("hired_notifications", manager_id, limit)

    def rejection_notifications(self, manager_id: Any, limit: int | None = None) -> CommandResult:
        return self._feed("rejection_notifications", manager_id, limit)
