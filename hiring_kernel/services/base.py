"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service.  Services receive a SQLAlchemy ``Session``
    and an injectable ``Clock``; they persist through ``session.flush()``
    and never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell around the pure workflow engine
    in ``hiring_kernel.domain``.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back.  The caller
      (``session_scope``, the command gateway, or a test fixture) owns
      commit/rollback, so a multi-step command (resend, confirm join plus
      budget debit) is atomic.
    - Lost updates are reported, not swallowed: a ``StaleDataError`` raised
      by a versioned flush surfaces as ``OptimisticLockError``.

Failure modes:
    - ``OptimisticLockError`` from ``_flush`` when a concurrent transaction
      changed a versioned row first.
"""

from __future__ import annotations

from abc import ABC
from typing import Any

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hiring_kernel.domain.clock import Clock, SystemClock
from hiring_kernel.exceptions import OptimisticLockError


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read models -- those belong in
          ``hiring_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _flush(self, entity_type: str, entity_id: Any) -> None:
        """Flush pending changes, mapping a version conflict to a typed error."""
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise OptimisticLockError(entity_type, entity_id) from exc
