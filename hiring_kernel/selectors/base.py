"""
Module: hiring_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.  Selectors
    form the "Q" side of the kernel: dashboards, work queues, candidate lists,
    notification feeds and budget breakdowns are all read here.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    the pure domain/ predicates.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST NOT
      call session.add(), session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses or computed
      results, NOT raw ORM model instances.
    - One source of truth for membership: every category and queue filter is
      evaluated through the domain predicates on ``RequestState`` snapshots,
      so a dashboard count and its drill-down list cannot disagree.

Failure modes:
    - ``UserNotFoundError`` when a query is scoped to an unknown actor.
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterator
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hiring_kernel.exceptions import UserNotFoundError
from hiring_kernel.models.hiring_request import REQUEST_MODELS, HiringRequestBase
from hiring_kernel.models.user import User


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  They MUST NOT mutate any data.

    Non-goals:
        - BaseSelector does NOT define any domain query; subclasses do.
    """

    def __init__(self, session: Session):
        self.session = session

    def _user(self, user_id: UUID) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _requests(self, *criteria_by_model) -> Iterator[HiringRequestBase]:
        """Rows of both request tables, each filtered by ``criteria(model)``."""
        for model in REQUEST_MODELS.values():
            stmt = select(model)
            for criteria in criteria_by_model:
                stmt = stmt.where(criteria(model))
            yield from self.session.execute(stmt).scalars()
