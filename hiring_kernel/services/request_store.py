"""
RequestStore -- durable records for both hiring request kinds.

Responsibility:
    The only place rows of ``new_hire_requests`` and
    ``replacement_requests`` are inserted, patched or deleted.  The two
    tables share one lifecycle shape, so every method takes a request type
    discriminator and dispatches to the right model.

Architecture position:
    Kernel > Services.  Used by ``WorkflowService``; never decides whether
    a transition is legal.

Invariants enforced:
    - Skills are normalized to an ordered, de-duplicated list of strings
      before they reach a row, whatever shape the caller sent.
    - ``created_at`` is set once on insert; ``updated_at`` is bumped on
      every patch.
    - ``id``, ``hiring_manager_id``, ``business_unit`` and ``created_at``
      cannot be patched.

Failure modes:
    - ``RequestNotFoundError`` for an unknown id.
    - ``InvalidFieldValueError`` when a patch or filter names a column the
      model does not have, or an immutable one.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select

from hiring_kernel.domain.request_state import RequestType
from hiring_kernel.domain.skills import normalize_skills
from hiring_kernel.exceptions import InvalidFieldValueError, RequestNotFoundError
from hiring_kernel.models.hiring_request import REQUEST_MODELS, HiringRequestBase, model_for
from hiring_kernel.services.base import BaseService

IMMUTABLE_COLUMNS: frozenset[str] = frozenset({
    "id",
    "hiring_manager_id",
    "business_unit",
    "created_at",
    "created_by_id",
    "version_id",
})


class RequestStore(BaseService):
    """
    CRUD over both request tables.

    Contract:
        ``get`` with ``for_update=True`` issues ``SELECT ... FOR UPDATE``
        and refreshes the identity-map copy, so the caller reads the
        committed row it now holds the lock on.

    Non-goals:
        - No transition legality checks (see ``domain/workflow.py``).
        - No transaction control; every write only flushes.
    """

    def _column_names(self, model: type[HiringRequestBase]) -> frozenset[str]:
        return frozenset(c.key for c in model.__mapper__.column_attrs)

    def _check_columns(self, model: type[HiringRequestBase], names: Mapping[str, Any]) -> None:
        known = self._column_names(model)
        for name, value in names.items():
            if name not in known:
                raise InvalidFieldValueError(name, value, f"not a {model.__tablename__} column")

    def create(
        self,
        request_type: RequestType | str,
        values: Mapping[str, Any],
        created_by_id: UUID | None = None,
    ) -> HiringRequestBase:
        """Insert a request; assigns id and timestamps, normalizes skills."""
        model = model_for(request_type)
        data = dict(values)
        data["candidate_skills"] = list(normalize_skills(data.get("candidate_skills")))
        self._check_columns(model, data)

        now = self.clock.now()
        record = model(
            id=uuid4(),
            created_by_id=created_by_id or data.get("hiring_manager_id"),
        )
        record.created_at = now
        record.apply_changes(data, now)
        self.session.add(record)
        self._flush(model.__name__, record.id)
        return record

    def get(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        for_update: bool = False,
    ) -> HiringRequestBase:
        model = model_for(request_type)
        if for_update:
            stmt = (
                select(model)
                .where(model.id == request_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            record = self.session.execute(stmt).scalar_one_or_none()
        else:
            record = self.session.get(model, request_id)
        if record is None:
            raise RequestNotFoundError(model.request_type.value, request_id)
        return record

    def locate(
        self, request_id: UUID, request_type: RequestType | str | None = None
    ) -> HiringRequestBase:
        """Find a request by id, searching both tables when the type is unknown."""
        if request_type is not None:
            return self.get(request_type, request_id)
        for model in REQUEST_MODELS.values():
            record = self.session.get(model, request_id)
            if record is not None:
                return record
        raise RequestNotFoundError("any", request_id)

    def list(
        self,
        request_type: RequestType | str | None = None,
        **filters: Any,
    ) -> list[HiringRequestBase]:
        """
        Requests matching every ``column=value`` filter, newest update first.

        With no ``request_type`` both tables are scanned and merged.
        """
        models = (
            [model_for(request_type)] if request_type is not None
            else list(REQUEST_MODELS.values())
        )
        results: list[HiringRequestBase] = []
        for model in models:
            self._check_columns(model, filters)
            stmt = select(model)
            for name, value in filters.items():
                if hasattr(value, "value"):
                    value = value.value
                stmt = stmt.where(getattr(model, name) == value)
            results.extend(self.session.execute(stmt).scalars())
        results.sort(key=lambda r: r.updated_at, reverse=True)
        return results

    def update(
        self,
        request_type: RequestType | str,
        request_id: UUID,
        patch: Mapping[str, Any],
    ) -> HiringRequestBase:
        """Merge ``patch`` into the row and bump ``updated_at``."""
        record = self.get(request_type, request_id)
        changes = dict(patch)
        for name in changes:
            if name in IMMUTABLE_COLUMNS:
                raise InvalidFieldValueError(name, changes[name], "field is immutable")
        self._check_columns(type(record), changes)
        if "candidate_skills" in changes:
            changes["candidate_skills"] = list(normalize_skills(changes["candidate_skills"]))
        record.apply_changes(changes, self.clock.now())
        self._flush(type(record).__name__, record.id)
        return record

    def delete(self, request_type: RequestType | str, request_id: UUID) -> None:
        record = self.get(request_type, request_id)
        self.session.delete(record)
        self._flush(type(record).__name__, request_id)
