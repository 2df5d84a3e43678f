"""
Command payloads (``hiring_kernel.domain.payloads``).

Responsibility
--------------
Parses the loosely-typed mappings a UI sends for each command into frozen,
fully validated value objects.  Every validation failure names the field
it concerns (``MissingFieldError`` / ``InvalidFieldValueError``).

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from hiring_kernel.domain.money import to_money
from hiring_kernel.domain.request_state import JoinStatus, RequestType
from hiring_kernel.domain.skills import normalize_skills
from hiring_kernel.exceptions import InvalidFieldValueError, MissingFieldError

# Legacy replacement-form names mapped onto the shared candidate columns.
_FIELD_ALIASES: dict[str, str] = {
    "replacement_candidate_name": "candidate_name",
    "replacement_current_designation": "candidate_designation",
    "replacement_experience_years": "candidate_experience_years",
    "replacement_skills": "candidate_skills",
}

COMMON_DESCRIPTIVE_FIELDS: frozenset[str] = frozenset({
    "candidate_name",
    "candidate_designation",
    "candidate_experience_years",
    "candidate_skills",
    "ctc_offered",
    "joining_date",
})

DESCRIPTIVE_FIELDS: dict[RequestType, frozenset[str]] = {
    RequestType.NEW_HIRE: COMMON_DESCRIPTIVE_FIELDS | {"position_title"},
    RequestType.REPLACEMENT: COMMON_DESCRIPTIVE_FIELDS | {
        "outgoing_employee_name",
        "outgoing_employee_id",
        "last_working_date",
        "leaving_reason",
    },
}

_DATE_FIELDS = frozenset({"joining_date", "last_working_date"})
_MONEY_FIELDS = frozenset({"ctc_offered", "candidate_experience_years"})


def _canonical(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {_FIELD_ALIASES.get(k, k): v for k, v in payload.items()}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_text(payload: Mapping[str, Any], name: str, action: str | None = None) -> str:
    value = payload.get(name)
    if _is_blank(value):
        raise MissingFieldError(name, action)
    return str(value).strip()


def optional_text(payload: Mapping[str, Any], name: str) -> str | None:
    value = payload.get(name)
    if _is_blank(value):
        return None
    return str(value).strip()


def parse_date(name: str, value: Any) -> date | None:
    """
    Accept ``date``, ``datetime`` or an ISO-8601 date or datetime string.

    The whole string must parse; a datetime's time part is dropped.
    """
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        if len(text) > 10 and text[10] in "T ":
            try:
                return datetime.fromisoformat(text).date()
            except ValueError as exc:
                raise InvalidFieldValueError(
                    name, value, "expected an ISO date (YYYY-MM-DD)"
                ) from exc
    raise InvalidFieldValueError(name, value, "expected an ISO date (YYYY-MM-DD)")


def parse_amount(name: str, value: Any, *, positive: bool = False) -> Decimal | None:
    if _is_blank(value):
        return None
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise InvalidFieldValueError(name, value, "expected a number") from exc
    if amount < 0:
        raise InvalidFieldValueError(name, value, "must not be negative")
    if positive and amount == 0:
        raise InvalidFieldValueError(name, value, "must be greater than zero")
    return amount


def parse_descriptive_fields(
    request_type: RequestType, payload: Mapping[str, Any], *, partial: bool = False
) -> dict[str, Any]:
    """
    Validate the descriptive (non-workflow) fields of a request.

    With ``partial=True`` only the keys present in ``payload`` are returned
    (used for edits); any key outside ``DESCRIPTIVE_FIELDS`` is refused.
    """
    data = _canonical(payload)
    allowed = DESCRIPTIVE_FIELDS[request_type]
    if partial:
        for name in data:
            if name not in allowed:
                raise InvalidFieldValueError(
                    name, data[name], "field cannot be edited on this request"
                )

    values: dict[str, Any] = {}
    for name in sorted(allowed):
        if partial and name not in data:
            continue
        raw = data.get(name)
        if name == "candidate_skills":
            values[name] = list(normalize_skills(raw, name))
        elif name in _DATE_FIELDS:
            values[name] = parse_date(name, raw)
        elif name in _MONEY_FIELDS:
            values[name] = parse_amount(name, raw)
        else:
            values[name] = optional_text(data, name)
    return values


@dataclass(frozen=True)
class SubmissionPayload:
    """Validated descriptive payload for a new or resent request."""

    request_type: RequestType
    business_unit: str | None
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(
        cls, request_type: RequestType | str, payload: Mapping[str, Any]
    ) -> SubmissionPayload:
        rtype = RequestType.parse(request_type)
        data = _canonical(payload)
        if rtype == RequestType.NEW_HIRE:
            require_text(data, "position_title", "submit")
        else:
            require_text(data, "outgoing_employee_name", "submit")
        return cls(
            request_type=rtype,
            business_unit=optional_text(data, "business_unit"),
            fields=parse_descriptive_fields(rtype, data),
        )


@dataclass(frozen=True)
class TentativeDetails:
    tentative_candidate_name: str
    tentative_join_date: date

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> TentativeDetails:
        action = "enter tentative details"
        name = require_text(payload, "tentative_candidate_name", action)
        if _is_blank(payload.get("tentative_join_date")):
            raise MissingFieldError("tentative_join_date", action)
        join_date = parse_date("tentative_join_date", payload["tentative_join_date"])
        return cls(tentative_candidate_name=name, tentative_join_date=join_date)


@dataclass(frozen=True)
class FinalDetails:
    exact_join_date: date
    exact_salary: Decimal
    employee_id: str

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> FinalDetails:
        action = "enter final details"
        for name in ("exact_join_date", "exact_salary", "employee_id"):
            if _is_blank(payload.get(name)):
                raise MissingFieldError(name, action)
        return cls(
            exact_join_date=parse_date("exact_join_date", payload["exact_join_date"]),
            exact_salary=parse_amount("exact_salary", payload["exact_salary"], positive=True),
            employee_id=require_text(payload, "employee_id", action),
        )


@dataclass(frozen=True)
class JoinConfirmation:
    status: JoinStatus
    notes: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> JoinConfirmation:
        if _is_blank(payload.get("status")):
            raise MissingFieldError("status", "confirm join")
        return cls(
            status=JoinStatus.parse_outcome(payload["status"]),
            notes=optional_text(payload, "notes"),
        )
