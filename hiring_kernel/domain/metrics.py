"""
Metric predicates (``hiring_kernel.domain.metrics``).

Responsibility
--------------
Classifies a ``RequestState`` into exactly one lifecycle bucket, and maps
each dashboard category tag onto that classification.  The dashboard
counters and the candidate drill-down lists both call ``matches`` so a
count and its list can never disagree.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  ``today`` is passed in.

Invariants enforced
-------------------
* ``classify`` is total: every state maps to exactly one ``LifecycleBucket``.
* The lifecycle categories (every ``MetricCategory`` except
  ``TO_BE_RATIONALIZED``) are pairwise disjoint.
* Rejected requests are in no dashboard bucket.  Requests awaiting HR or
  Admin approval are both counted as ``hiring-ticket-raised``.
* ``to-be-rationalized`` is an overlay on replacement requests: the
  outgoing employee's seat is still open while the replacement is neither
  rejected nor joined.  It deliberately overlaps the lifecycle buckets.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from enum import Enum

from hiring_kernel.domain.request_state import RequestState, RequestType
from hiring_kernel.exceptions import UnknownMetricCategoryError


class LifecycleBucket(str, Enum):
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED_YET_TO_HIRE = "approved_yet_to_hire"
    SELECTED_YET_TO_OFFER = "selected_yet_to_offer"
    OFFERED_YET_TO_JOIN = "offered_yet_to_join"
    OFFERED_JOIN_DATE_AHEAD = "offered_join_date_ahead"
    JOINED = "joined"
    NOT_JOINED = "not_joined"
    REJECTED = "rejected"


def classify(state: RequestState, today: date) -> LifecycleBucket:
    """Place a request in its single lifecycle bucket."""
    if state.is_rejected:
        return LifecycleBucket.REJECTED
    if state.has_joined:
        return LifecycleBucket.JOINED
    if state.join_confirmed:
        return LifecycleBucket.NOT_JOINED
    if state.hr_head_final_entered:
        if state.exact_join_date is not None and state.exact_join_date <= today:
            return LifecycleBucket.OFFERED_YET_TO_JOIN
        return LifecycleBucket.OFFERED_JOIN_DATE_AHEAD
    if state.bu_head_tentative_entered:
        return LifecycleBucket.SELECTED_YET_TO_OFFER
    if state.admin_approved:
        return LifecycleBucket.APPROVED_YET_TO_HIRE
    return LifecycleBucket.AWAITING_APPROVAL


class MetricCategory(str, Enum):
    """Dashboard categories, valued by their drill-down tag."""

    HIRING_TICKET_RAISED = "hiring-ticket-raised"
    APPROVED_YET_TO_HIRE = "approved-yet-to-hire"
    SELECTED_YET_TO_OFFER = "selected-yet-to-offer"
    OFFERED_YET_TO_JOIN = "offered-yet-to-join"
    EXISTING_TEAM = "existing-team"
    TO_BE_RATIONALIZED = "to-be-rationalized"

    @property
    def counter_name(self) -> str:
        """camelCase key used in the metrics struct, e.g. ``hiringTicketRaised``."""
        head, *rest = self.value.split("-")
        return head + "".join(part.capitalize() for part in rest)

    @classmethod
    def parse(cls, tag: MetricCategory | str) -> MetricCategory:
        if isinstance(tag, cls):
            return tag
        text = str(tag).strip()
        for member in cls:
            if text in (member.value, member.counter_name, member.name):
                return member
        raise UnknownMetricCategoryError(text, tuple(m.value for m in cls))


_CATEGORY_BUCKETS: dict[MetricCategory, LifecycleBucket] = {
    MetricCategory.HIRING_TICKET_RAISED: LifecycleBucket.AWAITING_APPROVAL,
    MetricCategory.APPROVED_YET_TO_HIRE: LifecycleBucket.APPROVED_YET_TO_HIRE,
    MetricCategory.SELECTED_YET_TO_OFFER: LifecycleBucket.SELECTED_YET_TO_OFFER,
    MetricCategory.OFFERED_YET_TO_JOIN: LifecycleBucket.OFFERED_YET_TO_JOIN,
    MetricCategory.EXISTING_TEAM: LifecycleBucket.JOINED,
}

LIFECYCLE_CATEGORIES: tuple[MetricCategory, ...] = tuple(_CATEGORY_BUCKETS)


def is_to_be_rationalized(state: RequestState, today: date) -> bool:
    return (
        state.request_type == RequestType.REPLACEMENT
        and not state.is_rejected
        and not state.has_joined
    )


def _bucket_predicate(bucket: LifecycleBucket) -> Callable[[RequestState, date], bool]:
    def predicate(state: RequestState, today: date) -> bool:
        return classify(state, today) == bucket

    return predicate


CATEGORY_PREDICATES: dict[MetricCategory, Callable[[RequestState, date], bool]] = {
    **{cat: _bucket_predicate(bucket) for cat, bucket in _CATEGORY_BUCKETS.items()},
    MetricCategory.TO_BE_RATIONALIZED: is_to_be_rationalized,
}


def matches(category: MetricCategory, state: RequestState, today: date) -> bool:
    """True if ``state`` belongs in ``category`` on ``today``."""
    return CATEGORY_PREDICATES[category](state, today)


def lifecycle_categories_for(state: RequestState, today: date) -> list[MetricCategory]:
    """All lifecycle categories a state falls into (never more than one)."""
    return [cat for cat in LIFECYCLE_CATEGORIES if matches(cat, state, today)]
