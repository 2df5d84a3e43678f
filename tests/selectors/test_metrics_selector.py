"""
Tests for MetricsSelector -- dashboard counters and drill-down lists.

The counter for a category and the length of its drill-down list must
always agree, because both evaluate the same predicate.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hiring_kernel.domain.metrics import MetricCategory
from hiring_kernel.exceptions import (
    MissingFieldError,
    UnauthorizedActorError,
    UnknownMetricCategoryError,
    UserNotFoundError,
)
from hiring_kernel.selectors.metrics_selector import MetricsSelector

TODAY = date(2025, 1, 15)
PAST_JOIN = {"exact_join_date": "2025-01-10", "exact_salary": "1200000", "employee_id": "E2"}


@pytest.fixture
def metrics(session) -> MetricsSelector:
    return MetricsSelector(session)


@pytest.fixture
def populated(drive, workflow, hr_head, other_bu_head):
    """One Engineering request in every lifecycle position, plus noise."""
    rows = {
        "submitted": drive("submitted"),
        "hr_approved": drive("hr_approved"),
        "admin_approved": drive("admin_approved"),
        "tentative": drive("tentative"),
        "offered": drive("final", final=PAST_JOIN),
        "offered_ahead": drive("final"),
        "joined": drive("joined"),
        "replacement": drive("submitted", request_type="replacement"),
        "rejected": drive("submitted"),
        "not_joined": drive("final", final=PAST_JOIN),
        "other_unit": drive("joined", owner=other_bu_head),
    }
    workflow.reject("new-hire", rows["rejected"].id, hr_head.id, "No headcount")
    workflow.confirm_join(
        "new-hire", rows["not_joined"].id, rows["not_joined"].hiring_manager_id,
        {"status": "Not_Joined"},
    )
    return rows


class TestComputeBUMetrics:
    def test_counters(self, metrics, populated):
        result = metrics.compute_bu_metrics("Engineering", TODAY)

        assert result.hiring_ticket_raised == 3
        assert result.approved_yet_to_hire == 1
        assert result.selected_yet_to_offer == 1
        assert result.offered_yet_to_join == 1
        assert result.existing_team == 1
        assert result.to_be_rationalized == 1
        assert result.team_cost == Decimal("1200000")

    def test_to_dict_uses_camel_case(self, metrics, populated):
        data = metrics.compute_bu_metrics("Engineering", TODAY).to_dict()
        assert set(data) == {
            "hiringTicketRaised",
            "approvedYetToHire",
            "selectedYetToOffer",
            "offeredYetToJoin",
            "existingTeam",
            "toBeRationalized",
            "teamCost",
        }

    def test_offer_moves_into_counter_when_join_date_arrives(self, metrics, populated):
        before = metrics.compute_bu_metrics("Engineering", TODAY)
        after = metrics.compute_bu_metrics("Engineering", date(2025, 2, 1))
        assert after.offered_yet_to_join == before.offered_yet_to_join + 1

    def test_empty_unit(self, metrics):
        result = metrics.compute_bu_metrics("Nowhere", TODAY)
        assert all(result.count(category) == 0 for category in MetricCategory)
        assert result.team_cost == 0

    @pytest.mark.parametrize("category", list(MetricCategory))
    def test_count_equals_drill_down_length(self, metrics, populated, category):
        counters = metrics.compute_bu_metrics("Engineering", TODAY)
        details = metrics.candidate_details(category, "Engineering", TODAY)
        assert counters.count(category) == len(details)


class TestCandidateDetails:
    def test_existing_team_lists_joined(self, metrics, populated):
        details = metrics.candidate_details("existing-team", "Engineering", TODAY)
        assert [d.id for d in details] == [populated["joined"].id]

    def test_accepts_counter_name(self, metrics, populated):
        details = metrics.candidate_details("toBeRationalized", "Engineering", TODAY)
        assert [d.id for d in details] == [populated["replacement"].id]
        assert details[0].position_title == "Replacement for R. Das"

    def test_newest_first(self, metrics, populated):
        details = metrics.candidate_details(
            MetricCategory.HIRING_TICKET_RAISED, "Engineering", TODAY
        )
        stamps = [d.updated_at for d in details]
        assert stamps == sorted(stamps, reverse=True)

    def test_unknown_category(self, metrics):
        with pytest.raises(UnknownMetricCategoryError):
            metrics.candidate_details("interviews", "Engineering", TODAY)


class TestMetricsForActor:
    def test_bu_head_defaults_to_own_unit(self, metrics, populated, bu_head):
        result = metrics.metrics_for_actor(bu_head.id, None, TODAY)
        assert result.business_unit == "Engineering"
        assert result.existing_team == 1

    def test_bu_head_may_not_read_other_unit(self, metrics, bu_head):
        with pytest.raises(UnauthorizedActorError):
            metrics.metrics_for_actor(bu_head.id, "Sales", TODAY)

    def test_hr_head_reads_any_unit(self, metrics, populated, hr_head):
        result = metrics.metrics_for_actor(hr_head.id, "Sales", TODAY)
        assert result.existing_team == 1

    def test_unit_required_without_home_unit(self, metrics, admin):
        with pytest.raises(MissingFieldError) as exc_info:
            metrics.metrics_for_actor(admin.id, None, TODAY)
        assert exc_info.value.field == "business_unit"

    def test_unknown_actor(self, metrics):
        with pytest.raises(UserNotFoundError):
            metrics.metrics_for_actor(uuid4(), "Engineering", TODAY)


class TestOverviews:
    def test_business_unit_stats(self, metrics, populated):
        stats = {s.business_unit: s for s in metrics.business_unit_stats(TODAY)}

        engineering = stats["Engineering"]
        # offered, offered_ahead, joined, not_joined
        assert engineering.total_hires == 4
        assert engineering.confirmed_joins == 1
        assert engineering.rejected == 1
        # submitted, hr_approved, admin_approved, tentative, replacement
        assert engineering.pending == 5

        assert stats["Sales"].confirmed_joins == 1
        assert list(stats) == sorted(stats)

    def test_admin_overview(self, metrics, populated):
        overview = metrics.admin_overview()
        assert overview.total_hires == 5
        assert overview.pending_requests == 5
        assert overview.pending_admin_approval == 1
