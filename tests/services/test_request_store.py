"""
Tests for RequestStore -- CRUD over the two request tables.
"""

from uuid import uuid4

import pytest

from hiring_kernel.domain.request_state import ApprovalStatus, RequestType
from hiring_kernel.domain.workflow import initial_fields
from hiring_kernel.exceptions import InvalidFieldValueError, RequestNotFoundError
from hiring_kernel.models.hiring_request import NewHireRequest, ReplacementRequest
from hiring_kernel.services.request_store import RequestStore


@pytest.fixture
def store(session, deterministic_clock) -> RequestStore:
    return RequestStore(session, deterministic_clock)


@pytest.fixture
def values(bu_head, deterministic_clock):
    def _values(**extra):
        return {
            **initial_fields(deterministic_clock.now()),
            "hiring_manager_id": bu_head.id,
            "business_unit": bu_head.business_unit,
            **extra,
        }

    return _values


class TestCreate:
    def test_assigns_id_and_timestamps(self, store, values, bu_head, deterministic_clock):
        record = store.create(
            RequestType.NEW_HIRE, values(position_title="SRE"), created_by_id=bu_head.id
        )

        assert isinstance(record, NewHireRequest)
        assert record.id is not None
        assert record.created_at == deterministic_clock.now()
        assert record.updated_at == deterministic_clock.now()
        assert record.created_by_id == bu_head.id
        assert record.approval_status == "Pending"

    def test_created_by_defaults_to_manager(self, store, values, bu_head):
        record = store.create("new-hire", values(position_title="SRE"))
        assert record.created_by_id == bu_head.id

    def test_skills_normalized_on_insert(self, store, values):
        record = store.create(
            "replacement",
            values(outgoing_employee_name="R. Das", candidate_skills="['go', 'go', 'rust']"),
        )
        assert isinstance(record, ReplacementRequest)
        assert record.candidate_skills == ["go", "rust"]

    def test_missing_skills_stored_as_empty_list(self, store, values):
        record = store.create("new-hire", values(position_title="SRE"))
        assert record.candidate_skills == []

    def test_unknown_column_refused(self, store, values):
        with pytest.raises(InvalidFieldValueError) as exc_info:
            store.create("new-hire", values(position_title="SRE", favourite_colour="blue"))
        assert exc_info.value.field == "favourite_colour"

    def test_replacement_columns_not_on_new_hire(self, store, values):
        with pytest.raises(InvalidFieldValueError):
            store.create("new-hire", values(position_title="SRE", leaving_reason="x"))


class TestGetAndLocate:
    def test_get_unknown(self, store):
        missing = uuid4()
        with pytest.raises(RequestNotFoundError) as exc_info:
            store.get("replacement", missing)
        assert exc_info.value.request_type == "replacement"
        assert exc_info.value.request_id == missing

    def test_get_for_update_returns_same_identity(self, store, values):
        record = store.create("new-hire", values(position_title="SRE"))
        assert store.get("new-hire", record.id, for_update=True) is record

    def test_locate_searches_both_tables(self, store, values):
        record = store.create("replacement", values(outgoing_employee_name="R. Das"))
        assert store.locate(record.id) is record
        assert store.locate(record.id, "replacement") is record

    def test_locate_unknown(self, store):
        with pytest.raises(RequestNotFoundError):
            store.locate(uuid4())


class TestList:
    def test_merges_tables_newest_first(self, store, values, deterministic_clock):
        first = store.create("new-hire", values(position_title="A"))
        deterministic_clock.tick()
        second = store.create("replacement", values(outgoing_employee_name="B"))
        deterministic_clock.tick()
        third = store.create("new-hire", values(position_title="C"))

        assert store.list() == [third, second, first]
        assert store.list("new-hire") == [third, first]

    def test_filters_accept_enums(self, store, values):
        pending = store.create("new-hire", values(position_title="A"))
        store.create(
            "new-hire",
            values(position_title="B", approval_status=ApprovalStatus.REJECTED),
        )
        assert store.list(approval_status=ApprovalStatus.PENDING) == [pending]

    def test_unknown_filter_refused(self, store):
        with pytest.raises(InvalidFieldValueError):
            store.list(colour="blue")


class TestUpdate:
    def test_patch_bumps_updated_at(self, store, values, deterministic_clock):
        record = store.create("new-hire", values(position_title="A"))
        created = record.created_at
        later = deterministic_clock.tick()

        store.update("new-hire", record.id, {"candidate_name": "New", "candidate_skills": "x,y"})

        assert record.candidate_name == "New"
        assert record.candidate_skills == ["x", "y"]
        assert record.updated_at == later
        assert record.created_at == created

    @pytest.mark.parametrize(
        "column", ["id", "hiring_manager_id", "business_unit", "created_at", "version_id"]
    )
    def test_immutable_columns(self, store, values, column):
        record = store.create("new-hire", values(position_title="A"))
        with pytest.raises(InvalidFieldValueError) as exc_info:
            store.update("new-hire", record.id, {column: "x"})
        assert exc_info.value.field == column

    def test_version_bumps_on_update(self, store, values):
        record = store.create("new-hire", values(position_title="A"))
        before = record.version_id
        store.update("new-hire", record.id, {"candidate_name": "B"})
        assert record.version_id == before + 1


class TestDelete:
    def test_delete(self, store, values):
        record = store.create("new-hire", values(position_title="A"))
        store.delete("new-hire", record.id)
        with pytest.raises(RequestNotFoundError):
            store.get("new-hire", record.id)

    def test_delete_unknown(self, store):
        with pytest.raises(RequestNotFoundError):
            store.delete("new-hire", uuid4())
