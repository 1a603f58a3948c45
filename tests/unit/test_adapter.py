# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the record store adapter."""

from unittest.mock import MagicMock

import pytest

from coursepulse.domains.reporting.adapter import RecordStoreAdapter
from coursepulse.domains.reporting.errors import Diagnostic
from coursepulse.infrastructure.store import InMemoryRecordStore, RecordStore, StoreError
from tests.helpers import RecordingStore, seed_scenario_a


class _BrokenStore(InMemoryRecordStore):
    """Store whose course listing answers with the wrong type."""

    async def list_courses_by_teacher(self, teacher_id: str):
        return {"id": "c-1"}


@pytest.fixture
def adapter(scenario_a: RecordingStore) -> RecordStoreAdapter:
    """Create an adapter over the Scenario A store."""
    return RecordStoreAdapter(scenario_a, timeout_seconds=1.0)


class TestRecordStoreAdapter:
    """Tests for RecordStoreAdapter."""

    def test_in_memory_store_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryRecordStore(), RecordStore)

    @pytest.mark.asyncio
    async def test_lists_typed_records(self, adapter: RecordStoreAdapter) -> None:
        courses = await adapter.list_courses_by_teacher("t-1")
        students = await adapter.list_students_by_course("c-1")
        assignments = await adapter.list_assignments_by_course("c-1")
        submissions = await adapter.list_submissions("s-x", "c-1")
        by_assignment = await adapter.list_submissions_by_assignment("a-1")

        assert [c.id for c in courses] == ["c-1"]
        assert [s.id for s in students] == ["s-x", "s-y"]
        assert [a.id for a in assignments] == ["a-1", "a-2"]
        assert [s.id for s in submissions] == ["sub-1", "sub-2"]
        assert [s.id for s in by_assignment] == ["sub-1", "sub-3"]

    @pytest.mark.asyncio
    async def test_unknown_teacher_has_no_courses(self, adapter: RecordStoreAdapter) -> None:
        assert await adapter.list_courses_by_teacher("t-404") == []

    @pytest.mark.asyncio
    async def test_timeout_becomes_store_error(self) -> None:
        store = InMemoryRecordStore(latency=0.5)
        adapter = RecordStoreAdapter(store, timeout_seconds=0.01)

        with pytest.raises(StoreError) as exc_info:
            await adapter.list_students_by_course("c-1")

        assert exc_info.value.operation == "list_students_by_course"
        assert exc_info.value.context == {"course_id": "c-1"}
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self, scenario_a: RecordingStore) -> None:
        scenario_a.fail("list_submissions", "s-x", ConnectionError("socket closed"))
        adapter = RecordStoreAdapter(scenario_a)

        with pytest.raises(StoreError) as exc_info:
            await adapter.list_submissions("s-x", "c-1")

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.context == {"student_id": "s-x", "course_id": "c-1"}
        assert str(exc_info.value) == "list_submissions(student_id=s-x, course_id=c-1): socket closed"

    @pytest.mark.asyncio
    async def test_store_error_passes_through(self, scenario_a: RecordingStore) -> None:
        original = StoreError("quota exceeded", "list_courses_by_teacher", teacher_id="t-1")
        scenario_a.fail("list_courses_by_teacher", "t-1", original)
        adapter = RecordStoreAdapter(scenario_a)

        with pytest.raises(StoreError) as exc_info:
            await adapter.list_courses_by_teacher("t-1")

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_non_list_result(self) -> None:
        adapter = RecordStoreAdapter(_BrokenStore())

        with pytest.raises(StoreError) as exc_info:
            await adapter.list_courses_by_teacher("t-1")

        assert "expected a list" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_malformed_documents_excluded(self) -> None:
        store = InMemoryRecordStore()
        store.put_course({"id": "c-1", "teacher_id": "t-1"})
        store.put_assignment({"id": "a-1", "course_id": "c-1"})
        store.put_assignment({"id": "a-2", "course_id": "c-1", "max_points": -5})
        adapter = RecordStoreAdapter(store)
        diagnostics: list[Diagnostic] = []

        assignments = await adapter.list_assignments_by_course("c-1", diagnostics)

        assert [a.id for a in assignments] == ["a-1"]
        assert len(diagnostics) == 1
        assert diagnostics[0].kind == "computation_error"
        assert diagnostics[0].record_id == "a-2"
        assert diagnostics[0].course_id == "c-1"

    @pytest.mark.asyncio
    async def test_malformed_documents_excluded_without_diagnostics(self) -> None:
        store = InMemoryRecordStore()
        store.put_student({"id": "s-1", "course_ids": ["c-1"], "name": 42})
        store.put_student({"id": "s-2", "course_ids": ["c-1"]})
        adapter = RecordStoreAdapter(store)

        students = await adapter.list_students_by_course("c-1")

        assert [s.id for s in students] == ["s-2"]

    def test_subscribe_passes_through(self) -> None:
        store = MagicMock()
        unsubscribe = MagicMock()
        store.subscribe_to_course_changes.return_value = unsubscribe
        listener = MagicMock()
        adapter = RecordStoreAdapter(store)

        result = adapter.subscribe_to_course_changes("t-1", listener)

        assert result is unsubscribe
        store.subscribe_to_course_changes.assert_called_once_with("t-1", listener)

    @pytest.mark.asyncio
    async def test_reads_are_snapshots(self) -> None:
        store = InMemoryRecordStore()
        seed_scenario_a(store)
        adapter = RecordStoreAdapter(store)

        docs = await store.list_courses_by_teacher("t-1")
        docs[0]["name"] = "Changed"
        courses = await adapter.list_courses_by_teacher("t-1")

        assert courses[0].name == "Algebra"
