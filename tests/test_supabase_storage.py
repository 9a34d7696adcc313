"""
Test: Supabase backend — retry policy and query building, with a fake client.
"""
from datetime import datetime

import pytest

from sage.supabase_storage import SupabaseStorage, with_retry


class DbError(Exception):
    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


def flaky(errors, result="ok"):
    """Operation that raises each error in turn, then returns result."""
    remaining = list(errors)
    calls = []

    def operation():
        calls.append(1)
        if remaining:
            raise remaining.pop(0)
        return result

    operation.calls = calls
    return operation


class TestWithRetry:
    def test_success_first_try(self):
        sleeps = []
        assert with_retry(flaky([]), sleep=sleeps.append) == "ok"
        assert sleeps == []

    def test_transient_errors_retried_with_backoff(self):
        sleeps = []
        op = flaky([DbError("connection timeout"), DbError("internal", code="XX000")])
        assert with_retry(op, max_retries=3, base_delay=0.5, sleep=sleeps.append) == "ok"
        assert sleeps == [0.5, 1.0]
        assert len(op.calls) == 3

    def test_unique_violation_not_retried(self):
        sleeps = []
        op = flaky([DbError("duplicate key", code="23505")])
        with pytest.raises(DbError):
            with_retry(op, sleep=sleeps.append)
        assert len(op.calls) == 1
        assert sleeps == []

    def test_unknown_errors_not_retried(self):
        op = flaky([ValueError("bad input")])
        with pytest.raises(ValueError):
            with_retry(op, sleep=lambda s: None)
        assert len(op.calls) == 1

    def test_gives_up_after_max_retries(self):
        op = flaky([DbError("ECONNRESET")] * 5)
        with pytest.raises(DbError):
            with_retry(op, max_retries=3, sleep=lambda s: None)
        assert len(op.calls) == 3


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.ops = []

    def __getattr__(self, name):
        def record(*args):
            self.ops.append((name,) + args)
            return self
        return record

    def execute(self):
        self.client.executed.append((self.table, self.ops))
        return FakeResult(self.client.responses.pop(0) if self.client.responses else [])


class FakeClient:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)


class TestSupabaseStorage:
    def test_insert_serialises_datetimes(self):
        client = FakeClient([[{"id": 1, "title": "x"}]])
        store = SupabaseStorage(client=client)
        row = store._insert("assignments", {"id": None, "title": "x", "due_date": datetime(2024, 1, 2)})
        assert row == {"id": 1, "title": "x"}
        table, ops = client.executed[0]
        assert table == "assignments"
        assert ops == [("insert", {"title": "x", "due_date": "2024-01-02T00:00:00"})]

    def test_select_applies_filters(self):
        client = FakeClient([[{"id": 3, "role": "teacher"}]])
        store = SupabaseStorage(client=client)
        assert store.get_user_by_username("Teacher") == {"id": 3, "role": "teacher"}
        _, ops = client.executed[0]
        assert ops == [("select", "*"), ("eq", "username", "teacher")]

    def test_get_missing_row(self):
        store = SupabaseStorage(client=FakeClient([[]]))
        assert store.get_user(42) is None

    def test_update_and_delete(self):
        client = FakeClient([[{"id": 5, "status": "completed"}], [{"id": 5}]])
        store = SupabaseStorage(client=client)
        assert store.mark_assignment_complete(5)["status"] == "completed"
        assert store.delete_goal(5) is True
        update_ops = client.executed[0][1]
        assert update_ops[0][0] == "update"
        assert update_ops[0][1]["status"] == "completed"
        assert update_ops[1] == ("eq", "id", 5)
        assert client.executed[1][1] == [("delete",), ("eq", "id", 5)]

    def test_insert_without_rows_raises(self):
        store = SupabaseStorage(client=FakeClient([[]]))
        with pytest.raises(RuntimeError):
            store._insert("messages", {"content": "hi"})

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.setattr("sage.supabase_storage.SUPABASE_URL", "")
        with pytest.raises(RuntimeError):
            SupabaseStorage().client
