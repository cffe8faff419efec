"""Tests for cleaners.services.session_store — bounded session memory."""

import threading

import pytest

from cleaners.core import Role, SessionMessage, StoreUnavailable
from cleaners.services.session_store import SessionStore


class TestAddAndRead:
    def test_unknown_session_is_empty(self):
        store = SessionStore()
        assert store.get_history("missing") == []
        assert "missing" not in store

    def test_session_created_on_first_append(self):
        store = SessionStore()
        store.add_message("s1", Role.USER, "hello")
        assert "s1" in store
        assert store.get_history("s1") == [SessionMessage(Role.USER, "hello")]

    def test_preserves_insertion_order(self):
        store = SessionStore()
        store.add_message("s1", Role.USER, "q1")
        store.add_message("s1", Role.ASSISTANT, "a1")
        store.add_message("s1", Role.USER, "q2")
        assert [m.content for m in store.get_history("s1")] == ["q1", "a1", "q2"]

    def test_accepts_role_strings(self):
        store = SessionStore()
        store.add_message("s1", "assistant", "hi")
        assert store.get_history("s1")[0].role is Role.ASSISTANT

    def test_history_is_independent_copy(self):
        store = SessionStore()
        store.add_message("s1", Role.USER, "hello")
        history = store.get_history("s1")
        history.append(SessionMessage(Role.ASSISTANT, "injected"))
        history.clear()
        assert len(store.get_history("s1")) == 1

    def test_sessions_are_isolated(self):
        store = SessionStore()
        store.add_message("a", Role.USER, "for a")
        store.add_message("b", Role.USER, "for b")
        assert [m.content for m in store.get_history("a")] == ["for a"]
        assert [m.content for m in store.get_history("b")] == ["for b"]
        assert store.session_count() == 2


class TestEviction:
    def test_never_exceeds_max_size(self):
        store = SessionStore(max_size=10)
        for i in range(25):
            store.add_message("s1", Role.USER, f"m{i}")
            assert len(store.get_history("s1")) <= 10

    def test_evicts_oldest_first(self):
        store = SessionStore(max_size=10)
        for i in range(1, 12):
            store.add_message("s1", Role.USER, f"m{i}")
        contents = [m.content for m in store.get_history("s1")]
        assert contents == [f"m{i}" for i in range(2, 12)]

    def test_max_size_one(self):
        store = SessionStore(max_size=1)
        store.add_message("s1", Role.USER, "first")
        store.add_message("s1", Role.ASSISTANT, "second")
        assert store.get_history("s1") == [SessionMessage(Role.ASSISTANT, "second")]

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_non_positive_max_size(self, size):
        with pytest.raises(ValueError):
            SessionStore(max_size=size)


class TestClear:
    def test_clear_removes_session(self):
        store = SessionStore()
        store.add_message("s1", Role.USER, "hello")
        store.clear_session("s1")
        assert store.get_history("s1") == []
        assert "s1" not in store

    def test_clear_is_idempotent(self):
        store = SessionStore()
        store.clear_session("never-existed")
        store.add_message("s1", Role.USER, "hello")
        store.clear_session("s1")
        store.clear_session("s1")
        assert store.session_count() == 0

    def test_clear_then_append_starts_fresh(self):
        store = SessionStore()
        store.add_message("s1", Role.USER, "old")
        store.clear_session("s1")
        store.add_message("s1", Role.USER, "new")
        assert [m.content for m in store.get_history("s1")] == ["new"]


class TestClose:
    def test_operations_fail_after_close(self):
        store = SessionStore()
        store.add_message("s1", Role.USER, "hello")
        store.close()
        with pytest.raises(StoreUnavailable):
            store.add_message("s1", Role.USER, "again")
        with pytest.raises(StoreUnavailable):
            store.get_history("s1")
        assert store.session_count() == 0


class TestConcurrency:
    def test_concurrent_appends_keep_bound(self):
        store = SessionStore(max_size=10)
        n_threads, per_thread = 8, 200

        def worker(tid):
            for i in range(per_thread):
                store.add_message("shared", Role.USER, f"{tid}-{i}")
                assert len(store.get_history("shared")) <= 10

        threads = [threading.Thread(target=worker, args=(t,)) for t in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = store.get_history("shared")
        assert len(history) == 10
        # Each thread's surviving messages keep their relative order
        for tid in range(n_threads):
            seq = [int(m.content.split("-")[1]) for m in history if m.content.startswith(f"{tid}-")]
            assert seq == sorted(seq)

    def test_concurrent_distinct_sessions(self):
        store = SessionStore(max_size=5)

        def worker(sid):
            for i in range(3):
                store.add_message(sid, Role.USER, str(i))

        threads = [threading.Thread(target=worker, args=(f"s{i}",)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.session_count() == 20
        assert all(len(store.get_history(f"s{i}")) == 3 for i in range(20))
