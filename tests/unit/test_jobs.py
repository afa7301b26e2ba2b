"""Tests for background job completion rules."""

from __future__ import annotations

from tuidb.config import config_for_file
from tuidb.db.exceptions import QueryError
from tuidb.services.jobs import DeferredJobRunner, Job, SyncJobRunner
from tuidb.services.registry import ConnectionRegistry


class TestJobRunner:
    """Exactly one callback runs per job."""

    def test_success(self):
        runner = SyncJobRunner()
        seen = []
        runner.submit(Job("ok", lambda: 42, on_success=seen.append, on_error=seen.append))
        assert seen == [42]
        assert not runner.busy

    def test_error(self):
        runner = SyncJobRunner()
        errors = []

        def fail():
            raise QueryError("boom")

        runner.submit(Job("bad", fail, on_success=lambda r: errors.append("success"), on_error=errors.append))
        assert len(errors) == 1
        assert isinstance(errors[0], QueryError)

    def test_pending_count_is_reported(self):
        runner = DeferredJobRunner()
        counts = []
        runner.set_change_callback(counts.append)

        runner.submit(Job("a", lambda: None))
        runner.submit(Job("b", lambda: None))
        assert runner.busy
        runner.run_pending()

        assert counts == [1, 2, 1, 0]
        assert not runner.busy


class TestStaleJobs:
    """Results for a connection closed meanwhile are dropped."""

    def test_fetch_discarded_after_close(self, users_db):
        registry = ConnectionRegistry()
        handle = registry.open(config_for_file(str(users_db)))
        runner = DeferredJobRunner()
        seen = []

        runner.submit(
            Job(
                "fetch",
                lambda: handle.run(lambda raw: raw.execute("SELECT * FROM users").fetchall()),
                on_success=seen.append,
                on_error=seen.append,
                handle=handle,
            )
        )
        registry.close(handle)
        runner.run_pending()

        assert seen == []
        assert not runner.busy

    def test_unbound_job_still_completes(self):
        runner = DeferredJobRunner()
        seen = []
        runner.submit(Job("free", lambda: "x", on_success=seen.append))
        runner.run_pending()
        assert seen == ["x"]
