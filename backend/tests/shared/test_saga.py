"""
Tests for the saga runner.

Covers ordering, reverse compensation, error translation and cancellation.
"""

import asyncio

import pytest

from raceplanner.shared.errors import DependencyError, NotFoundError
from raceplanner.shared.saga import Saga
from raceplanner.stores.base import BlobStoreError, RecordStoreError


def _recorder(log: list, label: str, result=None, error: Exception = None):
    async def action():
        log.append(label)
        if error is not None:
            raise error
        return result
    return action


# =============================================================================
# Happy path
# =============================================================================

class TestSagaSuccess:

    async def test_runs_steps_in_order(self):
        log = []
        saga = (
            Saga("ordered")
            .step("a", _recorder(log, "a", 1))
            .step("b", _recorder(log, "b", 2))
            .step("c", _recorder(log, "c", 3))
        )

        results = await saga.run()

        assert log == ["a", "b", "c"]
        assert results == {"a": 1, "b": 2, "c": 3}
        assert saga.compensated == []

    async def test_sync_actions_are_supported(self):
        saga = Saga("sync").step("hash", lambda: "digest")
        results = await saga.run()
        assert results["hash"] == "digest"

    async def test_later_step_sees_earlier_result(self):
        saga = Saga("chained")
        saga.step("first", lambda: 20)
        saga.step("second", lambda: saga.results["first"] + 1)

        results = await saga.run()

        assert results["second"] == 21


# =============================================================================
# Compensation
# =============================================================================

class TestSagaCompensation:

    async def test_compensates_completed_steps_in_reverse_order(self):
        log = []
        saga = (
            Saga("reverse")
            .step("one", _recorder(log, "one"), compensate=_recorder(log, "undo one"))
            .step("two", _recorder(log, "two"), compensate=_recorder(log, "undo two"))
            .step("three", _recorder(log, "three", error=RecordStoreError("boom")),
                  compensate=_recorder(log, "undo three"), failure_message="Step three failed.")
        )

        with pytest.raises(DependencyError) as exc_info:
            await saga.run()

        assert log == ["one", "two", "three", "undo two", "undo one"]
        assert saga.compensated == ["two", "one"]
        assert exc_info.value.message == "Step three failed."
        assert exc_info.value.status_code == 502
        assert isinstance(exc_info.value.__cause__, RecordStoreError)

    async def test_first_step_failure_compensates_nothing(self):
        log = []
        saga = Saga("first").step(
            "upload", _recorder(log, "upload", error=BlobStoreError("down")),
            compensate=_recorder(log, "undo upload"),
            failure_message="Unable to upload GPX file.",
        )

        with pytest.raises(DependencyError, match="Unable to upload GPX file."):
            await saga.run()

        assert log == ["upload"]

    async def test_domain_errors_propagate_unchanged(self):
        log = []
        saga = (
            Saga("domain")
            .step("write", _recorder(log, "write"), compensate=_recorder(log, "undo write"))
            .step("check", _recorder(log, "check", error=NotFoundError("Race not found.")))
        )

        with pytest.raises(NotFoundError, match="Race not found."):
            await saga.run()

        assert log == ["write", "check", "undo write"]

    async def test_failed_compensation_is_integrity_violation(self):
        log = []
        saga = (
            Saga("violation")
            .step("one", _recorder(log, "one"), compensate=_recorder(log, "undo one"))
            .step("two", _recorder(log, "two"),
                  compensate=_recorder(log, "undo two", error=BlobStoreError("delete failed")))
            .step("three", _recorder(log, "three", error=RecordStoreError("insert failed")),
                  failure_message="Unable to create plan.")
        )

        with pytest.raises(DependencyError, match="Unable to create plan."):
            await saga.run()

        # Remaining compensations still run; original error is what the caller sees
        assert log == ["one", "two", "three", "undo two", "undo one"]
        assert saga.compensated == ["one"]
        assert len(saga.integrity_violations) == 1
        assert saga.integrity_violations[0].step == "two"

    async def test_cancellation_still_compensates(self):
        log = []
        started = asyncio.Event()

        async def hang():
            started.set()
            await asyncio.sleep(10)

        saga = (
            Saga("cancelled")
            .step("copy", _recorder(log, "copy"), compensate=_recorder(log, "undo copy"))
            .step("insert", hang)
        )

        task = asyncio.create_task(saga.run())
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert log == ["copy", "undo copy"]
