"""Tests for progress reporting."""

import asyncio

import pytest

from legacy_bridge.progress import ImportPhase, ProgressReporter, phase_percentage


class TestPhasePercentage:
    def test_bands(self):
        assert phase_percentage(ImportPhase.EXTRACTION, 0, 1) == 0.0
        assert phase_percentage(ImportPhase.TRANSFORMATION, 1, 2) == 27.5
        assert phase_percentage(ImportPhase.LEDGER, 1, 1) == 100.0

    def test_empty_phase_completes_band(self):
        assert phase_percentage(ImportPhase.IMPORT, 0, 0) == 95.0


class TestProgressReporter:
    def test_percentage_never_decreases(self):
        reporter = ProgressReporter("job-1")

        reporter.report(ImportPhase.IMPORT, 5, 10, "halfway")
        event = reporter.report(ImportPhase.TRANSFORMATION, 1, 10, "late event")

        assert event.percentage == reporter.events[0].percentage

    @pytest.mark.asyncio
    async def test_sync_callback_receives_all_events(self):
        received = []
        reporter = ProgressReporter("job-1", received.append)
        reporter.start()

        for i in range(1, 4):
            reporter.report(ImportPhase.TRANSFORMATION, i, 3, f"batch {i}")
        await reporter.close()

        assert [e.completed for e in received] == [1, 2, 3]
        assert all(e.job_id == "job-1" for e in received)

    @pytest.mark.asyncio
    async def test_async_callback(self):
        received = []

        async def on_progress(event):
            await asyncio.sleep(0)
            received.append(event.phase)

        reporter = ProgressReporter("job-1", on_progress)
        reporter.start()
        reporter.report(ImportPhase.EXTRACTION, 1, 1, "done")
        await reporter.close()

        assert received == ["extraction"]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_delivery(self):
        received = []

        def on_progress(event):
            received.append(event.completed)
            raise RuntimeError("observer down")

        reporter = ProgressReporter("job-1", on_progress)
        reporter.start()
        reporter.report(ImportPhase.IMPORT, 1, 2, "one")
        reporter.report(ImportPhase.IMPORT, 2, 2, "two")
        await reporter.close()

        assert received == [1, 2]
