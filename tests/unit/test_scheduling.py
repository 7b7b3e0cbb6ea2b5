"""Unit tests for schedulers and geometry-based intersection detection."""

import asyncio
from unittest.mock import MagicMock

import pytest

from tracker.browser.dom import Element
from tracker.browser.intersection import GeometryIntersectionObserver
from tracker.browser.scheduler import AsyncioScheduler, VirtualScheduler


class TestVirtualScheduler:
    """Tests for the virtual-clock scheduler."""

    def test_clock_starts_at_epoch(self):
        scheduler = VirtualScheduler(start_ms=1000)
        assert scheduler.now_ms() == 1000
        assert scheduler.perf_ms() == 0

    def test_call_later_runs_when_due(self, scheduler):
        callback = MagicMock()
        scheduler.call_later(100, callback)

        scheduler.advance(99)
        callback.assert_not_called()
        scheduler.advance(1)
        callback.assert_called_once()

    def test_timers_run_in_due_order_with_clock_at_due_time(self, scheduler):
        seen = []
        scheduler.call_later(300, lambda: seen.append(("b", scheduler.perf_ms())))
        scheduler.call_later(100, lambda: seen.append(("a", scheduler.perf_ms())))

        scheduler.advance(1000)

        assert seen == [("a", 100), ("b", 300)]
        assert scheduler.elapsed_ms == 1000

    def test_call_every(self, scheduler):
        callback = MagicMock()
        scheduler.call_every(100, callback)

        scheduler.advance(350)

        assert callback.call_count == 3

    def test_call_every_rejects_non_positive_interval(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.call_every(0, lambda: None)

    def test_cancel(self, scheduler):
        callback = MagicMock()
        handle = scheduler.call_every(100, callback)
        scheduler.advance(100)
        handle.cancel()
        scheduler.advance(1000)

        assert callback.call_count == 1
        assert scheduler.pending_count == 0

    def test_cancel_inside_callback(self, scheduler):
        calls = []

        def callback():
            calls.append(scheduler.perf_ms())
            handle.cancel()

        handle = scheduler.call_every(100, callback)
        scheduler.advance(1000)

        assert calls == [100]

    def test_request_frame_passes_timestamp(self, scheduler):
        callback = MagicMock()
        scheduler.request_frame(callback)

        scheduler.advance(20)

        callback.assert_called_once_with(pytest.approx(1000 / 60))

    def test_callback_error_does_not_stop_other_timers(self, scheduler):
        callback = MagicMock()
        scheduler.call_later(10, MagicMock(side_effect=RuntimeError("boom")))
        scheduler.call_later(20, callback)

        scheduler.advance(50)

        callback.assert_called_once()

    def test_run_pending(self, scheduler):
        callback = MagicMock()
        scheduler.call_later(0, callback)
        scheduler.run_pending()
        callback.assert_called_once()
        assert scheduler.elapsed_ms == 0


class TestAsyncioScheduler:
    """Tests for the asyncio-backed scheduler."""

    @pytest.mark.asyncio
    async def test_call_later(self):
        scheduler = AsyncioScheduler()
        fired = asyncio.Event()
        scheduler.call_later(5, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_call_every_until_cancelled(self):
        scheduler = AsyncioScheduler()
        calls = []
        done = asyncio.Event()

        def tick():
            calls.append(1)
            if len(calls) == 3:
                handle.cancel()
                done.set()

        handle = scheduler.call_every(5, tick)
        await asyncio.wait_for(done.wait(), timeout=1)
        await asyncio.sleep(0.03)

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_request_frame(self):
        scheduler = AsyncioScheduler(frame_rate=200)
        timestamps = []
        done = asyncio.Event()

        def on_frame(ts):
            timestamps.append(ts)
            done.set()

        scheduler.request_frame(on_frame)
        await asyncio.wait_for(done.wait(), timeout=1)

        assert timestamps[0] > 0

    def test_clock(self):
        scheduler = AsyncioScheduler()
        assert scheduler.now_ms() > 1_600_000_000_000
        assert scheduler.perf_ms() >= 0


class TestGeometryIntersectionObserver:
    """Tests for GeometryIntersectionObserver."""

    @pytest.fixture
    def callback(self):
        return MagicMock()

    @pytest.fixture
    def section(self, document):
        return document.body.append(Element("section", id="s", offset_top=1000, height=400))

    def test_ratio(self, document, scheduler, callback, section):
        detector = GeometryIntersectionObserver(document, scheduler, callback, 0.5)

        assert detector.intersection_ratio(section) == 0.0
        document.scroll_to(400)
        assert detector.intersection_ratio(section) == 0.5
        document.scroll_to(1000)
        assert detector.intersection_ratio(section) == 1.0

    def test_zero_height_element(self, document, scheduler, callback):
        marker = document.body.append(Element("div", offset_top=100, height=0))
        detector = GeometryIntersectionObserver(document, scheduler, callback)
        assert detector.intersection_ratio(marker) == 1.0
        document.scroll_to(200)
        assert detector.intersection_ratio(marker) == 0.0

    def test_initial_check_reports_all(self, document, scheduler, callback, section):
        detector = GeometryIntersectionObserver(document, scheduler, callback, 0.5)
        detector.observe(section)

        callback.assert_not_called()
        scheduler.run_pending()

        entries = callback.call_args.args[0]
        assert len(entries) == 1
        assert entries[0].target is section
        assert entries[0].is_intersecting is False

    def test_reports_only_changes(self, document, scheduler, callback, section):
        detector = GeometryIntersectionObserver(document, scheduler, callback, 0.5)
        detector.observe(section)
        scheduler.run_pending()
        callback.reset_mock()

        document.scroll_to(100)
        callback.assert_not_called()

        document.scroll_to(500)
        entries = callback.call_args.args[0]
        assert entries[0].is_intersecting is True
        assert entries[0].intersection_ratio == pytest.approx(0.75)

    def test_observe_same_element_once(self, document, scheduler, callback, section):
        detector = GeometryIntersectionObserver(document, scheduler, callback)
        detector.observe(section)
        detector.observe(section)
        assert document.listener_count("scroll") == 1
        scheduler.run_pending()
        assert len(callback.call_args.args[0]) == 1

    def test_disconnect(self, document, scheduler, callback, section):
        detector = GeometryIntersectionObserver(document, scheduler, callback)
        detector.observe(section)
        detector.disconnect()
        scheduler.run_pending()
        document.scroll_to(1000)

        callback.assert_not_called()
        assert document.listener_count("scroll") == 0
        assert document.listener_count("resize") == 0

    def test_resize_triggers_check(self, document, scheduler, callback, section):
        detector = GeometryIntersectionObserver(document, scheduler, callback, 0.5)
        detector.observe(section)
        scheduler.run_pending()
        callback.reset_mock()

        document.resize(1400)

        assert callback.call_args.args[0][0].is_intersecting is True

    def test_invalid_threshold(self, document, scheduler, callback):
        with pytest.raises(ValueError):
            GeometryIntersectionObserver(document, scheduler, callback, 1.5)
