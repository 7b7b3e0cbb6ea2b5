"""Unit tests for the tracking orchestrator."""

import logging

import pytest

from tracker.capture.click_observer import DEBOUNCE_DELAY_MS
from tracker.config.loader import TrackerConfig
from tracker.delivery.http_delivery import HttpBatchDelivery, LoggingDelivery
from tracker.models.events import VisibilityEvent
from tracker.orchestrator import TrackingOrchestrator
from tracker.session.provider import SESSION_STORAGE_KEY, SessionIdentityProvider
from tracker.session.storage import MemoryStorage

CONTEXT = {'device_type': "desktop", 'is_bot': False, 'user_hash': "a" * 64}


def records_of(batch, event_type):
    return [record for record in batch["data"] if record["event_type"] == event_type]


class TestTrackingOrchestrator:
    """Tests for TrackingOrchestrator wiring and enrichment."""

    @pytest.fixture
    def batches(self):
        return []

    @pytest.fixture
    def session_provider(self):
        return SessionIdentityProvider(MemoryStorage({SESSION_STORAGE_KEY: "stored-session"}))

    @pytest.fixture
    def orchestrator(self, sample_meta, sample_page, scheduler, batches, session_provider):
        orchestrator = TrackingOrchestrator(
            sample_meta,
            sample_page,
            scheduler,
            delivery=batches.append,
            session_provider=session_provider,
        )
        assert orchestrator.start()
        return orchestrator

    def test_missing_meta_disables_tracking(self, sample_page, scheduler, caplog):
        orchestrator = TrackingOrchestrator(None, sample_page, scheduler)

        with caplog.at_level(logging.WARNING, logger="tracker.orchestrator"):
            assert orchestrator.start() is False
            assert orchestrator.start() is False

        warnings = [r for r in caplog.records if "metadata not available" in r.message]
        assert len(warnings) == 1
        assert orchestrator.observers == {}
        assert sample_page.listener_count("click") == 0

    def test_start_wires_observers(self, orchestrator, sample_page):
        assert set(orchestrator.observers) == {"scroll", "click", "engagement", "interaction", "visibility"}
        assert all(observer.running for observer in orchestrator.observers.values())
        # Click and interaction observers both listen for clicks
        assert sample_page.listener_count("click") == 2
        assert orchestrator.batcher.running

    def test_start_is_idempotent(self, orchestrator, sample_page):
        assert orchestrator.start()
        assert sample_page.listener_count("click") == 2

    def test_session_id_overwrites_meta(self, orchestrator, sample_meta):
        assert orchestrator.session_id == "stored-session"
        assert sample_meta.session_id == "stored-session"

    def test_mapping_meta_accepted(self, sample_page, scheduler):
        orchestrator = TrackingOrchestrator(
            {'page_id': 3, 'page_url': "https://example.com/x", 'api_password': "k"},
            sample_page,
            scheduler,
            delivery=lambda batch: None,
        )
        assert orchestrator.start()
        assert orchestrator.meta.page_id == 3
        assert orchestrator.meta.session_id == orchestrator.session_id

    def test_scroll_record(self, orchestrator, sample_page, scheduler):
        sample_page.scroll_to(600)
        scheduler.advance(scheduler.frame_interval_ms)

        batch = orchestrator.flush()
        (record,) = records_of(batch, "scroll")

        assert record == {
            'session_id': "stored-session",
            'page_url': "https://example.com/post/hello",
            'event_type': "scroll",
            'ts': scheduler.now_ms(),
            'meta': {'page_id': 42, 'velocity': record['meta']['velocity'], 'scroll_percent': 25.0},
            'context': CONTEXT,
        }
        assert record['meta']['velocity'] > 0
        assert type(record['meta']['scroll_percent']) is int

    def test_click_record(self, orchestrator, sample_page, scheduler):
        sample_page.click(sample_page.get_element_by_id("internal-link"))
        scheduler.advance(DEBOUNCE_DELAY_MS)

        (record,) = records_of(orchestrator.flush(), "click")

        assert record['ts'] == scheduler.now_ms()
        assert record['meta'] == {
            'link_text': "Next post",
            'target_url': "https://example.com/next",
            'position_in_view': 0.25,
            'internal': True,
            'page_id': 42,
        }
        assert record['context'] == CONTEXT

    def test_engagement_record_is_flat(self, orchestrator, sample_page, scheduler):
        sample_page.move_mouse()
        scheduler.advance(5000)

        (record,) = records_of(orchestrator.flush(), "engagement")

        assert record['active_time'] == 5
        assert record['total_time'] == 5
        assert record['ts'] == scheduler.now_ms()
        assert 'meta' not in record

    def test_interaction_record_is_flat(self, orchestrator, sample_page, scheduler):
        sample_page.click(sample_page.get_element_by_id("faq-1"))

        (record,) = records_of(orchestrator.flush(), "interaction")

        assert record['element_type'] == "faq"
        assert record['element_id'] == "faq-1"
        assert record['interaction_type'] == "open"
        assert record['state'] == "open"
        assert record['label'] == "How does it work? +"
        assert record['ts'] == scheduler.now_ms()
        assert record['session_id'] == "stored-session"

    def test_visibility_records(self, orchestrator, sample_page, scheduler):
        scheduler.run_pending()
        sample_page.scroll_to(1800)

        records = records_of(orchestrator.flush(), "visible")

        assert [record['id'] for record in records] == ["intro", "pricing"]
        assert all(record['context'] == CONTEXT for record in records)

    def test_visibility_accepts_single_event(self, orchestrator, scheduler):
        orchestrator._on_visible(VisibilityEvent(id="hero", ts=5))
        orchestrator._on_visible({'id': "footer"})

        records = records_of(orchestrator.flush(), "visible")

        assert [(r['id'], r['ts']) for r in records] == [("hero", 5), ("footer", scheduler.now_ms())]

    def test_malformed_visibility_payload_dropped(self, orchestrator):
        orchestrator._on_visible("not an event")
        orchestrator._on_visible([{'id': "ok", 'ts': 1}, 42])

        records = orchestrator.flush()["data"]

        assert [r['id'] for r in records if r['event_type'] == "visible"] == ["ok"]
        assert orchestrator.get_stats()['dropped_events'] == 2

    def test_timed_flush_delivers_batch(self, orchestrator, sample_page, scheduler, batches):
        sample_page.click(sample_page.get_element_by_id("faq-1"))
        scheduler.advance(10000)

        assert len(batches) == 1
        assert set(batches[0]) == {"data"}
        assert records_of(batches[0], "interaction")

    def test_stop_flushes_and_detaches(self, orchestrator, sample_page, scheduler, batches):
        sample_page.click(sample_page.get_element_by_id("faq-1"))

        orchestrator.stop()

        assert len(batches) == 1
        assert not orchestrator.started
        assert sample_page.listener_count("click") == 0
        scheduler.advance(60000)
        assert len(batches) == 1

    def test_restart_after_stop_refused(self, orchestrator, sample_page, scheduler, batches, caplog):
        sample_page.scroll_to(3000)
        scheduler.advance(100)
        orchestrator.stop()

        with caplog.at_level(logging.WARNING, logger="tracker.orchestrator"):
            assert orchestrator.start() is False
        scheduler.advance(100)
        orchestrator.stop()

        scroll_records = [r for batch in batches for r in records_of(batch, "scroll")]
        assert [r["meta"]["scroll_percent"] for r in scroll_records] == [25, 50, 75, 100]
        assert not orchestrator.started
        assert sample_page.listener_count("click") == 0
        assert "already stopped" in caplog.text

    def test_stop_without_flush(self, orchestrator, sample_page, batches):
        sample_page.click(sample_page.get_element_by_id("faq-1"))
        orchestrator.stop(flush=False)
        assert batches == []
        assert orchestrator.batcher.buffered == 1

    def test_disabled_observers(self, sample_meta, sample_page, scheduler):
        config = TrackerConfig(enable_scroll=False, enable_click=False, enable_visibility=False)
        orchestrator = TrackingOrchestrator(sample_meta, sample_page, scheduler, config=config,
                                            delivery=lambda batch: None)
        orchestrator.start()
        assert set(orchestrator.observers) == {"engagement", "interaction"}

    def test_forward_fields(self, sample_meta, sample_page, scheduler):
        config = TrackerConfig(forward_fields=["device_type"])
        orchestrator = TrackingOrchestrator(sample_meta, sample_page, scheduler, config=config,
                                            delivery=lambda batch: None)
        orchestrator.start()
        sample_page.click(sample_page.get_element_by_id("faq-1"))

        (record,) = records_of(orchestrator.flush(), "interaction")
        assert record['context'] == {'device_type': "desktop"}

    def test_default_delivery_logs_without_endpoint(self, sample_meta, sample_page, scheduler):
        orchestrator = TrackingOrchestrator(sample_meta, sample_page, scheduler)
        orchestrator.start()
        assert isinstance(orchestrator.delivery, LoggingDelivery)

    @pytest.mark.asyncio
    async def test_default_delivery_posts_with_meta_password(self, sample_meta, sample_page, scheduler):
        config = TrackerConfig(endpoint_url="https://collector.example.com/batch")
        orchestrator = TrackingOrchestrator(sample_meta, sample_page, scheduler, config=config)
        orchestrator.start()

        assert isinstance(orchestrator.delivery, HttpBatchDelivery)
        assert orchestrator.delivery.config.api_key == "s3cret"
        assert orchestrator.delivery.config.api_key_header == "x-wp-key"

        await orchestrator.aclose()
        assert orchestrator.delivery.client.is_closed

    @pytest.mark.asyncio
    async def test_aclose_waits_for_async_delivery(self, sample_meta, sample_page, scheduler):
        delivered = []

        async def deliver(batch):
            delivered.append(batch)

        orchestrator = TrackingOrchestrator(sample_meta, sample_page, scheduler, delivery=deliver)
        orchestrator.start()
        sample_page.click(sample_page.get_element_by_id("faq-1"))

        await orchestrator.aclose()

        assert len(delivered) == 1
        assert orchestrator.batcher.in_flight == 0

    def test_stats(self, orchestrator, sample_page):
        sample_page.click(sample_page.get_element_by_id("faq-1"))
        stats = orchestrator.get_stats()
        assert stats['started'] is True
        assert stats['session_id'] == "stored-session"
        assert stats['batcher']['buffered'] == 1
        assert stats['observers']['interaction']['events_emitted'] == 1


class TestDefaultCollaborators:
    """Tests for the delivery and session storage built from config."""

    def test_logging_delivery_does_not_retain_batches(self, sample_meta, sample_page, scheduler):
        orchestrator = TrackingOrchestrator(sample_meta, sample_page, scheduler)
        orchestrator.start()

        for _ in range(5):
            sample_page.move_mouse()
            scheduler.advance(10000)

        assert orchestrator.batcher.get_stats()['batches_flushed'] >= 5
        assert orchestrator.delivery.batches == []

    def test_session_id_reused_across_page_views(self, sample_page, scheduler):
        meta = {'page_id': 1, 'page_url': "https://example.com/a"}

        first = TrackingOrchestrator(dict(meta), sample_page, scheduler, delivery=lambda batch: None)
        first.start()
        first.stop()
        second = TrackingOrchestrator(dict(meta), sample_page, scheduler, delivery=lambda batch: None)
        second.start()

        assert first.session_id == second.session_id
        assert len(second.session_id) == 36

    def test_cleared_session_gets_new_id(self, sample_page, scheduler):
        meta = {'page_id': 1, 'page_url': "https://example.com/a"}

        first = TrackingOrchestrator(dict(meta), sample_page, scheduler, delivery=lambda batch: None)
        first.start()
        first.session_provider.clear()
        second = TrackingOrchestrator(dict(meta), sample_page, scheduler, delivery=lambda batch: None)
        second.start()

        assert first.session_id != second.session_id

    def test_storage_file_used_when_configured(self, sample_page, scheduler, tmp_path):
        config = TrackerConfig(session_storage_path=tmp_path / "storage.json")
        meta = {'page_id': 1, 'page_url': "https://example.com/a"}

        orchestrator = TrackingOrchestrator(meta, sample_page, scheduler, config=config,
                                            delivery=lambda batch: None)
        orchestrator.start()

        assert (tmp_path / "storage.json").exists()
        assert orchestrator.session_id not in {None, ""}
