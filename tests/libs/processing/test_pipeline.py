"""
Tests for ProcessingPipeline (libs/processing/pipeline.py).

Uses scripted clocks so latencies are exact:
    created_at = 1_000_000 ms
    fetched    = 1_001_000 ms  ->  fetched latency   1000 ms
    work       = 3.0 s         ->  processed latency 3000 ms
    completed  = 1_004_000 ms  ->  completed latency 4000 ms

TestRealClocks runs one order against the default clocks instead.
"""

import logging
import time
from collections.abc import Callable, Iterable

import pytest
from prometheus_client import REGISTRY

from libs.common.exceptions import TransportError
from libs.common.logging import get_correlation_id
from libs.orders.envelope import EnvelopeDecoder
from libs.orders.models import Order
from libs.processing.metrics_collector import MetricsCollector, MetricStage
from libs.processing.pipeline import PipelineOutcome, ProcessingPipeline
from libs.processing.work import SimulatedPaymentWork


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def _scripted(values: Iterable[float]) -> Callable[[], float]:
    """Return successive values, repeating the last one once exhausted."""
    remaining = list(values)

    def _next() -> float:
        if len(remaining) > 1:
            return remaining.pop(0)
        return remaining[0]

    return _next


class RecordingWork:
    def __init__(self, error: Exception | None = None) -> None:
        self.orders: list[Order] = []
        self.correlation_ids: list[str | None] = []
        self.error = error

    def execute(self, order: Order) -> None:
        self.orders.append(order)
        self.correlation_ids.append(get_correlation_id())
        if self.error is not None:
            raise self.error


@pytest.fixture()
def collector(tmp_path) -> MetricsCollector:
    return MetricsCollector("test", output_dir=tmp_path)


@pytest.fixture()
def work() -> RecordingWork:
    return RecordingWork()


@pytest.fixture()
def pipeline_factory(fake_queue, collector, work):
    def _build(**overrides) -> ProcessingPipeline:
        kwargs = {
            "queue": fake_queue,
            "decoder": EnvelopeDecoder(),
            "work": work,
            "collector": collector,
            "depth_probe": _scripted([1, 2, 3]),
            "clock": _scripted([1001.0, 1004.0]),
            "monotonic": _scripted([50.0, 53.0]),
        }
        kwargs.update(overrides)
        return ProcessingPipeline(**kwargs)

    return _build


class TestValidMessage:
    @pytest.mark.unit()
    def test_records_three_stages_with_exact_latencies(
        self, pipeline_factory, collector, fake_queue, valid_message
    ) -> None:
        # Arrange
        pipeline = pipeline_factory()

        # Act
        outcome = pipeline.handle(valid_message)

        # Assert
        assert outcome is PipelineOutcome.COMPLETED
        events = collector.snapshot()
        assert [e.stage for e in events] == [
            MetricStage.FETCHED,
            MetricStage.PROCESSED,
            MetricStage.COMPLETED,
        ]
        assert [e.latency_ms for e in events] == [1000.0, 3000.0, 4000.0]
        assert {e.order_id for e in events} == {"t1"}

    @pytest.mark.unit()
    def test_queue_depth_is_sampled_at_each_event(
        self, pipeline_factory, collector, valid_message
    ) -> None:
        pipeline_factory().handle(valid_message)

        assert [e.queue_depth for e in collector.snapshot()] == [1, 2, 3]

    @pytest.mark.unit()
    def test_deletes_after_completed_event(
        self, pipeline_factory, collector, fake_queue, valid_message
    ) -> None:
        seen_at_delete: list[int] = []
        original_delete = fake_queue.delete

        def _delete(receipt_handle: str) -> None:
            seen_at_delete.append(collector.size)
            original_delete(receipt_handle)

        fake_queue.delete = _delete  # type: ignore[method-assign]

        pipeline_factory().handle(valid_message)

        assert fake_queue.deleted == ["rh-1"]
        assert seen_at_delete == [3]

    @pytest.mark.unit()
    def test_work_receives_decoded_order(self, pipeline_factory, work, valid_message) -> None:
        pipeline_factory().handle(valid_message)

        assert [o.order_id for o in work.orders] == ["t1"]
        assert work.orders[0].customer_id == 42

    @pytest.mark.unit()
    def test_correlation_id_is_message_id_during_handling(
        self, pipeline_factory, work, valid_message
    ) -> None:
        pipeline_factory().handle(valid_message)

        assert work.correlation_ids == ["m-1"]
        assert get_correlation_id() is None

    @pytest.mark.unit()
    def test_negative_latency_is_recorded_as_is(
        self, pipeline_factory, collector, build_message, build_sns_body, build_order_payload
    ) -> None:
        # Producer clock ahead of ours
        message = build_message(build_sns_body(build_order_payload(created_at=1_002_000)))

        pipeline_factory().handle(message)

        assert collector.snapshot()[0].latency_ms == -1000.0

    @pytest.mark.unit()
    def test_completed_counter_increments(self, pipeline_factory, valid_message) -> None:
        before = _sample("order_processor_orders_completed_total")

        pipeline_factory().handle(valid_message)

        assert _sample("order_processor_orders_completed_total") == before + 1


class TestPoisonMessage:
    @pytest.mark.unit()
    @pytest.mark.parametrize(
        ("body", "stage"),
        [
            ("{not json", "envelope"),
            ('{"Message": "{\\"order_id\\": \\"t1\\"}"}', "order"),
        ],
    )
    def test_poison_is_deleted_without_telemetry(
        self,
        pipeline_factory,
        collector,
        fake_queue,
        work,
        build_message,
        body: str,
        stage: str,
    ) -> None:
        before = _sample("order_processor_poison_messages_total", {"stage": stage})

        outcome = pipeline_factory().handle(build_message(body, index=7))

        assert outcome is PipelineOutcome.DISCARDED
        assert fake_queue.deleted == ["rh-7"]
        assert collector.size == 0
        assert work.orders == []
        assert _sample("order_processor_poison_messages_total", {"stage": stage}) == before + 1

    @pytest.mark.unit()
    def test_poison_is_logged_as_warning(
        self, pipeline_factory, build_message, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="libs.processing.pipeline"):
            pipeline_factory().handle(build_message("garbage"))

        assert any(r.getMessage() == "poison_message_discarded" for r in caplog.records)


class TestFailures:
    @pytest.mark.unit()
    def test_work_failure_leaves_message_for_redelivery(
        self, pipeline_factory, collector, fake_queue, valid_message
    ) -> None:
        before = _sample("order_processor_work_failures_total")
        pipeline = pipeline_factory(work=RecordingWork(error=RuntimeError("gateway down")))

        outcome = pipeline.handle(valid_message)

        assert outcome is PipelineOutcome.WORK_FAILED
        assert fake_queue.deleted == []
        assert [e.stage for e in collector.snapshot()] == [MetricStage.FETCHED]
        assert _sample("order_processor_work_failures_total") == before + 1

    @pytest.mark.unit()
    def test_delete_failure_is_logged_not_raised(
        self, pipeline_factory, collector, fake_queue, valid_message, caplog
    ) -> None:
        fake_queue.fail_deletes = TransportError("delete", "connection reset")
        before = _sample("order_processor_queue_errors_total", {"operation": "delete"})

        with caplog.at_level(logging.ERROR, logger="libs.processing.pipeline"):
            outcome = pipeline_factory().handle(valid_message)

        assert outcome is PipelineOutcome.COMPLETED
        assert collector.size == 3
        assert any(r.getMessage() == "message_delete_failed" for r in caplog.records)
        assert (
            _sample("order_processor_queue_errors_total", {"operation": "delete"}) == before + 1
        )


class TestRealClocks:
    """Default clocks with a short simulated payment."""

    @pytest.mark.unit()
    def test_processed_latency_tracks_work_duration(
        self, fake_queue, collector, build_sns_body, build_order_payload, build_message
    ) -> None:
        # Arrange - 0.2 s of payment work, order created just now
        pipeline = ProcessingPipeline(
            fake_queue, EnvelopeDecoder(), SimulatedPaymentWork(0.2), collector, lambda: 1
        )
        payload = build_order_payload("t-real", created_at=int(time.time() * 1000))
        message = build_message(build_sns_body(payload), 7)

        # Act
        outcome = pipeline.handle(message)

        # Assert
        assert outcome is PipelineOutcome.COMPLETED
        latencies = {e.stage: e.latency_ms for e in collector.snapshot()}
        assert 0 <= latencies[MetricStage.FETCHED] < 100
        assert 195 <= latencies[MetricStage.PROCESSED] < 350
        # Wall-clock latencies are truncated to whole milliseconds
        assert latencies[MetricStage.COMPLETED] >= latencies[MetricStage.PROCESSED] - 1
        assert fake_queue.deleted == ["rh-7"]
