"""Queue-consuming order processing engine."""

from libs.processing.concurrency import ConcurrencyController
from libs.processing.fetcher import FetchCoordinator, FetchSettings
from libs.processing.metrics_collector import MetricEvent, MetricsCollector, MetricStage
from libs.processing.pipeline import PipelineOutcome, ProcessingPipeline
from libs.processing.shutdown import ShutdownCoordinator, ShutdownReport, ShutdownState
from libs.processing.work import SimulatedPaymentWork, WorkUnit

__all__ = [
    "ConcurrencyController",
    "FetchCoordinator",
    "FetchSettings",
    "MetricEvent",
    "MetricsCollector",
    "MetricStage",
    "PipelineOutcome",
    "ProcessingPipeline",
    "ShutdownCoordinator",
    "ShutdownReport",
    "ShutdownState",
    "SimulatedPaymentWork",
    "WorkUnit",
]
