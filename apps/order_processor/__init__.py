"""
Order processor service.

Consumes order-created events from SQS (delivered inside SNS envelopes),
runs the simulated payment step per order with bounded concurrency, and
writes per-stage latency telemetry to a CSV file at shutdown.
"""
