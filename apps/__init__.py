"""
Apps package - runnable services.

- order_processor: drains the order queue, runs the per-order pipeline and
  writes per-run latency telemetry
"""
