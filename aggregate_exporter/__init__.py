"""Fan-out/fan-in aggregation proxy for Prometheus exposition endpoints."""

__version__ = "1.0.0"
