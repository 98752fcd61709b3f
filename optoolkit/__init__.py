"""Building blocks for controller operators: operands, executors, admission webhooks, event sources and telemetry."""

__version__ = "0.1.0"