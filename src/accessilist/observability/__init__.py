"""Logging and metrics."""

from .logger import JSONFormatter, configure_logging, payload_scrubber
from .metrics import MetricsExporter

__all__ = ["JSONFormatter", "MetricsExporter", "configure_logging", "payload_scrubber"]
