"""Prometheus exporter for Mesos master state."""

__version__ = "0.1.0"
