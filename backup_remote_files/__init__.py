"""Periodic HTTP file backups with a Prometheus exporter."""

__version__ = "1.2.0"
