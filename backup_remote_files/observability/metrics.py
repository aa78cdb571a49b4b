"""Prometheus metrics for the backup exporter.

Every ``BackupMetrics`` instance owns a private registry, so several exporters
(or tests) never collide on metric names.

Series, all prefixed with the configured ``metricsPrefix``:
- build_info{goarch,goos,goversion,version}: always 1
- backup_status{id}: 1 when the latest retrieval succeeded, else 0
- backup_size{id}: size in bytes of the latest successful retrieval
- backup_time{id}: unix timestamp of the latest successful retrieval
- backup_failed{id}: cumulative failed retrievals
- backup_nb: cumulative sweep invocations
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Iterable, Mapping

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

logger = logging.getLogger(__name__)

BUILD_INFO = "build_info"
BACKUP_STATUS = "backup_status"
BACKUP_SIZE = "backup_size"
BACKUP_TIME = "backup_time"
BACKUP_FAILED = "backup_failed"
BACKUP_NB = "backup_nb"


class BackupMetrics:
    """Gauge/counter registry implementing the sweep executor's metrics sink."""

    def __init__(self, namespace: str, registry: CollectorRegistry | None = None) -> None:
        self.namespace = namespace
        self.registry = registry if registry is not None else CollectorRegistry()

        self.build_info = Gauge(
            BUILD_INFO,
            "Build information",
            ["goarch", "goos", "goversion", "version"],
            namespace=namespace,
            registry=self.registry,
        )
        self.status = Gauge(
            BACKUP_STATUS,
            "Status of latest backup",
            ["id"],
            namespace=namespace,
            registry=self.registry,
        )
        self.size = Gauge(
            BACKUP_SIZE,
            "Size in bytes of latest backup",
            ["id"],
            namespace=namespace,
            registry=self.registry,
        )
        self.time = Gauge(
            BACKUP_TIME,
            "Timestamp of latest backup",
            ["id"],
            namespace=namespace,
            registry=self.registry,
        )
        self.backup_failed = Counter(
            BACKUP_FAILED,
            "Number of failed backups",
            ["id"],
            namespace=namespace,
            registry=self.registry,
        )
        self.backup_total = Counter(
            BACKUP_NB,
            "Number of retrievals",
            namespace=namespace,
            registry=self.registry,
        )

        self._gauges: dict[str, Gauge] = {
            BUILD_INFO: self.build_info,
            BACKUP_STATUS: self.status,
            BACKUP_SIZE: self.size,
            BACKUP_TIME: self.time,
        }
        self._counters: dict[str, Counter] = {
            BACKUP_FAILED: self.backup_failed,
            BACKUP_NB: self.backup_total,
        }

    def set_gauge(self, name: str, labels: Mapping[str, str], value: float) -> None:
        gauge = self._gauges.get(name)
        if gauge is None:
            msg = f"Unknown gauge: {name}"
            raise KeyError(msg)
        gauge.labels(**labels).set(value)

    def increment_counter(self, name: str, labels: Mapping[str, str] | None = None) -> None:
        counter = self._counters.get(name)
        if counter is None:
            msg = f"Unknown counter: {name}"
            raise KeyError(msg)
        if labels:
            counter.labels(**labels).inc()
        else:
            counter.inc()

    def initialize(self, item_ids: Iterable[str], version: str) -> None:
        """Publish build info and zeroed failure counters for every tracked item."""
        self.build_info.labels(
            goarch=platform.machine(),
            goos=platform.system().lower(),
            goversion=platform.python_version(),
            version=version,
        ).set(1)
        count = 0
        for item_id in item_ids:
            self.backup_failed.labels(id=item_id).inc(0)
            count += 1
        logger.debug("metrics_initialized", extra={"namespace": self.namespace, "items": count})

    def render(self) -> bytes:
        """Generate the metrics in the Prometheus text format."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST
