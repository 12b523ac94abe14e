"""
Metric naming and the sinks that receive metered withdrawal amounts.

Every metered withdrawal becomes one gauge increment named
``<component_name>_withdrawals`` and labelled with the token address.
"""

from typing import Dict, Mapping, Optional, Protocol

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

from utils.logging import get_logger
from withdrawals.models import token_label

logger = get_logger("withdrawals.metrics")


class MetricsSink(Protocol):
    def increment_gauge(self, name: str, value: float, labels: Mapping[str, str]) -> None: ...


def withdrawals_metric_name(component_name: str) -> str:
    return f"{component_name}_withdrawals"


def withdrawal_labels(token: bytes) -> Dict[str, str]:
    return {"token": token_label(token)}


class PrometheusMetricsSink:
    """Sink backed by prometheus_client gauges, one per metric name.

    Label names of a gauge are fixed by the first sample sent under its name.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._gauges: Dict[str, Gauge] = {}

    def _gauge(self, name: str, label_names) -> Gauge:
        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                "Sum of metered withdrawal amounts in token units",
                list(label_names),
                registry=self.registry,
            )
            self._gauges[name] = gauge
        return gauge

    def increment_gauge(self, name: str, value: float, labels: Mapping[str, str]) -> None:
        gauge = self._gauge(name, sorted(labels))
        gauge.labels(**labels).inc(value)

    def get_value(self, name: str, labels: Mapping[str, str]) -> Optional[float]:
        """Current value of a gauge sample, or None when nothing was recorded for it."""
        return self.registry.get_sample_value(name, dict(labels))

    def push(self, gateway: str, job: str) -> None:
        """Push every gauge of this sink to a Prometheus Pushgateway."""
        logger.info("Pushing %s gauges to %s as job %s", len(self._gauges), gateway, job)
        push_to_gateway(gateway, job=job, registry=self.registry)
