import re

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from awsce.models import MetricMap

CATEGORIES: "tuple[str, ...]" = ("usage", "forecast")


def metric_family_name(prefix: "str", category: "str") -> "str":
    """
    maps a metric key prefix such as 'aws-ce' to a valid Prometheus
    family name such as 'aws_ce_usage'.
    """
    base = re.sub(r"[^a-zA-Z0-9_]", "_", prefix)
    if base[:1].isdigit():
        base = f"_{base}"
    return f"{base}_{category}"


def create_billing_gauges(
    prefix: "str",
    registry: "CollectorRegistry",
) -> "dict[str, Gauge]":
    """
    creates one gauge family per key category.
     - usage: month-to-date value, labeled by account and metric.
     - forecast: full-month estimate, labeled by account and metric.
    """
    return {
        "usage": Gauge(
            metric_family_name(prefix, "usage"),
            "Month-to-date AWS billing per linked account",
            ["account", "metric"],
            registry=registry,
        ),
        "forecast": Gauge(
            metric_family_name(prefix, "forecast"),
            "Forecast full-month AWS billing per linked account",
            ["account", "metric"],
            registry=registry,
        ),
    }


class PrometheusExporter:
    """
    renders a MetricMap in the Prometheus text exposition format,
    for node_exporter style textfile collectors.
    """

    def __init__(
        self,
        prefix: "str",
        registry: "CollectorRegistry | None" = None,
    ) -> "None":
        self._registry: "CollectorRegistry" = (
            registry if registry is not None else CollectorRegistry()
        )
        self._gauges = create_billing_gauges(prefix, self._registry)

    def update(self, metric_map: "MetricMap") -> "None":
        for key, value in metric_map.items():
            category, rest = key.split(".", 1)
            account, metric = rest.rsplit(".", 1)
            self._gauges[category].labels(account=account, metric=metric).set(value)

    def render(self) -> "str":
        return generate_latest(self._registry).decode("utf-8")
