from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

METRIC_NAMES: "tuple[str, ...]" = ("BlendedCost", "UnblendedCost", "UsageQuantity")

_METRIC_LABELS: "dict[str, str]" = {
    "BlendedCost": "Blended Cost",
    "UnblendedCost": "Unblended Cost",
    "UsageQuantity": "Usage Quantity",
}


@dataclass(frozen=True, slots=True)
class MetricDef:
    name: "str"
    label: "str"
    # absolute values only, never a delta against the previous run
    diff: "bool" = False
    stacked: "bool" = False

    def to_dict(self) -> "dict[str, object]":
        return {"name": self.name, "label": self.label, "stacked": self.stacked}


@dataclass(frozen=True, slots=True)
class GraphDef:
    label: "str"
    unit: "str"
    metrics: "tuple[MetricDef, ...]"

    def to_dict(self) -> "dict[str, object]":
        return {
            "label": self.label,
            "unit": self.unit,
            "metrics": [m.to_dict() for m in self.metrics],
        }


def _metric_defs(name_prefix: "str", label_prefix: "str") -> "tuple[MetricDef, ...]":
    return tuple(
        MetricDef(
            name=f"{name_prefix}{name}",
            label=f"{label_prefix}{_METRIC_LABELS[name]}",
            stacked=True,
        )
        for name in METRIC_NAMES
    )


def build_graph_definitions() -> "Mapping[str, GraphDef]":
    """
    builds the read-only table of graph groups declared to the
    monitoring agent:
     - usage.#: month-to-date value per account.
     - forecast.#: full-month linear estimate per account.
    '#' is the account key wildcard.
    """
    graphs = {
        "usage.#": GraphDef(
            label="AWS Monthly Billing",
            unit="integer",
            metrics=_metric_defs("", ""),
        ),
        "forecast.#": GraphDef(
            label="AWS Monthly Billing Forecast",
            unit="integer",
            metrics=_metric_defs("Forecast", "Forecast "),
        ),
    }
    return MappingProxyType(graphs)
