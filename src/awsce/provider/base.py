from typing import Any, Protocol, Sequence

from awsce.models import ReportingWindow


class BillingClient(Protocol):
    """
    BillingClient stands as the protocol the collector needs from
    a billing API.

    Responses keep the Cost Explorer wire shape: dimension values
    are {"Value": ..., "Attributes": {"description": ...}} and the
    cost result carries a "ResultsByTime" list of buckets, each with
    "Groups" of {"Keys": [...], "Metrics": {name: {"Amount": ...}}}.
    """

    def list_dimension_values(
        self,
        dimension: "str",
        window: "ReportingWindow",
    ) -> "Sequence[dict[str, Any]]": ...

    def query_cost_and_usage(
        self,
        granularity: "str",
        window: "ReportingWindow",
        metrics: "Sequence[str]",
        group_by: "str",
    ) -> "dict[str, Any]": ...
