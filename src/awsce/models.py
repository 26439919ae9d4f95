from dataclasses import dataclass
from datetime import date

# account id -> sanitized display name
AccountNameIndex = dict[str, str]

# "<category>.<account_key>.<metric_name>" -> value
MetricMap = dict[str, float]


@dataclass(frozen=True, slots=True)
class ReportingWindow:
    """
    ReportingWindow represents the month-to-date time period
    queried from the billing API.
    """

    # first day of the current month, UTC
    start: "date"
    # current day, UTC. Time of day is discarded
    end: "date"
    # seconds between the start of the month and the invocation
    elapsed_seconds: "float"
    # seconds between the start of the month and the start of the next one
    period_seconds: "float"


@dataclass(frozen=True, slots=True)
class CostRecord:
    """
    CostRecord represents the month-to-date amount
    billed to a single linked account.
    """

    # raw linked account id, as returned by the group key
    account_key: "str"
    amount: "float"


@dataclass(frozen=True, slots=True)
class BuildOptions:
    metric_name: "str" = "UnblendedCost"
    forecast_enabled: "bool" = False
    name_resolution_enabled: "bool" = True
