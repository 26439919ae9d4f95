import math
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Sequence

import structlog

from awsce.errors import MalformedAmountError
from awsce.models import (
    AccountNameIndex,
    BuildOptions,
    CostRecord,
    MetricMap,
    ReportingWindow,
)
from awsce.provider.base import BillingClient

logger = structlog.get_logger()

LINKED_ACCOUNT_DIMENSION = "LINKED_ACCOUNT"
MONTHLY_GRANULARITY = "MONTHLY"

# floor for the elapsed duration used by the forecast, so an
# invocation at the very start of the month stays finite
_MIN_ELAPSED_SECONDS = 1.0


def compute_reporting_window(now: "datetime") -> "ReportingWindow":
    """
    derives the month-to-date window from the given instant. Naive
    datetimes are taken as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)

    month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        next_month_start = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_month_start = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)

    return ReportingWindow(
        start=month_start.date(),
        end=now.date(),
        elapsed_seconds=(now - month_start).total_seconds(),
        period_seconds=(next_month_start - month_start).total_seconds(),
    )


def sanitize_name(name: "str") -> "str":
    """
    restricts an account description to what the monitoring agent
    accepts as a metric key segment.
    """
    return name.replace(".", "").replace(",", "").replace(" ", "-")


def build_metric_map(
    records: "Sequence[CostRecord]",
    name_index: "AccountNameIndex",
    window: "ReportingWindow",
    options: "BuildOptions",
) -> "MetricMap":
    """
    turns cost records into flat metric keys. Accounts missing from
    the name index keep their raw id. Accounts sharing a display name
    get their id appended, so each account keeps its own key.
    """
    metric_map: "MetricMap" = {}
    elapsed = max(window.elapsed_seconds, _MIN_ELAPSED_SECONDS)

    keys = [record.account_key for record in records]
    if options.name_resolution_enabled:
        keys = [name_index.get(key, key) for key in keys]
    key_counts = Counter(keys)

    for record, key in zip(records, keys):
        if key_counts[key] > 1 and key != record.account_key:
            logger.warning(
                "account_name_collision",
                name=key,
                account_id=record.account_key,
            )
            key = f"{key}_{record.account_key}"

        metric_map[f"usage.{key}.{options.metric_name}"] = record.amount

        if options.forecast_enabled:
            metric_map[f"forecast.{key}.Forecast{options.metric_name}"] = (
                record.amount * window.period_seconds / elapsed
            )

    return metric_map


def _utcnow() -> "datetime":
    return datetime.now(timezone.utc)


class BillingMetricsCollector:
    """
    BillingMetricsCollector fetches month-to-date spend per linked
    account and turns it into a MetricMap. A fetch either returns
    the whole map or raises; nothing partial is ever returned.
    """

    def __init__(
        self,
        client: "BillingClient",
        options: "BuildOptions",
        clock: "Callable[[], datetime] | None" = None,
    ) -> "None":
        self._client = client
        self._options = options
        self._clock = clock or _utcnow

    def resolve_account_names(self, window: "ReportingWindow") -> "AccountNameIndex":
        values = self._client.list_dimension_values(LINKED_ACCOUNT_DIMENSION, window)
        index: "AccountNameIndex" = {}

        for value in values:
            description = (value.get("Attributes") or {}).get("description")
            if not description:
                continue
            index[value["Value"]] = sanitize_name(description)

        logger.debug("account_names_resolved", account_count=len(index))
        return index

    def fetch_cost_and_usage(
        self,
        window: "ReportingWindow",
        metric_name: "str",
    ) -> "list[CostRecord]":
        """
        queries the monthly spend grouped by linked account and parses
        the first (only) time bucket.
        """
        result = self._client.query_cost_and_usage(
            MONTHLY_GRANULARITY,
            window,
            [metric_name],
            LINKED_ACCOUNT_DIMENSION,
        )
        buckets = result.get("ResultsByTime", [])
        if not buckets:
            return []

        records: "list[CostRecord]" = []
        for group in buckets[0].get("Groups", []):
            account_key = group["Keys"][0]
            raw_amount = group.get("Metrics", {}).get(metric_name, {}).get("Amount")
            try:
                amount = float(raw_amount)
            except (TypeError, ValueError) as e:
                raise MalformedAmountError(account_key, raw_amount) from e
            # float() also takes "NaN", "Infinity" and "1_000"
            if not math.isfinite(amount) or "_" in str(raw_amount):
                raise MalformedAmountError(account_key, raw_amount)

            records.append(CostRecord(account_key=account_key, amount=amount))

        return records

    def fetch(self) -> "MetricMap":
        window = compute_reporting_window(self._clock())
        logger.info(
            "fetch_started",
            start=window.start.isoformat(),
            end=window.end.isoformat(),
            metric=self._options.metric_name,
        )
        if window.start == window.end:
            logger.warning(
                "empty_reporting_window",
                hint="Cost Explorer rejects a window starting and ending on the "
                "1st of the month, failures are expected until 00:00 UTC on the 2nd",
            )

        name_index: "AccountNameIndex" = {}
        if self._options.name_resolution_enabled:
            name_index = self.resolve_account_names(window)

        records = self.fetch_cost_and_usage(window, self._options.metric_name)
        logger.info("cost_records_fetched", record_count=len(records))

        return build_metric_map(records, name_index, window, self._options)
