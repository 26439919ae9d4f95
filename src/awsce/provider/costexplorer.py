from typing import Any, Callable, Sequence

import boto3
import structlog
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from awsce.errors import ConnectionSetupError, UpstreamQueryError
from awsce.models import ReportingWindow

logger = structlog.get_logger()

# Cost Explorer is only served from us-east-1
COST_EXPLORER_REGION = "us-east-1"

# a single attempt per call, failures surface to the caller immediately
_NO_RETRIES = BotoConfig(retries={"max_attempts": 1, "mode": "standard"})


def _time_period(window: "ReportingWindow") -> "dict[str, str]":
    return {"Start": window.start.isoformat(), "End": window.end.isoformat()}


class CostExplorerClient:
    """
    CostExplorerClient implements the BillingClient protocol on top of
    the boto3 Cost Explorer client. It follows NextPageToken on both
    calls and maps botocore failures to UpstreamQueryError.
    """

    def __init__(self, client: "Any") -> "None":
        self._client = client

    @classmethod
    def connect(
        cls,
        access_key_id: "str" = "",
        secret_access_key: "str" = "",
        profile: "str" = "",
        region: "str" = COST_EXPLORER_REGION,
    ) -> "CostExplorerClient":
        """
        builds a Cost Explorer client. A static key pair is used only when
        both halves are given, otherwise boto3 resolves credentials from
        the environment, the shared credential file or the instance role.
        """
        session_kwargs: "dict[str, str]" = {"region_name": region}
        if access_key_id and secret_access_key:
            session_kwargs["aws_access_key_id"] = access_key_id
            session_kwargs["aws_secret_access_key"] = secret_access_key
            credential_source = "static"
        elif profile:
            session_kwargs["profile_name"] = profile
            credential_source = "profile"
        else:
            credential_source = "default_chain"

        try:
            session = boto3.Session(**session_kwargs)
            client = session.client("ce", config=_NO_RETRIES)
            credentials = session.get_credentials()
        except BotoCoreError as e:
            raise ConnectionSetupError(f"cannot create Cost Explorer client: {e}") from e

        if credentials is None:
            raise ConnectionSetupError(
                f"no AWS credentials found (source: {credential_source})"
            )

        logger.debug(
            "cost_explorer_client_ready",
            region=region,
            credential_source=credential_source,
        )
        return cls(client)

    def list_dimension_values(
        self,
        dimension: "str",
        window: "ReportingWindow",
    ) -> "list[dict[str, Any]]":
        """
        fetches every value of the given dimension over the window,
        handling pagination.
        """
        kwargs: "dict[str, Any]" = {
            "TimePeriod": _time_period(window),
            "Dimension": dimension,
        }
        values: "list[dict[str, Any]]" = []

        while True:
            resp = self._call(
                "GetDimensionValues", self._client.get_dimension_values, kwargs
            )
            values.extend(resp.get("DimensionValues", []))

            token = resp.get("NextPageToken")
            if not token:
                break
            kwargs["NextPageToken"] = token

        logger.debug(
            "dimension_values_fetched",
            dimension=dimension,
            value_count=len(values),
        )
        return values

    def query_cost_and_usage(
        self,
        granularity: "str",
        window: "ReportingWindow",
        metrics: "Sequence[str]",
        group_by: "str",
    ) -> "dict[str, Any]":
        """
        runs a cost and usage query grouped by a single dimension.
        Groups spread over several pages are merged back into the
        bucket they belong to.
        """
        kwargs: "dict[str, Any]" = {
            "TimePeriod": _time_period(window),
            "Granularity": granularity,
            "Metrics": list(metrics),
            "GroupBy": [{"Type": "DIMENSION", "Key": group_by}],
        }
        # bucket start date -> bucket
        buckets: "dict[str, dict[str, Any]]" = {}

        while True:
            resp = self._call(
                "GetCostAndUsage", self._client.get_cost_and_usage, kwargs
            )
            for bucket in resp.get("ResultsByTime", []):
                bucket_start = bucket.get("TimePeriod", {}).get("Start", "")
                groups = bucket.get("Groups", [])
                if bucket_start in buckets:
                    buckets[bucket_start]["Groups"].extend(groups)
                else:
                    buckets[bucket_start] = {**bucket, "Groups": list(groups)}

            token = resp.get("NextPageToken")
            if not token:
                break
            kwargs["NextPageToken"] = token

        return {"ResultsByTime": list(buckets.values())}

    @staticmethod
    def _call(
        operation: "str",
        method: "Callable[..., dict[str, Any]]",
        kwargs: "dict[str, Any]",
    ) -> "dict[str, Any]":
        logger.debug("cost_explorer_call", operation=operation)
        try:
            return method(**kwargs)
        except ClientError as e:
            error = e.response.get("Error", {})
            raise UpstreamQueryError(
                operation,
                error.get("Message", "") or str(e),
                code=error.get("Code", ""),
            ) from e
        except BotoCoreError as e:
            raise UpstreamQueryError(operation, str(e)) from e
