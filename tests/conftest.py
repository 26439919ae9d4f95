from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber
from prometheus_client import CollectorRegistry

from awsce.collector import compute_reporting_window
from awsce.models import ReportingWindow

# mid-month invocation used across the tests
FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def window() -> "ReportingWindow":
    return compute_reporting_window(FIXED_NOW)


@pytest.fixture()
def ce_client() -> "object":
    """
    real boto3 Cost Explorer client with dummy credentials. Every call
    is expected to go through a Stubber.
    """
    return boto3.client(
        "ce",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture()
def stubber(ce_client: "object") -> "Stubber":
    with Stubber(ce_client) as stub:
        yield stub
        stub.assert_no_pending_responses()
