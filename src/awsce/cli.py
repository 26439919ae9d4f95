import argparse
import dataclasses

from awsce.config import Config
from awsce.graphdef import METRIC_NAMES
from awsce.plugin import DEFAULT_PREFIX


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="aws-ce-metrics",
        description="AWS Cost Explorer billing metrics for mackerel-agent",
        epilog=(
            "On the 1st of the month (UTC) the reporting window starts and ends "
            "on the same day, which Cost Explorer rejects: runs fail until "
            "00:00 UTC on the 2nd."
        ),
    )
    parser.add_argument(
        "--metric-key-prefix",
        dest="metric_key_prefix",
        default=DEFAULT_PREFIX,
        help=f"Metric key prefix (default: {DEFAULT_PREFIX})",
    )
    parser.add_argument(
        "--metrics",
        dest="metrics",
        default="UnblendedCost",
        choices=list(METRIC_NAMES),
        help="Cost metric to report (default: UnblendedCost)",
    )
    parser.add_argument(
        "--disable-name",
        dest="disable_name",
        action="store_true",
        help="Do not resolve account names, output account IDs",
    )
    parser.add_argument(
        "--enable-forecast",
        dest="enable_forecast",
        action="store_true",
        help="Also report a full-month forecast",
    )
    parser.add_argument(
        "--access-key-id",
        dest="access_key_id",
        default="",
        help="AWS access key ID",
    )
    parser.add_argument(
        "--secret-access-key",
        dest="secret_access_key",
        default="",
        help="AWS secret access key",
    )
    parser.add_argument(
        "--profile",
        dest="profile",
        default="",
        help="Shared credentials profile to use",
    )
    parser.add_argument(
        "--tempfile",
        dest="tempfile",
        default="",
        help="Temp file name",
    )
    parser.add_argument(
        "--output-format",
        dest="output_format",
        default="mackerel",
        choices=["mackerel", "prometheus"],
        help="Output format (default: mackerel)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: $AWS_CE_LOG_LEVEL or warning)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    return dataclasses.replace(
        config,
        metric_key_prefix=args.metric_key_prefix,
        metrics=args.metrics,
        disable_name=args.disable_name,
        enable_forecast=args.enable_forecast,
        access_key_id=args.access_key_id,
        secret_access_key=args.secret_access_key,
        profile=args.profile,
        tempfile=args.tempfile,
        output_format=args.output_format,
        log_level=args.log_level or config.log_level,
    )
