import sys

import structlog

from awsce.cli import parse_args
from awsce.collector import BillingMetricsCollector
from awsce.config import Config
from awsce.errors import AwsCeError
from awsce.graphdef import build_graph_definitions
from awsce.logging import setup_logging
from awsce.metrics import PrometheusExporter
from awsce.models import MetricMap
from awsce.plugin import MackerelPlugin
from awsce.provider.costexplorer import CostExplorerClient

logger = structlog.get_logger()


def run(config: "Config") -> "None":
    """
    performs one fetch and writes it in the configured output format.
    Raises AwsCeError on any setup or fetch failure.
    """
    # client construction is deferred so meta mode never needs credentials
    def _fetch() -> "MetricMap":
        client = CostExplorerClient.connect(
            access_key_id=config.access_key_id,
            secret_access_key=config.secret_access_key,
            profile=config.profile,
        )
        collector = BillingMetricsCollector(client, config.build_options())
        return collector.fetch()

    if config.output_format == "prometheus":
        exporter = PrometheusExporter(config.metric_key_prefix)
        exporter.update(_fetch())
        sys.stdout.write(exporter.render())
        return

    plugin = MackerelPlugin(
        config.metric_key_prefix,
        build_graph_definitions(),
        tempfile=config.tempfile,
    )
    plugin.run(_fetch)


def main(argv: "list[str] | None" = None) -> "None":
    config = parse_args(argv)
    setup_logging(config.log_level)

    try:
        run(config)
    except AwsCeError as e:
        logger.error("fetch_failed", error=str(e), error_type=type(e).__name__)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
