import json
import math
import os
import re
import sys
import time
from typing import Callable, Mapping, TextIO

import structlog

from awsce.graphdef import GraphDef, MetricDef
from awsce.models import MetricMap

logger = structlog.get_logger()

DEFAULT_PREFIX = "aws-ce"
META_ENV_VAR = "MACKEREL_AGENT_PLUGIN_META"
META_HEADER = "# mackerel-agent-plugin"

# characters the agent accepts in a wildcard key segment
_WILDCARD_SEGMENT = "[-a-zA-Z0-9_]+"


def resolve_prefix(prefix: "str") -> "str":
    return prefix or DEFAULT_PREFIX


def wildcard_pattern(graph_key: "str", metric: "MetricDef") -> "re.Pattern[str]":
    """
    compiles the pattern matching every metric key of a graph,
    '#' and '*' standing for one key segment.
    """
    pattern = re.escape(f"{graph_key}.{metric.name}")
    pattern = pattern.replace(r"\#", _WILDCARD_SEGMENT)
    pattern = pattern.replace(r"\*", _WILDCARD_SEGMENT)
    return re.compile(pattern)


def format_value(key: "str", value: "float", timestamp: "int") -> "str":
    """
    formats one metric line. Integral values print without decimals.
    """
    if float(value).is_integer():
        return f"{key}\t{int(value)}\t{timestamp}"
    return f"{key}\t{value:f}\t{timestamp}"


class MackerelPlugin:
    """
    MackerelPlugin speaks the mackerel-agent plugin protocol: it either
    prints the graph definitions (meta mode) or the values of a
    MetricMap, one tab-separated line per metric.
    """

    def __init__(
        self,
        prefix: "str",
        graphs: "Mapping[str, GraphDef]",
        tempfile: "str" = "",
        out: "TextIO | None" = None,
    ) -> "None":
        self._prefix = resolve_prefix(prefix)
        self._graphs = graphs
        # kept for the agent's diff support; every metric here is absolute
        self._tempfile = tempfile
        self._out = out if out is not None else sys.stdout

    @property
    def metric_key_prefix(self) -> "str":
        return self._prefix

    @property
    def tempfile(self) -> "str":
        return self._tempfile

    def _prefixed(self, key: "str") -> "str":
        return f"{self._prefix}.{key}"

    def output_definitions(self) -> "None":
        graphs = {
            self._prefixed(key): graph.to_dict() for key, graph in self._graphs.items()
        }
        print(META_HEADER, file=self._out)
        print(json.dumps({"graphs": graphs}), file=self._out)

    def output_values(self, metric_map: "MetricMap", now: "float") -> "int":
        """
        prints every metric matching a declared graph and returns how
        many lines were written. Keys no graph accepts and non-finite
        values are skipped.
        """
        timestamp = int(now)
        emitted: "set[str]" = set()
        written = 0

        for graph_key, graph in self._graphs.items():
            for metric in graph.metrics:
                pattern = wildcard_pattern(graph_key, metric)
                for key in sorted(metric_map):
                    if key in emitted or not pattern.fullmatch(key):
                        continue
                    emitted.add(key)
                    value = metric_map[key]
                    if not math.isfinite(value):
                        logger.warning("invalid_metric_value", key=key, value=value)
                        continue
                    print(
                        format_value(self._prefixed(key), value, timestamp),
                        file=self._out,
                    )
                    written += 1

        for key in sorted(set(metric_map) - emitted):
            logger.warning("metric_key_skipped", key=key)

        return written

    def run(
        self,
        fetch: "Callable[[], MetricMap]",
        environ: "Mapping[str, str] | None" = None,
    ) -> "None":
        """
        dispatches on the agent's meta environment variable. In meta mode
        no fetch is made.
        """
        env = os.environ if environ is None else environ
        if env.get(META_ENV_VAR, ""):
            self.output_definitions()
            return

        metric_map = fetch()
        self.output_values(metric_map, time.time())
