import os
from dataclasses import dataclass

from awsce.models import BuildOptions
from awsce.plugin import DEFAULT_PREFIX, resolve_prefix

LOG_LEVEL_ENV_VAR = "AWS_CE_LOG_LEVEL"


@dataclass(frozen=True)
class Config:
    # resolved once at startup, never empty
    metric_key_prefix: "str" = DEFAULT_PREFIX
    # one of BlendedCost, UnblendedCost, UsageQuantity
    metrics: "str" = "UnblendedCost"
    disable_name: "bool" = False
    enable_forecast: "bool" = False

    access_key_id: "str" = ""
    secret_access_key: "str" = ""
    profile: "str" = ""

    tempfile: "str" = ""
    output_format: "str" = "mackerel"
    log_level: "str" = "warning"

    def __post_init__(self) -> "None":
        object.__setattr__(
            self, "metric_key_prefix", resolve_prefix(self.metric_key_prefix)
        )

    @classmethod
    def from_env(cls) -> "Config":
        return cls(log_level=os.environ.get(LOG_LEVEL_ENV_VAR, "") or "warning")

    def build_options(self) -> "BuildOptions":
        return BuildOptions(
            metric_name=self.metrics,
            forecast_enabled=self.enable_forecast,
            name_resolution_enabled=not self.disable_name,
        )
