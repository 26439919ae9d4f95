import pytest

from awsce import __main__ as entrypoint
from awsce.errors import ConnectionSetupError, UpstreamQueryError
from awsce.provider.costexplorer import CostExplorerClient
from conftest import FIXED_NOW
from fakes import FakeBillingClient, cost_group, cost_result, dimension_value


@pytest.fixture()
def fixed_clock(monkeypatch: "pytest.MonkeyPatch") -> "None":
    monkeypatch.setattr("awsce.collector._utcnow", lambda: FIXED_NOW)


@pytest.fixture()
def fake_client(monkeypatch: "pytest.MonkeyPatch") -> "FakeBillingClient":
    client = FakeBillingClient(
        dimension_values=[dimension_value("111111111111", "Prod Team, LLC.")],
        result=cost_result(cost_group("111111111111", "1234.56")),
    )
    monkeypatch.setattr(
        CostExplorerClient, "connect", classmethod(lambda cls, **kwargs: client)
    )
    monkeypatch.delenv("MACKEREL_AGENT_PLUGIN_META", raising=False)
    return client


def _stdout_lines(capsys: "pytest.CaptureFixture[str]") -> "list[str]":
    return capsys.readouterr().out.splitlines()


class TestMain:
    def test_prints_metric_lines(
        self,
        fake_client: "FakeBillingClient",
        fixed_clock: "None",
        capsys: "pytest.CaptureFixture[str]",
    ) -> "None":
        entrypoint.main([])

        lines = _stdout_lines(capsys)
        assert len(lines) == 1
        key, value, _ = lines[0].split("\t")
        assert key == "aws-ce.usage.Prod-Team-LLC.UnblendedCost"
        assert value == "1234.560000"

    def test_forecast_and_prefix(
        self,
        fake_client: "FakeBillingClient",
        fixed_clock: "None",
        capsys: "pytest.CaptureFixture[str]",
    ) -> "None":
        entrypoint.main(["--enable-forecast", "--metric-key-prefix", "billing"])

        keys = {line.split("\t")[0] for line in _stdout_lines(capsys)}
        assert keys == {
            "billing.usage.Prod-Team-LLC.UnblendedCost",
            "billing.forecast.Prod-Team-LLC.ForecastUnblendedCost",
        }

    def test_meta_mode(
        self,
        monkeypatch: "pytest.MonkeyPatch",
        capsys: "pytest.CaptureFixture[str]",
    ) -> "None":
        def _connect(cls: "object", **kwargs: "object") -> "None":
            raise AssertionError("meta mode must not connect")

        monkeypatch.setattr(CostExplorerClient, "connect", classmethod(_connect))
        monkeypatch.setenv("MACKEREL_AGENT_PLUGIN_META", "1")

        entrypoint.main([])

        assert _stdout_lines(capsys)[0] == "# mackerel-agent-plugin"

    def test_prometheus_output(
        self,
        fake_client: "FakeBillingClient",
        fixed_clock: "None",
        capsys: "pytest.CaptureFixture[str]",
    ) -> "None":
        entrypoint.main(["--output-format", "prometheus"])

        out = capsys.readouterr().out
        assert (
            'aws_ce_usage{account="Prod-Team-LLC",metric="UnblendedCost"} 1234.56'
            in out
        )

    @pytest.mark.parametrize(
        "error",
        [
            ConnectionSetupError("no credentials"),
            UpstreamQueryError("GetDimensionValues", "denied"),
        ],
    )
    def test_errors_exit_non_zero_without_output(
        self,
        monkeypatch: "pytest.MonkeyPatch",
        capsys: "pytest.CaptureFixture[str]",
        error: "Exception",
    ) -> "None":
        def _connect(cls: "object", **kwargs: "object") -> "None":
            raise error

        monkeypatch.setattr(CostExplorerClient, "connect", classmethod(_connect))
        monkeypatch.delenv("MACKEREL_AGENT_PLUGIN_META", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            entrypoint.main([])

        assert exc_info.value.code == 1
        assert _stdout_lines(capsys) == []
