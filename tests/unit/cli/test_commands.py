"""Tests for the run, audit and status commands."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from ingress_renewal_manager.cli.commands.base import console
from ingress_renewal_manager.cli.main import app
from ingress_renewal_manager.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConnectionError,
)
from ingress_renewal_manager.services.renewal.audit import AuditReport

COMMANDS = "ingress_renewal_manager.cli.commands"


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep rich tables from wrapping cell values."""
    monkeypatch.setattr(console, "width", 200)


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.__enter__.return_value = client
    client.check_connection.return_value = True
    client.get_cluster_version.return_value = "v1.29"
    client.get_current_context.return_value = "kind-dev"
    return client


@pytest.fixture
def patched_kube(mock_client: MagicMock) -> Iterator[MagicMock]:
    """Replace client construction for every command."""
    with patch(f"{COMMANDS}.base.KubernetesClient", return_value=mock_client) as factory:
        yield factory


class TestAuditCommand:
    """Test audit command."""

    @pytest.mark.unit
    def test_audit_prints_report(self, cli_runner: CliRunner, patched_kube: MagicMock) -> None:
        """A clean pass prints the counters and exits 0."""
        report = AuditReport(scanned=3, eligible=2, needed_renewal=1, renewed=1)
        with patch(f"{COMMANDS}.audit.RenewalController") as controller_cls:
            controller_cls.return_value.scanner.run_pass.return_value = report
            result = cli_runner.invoke(app, ["audit", "-n", "shop"])

        assert result.exit_code == 0
        assert "Audit Pass" in result.stdout
        assert "needed renewal" in result.stdout
        settings = controller_cls.call_args.args[0]
        assert settings.watch_namespace == "shop"
        assert settings.enable_event_dispatcher is False

    @pytest.mark.unit
    def test_audit_failures_exit_one(self, cli_runner: CliRunner, patched_kube: MagicMock) -> None:
        """Failed renewals make the command fail."""
        with patch(f"{COMMANDS}.audit.RenewalController") as controller_cls:
            controller_cls.return_value.scanner.run_pass.return_value = AuditReport(failed=2)
            result = cli_runner.invoke(app, ["audit"])

        assert result.exit_code == 1
        assert "need operator attention" in result.stdout

    @pytest.mark.unit
    def test_audit_list_error(self, cli_runner: CliRunner, patched_kube: MagicMock) -> None:
        """An aborted pass reports the API error."""
        with patch(f"{COMMANDS}.audit.RenewalController") as controller_cls:
            controller_cls.return_value.scanner.run_pass.side_effect = KubernetesAuthError(
                status_code=403
            )
            result = cli_runner.invoke(app, ["audit"])

        assert result.exit_code == 1
        assert "Authentication/authorization failed" in result.stdout

    @pytest.mark.unit
    def test_audit_bad_setting_exits_two(
        self, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Invalid configuration exits 2 naming the variable."""
        monkeypatch.setenv("IRM_ANNOTATION_REMOVAL_DELAY", "0")

        result = cli_runner.invoke(app, ["audit"])

        assert result.exit_code == 2
        assert "IRM_ANNOTATION_REMOVAL_DELAY" in result.stdout

    @pytest.mark.unit
    def test_audit_bad_cluster_setting_exits_two(
        self, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Invalid connection settings exit 2."""
        monkeypatch.setenv("IRM_K8S_TIMEOUT", "soon")

        result = cli_runner.invoke(app, ["audit"])

        assert result.exit_code == 2
        assert "IRM_K8S_*" in result.stdout

    @pytest.mark.unit
    def test_audit_unreachable_cluster(self, cli_runner: CliRunner) -> None:
        """A client that cannot load configuration exits 1."""
        with patch(
            f"{COMMANDS}.base.KubernetesClient",
            side_effect=KubernetesConnectionError("Cannot load Kubernetes configuration."),
        ):
            result = cli_runner.invoke(app, ["audit"])

        assert result.exit_code == 1
        assert "Cannot connect to Kubernetes cluster" in result.stdout


class TestRunCommand:
    """Test run command."""

    @pytest.mark.unit
    def test_run_wires_controller(
        self, cli_runner: CliRunner, patched_kube: MagicMock, mock_client: MagicMock
    ) -> None:
        """run installs signal handlers, starts metrics and blocks in the controller."""
        with (
            patch(f"{COMMANDS}.run.RenewalController") as controller_cls,
            patch(f"{COMMANDS}.run.start_metrics_server") as metrics_server,
            patch("signal.signal") as install,
        ):
            result = cli_runner.invoke(app, ["run"])

        assert result.exit_code == 0
        controller = controller_cls.return_value
        controller_cls.assert_called_once()
        assert controller_cls.call_args.args[1] is mock_client
        metrics_server.assert_called_once_with(8080, controller.metrics.registry)
        controller.run.assert_called_once()
        assert install.call_count == 2
        mock_client.__exit__.assert_called_once()

    @pytest.mark.unit
    def test_signal_handler_stops_controller(
        self, cli_runner: CliRunner, patched_kube: MagicMock
    ) -> None:
        """The installed handler asks the controller to stop."""
        import signal

        with (
            patch(f"{COMMANDS}.run.RenewalController") as controller_cls,
            patch(f"{COMMANDS}.run.start_metrics_server"),
            patch("signal.signal") as install,
        ):
            cli_runner.invoke(app, ["run"])

        handler = install.call_args_list[0].args[1]
        handler(signal.SIGTERM, None)
        controller_cls.return_value.stop.assert_called_once()


class TestStatusCommand:
    """Test status command."""

    @pytest.mark.unit
    def test_status_without_cluster(self, cli_runner: CliRunner) -> None:
        """Configuration is shown without contacting the cluster."""
        with patch(f"{COMMANDS}.base.KubernetesClient") as factory:
            result = cli_runner.invoke(app, ["status", "--no-check-cluster"])

        assert result.exit_code == 0
        assert "Ingress Renewal Manager Status" in result.stdout
        factory.assert_not_called()

    @pytest.mark.unit
    def test_status_reachable_cluster(
        self, cli_runner: CliRunner, patched_kube: MagicMock
    ) -> None:
        """A reachable cluster reports its version."""
        result = cli_runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "v1.29" in result.stdout

    @pytest.mark.unit
    def test_status_unreachable_cluster(
        self, cli_runner: CliRunner, patched_kube: MagicMock, mock_client: MagicMock
    ) -> None:
        """An unreachable cluster is reported, not raised."""
        mock_client.check_connection.return_value = False

        result = cli_runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "unreachable" in result.stdout
