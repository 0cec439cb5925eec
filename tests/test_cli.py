"""Tests for cli.py module."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from asecret_sync import __version__
from asecret_sync.cli import CliOptions, build_reconciler, cli, load_config
from asecret_sync.core.reconciler import Reconciler
from asecret_sync.exceptions import ClusterConnectionError, VaultConnectionError
from asecret_sync.models import Outcome, ReconcileResult

SUCCESS = ReconcileResult(outcome=Outcome.SUCCESS, requeue_after=timedelta(seconds=5))


@pytest.fixture
def mock_reconciler():
    """Patch build_reconciler to return a Reconciler double."""
    with patch("asecret_sync.cli.build_reconciler") as mock_build:
        reconciler = MagicMock(spec=Reconciler)
        mock_build.return_value = reconciler
        yield reconciler


class TestCliVersion:
    """Tests for version flag."""

    def test_version_flag(self):
        """Test --version flag prints version."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_version_short_flag(self):
        """Test -v flag prints version."""
        runner = CliRunner()
        result = runner.invoke(cli, ["-v"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestCliHelp:
    """Tests for help output."""

    def test_help_flag(self):
        """Test --help flag shows help text."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Keep Kubernetes Secrets in sync with AWS Secrets Manager" in result.output
        for option in ("--debug", "--config", "--context", "--in-cluster"):
            assert option in result.output
        for command in ("reconcile", "watch", "check-generator", "test-connection"):
            assert command in result.output

    def test_no_command_prints_help(self):
        """Test invoking without a command prints help."""
        runner = CliRunner()
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "Usage:" in result.output


class TestReconcileCommand:
    """Tests for the reconcile command."""

    def test_success(self, mock_reconciler):
        """Test a successful cycle exits 0."""
        mock_reconciler.reconcile.return_value = SUCCESS
        runner = CliRunner()

        result = runner.invoke(cli, ["reconcile", "payments/db"])

        assert result.exit_code == 0
        mock_reconciler.reconcile.assert_called_once_with("payments", "db")

    def test_bare_name_uses_default_namespace(self, mock_reconciler):
        """Test a bare name is reconciled in the default namespace."""
        mock_reconciler.reconcile.return_value = SUCCESS
        runner = CliRunner()

        runner.invoke(cli, ["reconcile", "db"])

        mock_reconciler.reconcile.assert_called_once_with("default", "db")

    @pytest.mark.parametrize("outcome", [Outcome.RETRYABLE_FAILURE, Outcome.VALIDATION_FAILURE])
    def test_failure_exits_1(self, mock_reconciler, outcome):
        """Test failed cycles exit 1."""
        mock_reconciler.reconcile.return_value = ReconcileResult(outcome=outcome, error=ValueError("bad"))
        runner = CliRunner()

        result = runner.invoke(cli, ["reconcile", "payments/db"])

        assert result.exit_code == 1

    def test_not_found_exits_0(self, mock_reconciler):
        """Test a missing ASecret is not an error."""
        mock_reconciler.reconcile.return_value = ReconcileResult(outcome=Outcome.NOT_FOUND)
        runner = CliRunner()

        result = runner.invoke(cli, ["reconcile", "payments/db"])

        assert result.exit_code == 0

    def test_invalid_reference(self, mock_reconciler):
        """Test an incomplete reference is rejected."""
        runner = CliRunner()

        result = runner.invoke(cli, ["reconcile", "payments/"])

        assert result.exit_code == 2
        mock_reconciler.reconcile.assert_not_called()


class TestWatchCommand:
    """Tests for the watch command."""

    @patch("asecret_sync.cli.time.sleep")
    def test_stops_after_max_cycles(self, mock_sleep, mock_reconciler):
        """Test the loop stops after the requested number of cycles."""
        mock_reconciler.reconcile.return_value = SUCCESS
        runner = CliRunner()

        result = runner.invoke(cli, ["watch", "payments/db", "--max-cycles", "3"])

        assert result.exit_code == 0
        assert mock_reconciler.reconcile.call_count == 3
        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(5.0)

    @patch("asecret_sync.cli.time.sleep")
    def test_stops_when_deleted(self, mock_sleep, mock_reconciler):
        """Test the loop stops once the ASecret is gone."""
        mock_reconciler.reconcile.side_effect = [SUCCESS, ReconcileResult(outcome=Outcome.NOT_FOUND)]
        runner = CliRunner()

        result = runner.invoke(cli, ["watch", "payments/db"])

        assert result.exit_code == 0
        assert mock_reconciler.reconcile.call_count == 2
        mock_sleep.assert_called_once_with(5.0)


class TestCheckGeneratorCommand:
    """Tests for the check-generator command."""

    def test_valid(self, mock_reconciler):
        """Test a valid generator exits 0."""
        mock_reconciler.reconcile_generator.return_value = ReconcileResult(outcome=Outcome.SUCCESS)
        runner = CliRunner()

        result = runner.invoke(cli, ["check-generator", "strong"])

        assert result.exit_code == 0
        mock_reconciler.reconcile_generator.assert_called_once_with("strong")

    def test_invalid(self, mock_reconciler):
        """Test an invalid generator exits 1."""
        mock_reconciler.reconcile_generator.return_value = ReconcileResult(outcome=Outcome.VALIDATION_FAILURE)
        runner = CliRunner()

        result = runner.invoke(cli, ["check-generator", "strong"])

        assert result.exit_code == 1


class TestTestConnectionCommand:
    """Tests for the test-connection command."""

    @patch("asecret_sync.cli.SecretsManager")
    def test_success(self, mock_store):
        """Test a working connection exits 0."""
        runner = CliRunner()

        result = runner.invoke(cli, ["test-connection"])

        assert result.exit_code == 0
        mock_store.return_value.test_connection.assert_called_once()

    @patch("asecret_sync.cli.SecretsManager")
    def test_failure(self, mock_store):
        """Test a failing connection exits 1."""
        mock_store.return_value.test_connection.side_effect = VaultConnectionError("denied")
        runner = CliRunner()

        result = runner.invoke(cli, ["test-connection"])

        assert result.exit_code == 1

    def test_bad_config_file(self, tmp_path):
        """Test an unreadable config file exits 1."""
        runner = CliRunner()

        result = runner.invoke(cli, ["--config", str(tmp_path / "absent.yaml"), "test-connection"])

        assert result.exit_code == 1


class TestBuildReconciler:
    """Tests for build_reconciler function."""

    @patch("asecret_sync.cli.SecretsManager")
    @patch("asecret_sync.cli.Cluster")
    def test_builds_from_options(self, mock_cluster, mock_store):
        """Test both stores are created from the options."""
        reconciler = build_reconciler(CliOptions(config_path=None, context="prod", in_cluster=False))

        mock_cluster.assert_called_once_with(context="prod", in_cluster=False)
        mock_store.return_value.test_connection.assert_called_once()
        assert reconciler.cluster is mock_cluster.return_value
        assert reconciler.vault is mock_store.return_value

    @patch("asecret_sync.cli.SecretsManager")
    @patch("asecret_sync.cli.Cluster")
    def test_cluster_failure(self, mock_cluster, mock_store):
        """Test a cluster failure becomes a ClickException."""
        mock_cluster.side_effect = ClusterConnectionError("Invalid or missing kubeconfig")

        with pytest.raises(click.ClickException, match="Invalid or missing kubeconfig"):
            build_reconciler(CliOptions(config_path=None, context=None, in_cluster=False))

        mock_store.assert_not_called()

    def test_load_config_from_file(self, tmp_path, monkeypatch):
        """Test the file is loaded before the environment."""
        monkeypatch.setenv("AWS_REGION", "ap-south-1")
        path = tmp_path / "config.yaml"
        path.write_text("awsRegion: eu-west-1\n")

        config = load_config(str(path))

        assert config.region == "eu-west-1"
