#!/usr/bin/env python
"""Command-line interface for asecret-sync.

This module provides the ``asecret-sync`` entry point: loading the
operator configuration, connecting to both stores and running
reconciliation cycles for ASecret and AGenerator resources.
"""

import sys
import time
from dataclasses import dataclass

import click
from icecream import ic

from asecret_sync import __version__, console
from asecret_sync.config import OperatorConfig
from asecret_sync.core.cluster import Cluster
from asecret_sync.core.reconciler import Reconciler
from asecret_sync.core.vault import SecretsManager
from asecret_sync.exceptions import SecretSyncError
from asecret_sync.models import ObjectRef, Outcome, ReconcileResult


@dataclass(slots=True)
class CliOptions:
    """Global options shared by every subcommand."""

    config_path: str | None
    context: str | None
    in_cluster: bool


def load_config(config_path: str | None) -> OperatorConfig:
    """Load the operator configuration from an optional file and the environment."""
    config = OperatorConfig.from_file(config_path) if config_path else OperatorConfig()
    config.load_from_env()
    ic(config)
    return config


def build_reconciler(options: CliOptions) -> Reconciler:
    """Connect to both stores and build a Reconciler.

    Raises:
        click.ClickException: If the configuration cannot be loaded or
            either store cannot be reached.

    """
    try:
        config = load_config(options.config_path)
        cluster = Cluster(context=options.context, in_cluster=options.in_cluster)
        vault = SecretsManager(config)
        with console.spinner("Testing AWS connectivity..."):
            vault.test_connection()
    except SecretSyncError as e:
        raise click.ClickException(str(e)) from None
    console.success("Connected to AWS Secrets Manager")
    return Reconciler(cluster=cluster, vault=vault, config=config)


def report(title: str, result: ReconcileResult) -> None:
    """Print a summary panel for a reconciliation result."""
    items = {"Outcome": result.outcome.value}
    if result.requeue_after is not None:
        items["Next run"] = f"in {result.requeue_after}"
    if result.error is not None:
        items["Error"] = str(result.error)
    console.summary_panel(title, items, ok=result.outcome in (Outcome.SUCCESS, Outcome.NOT_FOUND))


def _parse_ref(value: str) -> ObjectRef:
    try:
        return ObjectRef.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from None


@click.group(help="Keep Kubernetes Secrets in sync with AWS Secrets Manager", invoke_without_command=True)
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--config", "config_path", required=False, type=click.Path(), help="operator config file")
@click.option("--context", required=False, help="kubeconfig context to use")
@click.option("--in-cluster", required=False, is_flag=True, default=False, help="use the in-cluster service account")
@click.pass_context
def cli(
    ctx: click.Context,
    version: bool,
    debug: bool,
    config_path: str | None,
    context: str | None,
    in_cluster: bool,
) -> None:
    """Process global options.

    Args:
        ctx: The click context.
        version: Print version and exit.
        debug: Enable debug output.
        config_path: Path to the operator config file.
        context: Kubeconfig context to use.
        in_cluster: Use the in-cluster configuration.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    ctx.obj = CliOptions(config_path=config_path, context=context, in_cluster=in_cluster)


@cli.command(help="Run one reconciliation cycle for NAMESPACE/NAME")
@click.argument("ref")
@click.pass_obj
def reconcile(options: CliOptions, ref: str) -> None:
    """Reconcile a single ASecret once."""
    target = _parse_ref(ref)
    result = build_reconciler(options).reconcile(target.namespace, target.name)
    report(f"ASecret {target}", result)
    if result.outcome in (Outcome.RETRYABLE_FAILURE, Outcome.VALIDATION_FAILURE):
        sys.exit(1)


@cli.command(help="Reconcile NAMESPACE/NAME repeatedly, waiting the returned delay between cycles")
@click.argument("ref")
@click.option("--max-cycles", type=int, default=0, show_default=True, help="stop after N cycles (0 = forever)")
@click.pass_obj
def watch(options: CliOptions, ref: str, max_cycles: int) -> None:
    """Reconcile a single ASecret until it is deleted."""
    target = _parse_ref(ref)
    reconciler = build_reconciler(options)
    cycles = 0
    while True:
        result = reconciler.reconcile(target.namespace, target.name)
        cycles += 1
        if result.outcome is Outcome.NOT_FOUND or result.requeue_after is None:
            return
        if max_cycles and cycles >= max_cycles:
            report(f"ASecret {target}", result)
            return
        console.step(f"Sleeping {result.requeue_after}")
        time.sleep(result.requeue_after.total_seconds())


@cli.command("check-generator", help="Validate the AGenerator NAME")
@click.argument("name")
@click.pass_obj
def check_generator(options: CliOptions, name: str) -> None:
    """Validate a single AGenerator."""
    result = build_reconciler(options).reconcile_generator(name)
    report(f"AGenerator {name}", result)
    if result.outcome is not Outcome.SUCCESS:
        sys.exit(1)


@cli.command("test-connection", help="Check connectivity to AWS Secrets Manager")
@click.pass_obj
def check_connection(options: CliOptions) -> None:
    """Verify the AWS configuration without touching the cluster."""
    try:
        vault = SecretsManager(load_config(options.config_path))
        with console.spinner("Testing AWS connectivity..."):
            vault.test_connection()
    except SecretSyncError as e:
        console.error(str(e))
        sys.exit(1)
    console.success("Connected to AWS Secrets Manager")


if __name__ == "__main__":
    cli()
