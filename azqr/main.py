"""
Azqr CLI - Azure Quick Review

Main entry point for the command-line interface.
"""

import json
import sys
import threading
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .core.azure_client import AzureClient
from .core.context import ScanScope
from .core.exceptions import AzqrError, AzureClientError, InvalidScopeError
from .core.logging import setup_logging
from .core.orchestrator import ScanOrchestrator, ScanReport
from .core.rules import RuleCatalog
from .reporters.cli_reporter import CLIReporter
from .reporters.csv_reporter import CSVReporter
from .reporters.json_reporter import JSONReporter
from .scanners import SCANNERS, build_scanners


console = Console()


def _scan_options(func):
    """Options shared by every ``scan`` subcommand."""
    options = [
        click.option(
            "--subscription-id",
            "-s",
            envvar="AZURE_SUBSCRIPTION_ID",
            required=True,
            help="Subscription to scan (default: $AZURE_SUBSCRIPTION_ID)",
        ),
        click.option(
            "--resource-group",
            "-g",
            default=None,
            help="Limit the scan to one resource group",
        ),
        click.option(
            "--output",
            "-o",
            default=None,
            help="Output file path (auto-detects format from extension)",
        ),
        click.option(
            "--format",
            "-f",
            "output_format",
            type=click.Choice(["cli", "csv", "json"]),
            default="cli",
            help="Output format (default: cli)",
        ),
        click.option(
            "--max-workers",
            default=4,
            type=click.IntRange(min=1),
            help="Maximum resource types scanned in parallel (default: 4)",
        ),
        click.option(
            "--timeout",
            default=None,
            type=click.FloatRange(min=0, min_open=True),
            help="Seconds before the scan is cancelled and partial results reported",
        ),
        click.option(
            "--violated-only",
            is_flag=True,
            help="Only list violated and undetermined results in the terminal",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="azqr")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level (default: WARNING)",
)
@click.option(
    "--log-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Also write logs to this file",
)
def cli(log_level: str, log_file: Optional[str]):
    """
    Azqr: Azure Quick Review

    Scans Azure resources and reports, per resource, whether it follows
    best practices for diagnostics, availability zones, SLA, private
    networking, SKU and naming conventions.
    """
    setup_logging(level=log_level, log_file=log_file)


@cli.group()
def scan():
    """Scan Azure resources against the best-practice rules."""
    pass


@scan.command("all")
@_scan_options
def scan_all(**options):
    """
    Scan every supported resource type.

    Examples:

        # Scan a whole subscription
        azqr scan all -s 00000000-0000-0000-0000-000000000000

        # Scan one resource group and export to CSV
        azqr scan all -s $SUB -g rg-prod --output results.csv

        # Give up after five minutes, keeping partial results
        azqr scan all --timeout 300 --format json -o results.json
    """
    _run_scan(list(SCANNERS), **options)


@scan.command("kv")
@_scan_options
def scan_keyvault(**options):
    """Scan Key Vaults."""
    _run_scan(["kv"], **options)


@scan.command("agw")
@_scan_options
def scan_app_gateway(**options):
    """Scan Application Gateways."""
    _run_scan(["agw"], **options)


@scan.command("cae")
@_scan_options
def scan_container_apps(**options):
    """Scan Container Apps managed environments."""
    _run_scan(["cae"], **options)


@scan.command("plan")
@_scan_options
def scan_app_service_plan(**options):
    """Scan App Service plans."""
    _run_scan(["plan"], **options)


def _run_scan(
    keys: List[str],
    subscription_id: str,
    resource_group: Optional[str],
    output: Optional[str],
    output_format: str,
    max_workers: int,
    timeout: Optional[float],
    violated_only: bool,
) -> None:
    """Validate the scope and credentials, scan, and render the report."""
    cli_reporter = CLIReporter(console)
    cancel_event = threading.Event()

    try:
        scope = ScanScope(subscription_id, resource_group)

        client = AzureClient()
        try:
            client.validate_credentials(scope.subscription_id)
        except AzureClientError as e:
            cli_reporter.print_error(str(e), title="Authentication Error")
            sys.exit(1)

        scanners = build_scanners(client, keys)
        resource_types = [s.get_resource_type() for s in scanners]
        cli_reporter.print_scanning_message(str(scope), resource_types)

        def progress_callback(resource_type: str, status: str):
            if status == "complete":
                console.print(f"  [dim]Completed: {resource_type}[/dim]")
            elif status == "error":
                console.print(f"  [yellow]Error scanning: {resource_type}[/yellow]")
            elif status == "cancelled":
                console.print(f"  [yellow]Cancelled: {resource_type}[/yellow]")

        orchestrator = ScanOrchestrator(
            client.has_diagnostic_settings, max_workers=max_workers
        )
        report = orchestrator.run(
            scanners,
            scope,
            cancel_event=cancel_event,
            timeout=timeout,
            progress_callback=progress_callback,
        )

        _output_report(report, cli_reporter, output, output_format, violated_only)

        if report.incomplete:
            cli_reporter.print_warning(
                f"Scan did not finish for: {', '.join(report.incomplete)}"
            )

    except InvalidScopeError as e:
        cli_reporter.print_error(str(e), title="Invalid Scope")
        sys.exit(1)
    except AzureClientError as e:
        cli_reporter.print_error(str(e), title="Azure Error")
        sys.exit(1)
    except KeyboardInterrupt:
        cancel_event.set()
        console.print("\n[yellow]Scan cancelled by user.[/yellow]")
        sys.exit(130)
    except AzqrError as e:
        cli_reporter.print_error(str(e))
        sys.exit(1)


def _output_report(
    report: ScanReport,
    cli_reporter: CLIReporter,
    output: Optional[str],
    output_format: str,
    violated_only: bool,
) -> None:
    """Render the report to the terminal and/or a file."""
    output_file = None

    if output_format == "cli" and not output:
        cli_reporter.report(report, violated_only=violated_only)
    elif output_format == "csv" or (output and output.endswith(".csv")):
        output_file = CSVReporter(output_path=output).report(report)
        # Also show CLI summary
        cli_reporter.report(report, violated_only=True)
    elif output_format == "json" or (output and output.endswith(".json")):
        output_file = JSONReporter(output_path=output).report(report)
        # Also show CLI summary
        cli_reporter.report(report, violated_only=True)
    else:
        # cli format with an output path of unknown extension
        cli_reporter.report(report, violated_only=violated_only)
        output_file = CSVReporter(output_path=output).report(report)

    cli_reporter.print_completion_message(output_file)


@cli.command("rules")
@click.option(
    "--service",
    type=click.Choice(list(SCANNERS)),
    multiple=True,
    help="Only list rules of these services (repeatable)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the catalog as JSON")
def list_rules(service: List[str], as_json: bool):
    """List the rule catalog."""
    try:
        scanners = build_scanners(AzureClient(), list(service) or None)
        catalog = RuleCatalog.from_scanners(scanners)
    except AzqrError as e:
        CLIReporter(console).print_error(str(e))
        sys.exit(1)

    rules = list(catalog)
    if as_json:
        click.echo(json.dumps([r.to_dict() for r in rules], indent=2))
        return

    CLIReporter(console).report_rules(rules)
    console.print(f"\n[dim]{len(rules)} rules[/dim]\n")


@cli.command("subscriptions")
def list_subscriptions():
    """List subscriptions visible to the current Azure credential."""
    try:
        subscriptions = AzureClient().list_subscriptions()
    except AzureClientError as e:
        CLIReporter(console).print_error(str(e))
        sys.exit(1)

    console.print(f"\n[bold]Azure Subscriptions ({len(subscriptions)} total):[/bold]\n")
    table = Table(show_lines=False)
    table.add_column("Subscription ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("State", style="dim")
    for subscription in subscriptions:
        table.add_row(
            subscription["subscription_id"],
            subscription["display_name"],
            subscription["state"],
        )
    console.print(table)
    console.print()


@cli.command("validate")
@click.option(
    "--subscription-id",
    "-s",
    envvar="AZURE_SUBSCRIPTION_ID",
    required=True,
    help="Subscription to validate access to (default: $AZURE_SUBSCRIPTION_ID)",
)
def validate_credentials(subscription_id: str):
    """Validate Azure credentials against a subscription."""
    try:
        scope = ScanScope(subscription_id)
        client = AzureClient()
        client.validate_credentials(scope.subscription_id)

        console.print("\n[green bold]Azure credentials are valid![/green bold]")
        console.print(f"\n  Subscription ID: {scope.subscription_id}")
        console.print()

    except (AzureClientError, InvalidScopeError) as e:
        CLIReporter(console).print_error(str(e), title="Validation Failed")
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
