"""
CLI Reporter Module
===================

Provides rich terminal output for scan reports using the Rich library.

This module creates terminal displays with:
- A header panel naming the scanned scope
- Summary statistics per resource type
- A results table, one row per (resource, rule) outcome
- Error and incomplete-scanner sections

Classes
-------
CLIReporter
    Main reporter class for terminal output.

Example
-------
>>> from azqr.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report(scan_report)
>>> reporter.report(scan_report, violated_only=True)

Notes
-----
Resource names, ids and evidence are escaped before printing so that
brackets in Azure data are never read as Rich markup.

See Also
--------
rich : Python library for rich text and formatting.
CSVReporter : For data export.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from azqr.core.base_scanner import Result
from azqr.core.orchestrator import ScanReport
from azqr.core.rules import Rule, Severity

# Module logger
logger = logging.getLogger(__name__)

SEVERITY_STYLES = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "dim",
}

STATUS_STYLES = {
    "Passed": "green",
    "Violated": "red",
    "Undetermined": "yellow",
}


class CLIReporter:
    """
    Reporter for displaying scan reports in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.

    Attributes
    ----------
    console : Console
        The Rich Console used for output.

    Examples
    --------
    >>> reporter = CLIReporter()
    >>> reporter.report(scan_report)

    With custom console:

    >>> from rich.console import Console
    >>> reporter = CLIReporter(console=Console(force_terminal=True))

    See Also
    --------
    ScanReport : Aggregated scan results.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the CLI reporter with a Rich Console."""
        self.console = console or Console()
        logger.debug("Initialized CLIReporter")

    def report(self, report: ScanReport, violated_only: bool = False) -> None:
        """
        Display a scan report.

        Parameters
        ----------
        report : ScanReport
            The report to display.
        violated_only : bool, default=False
            Show only violated and undetermined rows in the results table.
        """
        self._print_header(report)
        self._print_summary(report)

        rows = report.results
        if violated_only:
            rows = [r for r in rows if r.violated or r.undetermined]

        if rows:
            self._print_results_table(rows)
        elif report.results:
            self.console.print("\n[green]No violations found.[/green]")
        else:
            self.console.print("\n[dim]No resources found in scope.[/dim]")

        if report.errors:
            self._print_errors(report.errors)
        if report.incomplete:
            self._print_incomplete(report.incomplete)

    def report_rules(self, rules: List[Rule]) -> None:
        """
        Display a rule catalog.

        Parameters
        ----------
        rules : list of Rule
            Rules in catalog order.
        """
        table = Table(title="\nRule Catalog", title_style="bold", show_lines=False)

        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Resource Type", style="dim")
        table.add_column("Category", style="white")
        table.add_column("Subcategory", style="white")
        table.add_column("Severity", no_wrap=True)
        table.add_column("Kind", style="dim")
        table.add_column("Description", max_width=60)

        for rule in rules:
            style = SEVERITY_STYLES.get(rule.severity, "white")
            table.add_row(
                rule.id,
                rule.resource_type,
                rule.category,
                rule.subcategory,
                f"[{style}]{rule.severity.value}[/]",
                rule.kind.value,
                escape(rule.description),
            )

        self.console.print(table)

    # =========================================================================
    # Private Methods: Output Formatting
    # =========================================================================

    def _print_header(self, report: ScanReport) -> None:
        header_text = Text()
        header_text.append("\nAzure Quick Review\n", style="bold blue")
        header_text.append(f"Subscription: {report.scope.subscription_id}", style="dim")
        if report.scope.resource_group:
            header_text.append(f"\nResource group: {report.scope.resource_group}", style="dim")

        self.console.print(Panel(header_text, border_style="blue"))

    def _print_summary(self, report: ScanReport) -> None:
        """
        Print overall statistics, then one line per resource type.

        Parameters
        ----------
        report : ScanReport
            Report being displayed.
        """
        summary = Table(show_header=False, box=None, padding=(0, 2))
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")

        summary.add_row("Resource Types:", str(len(report.scanners)))
        summary.add_row("Results:", str(len(report.results)))

        # Color-code counts based on value
        violated = len(report.violated)
        violated_style = "red" if violated > 0 else "green"
        summary.add_row("Violated:", f"[{violated_style}]{violated}[/]")

        undetermined = len(report.undetermined)
        undetermined_style = "yellow" if undetermined > 0 else "green"
        summary.add_row("Undetermined:", f"[{undetermined_style}]{undetermined}[/]")

        summary.add_row(
            "Scan Time:",
            report.scan_time.strftime("%Y-%m-%d %H:%M:%S UTC"),
        )

        if report.errors:
            summary.add_row(
                "Errors:",
                f"[yellow]{len(report.errors)} resource type(s) had errors[/]",
            )

        self.console.print("\n")
        self.console.print(summary)

        by_type = Table(title="\nBy Resource Type", title_style="bold")
        by_type.add_column("Resource Type", style="cyan")
        by_type.add_column("Resources", justify="right")
        by_type.add_column("Results", justify="right")
        by_type.add_column("Violated", justify="right", style="red")
        by_type.add_column("Undetermined", justify="right", style="yellow")

        for resource_type, counts in report.get_summary().items():
            by_type.add_row(
                resource_type,
                str(counts["resources"]),
                str(counts["results"]),
                str(counts["violated"]),
                str(counts["undetermined"]),
            )

        self.console.print(by_type)

    def _print_results_table(self, results: List[Result]) -> None:
        table = Table(title="\nResults", title_style="bold", show_lines=False)

        table.add_column("Rule", style="cyan", no_wrap=True)
        table.add_column("Resource Group", style="dim")
        table.add_column("Resource", style="white")
        table.add_column("Category", style="dim")
        table.add_column("Severity", no_wrap=True)
        table.add_column("Status", no_wrap=True)
        table.add_column("Evidence", max_width=50)

        for result in results:
            severity_style = SEVERITY_STYLES.get(result.severity, "white")
            status_style = STATUS_STYLES.get(result.status, "white")
            table.add_row(
                result.rule_id,
                escape(result.resource_group or "N/A"),
                escape(result.resource_name or "N/A"),
                result.subcategory,
                f"[{severity_style}]{result.severity.value}[/]",
                f"[{status_style}]{result.status}[/]",
                escape(self._truncate(result.evidence, 50)),
            )

        self.console.print(table)

    def _print_errors(self, errors: Dict[str, List[str]]) -> None:
        """
        Print errors encountered during scanning.

        Parameters
        ----------
        errors : dict
            Mapping of resource type to list of error messages.
        """
        if not errors:
            return

        self.console.print("\n[yellow bold]Errors encountered:[/yellow bold]")

        for resource_type, error_list in errors.items():
            self.console.print(f"\n[yellow]{resource_type}:[/yellow]")
            for error in error_list:
                self.console.print(f"  [red]• {escape(error)}[/red]")

    def _print_incomplete(self, incomplete: List[str]) -> None:
        self.console.print(
            "\n[yellow bold]Incomplete (cancelled or timed out):[/yellow bold]"
        )
        for resource_type in incomplete:
            self.console.print(f"  [yellow]• {resource_type}[/yellow]")

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        """Truncate text to maximum length with ellipsis."""
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    # =========================================================================
    # Public Methods: Messages
    # =========================================================================

    def print_scanning_message(self, scope: str, resource_types: List[str]) -> None:
        """
        Print a message about the resource types being scanned.

        Parameters
        ----------
        scope : str
            Scope being scanned.
        resource_types : list of str
            Resource types in invocation order.
        """
        self.console.print(
            f"\n[bold]Scanning {len(resource_types)} resource type(s) in {escape(scope)}...[/bold]"
        )
        self.console.print(f"[dim]Types: {', '.join(resource_types)}[/dim]")

    def print_completion_message(self, output_file: Optional[str] = None) -> None:
        """
        Print scan completion message.

        Parameters
        ----------
        output_file : str, optional
            Path to output file if results were saved.
        """
        self.console.print("\n[green bold]Scan complete![/green bold]")
        if output_file:
            self.console.print(f"[dim]Results saved to: {output_file}[/dim]")

    def print_error(self, message: str, title: str = "Error") -> None:
        """
        Print an error message under a red title.

        Azure error text can contain square brackets, so the message is
        escaped before it reaches Rich markup.

        Example
        -------
        >>> reporter.print_error("Subscription id must be a GUID", title="Invalid Scope")
        """
        self.console.print(f"\n[red bold]{title}:[/red bold] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """
        Print a warning message.

        Example
        -------
        >>> reporter.print_warning("Scan timed out, results are partial")
        """
        self.console.print(f"\n[yellow bold]Warning:[/yellow bold] {escape(message)}")

    def __repr__(self) -> str:
        """Return string representation."""
        return "CLIReporter()"
