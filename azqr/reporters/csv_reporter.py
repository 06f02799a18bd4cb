"""
CSV Reporter Module
===================

Exports scan reports to CSV format for spreadsheet analysis.

Classes
-------
CSVReporter
    Main reporter class for CSV export.

Example
-------
>>> from azqr.reporters import CSVReporter
>>>
>>> reporter = CSVReporter(output_path="azqr.csv")
>>> filepath = reporter.report(scan_report)
>>> print(f"Results saved to: {filepath}")

Output Format
-------------
The CSV file includes:
1. Metadata header rows (prefixed with #)
2. Empty separator row
3. Column headers
4. One data row per result

Example output::

    # Scan Metadata
    # Subscription:,00000000-0000-0000-0000-000000000000
    # Resource Group:,
    # Resource Types:,Microsoft.KeyVault/vaults
    # Results:,6
    # Violated:,2
    # Undetermined:,0
    # Scan Time:,2024-01-15T10:30:00+00:00

    Subscription,Resource Group,Resource Type,Resource Name,Rule Id,...
    0000...,rg-prod,Microsoft.KeyVault/vaults,kv-prod-01,kv-001,...

See Also
--------
CLIReporter : For terminal display.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from azqr.core.base_scanner import Result
from azqr.core.orchestrator import ScanReport

# Module logger
logger = logging.getLogger(__name__)


class CSVReporter:
    """
    Reporter for exporting scan reports to CSV format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.

    Attributes
    ----------
    output_path : str or None
        The configured output path.

    Examples
    --------
    >>> reporter = CSVReporter(output_path="./reports/azqr.csv")
    >>> filepath = reporter.report(scan_report)

    Auto-generate filename:

    >>> filepath = CSVReporter().report(scan_report)
    >>> print(filepath)  # e.g., 'azqr_report_20240115_103000.csv'
    """

    # CSV column definitions, one per Result field
    COLUMNS = [
        "Subscription",
        "Resource Group",
        "Resource Type",
        "Resource Name",
        "Rule Id",
        "Category",
        "Subcategory",
        "Description",
        "Severity",
        "Status",
        "Violated",
        "Evidence",
        "Learn",
        "Resource Id",
    ]

    def __init__(self, output_path: Optional[str] = None) -> None:
        """Initialize the CSV reporter with an optional output path."""
        self.output_path = output_path
        logger.debug(f"Initialized CSVReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"azqr_report_{timestamp}.csv")

    def report(self, report: ScanReport) -> str:
        """
        Export a scan report to CSV.

        Parameters
        ----------
        report : ScanReport
            Report to export.

        Returns
        -------
        str
            Path to the created CSV file.
        """
        output_path = self._get_output_path()

        logger.info(f"Exporting {len(report.results)} results to {output_path}")

        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.writer(csvfile, quoting=csv.QUOTE_MINIMAL)

            # Write metadata header
            self._write_metadata(writer, report)

            # Write column headers
            writer.writerow(self.COLUMNS)

            # Write data rows
            for result in report.results:
                writer.writerow(self._format_result_row(result))

        logger.info(f"CSV export complete: {output_path}")
        return str(output_path)

    def _write_metadata(self, writer: Any, report: ScanReport) -> None:
        """
        Write metadata header rows to CSV.

        Parameters
        ----------
        writer : csv.writer
            CSV writer object.
        report : ScanReport
            Report being exported.
        """
        writer.writerow(["# Scan Metadata"])
        writer.writerow(["# Subscription:", report.scope.subscription_id])
        writer.writerow(["# Resource Group:", report.scope.resource_group or ""])
        writer.writerow(["# Resource Types:", ", ".join(report.scanners)])
        writer.writerow(["# Results:", len(report.results)])
        writer.writerow(["# Violated:", len(report.violated)])
        writer.writerow(["# Undetermined:", len(report.undetermined)])
        writer.writerow(["# Scan Time:", report.scan_time.isoformat()])
        for resource_type, messages in report.errors.items():
            writer.writerow([f"# Error ({resource_type}):", "; ".join(messages)])
        if report.incomplete:
            writer.writerow(["# Incomplete:", ", ".join(report.incomplete)])
        writer.writerow([])  # Empty row for separation

    @staticmethod
    def _format_result_row(result: Result) -> List[Any]:
        """Format a result as a CSV row in column order."""
        return [
            result.subscription_id,
            result.resource_group,
            result.resource_type,
            result.resource_name,
            result.rule_id,
            result.category,
            result.subcategory,
            result.description,
            result.severity.value,
            result.status,
            result.violated,
            result.evidence,
            result.reference_url,
            result.resource_id,
        ]

    def __repr__(self) -> str:
        """Return string representation."""
        return f"CSVReporter(output_path={self.output_path!r})"
