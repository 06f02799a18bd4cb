"""
Report Generators
=================

This module provides output formatters for scan reports.

Each reporter transforms a ``ScanReport`` into a specific format suitable
for different use cases (terminal display, spreadsheet export, pipelines).

Available Reporters
-------------------
CLIReporter
    Rich terminal output with formatted tables and progress indicators.
CSVReporter
    CSV export for spreadsheet analysis.
JSONReporter
    JSON export for programmatic access.

Example
-------
>>> from azqr.reporters import CLIReporter, CSVReporter, JSONReporter
>>>
>>> # Display in terminal
>>> CLIReporter().report(scan_report)
>>>
>>> # Export to CSV
>>> filepath = CSVReporter(output_path="azqr.csv").report(scan_report)
>>>
>>> # Get as JSON
>>> json_str = JSONReporter().to_string(scan_report)

See Also
--------
azqr.core.orchestrator.ScanReport : Input data structure.
"""

from azqr.reporters.cli_reporter import CLIReporter
from azqr.reporters.csv_reporter import CSVReporter
from azqr.reporters.json_reporter import JSONReporter

__all__ = [
    "CLIReporter",
    "CSVReporter",
    "JSONReporter",
]
