"""
JSON Reporter Module
====================

Exports scan reports to JSON format for programmatic access and pipelines.

Classes
-------
JSONReporter
    Main reporter class for JSON export.

Example
-------
>>> from azqr.reporters import JSONReporter
>>>
>>> reporter = JSONReporter(output_path="azqr.json")
>>> filepath = reporter.report(scan_report)
>>>
>>> # Or get as string
>>> json_str = reporter.to_string(scan_report)

Output Structure
----------------
::

    {
      "metadata": {
        "subscription_id": "...",
        "resource_group": null,
        "resource_types": ["Microsoft.KeyVault/vaults"],
        "total_results": 6,
        "violated": 2,
        "undetermined": 0,
        "scan_time": "2024-01-15T10:30:00+00:00"
      },
      "summary_by_resource_type": {
        "Microsoft.KeyVault/vaults": {"resources": 1, "results": 6, ...}
      },
      "results": [...],
      "errors": {},
      "incomplete": []
    }

See Also
--------
CLIReporter : For terminal display.
CSVReporter : For spreadsheet export.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from azqr.core.orchestrator import ScanReport

# Module logger
logger = logging.getLogger(__name__)


class JSONReporter:
    """
    Reporter for exporting scan reports to JSON format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    indent : int, default=2
        JSON indentation level for pretty printing.
        Set to None for compact output.

    Attributes
    ----------
    output_path : str or None
        The configured output path.
    indent : int or None
        JSON indentation level.

    Examples
    --------
    >>> reporter = JSONReporter(output_path="azqr.json")
    >>> filepath = reporter.report(scan_report)

    Compact output (no indentation):

    >>> reporter = JSONReporter(indent=None)
    >>> json_str = reporter.to_string(scan_report)
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        indent: Optional[int] = 2,
    ) -> None:
        """Initialize the JSON reporter with optional output path and indentation."""
        self.output_path = output_path
        self.indent = indent
        logger.debug(f"Initialized JSONReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"azqr_report_{timestamp}.json")

    def report(self, report: ScanReport) -> str:
        """
        Export a scan report to a JSON file.

        Parameters
        ----------
        report : ScanReport
            Report to export.

        Returns
        -------
        str
            Path to the created JSON file.
        """
        output_path = self._get_output_path()

        logger.info(f"Exporting {len(report.results)} results to {output_path}")

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(report), f, indent=self.indent, default=str)

        logger.info(f"JSON export complete: {output_path}")
        return str(output_path)

    def to_string(self, report: ScanReport) -> str:
        """
        Convert a scan report to a JSON string without writing to file.

        Example
        -------
        >>> data = json.loads(JSONReporter().to_string(scan_report))
        """
        return json.dumps(self.to_dict(report), indent=self.indent, default=str)

    def to_dict(self, report: ScanReport) -> Dict[str, Any]:
        """
        Convert a scan report to a Python dictionary.

        Parameters
        ----------
        report : ScanReport
            Report to convert.

        Returns
        -------
        dict
            Dictionary with ``metadata``, ``summary_by_resource_type``,
            ``results``, ``errors`` and ``incomplete`` keys.

        Example
        -------
        >>> data = JSONReporter().to_dict(scan_report)
        >>> print(data["metadata"]["violated"])
        """
        return {
            "metadata": {
                "subscription_id": report.scope.subscription_id,
                "resource_group": report.scope.resource_group,
                "resource_types": report.scanners,
                "total_results": len(report.results),
                "violated": len(report.violated),
                "undetermined": len(report.undetermined),
                "successful_resource_types": report.successful_scanners,
                "scan_time": report.scan_time.isoformat(),
            },
            "summary_by_resource_type": report.get_summary(),
            "results": [r.to_dict() for r in report.results],
            "errors": report.errors,
            "incomplete": report.incomplete,
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return f"JSONReporter(output_path={self.output_path!r}, indent={self.indent})"
