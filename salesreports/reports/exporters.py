"""
Report Export

Writes a SalesReport to the output directory as a set of tables plus a
JSON summary, one timestamped file per table.
"""

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

import polars as pl
import structlog

from salesreports.config import get_settings
from salesreports.exceptions import ReportExportError
from .models import SalesReport

logger = structlog.get_logger(__name__)


class ExportFormat(str, Enum):
    """Table formats a report can be written in"""
    PARQUET = "parquet"
    CSV = "csv"
    JSON = "json"


class ReportExporter:
    """
    Writes report tables with Polars.

    Example:
        exporter = ReportExporter("./reports")
        paths = exporter.export(report, "csv")
    """

    def __init__(self, output_path: Optional[Union[str, Path]] = None):
        self.output_path = Path(output_path or get_settings().reports.output_path)
        self.output_path.mkdir(parents=True, exist_ok=True)

    def _write_table(self, df: pl.DataFrame, path: Path, export_format: ExportFormat) -> None:
        if export_format == ExportFormat.PARQUET:
            df.write_parquet(path)
        elif export_format == ExportFormat.CSV:
            df.write_csv(path)
        else:
            df.write_json(path)

    def export(
        self,
        report: SalesReport,
        export_format: Union[str, ExportFormat, None] = None,
    ) -> Dict[str, str]:
        """
        Write every report table and a summary file.

        Args:
            report: Report to export
            export_format: parquet, csv or json (defaults to settings)

        Returns:
            Mapping of table name to written file path

        Raises:
            ReportExportError: If the format is not supported
        """
        fmt = export_format or get_settings().reports.export_format
        try:
            fmt = ExportFormat(fmt)
        except ValueError:
            raise ReportExportError(
                f"Unsupported export format: {fmt}",
                details={"allowed": [f.value for f in ExportFormat]},
            ) from None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        prefix = f"{report.date_range.kind.value}_{timestamp}"
        written: Dict[str, str] = {}

        for name, df in report.to_frames().items():
            path = self.output_path / f"{prefix}_{name}.{fmt.value}"
            self._write_table(df, path, fmt)
            written[name] = str(path)
            logger.info(f"Written {len(df)} rows to {path}")

        summary = report.to_dict()
        summary_path = self.output_path / f"{prefix}_summary.json"
        summary_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        written["summary"] = str(summary_path)

        return written
