#!/usr/bin/env python3
"""
Catalog Price Reconciliation Tool

Matches a supplier catalog against a point-of-sale catalog by UPC,
detects cost/retail drift, splits products by TPR status and writes
the export workbooks, with support for:
- Scope selection (cost, retail or all price fields)
- Excel (multi-sheet) or CSV export
- YAML / environment configuration
- Shelf label data generation
- Prometheus Pushgateway metrics

Usage:
    ./scripts/reconcile.py reconcile --supplier supplier.xlsx --pos pos.xlsx
    ./scripts/reconcile.py reconcile --supplier s.xlsx --pos p.csv --scope cost --format csv
    ./scripts/reconcile.py summary --supplier supplier.xlsx --pos pos.xlsx
    ./scripts/reconcile.py labels --input tpr_products.xlsx --output labels.csv
"""

import sys
import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.monitoring import ReconciliationMetrics
from src.reconciliation import ReconciliationSession, ResultPartitioner, Scope
from src.reconciliation.labels import build_labels, labels_to_records
from src.reconciliation.partitioner import ExportSheet
from src.utils.config import ConfigError, ReconcilerConfig, load_config
from src.utils.logging_setup import configure_logging
from src.utils.run_context import RunContext
from src.utils.spreadsheet import (
    SpreadsheetError,
    export_all,
    read_records,
    write_csv,
    write_workbook,
)

logger = logging.getLogger(__name__)


class ReconciliationTool:
    """Main reconciliation tool."""

    def __init__(self, config: Optional[ReconcilerConfig] = None):
        """
        Initialize reconciliation tool.

        Args:
            config: Resolved configuration (defaults if not provided)
        """
        self.config = config or ReconcilerConfig()
        self.metrics = ReconciliationMetrics() if self.config.pushgateway else None
        logger.debug("ReconciliationTool initialized")

    def load_session(self, supplier_path: str, pos_path: str) -> ReconciliationSession:
        """
        Read both uploads and open a reconciliation session.

        Args:
            supplier_path: Supplier spreadsheet
            pos_path: POS spreadsheet

        Returns:
            ReconciliationSession over the two datasets
        """
        supplier_records = read_records(supplier_path)
        pos_records = read_records(pos_path)

        return ReconciliationSession(
            supplier_records,
            pos_records,
            mapping=self.config.field_mapping,
            chunk_size=self.config.chunk_size,
            yield_every=self.config.yield_every,
            metrics=self.metrics
        )

    def reconcile(
        self,
        supplier_path: str,
        pos_path: str,
        write_exports: bool = True
    ) -> Dict[str, Any]:
        """
        Reconcile two catalogs and write the exports.

        Args:
            supplier_path: Supplier spreadsheet
            pos_path: POS spreadsheet
            write_exports: If False, only compute the summary

        Returns:
            Reconciliation results
        """
        start_time = datetime.now(timezone.utc)
        session = self.load_session(supplier_path, pos_path)
        matched = session.reconcile_sync(self.config.scope)

        partitioner = ResultPartitioner(matched)
        summary = partitioner.summary(
            total_supplier_rows=len(session.supplier_records),
            total_pos_rows=len(session.pos_records),
            index_stats=session.index_stats
        )

        written: List[Path] = []
        if write_exports:
            written = export_all(
                partitioner,
                self.config.output_dir,
                self.config.export_format
            )

        if self.metrics is not None:
            self.metrics.push(self.config.pushgateway)

        end_time = datetime.now(timezone.utc)

        return {
            "scope": session.scope.value,
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "duration_seconds": (end_time - start_time).total_seconds(),
            "summary": summary,
            "exports": [str(p) for p in written],
        }

    def generate_labels(self, input_path: str, output_path: str) -> Dict[str, Any]:
        """
        Build shelf label data for every row of a spreadsheet.

        Args:
            input_path: Product spreadsheet (supplier file or an export)
            output_path: Output .xlsx or .csv file

        Returns:
            Label counts and output path
        """
        labels = build_labels(read_records(input_path))
        sheets = [ExportSheet("Labels", labels_to_records(labels))]

        output = Path(output_path)
        if output.suffix.lower() == ".csv":
            write_csv(sheets, output)
        else:
            write_workbook(sheets, output)

        return {
            "labels": len(labels),
            "tpr_labels": sum(1 for label in labels if label.is_tpr),
            "output": str(output),
        }


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    # Global options, accepted before or after the subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help="YAML configuration file")
    common.add_argument(
        "--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Verbose logging"
    )

    parser = argparse.ArgumentParser(
        description="Supplier / POS catalog price reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
        parents=[common]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    scopes = [scope.value for scope in Scope]

    # Reconcile command
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Reconcile two catalogs", parents=[common]
    )
    reconcile_parser.add_argument("--supplier", required=True, help="Supplier spreadsheet")
    reconcile_parser.add_argument("--pos", required=True, help="POS spreadsheet")
    reconcile_parser.add_argument("--scope", choices=scopes, help="Price fields to compare")
    reconcile_parser.add_argument("--format", dest="export_format", choices=["xlsx", "csv"])
    reconcile_parser.add_argument("--output-dir", help="Directory for export files")
    reconcile_parser.add_argument("--chunk-size", type=int, help="POS records per slice")
    reconcile_parser.add_argument("--pushgateway", help="Prometheus Pushgateway address")

    # Summary command
    summary_parser = subparsers.add_parser(
        "summary", help="Print a reconciliation summary", parents=[common]
    )
    summary_parser.add_argument("--supplier", required=True, help="Supplier spreadsheet")
    summary_parser.add_argument("--pos", required=True, help="POS spreadsheet")
    summary_parser.add_argument("--scope", choices=scopes, help="Price fields to compare")

    # Labels command
    labels_parser = subparsers.add_parser(
        "labels", help="Generate shelf label data", parents=[common]
    )
    labels_parser.add_argument("--input", required=True, help="Product spreadsheet")
    labels_parser.add_argument("--output", required=True, help="Output .xlsx or .csv")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    verbose = getattr(args, "verbose", False)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(getattr(args, "config", None)).with_overrides(
            scope=getattr(args, "scope", None),
            export_format=getattr(args, "export_format", None),
            output_dir=getattr(args, "output_dir", None),
            chunk_size=getattr(args, "chunk_size", None),
            pushgateway=getattr(args, "pushgateway", None),
            log_level="DEBUG" if verbose else None
        )
    except ConfigError as e:
        configure_logging()
        logger.error(f"Configuration error: {e}")
        return 1

    configure_logging(config.log_level, config.json_logging)

    tool = ReconciliationTool(config)

    with RunContext():
        try:
            if args.command == "reconcile":
                results = tool.reconcile(args.supplier, args.pos)
                print(json.dumps(results, indent=2))

            elif args.command == "summary":
                results = tool.reconcile(args.supplier, args.pos, write_exports=False)
                print(json.dumps(results["summary"], indent=2))

            elif args.command == "labels":
                results = tool.generate_labels(args.input, args.output)
                print(json.dumps(results, indent=2))

            return 0

        except (SpreadsheetError, ValueError) as e:
            logger.error(f"Error: {e}", exc_info=verbose)
            return 1


if __name__ == "__main__":
    sys.exit(main())
