"""
Command-line interface for the dependency audit tool.
"""

import argparse
import logging
import sys
from pathlib import Path

from .auditor import DependencyAuditor
from .models import AuditConfig
from .reporting import (
    export_results_csv,
    export_worksheets,
    generate_json_report,
    generate_text_report,
    has_high_severity_risks,
)
from .resolver import ManifestError


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if number < 0:
        raise argparse.ArgumentTypeError("must be a non-negative number")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dependency-audit",
        description="Audit npm dependencies for maintenance and security risks",
    )

    parser.add_argument(
        "--project-root",
        default=".",
        help="Directory containing package.json. Default: current directory"
    )

    parser.add_argument(
        "--stale-months",
        type=_non_negative_int,
        default=12,
        help="Months since last publish to flag as stale. Default: 12"
    )

    parser.add_argument(
        "--min-downloads",
        type=_non_negative_int,
        default=1000,
        help="Minimum weekly downloads threshold. Default: 1000"
    )

    parser.add_argument(
        "--skip-dev",
        action="store_true",
        help="Exclude devDependencies from the audit"
    )

    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format. Default: text"
    )

    parser.add_argument(
        "--fail-on-risk",
        action="store_true",
        help="Exit with a non-zero code if any risks are found"
    )

    parser.add_argument(
        "--fail-on-high",
        action="store_true",
        help="Exit with a non-zero code if any high severity risks are found"
    )

    parser.add_argument(
        "--export-dir",
        default=None,
        help="Also write CSV and Excel exports of the results to this directory"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = AuditConfig(
        stale_months=args.stale_months,
        min_downloads=args.min_downloads,
        skip_dev=args.skip_dev,
        output_format=args.output,
        fail_on_risk=args.fail_on_risk,
    )

    auditor = DependencyAuditor(config, project_root=Path(args.project_root))
    try:
        results = auditor.audit()
    except ManifestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if config.output_format == "json":
        print(generate_json_report(results))
    else:
        print(generate_text_report(results))

    if args.export_dir:
        export_dir = Path(args.export_dir)
        export_results_csv(results, export_dir)
        export_worksheets(results, export_dir)

    if config.fail_on_risk and any(result.has_risks for result in results):
        return 1
    if args.fail_on_high and has_high_severity_risks(results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
