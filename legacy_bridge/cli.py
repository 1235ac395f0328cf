"""Command line interface for legacy data imports."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import PipelineSettings
from .errors import ImportJobError, LegacyBridgeError
from .models.job import ImportProgress, SourceSystemType
from .orchestrator import ImportOrchestrator
from .services.analyzer import analyze_data_structure
from .services.templates import get_mapping_templates

logger = logging.getLogger(__name__)

SYSTEM_TYPES = [t.value for t in SourceSystemType]


def _write_output(data: Dict[str, Any], output: Optional[str]) -> None:
    text = json.dumps(data, indent=2, default=str)
    if output:
        with open(output, 'w') as f:
            f.write(text)
        print(f"Saved to {output}")
    else:
        print(text)


def print_progress(progress: ImportProgress) -> None:
    """Print a progress event on one line."""
    print(f"[{progress.percentage:5.1f}%] {progress.phase}: {progress.message}")


def run_templates(args) -> int:
    """Print the curated mapping templates for a system."""
    templates = get_mapping_templates(SourceSystemType(args.system_type))
    _write_output(templates.to_dict(), args.output)
    return 0


def run_analyze(args) -> int:
    """Analyze a legacy file before importing it."""
    with open(args.input, 'rb') as f:
        buffer = f.read()

    settings = PipelineSettings.from_env()
    report = analyze_data_structure(
        buffer,
        SourceSystemType(args.system_type),
        suggestion_threshold=settings.suggestion_threshold,
    )

    _write_output(report.to_dict(), args.output)
    return 0


def run_import(args) -> int:
    """Create an import job from a config file and run it."""
    with open(args.config) as f:
        config_data = json.load(f)

    orchestrator = ImportOrchestrator(settings=PipelineSettings.from_env())
    job = orchestrator.create_import_job(args.tenant, config_data, actor_id=args.actor)

    on_progress = None if args.quiet else print_progress
    try:
        asyncio.run(orchestrator.execute_import_job(args.tenant, job.id, on_progress=on_progress))
    except ImportJobError as e:
        logger.error(e.message)

    job = orchestrator.get_job(args.tenant, job.id)

    print("\n" + "=" * 60)
    print("IMPORT COMPLETE" if job.status.value == "completed" else "IMPORT FAILED")
    print("=" * 60)
    print(f"Status: {job.status.value}")
    print(f"Total Records: {job.total_records}")
    print(f"Processed: {job.processed_records}")
    print(f"Succeeded: {job.successful_records}")
    print(f"Failed: {job.failed_records}")
    if job.duration_seconds is not None:
        print(f"Duration: {job.duration_seconds:.2f} seconds")
    for error in job.error_log:
        print(f"  ERROR: {error}")
    if args.verbose:
        for warning in job.warning_log:
            print(f"  WARNING: {warning}")

    if args.records:
        records = orchestrator.list_import_records(args.tenant, job.id)
        _write_output({"records": [r.to_dict() for r in records]}, args.records)

    return 0 if job.status.value == "completed" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legacy-bridge",
        description="Legacy Bridge - Import legacy accounting data into the platform"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Mapping templates
    templates_parser = subparsers.add_parser("templates", help="Show mapping templates for a system")
    templates_parser.add_argument("system_type", choices=SYSTEM_TYPES, help="Legacy system type")
    templates_parser.add_argument("--output", help="Output file path")

    # Analyze a file
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a legacy data file")
    analyze_parser.add_argument("--input", required=True, help="Path to the legacy data file")
    analyze_parser.add_argument("--system-type", required=True, choices=SYSTEM_TYPES, help="Legacy system type")
    analyze_parser.add_argument("--output", help="Output file path")

    # Run an import
    run_parser = subparsers.add_parser("run", help="Run an import job")
    run_parser.add_argument("--config", required=True, help="Path to import job config file")
    run_parser.add_argument("--tenant", required=True, help="Tenant id to import into")
    run_parser.add_argument("--actor", help="Id of the user running the import")
    run_parser.add_argument("--records", help="Write ledger entries to this file")
    run_parser.add_argument("--quiet", "-q", action="store_true", help="Do not print progress")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    commands = {
        "templates": run_templates,
        "analyze": run_analyze,
        "run": run_import,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except (LegacyBridgeError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
