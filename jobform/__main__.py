"""CLI entry point for inspecting job forms.

Usage:
    python -m jobform layout --ds-type HIVE --dt-type MYSQL
    python -m jobform layout --custom
    python -m jobform check job.yaml --catalog catalog.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from jobform.catalog.memory import InMemoryCatalog
from jobform.form import JobForm
from jobform.lib.errors import FormError, ValidationError
from jobform.lib.logging import setup_logging
from jobform.settings import FormSettings

logger = logging.getLogger(__name__)


def show_layout(ds_type: Optional[str], dt_type: Optional[str], custom: bool) -> int:
    """Print the fields a form lays out for one (mode, source, target) triple."""
    values = {
        "custom_config": custom,
        "ds_type": (ds_type or "").upper(),
        "dt_type": (dt_type or "").upper(),
    }
    form = JobForm(InMemoryCatalog(), values, settings=FormSettings())

    mode = "custom template" if custom else "standard"
    print(f"Layout: {mode}, source={values['ds_type'] or '-'}, target={values['dt_type'] or '-'}")
    print()
    print(f"  {'Field':<32}  {'Kind':<18}  Span")
    print(f"  {'-' * 32}  {'-' * 18}  ----")
    for descriptor in form.visible_fields():
        span = form.resolver.layout_weight(descriptor.key)
        print(f"  {descriptor.key:<32}  {descriptor.kind.value:<18}  {span}")
    return 0


async def _check(job_path: Path, catalog_path: Optional[Path], settings: FormSettings) -> int:
    with open(job_path, encoding="utf-8") as f:
        values = yaml.safe_load(f) or {}
    if not isinstance(values, dict):
        print(f"Error: {job_path} must contain a mapping of job parameters")
        return 1

    catalog = InMemoryCatalog.from_yaml(catalog_path) if catalog_path else InMemoryCatalog()
    try:
        form = JobForm(catalog, values, settings=settings)
    except ValidationError as e:
        print(f"{job_path}: malformed job parameters")
        for issue in e.issues:
            print(f"  [ERROR] {issue}")
        return 1
    outcomes = await form.load()

    for outcome in outcomes:
        if outcome.error is not None:
            print(f"  [WARNING] lookup {outcome.trigger}: {outcome.error.cause}")

    errors = form.validate()
    if not errors:
        print(f"{job_path}: OK")
        return 0

    print(f"{job_path}: {len(errors)} invalid field(s)")
    for key, message in errors.items():
        print(f"  [ERROR] {key}: {message}")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="jobform",
        description="Inspect DataX job forms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show which fields a Hive -> MySQL job lays out
    python -m jobform layout --ds-type HIVE --dt-type MYSQL

    # Validate a job definition against a catalog fixture
    python -m jobform check job.yaml --catalog catalog.yaml
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file (in addition to console)",
    )
    subparsers = parser.add_subparsers(dest="command")

    layout_parser = subparsers.add_parser("layout", help="Show the visible fields and spans")
    layout_parser.add_argument("--ds-type", help="Source datasource type code")
    layout_parser.add_argument("--dt-type", help="Target datasource type code")
    layout_parser.add_argument(
        "--custom",
        action="store_true",
        help="Use the custom JSON template",
    )

    check_parser = subparsers.add_parser("check", help="Validate a job definition")
    check_parser.add_argument("job", type=Path, help="YAML file with the job parameters")
    check_parser.add_argument(
        "--catalog",
        type=Path,
        help="YAML catalog fixture answering the lookups",
    )

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    settings = FormSettings.load()
    setup_logging(
        "DEBUG" if args.verbose else settings.log_level,
        json_format=args.json_log or settings.log_format == "json",
        log_file=args.log_file or settings.log_file,
    )

    try:
        if args.command == "layout":
            return show_layout(args.ds_type, args.dt_type, args.custom)
        return asyncio.run(_check(args.job, args.catalog, settings))
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}")
        return 1
    except FormError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
