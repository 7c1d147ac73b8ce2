#!/usr/bin/env python3
"""
Command line entry point for boxexport.
"""

import argparse
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import ValidationError

from boxexport import __version__
from boxexport.backends.subprocess_runner import SubprocessRunner
from boxexport.config import CONFIG_FILE, ExportSettings
from boxexport.errors import BoxExportError
from boxexport.logging import configure_logging
from boxexport.pipeline import ExportPipeline
from boxexport.ui import ExportUI, console
from boxexport.vagrant import VagrantMachine

log = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boxexport", description="Export a Vagrant machine into a reusable box file"
    )
    parser.add_argument("--version", action="version", version=f"boxexport {__version__}")
    parser.add_argument(
        "machine", nargs="?", default="default", help="Machine name (default: default)"
    )
    parser.add_argument(
        "--fast", "-f", action="store_true", help="Skip the in-guest disk cleanup"
    )
    parser.add_argument(
        "--bare", "-b", action="store_true", help="Do not include the box template files"
    )
    parser.add_argument(
        "--project-dir", "-C", default=None, help="Vagrant project directory (default: cwd)"
    )
    parser.add_argument(
        "--config", "-c", default=None, help=f"Settings file (default: <project>/{CONFIG_FILE})"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    parser.add_argument("--log-file", default=None, help="Also write JSON logs to this file")
    return parser


def cmd_export(args) -> int:
    """Run one export and print where the box went."""
    project_dir = Path(args.project_dir).expanduser() if args.project_dir else Path.cwd()

    try:
        settings = ExportSettings.load(Path(args.config) if args.config else project_dir)
    except (ValidationError, ValueError) as exc:
        console.print(f"❌ Invalid settings: {exc}", style="red", markup=False)
        return 1

    runner = SubprocessRunner()
    machine = VagrantMachine(runner, machine=args.machine, project_dir=project_dir, settings=settings)
    pipeline = ExportPipeline(machine, settings=settings, ui=ExportUI(console), runner=runner, cwd=Path.cwd())

    try:
        result = pipeline.run(fast=args.fast, bare=args.bare)
    except BoxExportError as exc:
        log.debug("export_failed", error=str(exc), error_type=type(exc).__name__)
        console.print(f"❌ {exc}", style="red", markup=False)
        return 1

    if not result.success:
        console.print(f"[red]❌ Export failed, {result.target} was not created[/]")
        return result.status or 1

    console.print(f"[green]✅ Box exported to: {result.archive}[/]")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(
        level=args.log_level,
        json_output=args.json_logs,
        log_file=Path(args.log_file) if args.log_file else None,
    )
    return cmd_export(args)


if __name__ == "__main__":
    raise SystemExit(main())
