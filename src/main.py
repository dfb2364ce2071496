# src/main.py — v1
"""CLI entry point — run, scan, status commands.

Usage:
    photos-backup run [--env-file PATH]
    photos-backup scan [--env-file PATH]
    photos-backup status [--env-file PATH]

Configuration comes from the environment and the .env file (see
config.settings). A run that finishes exits 0 even when some groups
failed (the summary reports them); 1 means the run could not start or
stopped on a fatal error.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from photosbackup.config.settings import ConfigurationError, Settings, load_settings
from photosbackup.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="photos-backup",
        description=f"photos-backup v{__version__} — Incremental photo library backup",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--env-file", type=Path, default=None,
        help="Settings file to read instead of ./.env",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_run = subparsers.add_parser(
        "run", help="Archive and upload everything newer than the watermark",
    )
    p_run.set_defaults(func=_cmd_run)

    p_scan = subparsers.add_parser(
        "scan", help="Show what the next run would upload, without uploading",
    )
    p_scan.set_defaults(func=_cmd_scan)

    p_status = subparsers.add_parser(
        "status", help="Show the watermark and the progress ledger",
    )
    p_status.set_defaults(func=_cmd_status)

    return parser


def _load(args: argparse.Namespace) -> Settings:
    if args.env_file is not None:
        return load_settings(_env_file=args.env_file)
    return load_settings()


async def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute one backup run."""
    from photosbackup.pipeline.orchestrator import BackupOrchestrator

    summary = await BackupOrchestrator(settings).run()

    print("\nBackup complete:")
    print(f"  Eligible files: {summary.eligible_files}")
    print(f"  Groups:         {summary.groups_total}")
    print(f"  Completed:      {summary.completed}")
    print(f"  Skipped:        {summary.skipped}")
    print(f"  Failed:         {summary.failed}")
    print(f"  Failed zips:    {summary.failed_zips}")
    print(f"  Failed uploads: {summary.failed_uploads}")
    print(f"  Failed verify:  {summary.failed_verifications}")
    if summary.test_mode:
        print("  Test mode:      watermark unchanged")
    elif summary.watermark_advanced and summary.new_watermark is not None:
        print(f"  Watermark:      {summary.new_watermark.isoformat()}")
    print(f"  Duration:       {summary.duration_seconds:.1f}s")
    return 0


async def _cmd_scan(args: argparse.Namespace, settings: Settings) -> int:
    """List the groups the next run would process."""
    from photosbackup.pipeline.orchestrator import BackupOrchestrator

    plan = await asyncio.to_thread(BackupOrchestrator(settings).plan)

    print(f"\nScan of {plan.scan.scan_root}:")
    print(f"  Watermark:      {plan.watermark.isoformat() if plan.watermark else 'none'}")
    print(f"  Eligible files: {len(plan.entries)}")
    print(f"  Duplicates:     {len(plan.partition.duplicates)}")
    print(f"  Excluded:       {plan.scan.excluded.total}")
    for key, members in plan.partition.groups.items():
        marker = " (already uploaded)" if key in plan.completed_keys else ""
        print(f"  {key}: {len(members)} file(s){marker}")
    return 0


async def _cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    """Display the watermark and ledger contents."""
    from photosbackup.storage.ledger import load_ledger
    from photosbackup.storage.watermark import read_watermark

    watermark = read_watermark(settings.last_upload_file)
    state = load_ledger(settings.effective_upload_state_file)

    print(f"\nStatus ({settings.object_store}):")
    print(f"  Watermark:        {watermark.isoformat() if watermark else 'none'}")
    stale = "" if state.belongs_to(watermark) else " (from an earlier watermark, ignored)"
    print(f"  Ledger:           {settings.effective_upload_state_file}{stale}")
    print(f"  Completed groups: {len(state.completed_months)}")
    for key in sorted(state.completed_months):
        print(f"    {key} -> {state.remote_keys.get(key, '?')}")
    return 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from photosbackup.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
