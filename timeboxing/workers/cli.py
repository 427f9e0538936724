"""Command line entry point for the ad sync workers."""

from __future__ import annotations

import argparse
import logging

from timeboxing.core.config import get_settings
from timeboxing.core.logging import configure_logging
from timeboxing.db.session import SessionLocal
from timeboxing.models.entities import AdsPlatform, SyncJobStatus
from timeboxing.workers.google_ads import GoogleAdsClient
from timeboxing.workers.meta_ads import MetaAdsClient
from timeboxing.workers.sync import SyncJobRunner

logger = logging.getLogger(__name__)

SOURCES = {
    AdsPlatform.GOOGLE: GoogleAdsClient,
    AdsPlatform.META: MetaAdsClient,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timeboxing-worker",
        description="Sync ad platform campaign metrics into the Timeboxing database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  timeboxing-worker google          # Listen for Google Ads sync jobs
  timeboxing-worker meta --once     # Run one Meta sync now and exit
        """,
    )
    parser.add_argument("platform", choices=[platform.value for platform in AdsPlatform])
    parser.add_argument(
        "--once",
        action="store_true",
        help="Process pending jobs (or create one when none is pending) and exit",
    )
    return parser


def build_runner(platform: AdsPlatform) -> SyncJobRunner:
    settings = get_settings()
    return SyncJobRunner(platform, SOURCES[platform](settings), SessionLocal, settings)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    runner = build_runner(AdsPlatform(args.platform))
    if not args.once:
        runner.run_forever()
        return 0

    if runner.run_pending() == 0:
        status = runner.process_job(runner.create_job())
        logger.info("Unattended %s sync finished: %s", args.platform, status.value if status else "missing")
        return 0 if status == SyncJobStatus.COMPLETED else 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
