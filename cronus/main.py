"""Entry point for the calendar digest bot."""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from cronus.app.jobs import BotContext, build_context, build_jobs, run_digest_job, run_threshold_job
from cronus.config.loader import AppConfig, MissingCredentialsError, load_config, require_transport_credentials
from cronus.util.job_scheduler import JobScheduler
from cronus.util.logging_utils import configure_logging, get_logger


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send calendar digests to Telegram on a schedule")
    parser.add_argument("--config", default=None, help="Path to env config yaml (default: config/$APP_ENV.yaml)")
    parser.add_argument("--dry-run", action="store_true", help="Log messages instead of sending them")
    parser.add_argument("--once", action="store_true", help="Run the startup jobs once and exit")
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    if not args.config:
        return load_config()
    config_path = Path(args.config)
    return load_config(app_env=config_path.stem, config_dir=config_path.parent)


async def _run(ctx: BotContext, once: bool) -> None:
    logger = get_logger(__name__)
    if once:
        await asyncio.gather(run_digest_job(ctx), run_threshold_job(ctx))
        logger.info("Single run complete")
        return
    scheduler = JobScheduler(build_jobs(ctx), now=ctx.now)
    await scheduler.run_startup()
    try:
        await scheduler.run_forever()
    finally:
        scheduler.stop()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config = _resolve_config(args)
    log_level = config.logging.level if config.logging else "INFO"
    configure_logging(log_level)
    logger = get_logger(__name__)

    if not args.dry_run:
        try:
            require_transport_credentials(config)
        except MissingCredentialsError as exc:
            logger.error("%s", exc)
            return 1

    logger.info(
        "Starting in %s mode for calendar(s): %s", config.mode, ", ".join(config.calendar.calendar_ids)
    )
    ctx = build_context(config, dry_run=args.dry_run)
    try:
        asyncio.run(_run(ctx, args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
