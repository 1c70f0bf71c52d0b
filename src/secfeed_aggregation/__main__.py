"""
Command-line entry point.

    python -m secfeed_aggregation                 # scheduler loop
    python -m secfeed_aggregation --once          # one refresh, then exit
    python -m secfeed_aggregation --manual-push   # push recent items now
"""

import argparse
import asyncio
import signal
from typing import Optional

from secfeed_aggregation.config import get_config, load_config_from_yaml, set_config
from secfeed_aggregation.core.factories import build_pipeline, create_scheduler
from secfeed_aggregation.core.pipeline import RefreshPipeline
from secfeed_aggregation.logger import get_logger, setup_logger
from secfeed_aggregation.storage import create_cache

logger = get_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="secfeed_aggregation",
        description="Aggregate Web3 security feeds and push new items to Telegram",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single refresh and exit")
    mode.add_argument(
        "--manual-push", action="store_true", help="Fetch now and push recent items"
    )
    parser.add_argument(
        "--fallback-latest",
        action="store_true",
        help="With --manual-push: push the latest items when none are recent",
    )
    parser.add_argument("--limit", type=int, default=None, help="Items sent by --manual-push")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--opml", default=None, help="OPML feed list (overrides config)")
    return parser.parse_args(argv)


async def _run_forever(pipeline: RefreshPipeline) -> None:
    scheduler = create_scheduler(pipeline)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops lack signal handlers; Ctrl+C still cancels
            pass

    scheduler.start()
    try:
        await stop_event.wait()
    finally:
        scheduler.stop(wait=False)


async def run(args: argparse.Namespace) -> int:
    cache = create_cache()
    if not await cache.connect():
        logger.warning("Cache unavailable; push dedup will fail open")

    try:
        pipeline = build_pipeline(cache, opml_path=args.opml)
        await pipeline.load_cached_items()

        if args.once:
            result = await pipeline.refresh()
            logger.info(
                f"Refresh finished: {result.total_items} items, {result.new_items} new, "
                f"success={result.success}"
            )
            return 0 if result.success else 1

        if args.manual_push:
            result = await pipeline.manual_push(
                limit=args.limit, fallback_to_latest=args.fallback_latest
            )
            logger.info(
                f"Manual push finished: {result.items_count} selected, {result.sent} sent, "
                f"{result.already_pushed} already pushed ({result.time_range})"
            )
            return 0 if result.success else 1

        await _run_forever(pipeline)
        return 0
    finally:
        await cache.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    if args.config:
        set_config(load_config_from_yaml(args.config))

    setup_logger()
    logger.info(f"{get_config().app_name} v{get_config().version} starting")

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
