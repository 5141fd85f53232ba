#!/usr/bin/env python3
"""
Arena UGV navigator - Main Entry Point

Usage:
    ugv-nav                      # Run with params.json + UGV_* environment
    ugv-nav --target TL          # Ignore the oracle, drive to top-left
    ugv-nav --web                # Also serve the debug interface
"""

import argparse
import asyncio
import logging
import sys

from ugv_nav.params import PARAMS_FILE, ConfigError, Parameters


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Arena UGV navigator")
    parser.add_argument(
        "--params",
        default=str(PARAMS_FILE),
        help="Parameters JSON file",
    )
    parser.add_argument(
        "--target",
        help="Fixed target region (e.g. TL, Q3, BOTTOM_RIGHT), bypasses the oracle",
    )
    parser.add_argument(
        "--web",
        action="store_true",
        help="Enable web interface for debugging",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("UGV navigator starting...")

    params = Parameters.load(args.params)
    if args.target:
        params.target_override = args.target

    try:
        params.validate()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    from ugv_nav.control import Controller

    controller = Controller(params)

    async def run():
        runner = None
        if args.web:
            from ugv_nav.web import run_server

            runner = await run_server(controller=controller)
        try:
            await controller.run()
        finally:
            if runner:
                await runner.cleanup()

    asyncio.run(run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
