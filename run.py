#!/usr/bin/env python3
"""
CLI for the B&Q (diy.com) verified seller scraper

Usage:
    python run.py                                   # ids 1-10000, browser mode
    python run.py --from 3900 --to 4000             # custom range
    python run.py --mode api                        # JSON API (needs DIY_API_TOKEN)
    python run.py --concurrency 4 --delay 1500      # batches of 4, 1.5s apart
    python run.py --headed --from 3958 --to 3958    # watch the browser

Re-running the same range resumes: ids already in results/progress.json are
skipped. Ctrl+C finishes in-flight work, saves progress and exits 0.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from src.scrapers import get_available_modes, get_scraper_module
from src.shared.batch_controller import BatchController, RunContext, RunSummary, install_signal_handlers
from src.shared.config_loader import (
    apply_cli_overrides,
    build_retry_policy,
    load_config,
    output_paths,
    validate_config,
)
from src.shared.delays import Sleeper
from src.shared.errors import ConfigError, ScraperError
from src.shared.export_service import CsvResultSink
from src.shared.http import log_safe
from src.shared.ledger import ProgressLedger
from src.shared.logging_config import setup_logging
from src.shared.sentry_integration import capture_scraper_error, flush as flush_sentry, init_sentry


LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


def setup_parser() -> argparse.ArgumentParser:
    """Setup command line argument parser"""
    parser = argparse.ArgumentParser(
        description="B&Q verified seller scraper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    range_group = parser.add_argument_group('range and pacing')
    range_group.add_argument(
        '--from',
        dest='from_id',
        type=int,
        help='First seller id (inclusive, default from config: 1)'
    )
    range_group.add_argument(
        '--to',
        dest='to_id',
        type=int,
        help='Last seller id (inclusive, default from config: 10000)'
    )
    range_group.add_argument(
        '--delay',
        type=int,
        metavar='MS',
        help='Delay between ids or batches in milliseconds'
    )
    range_group.add_argument(
        '--concurrency', '-c',
        type=int,
        help='Ids fetched concurrently per batch (1 = serial)'
    )

    fetch_group = parser.add_argument_group('fetching')
    fetch_group.add_argument(
        '--mode', '-m',
        choices=get_available_modes(),
        help='Fetch through the JSON API or the rendered seller page'
    )
    fetch_group.add_argument(
        '--headed',
        action='store_true',
        help='Show the browser window (browser mode)'
    )
    fetch_group.add_argument(
        '--max-retries',
        type=int,
        help='Attempts per seller id'
    )

    parser.add_argument(
        '--output-dir', '-o',
        help='Directory for sellers.csv, progress.json and debug/ (default: results)'
    )
    parser.add_argument(
        '--config',
        help='Path to YAML config (default: config/sellers.yaml)'
    )
    parser.add_argument(
        '--log-level',
        choices=LOG_LEVELS,
        default='INFO',
        help='Console and file log level'
    )
    parser.add_argument(
        '--log-file',
        default='logs/scraper.log',
        help='Log file path'
    )

    return parser


async def run_scrape(
    config: Dict[str, Any],
    sleep: Optional[Sleeper] = None,
    **client_kwargs: Any
) -> RunSummary:
    """Build the fetch client, ledger and sink for a config and run it.

    Raises:
        ScraperError: On configuration or resource failures
    """
    scraper = config['scraper']
    paths = output_paths(config)

    context = RunContext(
        from_id=scraper['from_id'],
        to_id=scraper['to_id'],
        delay=scraper['delay'],
        concurrency=scraper['concurrency'],
        flush_interval=scraper['flush_interval'],
    )
    install_signal_handlers(context)

    module = get_scraper_module(scraper['mode'])
    client = module.create_client(config, retry_policy=build_retry_policy(config), **client_kwargs)

    logging.info(
        f"[diy] Scraping seller ids {context.from_id}-{context.to_id} "
        f"(mode={scraper['mode']}, concurrency={context.concurrency}, delay={context.delay:.2f}s)"
    )
    logging.info(f"[diy] Output: {paths['results']}")

    async with client:
        controller = BatchController(
            client,
            ProgressLedger(paths['progress']),
            CsvResultSink(paths['results']),
            context,
            sleep=sleep,
        )
        return await controller.run()


def _print_errors(title: str, errors: List[str]) -> None:
    print(title)
    for error in errors:
        print(f"  - {error}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = setup_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_file, level=getattr(logging, args.log_level))
    init_sentry()

    try:
        config = apply_cli_overrides(load_config(args.config), args)
    except ConfigError as e:
        _print_errors("Configuration errors found:", [str(e)])
        return 1

    config_errors = validate_config(config)
    if config_errors:
        _print_errors("Configuration errors found:", config_errors)
        return 1

    try:
        summary = asyncio.run(run_scrape(config))
        if summary.interrupted:
            logging.info("Scraping interrupted by user, progress saved")
        return 0

    except KeyboardInterrupt:
        logging.info("Scraping interrupted by user")
        return 0
    except ScraperError as e:
        log_safe(f"Scraping failed: {e}", level=logging.ERROR)
        capture_scraper_error(e, mode=config['scraper']['mode'])
        return 1
    except Exception as e:
        logging.error(f"Scraping failed: {e}", exc_info=True)
        capture_scraper_error(
            e,
            mode=config['scraper']['mode'],
            extra={'from_id': config['scraper']['from_id'], 'to_id': config['scraper']['to_id']},
        )
        return 1
    finally:
        flush_sentry()


if __name__ == '__main__':
    sys.exit(main())
