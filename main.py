#!/usr/bin/env python3
"""
Command-line entry point: ``crawl <seed-url> <max-depth>``.
"""

import argparse
import logging
import sys
from typing import Optional, List

import yaml

from crawl_engine import __version__
from crawl_engine.crawler.runner import CrawlRun
from crawl_engine.storage.sink import SinkError
from crawl_engine.utils.config import Config, load_config, validate_config
from crawl_engine.utils.logger import setup_logging, log_system_info


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def build_config(self, args: argparse.Namespace) -> Config:
        """Load the config file and apply command-line overrides."""
        config = load_config(args.config)
        crawler = config.crawler

        overrides = {
            'max_total': args.max_total,
            'max_requests': args.max_requests,
            'max_connections': args.max_connections,
            'max_link_per_page': args.max_link_per_page,
            'random_seed': args.seed,
        }
        for name, value in overrides.items():
            if value is not None:
                setattr(crawler, name, value)

        if args.follow_relative_links:
            crawler.follow_relative_links = True
        if args.output:
            config.output.file = args.output

        validate_config(config)
        return config

    def run(self, args: argparse.Namespace) -> int:
        """Run one crawl and print its results."""
        try:
            config = self.build_config(args)
            setup_logging(config.logging, level=args.log_level)
            log_system_info()

            report = CrawlRun(config).execute(args.url, args.max_depth)

        except (OSError, ValueError, yaml.YAMLError, SinkError, MemoryError) as e:
            self.logger.error(f"Fatal error: {e}")
            self.logger.debug("Fatal error details", exc_info=True)
            return 1

        if not args.quiet:
            sys.stdout.write(report.contents)
            sys.stdout.flush()

        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='crawl',
        description="Recursive web crawler with global budgets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  crawl https://example.com 2                          # Crawl two levels deep
  crawl https://example.com 3 --follow-relative-links  # Resolve relative hrefs too
  crawl https://example.com 2 --config config.yaml     # Use a config file
  crawl https://example.com 2 --max-total 500 --seed 7 # Bigger, reproducible crawl
        """
    )

    parser.add_argument('url', help='Seed URL to start crawling from')
    parser.add_argument('max_depth', type=int, help='Maximum link depth to follow (0 = seed only)')

    parser.add_argument(
        '--config',
        help='Path to a YAML configuration file'
    )
    parser.add_argument(
        '--output',
        help='Result file (default: datafile.txt)'
    )
    parser.add_argument(
        '--follow-relative-links',
        action='store_true',
        help='Resolve relative hrefs against the page URL before filtering'
    )
    parser.add_argument('--max-total', type=int, help='Maximum number of fetches scheduled overall')
    parser.add_argument('--max-requests', type=int, help='Maximum number of fetches pending at once')
    parser.add_argument('--max-connections', type=int, help='Connection pool size')
    parser.add_argument('--max-link-per-page', type=int, help='Links admitted per page, minus one')
    parser.add_argument('--seed', type=int, help='Random seed for link sampling')
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Override the configured log level'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Do not print the result file after the crawl'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'crawl {__version__}'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.max_depth < 0:
        parser.error("max_depth must be non-negative")

    return CrawlerApp().run(args)


if __name__ == '__main__':
    sys.exit(main())
