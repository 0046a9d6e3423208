import argparse
import asyncio
import logging
import random
import sys
import time
from pathlib import Path

from config import settings
from core.assembler import RecordAssembler, normalize_batch
from core.loader import write_raw_batch, write_records
from core.log_setup import setup_logging
from core.logistics import FeeSampler, LogisticsParser
from core.policy import policy_from_settings
from core.scanner import ProductPageScraper, read_urls

log = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape product pages into a raw listing batch")
    parser.add_argument("--category", help="Category assigned to every scraped product")
    parser.add_argument("--subcategory", default="", help="Optional subcategory")
    parser.add_argument("--location", help="Location assigned to every scraped product")
    parser.add_argument("--urls", type=Path, default=settings.urls_path, help="JSON list of product URLs")
    parser.add_argument("--output", type=Path, default=settings.scrape_output_path, help="Raw batch output")
    parser.add_argument(
        "--normalized-output",
        type=Path,
        default=None,
        help="Also write canonical records to this path",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    try:
        urls = read_urls(args.urls)
    except (OSError, ValueError) as e:
        log.critical(f"Cannot read URLs from {args.urls}: {e}")
        return 1
    log.info(f"Found {len(urls)} URLs in {args.urls}")

    scraper = ProductPageScraper()
    try:
        items = await scraper.scrape_all(urls, args.category, args.location, args.subcategory)
    finally:
        await scraper.close()

    write_raw_batch(items, args.output)

    if args.normalized_output:
        policy = policy_from_settings(settings)
        sampler = FeeSampler(random.Random(settings.random_seed))
        assembler = RecordAssembler(policy, LogisticsParser(policy, sampler))
        write_records(normalize_batch(items, assembler), args.normalized_output)

    return 0


def main() -> None:
    setup_logging(settings, "scraper.log")
    args = parse_args()
    if args.category is None:
        args.category = input("Category: ").strip()
    if args.location is None:
        args.location = input("Location: ").strip()

    start = time.monotonic()
    code = asyncio.run(run(args))
    log.info(f"Total time: {time.monotonic() - start:.1f}s")
    sys.exit(code)


if __name__ == "__main__":
    main()
