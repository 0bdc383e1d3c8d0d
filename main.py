"""
Command-line entry point for the Pokedex data layer.

Loads every Pokemon of a region (or an explicit id range) through the
batched region fetcher, printing progress as batches complete, then prints
one line per Pokemon and the fetch statistics.

Usage:
    python main.py kanto
    python main.py --start 1 --end 30
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from config.settings import LOG_LEVEL, ApiSettings, validate_settings
from pokedex.api_clients import PokeAPIClient
from pokedex.cache import CacheSet
from pokedex.progress import ProgressState
from pokedex.region_fetcher import RegionFetcher
from pokedex.regions import (
    POKEMON_REGIONS,
    get_region_by_id,
    validate_region_table,
)
from pokedex.request_executor import RequestExecutor

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("pokedex.log", encoding="utf-8"),
    ],
)
logger = logging.getLogger("pokedex")

logging.getLogger().setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch Pokemon by region from PokeAPI")
    parser.add_argument(
        "region",
        nargs="?",
        help=f"Region id ({', '.join(r.id for r in POKEMON_REGIONS)})",
    )
    parser.add_argument("--start", type=int, help="First id of an explicit range")
    parser.add_argument("--end", type=int, help="Last id of an explicit range")
    args = parser.parse_args(argv)

    if args.region is None and (args.start is None or args.end is None):
        parser.error("give a region id or both --start and --end")
    return args


async def run(args: argparse.Namespace, settings: ApiSettings) -> int:
    progress = ProgressState()

    def report(current: int, total: int) -> None:
        progress.update(current, total)
        print(f"  {current}/{total} ({progress.percent}%)", flush=True)

    caches = CacheSet.from_settings(settings)

    async with RequestExecutor(settings) as executor:
        client = PokeAPIClient(executor, caches, settings)
        fetcher = RegionFetcher(client, caches, settings)

        if args.region is not None:
            region = get_region_by_id(args.region)
            if region is None:
                logger.error(f"❌ Unknown region: {args.region}")
                return 1
            pokemon = await fetcher.fetch_region(region, on_progress=report)
            expected = region.count
        else:
            pokemon = await fetcher.fetch_range(args.start, args.end, on_progress=report)
            expected = max(args.end - args.start + 1, 0)

        progress.reset()

        for entry in pokemon:
            print(f"#{entry.id:04d} {entry.name:<20} {'/'.join(entry.types)}")

        if len(pokemon) < expected:
            logger.warning(f"⚠️  Loaded {len(pokemon)} of {expected} Pokemon")
        else:
            logger.info(f"✅ Loaded all {len(pokemon)} Pokemon")

        logger.info("Fetch stats", extra=dict(client.get_fetch_stats()))

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = validate_settings(ApiSettings.from_env())
        validate_region_table(POKEMON_REGIONS)
        logger.info("✅ Configuration validation passed")
    except ValueError as e:
        logger.critical(f"❌ Configuration validation failed: {e}")
        return 1

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
