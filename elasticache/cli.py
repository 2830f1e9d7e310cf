#!/usr/bin/env python3
"""
ElastiCache Discovery Command Line Tool

Discovers the nodes of a cluster and prints them, one per line.

Usage:
    elasticache-discover                            # Uses $ELASTICACHE_ENDPOINT
    elasticache-discover --env-var MY_ENDPOINT      # Custom configuration key
    elasticache-discover --timeout 2                # Discovery timeout in seconds
    elasticache-discover --list-keys                # Also list keys on all nodes
    elasticache-discover --debug                    # Enable debug logging

Environment Variables:
    ELASTICACHE_ENDPOINT            - "host:port" of the configuration endpoint
    ELASTICACHE_DISCOVERY_TIMEOUT   - Discovery timeout in seconds (0 = none)
    ELASTICACHE_DEBUG               - Enable debug mode (true/false)
    ELASTICACHE_LOG_FILE            - Write logs to this file instead of stdout
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .client import CacheClient
from .config.settings import ClientConfig, parse_timeout, settings
from .exceptions import ElastiCacheError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="ElastiCache: discover the nodes of a memcached cluster",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--env-var",
        type=str,
        default=settings.DEFAULT_ENDPOINT_ENV_VAR,
        help="Environment variable holding the configuration endpoint",
    )

    parser.add_argument(
        "--timeout",
        type=parse_timeout,
        default=settings.DISCOVERY_TIMEOUT,
        help="Discovery timeout in seconds (0 = none)",
    )

    parser.add_argument(
        "--list-keys",
        action="store_true",
        help="List the keys stored across all nodes",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=settings.LOG_FILE,
        help="Write logs to this file instead of stdout",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if log_file:
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stdout)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[handler],
    )


async def run(args: argparse.Namespace) -> int:
    """Discover the cluster and print what was found."""
    config = ClientConfig(
        endpoint_env_var=args.env_var,
        discovery_timeout=args.timeout or None,
    )
    logger = logging.getLogger(__name__)

    async with await CacheClient.create(config) as client:
        if not client.is_configured:
            print(f"Discovery failed: {client.last_error}", file=sys.stderr)
            return 1

        for node in client.topology:
            print(f"{node.host} {node.ip} {node.port} {node.address}")

        if args.list_keys:
            try:
                keys = await client.list_all_keys()
            except ElastiCacheError as exc:
                logger.error(f"Key listing failed: {exc}")
                print(f"Key listing failed: {exc}", file=sys.stderr)
                return 1
            for key in sorted(keys):
                print(key)

    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the discovery tool."""
    args = parse_args(argv)
    setup_logging(debug=args.debug, log_file=args.log_file)

    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
