#!/usr/bin/env python3
"""
semcache Command Line Entry Point

Runs a single cache operation against the configured store.

Usage:
    semcache get user:1
    semcache put user:1 '{"name": "alice"}' --ttl 60
    semcache has user:1
    semcache pull user:1
    semcache forget user:1
    semcache ttl user:1
    semcache --host 10.0.0.1,10.0.0.2 --port 7000 get user:1   # cluster

Environment Variables (take precedence over the flags):
    cacheHost       - Store host, comma separated for cluster mode
    cachePort       - Store port
    cachePassword   - Store password
    cacheCluster    - Force cluster mode (true/false)
    cacheLogLevel   - Logging level
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .cache.facade import Cache
from .config.settings import (
    CLUSTER_FIELD,
    DEFAULTS,
    HOST_FIELD,
    PASSWORD_FIELD,
    PORT_FIELD,
    settings,
)
from .exceptions import ConfigurationError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="semcache",
        description="semcache: run one cache operation against Redis",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--host", type=str, default=DEFAULTS[HOST_FIELD], help="Store host(s)")
    parser.add_argument("--port", type=int, default=DEFAULTS[PORT_FIELD], help="Store port")
    parser.add_argument("--password", type=str, default=None, help="Store password")
    parser.add_argument("--cluster", action="store_true", help="Force cluster mode")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    for name in ("get", "has", "forget", "pull", "ttl"):
        sub = commands.add_parser(name, help=f"{name.upper()} a key")
        sub.add_argument("key")

    put = commands.add_parser("put", help="Store a value (JSON or plain text)")
    put.add_argument("key")
    put.add_argument("value")
    put.add_argument("--ttl", type=int, default=None, help="Expiration in seconds")

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def parse_value(raw: str) -> Any:
    """Interpret raw as JSON when possible, else as a plain string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def explicit_config(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        HOST_FIELD: args.host,
        PORT_FIELD: args.port,
        PASSWORD_FIELD: args.password,
        CLUSTER_FIELD: args.cluster,
    }


async def execute(cache: Cache, args: argparse.Namespace) -> int:
    """Run the requested operation and print its result as JSON."""
    if args.command == "get":
        result = await cache.get(args.key)
        ok = result is not None
    elif args.command == "put":
        result = await cache.put(args.key, parse_value(args.value), args.ttl)
        ok = result
    elif args.command == "has":
        result = await cache.has(args.key)
        ok = result
    elif args.command == "pull":
        result = await cache.pull(args.key)
        ok = result is not None
    elif args.command == "forget":
        await cache.forget(args.key)
        result, ok = None, True
    else:
        result = await cache.ttl(args.key)
        ok = result is not None and result != -2

    print(json.dumps(result))
    return 0 if ok else 1


async def run(args: argparse.Namespace) -> int:
    async with Cache(explicit_config(args)) as cache:
        return await execute(cache, args)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    setup_logging(debug=args.debug or settings.DEBUG)
    logger = logging.getLogger(__name__)

    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 130


if __name__ == "__main__":
    sys.exit(main())
