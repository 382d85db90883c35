#!/usr/bin/env python3
"""Delphi Price Feed.

Replays recorded price submissions through an aggregation engine and prints
the resulting window, reporter stats and published trimmed average.

Submissions are read as JSON lines: {"reporter": ..., "value": ..., "timestamp": ...}
with timestamps in microseconds. See --help for configuration.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Iterable

from .src.AggregationEngine import AggregationEngine, EngineConfig
from .src.constants import COOLDOWN
from .src.errors import OracleError
from .src.principal import normalize_principal, parse_principals
from .src.ReporterRegistry import ReporterRegistry
from .src.ValidatorSet import CachedValidatorSet, StaticValidatorSet, ValidatorSet
from .src.ValidatorSetContract import ValidatorSetContract
from .src.ValidatorSetHttp import ValidatorSetHttp

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_submission(line: str, line_no: int) -> dict:
    """Parse one JSON-lines submission.

    :param line: Stripped, non-blank line.
    :param line_no: Line number used in error messages.
    :returns: Submission dict with reporter, value and optional timestamp.
    :raises ValueError: If the line is not a JSON object with reporter and value.
    """
    try:
        item = json.loads(line)
    except json.JSONDecodeError as e:
        raise ValueError(f"Line {line_no}: invalid JSON ({e})") from e
    if not isinstance(item, dict) or "reporter" not in item or "value" not in item:
        raise ValueError(f"Line {line_no}: expected object with reporter and value")
    return item


def replay(engine: AggregationEngine, lines: Iterable[str]) -> tuple[int, int]:
    """Submit each recorded submission to the engine.

    Blank lines are skipped. Malformed lines count as rejected.

    :param engine: Engine receiving the submissions.
    :param lines: JSON lines with reporter, value and optional timestamp.
    :returns: Tuple of (accepted, rejected) counts.
    """
    accepted = 0
    rejected = 0
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            item = parse_submission(line, line_no)
            reporter = normalize_principal(str(item["reporter"]))
            engine.submit(reporter, item["value"], item.get("timestamp"))
        except (OracleError, ValueError) as e:
            logger.debug(f"Line {line_no} rejected: {e}")
            rejected += 1
        else:
            accepted += 1
    return accepted, rejected


def build_validator_set(args: argparse.Namespace) -> ValidatorSet:
    """Create the validator set selected by the command line.

    :param args: Parsed arguments.
    :returns: Contract, HTTP or static validator set.
    """
    if args.validator_contract:
        inner: ValidatorSet = ValidatorSetContract.from_network(
            args.network, args.validator_contract
        )
    elif args.validators_url:
        inner = ValidatorSetHttp(args.validators_url)
    else:
        return StaticValidatorSet(parse_principals(args.validators))
    return CachedValidatorSet(inner, ttl=args.validator_cache_ttl)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the Delphi price feed CLI."""
    parser = argparse.ArgumentParser(
        description="Delphi Price Feed: Trimmed-mean rolling price oracle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay a recording with two approved reporters
  python -m delphi.main --admin 0xAdmin... \\
      --reporters 0xAlice...,0xBob... --input submissions.jsonl

  # Also trust the validators listed by a node endpoint
  python -m delphi.main --admin 0xAdmin... \\
      --validators-url http://localhost:8080/validators --input -

Environment variables (CLI args take precedence):
  ADMIN, REPORTERS, VALIDATORS, VALIDATORS_URL, VALIDATOR_CONTRACT, NETWORK,
  VALIDATOR_CACHE_TTL, COOLDOWN_SECONDS, INPUT, RPC_URL
""",
    )

    parser.add_argument(
        "--admin",
        type=str,
        help="Administrative principal",
        default=os.environ.get("ADMIN"),
    )

    parser.add_argument(
        "--reporters",
        type=str,
        help="Comma-separated approved reporters",
        default=os.environ.get("REPORTERS") or "",
    )

    parser.add_argument(
        "--validators",
        type=str,
        help="Comma-separated static active validator set",
        default=os.environ.get("VALIDATORS") or "",
    )

    parser.add_argument(
        "--validators-url",
        dest="validators_url",
        type=str,
        help="HTTP endpoint returning the active validator set",
        default=os.environ.get("VALIDATORS_URL"),
    )

    parser.add_argument(
        "--validator-contract",
        dest="validator_contract",
        type=str,
        help="Address of a contract exposing getActiveValidators()",
        default=os.environ.get("VALIDATOR_CONTRACT"),
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network of the validator contract (sapphire, sapphire-testnet, sapphire-localnet)",
        default=os.environ.get("NETWORK") or "sapphire-localnet",
    )

    parser.add_argument(
        "--validator-cache-ttl",
        dest="validator_cache_ttl",
        type=float,
        help="Seconds to cache a fetched validator set (default: 60)",
        default=float(os.environ.get("VALIDATOR_CACHE_TTL") or "60"),
    )

    parser.add_argument(
        "--cooldown",
        type=float,
        help="Seconds between a reporter's accepted submissions (default: 55)",
        default=float(os.environ.get("COOLDOWN_SECONDS") or COOLDOWN / 1_000_000),
    )

    parser.add_argument(
        "--input",
        type=str,
        help="JSON-lines submissions file, '-' for stdin",
        default=os.environ.get("INPUT") or "-",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if not args.admin:
        parser.error("--admin must be specified")

    if args.cooldown < 0:
        parser.error("--cooldown must not be negative")

    if args.validator_cache_ttl < 0:
        parser.error("--validator-cache-ttl must not be negative")

    if args.validator_contract and args.validators_url:
        parser.error("--validator-contract and --validators-url are mutually exclusive")

    try:
        admin = normalize_principal(args.admin)
        reporters = parse_principals(args.reporters)
    except ValueError as e:
        parser.error(str(e))

    # Log configuration
    logger.info("=" * 60)
    logger.info("Delphi Price Feed - Trimmed Mean Replay")
    logger.info("=" * 60)
    logger.info(f"Admin:             {admin}")
    logger.info(f"Reporters:         {', '.join(reporters) or 'none'}")
    logger.info(f"Cooldown:          {args.cooldown}s")
    logger.info(f"Input:             {args.input}")
    logger.info("=" * 60)

    try:
        registry = ReporterRegistry(build_validator_set(args))
        engine = AggregationEngine(
            EngineConfig(admin=admin, cooldown=int(args.cooldown * 1_000_000)),
            registry=registry,
        )
        engine.set_reporters(admin, reporters)

        if args.input == "-":
            accepted, rejected = replay(engine, sys.stdin)
        else:
            with open(args.input, "r") as file:
                accepted, rejected = replay(engine, file)

        logger.info(f"Replay finished: {accepted} accepted, {rejected} rejected")
        print(json.dumps(engine.snapshot(), indent=2))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
