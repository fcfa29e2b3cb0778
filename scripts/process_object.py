#!/usr/bin/env python3
"""
Generate WebP derivatives for one object, outside the Lambda runtime.

Reads AWS credentials and derivative settings from the environment / .env
(see webp_derivatives.config.Settings).  Existing derivatives are left as-is,
so the script is safe to re-run for backfills.

Usage:
    python scripts/process_object.py my-bucket "uploads/photo.jpg"
    python scripts/process_object.py my-bucket uploads/photo.jpg --widths 480,960 --max-width 960
"""
from __future__ import annotations

import argparse
import asyncio
import sys

from webp_derivatives.config import Settings
from webp_derivatives.exceptions import CanonicalDerivativeError, FanOutError
from webp_derivatives.handler import configure_logging
from webp_derivatives.s3 import S3ObjectStore
from webp_derivatives.service import DerivativeOrchestrator


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0].strip())
    parser.add_argument("bucket")
    parser.add_argument("key", help="decoded object key")
    parser.add_argument("--widths", help="comma-separated target widths")
    parser.add_argument("--max-width", type=int)
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    overrides: dict = {}
    if args.widths:
        overrides["target_widths"] = args.widths
    if args.max_width is not None:
        overrides["max_width"] = args.max_width
    settings = Settings(**overrides)
    configure_logging(settings.log_level)

    async with S3ObjectStore.open(settings) as store:
        try:
            result = await DerivativeOrchestrator(store, settings).run(args.bucket, args.key)
        except (CanonicalDerivativeError, FanOutError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    print(f"{result.key}: {result.status.value}" + (f" ({result.reason})" if result.reason else ""))
    for outcome in result.outcomes:
        width = outcome.width if outcome.width is not None else "-"
        line = f"  {outcome.status.value:<15} {width:>5}  {outcome.key}"
        if outcome.reason:
            line += f"  {outcome.reason}"
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
