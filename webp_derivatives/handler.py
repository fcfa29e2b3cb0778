"""
AWS Lambda handler — WebP derivatives

Triggered by an EventBridge "Object Created" rule on the media bucket
(S3 notifications, optionally through SQS, are accepted too).

Flow:
  1. Unwraps (bucket, key) from the event and URL-decodes the key.
  2. Downloads the object and checks that it is a decodable image.
  3. Writes <stem>.webp if missing.
  4. Writes <stem>-<width>.webp for every configured width up to MAX_WIDTH.

Only a failure to write the canonical derivative (or a broken task join)
fails the invocation, so the runtime's retry / DLQ policy applies to those
alone.  Missing or non-image objects report success.

Environment variables (see webp_derivatives.config.Settings):
  TARGET_WIDTHS    — comma-separated widths (default 480,960,1440,1920)
  MAX_WIDTH        — widest derivative generated (default 1440)
  WEBP_QUALITY     — lossy quality 1-100 (default 80)
  S3_ENDPOINT_URL  — S3-compatible endpoint (optional)
  LOG_LEVEL        — default INFO
"""
from __future__ import annotations

import asyncio
import contextlib
import logging

from webp_derivatives.config import Settings, get_settings
from webp_derivatives.constants import MSG_SUCCESS, MSG_UNSUPPORTED_EVENT
from webp_derivatives.exceptions import CanonicalDerivativeError, FanOutError, InvalidEvent
from webp_derivatives.keys import decode_key
from webp_derivatives.s3 import ObjectStore, S3ObjectStore
from webp_derivatives.schemas import Response, parse_event
from webp_derivatives.service import DerivativeOrchestrator

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format="%(levelname)s:%(name)s: %(message)s")
    # The Lambda runtime installs its own root handler before basicConfig runs
    logging.getLogger().setLevel(level.upper())


def handler(event: dict, context: object) -> dict:
    """Lambda entry point."""
    settings = get_settings()
    configure_logging(settings.log_level)
    return asyncio.run(process_event(event, settings))


async def process_event(
    event: dict,
    settings: Settings,
    store: ObjectStore | None = None,
) -> dict:
    """Process every object referenced by ``event``.

    ``store`` defaults to an S3 client opened for the duration of the call.
    """
    try:
        refs = parse_event(event)
    except InvalidEvent as exc:
        logger.warning("%s", exc)
        return Response(message=MSG_UNSUPPORTED_EVENT).model_dump()

    targets: list[tuple[str, str]] = []
    for ref in refs:
        key = decode_key(ref.raw_key)
        if not ref.bucket or not key:
            logger.warning("Unsupported event payload: bucket=%r key=%r", ref.bucket, ref.raw_key)
            continue
        targets.append((ref.bucket, key))

    if not targets:
        return Response(message=MSG_UNSUPPORTED_EVENT).model_dump()

    if store is None:
        store_ctx = S3ObjectStore.open(settings)
    else:
        store_ctx = contextlib.nullcontext(store)

    results = []
    async with store_ctx as active_store:
        orchestrator = DerivativeOrchestrator(active_store, settings)
        for bucket, key in targets:
            logger.info("Processing image: s3://%s/%s", bucket, key)
            try:
                result = await orchestrator.run(bucket, key)
            except (CanonicalDerivativeError, FanOutError) as exc:
                logger.error("Failed to handle key %s: %s", key, exc)
                raise
            results.append(result.to_dict())

    return Response(message=MSG_SUCCESS, results=results).model_dump()
