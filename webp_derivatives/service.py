"""
Derivative orchestration — pure pipeline logic.

Receives the object store and settings via the constructor; no AWS or
Lambda imports.  Fully testable with an in-memory store.

Per invocation:
  1. Fetch the source object           (missing / unreadable  -> skipped)
  2. Decode it                          (not an image          -> skipped)
  3. Canonical <stem>.webp              (any failure           -> fatal)
  4. Sized <stem>-<width>.webp, concurrently, one task per width
     (a task failure is logged and recorded, siblings keep going)

Existing derivatives are never overwritten.  The exists/put pair is not
atomic: two concurrent deliveries of the same event may both write the
same key, with identical content.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from PIL import Image

from webp_derivatives import keys
from webp_derivatives.config import Settings
from webp_derivatives.constants import (
    DERIVATIVE_CONTENT_TYPE,
    OutcomeStatus,
    ProcessStatus,
)
from webp_derivatives.exceptions import (
    CanonicalDerivativeError,
    FanOutError,
    ObjectNotFound,
    StorageError,
    UnsupportedImageFormat,
)
from webp_derivatives.processor import ImageTranscoder
from webp_derivatives.s3 import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class DerivativeOutcome:
    key: str
    width: int | None
    status: OutcomeStatus
    reason: str | None = None


@dataclass
class ProcessResult:
    status: ProcessStatus
    key: str
    outcomes: list[DerivativeOutcome] = field(default_factory=list)
    reason: str | None = None

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "key": self.key,
            "reason": self.reason,
            "outcomes": [
                {
                    "key": o.key,
                    "width": o.width,
                    "status": o.status.value,
                    "reason": o.reason,
                }
                for o in self.outcomes
            ],
        }


def effective_widths(widths: Iterable[int], max_width: int) -> list[int]:
    """Widths allowed by the max-width policy, in their original order."""
    return [width for width in widths if width <= max_width]


class DerivativeOrchestrator:
    def __init__(
        self,
        store: ObjectStore,
        settings: Settings,
        transcoder: ImageTranscoder | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._transcoder = transcoder or ImageTranscoder(
            quality=settings.webp_quality, method=settings.webp_method,
        )

    async def run(self, bucket: str, key: str) -> ProcessResult:
        """Produce every missing derivative of s3://bucket/key.

        Raises CanonicalDerivativeError or FanOutError; every other problem
        ends up as a skipped result or a FAILED outcome.
        """
        # 1. Fetch
        try:
            body = await self._store.get(bucket, key)
        except ObjectNotFound as exc:
            logger.warning("Skipping missing source object %s: %s", key, exc)
            return ProcessResult(ProcessStatus.SKIPPED, key, reason="source not found")
        except StorageError as exc:
            logger.error("Failed to read source object %s: %s", key, exc.__cause__ or exc)
            return ProcessResult(ProcessStatus.SKIPPED, key, reason="source unreadable")

        # 2. Validate
        try:
            image = await self._offload(self._transcoder.decode, body)
        except UnsupportedImageFormat as exc:
            logger.warning("Skipping non-image object %s: %s", key, exc)
            return ProcessResult(ProcessStatus.SKIPPED, key, reason="not an image")
        del body

        canonical_key = keys.derive_key(key)
        if not canonical_key:
            logger.warning("Skipping %s: empty derivative key", key)
            return ProcessResult(ProcessStatus.SKIPPED, key, reason="empty derivative key")

        result = ProcessResult(ProcessStatus.COMPLETED, key)

        # 3. Canonical derivative, finished before any sized one is started
        try:
            result.outcomes.append(
                await self._ensure_derivative(bucket, canonical_key, image, None)
            )
        except Exception as exc:
            logger.error("Failed to produce canonical derivative %s: %s", canonical_key, exc)
            raise CanonicalDerivativeError(canonical_key) from exc

        # 4. Sized derivatives
        widths = effective_widths(self._settings.target_widths, self._settings.max_width)
        if widths:
            result.outcomes.extend(await self._fan_out(bucket, key, image, widths))

        logger.info(
            "Processed %s: %d written, %d already present, %d failed",
            key,
            result.count(OutcomeStatus.WRITTEN),
            result.count(OutcomeStatus.SKIPPED_EXISTS),
            result.count(OutcomeStatus.FAILED),
        )
        return result

    async def _fan_out(
        self, bucket: str, key: str, image: Image.Image, widths: list[int],
    ) -> list[DerivativeOutcome]:
        tasks = [
            asyncio.create_task(self._sized_derivative(bucket, key, image, width))
            for width in widths
        ]
        # return_exceptions keeps one task's failure from cancelling the rest
        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: list[DerivativeOutcome] = []
        for width, outcome in zip(widths, results):
            if isinstance(outcome, BaseException):
                # _sized_derivative never raises Exception, so this is the
                # task itself being cancelled or torn down
                logger.error("Sized derivative task for width %d did not complete: %r", width, outcome)
                raise FanOutError(width) from outcome
            outcomes.append(outcome)
        return outcomes

    async def _sized_derivative(
        self, bucket: str, key: str, image: Image.Image, width: int,
    ) -> DerivativeOutcome:
        sized_key = keys.derive_key(key, width)
        try:
            return await self._ensure_derivative(bucket, sized_key, image, width)
        except Exception as exc:
            logger.exception("Failed to process sized image %s", sized_key)
            return DerivativeOutcome(sized_key, width, OutcomeStatus.FAILED, reason=str(exc))

    async def _ensure_derivative(
        self, bucket: str, derivative_key: str, image: Image.Image, width: int | None,
    ) -> DerivativeOutcome:
        if await self._store.exists(bucket, derivative_key):
            logger.info("Derivative %s already exists", derivative_key)
            return DerivativeOutcome(derivative_key, width, OutcomeStatus.SKIPPED_EXISTS)

        webp_body = await self._offload(self._transcoder.convert_to_webp, image, width)
        await self._store.put(
            bucket,
            derivative_key,
            webp_body,
            DERIVATIVE_CONTENT_TYPE,
            self._settings.cache_control,
        )
        return DerivativeOutcome(derivative_key, width, OutcomeStatus.WRITTEN)

    @staticmethod
    async def _offload(func, *args):
        # Pillow work is CPU-bound; keep the event loop free for store I/O
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)
