"""
Object storage — the three operations the pipeline needs from a bucket.

``ObjectStore`` is the contract the orchestrator depends on; ``S3ObjectStore``
implements it with aioboto3.  One S3 client is opened per invocation:

    async with S3ObjectStore.open(settings) as store:
        await DerivativeOrchestrator(store, settings).run(bucket, key)

Error mapping:
  get     NoSuchKey / 404  -> ObjectNotFound, anything else -> StorageError
  exists  NoSuchKey / 404  -> False,
          InvalidRange     -> True (empty object), anything else -> StorageError
  put     anything         -> StorageError
"""
from __future__ import annotations

import abc
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from webp_derivatives.config import Settings
from webp_derivatives.constants import CACHE_CONTROL_IMMUTABLE
from webp_derivatives.exceptions import ObjectNotFound, StorageError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(exc: ClientError) -> bool:
    error_code = exc.response.get("Error", {}).get("Code", "")
    return error_code in _NOT_FOUND_CODES


class ObjectStore(abc.ABC):
    """Bucket + key namespace with full reads, existence probes and writes."""

    @abc.abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """Return the full object body. Raises ObjectNotFound or StorageError."""

    @abc.abstractmethod
    async def exists(self, bucket: str, key: str) -> bool:
        """True if the key exists. Raises StorageError on any other failure."""

    @abc.abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        cache_control: str = CACHE_CONTROL_IMMUTABLE,
    ) -> None:
        """Write the full object. Raises StorageError."""


def _s3_session(settings: Settings) -> aioboto3.Session:
    # Empty strings would override the default credential chain
    return aioboto3.Session(
        aws_access_key_id=settings.aws_access_key_id or None,
        aws_secret_access_key=settings.aws_secret_access_key or None,
        region_name=settings.aws_region,
    )


class S3ObjectStore(ObjectStore):
    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    @asynccontextmanager
    async def open(cls, settings: Settings) -> AsyncIterator[S3ObjectStore]:
        """Open an S3 client scoped to the ``async with`` block."""
        session = _s3_session(settings)
        async with session.client("s3", endpoint_url=settings.s3_endpoint_url) as client:
            yield cls(client)

    async def get(self, bucket: str, key: str) -> bytes:
        try:
            response = await self._client.get_object(Bucket=bucket, Key=key)
            async with response["Body"] as stream:
                return await stream.read()
        except ClientError as exc:
            if _is_not_found(exc):
                raise ObjectNotFound(bucket, key) from exc
            raise StorageError("get", bucket, key) from exc
        except BotoCoreError as exc:
            raise StorageError("get", bucket, key) from exc

    async def exists(self, bucket: str, key: str) -> bool:
        # Ranged GET of the first byte instead of HEAD: same permission as
        # get_object and a NoSuchKey code instead of a bare 404.
        try:
            response = await self._client.get_object(
                Bucket=bucket, Key=key, Range="bytes=0-0",
            )
            async with response["Body"] as stream:
                await stream.read()
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            if exc.response.get("Error", {}).get("Code", "") == "InvalidRange":
                # zero-length object: byte 0 is unsatisfiable but the key exists
                return True
            raise StorageError("exists", bucket, key) from exc
        except BotoCoreError as exc:
            raise StorageError("exists", bucket, key) from exc
        return True

    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        cache_control: str = CACHE_CONTROL_IMMUTABLE,
    ) -> None:
        try:
            await self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                CacheControl=cache_control,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError("put", bucket, key) from exc
        logger.info("Uploaded s3://%s/%s (%d bytes)", bucket, key, len(body))
