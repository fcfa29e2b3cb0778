import io
from collections.abc import Callable

import pytest
from PIL import Image

from webp_derivatives.config import Settings
from webp_derivatives.constants import CACHE_CONTROL_IMMUTABLE
from webp_derivatives.exceptions import ObjectNotFound, StorageError
from webp_derivatives.s3 import ObjectStore


class InMemoryStore(ObjectStore):
    """Dict-backed ObjectStore with per-key failure injection."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.metadata: dict[tuple[str, str], tuple[str, str]] = {}
        self.puts: list[str] = []
        self.exists_calls: list[str] = []
        self.fail_get: set[str] = set()
        self.fail_exists: set[str] = set()
        self.fail_put: set[str] = set()

    def add(self, bucket: str, key: str, body: bytes) -> None:
        self.objects[(bucket, key)] = body

    async def get(self, bucket: str, key: str) -> bytes:
        if key in self.fail_get:
            raise StorageError("get", bucket, key)
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise ObjectNotFound(bucket, key) from None

    async def exists(self, bucket: str, key: str) -> bool:
        self.exists_calls.append(key)
        if key in self.fail_exists:
            raise StorageError("exists", bucket, key)
        return (bucket, key) in self.objects

    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        cache_control: str = CACHE_CONTROL_IMMUTABLE,
    ) -> None:
        self.puts.append(key)
        if key in self.fail_put:
            raise StorageError("put", bucket, key)
        self.objects[(bucket, key)] = body
        self.metadata[(bucket, key)] = (content_type, cache_control)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        target_widths=[480, 960, 1440, 1920],
        max_width=1440,
        webp_quality=80,
        webp_method=0,
    )


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    def _make(width: int = 2000, height: int = 1000, fmt: str = "PNG", mode: str = "RGB") -> bytes:
        color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
        img = Image.new(mode, (width, height), color[: len(mode)] if mode != "L" else 128)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()

    return _make
