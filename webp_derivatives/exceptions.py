"""
Derivative pipeline — domain exceptions.

All exceptions build their message from constructor arguments so callers
never format messages at the raise site.  Only CanonicalDerivativeError and
FanOutError are allowed to escape the Lambda handler; everything else is
converted into a skip or a per-target outcome.
"""


class DerivativeError(Exception):
    """Base class for all pipeline errors."""


# ── Storage ──────────────────────────────────────────────────────────────────

class ObjectNotFound(DerivativeError):
    def __init__(self, bucket: str, key: str) -> None:
        self.bucket = bucket
        self.key = key
        super().__init__(f"Object s3://{bucket}/{key} does not exist.")


class StorageError(DerivativeError):
    def __init__(self, operation: str, bucket: str, key: str) -> None:
        self.operation = operation
        self.bucket = bucket
        self.key = key
        super().__init__(f"Storage {operation} failed for s3://{bucket}/{key}.")


# ── Image ────────────────────────────────────────────────────────────────────

class UnsupportedImageFormat(DerivativeError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Not a decodable image: {reason}")


class ImageEncodeError(DerivativeError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to encode image as WebP: {reason}")


# ── Orchestration ────────────────────────────────────────────────────────────

class CanonicalDerivativeError(DerivativeError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Failed to produce canonical derivative {key}.")


class FanOutError(DerivativeError):
    def __init__(self, width: int) -> None:
        self.width = width
        super().__init__(f"Sized derivative task for width {width} did not complete.")


# ── Event ────────────────────────────────────────────────────────────────────

class InvalidEvent(DerivativeError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Unsupported event payload: {reason}")
