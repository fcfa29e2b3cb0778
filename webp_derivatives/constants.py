"""
Derivative pipeline — static constants and enum types.
"""
import enum

# Derivative naming / object metadata
DERIVATIVE_EXTENSION = "webp"
DERIVATIVE_CONTENT_TYPE = "image/webp"
CACHE_CONTROL_IMMUTABLE = "public, max-age=31536000, immutable"

# Width presets for sized derivatives (ascending)
TARGET_WIDTHS: tuple[int, ...] = (480, 960, 1440, 1920)

# Widths above this are not generated
MAX_TARGET_WIDTH = 1440

# WebP encoder defaults
WEBP_QUALITY = 80
WEBP_METHOD = 4


class OutcomeStatus(str, enum.Enum):
    """Result of one derivative target within an invocation."""
    SKIPPED_EXISTS = "SKIPPED_EXISTS"
    WRITTEN = "WRITTEN"
    FAILED = "FAILED"


class ProcessStatus(str, enum.Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


# Response messages returned to the invoking runtime
MSG_SUCCESS = "Successfully processed image"
MSG_UNSUPPORTED_EVENT = "Unsupported event payload"
