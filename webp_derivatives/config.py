from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from webp_derivatives import constants


def _env_files() -> list[str]:
    """Load .env from the project root, then a local .env."""
    base = Path(__file__).resolve().parent.parent  # project root
    return [str(base / ".env"), ".env"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── AWS ───────────────────────────────────────────────────────────────────
    # Empty credentials fall through to the default botocore credential chain
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "us-east-1"
    s3_endpoint_url: str | None = None  # MinIO / R2 / localstack

    # ── Derivatives ──────────────────────────────────────────────────────────
    target_widths: Annotated[list[int], NoDecode] = Field(
        default_factory=lambda: list(constants.TARGET_WIDTHS)
    )
    max_width: int = constants.MAX_TARGET_WIDTH
    webp_quality: int = Field(default=constants.WEBP_QUALITY, ge=1, le=100)
    webp_method: int = Field(default=constants.WEBP_METHOD, ge=0, le=6)
    cache_control: str = constants.CACHE_CONTROL_IMMUTABLE

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"

    @field_validator("target_widths", mode="before")
    @classmethod
    def _split_widths(cls, value: object) -> object:
        # TARGET_WIDTHS=480,960,1440 in the environment
        if isinstance(value, str):
            return [int(x.strip()) for x in value.split(",") if x.strip()]
        return value

    @field_validator("target_widths")
    @classmethod
    def _positive_widths(cls, value: list[int]) -> list[int]:
        if any(width <= 0 for width in value):
            raise ValueError("target widths must be positive")
        return value


def get_settings() -> Settings:
    return Settings()
