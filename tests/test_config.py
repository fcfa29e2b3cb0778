from webp_derivatives.config import Settings
from webp_derivatives.constants import CACHE_CONTROL_IMMUTABLE

import pytest
from pydantic import ValidationError


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("TARGET_WIDTHS", raising=False)
    monkeypatch.delenv("MAX_WIDTH", raising=False)
    settings = Settings(_env_file=None)
    assert settings.target_widths == [480, 960, 1440, 1920]
    assert settings.max_width == 1440
    assert settings.cache_control == CACHE_CONTROL_IMMUTABLE


def test_widths_from_env(monkeypatch) -> None:
    monkeypatch.setenv("TARGET_WIDTHS", "320, 640,1280")
    monkeypatch.setenv("MAX_WIDTH", "640")
    settings = Settings(_env_file=None)
    assert settings.target_widths == [320, 640, 1280]
    assert settings.max_width == 640


def test_rejects_non_positive_width() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, target_widths=[480, 0])


def test_rejects_bad_quality() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, webp_quality=0)
