"""
Object key helpers — event key decoding and derivative key naming.

Pure string functions, no I/O.

Naming convention (consumed by downstream CDN/frontends, must stay stable):
  canonical:  <path-without-ext>.webp
  sized:      <path-without-ext>-<width>.webp
"""
from __future__ import annotations

import urllib.parse

from webp_derivatives.constants import DERIVATIVE_EXTENSION


def decode_key(raw: str) -> str:
    """Decode an object key as delivered by S3 event notifications.

    S3 form-encodes keys in events: spaces arrive as ``+`` and everything
    else percent-encoded.  When the percent-decoded bytes are not valid
    UTF-8 the ``+``-substituted key is returned as-is.
    """
    if not raw:
        return ""
    with_spaces = raw.replace("+", " ")
    try:
        return urllib.parse.unquote(with_spaces, errors="strict")
    except UnicodeDecodeError:
        return with_spaces


def _stem(key: str) -> str:
    """Key without its extension; the extension is the last '.' after the last '/'.

    A leading dot with no '/' before it (".hidden") is not an extension.
    """
    last_slash = max(key.rfind("/"), 0)
    last_dot = key.rfind(".")
    if last_dot > last_slash:
        return key[:last_dot]
    return key


def derive_key(key: str, width: int | None = None) -> str:
    """Return the derivative key for ``key``, optionally for a target width."""
    stem = _stem(key)
    if width is None:
        return f"{stem}.{DERIVATIVE_EXTENSION}"
    return f"{stem}-{width}.{DERIVATIVE_EXTENSION}"

