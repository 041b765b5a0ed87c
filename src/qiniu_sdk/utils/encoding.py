"""URL-safe encoding helpers used to build entry identifiers and tokens."""

from __future__ import annotations

import base64

from ..exceptions import InvalidArgumentError


def urlsafe_b64encode(data: bytes | str) -> str:
    """Encode bytes (or UTF-8 text) to URL-safe base64 without padding."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    encoded = base64.urlsafe_b64encode(data).decode("ascii")
    return encoded.rstrip("=")


def urlsafe_b64decode(token: str) -> bytes:
    """Decode a token produced by :func:`urlsafe_b64encode`."""
    padding = "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(f"{token}{padding}".encode("ascii"))


def encode_entry(container: str, key: str | None = None) -> str:
    """Encode a ``container:key`` pair into an opaque EncodedEntryURI.

    When ``key`` is ``None`` only the container is encoded, which is what
    container-level operations expect. An empty string key is a real key and
    is kept as ``container:``.
    """
    if not container:
        raise InvalidArgumentError("container name must be a non-empty string")
    if key is None:
        return urlsafe_b64encode(container)
    return urlsafe_b64encode(f"{container}:{key}")
