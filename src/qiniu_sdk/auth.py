"""Token generators for the management, policy, download and upload protocols.

Every generator takes the :class:`~qiniu_sdk.config.Credential` explicitly and
is a pure function of its inputs (plus the injected clock for the time-bounded
tokens), so several credentials can be used side by side from any thread.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from .config import DEFAULT_DOWNLOAD_EXPIRES, Credential
from .exceptions import InvalidArgumentError
from .models import PutPolicy
from .utils.encoding import urlsafe_b64encode

Clock = Callable[[], float]

MANAGEMENT_SCHEME = "QBox"
POLICY_SCHEME = "Qiniu"
_RESERVED_DOWNLOAD_PARAMS = frozenset({"e", "token"})


def hmac_sha1(secret: bytes, message: bytes) -> bytes:
    """Return the 20 byte HMAC-SHA1 digest of ``message``."""
    return hmac.new(secret, message, hashlib.sha1).digest()


def sign(credential: Credential, message: bytes | str) -> str:
    """Sign ``message`` with the credential secret and return the encoded digest."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return urlsafe_b64encode(hmac_sha1(credential.secret_bytes, message))


def serialize_body(body: Any) -> bytes | None:
    """Render a request body to the exact bytes that are signed and sent.

    ``None`` and empty strings/bytes mean "no body". Mappings and sequences
    are rendered as compact JSON, so an empty mapping is a body of ``{}``.
    """
    if body is None:
        return None
    if isinstance(body, bytes):
        return body or None
    if isinstance(body, str):
        return body.encode("utf-8") or None
    if isinstance(body, (Mapping, Sequence)):
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    raise InvalidArgumentError(f"Unsupported request body type: {type(body).__name__}")


def management_message(path: str, body: Any = None) -> bytes:
    data = path.encode("utf-8")
    payload = serialize_body(body)
    if payload is not None:
        data += b"\n" + payload
    return data


def build_management_token(credential: Credential, path: str, body: Any = None) -> str:
    """Return ``AccessKey:EncodedSign`` for the management (``QBox``) protocol."""
    if not path:
        raise InvalidArgumentError("path must be a non-empty string")
    return f"{credential.access_key}:{sign(credential, management_message(path, body))}"


def management_authorization(credential: Credential, path: str, body: Any = None) -> str:
    """Return the full ``Authorization`` header value for a management request."""
    return f"{MANAGEMENT_SCHEME} {build_management_token(credential, path, body)}"


def policy_message(
    method: str,
    host: str,
    path: str,
    content_type: str | None = None,
    body: Any = None,
) -> bytes:
    data = f"{method.upper()} {path}\nHost: {host}".encode("utf-8")
    if content_type:
        data += f"\nContent-Type: {content_type}".encode("utf-8")
    data += b"\n\n"
    payload = serialize_body(body)
    if content_type and payload:
        data += payload
    return data


def build_policy_token(
    credential: Credential,
    method: str,
    host: str,
    path: str,
    content_type: str | None = None,
    body: Any = None,
) -> str:
    """Return the ``Qiniu AccessKey:EncodedSign`` header value for policy-bearing requests."""
    if not method or not host or not path:
        raise InvalidArgumentError("method, host and path are required for a policy token")
    message = policy_message(method, host, path, content_type, body)
    return f"{POLICY_SCHEME} {credential.access_key}:{sign(credential, message)}"


def build_download_token(
    credential: Credential,
    base_url: str,
    horizon_seconds: int | None = None,
    clock: Clock = time.time,
) -> tuple[str, str]:
    """Return ``(message, token)`` for a private download of ``base_url``.

    ``message`` is the URL with the ``e=<deadline>`` parameter appended and is
    the exact string that gets signed.
    """
    if not base_url or not base_url.strip():
        raise InvalidArgumentError("download URL must be a non-empty string")
    parts = urlsplit(base_url)
    if "#" in base_url:
        raise InvalidArgumentError("download URL must not carry a fragment")
    conflicting = {name for name, _ in parse_qsl(parts.query, keep_blank_values=True)} & _RESERVED_DOWNLOAD_PARAMS
    if conflicting:
        raise InvalidArgumentError(
            f"download URL already carries reserved query parameters: {', '.join(sorted(conflicting))}"
        )
    if horizon_seconds is None:
        horizon_seconds = DEFAULT_DOWNLOAD_EXPIRES
    deadline = int(clock()) + int(horizon_seconds)
    separator = "&" if "?" in base_url else "?"
    message = f"{base_url}{separator}e={deadline}"
    return message, f"{credential.access_key}:{sign(credential, message)}"


def build_download_url(
    credential: Credential,
    base_url: str,
    horizon_seconds: int | None = None,
    clock: Clock = time.time,
) -> str:
    """Return ``base_url`` augmented with the deadline and download token."""
    message, token = build_download_token(credential, base_url, horizon_seconds, clock)
    return f"{message}&token={token}"


def build_upload_token(
    credential: Credential,
    policy: PutPolicy,
    horizon_seconds: int | None = None,
    clock: Clock = time.time,
) -> str:
    """Return ``AccessKey:EncodedSign:EncodedPutPolicy`` for an upload policy.

    A policy without a deadline gets ``now + horizon_seconds``.
    """
    if not policy.scope or not policy.scope.strip():
        raise InvalidArgumentError("upload policy scope must be a non-empty string")
    if policy.deadline is None:
        if horizon_seconds is None:
            horizon_seconds = DEFAULT_DOWNLOAD_EXPIRES
        policy = policy.model_copy(update={"deadline": int(clock()) + int(horizon_seconds)})
    encoded_policy = urlsafe_b64encode(policy.to_json())
    return f"{credential.access_key}:{sign(credential, encoded_policy)}:{encoded_policy}"
