"""Request plumbing for the management, fetch, pfop and download APIs."""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlencode, urlsplit

import requests
from mcp.server.fastmcp.utilities.logging import get_logger

from .auth import (
    Clock,
    build_download_url,
    build_policy_token,
    build_upload_token,
    management_authorization,
    serialize_body,
)
from .config import Credential, QiniuSettings
from .exceptions import InvalidArgumentError, TransportError
from .models import ByteRange, PutPolicy
from .operations import OperationDescriptor, StatOperation, encode_operation

logger = get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
DOWNLOAD_CHUNK_SIZE = 64 * 1024


class QiniuService:
    """High level façade that signs requests and hands them to ``requests``."""

    def __init__(
        self,
        settings: QiniuSettings,
        session: requests.Session | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.settings = settings
        self.credential: Credential = settings.credential
        self._session = session or requests.Session()
        self._clock = clock

    def rs(
        self,
        path: str,
        *,
        host: str | None = None,
        method: str = "POST",
        body: Any = None,
        form: Mapping[str, Any] | Iterable[tuple[str, Any]] | str | None = None,
        content_type: str | None = None,
    ) -> Any:
        """Send a management request signed with a ``QBox`` token."""
        if form is not None:
            payload = form if isinstance(form, str) else urlencode(form, doseq=True)
            data: bytes | None = payload.encode("utf-8")
            content_type = content_type or FORM_CONTENT_TYPE
        else:
            data = serialize_body(body)
            if data is not None and content_type is None and not isinstance(body, (str, bytes)):
                content_type = JSON_CONTENT_TYPE
        headers = {"Authorization": management_authorization(self.credential, path, data)}
        if content_type:
            headers["Content-Type"] = content_type
        url = f"{host or self.settings.rs_host}{path}"
        return self._send(method, url, headers=headers, data=data)

    def buckets(self) -> list[str]:
        return self.rs("/buckets", host=self.settings.rsf_host)

    def stat(self, bucket: str, key: str) -> dict[str, Any]:
        return self.rs(encode_operation(StatOperation(bucket=bucket, file_name=key)))

    def batch(self, operations: Iterable[OperationDescriptor | Mapping[str, Any]]) -> list[dict[str, Any]]:
        ops = [encode_operation(operation) for operation in operations]
        if not ops:
            raise InvalidArgumentError("batch requires at least one operation")
        return self.rs("/batch", form={"op": ops})

    def async_fetch(self, body: Mapping[str, Any], zone: str | None = None) -> dict[str, Any]:
        """Submit an asynchronous third-party fetch job (``/sisyphus/fetch``)."""
        if not isinstance(body, Mapping):
            raise InvalidArgumentError("async fetch body must be a mapping")
        payload = dict(body)
        if isinstance(payload.get("url"), (list, tuple)):
            payload["url"] = ";".join(payload["url"])
        zone = zone or self.settings.default_zone
        host = f"api-{zone}.qiniu.com"
        path = "/sisyphus/fetch"
        data = serialize_body(payload)
        token = build_policy_token(self.credential, "POST", host, path, JSON_CONTENT_TYPE, data)
        headers = {"Authorization": token, "Content-Type": JSON_CONTENT_TYPE}
        return self._send("POST", f"http://{host}{path}", headers=headers, data=data)

    def pfop(
        self,
        bucket: str,
        key: str,
        fops: str | Iterable[str | OperationDescriptor | Mapping[str, Any]],
        *,
        force: bool = False,
        notify_url: str | None = None,
        pipeline: str | None = None,
    ) -> dict[str, Any]:
        """Trigger persistent processing of an existing entry."""
        if not bucket or not key:
            raise InvalidArgumentError("pfop requires both bucket and key")
        if not isinstance(fops, str):
            fops = ";".join(item if isinstance(item, str) else encode_operation(item) for item in fops)
        if not fops:
            raise InvalidArgumentError("pfop requires at least one processing command")
        logger.debug("pfop commands for %s/%s: %s", bucket, key, fops)
        form: list[tuple[str, Any]] = [("bucket", bucket), ("key", key), ("fops", fops)]
        if force:
            form.append(("force", 1))
        if notify_url:
            form.append(("notifyURL", notify_url))
        if pipeline:
            form.append(("pipeline", pipeline))
        return self.rs("/pfop", host=self.settings.api_host, form=form)

    def private_download_url(self, url: str, horizon_seconds: int | None = None) -> str:
        if horizon_seconds is None:
            horizon_seconds = self.settings.download_expires
        return build_download_url(self.credential, url, horizon_seconds, self._clock)

    def upload_policy(self, scope: str, horizon_seconds: int | None = None, **fields: Any) -> PutPolicy:
        """Build a put policy whose deadline is ``horizon_seconds`` from now."""
        if horizon_seconds is None:
            horizon_seconds = self.settings.download_expires
        return PutPolicy(scope=scope, deadline=int(self._clock()) + horizon_seconds, **fields)

    def upload_token(self, policy: PutPolicy) -> str:
        return build_upload_token(self.credential, policy, self.settings.download_expires, self._clock)

    def download(self, url: str, path: Path | str, *, byte_range: ByteRange | None = None) -> Path:
        """Stream a private resource to ``path`` and return the written path."""
        signed_url = self.private_download_url(url)
        headers = {"Range": byte_range.header()} if byte_range else {}
        target = Path(path)
        logger.debug("Downloading %s to %s", urlsplit(url).path, target)
        with self._session.get(
            signed_url, headers=headers, stream=True, timeout=self.settings.timeout_seconds
        ) as response:
            self._raise_for_status(response, url)
            try:
                with target.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
            except Exception:
                logger.warning("Download of %s failed; removing partial file %s", urlsplit(url).path, target)
                target.unlink(missing_ok=True)
                raise
        return target

    def _send(self, method: str, url: str, *, headers: dict[str, str], data: bytes | None) -> Any:
        logger.debug("%s %s", method, url)
        response = self._session.request(
            method,
            url,
            headers=headers,
            data=data,
            timeout=self.settings.timeout_seconds,
        )
        self._raise_for_status(response, url)
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _raise_for_status(response: requests.Response, url: str) -> None:
        # Batch answers 298 when some operations fail; the body carries per-op codes.
        if 200 <= response.status_code < 300:
            return
        logger.warning("Request to %s failed with HTTP %s", url, response.status_code)
        raise TransportError(response.status_code, response.text, url)
