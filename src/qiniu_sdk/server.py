"""Stdio entrypoint exposing the Qiniu signing helpers as MCP tools."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Annotated, Any, Iterable

import anyio
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.utilities.logging import get_logger
from pydantic import Field

from .config import QiniuSettings, load_settings
from .operations import encode_operation, parse_operation
from .service import QiniuService
from .tooling import (
    BatchItemResult,
    BatchResult,
    BucketListResult,
    DownloadUrlResult,
    EncodeEntryResult,
    EncodeOperationsInput,
    EncodeOperationsResult,
    UploadTokenResult,
)
from .utils.encoding import encode_entry

logger = get_logger(__name__)

TRANSPORT_CHOICES = ("stdio", "sse", "streamable-http")
ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def create_server(settings: QiniuSettings, service: QiniuService | None = None) -> FastMCP:
    """Create a configured FastMCP application instance."""

    service = service or QiniuService(settings)
    requested_log_level = os.environ.get("FASTMCP_LOG_LEVEL", "INFO").upper()
    if requested_log_level not in ALLOWED_LOG_LEVELS:
        print(
            f"[qiniu-sdk] Unsupported FASTMCP_LOG_LEVEL '{requested_log_level}'. Falling back to INFO.",
            flush=True,
        )
        requested_log_level = "INFO"

    mcp = FastMCP(
        "qiniu-kodo",
        host=os.environ.get("FASTMCP_HOST", "127.0.0.1"),
        port=_coerce_int(os.environ.get("FASTMCP_PORT"), default=8000),
        log_level=requested_log_level,  # type: ignore[arg-type]
    )

    async def _run(func, *args, **kwargs):
        return await anyio.to_thread.run_sync(lambda: func(*args, **kwargs))

    @mcp.tool(
        name="kodo.encode_entry",
        description="Encode a bucket and optional key into the URL-safe EncodedEntryURI used by the APIs.",
        structured_output=True,
    )
    async def kodo_encode_entry(
        bucket: Annotated[str, Field(description="Bucket (container) name.")],
        key: Annotated[str | None, Field(description="Object key; omit for bucket-level identifiers.")] = None,
    ) -> EncodeEntryResult:
        return EncodeEntryResult(bucket=bucket, key=key, encoded_entry=encode_entry(bucket, key))

    @mcp.tool(
        name="kodo.encode_operations",
        description="Encode operation descriptors into the path strings consumed by batch and pfop.",
        structured_output=True,
    )
    async def kodo_encode_operations(payload: EncodeOperationsInput) -> EncodeOperationsResult:
        paths = [encode_operation(parse_operation(item)) for item in payload.operations]
        return EncodeOperationsResult(paths=paths, joined=";".join(paths))

    @mcp.tool(
        name="kodo.download_url",
        description="Sign a private resource URL so it can be downloaded until the deadline.",
        structured_output=True,
    )
    async def kodo_download_url(
        url: Annotated[str, Field(description="Resource URL on a private bucket domain.")],
        expires_in: Annotated[int | None, Field(description="Lifetime in seconds.", gt=0)] = None,
    ) -> DownloadUrlResult:
        lifetime = expires_in or settings.download_expires
        return DownloadUrlResult(url=service.private_download_url(url, lifetime), expires_in=lifetime)

    @mcp.tool(
        name="kodo.upload_token",
        description="Create an upload token for a bucket or bucket:key scope.",
        structured_output=True,
    )
    async def kodo_upload_token(
        scope: Annotated[str, Field(description="`bucket` or `bucket:key` the upload is restricted to.")],
        expires_in: Annotated[int | None, Field(description="Lifetime in seconds.", gt=0)] = None,
        insert_only: Annotated[bool, Field(description="Refuse to overwrite existing keys.")] = False,
    ) -> UploadTokenResult:
        lifetime = expires_in or settings.download_expires
        policy = service.upload_policy(scope, lifetime, insert_only=1 if insert_only else None)
        return UploadTokenResult(token=service.upload_token(policy), scope=scope, deadline=policy.deadline)

    @mcp.tool(
        name="kodo.buckets",
        description="List the buckets owned by the configured account.",
        structured_output=True,
    )
    async def kodo_buckets() -> BucketListResult:
        buckets = await _run(service.buckets)
        return BucketListResult(buckets=buckets or [])

    @mcp.tool(
        name="kodo.stat",
        description="Return metadata (size, hash, MIME type, put time) of a stored object.",
    )
    async def kodo_stat(
        bucket: Annotated[str, Field(description="Bucket (container) name.")],
        key: Annotated[str, Field(description="Object key.")],
    ) -> dict[str, Any]:
        return await _run(service.stat, bucket, key)

    @mcp.tool(
        name="kodo.batch",
        description="Run several management operations in a single batch request.",
        structured_output=True,
    )
    async def kodo_batch(payload: EncodeOperationsInput) -> BatchResult:
        operations = [parse_operation(item) for item in payload.operations]
        try:
            raw = await _run(service.batch, operations)
        except Exception:
            logger.exception("kodo.batch failed for %d operations", len(operations))
            raise
        return BatchResult(results=[BatchItemResult.model_validate(item) for item in raw or []])

    return mcp


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Qiniu Kodo MCP server.")
    parser.add_argument(
        "--config",
        default=os.environ.get("QINIU_CONFIG_FILE"),
        help="Path to an optional configuration YAML file.",
    )
    parser.add_argument(
        "--transport",
        choices=TRANSPORT_CHOICES,
        default=None,
        help="MCP transport to run (overrides FASTMCP_TRANSPORT).",
    )
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)
    server = create_server(settings)

    transport = (args.transport or os.environ.get("FASTMCP_TRANSPORT", "stdio")).lower()
    if transport not in TRANSPORT_CHOICES:
        raise ValueError(f"Unsupported transport '{transport}'. Expected one of {TRANSPORT_CHOICES}.")
    print(f"[qiniu-sdk] Starting {transport} transport", flush=True)
    server.run(transport=transport)


def _coerce_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        print(
            f"[qiniu-sdk] Invalid integer for environment override: {value!r}; using default {default}",
            flush=True,
        )
        return default


if __name__ == "__main__":
    main()
