"""Pydantic models describing tool inputs and outputs for MCP tools."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EncodeEntryResult(BaseModel):
    """Response of the kodo.encode_entry tool."""

    bucket: str = Field(description="Container name that was encoded.")
    key: str | None = Field(default=None, description="Key that was encoded, if any.")
    encoded_entry: str = Field(description="URL-safe EncodedEntryURI.")


class EncodeOperationsInput(BaseModel):
    """Request payload for the kodo.encode_operations and kodo.batch tools."""

    model_config = ConfigDict(
        title="kodo operations request",
        json_schema_extra={
            "examples": [
                {
                    "operations": [
                        {"_type": "move", "bucket": "media", "fileName": "a.jpg", "dest": "b.jpg", "force": True},
                        {"_type": "delete", "bucket": "media", "fileName": "c.jpg"},
                    ]
                },
            ]
        },
    )

    operations: list[dict[str, Any]] = Field(
        min_length=1,
        description=(
            "Operation descriptors tagged by `_type` (delete, move, copy, chstatus, deleteAfterDays, "
            "chtype, stat, prefetch, chgm) with camelCase fields such as `bucket` and `fileName`."
        ),
    )


class EncodeOperationsResult(BaseModel):
    """Encoded operation paths in input order plus their batch form."""

    paths: list[str] = Field(description="One encoded path per descriptor.")
    joined: str = Field(description="Paths joined with ';' as used by persistent processing.")


class DownloadUrlResult(BaseModel):
    """Signed private download URL."""

    url: str = Field(description="URL carrying the e= deadline and token= signature parameters.")
    expires_in: int = Field(description="Lifetime of the URL in seconds.")


class UploadTokenResult(BaseModel):
    """Signed upload token for a put policy."""

    token: str = Field(description="AccessKey:EncodedSign:EncodedPutPolicy token.")
    scope: str = Field(description="Scope the token grants uploads to.")
    deadline: int = Field(description="Unix timestamp at which the token expires.")


class BucketListResult(BaseModel):
    """Buckets visible to the configured account."""

    buckets: list[str] = Field(default_factory=list, description="Bucket names.")


class BatchItemResult(BaseModel):
    """Outcome of a single batched operation."""

    code: int = Field(description="HTTP-like status code of the operation.")
    data: dict[str, Any] | None = Field(default=None, description="Operation payload or error details.")


class BatchResult(BaseModel):
    """Outcome of the kodo.batch tool."""

    results: list[BatchItemResult] = Field(default_factory=list, description="One entry per submitted operation.")
