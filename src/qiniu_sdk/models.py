"""Shared data models used by the token generators and the transport."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PutPolicy(BaseModel):
    """Upload policy signed into an upload token.

    Field aliases are the wire names expected by the upload API.
    """

    model_config = ConfigDict(populate_by_name=True)

    scope: str = Field(description="Target ``bucket`` or ``bucket:key`` of the upload.")
    deadline: int | None = Field(default=None, description="Unix timestamp after which the token expires.")
    insert_only: int | None = Field(default=None, alias="insertOnly", description="1 forbids overwriting.")
    end_user: str | None = Field(default=None, alias="endUser", description="Opaque uploader identifier.")
    return_url: str | None = Field(default=None, alias="returnUrl", description="Redirect target for form uploads.")
    return_body: str | None = Field(default=None, alias="returnBody", description="Custom response body template.")
    callback_url: str | None = Field(default=None, alias="callbackUrl", description="Upload callback URL(s).")
    callback_host: str | None = Field(default=None, alias="callbackHost", description="Host header for callbacks.")
    callback_body: str | None = Field(default=None, alias="callbackBody", description="Callback body template.")
    callback_body_type: str | None = Field(
        default=None, alias="callbackBodyType", description="Content-Type of the callback body."
    )
    persistent_ops: str | None = Field(
        default=None, alias="persistentOps", description="Processing commands run after upload, joined by ';'."
    )
    persistent_notify_url: str | None = Field(
        default=None, alias="persistentNotifyUrl", description="Notification URL for persistent processing."
    )
    persistent_pipeline: str | None = Field(
        default=None, alias="persistentPipeline", description="Dedicated processing queue name."
    )
    save_key: str | None = Field(default=None, alias="saveKey", description="Key template used when none is given.")
    fsize_min: int | None = Field(default=None, alias="fsizeMin", description="Minimum accepted file size.")
    fsize_limit: int | None = Field(default=None, alias="fsizeLimit", description="Maximum accepted file size.")
    detect_mime: int | None = Field(default=None, alias="detectMime", description="1 lets the server sniff MIME.")
    mime_limit: str | None = Field(default=None, alias="mimeLimit", description="Allowed MIME types.")
    file_type: int | None = Field(default=None, alias="fileType", description="Storage class of the object.")
    delete_after_days: int | None = Field(
        default=None, alias="deleteAfterDays", description="Lifetime of the object in days."
    )

    def to_json(self) -> str:
        """Serialize to compact JSON with wire names, omitting unset fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ByteRange(BaseModel):
    """Inclusive byte range requested by a ranged download."""

    start: int = Field(ge=0, description="First byte offset.")
    end: int = Field(ge=0, description="Last byte offset (inclusive).")

    @model_validator(mode="after")
    def _ensure_ordered(self) -> "ByteRange":
        if self.end < self.start:
            raise ValueError("byte range end must not precede its start")
        return self

    def header(self) -> str:
        return f"bytes={self.start}-{self.end}"
