"""Configuration models for the Qiniu storage client."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_DOWNLOAD_EXPIRES = 3600


class Credential(BaseModel):
    """Immutable access/secret key pair used by every token generator."""

    model_config = ConfigDict(frozen=True)

    access_key: str = Field(description="Public access key identifier.")
    secret_key: SecretStr = Field(description="Secret key used as the HMAC signing key.")

    @model_validator(mode="before")
    @classmethod
    def _require_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            access_key = data.get("access_key")
            secret_key = data.get("secret_key")
            if isinstance(secret_key, SecretStr):
                secret_key = secret_key.get_secret_value()
            if not access_key or not secret_key:
                raise ConfigurationError("Both access_key and secret_key are required")
        return data

    @property
    def secret_bytes(self) -> bytes:
        return self.secret_key.get_secret_value().encode("utf-8")


class QiniuSettings(BaseSettings):
    """Top-level configuration container for the client and the MCP server."""

    model_config = SettingsConfigDict(
        env_prefix="QINIU_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    access_key: str = Field(default="", description="Access key of the account.")
    secret_key: SecretStr = Field(default=SecretStr(""), description="Secret key of the account.")
    rs_host: str = Field(default="http://rs.qiniu.com", description="Resource management API host.")
    rsf_host: str = Field(default="http://rs.qbox.me", description="Host serving the bucket listing API.")
    api_host: str = Field(default="http://api.qiniu.com", description="Persistent processing (pfop) API host.")
    default_zone: str = Field(default="z0", description="Zone used for async fetch when none is supplied.")
    download_expires: int = Field(
        default=DEFAULT_DOWNLOAD_EXPIRES,
        gt=0,
        description="Default lifetime in seconds of private download and upload tokens.",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout used by the transport.")

    config_path: Path | None = Field(
        default=None,
        description="Resolved path used to load configuration (for diagnostics).",
        exclude=True,
    )

    @property
    def credential(self) -> Credential:
        """Build the credential pair, failing fast when either key is missing."""
        return Credential(access_key=self.access_key, secret_key=self.secret_key)


def load_settings(config_path: Path | None = None, overrides: dict[str, Any] | None = None) -> QiniuSettings:
    """Load configuration from YAML on disk combined with environment overrides."""

    base_data: dict[str, Any] = {}
    resolved_path: Path | None = None
    if config_path:
        resolved_path = Path(config_path).expanduser().resolve()
        if not resolved_path.exists():
            raise ConfigurationError(f"Configuration file not found: {resolved_path}")
        try:
            with resolved_path.open("r", encoding="utf-8") as handle:
                base_data = yaml.safe_load(handle.read()) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Unable to parse configuration file {resolved_path}: {exc}") from exc
        if not isinstance(base_data, dict):
            raise ConfigurationError(f"Configuration file {resolved_path} must contain a mapping")
    if overrides:
        base_data.update(overrides)

    try:
        settings = QiniuSettings(**base_data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    if not settings.access_key or not settings.secret_key.get_secret_value():
        raise ConfigurationError("Configuration must specify both access_key and secret_key.")
    settings.config_path = resolved_path
    return settings
