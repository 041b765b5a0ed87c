"""qiniu-sdk package."""

from importlib.metadata import PackageNotFoundError, version as _version

from .auth import (
    build_download_token,
    build_download_url,
    build_management_token,
    build_policy_token,
    build_upload_token,
    management_authorization,
    sign,
)
from .config import Credential, QiniuSettings, load_settings
from .exceptions import (
    ConfigurationError,
    InvalidArgumentError,
    InvalidOperationError,
    QiniuError,
    TransportError,
)
from .models import ByteRange, PutPolicy
from .operations import (
    ChangeMetaOperation,
    ChangeStatusOperation,
    ChangeTypeOperation,
    CopyOperation,
    DeleteAfterDaysOperation,
    DeleteOperation,
    MetaEntry,
    MoveOperation,
    OperationDescriptor,
    PrefetchOperation,
    StatOperation,
    encode_operation,
    encode_operations,
    parse_operation,
)
from .utils.encoding import encode_entry, urlsafe_b64decode, urlsafe_b64encode

__all__ = [
    "__version__",
    "ByteRange",
    "ChangeMetaOperation",
    "ChangeStatusOperation",
    "ChangeTypeOperation",
    "ConfigurationError",
    "CopyOperation",
    "Credential",
    "DeleteAfterDaysOperation",
    "DeleteOperation",
    "InvalidArgumentError",
    "InvalidOperationError",
    "MetaEntry",
    "MoveOperation",
    "OperationDescriptor",
    "PrefetchOperation",
    "PutPolicy",
    "QiniuError",
    "QiniuSettings",
    "StatOperation",
    "TransportError",
    "build_download_token",
    "build_download_url",
    "build_management_token",
    "build_policy_token",
    "build_upload_token",
    "encode_entry",
    "encode_operation",
    "encode_operations",
    "load_settings",
    "management_authorization",
    "parse_operation",
    "sign",
    "urlsafe_b64decode",
    "urlsafe_b64encode",
]
try:
    __version__ = _version("qiniu-sdk")
except PackageNotFoundError:
    __version__ = "0.0.0"
