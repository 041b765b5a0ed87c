"""Operation descriptors and their path encoding for the batch and pfop APIs."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import InvalidArgumentError, InvalidOperationError
from .utils.encoding import encode_entry, urlsafe_b64encode


class BaseOperation(BaseModel):
    """Fields shared by every descriptor: the entry the operation acts on."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    bucket: str = Field(description="Container holding the entry.")
    file_name: str = Field(alias="fileName", description="Key of the entry inside the container.")

    def entry(self) -> str:
        return encode_entry(self.bucket, self.file_name)

    @abstractmethod
    def to_path(self) -> str:
        """Render the operation as its API path segment string."""


class DeleteOperation(BaseOperation):
    op: Literal["delete"] = Field(default="delete", alias="_type")

    def to_path(self) -> str:
        return f"/delete/{self.entry()}"


class _TransferOperation(BaseOperation):
    dest: str = Field(description="Destination key.")
    dest_bucket: str | None = Field(
        default=None, alias="destBucket", description="Destination container, defaults to the source one."
    )
    force: bool = Field(default=False, description="Overwrite an existing destination entry.")

    def transfer_path(self, name: str) -> str:
        dest_entry = encode_entry(self.dest_bucket or self.bucket, self.dest)
        return f"/{name}/{self.entry()}/{dest_entry}/force/{str(self.force).lower()}"


class MoveOperation(_TransferOperation):
    op: Literal["move"] = Field(default="move", alias="_type")

    def to_path(self) -> str:
        return self.transfer_path("move")


class CopyOperation(_TransferOperation):
    op: Literal["copy"] = Field(default="copy", alias="_type")

    def to_path(self) -> str:
        return self.transfer_path("copy")


class ChangeStatusOperation(BaseOperation):
    op: Literal["chstatus"] = Field(default="chstatus", alias="_type")
    status: int = Field(description="0 enables the entry, 1 disables it.")

    def to_path(self) -> str:
        return f"/chstatus/{self.entry()}/status/{self.status}"


class DeleteAfterDaysOperation(BaseOperation):
    op: Literal["deleteAfterDays"] = Field(default="deleteAfterDays", alias="_type")
    days: int = Field(alias="deleteAfterDays", ge=0, description="Days until deletion, 0 cancels the lifecycle.")

    def to_path(self) -> str:
        return f"/deleteAfterDays/{self.entry()}/{self.days}"


class ChangeTypeOperation(BaseOperation):
    op: Literal["chtype"] = Field(default="chtype", alias="_type")
    storage_type: int = Field(alias="type", description="Target storage class.")

    def to_path(self) -> str:
        return f"/chtype/{self.entry()}/type/{self.storage_type}"


class StatOperation(BaseOperation):
    op: Literal["stat"] = Field(default="stat", alias="_type")

    def to_path(self) -> str:
        return f"/stat/{self.entry()}"


class PrefetchOperation(BaseOperation):
    op: Literal["prefetch"] = Field(default="prefetch", alias="_type")

    def to_path(self) -> str:
        return f"/prefetch/{self.entry()}"


class MetaEntry(BaseModel):
    """A single ``x-qn-meta-*`` header to set on an entry."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(
        pattern=r"^[^/;\s]+$", description="Metadata name without the x-qn-meta- prefix, a single path segment."
    )
    value: str = Field(description="Metadata value.")


class ChangeMetaOperation(BaseOperation):
    op: Literal["chgm"] = Field(default="chgm", alias="_type")
    mimetype: str | None = Field(default=None, description="New MIME type of the entry.")
    metas: list[MetaEntry] = Field(default_factory=list, description="Metadata headers, applied in order.")
    cond: str | None = Field(default=None, description="Condition the entry must satisfy, e.g. hash=<etag>.")

    def to_path(self) -> str:
        segments = [f"/chgm/{self.entry()}"]
        if self.mimetype:
            segments.append(f"/mime/{urlsafe_b64encode(self.mimetype)}")
        for meta in self.metas:
            segments.append(f"/x-qn-meta-{meta.key}/{urlsafe_b64encode(meta.value)}")
        if self.cond:
            segments.append(f"/cond/{urlsafe_b64encode(self.cond)}")
        return "".join(segments)


OperationDescriptor = Union[
    DeleteOperation,
    MoveOperation,
    CopyOperation,
    ChangeStatusOperation,
    DeleteAfterDaysOperation,
    ChangeTypeOperation,
    StatOperation,
    PrefetchOperation,
    ChangeMetaOperation,
]

OPERATION_TYPES: dict[str, type[BaseOperation]] = {
    "delete": DeleteOperation,
    "move": MoveOperation,
    "copy": CopyOperation,
    "chstatus": ChangeStatusOperation,
    "deleteAfterDays": DeleteAfterDaysOperation,
    "chtype": ChangeTypeOperation,
    "stat": StatOperation,
    "prefetch": PrefetchOperation,
    "chgm": ChangeMetaOperation,
}


def parse_operation(data: Mapping[str, Any]) -> OperationDescriptor:
    """Build a typed descriptor from a raw mapping tagged by ``_type`` (or ``op``)."""
    tag = data.get("_type", data.get("op"))
    operation_cls = OPERATION_TYPES.get(tag) if isinstance(tag, str) else None
    if operation_cls is None:
        raise InvalidOperationError(tag)
    try:
        return operation_cls.model_validate(dict(data))  # type: ignore[return-value]
    except ValidationError as exc:
        raise InvalidArgumentError(f"Invalid fields for {tag} operation: {exc}") from exc


def encode_operation(descriptor: OperationDescriptor | Mapping[str, Any]) -> str:
    """Return the path segment string the batch and pfop APIs expect."""
    if isinstance(descriptor, Mapping):
        descriptor = parse_operation(descriptor)
    if not isinstance(descriptor, BaseOperation) or type(descriptor) not in OPERATION_TYPES.values():
        raise InvalidOperationError(getattr(descriptor, "op", descriptor))
    return descriptor.to_path()


def encode_operations(descriptors: Iterable[OperationDescriptor | Mapping[str, Any]]) -> str:
    """Encode several descriptors and join them with ``;``."""
    paths = [encode_operation(descriptor) for descriptor in descriptors]
    if not paths:
        raise InvalidArgumentError("at least one operation is required")
    return ";".join(paths)
