import pytest
from pydantic import ValidationError

from qiniu_sdk.exceptions import InvalidArgumentError, InvalidOperationError
from qiniu_sdk.operations import (
    BaseOperation,
    ChangeMetaOperation,
    CopyOperation,
    DeleteOperation,
    MetaEntry,
    MoveOperation,
    encode_operation,
    encode_operations,
    parse_operation,
)
from qiniu_sdk.utils.encoding import encode_entry, urlsafe_b64encode

ENTRY = encode_entry("b", "k1")


def test_move_from_raw_descriptor():
    descriptor = {"_type": "move", "bucket": "b", "fileName": "k1", "dest": "k2", "force": True}
    expected = "/move/" + ENTRY + "/" + encode_entry("b", "k2") + "/force/true"
    assert encode_operation(descriptor) == expected


def test_copy_defaults_to_no_force():
    operation = CopyOperation(bucket="b", file_name="k1", dest="k2")
    assert encode_operation(operation) == f"/copy/{ENTRY}/{encode_entry('b', 'k2')}/force/false"


def test_move_to_another_bucket():
    operation = MoveOperation(bucket="b", file_name="k1", dest="k2", dest_bucket="archive")
    assert encode_operation(operation).split("/")[3] == encode_entry("archive", "k2")


@pytest.mark.parametrize(
    ("descriptor", "expected"),
    [
        ({"_type": "delete"}, f"/delete/{ENTRY}"),
        ({"_type": "stat"}, f"/stat/{ENTRY}"),
        ({"_type": "prefetch"}, f"/prefetch/{ENTRY}"),
        ({"_type": "chstatus", "status": 1}, f"/chstatus/{ENTRY}/status/1"),
        ({"_type": "deleteAfterDays", "deleteAfterDays": 7}, f"/deleteAfterDays/{ENTRY}/7"),
        ({"_type": "chtype", "type": 1}, f"/chtype/{ENTRY}/type/1"),
        ({"_type": "chgm"}, f"/chgm/{ENTRY}"),
    ],
)
def test_single_entry_operations(descriptor, expected):
    assert encode_operation({"bucket": "b", "fileName": "k1", **descriptor}) == expected


def test_chgm_keeps_metadata_order():
    operation = ChangeMetaOperation(
        bucket="b",
        file_name="k1",
        mimetype="image/png",
        metas=[MetaEntry(key="zeta", value="1"), MetaEntry(key="alpha", value="2")],
        cond="hash=abc",
    )
    assert encode_operation(operation) == (
        f"/chgm/{ENTRY}"
        f"/mime/{urlsafe_b64encode('image/png')}"
        f"/x-qn-meta-zeta/{urlsafe_b64encode('1')}"
        f"/x-qn-meta-alpha/{urlsafe_b64encode('2')}"
        f"/cond/{urlsafe_b64encode('hash=abc')}"
    )


def test_chgm_from_raw_descriptor():
    descriptor = {
        "_type": "chgm",
        "bucket": "b",
        "fileName": "k1",
        "metas": [{"key": "b", "value": "x"}, {"key": "a", "value": "y"}],
    }
    path = encode_operation(descriptor)
    assert path.index("/x-qn-meta-b/") < path.index("/x-qn-meta-a/")


def test_unknown_tag_is_rejected():
    with pytest.raises(InvalidOperationError) as excinfo:
        encode_operation({"_type": "unknown"})
    assert excinfo.value.tag == "unknown"


def test_missing_tag_is_rejected():
    with pytest.raises(InvalidOperationError):
        parse_operation({"bucket": "b", "fileName": "k1"})


def test_non_descriptor_is_rejected():
    with pytest.raises(InvalidOperationError):
        encode_operation(object())  # type: ignore[arg-type]


def test_invalid_fields_are_rejected():
    with pytest.raises(InvalidArgumentError):
        parse_operation({"_type": "move", "bucket": "b", "fileName": "k1"})


def test_empty_bucket_is_rejected():
    with pytest.raises(InvalidArgumentError):
        encode_operation(DeleteOperation(bucket="", file_name="k1"))


def test_parse_accepts_field_names():
    operation = parse_operation({"op": "delete", "bucket": "b", "file_name": "k1"})
    assert isinstance(operation, DeleteOperation)


def test_encode_operations_joins_with_semicolon():
    first = DeleteOperation(bucket="b", file_name="k1")
    second = {"_type": "stat", "bucket": "b", "fileName": "k2"}
    assert encode_operations([first, second]) == encode_operation(first) + ";" + encode_operation(second)


def test_encode_operations_requires_items():
    with pytest.raises(InvalidArgumentError):
        encode_operations([])


@pytest.mark.parametrize("key", ["a/b", "a;b", "a b", ""])
def test_meta_key_must_be_one_path_segment(key):
    with pytest.raises(ValidationError):
        MetaEntry(key=key, value="v")
    descriptor = {"_type": "chgm", "bucket": "b", "fileName": "k", "metas": [{"key": key, "value": "v"}]}
    with pytest.raises(InvalidArgumentError):
        encode_operation(descriptor)


def test_base_operation_is_abstract():
    with pytest.raises(TypeError):
        BaseOperation(bucket="b", file_name="k1")
