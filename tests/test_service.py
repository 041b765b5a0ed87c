import json
from urllib.parse import parse_qs

import pytest
import requests

from qiniu_sdk.auth import build_policy_token, management_authorization
from qiniu_sdk.config import QiniuSettings
from qiniu_sdk.exceptions import InvalidArgumentError, TransportError
from qiniu_sdk.models import ByteRange
from qiniu_sdk.operations import DeleteOperation, encode_operation
from qiniu_sdk.service import QiniuService
from qiniu_sdk.utils.encoding import encode_entry


class StubResponse:
    def __init__(self, status_code=200, payload=None, chunks=()):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")
        self.text = self.content.decode("utf-8")
        self._chunks = chunks

    def json(self):
        return self._payload

    def iter_content(self, chunk_size):
        yield from self._chunks

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class StubSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.response

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self.response


def build_service(response=None):
    settings = QiniuSettings(access_key="ak", secret_key="sk")
    session = StubSession(response or StubResponse(payload={}))
    return QiniuService(settings, session=session, clock=lambda: 1000), session


def test_buckets_uses_management_token():
    service, session = build_service(StubResponse(payload=["media", "logs"]))
    assert service.buckets() == ["media", "logs"]
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "http://rs.qbox.me/buckets")
    assert kwargs["data"] is None
    assert kwargs["headers"]["Authorization"] == management_authorization(service.credential, "/buckets")


def test_batch_signs_form_body():
    service, session = build_service(StubResponse(payload=[{"code": 200}]))
    operations = [
        DeleteOperation(bucket="b", file_name="k1"),
        {"_type": "stat", "bucket": "b", "fileName": "k2"},
    ]
    assert service.batch(operations) == [{"code": 200}]
    _, url, kwargs = session.calls[0]
    assert url == "http://rs.qiniu.com/batch"
    assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert parse_qs(kwargs["data"].decode()) == {"op": [encode_operation(operation) for operation in operations]}
    expected = management_authorization(service.credential, "/batch", kwargs["data"])
    assert kwargs["headers"]["Authorization"] == expected


def test_batch_requires_operations():
    service, _ = build_service()
    with pytest.raises(InvalidArgumentError):
        service.batch([])


def test_stat_posts_encoded_path():
    service, session = build_service(StubResponse(payload={"fsize": 3}))
    assert service.stat("b", "k1") == {"fsize": 3}
    assert session.calls[0][1] == f"http://rs.qiniu.com/stat/{encode_entry('b', 'k1')}"


def test_async_fetch_uses_policy_token():
    service, session = build_service(StubResponse(payload={"id": "job"}))
    result = service.async_fetch({"url": ["http://a.com/1", "http://a.com/2"], "bucket": "b"})
    assert result == {"id": "job"}
    _, url, kwargs = session.calls[0]
    assert url == "http://api-z0.qiniu.com/sisyphus/fetch"
    assert json.loads(kwargs["data"]) == {"url": "http://a.com/1;http://a.com/2", "bucket": "b"}
    expected = build_policy_token(
        service.credential, "POST", "api-z0.qiniu.com", "/sisyphus/fetch", "application/json", kwargs["data"]
    )
    assert kwargs["headers"]["Authorization"] == expected


def test_pfop_form_fields():
    service, session = build_service(StubResponse(payload={"persistentId": "p1"}))
    service.pfop("b", "k1", ["avthumb/mp4", "vframe/jpg/offset/1"], force=True, notify_url="http://n.com/cb")
    _, url, kwargs = session.calls[0]
    assert url == "http://api.qiniu.com/pfop"
    assert parse_qs(kwargs["data"].decode()) == {
        "bucket": ["b"],
        "key": ["k1"],
        "fops": ["avthumb/mp4;vframe/jpg/offset/1"],
        "force": ["1"],
        "notifyURL": ["http://n.com/cb"],
    }


def test_pfop_requires_commands():
    service, _ = build_service()
    with pytest.raises(InvalidArgumentError):
        service.pfop("b", "k1", [])


def test_error_status_raises_transport_error():
    service, _ = build_service(StubResponse(status_code=612, payload={"error": "no such file or directory"}))
    with pytest.raises(TransportError) as excinfo:
        service.stat("b", "missing")
    assert excinfo.value.status_code == 612
    assert "no such file" in excinfo.value.body


def test_private_download_url_uses_settings_lifetime():
    service, _ = build_service()
    url = service.private_download_url("http://cdn.example.com/a.jpg")
    assert url.startswith("http://cdn.example.com/a.jpg?e=4600&token=ak:")


def test_upload_policy_deadline_comes_from_clock():
    service, _ = build_service()
    policy = service.upload_policy("b", 60, insert_only=1)
    assert policy.deadline == 1060
    assert service.upload_token(policy).startswith("ak:")


def test_download_writes_chunks(tmp_path):
    service, session = build_service(StubResponse(chunks=[b"ab", b"", b"cd"]))
    target = service.download("http://cdn.example.com/a.bin", tmp_path / "a.bin", byte_range=ByteRange(start=0, end=3))
    assert target.read_bytes() == b"abcd"
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert "&token=ak:" in url
    assert kwargs["headers"] == {"Range": "bytes=0-3"}
    assert kwargs["stream"] is True


def test_download_removes_partial_file_on_error(tmp_path):
    def interrupted():
        yield b"ab"
        raise requests.ConnectionError("connection reset")

    service, _ = build_service(StubResponse(chunks=interrupted()))
    target = tmp_path / "a.bin"
    with pytest.raises(requests.ConnectionError):
        service.download("http://cdn.example.com/a.bin", target)
    assert not target.exists()
