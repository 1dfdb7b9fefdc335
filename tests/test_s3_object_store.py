"""Tests for the S3 object store adapter."""

import io
from datetime import UTC, datetime
from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.adapters.s3_object_store import S3ObjectStore, create_s3_client
from src.domain.exceptions import ArchiveError, StoreUnavailableError


def _client_error(operation: str, code: str = "InternalError") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


class StubS3Client:
    """Minimal stand-in for a boto3 S3 client."""

    def __init__(self, pages: list[dict[str, Any]] | None = None) -> None:
        self.pages = list(pages or [])
        self.list_calls: list[dict[str, Any]] = []
        self.bodies: dict[str, bytes] = {}
        self.copied: list[dict[str, Any]] = []
        self.deleted: list[str] = []
        self.fail_copy = False
        self.fail_delete = False

    def list_objects_v2(self, **params: Any) -> dict[str, Any]:
        self.list_calls.append(params)
        return self.pages.pop(0)

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        if Key not in self.bodies:
            raise _client_error("GetObject", "NoSuchKey")
        return {"Body": io.BytesIO(self.bodies[Key])}

    def copy_object(self, **params: Any) -> dict[str, Any]:
        if self.fail_copy:
            raise _client_error("CopyObject")
        self.copied.append(params)
        return {}

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        if self.fail_delete:
            raise _client_error("DeleteObject")
        self.deleted.append(Key)
        return {}


def test_list_objects_follows_continuation_tokens() -> None:
    modified = datetime(2024, 5, 6, 1, 0, tzinfo=UTC)
    client = StubS3Client(
        pages=[
            {
                "Contents": [
                    {"Key": "issues/", "Size": 0},
                    {"Key": "issues/a.json", "Size": 10, "LastModified": modified},
                ],
                "IsTruncated": True,
                "NextContinuationToken": "token-1",
            },
            {"Contents": [{"Key": "issues/b.json", "Size": 12}], "IsTruncated": False},
        ]
    )
    store = S3ObjectStore("events", client)

    objects = store.list_objects("issues/")

    assert [obj.key for obj in objects] == ["issues/a.json", "issues/b.json"]
    assert objects[0].last_modified == modified
    assert client.list_calls[0] == {"Bucket": "events", "Prefix": "issues/"}
    assert client.list_calls[1]["ContinuationToken"] == "token-1"


def test_empty_listing() -> None:
    store = S3ObjectStore("events", StubS3Client(pages=[{"KeyCount": 0}]))

    assert store.list_objects("issues/") == []


def test_list_failure_raises_store_unavailable() -> None:
    class FailingClient(StubS3Client):
        def list_objects_v2(self, **params: Any) -> dict[str, Any]:
            raise EndpointConnectionError(endpoint_url="https://storage.test")

    store = S3ObjectStore("events", FailingClient())

    with pytest.raises(StoreUnavailableError):
        store.list_objects("issues/")


def test_get_object_reads_body() -> None:
    client = StubS3Client()
    client.bodies["issues/a.json"] = b'{"id": "a"}'
    store = S3ObjectStore("events", client)

    assert store.get_object("issues/a.json") == b'{"id": "a"}'


def test_get_failure_raises_store_unavailable() -> None:
    store = S3ObjectStore("events", StubS3Client())

    with pytest.raises(StoreUnavailableError):
        store.get_object("issues/missing.json")


def test_move_copies_then_deletes() -> None:
    client = StubS3Client()
    store = S3ObjectStore("events", client)

    store.move_object("issues/a.json", "processed/issues/a.json")

    assert client.copied == [
        {
            "Bucket": "events",
            "CopySource": {"Bucket": "events", "Key": "issues/a.json"},
            "Key": "processed/issues/a.json",
        }
    ]
    assert client.deleted == ["issues/a.json"]


def test_move_does_not_delete_when_copy_fails() -> None:
    client = StubS3Client()
    client.fail_copy = True
    store = S3ObjectStore("events", client)

    with pytest.raises(ArchiveError):
        store.move_object("issues/a.json", "processed/issues/a.json")

    assert client.deleted == []


def test_move_reports_delete_failure() -> None:
    client = StubS3Client()
    client.fail_delete = True
    store = S3ObjectStore("events", client)

    with pytest.raises(ArchiveError):
        store.move_object("issues/a.json", "processed/issues/a.json")


def test_empty_bucket_name_rejected() -> None:
    with pytest.raises(ValueError):
        S3ObjectStore("", StubS3Client())


def test_create_s3_client_uses_path_style(mocker) -> None:
    boto_client = mocker.patch("src.adapters.s3_object_store.boto3.client")

    create_s3_client(
        region="KR1",
        endpoint_url="https://storage.test",
        access_key="ak",
        secret_key="sk",
        verify_tls=False,
    )

    _, kwargs = boto_client.call_args
    assert boto_client.call_args.args == ("s3",)
    assert kwargs["endpoint_url"] == "https://storage.test"
    assert kwargs["verify"] is False
    assert kwargs["config"].s3 == {"addressing_style": "path"}
