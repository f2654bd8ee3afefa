"""Tests for S3ObjectStore and botocore error translation."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from GemVault.errors import AbsentRemoteObject, RemoteTransportError, translate_client_error
from GemVault.layout import RemoteObject
from GemVault.object_store import S3ObjectStore


def _client_error(code: str, operation: str = "HeadObject", status: int = 400) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def store(client) -> S3ObjectStore:
    return S3ObjectStore("test-bucket", client=client, chunk_size=3)


class TestClientConstruction:
    def test_builds_single_attempt_client(self):
        with patch("GemVault.object_store.boto3") as mock_boto3:
            S3ObjectStore(
                "bucket",
                region="eu-west-1",
                endpoint_url="http://minio:9000",
                access_key_id="AK",
                secret_access_key="SK",
            )

        kwargs = mock_boto3.client.call_args.kwargs
        assert mock_boto3.client.call_args.args == ("s3",)
        assert kwargs["endpoint_url"] == "http://minio:9000"
        assert kwargs["aws_access_key_id"] == "AK"
        assert kwargs["aws_secret_access_key"] == "SK"
        assert kwargs["config"].retries["max_attempts"] == 1

    def test_credentials_fall_back_to_default_chain(self):
        with patch("GemVault.object_store.boto3") as mock_boto3:
            S3ObjectStore("bucket")

        kwargs = mock_boto3.client.call_args.kwargs
        assert "aws_access_key_id" not in kwargs
        assert "endpoint_url" not in kwargs


class TestExists:
    def test_exists_true(self, store, client):
        client.head_object.return_value = {"ContentLength": 3}
        assert store.exists("artifacts/a.gem") is True
        client.head_object.assert_called_once_with(Bucket="test-bucket", Key="artifacts/a.gem")

    def test_exists_false_on_404(self, store, client):
        client.head_object.side_effect = _client_error("404", status=404)
        assert store.exists("artifacts/a.gem") is False

    def test_exists_propagates_auth_failure(self, store, client):
        client.head_object.side_effect = _client_error("403", status=403)
        with pytest.raises(RemoteTransportError):
            store.exists("artifacts/a.gem")


class TestRead:
    def test_read_streams_chunks(self, store, client):
        body = MagicMock()
        body.iter_chunks.return_value = iter([b"abc", b"def", b"g"])
        client.get_object.return_value = {"Body": body}

        assert list(store.read("metadata/yaml")) == [b"abc", b"def", b"g"]
        body.iter_chunks.assert_called_once_with(chunk_size=3)
        body.close.assert_called_once()

    def test_read_all_joins_chunks(self, store, client):
        body = MagicMock()
        body.iter_chunks.return_value = iter([b"ab", b"cd"])
        client.get_object.return_value = {"Body": body}

        assert store.read_all("artifacts/a.gem") == b"abcd"

    def test_missing_key_raises_before_iteration(self, store, client):
        client.get_object.side_effect = _client_error("NoSuchKey", "GetObject", 404)
        with pytest.raises(AbsentRemoteObject) as info:
            store.read("metadata/yaml")
        assert info.value.key == "metadata/yaml"

    def test_network_failure_is_transport_error(self, store, client):
        client.get_object.side_effect = EndpointConnectionError(endpoint_url="http://s3")
        with pytest.raises(RemoteTransportError) as info:
            store.read("metadata/yaml")
        assert info.value.operation == "read"


class TestWriteDelete:
    def test_write_puts_whole_object(self, store, client):
        store.write("metadata/yaml", b"")
        client.put_object.assert_called_once_with(Bucket="test-bucket", Key="metadata/yaml", Body=b"")

    def test_write_failure_is_not_retried(self, store, client):
        client.put_object.side_effect = _client_error("InternalError", "PutObject", 500)
        with pytest.raises(RemoteTransportError):
            store.write("metadata/yaml", b"x")
        assert client.put_object.call_count == 1

    def test_delete(self, store, client):
        store.delete("artifacts/a.gem")
        client.delete_object.assert_called_once_with(Bucket="test-bucket", Key="artifacts/a.gem")


class TestLastModified:
    def test_returns_aware_timestamp(self, store, client):
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        client.head_object.return_value = {"LastModified": stamp}
        assert store.last_modified("metadata/prerelease_specs.4.8") == stamp

    def test_naive_timestamp_is_treated_as_utc(self, store, client):
        client.head_object.return_value = {"LastModified": datetime(2024, 1, 1)}
        assert store.last_modified("k").tzinfo == timezone.utc

    def test_absent_key(self, store, client):
        client.head_object.side_effect = _client_error("NotFound", status=404)
        with pytest.raises(AbsentRemoteObject):
            store.last_modified("metadata/prerelease_specs.4.8")


class TestList:
    def test_list_paginates_lazily(self, store, client):
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "artifacts/a.gem", "Size": 10}]},
            {"Contents": [{"Key": "artifacts/b.gem", "Size": 20}]},
            {},
        ]
        client.get_paginator.return_value = paginator

        listing = store.list("artifacts/")
        client.get_paginator.assert_not_called()

        assert list(listing) == [
            RemoteObject(key="artifacts/a.gem", content_length=10),
            RemoteObject(key="artifacts/b.gem", content_length=20),
        ]
        paginator.paginate.assert_called_once_with(Bucket="test-bucket", Prefix="artifacts/")


class TestTranslateClientError:
    @pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
    def test_not_found_codes(self, code):
        error = translate_client_error(_client_error(code), key="k", operation="head")
        assert isinstance(error, AbsentRemoteObject)

    def test_other_codes(self):
        error = translate_client_error(_client_error("AccessDenied"), key="k", operation="head")
        assert isinstance(error, RemoteTransportError)
        assert error.key == "k"
