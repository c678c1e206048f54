"""Tests for object storage backends."""

from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from autoseg_supervisor.domain.exceptions import StorageError
from autoseg_supervisor.domain.models import ObjectLocation
from autoseg_supervisor.infrastructure.storage import (
    HttpObjectStore,
    LocalObjectStore,
    ObjectStore,
    S3ObjectStore,
)


@pytest.fixture
def s3_client():
    return Mock()


@pytest.fixture
def s3_store(s3_client):
    return S3ObjectStore(client=s3_client)


@pytest.fixture
def local_file(tmp_path):
    path = tmp_path / "AUTOSEGMENT.RT.dcm"
    path.write_bytes(b"DICM")
    return path


class TestS3ObjectStore:
    """Test S3ObjectStore with a mocked boto3 client."""

    def test_client_created_lazily(self):
        with patch('autoseg_supervisor.infrastructure.storage.object_store.boto3.client') as mock_boto:
            store = S3ObjectStore(endpoint_url='https://s3.example.com', region='eu-west-1')
            mock_boto.assert_not_called()

            client = store.client

        mock_boto.assert_called_once_with('s3', endpoint_url='https://s3.example.com', region_name='eu-west-1')
        assert client is mock_boto.return_value

    def test_fetch(self, s3_store, s3_client, tmp_path):
        destination = tmp_path / "dl" / "file_upload_42_dicom.zip"

        s3_store.fetch(ObjectLocation.parse("s3://in/uploads/42.zip"), destination)

        s3_client.download_file.assert_called_once_with("in", "uploads/42.zip", str(destination))
        assert destination.parent.is_dir()

    def test_fetch_error(self, s3_store, s3_client, tmp_path):
        s3_client.download_file.side_effect = ClientError({'Error': {'Code': '403'}}, 'GetObject')

        with pytest.raises(StorageError):
            s3_store.fetch(ObjectLocation.parse("s3://in/key"), tmp_path / "x.zip")

    def test_put(self, s3_store, s3_client, local_file):
        s3_store.put(local_file, ObjectLocation.parse("s3://out/results/AUTOSEGMENT.RT.42.dcm"))

        args, kwargs = s3_client.upload_file.call_args
        assert args == (str(local_file), "out", "results/AUTOSEGMENT.RT.42.dcm")
        assert 'Config' in kwargs

    def test_put_error(self, s3_store, s3_client, local_file):
        s3_client.upload_file.side_effect = S3UploadFailedError("Failed to upload")

        with pytest.raises(StorageError):
            s3_store.put(local_file, ObjectLocation.parse("s3://out/key"))

    def test_put_missing_source(self, s3_store, tmp_path):
        with pytest.raises(StorageError):
            s3_store.put(tmp_path / "missing.dcm", ObjectLocation.parse("s3://out/key"))

    def test_exists(self, s3_store, s3_client):
        assert s3_store.exists(ObjectLocation.parse("s3://out/key")) is True
        s3_client.head_object.assert_called_once_with(Bucket="out", Key="key")

    @pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
    def test_exists_missing(self, s3_store, s3_client, code):
        s3_client.head_object.side_effect = ClientError({'Error': {'Code': code}}, 'HeadObject')

        assert s3_store.exists(ObjectLocation.parse("s3://out/key")) is False

    def test_exists_other_error(self, s3_store, s3_client):
        s3_client.head_object.side_effect = ClientError({'Error': {'Code': '403'}}, 'HeadObject')

        with pytest.raises(StorageError):
            s3_store.exists(ObjectLocation.parse("s3://out/key"))


class TestLocalObjectStore:
    """Test LocalObjectStore."""

    def test_put_fetch_exists(self, tmp_path, local_file):
        store = LocalObjectStore()
        remote = ObjectLocation.parse((tmp_path / "remote" / "a.dcm").as_uri())

        assert store.exists(remote) is False
        store.put(local_file, remote)
        assert store.exists(remote) is True

        copy = store.fetch(remote, tmp_path / "copy" / "a.dcm")
        assert copy.read_bytes() == b"DICM"

    def test_fetch_missing(self, tmp_path):
        with pytest.raises(StorageError):
            LocalObjectStore().fetch(ObjectLocation.parse(str(tmp_path / "nope.zip")), tmp_path / "x")


class TestHttpObjectStore:
    """Test HttpObjectStore."""

    def test_fetch_streams_to_file(self, tmp_path):
        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_content.return_value = [b"PK", b"", b"\x03\x04"]

        with patch('autoseg_supervisor.infrastructure.storage.object_store.requests.get',
                   return_value=response) as mock_get:
            path = HttpObjectStore(timeout=30).fetch(
                ObjectLocation.parse("https://host/upload.zip?X-Amz-Signature=secret"),
                tmp_path / "upload.zip",
            )

        mock_get.assert_called_once_with(
            "https://host/upload.zip?X-Amz-Signature=secret", stream=True, timeout=30
        )
        assert path.read_bytes() == b"PK\x03\x04"

    def test_fetch_http_error(self, tmp_path):
        response = MagicMock()
        response.__enter__.return_value = response
        response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")

        with patch('autoseg_supervisor.infrastructure.storage.object_store.requests.get',
                   return_value=response):
            with pytest.raises(StorageError):
                HttpObjectStore().fetch(ObjectLocation.parse("https://host/x.zip"), tmp_path / "x.zip")

    def test_fetch_errors_hide_signature(self, tmp_path):
        location = ObjectLocation.parse("https://host/x.zip?X-Amz-Signature=secret")
        response = MagicMock(status_code=403)
        response.__enter__.return_value = response
        response.raise_for_status.side_effect = requests.HTTPError(
            f"403 Client Error: Forbidden for url: {location.uri}", response=response
        )

        with patch('autoseg_supervisor.infrastructure.storage.object_store.requests.get',
                   return_value=response):
            with pytest.raises(StorageError) as excinfo:
                HttpObjectStore().fetch(location, tmp_path / "x.zip")

        assert "secret" not in excinfo.value.message
        assert "status 403" in excinfo.value.message

        with patch('autoseg_supervisor.infrastructure.storage.object_store.requests.get',
                   side_effect=requests.ConnectionError(f"Max retries exceeded with url: {location.uri}")):
            with pytest.raises(StorageError) as excinfo:
                HttpObjectStore().fetch(location, tmp_path / "x.zip")

        assert "secret" not in excinfo.value.message
        assert "ConnectionError" in excinfo.value.message

    def test_put_not_supported(self, local_file):
        with pytest.raises(StorageError):
            HttpObjectStore().put(local_file, ObjectLocation.parse("https://host/x"))


class TestObjectStore:
    """Test routing by scheme."""

    def test_routes_by_scheme(self, tmp_path, local_file):
        s3 = Mock()
        store = ObjectStore(s3=s3)

        store.put(local_file, ObjectLocation.parse("s3://out/key"))
        store.put(local_file, ObjectLocation.parse(str(tmp_path / "remote.dcm")))

        s3.put.assert_called_once()
        assert (tmp_path / "remote.dcm").exists()
