"""Tests for the output publisher."""

from dataclasses import replace
from unittest.mock import Mock

import pytest

from autoseg_supervisor.application.publisher import OutputPublisher
from autoseg_supervisor.domain.exceptions import (
    OutputMissingOrEmpty,
    StorageError,
    UploadFailed,
    UploadVerificationFailed,
)
from autoseg_supervisor.domain.models import Artifact, ObjectLocation
from autoseg_supervisor.infrastructure.storage import ObjectStore


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "output" / "AUTOSEGMENT.RT.dcm"
    path.parent.mkdir()
    path.write_bytes(b"DICM" * 64)
    return Artifact(path)


class TestOutputPublisher:
    """Test OutputPublisher."""

    def test_publish_to_local_store(self, artifact, params, tmp_path):
        remote_dir = tmp_path / "remote"
        params = replace(params, output_location=remote_dir.as_uri())
        slept = []

        result = OutputPublisher(ObjectStore(), settle_seconds=15, sleep=slept.append).publish(artifact, params)

        assert slept == [15]
        assert (remote_dir / "AUTOSEGMENT.RT.42.dcm").read_bytes() == artifact.path.read_bytes()
        assert result.size_bytes == 256
        assert result.location.uri.endswith("/AUTOSEGMENT.RT.42.dcm")

    def test_remote_location(self, artifact, params):
        publisher = OutputPublisher(Mock(), settle_seconds=0)

        location = publisher.remote_location(artifact, params)

        assert location == ObjectLocation.parse("s3://out-bucket/results/AUTOSEGMENT.RT.42.dcm")

    def test_missing_artifact(self, tmp_path, params):
        store = Mock()

        with pytest.raises(OutputMissingOrEmpty, match="not found"):
            OutputPublisher(store, settle_seconds=0).publish(Artifact(tmp_path / "AUTOSEGMENT.RT.dcm"), params)

        store.put.assert_not_called()

    def test_empty_artifact(self, artifact, params):
        artifact.path.write_bytes(b"")
        store = Mock()

        with pytest.raises(OutputMissingOrEmpty, match="is empty"):
            OutputPublisher(store, settle_seconds=0).publish(artifact, params)

        store.put.assert_not_called()

    def test_upload_failure(self, artifact, params):
        store = Mock()
        store.put.side_effect = StorageError("AccessDenied")

        with pytest.raises(UploadFailed):
            OutputPublisher(store, settle_seconds=0).publish(artifact, params)

        store.exists.assert_not_called()

    def test_upload_not_confirmed(self, artifact, params):
        store = Mock()
        store.exists.return_value = False

        with pytest.raises(UploadVerificationFailed):
            OutputPublisher(store, settle_seconds=0).publish(artifact, params)

    def test_verification_error(self, artifact, params):
        store = Mock()
        store.exists.side_effect = StorageError("throttled")

        with pytest.raises(UploadVerificationFailed):
            OutputPublisher(store, settle_seconds=0).publish(artifact, params)
