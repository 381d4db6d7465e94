import json
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from translation_publisher.cloud_storage import CloudStorageClient, CredentialsError, load_credentials
from translation_publisher.config import StorageConfig


def _http_error(status):
    return HttpError(resp=httplib2.Response({"status": status}), content=b"error")


def _client(service, **conf):
    return CloudStorageClient(StorageConfig(bucket_name="bucket", **conf), service=service)


def test_list_object_names_follows_pages():
    service = MagicMock()
    service.objects.return_value.list.return_value.execute.side_effect = [
        {"items": [{"name": "fr_FR_1.json"}], "nextPageToken": "next"},
        {"items": [{"name": "en_EN_1.json"}]},
    ]

    names = _client(service).list_object_names(prefix="mobile")

    assert names == ["fr_FR_1.json", "en_EN_1.json"]
    list_calls = service.objects.return_value.list.call_args_list
    assert list_calls[0].kwargs == {"bucket": "bucket", "prefix": "mobile", "pageToken": None}
    assert list_calls[1].kwargs["pageToken"] == "next"


def test_list_object_names_empty_bucket():
    service = MagicMock()
    service.objects.return_value.list.return_value.execute.return_value = {}

    assert _client(service).list_object_names() == []


def test_delete_object():
    service = MagicMock()
    service.objects.return_value.delete.return_value.execute.return_value = ""

    _client(service).delete_object("fr_FR_1.json")

    service.objects.return_value.delete.assert_called_once_with(bucket="bucket", object="fr_FR_1.json")


def test_upload_file_sends_json_media(tmp_path):
    path = tmp_path / "fr_FR_2.json"
    path.write_text("{}", encoding="utf-8")
    service = MagicMock()
    service.objects.return_value.insert.return_value.execute.return_value = {"name": "mobile/fr_FR_2.json"}

    with patch("translation_publisher.cloud_storage.MediaFileUpload") as media_cls:
        result = _client(service).upload_file(path, "mobile/fr_FR_2.json")

    media_cls.assert_called_once_with(str(path), mimetype="application/json")
    service.objects.return_value.insert.assert_called_once_with(
        bucket="bucket",
        name="mobile/fr_FR_2.json",
        media_body=media_cls.return_value,
    )
    assert result == {"name": "mobile/fr_FR_2.json"}
    media_cls.return_value.stream.return_value.close.assert_called_once_with()


def test_upload_reuses_one_media_across_retries_and_closes_it(tmp_path):
    path = tmp_path / "fr_FR_2.json"
    path.write_text("{}", encoding="utf-8")
    service = MagicMock()
    execute = service.objects.return_value.insert.return_value.execute
    execute.side_effect = [_http_error(503), _http_error(503)]

    with patch("translation_publisher.cloud_storage.MediaFileUpload") as media_cls, patch(
        "translation_publisher.cloud_storage.time.sleep"
    ):
        with pytest.raises(HttpError):
            _client(service, max_attempts=2).upload_file(path, "fr_FR_2.json")

    media_cls.assert_called_once_with(str(path), mimetype="application/json")
    stream = media_cls.return_value.stream.return_value
    assert stream.seek.call_count == 2
    stream.close.assert_called_once_with()


def test_object_acl_calls():
    service = MagicMock()
    acl = service.objectAccessControls.return_value
    acl.list.return_value.execute.return_value = {"items": [{"entity": "user-x", "role": "OWNER"}]}
    client = _client(service)

    assert client.list_object_acl("fr_FR_1.json") == [{"entity": "user-x", "role": "OWNER"}]
    client.insert_object_acl("fr_FR_1.json", "allUsers", "READER")

    acl.insert.assert_called_once_with(
        bucket="bucket",
        object="fr_FR_1.json",
        body={"entity": "allUsers", "role": "READER"},
    )


def test_single_attempt_by_default():
    service = MagicMock()
    service.objects.return_value.delete.return_value.execute.side_effect = _http_error(503)

    with pytest.raises(HttpError):
        _client(service).delete_object("fr_FR_1.json")

    assert service.objects.return_value.delete.return_value.execute.call_count == 1


def test_transient_errors_retried_when_configured():
    service = MagicMock()
    execute = service.objects.return_value.list.return_value.execute
    execute.side_effect = [_http_error(503), {"items": [{"name": "a_1.json"}]}]

    with patch("translation_publisher.cloud_storage.time.sleep") as sleep:
        names = _client(service, max_attempts=3).list_object_names()

    assert names == ["a_1.json"]
    sleep.assert_called_once_with(1.0)


def test_permanent_errors_not_retried():
    service = MagicMock()
    execute = service.objects.return_value.delete.return_value.execute
    execute.side_effect = _http_error(404)

    with pytest.raises(HttpError):
        _client(service, max_attempts=3).delete_object("missing.json")

    assert execute.call_count == 1


def test_close_releases_service():
    service = MagicMock()

    with _client(service):
        pass

    service.close.assert_called_once_with()


def test_missing_credentials_file(tmp_path):
    with pytest.raises(CredentialsError, match="not found"):
        load_credentials(tmp_path / "service_account.json")


def test_malformed_credentials_file(tmp_path):
    path = tmp_path / "service_account.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CredentialsError, match="Invalid"):
        load_credentials(path)


def test_incomplete_credentials_file(tmp_path):
    path = tmp_path / "service_account.json"
    path.write_text(json.dumps({"type": "service_account"}), encoding="utf-8")

    with pytest.raises(CredentialsError):
        load_credentials(path)


def test_service_requires_credentials():
    client = CloudStorageClient(StorageConfig())

    with pytest.raises(CredentialsError):
        client.list_object_names()
