import base64
from dataclasses import replace

import pytest

from app.core.exceptions import PayloadTooLargeError, UpstreamError, ValidationError
from app.domain.assets.models import DELETE_NOT_FOUND, DELETE_OK, DELETE_SKIPPED
from app.infrastructure.storage.cloudinary import CloudinaryError
from app.services import asset_service
from app.services.asset_service import AssetStoreClient, format_size, payload_size
from conftest import PNG_DATA_URI


@pytest.mark.parametrize(
    "payload", ["", None, b"", "   ", "data:image/png;base64,", "data:image/png;base64,   "]
)
def test_empty_payload_fails_fast_without_network(asset_store, fake_backend, payload):
    with pytest.raises(ValidationError) as ei:
        asset_store.upload(payload, folder="badge-templates")
    assert ei.value.message == "No image provided"
    assert ei.value.status_code == 400
    assert fake_backend.uploads == []


def test_non_image_string_is_rejected_before_upload(asset_store, fake_backend):
    with pytest.raises(ValidationError):
        asset_store.upload("definitely not base64 !!", folder="x")
    assert fake_backend.uploads == []


def test_upload_returns_reference_and_passes_options(asset_store, fake_backend):
    ref = asset_store.upload(
        PNG_DATA_URI,
        folder="badge-templates",
        allowed_formats={"PNG", "jpg", " gif "},
        transformation="q_auto/f_auto",
    )
    assert ref.public_id == "badge-templates/asset1"
    assert ref.secure_url.endswith("/v1700000000/badge-templates/asset1.png")
    assert ref.folder == "badge-templates"
    sent = fake_backend.uploads[0]
    assert sent["file"] == PNG_DATA_URI
    assert sent["options"] == {
        "folder": "badge-templates",
        "resource_type": "auto",
        "allowed_formats": ["gif", "jpg", "png"],
        "transformation": "q_auto/f_auto",
    }


def test_upload_uses_default_folder(asset_store, fake_backend, storage_config):
    ref = asset_store.upload(b"\x89PNG binary")
    assert ref.folder == storage_config.default_folder
    assert fake_backend.uploads[0]["options"]["folder"] == storage_config.default_folder


def test_oversized_payload_fails_before_transfer(storage_config, fake_backend):
    store = AssetStoreClient(replace(storage_config, max_bytes=16), fake_backend)
    with pytest.raises(PayloadTooLargeError):
        store.upload(b"x" * 17)
    assert fake_backend.uploads == []
    assert store.upload(b"x" * 16).public_id


def test_payload_size_measures_decoded_data_uri():
    raw = b"a" * 100
    uri = "data:image/png;base64," + base64.b64encode(raw).decode()
    assert payload_size(uri) == 100
    assert payload_size(raw) == 100


def test_upstream_rejection_maps_to_upstream_error(asset_store, fake_backend):
    fake_backend.fail_with = CloudinaryError("Invalid image file", status_code=400)
    with pytest.raises(UpstreamError) as ei:
        asset_store.upload(PNG_DATA_URI)
    assert ei.value.status_code == 500
    assert ei.value.message == "Invalid image file"
    assert ei.value.error == "Error uploading to storage"
    assert len(fake_backend.uploads) == 1


def test_single_shot_by_default_even_for_transient_errors(asset_store, fake_backend, monkeypatch):
    monkeypatch.setattr(asset_service.time, "sleep", lambda s: pytest.fail("no debe reintentar"))
    fake_backend.fail_with = CloudinaryError("HTTP 503", status_code=503, transient=True)
    with pytest.raises(UpstreamError):
        asset_store.upload(PNG_DATA_URI)
    assert len(fake_backend.uploads) == 1


def test_bounded_retry_for_transient_errors(storage_config, fake_backend, monkeypatch):
    sleeps = []
    monkeypatch.setattr(asset_service.time, "sleep", sleeps.append)
    fake_backend.fail_with = CloudinaryError("HTTP 502", status_code=502, transient=True)
    store = AssetStoreClient(replace(storage_config, upload_retries=2), fake_backend)
    with pytest.raises(UpstreamError):
        store.upload(PNG_DATA_URI)
    assert len(fake_backend.uploads) == 3
    assert len(sleeps) == 2
    assert all(0 < s <= 8.0 for s in sleeps)


def test_retry_skips_permanent_errors(storage_config, fake_backend, monkeypatch):
    monkeypatch.setattr(asset_service.time, "sleep", lambda s: None)
    fake_backend.fail_with = CloudinaryError("Invalid image file", status_code=400)
    store = AssetStoreClient(replace(storage_config, upload_retries=3), fake_backend)
    with pytest.raises(UpstreamError):
        store.upload(PNG_DATA_URI)
    assert len(fake_backend.uploads) == 1


def test_delete_twice_both_succeed(asset_store, fake_backend):
    ref = asset_store.upload(PNG_DATA_URI, folder="evt")
    first = asset_store.delete(ref.public_id)
    second = asset_store.delete(ref.public_id)
    assert first.result == DELETE_OK and first.deleted
    assert second.result == DELETE_NOT_FOUND and not second.deleted
    assert fake_backend.destroyed == [ref.public_id, ref.public_id]


def test_delete_with_empty_id_never_calls_backend(asset_store, fake_backend):
    with pytest.raises(ValidationError):
        asset_store.delete("  ")
    assert fake_backend.destroyed == []


def test_delete_by_url_skips_unresolvable(asset_store, fake_backend):
    outcome = asset_store.delete_by_url("https://example.org/no-version/logo.png")
    assert outcome.result == DELETE_SKIPPED
    assert outcome.skipped
    assert fake_backend.destroyed == []


def test_delete_by_url_derives_id(asset_store, fake_backend):
    ref = asset_store.upload(PNG_DATA_URI, folder="badge-templates")
    outcome = asset_store.delete_by_url(ref.secure_url)
    assert outcome.deleted
    assert fake_backend.destroyed == [ref.public_id]


def test_delete_reference_prefers_stored_id(asset_store, fake_backend):
    asset_store.delete_reference(url="https://res.cloudinary.com/demo/image/upload/v1/a/b.png", public_id="c/d")
    assert fake_backend.destroyed == ["c/d"]


def test_unexpected_destroy_result_is_upstream_error(asset_store, fake_backend, monkeypatch):
    monkeypatch.setattr(fake_backend, "destroy", lambda pid, opts: {"result": "error"})
    with pytest.raises(UpstreamError):
        asset_store.delete("a/b")


def test_replace_uploads_new_then_deletes_old(asset_store, fake_backend):
    old = asset_store.upload(PNG_DATA_URI, folder="evt")
    new = asset_store.replace(old.secure_url, PNG_DATA_URI, folder="evt")
    assert new.public_id != old.public_id
    assert fake_backend.destroyed == [old.public_id]
    assert new.public_id in fake_backend.stored


def test_replace_keeps_new_asset_when_old_delete_fails(asset_store, fake_backend, monkeypatch):
    old = asset_store.upload(PNG_DATA_URI, folder="evt")

    def boom(pid, opts):
        raise CloudinaryError("HTTP 500", status_code=500, transient=True)

    monkeypatch.setattr(fake_backend, "destroy", boom)
    new = asset_store.replace(old.secure_url, PNG_DATA_URI, folder="evt")
    assert new.public_id in fake_backend.stored


def test_format_size_uses_largest_whole_unit():
    assert format_size(8) == "8 bytes"
    assert format_size(2048) == "2 KB"
    assert format_size(5 * 1024 * 1024) == "5 MB"
    assert format_size(1536 * 1024) == "1.5 MB"


def test_too_large_message_reports_small_limits_exactly(asset_store, fake_backend):
    with pytest.raises(PayloadTooLargeError) as ei:
        asset_store.upload(PNG_DATA_URI, folder="x", max_bytes=8)
    assert ei.value.message == "Image exceeds the 8 bytes limit"
    assert fake_backend.uploads == []
