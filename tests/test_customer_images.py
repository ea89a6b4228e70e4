"""Tests for photo upload/delete ordering, compression and the gallery API."""
import io

import pytest
from PIL import Image
from sqlalchemy.exc import SQLAlchemyError

from app.tailorbook.db import session_scope
from app.tailorbook.modules.customer_images.compression import (
    ImageCompressionError,
    MAX_BYTES,
    MAX_DIMENSION,
    compress_image,
)
from app.tailorbook.modules.customer_images import service as image_service
from app.tailorbook.modules.customer_images.models import CustomerImage
from app.tailorbook.modules.customer_images.service import (
    BatchUploadError,
    UploadFile,
    build_image_key,
    delete_customer_image,
    next_key_millis,
    upload_customer_image,
    upload_customer_images,
)
from app.tailorbook.modules.customer_profiles.models import Customer
from app.tailorbook.storage import StorageError


def _png_bytes(size=(64, 48), color=(200, 30, 30), mode="RGB") -> bytes:
    out = io.BytesIO()
    Image.new(mode, size, color).save(out, format="PNG")
    return out.getvalue()


def _noisy_png(size) -> bytes:
    img = Image.effect_noise(size, 90).convert("RGB")
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


@pytest.fixture()
def customer_id(app):
    with session_scope(app) as s:
        c = Customer(name="Asha", phone="9876543210")
        s.add(c)
        s.flush()
        return c.id


def _passthrough(data: bytes) -> bytes:
    return data


class TestKeys:
    def test_key_layout(self):
        assert build_image_key("abc", 1700000000000) == "abc/1700000000000.jpg"

    def test_keys_strictly_increase_within_same_millisecond(self):
        a = next_key_millis(5_000_000_000_000)
        b = next_key_millis(5_000_000_000_000)
        c = next_key_millis(4_000_000_000_000)
        assert a < b < c


class TestCompression:
    def test_output_is_jpeg_within_dimension(self):
        out = compress_image(_png_bytes(size=(2400, 1600)))
        with Image.open(io.BytesIO(out)) as img:
            assert img.format == "JPEG"
            assert max(img.size) <= MAX_DIMENSION
            assert img.size == (1200, 800)

    def test_small_image_is_not_upscaled(self):
        out = compress_image(_png_bytes(size=(300, 200)))
        with Image.open(io.BytesIO(out)) as img:
            assert img.size == (300, 200)

    def test_noisy_image_is_squeezed_under_budget(self):
        out = compress_image(_noisy_png((1600, 1600)))
        assert len(out) <= MAX_BYTES

    def test_transparent_png_is_flattened(self):
        out = compress_image(_png_bytes(color=(0, 0, 0, 0), mode="RGBA"))
        with Image.open(io.BytesIO(out)) as img:
            assert img.mode == "RGB"
            r, g, b = img.getpixel((10, 10))
            assert min(r, g, b) > 240

    def test_garbage_raises(self):
        with pytest.raises(ImageCompressionError):
            compress_image(b"definitely not an image")


def test_upload_stores_blob_then_row(app, storage, customer_id):
    with session_scope(app) as s:
        url = upload_customer_image(
            s, storage, customer_id=customer_id, data=_png_bytes(), filename="front.png", now_millis=6_000_000_000_000
        )
    assert url.startswith("https://cdn.test/customer-images/")
    assert len(storage.blobs) == 1
    key = next(iter(storage.blobs))
    assert key.startswith(f"{customer_id}/") and key.endswith(".jpg")
    assert url.endswith(key)
    with session_scope(app) as s:
        img = s.query(CustomerImage).one()
        assert img.file_path == key
        assert img.file_name == "front.png"


def test_upload_blob_failure_leaves_no_row(app, storage, customer_id):
    storage.fail_put = True
    with session_scope(app) as s:
        with pytest.raises(StorageError):
            upload_customer_image(s, storage, customer_id=customer_id, data=b"abc", filename="a.jpg")
    with session_scope(app) as s:
        assert s.query(CustomerImage).count() == 0


def test_row_insert_failure_leaves_orphan_blob(app, storage, customer_id, monkeypatch, caplog):
    def broken_record_event(*args, **kwargs):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(image_service, "record_event", broken_record_event)
    with session_scope(app) as s:
        with pytest.raises(SQLAlchemyError):
            upload_customer_image(
                s, storage, customer_id=customer_id, data=b"x", filename="a.jpg", compressor=_passthrough
            )

    # no compensation: the blob stays, the row does not
    assert len(storage.blobs) == 1
    assert storage.removed == []
    assert "Orphan blob" in caplog.text
    with session_scope(app) as s:
        assert s.query(CustomerImage).count() == 0


def test_upload_unknown_customer(app, storage):
    with session_scope(app) as s:
        with pytest.raises(LookupError):
            upload_customer_image(s, storage, customer_id="missing", data=b"abc", filename="a.jpg")
    assert storage.blobs == {}


def test_batch_with_failed_compression_still_stores_every_photo(app, storage, customer_id):
    calls = []

    def flaky(data: bytes) -> bytes:
        calls.append(data)
        if len(calls) == 2:
            raise ImageCompressionError("corrupt")
        return b"jpeg:" + data

    files = [UploadFile(f"p{i}.jpg", f"raw{i}".encode()) for i in range(3)]
    with session_scope(app) as s:
        urls = upload_customer_images(s, storage, customer_id=customer_id, files=files, compressor=flaky)

    assert len(urls) == 3
    assert len(set(urls)) == 3
    # the photo whose compression failed is stored as uploaded
    assert sorted(storage.blobs.values()) == [b"jpeg:raw0", b"jpeg:raw2", b"raw1"]
    with session_scope(app) as s:
        assert s.query(CustomerImage).count() == 3


def test_batch_stops_at_storage_failure_and_reports_progress(app, storage, customer_id):
    class FailSecond:
        def __init__(self):
            self.n = 0

        def __call__(self, data):
            self.n += 1
            if self.n == 2:
                storage.fail_put = True
            return data

    files = [UploadFile(f"p{i}.jpg", b"x") for i in range(3)]
    with session_scope(app) as s:
        with pytest.raises(BatchUploadError) as exc:
            upload_customer_images(s, storage, customer_id=customer_id, files=files, compressor=FailSecond())
    assert exc.value.filename == "p1.jpg"
    assert len(exc.value.uploaded) == 1
    with session_scope(app) as s:
        assert s.query(CustomerImage).count() == 1


def test_delete_removes_blob_then_row(app, storage, customer_id):
    with session_scope(app) as s:
        upload_customer_image(s, storage, customer_id=customer_id, data=b"x", filename="a.jpg", compressor=_passthrough)
    with session_scope(app) as s:
        img = s.query(CustomerImage).one()
        delete_customer_image(s, storage, image_id=img.id, file_path=img.file_path)
    assert storage.blobs == {}
    with session_scope(app) as s:
        assert s.query(CustomerImage).count() == 0


def test_delete_blob_failure_keeps_row_and_retry_succeeds(app, storage, customer_id):
    with session_scope(app) as s:
        upload_customer_image(s, storage, customer_id=customer_id, data=b"x", filename="a.jpg", compressor=_passthrough)
    with session_scope(app) as s:
        img = s.query(CustomerImage).one()
        image_id, key = img.id, img.file_path

    storage.fail_remove.add(key)
    with session_scope(app) as s:
        with pytest.raises(StorageError):
            delete_customer_image(s, storage, image_id=image_id, file_path=key)
    with session_scope(app) as s:
        assert s.get(CustomerImage, image_id) is not None

    storage.fail_remove.clear()
    with session_scope(app) as s:
        delete_customer_image(s, storage, image_id=image_id, file_path=key)
    with session_scope(app) as s:
        assert s.get(CustomerImage, image_id) is None


def test_delete_with_row_already_gone_still_removes_blob(app, storage, customer_id):
    key = f"{customer_id}/123.jpg"
    storage.blobs[key] = b"x"
    with session_scope(app) as s:
        delete_customer_image(s, storage, image_id=999, file_path=key)
    assert key in storage.removed
    assert storage.blobs == {}


def test_delete_rejects_mismatched_path(app, storage, customer_id):
    with session_scope(app) as s:
        upload_customer_image(s, storage, customer_id=customer_id, data=b"x", filename="a.jpg", compressor=_passthrough)
    with session_scope(app) as s:
        img = s.query(CustomerImage).one()
        with pytest.raises(ValueError):
            delete_customer_image(s, storage, image_id=img.id, file_path="someone-else/1.jpg")
    assert storage.removed == []


def test_upload_and_list_api(client, storage, customer_id):
    data = {
        "files": [
            (io.BytesIO(_png_bytes()), "front.png"),
            (io.BytesIO(_png_bytes(color=(0, 0, 255))), "back.png"),
        ]
    }
    r = client.post(f"/api/customers/{customer_id}/images", data=data, content_type="multipart/form-data")
    assert r.status_code == 201
    assert len(r.json["uploaded"]) == 2
    assert len(storage.blobs) == 2

    r = client.get(f"/api/customers/{customer_id}/images")
    assert r.status_code == 200
    names = [img["file_name"] for img in r.json["images"]]
    # newest first
    assert names == ["back.png", "front.png"]

    r = client.get("/api/photos")
    assert r.json["count"] == 2
    assert r.json["photos"][0]["customer_name"] == "Asha"


def test_upload_api_requires_files(client, customer_id):
    r = client.post(f"/api/customers/{customer_id}/images", data={}, content_type="multipart/form-data")
    assert r.status_code == 400


def test_upload_api_reports_partial_batch(client, storage, customer_id):
    storage.fail_put = True
    data = {"files": [(io.BytesIO(b"x"), "a.jpg")]}
    r = client.post(f"/api/customers/{customer_id}/images", data=data, content_type="multipart/form-data")
    assert r.status_code == 502
    assert r.json["uploaded"] == []


def test_delete_image_api(client, storage, customer_id):
    data = {"files": [(io.BytesIO(_png_bytes()), "front.png")]}
    client.post(f"/api/customers/{customer_id}/images", data=data, content_type="multipart/form-data")
    image_id = client.get(f"/api/customers/{customer_id}/images").json["images"][0]["id"]

    r = client.delete(f"/api/images/{image_id}")
    assert r.status_code == 200
    assert storage.blobs == {}
    assert client.delete(f"/api/images/{image_id}").status_code == 404
