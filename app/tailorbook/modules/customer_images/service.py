"""
Photo lifecycle: keeps customer_images rows and bucket blobs in step.

ORDERING RULES
==============
Upload: compress -> put blob -> insert row (committed per photo).
Delete: remove blob -> delete row.

There is no transaction spanning the bucket and the database:

Failure point              | Result
---------------------------|---------------------------------------------
blob put fails             | nothing written, no row (error propagates)
row insert fails after put | orphan blob, logged at ERROR, not rolled back
blob remove fails          | row kept so the blob is never lost track of

Uploads in a batch run one after another; a failure stops the batch and
leaves the earlier photos fully stored.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.tailorbook.audit import record_event
from app.tailorbook.modules.customer_images.compression import JPEG_CONTENT_TYPE, compress_image
from app.tailorbook.modules.customer_images.models import CustomerImage
from app.tailorbook.modules.customer_profiles.models import Customer
from app.tailorbook.storage import Storage

logger = logging.getLogger(__name__)

_key_lock = threading.Lock()
_last_key_millis = 0


@dataclass(frozen=True)
class UploadFile:
    filename: str
    data: bytes


def next_key_millis(now_millis: int | None = None) -> int:
    """
    Epoch millis for a new blob key, strictly increasing within this process
    so two uploads in the same millisecond still get distinct keys.
    """
    global _last_key_millis
    with _key_lock:
        ms = now_millis if now_millis is not None else int(time.time() * 1000)
        if ms <= _last_key_millis:
            ms = _last_key_millis + 1
        _last_key_millis = ms
        return ms


def build_image_key(customer_id: str, millis: int) -> str:
    return f"{customer_id}/{millis}.jpg"


def resolve_image_url(storage: Storage, file_path: str) -> str:
    return storage.public_url(file_path)


def list_customer_images(s: Session, customer_id: str) -> list[CustomerImage]:
    """Newest first."""
    return (
        s.query(CustomerImage)
        .filter(CustomerImage.customer_id == customer_id)
        .order_by(CustomerImage.created_at.desc(), CustomerImage.id.desc())
        .all()
    )


def list_all_images(s: Session, *, limit: int | None = None) -> list[tuple[CustomerImage, str]]:
    """Every photo across customers with the owner's name, newest first."""
    query = (
        s.query(CustomerImage, Customer.name)
        .join(Customer, Customer.id == CustomerImage.customer_id)
        .order_by(CustomerImage.created_at.desc(), CustomerImage.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return [(img, name) for img, name in query.all()]


def _compress_or_original(data: bytes, filename: str, compressor: Callable[[bytes], bytes]) -> bytes:
    try:
        return compressor(data)
    except Exception as e:
        # Never block an upload on compression.
        logger.warning("Compression failed for %s (%d bytes), storing original: %s", filename, len(data), e)
        return data


def upload_customer_image(
    s: Session,
    storage: Storage,
    *,
    customer_id: str,
    data: bytes,
    filename: str,
    compressor: Callable[[bytes], bytes] = compress_image,
    now_millis: int | None = None,
) -> str:
    """
    Store one photo for a customer and return its public URL.
    Commits the new row.
    """
    if s.get(Customer, customer_id) is None:
        raise LookupError(f"Customer {customer_id} not found")

    payload = _compress_or_original(data, filename, compressor)
    key = build_image_key(customer_id, next_key_millis(now_millis))

    storage.put_bytes(key, payload, content_type=JPEG_CONTENT_TYPE)

    try:
        img = CustomerImage(customer_id=customer_id, file_path=key, file_name=filename or None)
        s.add(img)
        s.flush()
        record_event(
            s,
            action="image.upload",
            entity_type="CustomerImage",
            entity_id=str(img.id),
            metadata={
                "customer_id": customer_id,
                "file_path": key,
                "file_name": filename,
                "bytes_in": len(data),
                "bytes_stored": len(payload),
            },
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.error("Orphan blob: stored %s but could not insert its customer_images row", key)
        raise

    logger.info("Uploaded photo customer=%s key=%s bytes=%d (orig %d)", customer_id, key, len(payload), len(data))
    return storage.public_url(key)


class BatchUploadError(RuntimeError):
    """A batch stopped at `filename`; `uploaded` holds the URLs stored before it."""

    def __init__(self, filename: str, uploaded: list[str], cause: Exception):
        super().__init__(f"Upload failed for {filename}: {cause}")
        self.filename = filename
        self.uploaded = uploaded


def upload_customer_images(
    s: Session,
    storage: Storage,
    *,
    customer_id: str,
    files: Iterable[UploadFile],
    compressor: Callable[[bytes], bytes] = compress_image,
) -> list[str]:
    """Sequential batch upload; stops at the first failure (earlier photos stay)."""
    urls: list[str] = []
    for f in files:
        try:
            url = upload_customer_image(
                s,
                storage,
                customer_id=customer_id,
                data=f.data,
                filename=f.filename,
                compressor=compressor,
            )
        except Exception as e:
            raise BatchUploadError(f.filename, urls, e) from e
        urls.append(url)
    return urls


def delete_customer_image(s: Session, storage: Storage, *, image_id: int, file_path: str) -> None:
    """
    Remove the blob, then the row. A StorageError from the blob removal
    propagates and the row stays, so a retry repeats the whole sequence.
    """
    img = s.get(CustomerImage, image_id)
    if img is not None and img.file_path != file_path:
        raise ValueError(f"Image {image_id} does not point at {file_path}")

    storage.remove(file_path)

    if img is None:
        logger.info("Removed blob %s; image row %s already gone", file_path, image_id)
        return
    customer_id = img.customer_id
    s.delete(img)
    record_event(
        s,
        action="image.delete",
        entity_type="CustomerImage",
        entity_id=str(image_id),
        metadata={"customer_id": customer_id, "file_path": file_path},
    )
    s.commit()
    logger.info("Deleted photo id=%s key=%s", image_id, file_path)
