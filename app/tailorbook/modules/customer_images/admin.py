from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request, send_file

from app.tailorbook.db import db_session
from app.tailorbook.modules.customer_images.models import CustomerImage
from app.tailorbook.modules.customer_images.service import (
    BatchUploadError,
    UploadFile,
    delete_customer_image,
    list_all_images,
    list_customer_images,
    resolve_image_url,
    upload_customer_images,
)
from app.tailorbook.modules.customer_images.usage import DEFAULT_LIMIT_MB, compute_storage_usage
from app.tailorbook.modules.customer_profiles.service import get_customer_by_id
from app.tailorbook.storage import LocalStorage
from app.tailorbook.utils import current_storage, error_response

bp = Blueprint("customer_images", __name__)
media_bp = Blueprint("media", __name__)


def _image_dict(img: CustomerImage, url: str, **extra) -> dict:
    return {
        "id": img.id,
        "customer_id": img.customer_id,
        "file_path": img.file_path,
        "file_name": img.file_name,
        "url": url,
        "created_at": img.created_at.isoformat(),
        **extra,
    }


@bp.get("/customers/<customer_id>/images")
def images_list(customer_id: str):
    s = db_session()
    if not get_customer_by_id(s, customer_id):
        return error_response("Customer not found.", 404)
    storage = current_storage()
    images = [_image_dict(img, resolve_image_url(storage, img.file_path)) for img in list_customer_images(s, customer_id)]
    return jsonify({"images": images})


@bp.post("/customers/<customer_id>/images")
def images_upload(customer_id: str):
    s = db_session()
    if not get_customer_by_id(s, customer_id):
        return error_response("Customer not found.", 404)
    files = [
        UploadFile(filename=f.filename, data=f.read())
        for f in request.files.getlist("files") + request.files.getlist("file")
        if f and f.filename
    ]
    if not files:
        return error_response("No files uploaded.", 400)
    try:
        urls = upload_customer_images(s, current_storage(), customer_id=customer_id, files=files)
    except BatchUploadError as e:
        current_app.logger.error("Photo batch stopped customer=%s file=%s: %s", customer_id, e.filename, e.__cause__)
        # Earlier photos in the batch are already stored; report them with the failure.
        return jsonify({"error": str(e), "uploaded": e.uploaded}), 502
    return jsonify({"uploaded": urls}), 201


@bp.delete("/images/<int:image_id>")
def image_delete(image_id: int):
    s = db_session()
    img = s.get(CustomerImage, image_id)
    if not img:
        return error_response("Image not found.", 404)
    delete_customer_image(s, current_storage(), image_id=img.id, file_path=img.file_path)
    return jsonify({"ok": True})


@bp.get("/photos")
def photos_gallery():
    s = db_session()
    storage = current_storage()
    limit = request.args.get("limit", type=int)
    photos = [
        _image_dict(img, resolve_image_url(storage, img.file_path), customer_name=name)
        for img, name in list_all_images(s, limit=limit)
    ]
    return jsonify({"photos": photos, "count": len(photos)})


@bp.get("/storage/usage")
def storage_usage():
    limit_mb = int(current_app.config.get("STORAGE_LIMIT_MB") or DEFAULT_LIMIT_MB)
    usage = compute_storage_usage(current_storage(), limit_mb=limit_mb)
    return jsonify(usage.to_dict())


@media_bp.get("/media/<path:key>")
def media_file(key: str):
    """Serve blobs of the local backend; S3 blobs are public on the bucket itself."""
    storage = current_storage()
    if not isinstance(storage, LocalStorage) or not storage.exists(key):
        abort(404)
    return send_file(storage.open(key), mimetype="image/jpeg", max_age=86400)
