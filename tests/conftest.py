from __future__ import annotations

import pytest

from app.tailorbook import create_app
from app.tailorbook.models import Base
from app.tailorbook.modules.whatsapp_dispatch.whatsapp_client import WhatsAppError
from app.tailorbook.storage import DEFAULT_LIST_LIMIT, Storage, StorageEntry, StorageError


class InMemoryStorage(Storage):
    """Dict-backed blob store with switchable failures."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.fail_put = False
        self.fail_remove: set[str] = set()
        self.fail_list = False

    def put_bytes(self, key, data, *, content_type=None):
        if self.fail_put:
            raise StorageError(f"put refused for {key}")
        self.blobs[key] = data

    def remove(self, key):
        if key in self.fail_remove:
            raise StorageError(f"remove refused for {key}")
        self.blobs.pop(key, None)
        self.removed.append(key)

    def exists(self, key):
        return key in self.blobs

    def list_entries(self, prefix="", *, limit=DEFAULT_LIST_LIMIT):
        if self.fail_list:
            raise StorageError("listing refused")
        pfx = prefix.strip("/")
        pfx = pfx + "/" if pfx else ""
        files: list[StorageEntry] = []
        folders: set[str] = set()
        for key, data in self.blobs.items():
            if not key.startswith(pfx):
                continue
            rest = key[len(pfx):]
            if "/" in rest:
                folders.add(rest.split("/", 1)[0])
            else:
                files.append(StorageEntry(name=rest, size=len(data)))
        out = [StorageEntry(name=f) for f in sorted(folders)] + sorted(files, key=lambda e: e.name)
        return out[:limit]

    def public_url(self, key):
        return f"https://cdn.test/customer-images/{key}"


class FakeWhatsAppClient:
    def __init__(self):
        self.calls: list[tuple[str, str, str]] = []
        self.fail_text = False
        self.fail_links: set[str] = set()

    def _reply(self):
        return {"messages": [{"id": f"wamid.{len(self.calls)}"}]}

    def send_text(self, to, body):
        self.calls.append(("text", to, body))
        if self.fail_text:
            raise WhatsAppError("HTTP 401 from WhatsApp: invalid token")
        return self._reply()

    def send_image(self, to, link):
        self.calls.append(("image", to, link))
        if link in self.fail_links:
            raise WhatsAppError("HTTP 400 from WhatsApp: media download failed")
        return self._reply()


@pytest.fixture()
def storage():
    return InMemoryStorage()


@pytest.fixture()
def wa_client():
    return FakeWhatsAppClient()


@pytest.fixture()
def app(tmp_path, monkeypatch, storage, wa_client):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_LOCAL_ROOT", str(tmp_path / "blobs"))
    for k in (
        "S3_ENDPOINT",
        "S3_REGION",
        "S3_BUCKET",
        "S3_ACCESS_KEY_ID",
        "S3_SECRET_ACCESS_KEY",
        "WHATSAPP_TOKEN",
        "WHATSAPP_PHONE_NUMBER_ID",
        "STORAGE_LIMIT_MB",
    ):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    app.extensions["storage"] = storage
    app.extensions["whatsapp_client"] = wa_client
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
