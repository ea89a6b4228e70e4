"""Tests for the WhatsApp client and the send-to-WhatsApp flow."""
import io
import json
import urllib.error
from datetime import datetime, timedelta

import pytest

from app.tailorbook.db import session_scope
from app.tailorbook.models import ActivityEvent
from app.tailorbook.modules.customer_images.models import CustomerImage
from app.tailorbook.modules.customer_profiles.models import Customer
from app.tailorbook.modules.measurements.models import Measurement
from app.tailorbook.modules.measurements.summary import NO_MEASUREMENTS_PLACEHOLDER
from app.tailorbook.modules.whatsapp_dispatch import whatsapp_client as wa
from app.tailorbook.modules.whatsapp_dispatch.service import compose_message, send_customer_summary


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class TestWhatsAppClient:
    def _client(self):
        return wa.WhatsAppClient(access_token="tok", phone_number_id="12345", base_url="https://graph.test/v18.0")

    def test_send_text_payload(self, monkeypatch):
        seen = {}

        def fake_urlopen(req, **kwargs):
            seen["url"] = req.full_url
            seen["auth"] = req.get_header("Authorization")
            seen["body"] = json.loads(req.data.decode("utf-8"))
            return _FakeResponse(b'{"messages": [{"id": "wamid.1"}]}')

        monkeypatch.setattr(wa.urllib.request, "urlopen", fake_urlopen)
        resp = self._client().send_text("919876543210", "hello")

        assert resp["messages"][0]["id"] == "wamid.1"
        assert seen["url"] == "https://graph.test/v18.0/12345/messages"
        assert seen["auth"] == "Bearer tok"
        assert seen["body"] == {
            "messaging_product": "whatsapp",
            "to": "919876543210",
            "type": "text",
            "text": {"body": "hello"},
        }

    def test_send_image_payload(self, monkeypatch):
        seen = {}

        def fake_urlopen(req, **kwargs):
            seen["body"] = json.loads(req.data.decode("utf-8"))
            return _FakeResponse(b"{}")

        monkeypatch.setattr(wa.urllib.request, "urlopen", fake_urlopen)
        self._client().send_image("919876543210", "https://cdn.test/a.jpg")
        assert seen["body"]["type"] == "image"
        assert seen["body"]["image"] == {"link": "https://cdn.test/a.jpg"}

    def test_http_error_becomes_whatsapp_error(self, monkeypatch):
        def fake_urlopen(req, **kwargs):
            raise urllib.error.HTTPError(req.full_url, 401, "Unauthorized", {}, io.BytesIO(b'{"error":"bad token"}'))

        monkeypatch.setattr(wa.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(wa.WhatsAppError, match="HTTP 401"):
            self._client().send_text("1", "x")

    def test_network_error_becomes_whatsapp_error(self, monkeypatch):
        def fake_urlopen(req, **kwargs):
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(wa.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(wa.WhatsAppError):
            self._client().send_text("1", "x")

    def test_from_config_requires_credentials(self):
        with pytest.raises(wa.WhatsAppNotConfigured):
            wa.whatsapp_client_from_config({"WHATSAPP_TOKEN": "tok"})
        client = wa.whatsapp_client_from_config({"WHATSAPP_TOKEN": "tok", "WHATSAPP_PHONE_NUMBER_ID": "99"})
        assert client.base_url == "https://graph.facebook.com/v18.0"


def _seed(app, *, phone="9876543210", measurements=None, images=0):
    with session_scope(app) as s:
        c = Customer(name="Asha", phone=phone)
        s.add(c)
        s.flush()
        if measurements is not None:
            s.add(Measurement(customer_id=c.id, **measurements))
        for i in range(images):
            s.add(
                CustomerImage(
                    customer_id=c.id,
                    file_path=f"{c.id}/{1000 + i}.jpg",
                    created_at=datetime(2024, 1, 1) + timedelta(minutes=i),
                )
            )
        return c.id


def test_compose_message():
    c = Customer(name="Asha", phone="9876543210")
    assert compose_message(c, "waist: 30") == "Customer: Asha\nPhone: 9876543210\n\nMeasurements:\nwaist: 30"


def test_text_then_images(app, storage, wa_client):
    cid = _seed(app, measurements={"waist": 30.0}, images=2)
    with session_scope(app) as s:
        outcome = send_customer_summary(s, storage, wa_client, cid)

    assert outcome.ok
    kinds = [k for k, _, _ in wa_client.calls]
    assert kinds == ["text", "image", "image"]
    assert {to for _, to, _ in wa_client.calls} == {"919876543210"}
    assert "waist: 30" in wa_client.calls[0][2]
    assert all(link.startswith("https://cdn.test/") for _, _, link in wa_client.calls[1:])


def test_images_are_sent_newest_first(app, storage, wa_client):
    cid = _seed(app, images=3)
    with session_scope(app) as s:
        send_customer_summary(s, storage, wa_client, cid)

    links = [link for kind, _, link in wa_client.calls if kind == "image"]
    assert links == [storage.public_url(f"{cid}/{ms}.jpg") for ms in (1002, 1001, 1000)]


def test_text_failure_sends_no_images(app, storage, wa_client):
    cid = _seed(app, images=2)
    wa_client.fail_text = True
    with session_scope(app) as s:
        outcome = send_customer_summary(s, storage, wa_client, cid)

    assert not outcome.ok
    assert [k for k, _, _ in wa_client.calls] == ["text"]
    assert len(outcome.skipped_images) == 2
    assert outcome.images == []


def test_image_failure_continues_and_is_reported(app, storage, wa_client):
    cid = _seed(app, measurements={"waist": 30.0}, images=3)
    with session_scope(app) as s:
        imgs = s.query(CustomerImage).order_by(CustomerImage.id).all()
        bad_link = storage.public_url(imgs[1].file_path)
    wa_client.fail_links.add(bad_link)

    with session_scope(app) as s:
        outcome = send_customer_summary(s, storage, wa_client, cid)

    assert [k for k, _, _ in wa_client.calls] == ["text", "image", "image", "image"]
    assert not outcome.ok
    assert [r.link for r in outcome.failures] == [bad_link]
    assert sum(1 for r in outcome.images if r.ok) == 2


def test_no_measurement_uses_placeholder(app, storage, wa_client):
    cid = _seed(app)
    with session_scope(app) as s:
        outcome = send_customer_summary(s, storage, wa_client, cid)
    assert outcome.ok
    assert wa_client.calls[0][2].endswith(NO_MEASUREMENTS_PLACEHOLDER)


def test_customer_without_phone_is_rejected_before_sending(app, storage, wa_client):
    cid = _seed(app, phone=None)
    with session_scope(app) as s:
        with pytest.raises(ValueError):
            send_customer_summary(s, storage, wa_client, cid)
    assert wa_client.calls == []


def test_send_api(app, client, wa_client):
    cid = _seed(app, measurements={"waist": 30.0}, images=1)
    r = client.post(f"/api/customers/{cid}/send-whatsapp")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert r.json["to"] == "919876543210"
    assert len(r.json["images"]) == 1

    with session_scope(app) as s:
        ev = s.query(ActivityEvent).filter(ActivityEvent.action == "dispatch.send").one()
        assert json.loads(ev.metadata_json)["images_sent"] == 1


def test_send_api_reports_failure_as_502(app, client, wa_client):
    cid = _seed(app)
    wa_client.fail_text = True
    r = client.post(f"/api/customers/{cid}/send-whatsapp")
    assert r.status_code == 502
    assert r.json["failures"][0]["type"] == "text"


def test_send_api_errors(app, client):
    assert client.post("/api/customers/missing/send-whatsapp").status_code == 404
    cid = _seed(app, phone=None)
    assert client.post(f"/api/customers/{cid}/send-whatsapp").status_code == 400


def test_send_api_without_credentials_is_503(app, client):
    cid = _seed(app)
    del app.extensions["whatsapp_client"]
    r = client.post(f"/api/customers/{cid}/send-whatsapp")
    assert r.status_code == 503
