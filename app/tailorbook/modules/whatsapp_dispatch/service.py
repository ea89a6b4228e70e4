"""
Send a customer's profile to WhatsApp.

Protocol (strictly sequential, no retries):
1. one text message with name, phone and the measurement summary
2. if and only if the text went through, one image message per photo,
   newest photo first

A failed image does not stop the remaining images; every failure is
reported on the outcome. The outcome is ok only when every call succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from app.tailorbook.audit import record_event
from app.tailorbook.modules.customer_images.service import list_customer_images, resolve_image_url
from app.tailorbook.modules.customer_profiles.models import Customer
from app.tailorbook.modules.customer_profiles.service import get_customer_by_id
from app.tailorbook.modules.customer_profiles.utils import normalize_whatsapp_phone
from app.tailorbook.modules.measurements.service import get_measurement
from app.tailorbook.modules.measurements.summary import build_measurement_block
from app.tailorbook.modules.whatsapp_dispatch.whatsapp_client import WhatsAppClient, WhatsAppError
from app.tailorbook.storage import Storage

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    kind: str  # "text" | "image"
    ok: bool
    link: str | None = None
    message_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "ok": self.ok,
            "link": self.link,
            "message_id": self.message_id,
            "error": self.error,
        }


@dataclass
class DispatchOutcome:
    customer_id: str
    to: str
    message: str
    text: SendResult | None = None
    images: list[SendResult] = field(default_factory=list)
    skipped_images: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.text and self.text.ok) and all(r.ok for r in self.images)

    @property
    def failures(self) -> list[SendResult]:
        out = [self.text] if self.text and not self.text.ok else []
        return out + [r for r in self.images if not r.ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "customer_id": self.customer_id,
            "to": self.to,
            "message": self.message,
            "text": self.text.to_dict() if self.text else None,
            "images": [r.to_dict() for r in self.images],
            "skipped_images": list(self.skipped_images),
            "failures": [r.to_dict() for r in self.failures],
        }


def compose_message(customer: Customer, measurement_block: str) -> str:
    phone_line = f"Phone: {customer.phone}\n" if customer.phone else ""
    return f"Customer: {customer.name}\n{phone_line}\nMeasurements:\n{measurement_block}"


def _message_id(resp: dict[str, Any]) -> str | None:
    messages = resp.get("messages") or []
    if messages and isinstance(messages[0], dict):
        return messages[0].get("id")
    return None


def _send(kind: str, fn, to: str, arg: str, *, link: str | None = None) -> SendResult:
    try:
        resp = fn(to, arg)
    except WhatsAppError as e:
        return SendResult(kind=kind, ok=False, link=link, error=str(e))
    return SendResult(kind=kind, ok=True, link=link, message_id=_message_id(resp or {}))


def send_customer_summary(s: Session, storage: Storage, client: WhatsAppClient, customer_id: str) -> DispatchOutcome:
    """
    Raises LookupError for an unknown customer and ValueError for a customer
    without a phone (both before any external call). Messaging failures are
    returned on the outcome, not raised. Records a dispatch.send event; the
    caller commits.
    """
    customer = get_customer_by_id(s, customer_id)
    if customer is None:
        raise LookupError(f"Customer {customer_id} not found")
    if not customer.phone:
        raise ValueError("Customer has no phone number to send to.")

    block = build_measurement_block(get_measurement(s, customer_id))
    urls = [resolve_image_url(storage, img.file_path) for img in list_customer_images(s, customer_id)]
    to = normalize_whatsapp_phone(customer.phone)
    outcome = DispatchOutcome(customer_id=customer_id, to=to, message=compose_message(customer, block))

    logger.info("Dispatch start customer=%s to=%s images=%d", customer_id, to, len(urls))
    outcome.text = _send("text", client.send_text, to, outcome.message)
    if not outcome.text.ok:
        outcome.skipped_images = urls
        logger.error("Dispatch text failed customer=%s: %s", customer_id, outcome.text.error)
    else:
        for url in urls:
            result = _send("image", client.send_image, to, url, link=url)
            if not result.ok:
                logger.warning("Dispatch image failed customer=%s link=%s: %s", customer_id, url, result.error)
            outcome.images.append(result)

    record_event(
        s,
        action="dispatch.send",
        entity_type="Customer",
        entity_id=customer_id,
        metadata={
            "to": to,
            "ok": outcome.ok,
            "images_sent": sum(1 for r in outcome.images if r.ok),
            "images_failed": sum(1 for r in outcome.images if not r.ok),
            "images_skipped": len(outcome.skipped_images),
            "errors": [r.error for r in outcome.failures],
        },
    )
    logger.info("Dispatch done customer=%s ok=%s failures=%d", customer_id, outcome.ok, len(outcome.failures))
    return outcome
