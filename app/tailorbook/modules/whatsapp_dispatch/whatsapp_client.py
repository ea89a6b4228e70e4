from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any


class WhatsAppError(RuntimeError):
    pass


class WhatsAppNotConfigured(WhatsAppError):
    pass


@dataclass(frozen=True)
class WhatsAppClient:
    """
    Minimal WhatsApp Cloud API sender: one POST per message, no retries.
    Callers decide what to do with a failure.
    """

    access_token: str
    phone_number_id: str
    base_url: str = "https://graph.facebook.com/v18.0"
    timeout_seconds: int | None = None

    def _messages_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{urllib.parse.quote(self.phone_number_id)}/messages"

    def post_message(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = json.dumps({"messaging_product": "whatsapp", **payload}).encode("utf-8")
        req = urllib.request.Request(self._messages_url(), data=body, method="POST")
        req.add_header("Authorization", f"Bearer {self.access_token}")
        req.add_header("Content-Type", "application/json")
        req.add_header("Accept", "application/json")
        kwargs: dict[str, Any] = {}
        if self.timeout_seconds:
            kwargs["timeout"] = self.timeout_seconds
        try:
            with urllib.request.urlopen(req, **kwargs) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            try:
                detail = e.read().decode("utf-8", errors="ignore")
            except Exception:
                detail = ""
            raise WhatsAppError(f"HTTP {e.code} from WhatsApp: {detail[:300]}") from e
        except (urllib.error.URLError, OSError) as e:
            raise WhatsAppError(f"WhatsApp request failed: {e}") from e
        if not raw:
            return {}
        try:
            j = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise WhatsAppError("Invalid JSON from WhatsApp") from e
        return j if isinstance(j, dict) else {}

    def send_text(self, to: str, body: str) -> dict[str, Any]:
        return self.post_message({"to": to, "type": "text", "text": {"body": body}})

    def send_image(self, to: str, link: str) -> dict[str, Any]:
        return self.post_message({"to": to, "type": "image", "image": {"link": link}})


def whatsapp_client_from_config(config) -> WhatsAppClient:
    token = (config.get("WHATSAPP_TOKEN") or "").strip()
    phone_number_id = (config.get("WHATSAPP_PHONE_NUMBER_ID") or "").strip()
    if not token or not phone_number_id:
        raise WhatsAppNotConfigured("Missing WhatsApp credentials (WHATSAPP_TOKEN, WHATSAPP_PHONE_NUMBER_ID).")
    return WhatsAppClient(
        access_token=token,
        phone_number_id=phone_number_id,
        base_url=(config.get("WHATSAPP_API_BASE") or "https://graph.facebook.com/v18.0").strip(),
        timeout_seconds=config.get("WHATSAPP_TIMEOUT_SECONDS") or None,
    )
