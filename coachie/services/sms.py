import os
from typing import Optional, Protocol

from twilio.rest import Client

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER", "")


class SmsSendError(RuntimeError):
    pass


class SmsSender(Protocol):
    def send(self, to: str, body: str) -> None:
        ...


class TwilioSmsSender:
    def __init__(
        self,
        account_sid: str = TWILIO_ACCOUNT_SID,
        auth_token: str = TWILIO_AUTH_TOKEN,
        from_number: str = TWILIO_PHONE_NUMBER,
    ) -> None:
        self.from_number = from_number
        self._client: Optional[Client] = None
        if account_sid and auth_token:
            self._client = Client(account_sid, auth_token)

    def send(self, to: str, body: str) -> None:
        if self._client is None or not self.from_number:
            raise SmsSendError("Twilio credentials are not configured")
        try:
            self._client.messages.create(from_=self.from_number, to=to, body=body)
        except Exception as exc:
            raise SmsSendError(f"Twilio send failed for {to}: {str(exc)[:220]}") from exc


def normalize_inbound_phone(raw: Optional[str]) -> str:
    return normalize_phone_number((raw or "").replace("whatsapp:", "")) or ""


def normalize_phone_number(raw: Optional[str]) -> Optional[str]:
    """E.164 clean-up: '+' plus digits only; ten bare digits are treated as a US number."""
    trimmed = (raw or "").strip()
    digits = "".join(ch for ch in trimmed if ch.isdigit())
    if not digits:
        return None
    if not trimmed.startswith("+") and len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def get_sms_sender() -> SmsSender:
    return TwilioSmsSender()
