import requests
from magaza.config import settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
TWILIO_TIMEOUT_SEC = 15


class SmsNotConfigured(RuntimeError):
    pass


class SmsSendError(RuntimeError):
    pass


def send_sms(to: str, message: str) -> Optional[str]:
    """Send a text message through the Twilio REST API and return the message SID"""
    if not (settings.twilio_sid and settings.twilio_auth_token and settings.twilio_phone):
        raise SmsNotConfigured("Twilio credentials missing")

    try:
        response = requests.post(
            TWILIO_MESSAGES_URL.format(sid=settings.twilio_sid),
            data={"To": to, "From": settings.twilio_phone, "Body": message},
            auth=(settings.twilio_sid, settings.twilio_auth_token),
            timeout=TWILIO_TIMEOUT_SEC,
        )
    except requests.RequestException as e:
        logger.error(f"Twilio request failed: {e}")
        raise SmsSendError("Twilio API call failed") from e

    if not response.ok:
        logger.error(f"Twilio API error {response.status_code}: {response.text[:500]}")
        raise SmsSendError("Twilio API call failed")
    return response.json().get("sid")
