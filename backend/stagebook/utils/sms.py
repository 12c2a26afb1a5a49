import logging

from twilio.rest import Client

from ..core.config import settings

logger = logging.getLogger(__name__)


def sms_enabled() -> bool:
    return bool(
        settings.TWILIO_ACCOUNT_SID
        and settings.TWILIO_AUTH_TOKEN
        and settings.TWILIO_FROM_NUMBER
    )


def send_sms(to_number: str, body: str) -> None:
    """Send a text message through Twilio. Raises on delivery errors."""
    client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
    message = client.messages.create(
        body=body,
        from_=settings.TWILIO_FROM_NUMBER,
        to=to_number,
    )
    logger.info("Sent SMS to %s sid=%s", to_number, getattr(message, "sid", None))
