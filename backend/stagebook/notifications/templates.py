"""Message, subject and link templates for each notification kind.

Payload keys used by the workflows:

- ``booking_id`` for every kind
- ``status`` for booking status updates
- ``acknowledgment_id``, ``field_name``, ``outcome`` for rider kinds
- ``contract_id``, ``version``, ``party``, ``reason`` for contract kinds
- ``actor_name`` (optional) for the user who triggered the change
"""

from __future__ import annotations

from typing import Any, Mapping

from ..core.config import settings
from ..models.notification import NotificationType


def _actor(payload: Mapping[str, Any], fallback: str) -> str:
    name = payload.get("actor_name")
    return str(name) if name else fallback


def format_notification_message(
    ntype: NotificationType, payload: Mapping[str, Any]
) -> str:
    """Return a human friendly notification message."""
    booking_id = payload.get("booking_id")
    if ntype == NotificationType.BOOKING_CREATED:
        return f"New booking #{booking_id} from {_actor(payload, 'a venue')}"
    if ntype == NotificationType.BOOKING_STATUS_UPDATED:
        return f"Booking #{booking_id} status updated to {payload.get('status')}"
    if ntype == NotificationType.RIDER_SHARED:
        return (
            f"{_actor(payload, 'The artist')} shared their rider for booking "
            f"#{booking_id}. Please review and acknowledge it."
        )
    if ntype == NotificationType.RIDER_ACKNOWLEDGED:
        return f"The venue acknowledged your rider for booking #{booking_id}"
    if ntype == NotificationType.RIDER_MODIFICATIONS_PROPOSED:
        field = payload.get("field_name")
        return (
            f"{_actor(payload, 'The other party')} proposed a change to "
            f"{field} on the rider for booking #{booking_id}"
        )
    if ntype == NotificationType.RIDER_RESOLVED:
        return f"Rider for booking #{booking_id} was {payload.get('outcome')}"
    if ntype == NotificationType.RIDER_REMINDER:
        days = payload.get("days")
        return (
            f"Reminder: the rider for booking #{booking_id} has been waiting "
            f"for your response for {days} day{'s' if days != 1 else ''}"
        )
    if ntype == NotificationType.CONTRACT_GENERATED:
        return f"Contract v{payload.get('version')} generated for booking #{booking_id}"
    if ntype == NotificationType.CONTRACT_SENT:
        return f"Contract v{payload.get('version')} for booking #{booking_id} is ready to sign"
    if ntype == NotificationType.CONTRACT_SIGNED:
        if payload.get("fully_signed"):
            return f"Contract for booking #{booking_id} is fully signed"
        return f"The {payload.get('signed_by')} signed the contract for booking #{booking_id}"
    if ntype == NotificationType.CONTRACT_REJECTED:
        return (
            f"Contract for booking #{booking_id} was rejected: "
            f"{payload.get('reason')}"
        )
    if ntype == NotificationType.CONTRACT_CANCELLED:
        return f"Contract v{payload.get('version')} for booking #{booking_id} was cancelled"
    return str(payload.get("message", ""))


def notification_path(ntype: NotificationType, payload: Mapping[str, Any]) -> str:
    """Return the frontend path a notification links to."""
    booking_id = payload.get("booking_id")
    if ntype in (
        NotificationType.RIDER_SHARED,
        NotificationType.RIDER_ACKNOWLEDGED,
        NotificationType.RIDER_MODIFICATIONS_PROPOSED,
        NotificationType.RIDER_RESOLVED,
        NotificationType.RIDER_REMINDER,
    ):
        return f"/bookings/{booking_id}/rider-acknowledgment"
    if ntype.value.startswith("contract_") and payload.get("contract_id"):
        return f"/bookings/{booking_id}/contracts/{payload.get('contract_id')}"
    return f"/bookings/{booking_id}"


def notification_url(ntype: NotificationType, payload: Mapping[str, Any]) -> str:
    return f"{settings.FRONTEND_URL}{notification_path(ntype, payload)}"


def email_subject(ntype: NotificationType, payload: Mapping[str, Any]) -> str:
    booking_id = payload.get("booking_id")
    subjects = {
        NotificationType.BOOKING_CREATED: f"New booking #{booking_id}",
        NotificationType.BOOKING_STATUS_UPDATED: f"Booking #{booking_id} updated",
        NotificationType.RIDER_SHARED: f"Rider shared for booking #{booking_id}",
        NotificationType.RIDER_ACKNOWLEDGED: f"Rider acknowledged for booking #{booking_id}",
        NotificationType.RIDER_MODIFICATIONS_PROPOSED: f"Rider changes proposed for booking #{booking_id}",
        NotificationType.RIDER_RESOLVED: f"Rider {payload.get('outcome')} for booking #{booking_id}",
        NotificationType.RIDER_REMINDER: f"Rider awaiting your response (booking #{booking_id})",
        NotificationType.CONTRACT_GENERATED: f"Contract generated for booking #{booking_id}",
        NotificationType.CONTRACT_SENT: f"Contract ready to sign for booking #{booking_id}",
        NotificationType.CONTRACT_SIGNED: f"Contract signed for booking #{booking_id}",
        NotificationType.CONTRACT_REJECTED: f"Contract rejected for booking #{booking_id}",
        NotificationType.CONTRACT_CANCELLED: f"Contract cancelled for booking #{booking_id}",
    }
    return subjects.get(ntype, settings.PROJECT_NAME)


def email_body(ntype: NotificationType, payload: Mapping[str, Any], recipient_name: str) -> str:
    message = format_notification_message(ntype, payload)
    url = notification_url(ntype, payload)
    return f"Hi {recipient_name},\n\n{message}\n\nView it here: {url}\n"
