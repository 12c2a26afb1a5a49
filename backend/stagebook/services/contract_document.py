"""Render a booking contract to a text snapshot and a PDF."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import Any, Optional, Protocol

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from ..models import RIDER_SECTIONS

_LABELS = {
    "pa_system_required": "PA system required",
    "di_boxes_needed": "DI boxes needed",
    "performance_duration": "Performance duration",
    "setup_time_required": "Setup time",
    "soundcheck_time_required": "Soundcheck time",
    "teardown_time_required": "Teardown time",
}
_MINUTE_FIELDS = {
    "performance_duration",
    "setup_time_required",
    "soundcheck_time_required",
    "teardown_time_required",
}

DEFAULT_CANCELLATION = (
    "If cancelled by the Venue more than 30 days before the event: full refund.\n"
    "If cancelled 15-30 days before the event: 50% refund.\n"
    "If cancelled less than 15 days before the event: no refund."
)
LIABILITY = (
    "The Venue is responsible for liability insurance. "
    "The Artist is responsible for personal equipment insurance."
)


@dataclass
class ContractData:
    booking_id: int
    version: int
    title: str
    contract_type: str
    artist_name: str
    venue_name: str
    event_date: date
    event_time: Optional[str] = None
    venue_address: Optional[str] = None
    total_fee: Optional[Decimal] = None
    deposit_amount: Optional[Decimal] = None
    event_details: Optional[str] = None
    rider: dict[str, Any] = field(default_factory=dict)
    rider_extras: Optional[dict[str, Any]] = None
    terms: Optional[str] = None


@dataclass(frozen=True)
class RenderedContract:
    text_snapshot: str
    pdf_bytes: bytes


class Renderer(Protocol):
    def __call__(self, data: ContractData) -> RenderedContract:
        ...


def _label(name: str) -> str:
    return _LABELS.get(name) or name.replace("_", " ").capitalize()


def _format_value(name: str, value: Any) -> Optional[str]:
    if value is None or value == "" or value == []:
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if name in _MINUTE_FIELDS:
        return f"{value} minutes"
    if name == "deposit_percentage":
        return f"{value}%"
    return str(value)


def _money(value: Optional[Decimal]) -> str:
    if value is None:
        return "to be agreed"
    return f"R{Decimal(value):.2f}"


def build_sections(data: ContractData) -> list[tuple[str, str]]:
    """Return ``(title, body)`` pairs in document order."""
    sections: list[tuple[str, str]] = [
        (
            "Parties",
            f"This agreement is entered into between {data.artist_name} (the Artist) "
            f"and {data.venue_name} (the Venue) for performance services.",
        )
    ]

    details = [f"Performance date: {data.event_date.isoformat()}", f"Venue: {data.venue_name}"]
    if data.venue_address:
        details.append(f"Location: {data.venue_address}")
    if data.event_time:
        details.append(f"Start time: {data.event_time}")
    if data.event_details:
        details.append(f"Details: {data.event_details}")
    sections.append(("Performance Details", "\n".join(details)))

    compensation = [f"Total fee: {_money(data.total_fee)}"]
    if data.deposit_amount is not None:
        compensation.append(f"Deposit (due upon signing): {_money(data.deposit_amount)}")
        if data.total_fee is not None:
            balance = Decimal(data.total_fee) - Decimal(data.deposit_amount)
            compensation.append(f"Balance (due on the event date): {_money(balance)}")
    sections.append(("Compensation", "\n".join(compensation)))

    for title, names in RIDER_SECTIONS.items():
        lines = []
        for name in names:
            if name == "cancellation_policy":
                continue
            formatted = _format_value(name, data.rider.get(name))
            if formatted is not None:
                lines.append(f"{_label(name)}: {formatted}")
        if lines:
            sections.append((f"Technical Rider: {title}", "\n".join(lines)))
    if data.rider_extras:
        extras = [f"{key}: {value}" for key, value in sorted(data.rider_extras.items())]
        sections.append(("Technical Rider: Other", "\n".join(extras)))

    sections.append(
        ("Cancellation Policy", data.rider.get("cancellation_policy") or DEFAULT_CANCELLATION)
    )
    sections.append(("Liability & Insurance", LIABILITY))
    if data.terms:
        sections.append(("Additional Terms", data.terms))
    sections.append(
        (
            "Signatures",
            "By signing below, both parties agree to the terms of this contract.\n"
            "Artist: ______________________    Venue: ______________________",
        )
    )
    return sections


def render_text(data: ContractData) -> str:
    lines = [data.title, f"Booking #{data.booking_id} / version {data.version}", ""]
    for title, body in build_sections(data):
        lines.append(title)
        lines.append("=" * len(title))
        lines.append(body)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def render_pdf(data: ContractData) -> bytes:
    """Return PDF bytes for the contract."""
    buffer = BytesIO()
    width, height = A4
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(data.title)
    margin = 50
    y = height - margin

    def ensure_room(needed: float) -> None:
        nonlocal y
        if y - needed < margin:
            c.showPage()
            c.setFont("Helvetica", 10)
            y = height - margin

    c.setFont("Helvetica-Bold", 16)
    c.drawString(margin, y, data.title)
    y -= 20
    c.setFont("Helvetica", 10)
    c.drawString(margin, y, f"Booking #{data.booking_id}  |  Version {data.version}")
    y -= 30

    for title, body in build_sections(data):
        ensure_room(40)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(margin, y, title)
        y -= 16
        c.setFont("Helvetica", 10)
        for paragraph in body.split("\n"):
            for line in simpleSplit(paragraph, "Helvetica", 10, width - 2 * margin) or [""]:
                ensure_room(14)
                c.drawString(margin, y, line)
                y -= 14
        y -= 10

    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.read()


def render(data: ContractData) -> RenderedContract:
    return RenderedContract(text_snapshot=render_text(data), pdf_bytes=render_pdf(data))
