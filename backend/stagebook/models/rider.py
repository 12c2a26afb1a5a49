from sqlalchemy import Column, Integer, ForeignKey, String, Text, Boolean, Numeric, JSON
from sqlalchemy.orm import relationship

from .base import BaseModel


# Structured requirement columns grouped the way riders are rendered.
RIDER_SECTIONS: dict[str, tuple[str, ...]] = {
    "Performance": (
        "performance_type",
        "performance_duration",
        "setup_time_required",
        "soundcheck_time_required",
        "teardown_time_required",
        "number_of_performers",
    ),
    "Sound": (
        "pa_system_required",
        "microphone_type",
        "monitor_mix_required",
        "di_boxes_needed",
    ),
    "Lighting": (
        "lighting_required",
        "lighting_type",
    ),
    "Stage": (
        "stage_dimensions",
        "backdrop_required",
        "power_requirements",
    ),
    "Hospitality": (
        "dressing_room_required",
        "catering_provided",
        "dietary_restrictions",
        "beverages",
        "accommodation_provided",
        "number_of_rooms",
        "parking_required",
        "travel_provided",
    ),
    "Payment terms": (
        "deposit_percentage",
        "payment_method",
        "cancellation_policy",
    ),
    "Additional": (
        "special_requests",
        "additional_notes",
    ),
}

RIDER_FIELDS: tuple[str, ...] = tuple(
    name for fields in RIDER_SECTIONS.values() for name in fields
)


class RiderTemplate(BaseModel):
    __tablename__ = "rider_templates"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    template_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    genre = Column(String(100), nullable=True)

    # Performance
    performance_type = Column(String(100), nullable=True)
    performance_duration = Column(Integer, nullable=True)  # minutes
    setup_time_required = Column(Integer, nullable=True)
    soundcheck_time_required = Column(Integer, nullable=True)
    teardown_time_required = Column(Integer, nullable=True)
    number_of_performers = Column(Integer, nullable=True)

    # Sound
    pa_system_required = Column(Boolean, default=False)
    microphone_type = Column(String(100), nullable=True)
    monitor_mix_required = Column(Boolean, default=False)
    di_boxes_needed = Column(Integer, nullable=True)

    # Lighting
    lighting_required = Column(Boolean, default=False)
    lighting_type = Column(String(100), nullable=True)

    # Stage
    stage_dimensions = Column(String(100), nullable=True)
    backdrop_required = Column(Boolean, default=False)
    power_requirements = Column(Text, nullable=True)

    # Hospitality
    dressing_room_required = Column(Boolean, default=False)
    catering_provided = Column(Boolean, default=False)
    dietary_restrictions = Column(JSON, nullable=True)  # list[str]
    beverages = Column(JSON, nullable=True)  # list[str]
    accommodation_provided = Column(Boolean, default=False)
    number_of_rooms = Column(Integer, nullable=True)
    parking_required = Column(Boolean, default=False)
    travel_provided = Column(Boolean, default=False)

    # Payment terms
    deposit_percentage = Column(Numeric(5, 2), nullable=True)
    payment_method = Column(String(100), nullable=True)
    cancellation_policy = Column(Text, nullable=True)

    # Free text
    special_requests = Column(Text, nullable=True)
    additional_notes = Column(Text, nullable=True)
    # Free-form extensions keyed by label
    extras = Column(JSON, nullable=True)

    artist = relationship("User")

    def requirements(self) -> dict:
        """Return the structured requirement fields as a plain dict."""
        return {name: getattr(self, name) for name in RIDER_FIELDS}
