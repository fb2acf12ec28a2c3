import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from frontdesk.db.base import Base


class VisitorStatus(str, Enum):
    checked_in = "checked-in"
    checked_out = "checked-out"
    emergency_evacuated = "emergency-evacuated"


class AccessLevel(str, Enum):
    family = "family"
    friend = "friend"
    professional = "professional"
    volunteer = "volunteer"
    contractor = "contractor"


class Visitor(Base):
    __tablename__ = "visitors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    visitor_id_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    full_name: Mapped[str] = mapped_column(String(160), default="")
    first_name: Mapped[str] = mapped_column(String(80), default="")
    last_name: Mapped[str] = mapped_column(String(80), default="")
    email: Mapped[str] = mapped_column(String(255), default="")
    phone_number: Mapped[str] = mapped_column(String(40), default="")
    relationship: Mapped[str] = mapped_column(String(80), default="")

    resident_name: Mapped[str] = mapped_column(String(160), default="")
    room_number: Mapped[str] = mapped_column(String(40), default="")
    visitor_meeting_selection: Mapped[str] = mapped_column(String(20), default="resident")
    visitor_category: Mapped[str | None] = mapped_column(String(80), nullable=True)
    visitor_category_other: Mapped[str | None] = mapped_column(String(160), nullable=True)
    staff_department: Mapped[str | None] = mapped_column(String(120), nullable=True)
    visit_purpose: Mapped[str] = mapped_column(String(160), default="")
    visit_purpose_other: Mapped[str | None] = mapped_column(String(255), nullable=True)
    appointment_type: Mapped[str] = mapped_column(String(20), default="walk-in")
    appointment_time: Mapped[str | None] = mapped_column(String(40), nullable=True)
    access_level: Mapped[str] = mapped_column(String(20), default=AccessLevel.family.value)

    emergency_contact: Mapped[str] = mapped_column(String(160), default="")
    emergency_phone: Mapped[str] = mapped_column(String(40), default="")
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=True)
    is_family_group: Mapped[bool] = mapped_column(Boolean, default=False)
    family_members_json: Mapped[str] = mapped_column(Text, default="[]")
    health_screening_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(40), default=VisitorStatus.checked_in.value, index=True)
    check_in_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    check_out_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    qr_code: Mapped[str] = mapped_column(Text, default="")
    badge_number: Mapped[str] = mapped_column(String(20), default="")
