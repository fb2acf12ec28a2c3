import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from frontdesk.db.base import Base


class EmergencyType(str, Enum):
    fire = "fire"
    medical = "medical"
    security = "security"
    weather = "weather"
    other = "other"


class EmergencySession(Base):
    __tablename__ = "emergency_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type: Mapped[str] = mapped_column(String(20), default=EmergencyType.other.value)
    description: Mapped[str] = mapped_column(Text, default="")
    evacuated_visitors_csv: Mapped[str] = mapped_column(Text, default="")
    started_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def evacuated_visitors(self) -> list[str]:
        return [v for v in (self.evacuated_visitors_csv or "").split(",") if v]
