from datetime import datetime, date as dt_date
from enum import Enum as PyEnum

from sqlalchemy import ForeignKey, UniqueConstraint, Index, Date, DateTime, Integer, String
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db

# ---------- Enums ----------
class Priority(str, PyEnum):
    MAX = "max"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"
    ZERO = "zero"       # default / unset visual state
    ABSENCE = "absence"

    @classmethod
    def parse(cls, value) -> "Priority":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.ZERO


# ---------- Core Entities ----------
class Mechanic(db.Model):
    __tablename__ = "mechanics"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # "order" is a reserved word; SQLAlchemy quotes it
    order: Mapped[int] = mapped_column("order", Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    appointments = relationship("Appointment", back_populates="mechanic",
                                cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("ix_mechanics_order", "order"),
    )

    def __repr__(self):
        return f"<Mechanic {self.name}>"


class Appointment(db.Model):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True)
    mechanic_id: Mapped[int] = mapped_column(ForeignKey("mechanics.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[dt_date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(5), nullable=False)  # "HH:MM", one grid label
    client_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    service_description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default=Priority.ZERO.value)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    mechanic = relationship("Mechanic", back_populates="appointments")

    __table_args__ = (
        UniqueConstraint("mechanic_id", "date", "time", name="uq_appointment_slot"),
        Index("ix_appointments_mechanic_date", "mechanic_id", "date"),
    )

    def __repr__(self):
        return f"<Appointment {self.date} {self.time} m={self.mechanic_id}>"
