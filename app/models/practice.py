"""Practice directory models: practices, dentists and treatments."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, CreatedAtMixin


class TreatmentCategory(str, Enum):
    """Treatment urgency category."""

    EMERGENCY = "emergency"
    URGENT = "urgent"
    ROUTINE = "routine"
    COSMETIC = "cosmetic"


class Practice(Base, CreatedAtMixin):
    """Dental practice listed in the marketplace."""

    __tablename__ = "practices"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 8), nullable=True)
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(11, 8), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rating: Mapped[Decimal | None] = mapped_column(Numeric(2, 1), nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Accessibility
    wheelchair_access: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sign_language: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    visual_support: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cognitive_support: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    disabled_parking: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    opening_hours: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Short code dentists present to join the practice
    connection_tag: Mapped[str | None] = mapped_column(
        String(50),
        unique=True,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Practice {self.name}>"


class Dentist(Base, CreatedAtMixin):
    """Dentist working at exactly one practice."""

    __tablename__ = "dentists"

    practice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("practices.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    specialization: Mapped[str | None] = mapped_column(String(255), nullable=True)
    experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    qualifications: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Dentist {self.name} practice={self.practice_id}>"


class Treatment(Base):
    """Bookable treatment type."""

    __tablename__ = "treatments"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[TreatmentCategory] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    def __repr__(self) -> str:
        return f"<Treatment {self.name} ({self.category})>"
