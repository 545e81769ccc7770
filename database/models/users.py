from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    DateTime,
    func,
    Enum as SQLEnum,
)
from database.engine import Base
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from database.models.positions import Position


# ==================== User Role ===================== #
class UserRole(str, PyEnum):
    MANAGER = "MANAGER"  # creates positions and evaluates applications
    APPLICANT = "APPLICANT"  # takes interviews


def generate_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Store-side identity of a manager or applicant.

    Sign-in happens at the identity provider; this row only carries what the
    backend needs (ownership of positions, notification address).
    """

    __tablename__: str = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_id
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False, length=20),
        nullable=False,
        default=UserRole.APPLICANT,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    positions: Mapped[list["Position"]] = relationship(
        "Position", back_populates="manager", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
