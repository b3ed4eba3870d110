from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Enum as SAEnum
from helpdesk.constants.roles import Role
from helpdesk.models.types import UtcDateTime
from helpdesk.utils.clock import utcnow

Base = declarative_base()


class User(Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Always stored lowercase; uniqueness is therefore case-insensitive.
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name='user_role', native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.END_USER,
        index=True,
    )
    department: Mapped[Optional[str]] = mapped_column(String(100))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Deleting an actor removes the tickets they requested and the entries they authored;
    # tickets merely assigned to them fall back to unassigned.
    requested_tickets = relationship(
        'Ticket', foreign_keys='Ticket.requester_id', back_populates='requester', cascade='all, delete-orphan'
    )
    assigned_tickets = relationship('Ticket', foreign_keys='Ticket.assigned_to', back_populates='assignee')
    ticket_updates = relationship('TicketUpdate', back_populates='updater', cascade='all, delete-orphan')

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_it_staff(self) -> bool:
        return Role(self.role).is_it_staff

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)

    def summary_json(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
        }

    def to_json(self):
        """Full public representation; the password hash never leaves the model."""
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'role': Role(self.role).value,
            'department': self.department,
            'phone': self.phone,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
