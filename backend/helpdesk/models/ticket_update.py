from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy import Integer, String, Text, ForeignKey
from helpdesk.models.user import Base
from helpdesk.models.types import UtcDateTime
from helpdesk.utils.clock import utcnow


class TicketUpdate(Base):
    """One immutable audit entry: a single field change or a comment on a ticket."""
    __tablename__ = 'ticket_updates'
    TYPE_STATUS_CHANGE = 'status_change'
    TYPE_ASSIGNMENT = 'assignment'
    TYPE_COMMENT = 'comment'
    TYPE_PRIORITY_CHANGE = 'priority_change'
    ALL_TYPES = (TYPE_STATUS_CHANGE, TYPE_ASSIGNMENT, TYPE_COMMENT, TYPE_PRIORITY_CHANGE)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    updated_by: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    update_type: Mapped[str] = mapped_column(String(32), nullable=False)
    old_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False, index=True)

    ticket = relationship('Ticket', back_populates='updates')
    updater = relationship('User', back_populates='ticket_updates')

    def to_json(self):
        return {
            'id': self.id,
            'ticket_id': self.ticket_id,
            'updated_by': self.updated_by,
            'updater': self.updater.summary_json() if self.updater else None,
            'update_type': self.update_type,
            'old_value': self.old_value,
            'new_value': self.new_value,
            'comment': self.comment,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
