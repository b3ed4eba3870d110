from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy import Integer, String, Text, ForeignKey
from helpdesk.models.user import Base
from helpdesk.models.types import UtcDateTime
from helpdesk.utils.clock import utcnow


class Ticket(Base):
    __tablename__ = 'tickets'
    # Status constants
    STATUS_OPEN = 'open'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_RESOLVED = 'resolved'
    STATUS_CLOSED = 'closed'
    ALL_STATUSES = (STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_CLOSED)
    ACTIVE_STATUSES = (STATUS_OPEN, STATUS_IN_PROGRESS)
    # Priority constants
    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'
    PRIORITY_CRITICAL = 'critical'
    ALL_PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH, PRIORITY_CRITICAL)
    ALL_CATEGORIES = ('hardware', 'software', 'network', 'access', 'other')

    TITLE_LENGTH = (3, 255)
    DESCRIPTION_LENGTH = (10, 5000)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default=PRIORITY_MEDIUM, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_OPEN, index=True)
    requester_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    assigned_to: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    requester = relationship('User', foreign_keys=[requester_id], back_populates='requested_tickets')
    assignee = relationship('User', foreign_keys=[assigned_to], back_populates='assigned_tickets')
    updates = relationship(
        'TicketUpdate',
        back_populates='ticket',
        cascade='all, delete-orphan',
        order_by='[TicketUpdate.created_at, TicketUpdate.id]',
    )
    notifications = relationship('EmailNotification', back_populates='ticket', cascade='all, delete-orphan')

    def to_json(self, updates=None):
        """``updates``, when given, is embedded as the ticket's history (see services.audit.ticket_history)."""
        body = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'priority': self.priority,
            'status': self.status,
            'requester_id': self.requester_id,
            'assigned_to': self.assigned_to,
            'requester': self.requester.summary_json() if self.requester else None,
            'assignee': self.assignee.summary_json() if self.assignee else None,
            'resolved_at': self.resolved_at.isoformat() if self.resolved_at else None,
            'closed_at': self.closed_at.isoformat() if self.closed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if updates is not None:
            body['updates'] = [u.to_json() for u in updates]
        return body

# Status flow: any status may follow any other for IT staff; resolved_at/closed_at are stamped
# once on first entry (see utils/lifecycle.py). TICKETS_LOCK_CLOSED makes 'closed' terminal.
