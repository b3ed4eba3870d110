from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy import Integer, String, Text, ForeignKey
from helpdesk.models.user import Base
from helpdesk.models.types import UtcDateTime
from helpdesk.utils.clock import utcnow


class EmailNotification(Base):
    __tablename__ = 'email_notifications'
    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_FAILED = 'failed'
    ALL_STATUSES = (STATUS_PENDING, STATUS_SENT, STATUS_FAILED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sent_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False, index=True)

    ticket = relationship('Ticket', back_populates='notifications')

    def mark_sent(self):
        self.status = self.STATUS_SENT
        self.sent_at = utcnow()
        self.error_message = None
        self.attempts = (self.attempts or 0) + 1

    def mark_failed(self, error_message: str):
        self.status = self.STATUS_FAILED
        self.error_message = error_message
        self.attempts = (self.attempts or 0) + 1

    def reset_for_retry(self):
        self.status = self.STATUS_PENDING
        self.error_message = None

    def to_json(self):
        return {
            'id': self.id,
            'ticket_id': self.ticket_id,
            'recipient_email': self.recipient_email,
            'subject': self.subject,
            'status': self.status,
            'error_message': self.error_message,
            'attempts': self.attempts,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
