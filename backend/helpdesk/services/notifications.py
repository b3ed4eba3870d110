"""Notification submission: the lifecycle service's only dependency on email.

``submit`` enqueues a pending EmailNotification and returns its id; delivery is
left to the background dispatcher. The ``notify_*`` helpers render the message
templates under templates/email/ and submit one message per recipient. The
admin outbox listing and the manual retry trigger live here too.
"""
from __future__ import annotations
from typing import Any, List, Mapping, Optional
from flask import current_app, render_template
from helpdesk import get_db
from helpdesk.errors import Forbidden
from helpdesk.models.email_notification import EmailNotification
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import User
from helpdesk.services import policy
from helpdesk.services.dispatcher import dispatcher
from helpdesk.utils.filters import apply_filters
from helpdesk.utils.listing import apply_pagination, build_list_payload, parse_pagination
from helpdesk.utils.validation import check_positive_int, raise_if_errors


def submit(recipient: str, subject: str, body: str, ticket_id: int) -> int:
    session = get_db()
    notification = EmailNotification(
        ticket_id=ticket_id,
        recipient_email=recipient,
        subject=subject,
        body=body,
        status=EmailNotification.STATUS_PENDING,
    )
    session.add(notification)
    session.commit()
    return notification.id


def notify_ticket_created(ticket: Ticket) -> int:
    requester = ticket.requester
    body = render_template('email/ticket_created.html', ticket=ticket, requester=requester)
    return submit(requester.email, f"New Support Ticket Created - #{ticket.id}", body, ticket.id)


def notify_status_updated(ticket: Ticket, old_status: str, new_status: str, updater: User) -> int:
    requester = ticket.requester
    body = render_template(
        'email/status_updated.html',
        ticket=ticket,
        requester=requester,
        old_status=old_status,
        new_status=new_status,
        updater=updater,
    )
    return submit(requester.email, f"Support Ticket #{ticket.id} Status Updated - {new_status}", body, ticket.id)


def notify_ticket_assigned(ticket: Ticket, assignee: User) -> List[int]:
    """Two messages: one telling the requester who has the ticket, one briefing the assignee."""
    requester = ticket.requester
    to_requester = render_template('email/assigned_requester.html', ticket=ticket, requester=requester, assignee=assignee)
    to_assignee = render_template('email/assigned_assignee.html', ticket=ticket, requester=requester, assignee=assignee)
    return [
        submit(requester.email, f"Your Support Ticket #{ticket.id} Has Been Assigned", to_requester, ticket.id),
        submit(assignee.email, f"Support Ticket #{ticket.id} Assigned to You", to_assignee, ticket.id),
    ]


def notify_comment_added(ticket: Ticket, commenter: User, comment: str) -> Optional[int]:
    requester = ticket.requester
    if commenter.id == requester.id:
        return None
    body = render_template('email/comment_added.html', ticket=ticket, requester=requester, commenter=commenter, comment=comment)
    return submit(requester.email, f"New Comment on Support Ticket #{ticket.id}", body, ticket.id)


NOTIFICATION_FILTERS = {
    'status': {
        'op': lambda q, v: q.filter(EmailNotification.status == v),
        'validate': lambda v: v in EmailNotification.ALL_STATUSES,
    },
    'ticket_id': {'op': lambda q, v: q.filter(EmailNotification.ticket_id == v), 'coerce': int},
}


def list_notifications(actor: User, args: Mapping[str, Any]):
    """Admin view of the outbox, newest first."""
    if not policy.can_manage_notifications(actor):
        raise Forbidden(description='Insufficient permissions')
    page, page_size = parse_pagination(args)
    q = apply_filters(get_db().query(EmailNotification), NOTIFICATION_FILTERS, dict(args))
    q = q.order_by(EmailNotification.created_at.desc(), EmailNotification.id.desc())
    rows, total = apply_pagination(q, page, page_size)
    return build_list_payload('notifications', [n.to_json() for n in rows], total, page, page_size)


def retry_failed(actor: User, ticket_id: Any = None) -> int:
    """Reset failed notifications (optionally for one ticket) back to pending."""
    if not policy.can_manage_notifications(actor):
        raise Forbidden(description='Insufficient permissions')
    errors: List[str] = []
    ticket_id = check_positive_int(errors, 'ticket_id', ticket_id, nullable=True)
    raise_if_errors(errors)
    count = dispatcher.retry_failed(ticket_id)
    current_app.logger.info('Admin %s reset %d failed notifications for retry', actor.email, count)
    return count

__all__ = [
    'submit', 'notify_ticket_created', 'notify_status_updated', 'notify_ticket_assigned', 'notify_comment_added',
    'list_notifications', 'retry_failed',
]
