"""Reusable test helpers for the ticket lifecycle.

Patterns unified:
 - Auth header creation using a directly minted JWT (bypassing /auth/login) or a real login.
 - Ticket creation through the API with a status assertion.
 - Audit trail and outbox lookups for assertions.
"""
from __future__ import annotations
from typing import Dict, List, Optional
from flask_jwt_extended import create_access_token
from helpdesk import get_db
from helpdesk.models.email_notification import EmailNotification
from helpdesk.models.ticket_update import TicketUpdate
from helpdesk.services.audit import ticket_history

# ---------- Generic Auth Helpers ---------- #

def jwt_headers(user) -> Dict[str, str]:
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role.value})
    return {'Authorization': f'Bearer {token}'}


def login_headers(client, email: str, password: str) -> Dict[str, str]:
    r = client.post('/auth/login', json={'email': email, 'password': password})
    assert r.status_code == 200, r.get_json()
    return {'Authorization': f"Bearer {r.get_json()['access_token']}"}

# ---------- Ticket Helpers ---------- #

VALID_TICKET = {
    'title': 'Printer jam',
    'description': 'The second floor printer jams on every job.',
    'category': 'hardware',
}


def create_ticket_via_api(client, headers: Dict[str, str], **overrides) -> dict:
    resp = client.post('/tickets', json={**VALID_TICKET, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()['ticket']
    assert body['status'] == 'open'
    return body

# ---------- Assertion Helpers ---------- #

def entries(ticket_id: int, update_type: Optional[str] = None) -> List[TicketUpdate]:
    rows = ticket_history(ticket_id)
    if update_type:
        rows = [e for e in rows if e.update_type == update_type]
    return rows


def outbox(ticket_id: Optional[int] = None, recipient: Optional[str] = None) -> List[EmailNotification]:
    q = get_db().query(EmailNotification)
    if ticket_id is not None:
        q = q.filter(EmailNotification.ticket_id == ticket_id)
    if recipient is not None:
        q = q.filter(EmailNotification.recipient_email == recipient)
    return q.order_by(EmailNotification.id.asc()).all()

__all__ = ['jwt_headers', 'login_headers', 'VALID_TICKET', 'create_ticket_via_api', 'entries', 'outbox']
