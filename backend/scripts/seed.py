#!/usr/bin/env python
"""Idempotent seed script for demo actors and sample tickets.

Usage:
    python backend/scripts/seed.py                  # seed users (one per role plus end users)
    python backend/scripts/seed.py --with-tickets   # also create sample tickets when none exist
    python backend/scripts/seed.py --reset          # drop and recreate all tables first
    python backend/scripts/seed.py --dry-run        # run logic then rollback (no DB changes)
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import func, select

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from helpdesk import create_app, get_db  # type: ignore
from helpdesk.constants.roles import Role
from helpdesk.models.user import Base, User
from helpdesk.models.ticket import Ticket

DEFAULT_PASSWORD = os.getenv('SEED_PASSWORD', 'Password123')

SEED_USERS = [
    ('admin@company.com', 'Admin', 'User', Role.IT_ADMIN, 'IT', '+1234567890'),
    ('ituser@company.com', 'John', 'ITSupport', Role.IT_USER, 'IT', '+1234567891'),
    ('user1@company.com', 'Jane', 'Doe', Role.END_USER, 'Sales', '+1234567892'),
    ('user2@company.com', 'Bob', 'Smith', Role.END_USER, 'Marketing', '+1234567893'),
    ('user3@company.com', 'Alice', 'Johnson', Role.END_USER, 'HR', '+1234567894'),
]

# (title, description, category, priority, status, requester email, assignee email)
SAMPLE_TICKETS = [
    ("Computer won't start",
     "My computer doesn't turn on when I press the power button. The power light doesn't come on at all.",
     'hardware', Ticket.PRIORITY_HIGH, Ticket.STATUS_OPEN, 'user1@company.com', None),
    ('Cannot access email',
     "I can't log into my email account. It keeps saying my password is incorrect.",
     'software', Ticket.PRIORITY_MEDIUM, Ticket.STATUS_IN_PROGRESS, 'user2@company.com', 'ituser@company.com'),
    ('Need access to shared drive',
     'I need access to the Marketing shared drive for the new campaign materials.',
     'access', Ticket.PRIORITY_LOW, Ticket.STATUS_OPEN, 'user3@company.com', None),
    ('WiFi keeps disconnecting',
     'The office WiFi drops every few minutes on my laptop since this morning.',
     'network', Ticket.PRIORITY_CRITICAL, Ticket.STATUS_OPEN, 'user1@company.com', 'admin@company.com'),
]


def ensure_users(session):
    created = 0
    for email, first, last, role, department, phone in SEED_USERS:
        existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing:
            continue
        user = User(email=email, first_name=first, last_name=last, role=role, department=department, phone=phone, is_active=True)
        user.set_password(DEFAULT_PASSWORD)
        session.add(user)
        created += 1
    session.flush()
    return created


def ensure_tickets(session):
    if session.execute(select(func.count(Ticket.id))).scalar_one():
        return 0
    by_email = {u.email: u for u in session.execute(select(User)).scalars()}
    for title, description, category, priority, status, requester, assignee in SAMPLE_TICKETS:
        session.add(Ticket(
            title=title,
            description=description,
            category=category,
            priority=priority,
            status=status,
            requester=by_email[requester],
            assignee=by_email.get(assignee) if assignee else None,
        ))
    session.flush()
    return len(SAMPLE_TICKETS)


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed helpdesk demo data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed users: seed.py\n  with tickets: seed.py --with-tickets\n  dry run: seed.py --dry-run\n""")
    )
    p.add_argument('--with-tickets', action='store_true', help='Create sample tickets when the table is empty')
    p.add_argument('--reset', action='store_true', help='Drop and recreate all tables before seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app({'NOTIFY_SWEEP_ENABLED': False})
    with app.app_context():
        engine = get_db().get_bind()
        if args.reset:
            if args.dry_run:
                print('[DRY-RUN] --reset ignored')
            else:
                Base.metadata.drop_all(engine)
                print('[INFO] All tables dropped')
        # Lightweight fallback if migrations not run yet; prefer alembic upgrade
        Base.metadata.create_all(engine)

        session = get_db()
        created_u = ensure_users(session)
        created_t = ensure_tickets(session) if args.with_tickets else 0
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Users would create: {created_u}, Tickets would create: {created_t}")
        else:
            session.commit()
            print(f"[DONE] Users created: {created_u}, Tickets created: {created_t}")
            if created_u:
                print(f"[INFO] Seeded accounts use the password from SEED_PASSWORD (default {DEFAULT_PASSWORD!r}).")


if __name__ == '__main__':
    main()
