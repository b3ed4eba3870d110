"""Background delivery of queued email notifications.

The dispatcher owns a BackgroundScheduler that is started by the app factory and
shut down at interpreter exit. Two interval jobs run on it:

  process_pending  every NOTIFY_SWEEP_INTERVAL_SECONDS, oldest pending first,
                   at most NOTIFY_SWEEP_BATCH messages per run
  retry_failed     every NOTIFY_RETRY_INTERVAL_SECONDS (0 disables), resetting
                   failed messages to pending while attempts < NOTIFY_MAX_ATTEMPTS

The sweep reads whatever is pending when it runs; it is not coordinated with
request handling. Delivery outcomes are recorded on the notification row and
never propagate to whoever submitted it.
"""
from __future__ import annotations

import atexit
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import select

from helpdesk import close_db, get_db
from helpdesk.models.email_notification import EmailNotification
from helpdesk.services.mailer import build_mailer

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = 'notifications.process_pending'
RETRY_JOB_ID = 'notifications.retry_failed'


class NotificationDispatcher:
    def __init__(self, mailer=None, batch_size: int = 10, max_attempts: int = 5):
        self.mailer = mailer
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.sweep_interval = 30
        self.retry_interval = 300
        self.scheduler: Optional[BackgroundScheduler] = None

    def init_app(self, app):
        cfg = app.config
        if self.mailer is None:
            self.mailer = build_mailer(cfg)
        self.batch_size = int(cfg.get('NOTIFY_SWEEP_BATCH', self.batch_size))
        self.max_attempts = int(cfg.get('NOTIFY_MAX_ATTEMPTS', self.max_attempts))
        self.sweep_interval = int(cfg.get('NOTIFY_SWEEP_INTERVAL_SECONDS', self.sweep_interval))
        self.retry_interval = int(cfg.get('NOTIFY_RETRY_INTERVAL_SECONDS', self.retry_interval))
        app.extensions['notification_dispatcher'] = self
        if cfg.get('NOTIFY_SWEEP_ENABLED'):
            self.start()

    # --- lifecycle ---

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def start(self):
        if self.running:
            return
        self.scheduler = BackgroundScheduler(daemon=True)
        self.scheduler.add_job(
            self._run_sweep, 'interval', seconds=self.sweep_interval,
            id=SWEEP_JOB_ID, max_instances=1, coalesce=True,
        )
        if self.retry_interval > 0:
            self.scheduler.add_job(
                self._run_retry, 'interval', seconds=self.retry_interval,
                id=RETRY_JOB_ID, max_instances=1, coalesce=True,
            )
        self.scheduler.start()
        atexit.register(self.shutdown)
        logger.info("Notification dispatcher started (sweep every %ss)", self.sweep_interval)

    def shutdown(self, wait: bool = False):
        if self.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Notification dispatcher stopped")
        self.scheduler = None

    # --- jobs ---

    def _run_sweep(self):
        try:
            self.process_pending()
        except Exception:
            logger.exception("Error processing pending emails")
            get_db().rollback()
        finally:
            close_db()

    def _run_retry(self):
        try:
            self.retry_failed()
        except Exception:
            logger.exception("Error retrying failed emails")
            get_db().rollback()
        finally:
            close_db()

    def deliver(self, notification: EmailNotification) -> bool:
        """Attempt one delivery and record the outcome; returns True when sent."""
        session = get_db()
        try:
            self.mailer.send(notification.recipient_email, notification.subject, notification.body)
        except Exception as exc:
            logger.error("Failed to send email to %s: %s", notification.recipient_email, exc)
            notification.mark_failed(str(exc))
            session.commit()
            return False
        notification.mark_sent()
        session.commit()
        logger.info("Email sent successfully to %s", notification.recipient_email)
        return True

    def process_pending(self, limit: Optional[int] = None) -> int:
        """Deliver up to ``limit`` pending notifications, oldest first; returns how many were sent."""
        session = get_db()
        stmt = (
            select(EmailNotification)
            .where(EmailNotification.status == EmailNotification.STATUS_PENDING)
            .order_by(EmailNotification.created_at.asc(), EmailNotification.id.asc())
            .limit(limit or self.batch_size)
        )
        pending = list(session.execute(stmt).scalars())
        sent = sum(1 for n in pending if self.deliver(n))
        if pending:
            logger.info("Processed %d pending emails (%d sent)", len(pending), sent)
        return sent

    def retry_failed(self, ticket_id: Optional[int] = None) -> int:
        """Reset failed notifications that still have attempts left back to pending."""
        session = get_db()
        stmt = select(EmailNotification).where(
            EmailNotification.status == EmailNotification.STATUS_FAILED,
            EmailNotification.attempts < self.max_attempts,
        )
        if ticket_id is not None:
            stmt = stmt.where(EmailNotification.ticket_id == ticket_id)
        failed = list(session.execute(stmt).scalars())
        for n in failed:
            n.reset_for_retry()
        session.commit()
        if failed:
            logger.info("Reset %d failed emails for retry", len(failed))
        return len(failed)


dispatcher = NotificationDispatcher()

__all__ = ['NotificationDispatcher', 'dispatcher', 'SWEEP_JOB_ID', 'RETRY_JOB_ID']
