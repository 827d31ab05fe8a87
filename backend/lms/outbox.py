"""Persisted outbox for secondary effects.

Services commit their primary write and then enqueue an `OutboxEvent`
describing what should happen next (notify a user, a role or a course's
students; send an email). `OutboxDispatcher` delivers pending events
either from a background polling thread or inline after each request.
A delivery failure never reaches the request that produced the event:
it is recorded on the row and retried until the attempt budget runs out.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from sqlmodel import Session, col, select

from . import models, repositories
from .models import utcnow

logger = logging.getLogger("lms.outbox")

NOTIFICATION = "notification"
EMAIL = "email"


class Outbox:
    """Producer side: persist events for later delivery."""

    @staticmethod
    def enqueue(session: Session, kind: str, payload: dict) -> models.OutboxEvent:
        event = models.OutboxEvent(kind=kind, payload=payload)
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    @classmethod
    def notify(
        cls,
        session: Session,
        type: str,
        title: str,
        message: str,
        user_id: Optional[int] = None,
        role: Optional[str] = None,
        course_id: Optional[int] = None,
        related_id: Optional[int] = None,
        exclude_user_id: Optional[int] = None,
        broadcast: bool = False,
    ) -> models.OutboxEvent:
        """Queue a notification for one user, a role, a course's students, or everyone."""
        if user_id is None and role is None and course_id is None and not broadcast:
            raise ValueError("notification needs a user_id, role, course_id or broadcast target")
        payload = {
            "type": type,
            "title": title,
            "message": message,
            "user_id": user_id,
            "role": role,
            "course_id": course_id,
            "related_id": related_id,
            "exclude_user_id": exclude_user_id,
            "broadcast": broadcast,
        }
        return cls.enqueue(session, NOTIFICATION, payload)

    @classmethod
    def email(cls, session: Session, to: str, template: str, context: dict) -> models.OutboxEvent:
        return cls.enqueue(session, EMAIL, {"to": to, "template": template, "context": context})


class OutboxDispatcher:
    """Consumer side: deliver pending events with a bounded retry budget."""

    def __init__(self, db, mailer, max_attempts: int = 5, poll_seconds: float = 2.0, batch_size: int = 100):
        self.db = db
        self.mailer = mailer
        self.max_attempts = max_attempts
        self.poll_seconds = poll_seconds
        self.batch_size = batch_size
        self._handlers: Dict[str, Callable[[Session, dict], None]] = {
            NOTIFICATION: self._deliver_notification,
            EMAIL: self._deliver_email,
        }
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --- delivery -----------------------------------------------------------

    def _recipients(self, session: Session, payload: dict) -> List[int]:
        if payload.get("user_id") is not None:
            ids = [int(payload["user_id"])]
        elif payload.get("role") or payload.get("broadcast"):
            ids = repositories.UserRepository(session).ids_by_role(payload.get("role"))
        else:
            ids = repositories.EnrollmentRepository(session).user_ids_for_course(int(payload["course_id"]))
        exclude = payload.get("exclude_user_id")
        return [uid for uid in dict.fromkeys(ids) if uid != exclude]

    def _deliver_notification(self, session: Session, payload: dict) -> None:
        for uid in self._recipients(session, payload):
            session.add(models.Notification(
                user_id=uid,
                type=payload["type"],
                title=payload["title"],
                message=payload["message"],
                related_id=payload.get("related_id"),
            ))

    def _deliver_email(self, session: Session, payload: dict) -> None:
        self.mailer.send_template(payload["to"], payload["template"], payload.get("context") or {})

    def _deliver_one(self, session: Session, event: models.OutboxEvent) -> bool:
        handler = self._handlers.get(event.kind)
        try:
            if handler is None:
                raise ValueError(f"no handler for outbox event kind {event.kind!r}")
            handler(session, dict(event.payload or {}))
            event.attempts += 1
            event.status = "delivered"
            event.delivered_at = utcnow()
            event.last_error = None
            session.add(event)
            session.commit()
            return True
        except Exception as exc:
            session.rollback()
            event.attempts += 1
            event.last_error = str(exc)[:500]
            if event.attempts >= self.max_attempts:
                event.status = "failed"
                logger.error("outbox event %s failed permanently after %d attempts: %s", event.id, event.attempts, exc)
            else:
                logger.warning("outbox event %s attempt %d failed: %s", event.id, event.attempts, exc)
            session.add(event)
            session.commit()
            return False

    def dispatch_pending(self) -> int:
        """Deliver one batch of pending events; return how many succeeded."""
        delivered = 0
        with self._lock:
            with self.db.session() as session:
                stmt = (
                    select(models.OutboxEvent)
                    .where(models.OutboxEvent.status == "pending")
                    .order_by(col(models.OutboxEvent.id))
                    .limit(self.batch_size)
                )
                for event in session.exec(stmt).all():
                    if self._deliver_one(session, event):
                        delivered += 1
        return delivered

    # --- background thread ---------------------------------------------------

    def _run(self) -> None:
        while not self._stop.wait(self.poll_seconds):
            try:
                self.dispatch_pending()
            except Exception:
                logger.exception("outbox dispatch loop error")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="lms-outbox", daemon=True)
        self._thread.start()
        logger.info("outbox dispatcher started (poll every %.1fs)", self.poll_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        # flush what is left so a clean shutdown does not strand events
        try:
            self.dispatch_pending()
        except Exception:
            logger.exception("outbox final flush failed")
