"""
Queue and deliver side effects.

``enqueue`` stores a message next to the primary write and schedules its
delivery for after the commit. Delivery runs the handler configured for the
message kind in ``settings.OUTBOX_HANDLERS``. A failed delivery never
reaches the caller: it is logged and the message is retried later by the
``dispatch_outbox`` command with exponential backoff, until
``OUTBOX_MAX_ATTEMPTS`` is reached and the message is marked dead.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.module_loading import import_string

from .models import OutboxMessage, OutboxStatus

logger = logging.getLogger(__name__)


def backoff_seconds(attempts):
    return min(2 ** attempts, settings.OUTBOX_MAX_BACKOFF_SECONDS)


def get_handler(kind):
    try:
        path = settings.OUTBOX_HANDLERS[kind]
    except KeyError:
        raise LookupError(f"No outbox handler registered for {kind!r}")
    return import_string(path)


def enqueue(kind, payload):
    """
    Queue ``payload`` for the ``kind`` handler. Returns the message, or
    ``None`` when it could not be stored; the caller's transaction is left
    intact either way.
    """
    try:
        with transaction.atomic():
            message = OutboxMessage.objects.create(kind=kind, payload=payload)
    except DatabaseError:
        logger.exception(f"Could not enqueue {kind} side effect")
        return None

    transaction.on_commit(lambda: dispatch(message.pk), robust=True)
    return message


def claim(message):
    """
    Take ``message`` for one delivery attempt. The row only moves when its
    status and attempt count still match what was loaded, so a second copy
    of the same message loses the race and is skipped.
    """
    attempts = message.attempts + 1
    lease_until = timezone.now() + timedelta(seconds=backoff_seconds(attempts))
    claimed = OutboxMessage.objects.filter(
        pk=message.pk, status=OutboxStatus.PENDING, attempts=message.attempts,
    ).update(attempts=F("attempts") + 1, next_attempt_at=lease_until)
    if not claimed:
        return False
    message.attempts = attempts
    message.next_attempt_at = lease_until
    return True


def deliver(message):
    """
    Run the handler for ``message`` once and record the outcome.
    Returns ``None`` when the message was already taken by another worker.
    """
    if not claim(message):
        logger.info(f"Outbox message {message.pk} already claimed, skipping")
        return None
    try:
        handler = get_handler(message.kind)
        with transaction.atomic():
            handler(message.payload)
            message.status = OutboxStatus.DELIVERED
            message.delivered_at = timezone.now()
            message.last_error = ""
            message.save(update_fields=["status", "delivered_at", "last_error"])
    except Exception as e:
        message.status = OutboxStatus.PENDING
        message.delivered_at = None
        message.last_error = f"{type(e).__name__}: {e}"
        if message.attempts >= settings.OUTBOX_MAX_ATTEMPTS:
            message.status = OutboxStatus.DEAD
            logger.error(
                f"Outbox message {message.pk} ({message.kind}) gave up after "
                f"{message.attempts} attempts: {message.last_error}"
            )
        else:
            logger.warning(
                f"Outbox message {message.pk} ({message.kind}) failed, attempt "
                f"{message.attempts}: {message.last_error}"
            )
        message.save(update_fields=["status", "last_error"])
        return False
    return True


def dispatch(message_id):
    try:
        message = OutboxMessage.objects.filter(pk=message_id, status=OutboxStatus.PENDING).first()
        if message is not None:
            deliver(message)
    except DatabaseError:
        logger.exception(f"Could not dispatch outbox message {message_id}")


def dispatch_pending(limit=100):
    """
    Deliver pending messages whose retry time has come.
    Returns ``(delivered, failed)`` counts; messages claimed elsewhere in
    the meantime are in neither.
    """
    due = list(
        OutboxMessage.objects.filter(status=OutboxStatus.PENDING, next_attempt_at__lte=timezone.now())
        .order_by("next_attempt_at", "id")[:limit]
    )
    delivered = failed = 0
    for message in due:
        outcome = deliver(message)
        if outcome is True:
            delivered += 1
        elif outcome is False:
            failed += 1
    return delivered, failed
