from django.db import models
from django.utils import timezone


class OutboxStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    DELIVERED = 'delivered', 'Delivered'
    DEAD = 'dead', 'Dead'


class OutboxMessage(models.Model):
    """
    A side effect (activity rows, notifications) queued by a request and
    delivered after the request's transaction commits.
    """
    kind = models.CharField(max_length=100)
    payload = models.JSONField(default=dict)
    status = models.CharField(max_length=20, choices=OutboxStatus.choices, default=OutboxStatus.PENDING)
    attempts = models.PositiveIntegerField(default=0)
    next_attempt_at = models.DateTimeField(default=timezone.now, db_index=True)
    last_error = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['next_attempt_at', 'id']
        indexes = [models.Index(fields=['status', 'next_attempt_at'], name='outbox_status_next_idx')]

    def __str__(self):
        return f"{self.kind} #{self.pk} ({self.status})"
