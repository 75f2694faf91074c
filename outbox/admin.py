from django.contrib import admin
from django.utils import timezone

from .models import OutboxMessage, OutboxStatus


@admin.register(OutboxMessage)
class OutboxMessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'kind', 'status', 'attempts', 'next_attempt_at', 'created_at', 'delivered_at')
    list_filter = ('status', 'kind')
    readonly_fields = ('created_at', 'delivered_at', 'last_error')
    actions = ['requeue']

    @admin.action(description="Requeue selected messages")
    def requeue(self, request, queryset):
        updated = queryset.exclude(status=OutboxStatus.DELIVERED).update(
            status=OutboxStatus.PENDING, attempts=0, next_attempt_at=timezone.now()
        )
        self.message_user(request, f"{updated} message(s) requeued")
