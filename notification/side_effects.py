from .models import Notification


def create_notifications(payload):
    """Outbox handler: bulk insert the notifications listed in ``payload``."""
    Notification.objects.bulk_create([
        Notification(
            user_id=item["user_id"],
            type=item["type"],
            title=item["title"],
            message=item.get("message", ""),
            link=item.get("link"),
        )
        for item in payload.get("notifications", [])
    ])
