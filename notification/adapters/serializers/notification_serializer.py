from rest_framework import serializers

from notification.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    userId = serializers.IntegerField(source='user_id', read_only=True)
    isRead = serializers.BooleanField(source='is_read', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Notification
        fields = ('id', 'userId', 'type', 'title', 'message', 'link', 'isRead', 'createdAt')


class MarkReadSerializer(serializers.Serializer):
    notificationId = serializers.IntegerField(required=False)
    markAllRead = serializers.BooleanField(required=False, default=False)
