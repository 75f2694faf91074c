import logging

from drf_spectacular.utils import extend_schema
from rest_framework import viewsets, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from notification.models import Notification
from ..serializers.notification_serializer import NotificationSerializer, MarkReadSerializer

logger = logging.getLogger(__name__)

NOTIFICATION_LIMIT = 50


class NotificationViewSet(viewsets.ViewSet):
    """The caller's own notifications; nobody reads or marks another user's."""
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user)

    @extend_schema(responses={200: NotificationSerializer(many=True)})
    def list(self, request):
        qs = self.get_queryset()
        notifications = qs.order_by('-created_at', '-id')[:NOTIFICATION_LIMIT]
        return Response({
            'notifications': NotificationSerializer(notifications, many=True).data,
            'unreadCount': qs.filter(is_read=False).count(),
        })

    @extend_schema(request=MarkReadSerializer)
    def mark_read(self, request):
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        qs = self.get_queryset().filter(is_read=False)
        if data['markAllRead']:
            updated = qs.update(is_read=True)
        elif data.get('notificationId'):
            updated = qs.filter(id=data['notificationId']).update(is_read=True)
        else:
            return Response({'error': 'notificationId or markAllRead required'}, status=status.HTTP_400_BAD_REQUEST)

        logger.debug(f"User {request.user.id} marked {updated} notification(s) read")
        return Response({'message': 'Notification(s) marked as read', 'updated': updated})
