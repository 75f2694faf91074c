from django.urls import path
from notification.adapters.viewsets.notification_viewset import NotificationViewSet

urlpatterns = [
    path(
        'notifications/',
        NotificationViewSet.as_view({'get': 'list', 'put': 'mark_read'}),
        name='notification-list',
    ),
]
