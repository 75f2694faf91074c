from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('summernote/', include('django_summernote.urls')),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/', include('user.urls')),
    path('api/', include('project.urls')),
    path('api/', include('task.urls')),
    path('api/', include('notification.urls')),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
