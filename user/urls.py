from django.urls import path
from .adapters.viewsets import auth_viewset
from .adapters.viewsets.auth_refresh import CookieTokenRefreshView
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView
)

urlpatterns = [
    # cookie based login/logout used by the web client
    path('auth/login/email/', auth_viewset.AuthViewSet.as_view({'post': 'login_with_email'}), name='login_email'),
    path('auth/logout/', auth_viewset.AuthViewSet.as_view({'post': 'logout'}), name='logout'),
    path('auth/token/refresh/', CookieTokenRefreshView.as_view(), name='cookie_token_refresh'),

    # simple jwt endpoints for API clients
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/header-refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    path('users/', auth_viewset.UserViewSet.as_view({'get': 'list'}), name='user-list'),
]
