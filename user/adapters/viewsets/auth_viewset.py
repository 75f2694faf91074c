import logging

from django.contrib.auth import authenticate
from django.contrib.auth.models import User
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets, filters
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken

from taskhub.jwt_auth import set_auth_cookies, clear_auth_cookies
from ..serializers.user_serializers import UserSerializer, LoginSerializer

logger = logging.getLogger(__name__)


class AuthViewSet(viewsets.ViewSet):
    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = LoginSerializer

    @extend_schema(request=LoginSerializer, responses={200: UserSerializer})
    def login_with_email(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"error": "Email and password are required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        email = serializer.validated_data["email"]
        password = serializer.validated_data["password"]

        find_user = User.objects.filter(email__iexact=email).first()
        if not find_user:
            logger.info(f"Login rejected for unknown email {email}")
            return Response(
                {"error": "Invalid email or password"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        user = authenticate(request, username=find_user.username, password=password)
        if not user:
            logger.info(f"Login rejected for user {find_user.id}: bad password")
            return Response(
                {"error": "Invalid email or password"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        refresh = RefreshToken.for_user(user)

        # Tokens travel only as HttpOnly cookies, never in the body
        response = Response(
            {"user": UserSerializer(user, context={"request": request}).data},
            status=status.HTTP_200_OK,
        )
        return set_auth_cookies(
            response,
            access_token=str(refresh.access_token),
            refresh_token=str(refresh),
        )

    def logout(self, request):
        response = Response(
            {"message": "Successfully logged out"},
            status=status.HTTP_200_OK
        )
        return clear_auth_cookies(response)


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """Active users, used by assignee and member pickers."""
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None
    filter_backends = [filters.SearchFilter]
    search_fields = ["username", "email", "first_name", "last_name"]

    def get_queryset(self):
        return User.objects.filter(is_active=True).select_related("profile").order_by("first_name", "last_name", "id")
