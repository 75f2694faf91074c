"""
JWT authentication that reads the access token from an HttpOnly cookie and
falls back to the Authorization header.
"""

from django.conf import settings
from django.http import HttpRequest
from rest_framework_simplejwt.authentication import JWTAuthentication
from typing import Optional, Tuple

ACCESS_COOKIE = 'access_token'
REFRESH_COOKIE = 'refresh_token'


class CookieJWTAuthentication(JWTAuthentication):
    """
    Reads access tokens from the ``access_token`` cookie set at login.
    Requests without the cookie go through the regular ``Bearer`` header
    flow, which keeps API clients and tests working.
    """

    def authenticate(self, request: HttpRequest) -> Optional[Tuple]:
        access_token = request.COOKIES.get(ACCESS_COOKIE)

        if access_token is None:
            return super().authenticate(request)

        # Raises AuthenticationFailed (401) when the cookie is expired or forged
        validated_token = self.get_validated_token(access_token)
        return self.get_user(validated_token), validated_token

    def authenticate_header(self, request: HttpRequest) -> str:
        """
        Value of the ``WWW-Authenticate`` header; having one makes DRF answer
        unauthenticated requests with 401 instead of 403.
        """
        return 'Bearer'


def set_auth_cookies(response, access_token=None, refresh_token=None):
    cookie_options = {
        'secure': settings.AUTH_COOKIE_SECURE,
        'httponly': True,
        'samesite': settings.AUTH_COOKIE_SAMESITE,
        'path': '/',
        'domain': settings.AUTH_COOKIE_DOMAIN,
    }
    if access_token is not None:
        response.set_cookie(
            key=ACCESS_COOKIE,
            value=access_token,
            max_age=settings.ACCESS_COOKIE_MAX_AGE,
            **cookie_options,
        )
    if refresh_token is not None:
        response.set_cookie(
            key=REFRESH_COOKIE,
            value=refresh_token,
            max_age=settings.REFRESH_COOKIE_MAX_AGE,
            **cookie_options,
        )
    return response


def clear_auth_cookies(response):
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key,
            path='/',
            domain=settings.AUTH_COOKIE_DOMAIN,
            samesite=settings.AUTH_COOKIE_SAMESITE,
        )
    return response
