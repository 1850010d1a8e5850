"""
JWT authentication against the document store.

simplejwt validates the token; the ``sub`` claim carries the username, which
is resolved to a ``User`` record from the ``users`` collection.
"""

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken
from rest_framework_simplejwt.settings import api_settings

from services import get_services


class StoreJWTAuthentication(JWTAuthentication):

    def get_user(self, validated_token):
        try:
            username = validated_token[api_settings.USER_ID_CLAIM]
        except KeyError:
            raise InvalidToken("Token contained no recognizable user identification")

        user = get_services().users.find_by_username(username)
        if user is None:
            raise AuthenticationFailed("User not found", code="user_not_found")

        return user
