"""JWT handling with a per-user token version.

Every token carries the ``token_version`` of its user at issue time. Changing
a password or role bumps the user's counter, which makes all earlier tokens
fail here and at Socket.IO admission.
"""

from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User

TOKEN_VERSION_CLAIM = "token_version"
TOKEN_INVALIDATED = "token_invalidated"


def check_token_version(user: User, token) -> None:
    claimed = token.get(TOKEN_VERSION_CLAIM)
    if claimed is None or int(claimed) != user.token_version:
        raise AuthenticationFailed(
            _("Token has been invalidated. Please log in again."),
            code=TOKEN_INVALIDATED,
        )


def issue_tokens(user: User) -> dict[str, str]:
    refresh = RefreshToken.for_user(user)
    refresh["role"] = user.role
    refresh["email"] = user.email
    refresh[TOKEN_VERSION_CLAIM] = user.token_version
    return {"access": str(refresh.access_token), "refresh": str(refresh)}


class TokenVersionJWTAuthentication(JWTAuthentication):
    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        check_token_version(user, validated_token)
        return user


class TokenVersionRefreshSerializer(TokenRefreshSerializer):
    """Refuse to mint access tokens from a superseded refresh token."""

    def validate(self, attrs):
        refresh = self.token_class(attrs["refresh"])
        user_id = refresh.get(api_settings.USER_ID_CLAIM)
        user = User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
        if user is None or not user.is_active:
            raise AuthenticationFailed(_("User not found"), code="user_not_found")
        check_token_version(user, refresh)
        return super().validate(attrs)
