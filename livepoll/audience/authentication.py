"""``X-Anonymous-Token`` authentication for audience endpoints.

The token is resolved through the realtime engine's credential cache, so the
HTTP layer and the ``/anonymous`` Socket.IO namespace share one view of which
participants are valid.
"""

import logging

from asgiref.sync import async_to_sync
from django.contrib.auth.models import AnonymousUser
from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import APIException
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import BasePermission

from livepoll.realtime.exceptions import CredentialResolutionError
from livepoll.realtime.socketio import realtime
from livepoll.realtime.stores import ParticipantRecord

logger = logging.getLogger(__name__)

ANONYMOUS_TOKEN_HEADER = "X-Anonymous-Token"


class SessionInactive(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Session is no longer active")
    default_code = "session_inactive"


def resolve_participant(token: str) -> ParticipantRecord | None:
    participant, _from_cache = async_to_sync(realtime.credentials.resolve)(token)
    return participant


class AnonymousTokenAuthentication(BaseAuthentication):
    """Sets ``request.auth`` to the participant's ``ParticipantRecord``."""

    def authenticate(self, request):
        token = request.headers.get(ANONYMOUS_TOKEN_HEADER)
        if not token:
            return None
        try:
            participant = resolve_participant(token)
        except CredentialResolutionError as exc:
            raise AuthenticationFailed(_("Invalid anonymous token")) from exc
        if participant is None:
            raise AuthenticationFailed(_("Invalid anonymous token"))
        if not participant.session_is_active:
            raise SessionInactive
        return AnonymousUser(), participant

    def authenticate_header(self, request):
        return ANONYMOUS_TOKEN_HEADER


class HasAnonymousParticipant(BasePermission):
    message = _("Anonymous token required")

    def has_permission(self, request, view):
        return isinstance(getattr(request, "auth", None), ParticipantRecord)
