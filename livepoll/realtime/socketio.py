"""Socket.IO server for presenters, admins and the anonymous audience.

- URL base: ws://<host>:8000
- Socket.IO path: /ws/socket.io/
- Namespace ``/``: staff. Auth is a JWT access token in ``auth.token`` or
  ``?token=``. Clients send ``join-session`` / ``leave-session`` with a
  session id.
- Namespace ``/anonymous``: audience. Auth is the participant token handed
  out by ``POST /api/v1/anonymous/join/``; the socket is placed in its
  session's room on connect.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs

import socketio
from socketio import exceptions as sio_exceptions
from channels.db import database_sync_to_async
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from livepoll.users.authentication import TOKEN_INVALIDATED
from livepoll.users.authentication import TokenVersionJWTAuthentication

from . import event_names
from .engine import PollRealtime
from .exceptions import CredentialResolutionError
from .registry import AUDIENCE_NAMESPACE
from .registry import AudienceIdentity
from .registry import Connection
from .registry import StaffIdentity

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.SOCKETIO_CORS_ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)

realtime = PollRealtime.from_settings(sio)


@database_sync_to_async
def _get_staff_identity_from_access_token(token: str) -> StaffIdentity:
    # Decoded directly so expiry surfaces as a TokenError.
    validated = AccessToken(token)
    user = TokenVersionJWTAuthentication().get_user(validated)
    return StaffIdentity(user_id=int(user.id), role=str(user.role))


def _extract_token(
    environ: dict[str, Any],
    auth: Any | None,
    *,
    prefer_auth: bool = False,
) -> str | None:
    """Extract a token from Socket.IO environ/auth.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    auth_token = None
    if isinstance(auth, dict):
        candidate = auth.get("token")
        if isinstance(candidate, str) and candidate:
            auth_token = candidate
    if prefer_auth and auth_token:
        return auth_token

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token
    return auth_token


def _coerce_session_id(data: Any) -> int | None:
    if isinstance(data, dict):
        data = data.get("sessionId")
    if isinstance(data, bool):
        return None
    try:
        return int(data)
    except (TypeError, ValueError):
        return None


async def _staff_connection(sid: str) -> Connection | None:
    session = await sio.get_session(sid)
    if not isinstance(session, dict) or "user_id" not in session:
        return None
    identity = StaffIdentity(user_id=session["user_id"], role=session["role"])
    return Connection(sid=sid, identity=identity)


# Staff namespace -------------------------------------------------------------
@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    if not token:
        msg = "unauthorized"
        raise sio_exceptions.ConnectionRefusedError(msg)

    try:
        identity = await _get_staff_identity_from_access_token(token)
    except TokenError as exc:
        message = str(exc)
        if "expired" in message.lower():
            msg = "jwt_expired"
            raise sio_exceptions.ConnectionRefusedError(msg) from exc
        msg = "unauthorized"
        raise sio_exceptions.ConnectionRefusedError(msg) from exc
    except AuthenticationFailed as exc:  # user not found, superseded token
        if exc.get_codes() == TOKEN_INVALIDATED:
            msg = TOKEN_INVALIDATED
            raise sio_exceptions.ConnectionRefusedError(msg) from exc
        msg = "unauthorized"
        raise sio_exceptions.ConnectionRefusedError(msg) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error")
        msg = "server_error"
        raise sio_exceptions.ConnectionRefusedError(msg) from exc

    await sio.save_session(sid, {"user_id": identity.user_id, "role": identity.role})
    logger.debug("Staff socket %s connected as user %s", sid, identity.user_id)


@sio.event
async def disconnect(sid: str, reason: Any = None):
    connection = await _staff_connection(sid)
    if connection is not None:
        await realtime.disconnect_staff(connection)


@sio.on(event_names.JOIN_SESSION)
async def join_session(sid: str, data: Any):
    session_id = _coerce_session_id(data)
    connection = await _staff_connection(sid)
    if session_id is None or connection is None:
        return
    await realtime.join_staff(session_id, connection)


@sio.on(event_names.LEAVE_SESSION)
async def leave_session(sid: str, data: Any):
    session_id = _coerce_session_id(data)
    connection = await _staff_connection(sid)
    if session_id is None or connection is None:
        return
    await realtime.leave_staff(session_id, connection)


# Audience namespace ----------------------------------------------------------
@sio.on("connect", namespace=AUDIENCE_NAMESPACE)
async def anonymous_connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth, prefer_auth=True)
    if not token:
        msg = "anonymous_token_required"
        raise sio_exceptions.ConnectionRefusedError(msg)

    try:
        participant, _from_cache = await realtime.credentials.resolve(token)
    except CredentialResolutionError as exc:
        msg = "unauthorized"
        raise sio_exceptions.ConnectionRefusedError(msg) from exc

    if participant is None:
        msg = "invalid_anonymous_token"
        raise sio_exceptions.ConnectionRefusedError(msg)
    if not participant.session_is_active:
        msg = "session_inactive"
        raise sio_exceptions.ConnectionRefusedError(msg)

    identity = AudienceIdentity(
        participant_id=participant.id,
        session_id=participant.session_id,
        display_name=participant.display_name,
    )
    await sio.save_session(
        sid,
        {
            "participant_id": identity.participant_id,
            "session_id": identity.session_id,
            "display_name": identity.display_name,
        },
        namespace=AUDIENCE_NAMESPACE,
    )
    await realtime.connect_audience(Connection(sid=sid, identity=identity))


@sio.on("disconnect", namespace=AUDIENCE_NAMESPACE)
async def anonymous_disconnect(sid: str, reason: Any = None):
    session = await sio.get_session(sid, namespace=AUDIENCE_NAMESPACE)
    if not isinstance(session, dict) or "participant_id" not in session:
        return
    identity = AudienceIdentity(
        participant_id=session["participant_id"],
        session_id=session["session_id"],
        display_name=session["display_name"],
    )
    await realtime.disconnect_audience(Connection(sid=sid, identity=identity))


# ASGI lifespan ---------------------------------------------------------------
async def on_startup():
    await realtime.startup()


async def on_shutdown():
    await realtime.shutdown()
