# marketplace/auth.py

"""
AUTH SESSION

The upstream marketplace issues the JWT; this service only validates it
(SimpleJWT stateless auth) and forwards the raw bearer token upstream.

AuthSession is the explicit handle injected into every workflow service
instead of an ambient "current user" lookup.
"""

from __future__ import annotations

from dataclasses import dataclass

from rest_framework.authentication import get_authorization_header

from marketplace.exceptions import NotAuthenticatedError


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    token: str
    email: str = ""
    first_name: str = ""
    role: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id) and bool(self.token)


def require_session(session: AuthSession | None) -> AuthSession:
    if session is None or not session.is_authenticated:
        raise NotAuthenticatedError("Please log in to continue.")
    return session


def _raw_bearer_token(request) -> str:
    header = get_authorization_header(request).split()
    if len(header) == 2 and header[0].lower() == b"bearer":
        return header[1].decode("utf-8", errors="replace")

    # force_authenticate()/custom auth may attach the raw token as request.auth
    auth = getattr(request, "auth", None)
    return str(auth) if isinstance(auth, str) else ""


def session_from_request(request) -> AuthSession | None:
    user = getattr(request, "user", None)
    if user is None or not getattr(user, "is_authenticated", False):
        return None

    token = _raw_bearer_token(request)
    if not token:
        return None

    return AuthSession(
        user_id=str(user.id),
        token=token,
        email=str(getattr(user, "email", "") or ""),
        first_name=str(getattr(user, "firstName", "") or ""),
        role=str(getattr(user, "role", "") or ""),
    )
