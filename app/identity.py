"""
Session identity on top of Supabase Auth

Reads the session cookies, validates the access token against Supabase,
refreshes an expired session with the refresh token and exposes the admin
operations the provisioning flow needs (create/delete identity, password
updates, session revocation). Every Supabase failure is wrapped in
IdentityProviderError at this boundary.
"""

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from pydantic import BaseModel
from supabase import Client

from .config import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    SESSION_COOKIE_MAX_AGE,
    SESSION_COOKIE_SECURE,
)
from .models import Identity

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Supabase Auth call failed"""


class InvalidCredentialsError(IdentityProviderError):
    """Email/password sign-in was rejected"""


class SessionTokens(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token


class IdentityResolution(BaseModel):
    """Result of resolving a session: the identity plus tokens to write back, if refreshed"""

    identity: Optional[Identity] = None
    refreshed_tokens: Optional[SessionTokens] = None


class SignInResult(BaseModel):
    identity: Identity
    tokens: SessionTokens


def read_session_tokens(request: Request) -> SessionTokens:
    return SessionTokens(
        access_token=request.cookies.get(ACCESS_TOKEN_COOKIE),
        refresh_token=request.cookies.get(REFRESH_TOKEN_COOKIE),
    )


def set_session_cookies(response: Response, tokens: SessionTokens) -> None:
    for name, value in (
        (ACCESS_TOKEN_COOKIE, tokens.access_token),
        (REFRESH_TOKEN_COOKIE, tokens.refresh_token),
    ):
        if value:
            response.set_cookie(
                key=name,
                value=value,
                httponly=True,
                secure=SESSION_COOKIE_SECURE,
                samesite="lax",
                max_age=SESSION_COOKIE_MAX_AGE,
                path="/",
            )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE, path="/")
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")


def _to_identity(user) -> Optional[Identity]:
    if user is None or not getattr(user, "id", None):
        return None
    return Identity(id=str(user.id), email=getattr(user, "email", None))


class SupabaseIdentityProvider:
    """Identity operations backed by Supabase Auth"""

    def __init__(self, service_client: Client, anon_client_factory: Callable[[], Client]):
        self.client = service_client
        self.anon_client_factory = anon_client_factory

    def resolve(self, tokens: SessionTokens) -> IdentityResolution:
        """Validate the access token; fall back to the refresh token when it is rejected"""
        if tokens.is_empty:
            return IdentityResolution()

        if tokens.access_token:
            try:
                response = self.client.auth.get_user(tokens.access_token)
                identity = _to_identity(response.user if response else None)
                if identity:
                    return IdentityResolution(identity=identity)
            except Exception as e:
                logger.debug(f"Access token rejected, trying refresh: {e}")

        if not tokens.refresh_token:
            return IdentityResolution()

        # A refresh stores the new session on the client that performs it
        try:
            response = self.anon_client_factory().auth.refresh_session(tokens.refresh_token)
        except Exception as e:
            raise IdentityProviderError(f"Session refresh failed: {e}") from e

        session = getattr(response, "session", None)
        identity = _to_identity(getattr(response, "user", None))
        if not session or not identity:
            return IdentityResolution()

        logger.debug(f"🔄 Session refreshed for {identity.id}")
        return IdentityResolution(
            identity=identity,
            refreshed_tokens=SessionTokens(
                access_token=session.access_token, refresh_token=session.refresh_token
            ),
        )

    def sign_in(self, email: str, password: str) -> SignInResult:
        try:
            response = self.anon_client_factory().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise InvalidCredentialsError(str(e)) from e

        identity = _to_identity(getattr(response, "user", None))
        session = getattr(response, "session", None)
        if not identity or not session:
            raise InvalidCredentialsError("Invalid login credentials")
        return SignInResult(
            identity=identity,
            tokens=SessionTokens(
                access_token=session.access_token, refresh_token=session.refresh_token
            ),
        )

    def sign_out(self, access_token: Optional[str]) -> None:
        """Revoke every session of the token's user"""
        if not access_token:
            return
        try:
            self.client.auth.admin.sign_out(access_token, "global")
        except Exception as e:
            raise IdentityProviderError(f"Sign-out failed: {e}") from e

    def create_identity(self, email: str, password: str, full_name: str) -> Identity:
        try:
            response = self.client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": {"full_name": full_name},
                }
            )
        except Exception as e:
            raise IdentityProviderError(str(e)) from e

        identity = _to_identity(getattr(response, "user", None))
        if not identity:
            raise IdentityProviderError("Failed to create user")
        return identity

    def delete_identity(self, identity_id: str) -> None:
        try:
            self.client.auth.admin.delete_user(identity_id)
        except Exception as e:
            raise IdentityProviderError(str(e)) from e

    def update_password(self, identity_id: str, password: str) -> None:
        try:
            self.client.auth.admin.update_user_by_id(identity_id, {"password": password})
        except Exception as e:
            raise IdentityProviderError(str(e)) from e
