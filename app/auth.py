"""
API Route Guard

verify_role() maps a set of allowed roles to either the caller's AuthContext
or an AuthError (401 without a session, 403 when the profile is missing or
its role is not allowed). It performs exactly one profile lookup per call.
require_roles() wraps it as a FastAPI dependency that raises ApiError.
"""

import asyncio
import logging
from typing import Iterable, Optional, Union

from fastapi import Request
from pydantic import BaseModel

from .errors import ApiError
from .identity import read_session_tokens
from .models import Identity, UserRole
from .supabase_client import get_identity_provider, get_role_resolver

logger = logging.getLogger(__name__)


class AuthContext(BaseModel):
    identity_id: str
    profile_id: str
    role: UserRole


class AuthError(BaseModel):
    error: str
    status_code: int


AuthResult = Union[AuthContext, AuthError]

UNAUTHORIZED = AuthError(error="Unauthorized", status_code=401)


def forbidden_message(allowed_roles: Iterable[UserRole]) -> str:
    roles = " or ".join(role.value for role in allowed_roles)
    return f"Forbidden: {roles} access required"


def is_auth_error(result: AuthResult) -> bool:
    return isinstance(result, AuthError)


async def resolve_identity(request: Request) -> Optional[Identity]:
    """Resolve the caller's identity from the session cookies (None when signed out)"""
    tokens = read_session_tokens(request)
    if tokens.is_empty:
        return None
    provider = get_identity_provider(request)
    try:
        resolution = await asyncio.to_thread(provider.resolve, tokens)
    except Exception as e:
        logger.warning(f"⚠️ Identity resolution failed for {request.url.path}: {e}")
        return None
    if resolution.refreshed_tokens is not None:
        # Written back as cookies by RequestGateMiddleware
        request.state.refreshed_tokens = resolution.refreshed_tokens
    return resolution.identity


async def verify_role(request: Request, allowed_roles: Iterable[UserRole]) -> AuthResult:
    """Verify that the authenticated user has one of the allowed roles"""
    allowed = list(allowed_roles)

    identity = await resolve_identity(request)
    if identity is None:
        return UNAUTHORIZED

    resolver = get_role_resolver(request)
    try:
        profile = await asyncio.to_thread(resolver.resolve, identity.id)
    except Exception as e:
        logger.error(f"❌ Profile lookup failed for {identity.id}: {e}")
        profile = None

    if profile is None or profile.role not in allowed:
        logger.warning(
            f"🚫 {identity.id} ({profile.role.value if profile else 'no profile'}) denied on {request.url.path}"
        )
        return AuthError(error=forbidden_message(allowed), status_code=403)

    return AuthContext(identity_id=identity.id, profile_id=profile.id, role=profile.role)


async def verify_superadmin(request: Request) -> AuthResult:
    return await verify_role(request, [UserRole.SUPERADMIN])


async def verify_admin_clinical(request: Request) -> AuthResult:
    return await verify_role(request, [UserRole.ADMIN_CLINICAL])


async def verify_admin_or_superadmin(request: Request) -> AuthResult:
    return await verify_role(request, [UserRole.SUPERADMIN, UserRole.ADMIN_CLINICAL])


async def verify_doctor(request: Request) -> AuthResult:
    return await verify_role(request, [UserRole.DOCTOR])


def require_roles(*roles: UserRole):
    """Dependency factory for role-based access control"""

    async def role_checker(request: Request) -> AuthContext:
        result = await verify_role(request, roles)
        if isinstance(result, AuthError):
            raise ApiError(result.status_code, result.error)
        return result

    return role_checker


async def require_identity(request: Request) -> Identity:
    """Any signed-in identity, regardless of profile"""
    identity = await resolve_identity(request)
    if identity is None:
        raise ApiError(UNAUTHORIZED.status_code, UNAUTHORIZED.error)
    return identity


require_superadmin = require_roles(UserRole.SUPERADMIN)
require_admin_clinical = require_roles(UserRole.ADMIN_CLINICAL)
