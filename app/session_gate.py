"""
Request Gate - page-level authorization for every browser request

Runs before any page handler and decides, in strict order:
1. no identity (or no profile) on a protected page  -> /login
2. deactivated account on a non-auth page           -> sign out, /login?error=account_deactivated
3. must_change_password anywhere but the form       -> /change-password
4. signed-in user on an auth page                   -> role home
5. superadmin / admin-clinical zone, wrong role     -> role home
6. otherwise                                        -> allow through

Lookup failures are logged and treated as "no identity" / "no profile", so the
gate fails closed to /login. Refreshed session cookies are written back on
every response the gate produces, redirect or not.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from fastapi import Request
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse, Response

from .identity import clear_session_cookies, read_session_tokens, set_session_cookies
from .models import Identity, Profile, UserRole, home_path_for
from .supabase_client import get_identity_provider, get_role_resolver

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
DEACTIVATED_PATH = "/login?error=account_deactivated"
CHANGE_PASSWORD_PATH = "/change-password"

AUTH_PAGE_PREFIXES = (
    "/login",
    "/signup",
    "/forgot-password",
    "/change-password",
    "/request-account",
)
PUBLIC_PAGE_PREFIXES = ("/book/",)
PUBLIC_EXACT_PATHS = {"/"}

# Never gated: JSON APIs guard themselves, plus health, docs and static assets
UNGATED_PREFIXES = ("/api", "/health", "/docs", "/redoc", "/openapi.json", "/static/", "/favicon.ico")
STATIC_SUFFIXES = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp")


class Zone(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN_CLINICAL = "admin_clinical"
    DEFAULT = "default"


ZONE_PREFIXES: tuple[tuple[str, Zone], ...] = (
    ("/superadmin", Zone.SUPERADMIN),
    ("/admin-clinical", Zone.ADMIN_CLINICAL),
)

# Role required to enter each zone. Every Zone member must have an entry.
ZONE_REQUIRED_ROLE: dict[Zone, Optional[UserRole]] = {
    Zone.SUPERADMIN: UserRole.SUPERADMIN,
    Zone.ADMIN_CLINICAL: UserRole.ADMIN_CLINICAL,
    Zone.DEFAULT: None,
}


class GateAction(str, Enum):
    ALLOW = "allow"
    LOGIN = "login"
    DEACTIVATED = "deactivated"
    CHANGE_PASSWORD = "change_password"
    ROLE_HOME = "role_home"


class GateDecision(BaseModel):
    action: GateAction
    location: Optional[str] = None
    sign_out: bool = False


ALLOW = GateDecision(action=GateAction.ALLOW)


def is_auth_page(path: str) -> bool:
    return path.startswith(AUTH_PAGE_PREFIXES)


def is_public_page(path: str) -> bool:
    return path in PUBLIC_EXACT_PATHS or path.startswith(PUBLIC_PAGE_PREFIXES)


def is_ungated(path: str) -> bool:
    return path.startswith(UNGATED_PREFIXES) or path.lower().endswith(STATIC_SUFFIXES)


def zone_for_path(path: str) -> Zone:
    for prefix, zone in ZONE_PREFIXES:
        if path.startswith(prefix):
            return zone
    return Zone.DEFAULT


def evaluate_request(
    path: str, identity: Optional[Identity], profile: Optional[Profile]
) -> GateDecision:
    """Pure gate decision for a page path and the caller's resolved identity/profile"""
    auth_page = is_auth_page(path)

    # An identity without a profile is an unknown account: same as signed out
    if identity is None or profile is None:
        if not auth_page and not is_public_page(path):
            return GateDecision(action=GateAction.LOGIN, location=LOGIN_PATH)
        return ALLOW

    if not profile.is_active and not auth_page:
        return GateDecision(action=GateAction.DEACTIVATED, location=DEACTIVATED_PATH, sign_out=True)

    if profile.must_change_password and not path.startswith(CHANGE_PASSWORD_PATH):
        return GateDecision(action=GateAction.CHANGE_PASSWORD, location=CHANGE_PASSWORD_PATH)

    home = home_path_for(profile.role)

    if auth_page and not path.startswith(CHANGE_PASSWORD_PATH):
        return GateDecision(action=GateAction.ROLE_HOME, location=home)

    required_role = ZONE_REQUIRED_ROLE[zone_for_path(path)]
    if required_role is not None and profile.role != required_role:
        logger.info(f"🚫 {profile.role.value} attempted {path}, sending to {home}")
        return GateDecision(action=GateAction.ROLE_HOME, location=home)

    return ALLOW


class RequestGateMiddleware(BaseHTTPMiddleware):
    """
    Applies evaluate_request to every gated page request. Ungated API
    requests pass straight through; any session the API guards refreshed
    is written back as cookies on the way out.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if is_ungated(path):
            response = await call_next(request)
            # API guards may have refreshed the session; refresh tokens rotate
            refreshed = getattr(request.state, "refreshed_tokens", None)
            if refreshed is not None:
                set_session_cookies(response, refreshed)
            return response

        tokens = read_session_tokens(request)
        identity: Optional[Identity] = None
        profile: Optional[Profile] = None
        refreshed_tokens = None
        provider = None

        if not tokens.is_empty:
            try:
                provider = get_identity_provider(request)
                resolution = await asyncio.to_thread(provider.resolve, tokens)
                identity = resolution.identity
                refreshed_tokens = resolution.refreshed_tokens
            except Exception as e:
                logger.warning(f"⚠️ Gate: identity resolution failed for {path}: {e}")

        if identity is not None:
            try:
                resolver = get_role_resolver(request)
                profile = await asyncio.to_thread(resolver.resolve, identity.id)
            except Exception as e:
                logger.warning(f"⚠️ Gate: profile lookup failed for {identity.id}: {e}")

        decision = evaluate_request(path, identity, profile)
        logger.debug(f"Gate {path}: {decision.action.value} {decision.location or ''}")

        request.state.identity = identity
        request.state.profile = profile

        if decision.action == GateAction.ALLOW:
            response = await call_next(request)
        else:
            response = RedirectResponse(url=decision.location, status_code=302)

        if decision.sign_out:
            access_token = (refreshed_tokens or tokens).access_token
            try:
                await asyncio.to_thread(provider.sign_out, access_token)
                logger.info(f"🔒 Signed out deactivated account {identity.id}")
            except Exception as e:
                logger.error(f"❌ Failed to revoke session for {identity.id}: {e}")
            clear_session_cookies(response)
        elif refreshed_tokens is not None:
            set_session_cookies(response, refreshed_tokens)

        return response
