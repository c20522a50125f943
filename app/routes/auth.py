import logging

from fastapi import APIRouter, Depends, Request, Response

from ..auth import require_identity, resolve_identity
from ..auth_state import AuthEvent, AuthStateTracker
from ..domain.accounts.router import get_account_service
from ..domain.accounts.schemas import ChangePasswordRequest, LoginRequest, ProfileResponse
from ..domain.accounts.service import AccountService
from ..identity import clear_session_cookies, read_session_tokens, set_session_cookies
from ..models import Identity, home_path_for
from ..supabase_client import get_identity_provider, get_role_resolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

LOGIN_PATH = "/login"


@router.post("/login")
async def login(
    data: LoginRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
):
    """Email/password sign-in; sets the session cookies and says where to go next"""
    result, profile, redirect_to = await service.sign_in(data.email, data.password)
    set_session_cookies(response, result.tokens)
    return {
        "success": True,
        "redirectTo": redirect_to,
        "profile": ProfileResponse.from_profile(profile),
    }


@router.post("/logout")
async def logout(request: Request, response: Response):
    tokens = read_session_tokens(request)
    if tokens.access_token:
        tracker = AuthStateTracker(resolver=None, identity_provider=get_identity_provider(request))
        redirect_to = await tracker.sign_out(tokens.access_token)
    else:
        redirect_to = LOGIN_PATH
    clear_session_cookies(response)
    return {"success": True, "redirectTo": redirect_to}


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    identity: Identity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
):
    """Change the caller's password and lift the forced-change flag"""
    redirect_to = await service.change_password(identity, data.newPassword)
    return {"success": True, "redirectTo": redirect_to}


@router.get("/session")
async def get_session(request: Request):
    """
    Current session state as the browser hook sees it once settled:
    the identity, its profile (null when missing or the lookup timed out)
    and the phase the tracker ended in.
    """
    identity = await resolve_identity(request)
    resolver = get_role_resolver(request) if identity else None
    tracker = AuthStateTracker(resolver, get_identity_provider(request) if identity else None)

    tracker.handle_event(AuthEvent.INITIAL_SESSION, identity)
    snapshot = await tracker.wait_until_settled()

    profile = snapshot.profile
    return {
        "phase": snapshot.phase.value,
        "isLoading": snapshot.is_loading,
        "identity": snapshot.identity.model_dump() if snapshot.identity else None,
        "profile": ProfileResponse.from_profile(profile) if profile else None,
        "profileTimedOut": snapshot.profile_timed_out,
        "homePath": home_path_for(profile.role) if profile else None,
    }
