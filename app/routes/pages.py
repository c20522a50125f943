"""
Browser page routes

Rendering happens in the frontend; these handlers only describe the page and
the viewer. Every path here sits behind RequestGateMiddleware, so a handler
only runs once the gate has allowed the request through.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request

from ..models import Profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pages"], include_in_schema=False)


def _viewer(request: Request) -> Optional[dict]:
    profile: Optional[Profile] = getattr(request.state, "profile", None)
    if profile is None:
        return None
    return {
        "id": profile.id,
        "fullName": profile.full_name,
        "email": profile.email,
        "role": profile.role.value,
    }


def _page(request: Request, name: str, **extra) -> dict:
    return {"page": name, "path": request.url.path, "viewer": _viewer(request), **extra}


@router.get("/")
async def landing(request: Request):
    return _page(request, "landing")


@router.get("/login")
async def login_page(request: Request, error: Optional[str] = None):
    return _page(request, "login", error=error)


@router.get("/signup")
async def signup_page(request: Request):
    return _page(request, "signup", selfRegistration=False)


@router.get("/forgot-password")
async def forgot_password_page(request: Request):
    return _page(request, "forgot-password")


@router.get("/request-account")
async def request_account_page(request: Request):
    return _page(request, "request-account", selfRegistration=False)


@router.get("/change-password")
async def change_password_page(request: Request):
    return _page(request, "change-password")


@router.get("/dashboard")
@router.get("/dashboard/{subpath:path}")
async def dashboard(request: Request, subpath: str = ""):
    return _page(request, "dashboard")


@router.get("/superadmin")
@router.get("/superadmin/{subpath:path}")
async def superadmin_console(request: Request, subpath: str = ""):
    return _page(request, "superadmin")


@router.get("/admin-clinical")
@router.get("/admin-clinical/{subpath:path}")
async def admin_clinical_console(request: Request, subpath: str = ""):
    return _page(request, "admin-clinical")


@router.get("/book/{slug}")
async def booking_page(request: Request, slug: str):
    return _page(request, "book", slug=slug)
