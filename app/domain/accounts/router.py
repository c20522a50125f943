"""Accounts router - provisioning and management endpoints per role"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...auth import AuthContext, require_admin_clinical, require_superadmin
from ...models import UserRole
from ...supabase_client import get_identity_provider, get_profile_repository
from .schemas import (
    AdminClinicalCreate,
    DoctorCreate,
    ProfileResponse,
    ProvisionedAccountResponse,
    ResendCredentialsRequest,
    ResendDoctorCredentialsRequest,
    StatusUpdate,
)
from .service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Accounts"])
superadmin_router = APIRouter(prefix="/api/superadmin", tags=["Superadmin"])
admin_router = APIRouter(prefix="/api/admin-clinical", tags=["Admin Clinical"])

SELF_REGISTRATION_DISABLED = (
    "Self-registration is not available for this platform. "
    "Please contact your organization's admin to create an account for you."
)


def get_account_service(request: Request) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(get_identity_provider(request), get_profile_repository(request))


def _provisioned(profile, notifications) -> ProvisionedAccountResponse:
    return ProvisionedAccountResponse(
        account=ProfileResponse.from_profile(profile), notifications=notifications
    )


# ============================================================================
# DISABLED SELF-SERVICE
# ============================================================================


@router.post("/api/auth/signup")
async def signup_disabled():
    """Accounts are provisioned by administrators only"""
    return JSONResponse(status_code=403, content={"error": SELF_REGISTRATION_DISABLED})


@router.post("/api/account-requests")
async def account_requests_disabled():
    return JSONResponse(status_code=403, content={"error": SELF_REGISTRATION_DISABLED})


# ============================================================================
# SUPERADMIN
# ============================================================================


@superadmin_router.get("/admin-clinical")
async def list_admin_clinical(
    current: AuthContext = Depends(require_superadmin),
    service: AccountService = Depends(get_account_service),
):
    """List all admin_clinical accounts, newest first"""
    admins = await service.list_accounts(UserRole.ADMIN_CLINICAL)
    return {"admins": [ProfileResponse.from_profile(a) for a in admins]}


@superadmin_router.post("/admin-clinical", response_model=ProvisionedAccountResponse)
async def create_admin_clinical(
    data: AdminClinicalCreate,
    current: AuthContext = Depends(require_superadmin),
    service: AccountService = Depends(get_account_service),
):
    profile, notifications = await service.create_admin_clinical(data, current)
    return _provisioned(profile, notifications)


@superadmin_router.post("/admin-clinical/resend-credentials")
async def resend_admin_clinical_credentials(
    data: ResendCredentialsRequest,
    current: AuthContext = Depends(require_superadmin),
    service: AccountService = Depends(get_account_service),
):
    admin = await service.get_account(data.adminId, role=UserRole.ADMIN_CLINICAL)
    notifications = await service.reset_credentials(admin)
    return {
        "success": True,
        "message": "Credentials resent successfully",
        "notifications": notifications,
    }


@superadmin_router.get("/doctors")
async def list_all_doctors(
    current: AuthContext = Depends(require_superadmin),
    service: AccountService = Depends(get_account_service),
):
    doctors = await service.list_accounts(UserRole.DOCTOR)
    return {"doctors": [ProfileResponse.from_profile(d) for d in doctors]}


@superadmin_router.post("/doctors", response_model=ProvisionedAccountResponse)
async def create_doctor_as_superadmin(
    data: DoctorCreate,
    current: AuthContext = Depends(require_superadmin),
    service: AccountService = Depends(get_account_service),
):
    profile, notifications = await service.create_doctor(data, current)
    return _provisioned(profile, notifications)


@superadmin_router.patch("/accounts/{profile_id}/status", response_model=ProfileResponse)
async def update_account_status(
    profile_id: str,
    data: StatusUpdate,
    current: AuthContext = Depends(require_superadmin),
    service: AccountService = Depends(get_account_service),
):
    """Activate or deactivate any account (superadmins excluded)"""
    profile = await service.get_account(profile_id)
    updated = await service.set_active(profile, data.isActive)
    return ProfileResponse.from_profile(updated)


# ============================================================================
# ADMIN CLINICAL (scoped to doctors the admin created)
# ============================================================================


@admin_router.get("/doctors")
async def list_my_doctors(
    current: AuthContext = Depends(require_admin_clinical),
    service: AccountService = Depends(get_account_service),
):
    doctors = await service.list_accounts(UserRole.DOCTOR, created_by=current.profile_id)
    return {"doctors": [ProfileResponse.from_profile(d) for d in doctors]}


@admin_router.post("/doctors", response_model=ProvisionedAccountResponse)
async def create_doctor_as_admin(
    data: DoctorCreate,
    current: AuthContext = Depends(require_admin_clinical),
    service: AccountService = Depends(get_account_service),
):
    profile, notifications = await service.create_doctor(data, current)
    return _provisioned(profile, notifications)


@admin_router.post("/doctors/resend-credentials")
async def resend_doctor_credentials(
    data: ResendDoctorCredentialsRequest,
    current: AuthContext = Depends(require_admin_clinical),
    service: AccountService = Depends(get_account_service),
):
    doctor = await service.get_account(
        data.doctorId, role=UserRole.DOCTOR, created_by=current.profile_id
    )
    notifications = await service.reset_credentials(doctor)
    return {
        "success": True,
        "message": "Credentials resent successfully",
        "notifications": notifications,
    }


@admin_router.patch("/doctors/{profile_id}/status", response_model=ProfileResponse)
async def update_doctor_status(
    profile_id: str,
    data: StatusUpdate,
    current: AuthContext = Depends(require_admin_clinical),
    service: AccountService = Depends(get_account_service),
):
    doctor = await service.get_account(profile_id, role=UserRole.DOCTOR, created_by=current.profile_id)
    updated = await service.set_active(doctor, data.isActive)
    return ProfileResponse.from_profile(updated)
