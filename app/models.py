from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    DOCTOR = "doctor"
    ADMIN_CLINICAL = "admin_clinical"
    SUPERADMIN = "superadmin"


# Landing page for each role. Every UserRole member must have an entry.
ROLE_HOME_PATHS: dict[UserRole, str] = {
    UserRole.SUPERADMIN: "/superadmin",
    UserRole.ADMIN_CLINICAL: "/admin-clinical",
    UserRole.DOCTOR: "/dashboard",
}

DEFAULT_HOME_PATH = "/dashboard"


def home_path_for(role: Optional[UserRole]) -> str:
    """Home zone for a role; unknown or missing roles land on the doctor dashboard"""
    if role is None:
        return DEFAULT_HOME_PATH
    return ROLE_HOME_PATHS[role]


class Identity(BaseModel):
    """Authenticated principal issued by Supabase Auth"""

    id: str
    email: Optional[str] = None


class Profile(BaseModel):
    """Row of the profiles table (doc_doctors) mapping an identity to a role"""

    id: str
    user_id: str
    role: UserRole = UserRole.DOCTOR
    is_active: bool = True
    must_change_password: bool = False

    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    experience_years: Optional[int] = None
    clinic_name: Optional[str] = None
    clinic_address: Optional[str] = None
    designation: Optional[str] = None
    department: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    consultation_fee: Optional[float] = None
    online_fee: Optional[float] = None
    booking_slug: Optional[str] = None
    is_verified: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        extra = "ignore"
