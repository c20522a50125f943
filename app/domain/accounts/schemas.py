"""Accounts domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import Profile
from ...shared.validators import (
    validate_email,
    validate_min_password_length,
    validate_password_strength,
)


def _required_text(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class ChangePasswordRequest(BaseModel):
    newPassword: str
    confirmPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_new_password(cls, v):
        return validate_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.newPassword != self.confirmPassword:
            raise ValueError("Passwords do not match")
        return self


class AdminClinicalCreate(BaseModel):
    """Schema for creating an admin_clinical account"""

    fullName: str
    email: str
    password: str
    organizationName: str
    designation: str
    phone: Optional[str] = None
    department: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    sendEmail: bool = False
    sendWhatsApp: bool = False

    @field_validator("fullName", "organizationName", "designation")
    @classmethod
    def validate_required(cls, v):
        return _required_text(v)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return validate_min_password_length(v)


class DoctorCreate(BaseModel):
    """Schema for creating a doctor account"""

    fullName: str
    email: str
    password: str
    phone: Optional[str] = None
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    experienceYears: Optional[int] = None
    clinicName: Optional[str] = None
    clinicAddress: Optional[str] = None
    consultationFee: Optional[float] = None
    onlineFee: Optional[float] = None
    sendEmail: bool = False
    sendWhatsApp: bool = False
    verifyImmediately: bool = True

    @field_validator("fullName")
    @classmethod
    def validate_required(cls, v):
        return _required_text(v)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return validate_min_password_length(v)


class StatusUpdate(BaseModel):
    isActive: bool


class ResendCredentialsRequest(BaseModel):
    adminId: str


class ResendDoctorCredentialsRequest(BaseModel):
    doctorId: str


class ProfileResponse(BaseModel):
    """Profile as returned by the management endpoints"""

    id: str
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    is_active: bool
    must_change_password: bool
    is_verified: bool
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
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileResponse":
        data = profile.model_dump()
        data["role"] = profile.role.value
        return cls(**data)


class NotificationResults(BaseModel):
    """Per-channel delivery outcome: sent, failed or skipped"""

    email: str = "skipped"
    whatsapp: str = "skipped"


class ProvisionedAccountResponse(BaseModel):
    success: bool = True
    account: ProfileResponse
    notifications: NotificationResults
