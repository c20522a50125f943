"""Accounts service - Business logic for provisioning, activation and credentials"""

import asyncio
import logging
from typing import Callable, Optional

from ...auth import AuthContext
from ...email_service import EmailNotConfiguredError, send_credentials_email
from ...errors import ApiError
from ...identity import IdentityProviderError, InvalidCredentialsError, SignInResult
from ...models import Identity, Profile, UserRole, home_path_for
from ...services.whatsapp_service import (
    WhatsAppNotConfiguredError,
    credentials_message,
    send_whatsapp_text,
)
from ...shared.passwords import generate_booking_slug, generate_temporary_password
from ...shared.validators import validate_min_password_length
from .provisioning import ProvisioningSaga
from .repository import ProfileStoreError
from .schemas import AdminClinicalCreate, DoctorCreate, NotificationResults

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    UserRole.SUPERADMIN: "Superadmin",
    UserRole.ADMIN_CLINICAL: "Admin Clinical",
    UserRole.DOCTOR: "Doctor",
}

CHANGE_PASSWORD_PATH = "/change-password"


class AccountService:
    """Service layer for account business logic"""

    def __init__(self, identity_provider, repository):
        self.identity_provider = identity_provider
        self.repository = repository

    async def _store(self, call: Callable, *args, **kwargs):
        """Run a blocking repository call; store failures become a 500"""
        try:
            return await asyncio.to_thread(call, *args, **kwargs)
        except ProfileStoreError as e:
            logger.error(f"❌ Profile store error: {e}")
            raise ApiError(500, "Failed to access account data") from e

    # ------------------------------------------------------------------
    # Sign-in and password
    # ------------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> tuple[SignInResult, Profile, str]:
        """Password sign-in; returns the session, the profile and where to send the user"""
        try:
            result = await asyncio.to_thread(self.identity_provider.sign_in, email, password)
        except InvalidCredentialsError as e:
            logger.info(f"🔑 Sign-in rejected for {email}: {e}")
            raise ApiError(401, "Invalid login credentials") from e
        except IdentityProviderError as e:
            logger.error(f"❌ Sign-in failed for {email}: {e}")
            raise ApiError(500, "Sign-in failed") from e

        profile = await self._store(self.repository.get_by_user_id, result.identity.id)

        if profile is None or not profile.is_active:
            await self.revoke_session(result.tokens.access_token)
            if profile is None:
                logger.warning(f"⚠️ Sign-in for {email} has no profile")
                raise ApiError(403, "Account not found. Please contact your administrator.")
            logger.warning(f"🚫 Deactivated account {profile.id} attempted sign-in")
            raise ApiError(403, "account_deactivated")

        if profile.must_change_password:
            redirect_to = CHANGE_PASSWORD_PATH
        else:
            redirect_to = home_path_for(profile.role)
        logger.info(f"🔓 {profile.role.value} {profile.id} signed in")
        return result, profile, redirect_to

    async def revoke_session(self, access_token: Optional[str]) -> None:
        try:
            await asyncio.to_thread(self.identity_provider.sign_out, access_token)
        except IdentityProviderError as e:
            logger.error(f"❌ Failed to revoke session: {e}")

    async def change_password(self, identity: Identity, new_password: str) -> str:
        """Set a new password, clear the forced-change flag and return the caller's home"""
        profile = await self._store(self.repository.get_by_user_id, identity.id)
        if profile is not None and not profile.is_active:
            logger.warning(f"🚫 Password change refused for deactivated profile {profile.id}")
            raise ApiError(403, "account_deactivated")

        try:
            await asyncio.to_thread(self.identity_provider.update_password, identity.id, new_password)
        except IdentityProviderError as e:
            logger.error(f"❌ Password update failed for {identity.id}: {e}")
            raise ApiError(400, "Failed to update password") from e

        if profile is None:
            return home_path_for(None)

        if profile.must_change_password:
            await self._store(self.repository.update, profile.id, must_change_password=False)
        logger.info(f"🔑 Password changed for profile {profile.id}")
        return home_path_for(profile.role)

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def _ensure_email_available(self, email: str) -> None:
        existing = await self._store(self.repository.get_by_email, email)
        if existing:
            raise ApiError(400, "A user with this email already exists")

    async def _provision(
        self, email: str, password: str, full_name: str, build_row: Callable[[Identity], dict]
    ) -> Profile:
        saga = ProvisioningSaga(self.identity_provider, self.repository)
        return await asyncio.to_thread(saga.run, email, password, full_name, build_row)

    async def create_admin_clinical(
        self, data: AdminClinicalCreate, creator: AuthContext
    ) -> tuple[Profile, NotificationResults]:
        logger.info(f"📥 Creating admin clinical {data.email} by {creator.profile_id}")
        await self._ensure_email_available(data.email)

        def build_row(identity: Identity) -> dict:
            return {
                "user_id": identity.id,
                "email": data.email,
                "full_name": data.fullName,
                "phone": data.phone or None,
                "clinic_name": data.organizationName,
                "designation": data.designation,
                "department": data.department or None,
                "clinic_address": data.address or None,
                "city": data.city or None,
                "state": data.state or None,
                "pincode": data.pincode or None,
                "role": UserRole.ADMIN_CLINICAL.value,
                "is_verified": True,
                "must_change_password": True,
                "created_by": creator.profile_id,
                "is_active": True,
            }

        profile = await self._provision(data.email, data.password, data.fullName, build_row)
        notifications = await self.notify_credentials(
            profile, data.password, send_email=data.sendEmail, send_whatsapp=data.sendWhatsApp
        )
        return profile, notifications

    async def create_doctor(
        self, data: DoctorCreate, creator: AuthContext
    ) -> tuple[Profile, NotificationResults]:
        logger.info(f"📥 Creating doctor {data.email} by {creator.role.value} {creator.profile_id}")
        await self._ensure_email_available(data.email)

        def build_row(identity: Identity) -> dict:
            return {
                "user_id": identity.id,
                "email": data.email,
                "full_name": data.fullName,
                "phone": data.phone or None,
                "specialization": data.specialization,
                "qualification": data.qualification,
                "experience_years": data.experienceYears,
                "clinic_name": data.clinicName,
                "clinic_address": data.clinicAddress,
                "consultation_fee": data.consultationFee,
                "online_fee": data.onlineFee,
                "booking_slug": generate_booking_slug(data.fullName),
                "role": UserRole.DOCTOR.value,
                "is_verified": data.verifyImmediately,
                "must_change_password": True,
                "created_by": creator.profile_id,
                "is_active": True,
            }

        profile = await self._provision(data.email, data.password, data.fullName, build_row)
        notifications = await self.notify_credentials(
            profile, data.password, send_email=data.sendEmail, send_whatsapp=data.sendWhatsApp
        )
        return profile, notifications

    async def create_superadmin(
        self, email: str, full_name: str, password: str, phone: Optional[str] = None
    ) -> Profile:
        """Bootstrap a superadmin; the chosen password does not need to be changed"""
        email = email.strip().lower()
        await self._ensure_email_available(email)

        def build_row(identity: Identity) -> dict:
            return {
                "user_id": identity.id,
                "email": email,
                "full_name": full_name,
                "phone": phone,
                "role": UserRole.SUPERADMIN.value,
                "is_verified": True,
                "must_change_password": False,
                "is_active": True,
            }

        return await self._provision(email, password, full_name, build_row)

    # ------------------------------------------------------------------
    # Listing, activation and credential reset
    # ------------------------------------------------------------------

    async def list_accounts(self, role: UserRole, created_by: Optional[str] = None) -> list[Profile]:
        return await self._store(self.repository.list_by_role, role, created_by)

    async def get_account(
        self, profile_id: str, role: Optional[UserRole] = None, created_by: Optional[str] = None
    ) -> Profile:
        """Fetch an account, 404 when missing or outside the caller's scope"""
        profile = await self._store(self.repository.get_by_id, profile_id)
        if profile is None or (role is not None and profile.role != role):
            raise ApiError(404, f"{ROLE_LABELS.get(role, 'Account')} not found")
        if created_by is not None and profile.created_by != created_by:
            raise ApiError(404, f"{ROLE_LABELS.get(role, 'Account')} not found")
        return profile

    async def set_active(self, profile: Profile, is_active: bool) -> Profile:
        if profile.role == UserRole.SUPERADMIN and not is_active:
            raise ApiError(400, "Superadmin accounts cannot be deactivated")

        updated = await self._store(self.repository.update, profile.id, is_active=is_active)
        if updated is None:
            raise ApiError(404, "Account not found")
        logger.info(f"{'✅ Activated' if is_active else '🚫 Deactivated'} {profile.role.value} {profile.id}")
        return updated

    async def reset_credentials(self, profile: Profile) -> NotificationResults:
        """Issue a temporary password, force a change on next login and deliver it"""
        new_password = generate_temporary_password()
        try:
            await asyncio.to_thread(self.identity_provider.update_password, profile.user_id, new_password)
        except IdentityProviderError as e:
            logger.error(f"❌ Password reset failed for {profile.id}: {e}")
            raise ApiError(500, "Failed to reset password") from e

        await self._store(self.repository.update, profile.id, must_change_password=True)
        logger.info(f"🔑 Credentials reset for {profile.role.value} {profile.id}")

        return await self.notify_credentials(
            profile, new_password, send_email=True, send_whatsapp=True, is_reset=True
        )

    async def reset_superadmin_password(self, email: Optional[str], new_password: str) -> Profile:
        """
        Operator recovery for superadmin logins.

        Picks the superadmin with the given email, or the only one when no
        email is given, and sets the chosen password. Nothing is delivered
        and no password change is forced.
        """
        try:
            validate_min_password_length(new_password)
        except ValueError as e:
            raise ApiError(400, str(e)) from e

        superadmins = await self.list_accounts(UserRole.SUPERADMIN)
        if not superadmins:
            raise ApiError(404, "No superadmin users found")

        if email:
            email = email.strip().lower()
            matches = [p for p in superadmins if (p.email or "").lower() == email]
            if not matches:
                raise ApiError(404, f"No superadmin with email {email}")
            profile = matches[0]
        elif len(superadmins) == 1:
            profile = superadmins[0]
        else:
            raise ApiError(400, "Several superadmins exist; choose one by email")

        try:
            await asyncio.to_thread(self.identity_provider.update_password, profile.user_id, new_password)
        except IdentityProviderError as e:
            logger.error(f"❌ Superadmin password reset failed for {profile.id}: {e}")
            raise ApiError(500, "Failed to reset password") from e

        logger.info(f"🔑 Superadmin password reset for {profile.id}")
        return profile

    # ------------------------------------------------------------------
    # Credential delivery (best effort)
    # ------------------------------------------------------------------

    async def notify_credentials(
        self,
        profile: Profile,
        password: str,
        send_email: bool,
        send_whatsapp: bool,
        is_reset: bool = False,
    ) -> NotificationResults:
        """Deliver credentials; failures are logged and never undo the account change"""
        results = NotificationResults()
        role_label = ROLE_LABELS[profile.role]

        if send_email and profile.email:
            try:
                await send_credentials_email(
                    to=profile.email,
                    full_name=profile.full_name or "",
                    password=password,
                    role_label=role_label,
                    is_reset=is_reset,
                )
                results.email = "sent"
            except EmailNotConfiguredError:
                logger.info("Resend API key not configured, skipping email")
            except Exception as e:
                logger.error(f"❌ Credentials email failed for {profile.id}: {e}")
                results.email = "failed"

        if send_whatsapp and profile.phone:
            message = credentials_message(
                profile.full_name or "", profile.email or "", password, role_label, is_reset
            )
            try:
                sent, error = await send_whatsapp_text(profile.phone, message)
                results.whatsapp = "sent" if sent else "failed"
                if error:
                    logger.error(f"❌ Credentials WhatsApp failed for {profile.id}: {error}")
            except WhatsAppNotConfiguredError:
                logger.info("DoubleTick API key not configured, skipping WhatsApp")
            except Exception as e:
                logger.error(f"❌ Credentials WhatsApp failed for {profile.id}: {e}")
                results.whatsapp = "failed"

        return results
