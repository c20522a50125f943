"""
Account provisioning saga

Provisioning spans two systems with no shared transaction: the identity is
created in Supabase Auth, then the profile row is inserted. When the insert
fails the identity is deleted again before the error reaches the caller, so
no identity is left behind without a profile. compensate() is idempotent:
it does nothing when no identity was created and nothing the second time.
"""

import logging
from typing import Callable, Optional

from ...errors import ApiError
from ...identity import IdentityProviderError
from ...models import Identity, Profile

logger = logging.getLogger(__name__)


class ProvisioningError(ApiError):
    """Account creation failed; status 400 for identity errors, 500 for profile errors"""


class ProvisioningSaga:
    def __init__(self, identity_provider, repository):
        self.identity_provider = identity_provider
        self.repository = repository
        self.created_identity_id: Optional[str] = None
        self.compensated = False

    def run(
        self,
        email: str,
        password: str,
        full_name: str,
        build_profile_row: Callable[[Identity], dict],
    ) -> Profile:
        """Create the identity, then its profile; roll the identity back if the profile fails"""
        try:
            identity = self.identity_provider.create_identity(email, password, full_name)
        except IdentityProviderError as e:
            logger.error(f"❌ Identity creation failed for {email}: {e}")
            raise ProvisioningError(400, str(e)) from e

        self.created_identity_id = identity.id
        logger.info(f"👤 Identity {identity.id} created for {email}")

        try:
            profile = self.repository.insert(build_profile_row(identity))
        except Exception as e:
            logger.error(f"❌ Profile creation failed for {email}: {e}")
            self.compensate()
            raise ProvisioningError(500, str(e)) from e

        logger.info(f"✅ Provisioned {profile.role.value} {profile.id} for {email}")
        return profile

    def compensate(self) -> bool:
        """Delete the identity created by run(); returns True when a deletion happened"""
        if self.created_identity_id is None or self.compensated:
            return False

        try:
            self.identity_provider.delete_identity(self.created_identity_id)
        except IdentityProviderError as e:
            logger.error(f"❌ Rollback failed, orphaned identity {self.created_identity_id}: {e}")
            return False

        self.compensated = True
        logger.info(f"↩️ Rolled back identity {self.created_identity_id}")
        return True
