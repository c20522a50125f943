"""
Reset a superadmin password
Usage: python reset_superadmin_password.py [email] [new_password]

Without arguments the superadmins are listed. The email may be omitted when
there is only one superadmin. A 16-character password is generated when none
is given.

Requires SUPABASE_URL, SUPABASE_ANON_KEY and SUPABASE_SERVICE_ROLE_KEY.
"""
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from app.domain.accounts.repository import ProfileRepository
from app.domain.accounts.service import AccountService
from app.errors import ApiError
from app.identity import SupabaseIdentityProvider
from app.models import UserRole
from app.shared.passwords import generate_temporary_password
from app.supabase_client import create_anon_client, get_service_client

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


def build_service() -> AccountService:
    client = get_service_client()
    return AccountService(SupabaseIdentityProvider(client, create_anon_client), ProfileRepository(client))


async def run(args: list) -> int:
    """Run the reset for command-line args; returns the exit code"""
    try:
        service = build_service()
        superadmins = await service.list_accounts(UserRole.SUPERADMIN)
    except ApiError as e:
        logger.error(f"❌ Failed to fetch superadmins: {e.message}")
        return 1

    if not superadmins:
        logger.error("❌ No superadmin users found.")
        return 1

    logger.info("SuperAdmin users found:")
    for index, profile in enumerate(superadmins, start=1):
        logger.info(f"  {index}. {profile.full_name} ({profile.email})")

    if not args and len(superadmins) > 1:
        logger.info("Pass the email of the superadmin to reset.")
        return 0

    email = args[0] if args else None
    password = args[1] if len(args) > 1 else generate_temporary_password(16)

    try:
        profile = await service.reset_superadmin_password(email, password)
    except ApiError as e:
        logger.error(f"❌ Password reset failed: {e.message}")
        return 1

    logger.info("✅ Password reset successfully!")
    logger.info(f"   Email:        {profile.email}")
    logger.info(f"   New Password: {password}")
    logger.info("   You can now login at: /login")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run(sys.argv[1:])))
