"""
Create a superadmin account
Usage: python create_superadmin.py <email> <full_name> [password]

Requires SUPABASE_URL, SUPABASE_ANON_KEY and SUPABASE_SERVICE_ROLE_KEY.
A 16-character password is generated when none is given.
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
from app.shared.passwords import generate_temporary_password
from app.supabase_client import create_anon_client, get_service_client

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


async def create_superadmin(email: str, full_name: str, password: str):
    client = get_service_client()
    service = AccountService(
        SupabaseIdentityProvider(client, create_anon_client), ProfileRepository(client)
    )
    return await service.create_superadmin(email, full_name, password)


if __name__ == "__main__":
    if len(sys.argv) < 3:
        logger.error("Usage: python create_superadmin.py <email> <full_name> [password]")
        sys.exit(1)

    email, full_name = sys.argv[1], sys.argv[2]
    password = sys.argv[3] if len(sys.argv) > 3 else generate_temporary_password(16)

    try:
        profile = asyncio.run(create_superadmin(email, full_name, password))
    except ApiError as e:
        logger.error(f"❌ Superadmin creation failed: {e.message}")
        sys.exit(1)

    logger.info("✅ Superadmin created successfully!")
    logger.info(f"   Email:    {profile.email}")
    logger.info(f"   Password: {password}")
    logger.info("   Store this password safely; it is not shown again.")
