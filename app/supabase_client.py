"""
Supabase client construction and per-process collaborators

The service-role client is created once per process and shared; it never
stores a user session (persist_session/auto_refresh_token disabled) so it
carries no per-user state between requests. Session refreshes and password
sign-ins run on a fresh anon client from create_anon_client. The identity
provider and the profile repository built on it live on ``app.state`` and are
created lazily on first use, or eagerly by the application lifespan.
"""

import logging
from functools import lru_cache

from fastapi import Request
from supabase import Client, ClientOptions, create_client

from .config import SUPABASE_ANON_KEY, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL
from .errors import ServerConfigurationError

logger = logging.getLogger(__name__)


def _stateless_options() -> ClientOptions:
    return ClientOptions(auto_refresh_token=False, persist_session=False)


@lru_cache()
def get_service_client() -> Client:
    """Get cached service-role Supabase client (admin auth API + profile table)"""
    if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
        logger.error("❌ SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not configured")
        raise ServerConfigurationError()
    client = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, options=_stateless_options())
    logger.info("✅ Supabase service client created")
    return client


def create_anon_client() -> Client:
    """Create a fresh anon-key client for password sign-in (one per call)"""
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        logger.error("❌ SUPABASE_URL or SUPABASE_ANON_KEY not configured")
        raise ServerConfigurationError()
    return create_client(SUPABASE_URL, SUPABASE_ANON_KEY, options=_stateless_options())


def get_identity_provider(request: Request):
    """Return the process-wide identity provider, creating it on first use"""
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is None:
        from .identity import SupabaseIdentityProvider

        provider = SupabaseIdentityProvider(get_service_client(), create_anon_client)
        request.app.state.identity_provider = provider
    return provider


def get_profile_repository(request: Request):
    """Return the process-wide profile repository, creating it on first use"""
    repository = getattr(request.app.state, "profile_repository", None)
    if repository is None:
        from .domain.accounts.repository import ProfileRepository

        repository = ProfileRepository(get_service_client())
        request.app.state.profile_repository = repository
    return repository


def get_role_resolver(request: Request):
    from .role_resolver import RoleResolver

    return RoleResolver(get_profile_repository(request))
