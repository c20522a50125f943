import itertools
from datetime import datetime, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app.config import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from app.domain.accounts.repository import ProfileStoreError
from app.identity import (
    IdentityProviderError,
    IdentityResolution,
    InvalidCredentialsError,
    SessionTokens,
    SignInResult,
)
from app.main import app
from app.models import Identity, Profile, UserRole


class FakeIdentityProvider:
    """In-memory stand-in for SupabaseIdentityProvider"""

    def __init__(self):
        self._ids = itertools.count(1)
        self._tokens = itertools.count(1)
        self.identities: dict[str, Identity] = {}
        self.passwords: dict[str, str] = {}
        self.access_tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.signed_out: list[Optional[str]] = []
        self.deleted: list[str] = []
        self.fail_resolve = False
        self.fail_create: Optional[str] = None
        self.fail_delete = False

    def add_identity(self, email: str, password: str = "Passw0rd!") -> Identity:
        identity = Identity(id=f"user-{next(self._ids)}", email=email)
        self.identities[identity.id] = identity
        self.passwords[identity.id] = password
        return identity

    def issue_tokens(self, identity: Identity) -> SessionTokens:
        n = next(self._tokens)
        tokens = SessionTokens(
            access_token=f"access-{identity.id}-{n}",
            refresh_token=f"refresh-{identity.id}-{n}",
        )
        self.access_tokens[tokens.access_token] = identity.id
        self.refresh_tokens[tokens.refresh_token] = identity.id
        return tokens

    def expire(self, access_token: str) -> None:
        self.access_tokens.pop(access_token, None)

    def resolve(self, tokens: SessionTokens) -> IdentityResolution:
        if self.fail_resolve:
            raise IdentityProviderError("auth service unavailable")
        identity_id = self.access_tokens.get(tokens.access_token or "")
        if identity_id in self.identities:
            return IdentityResolution(identity=self.identities[identity_id])
        identity_id = self.refresh_tokens.pop(tokens.refresh_token or "", None)
        if identity_id in self.identities:
            identity = self.identities[identity_id]
            return IdentityResolution(identity=identity, refreshed_tokens=self.issue_tokens(identity))
        return IdentityResolution()

    def sign_in(self, email: str, password: str) -> SignInResult:
        for identity in self.identities.values():
            if identity.email == email and self.passwords[identity.id] == password:
                return SignInResult(identity=identity, tokens=self.issue_tokens(identity))
        raise InvalidCredentialsError("Invalid login credentials")

    def sign_out(self, access_token: Optional[str]) -> None:
        self.signed_out.append(access_token)
        identity_id = self.access_tokens.get(access_token or "")
        for token, owner in list(self.access_tokens.items()):
            if owner == identity_id:
                del self.access_tokens[token]

    def create_identity(self, email: str, password: str, full_name: str) -> Identity:
        if self.fail_create:
            raise IdentityProviderError(self.fail_create)
        return self.add_identity(email, password)

    def delete_identity(self, identity_id: str) -> None:
        if self.fail_delete:
            raise IdentityProviderError("delete failed")
        self.deleted.append(identity_id)
        self.identities.pop(identity_id, None)

    def update_password(self, identity_id: str, password: str) -> None:
        if identity_id not in self.identities:
            raise IdentityProviderError("User not found")
        self.passwords[identity_id] = password


class FakeProfileRepository:
    """In-memory stand-in for ProfileRepository"""

    def __init__(self):
        self._ids = itertools.count(1)
        self.rows: dict[str, Profile] = {}
        self.lookups = 0
        self.fail_lookup = False
        self.fail_insert: Optional[str] = None

    def add(self, identity: Identity, role: UserRole = UserRole.DOCTOR, **fields) -> Profile:
        profile = Profile(
            id=f"profile-{next(self._ids)}",
            user_id=identity.id,
            email=identity.email,
            role=role,
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        self.rows[profile.id] = profile
        return profile

    def get_by_user_id(self, user_id: str) -> Optional[Profile]:
        self.lookups += 1
        if self.fail_lookup:
            raise ProfileStoreError("connection reset")
        return next((p for p in self.rows.values() if p.user_id == user_id), None)

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        return self.rows.get(profile_id)

    def get_by_email(self, email: str) -> Optional[Profile]:
        return next((p for p in self.rows.values() if p.email == email.lower()), None)

    def list_by_role(self, role: UserRole, created_by: Optional[str] = None) -> list[Profile]:
        profiles = [p for p in self.rows.values() if p.role == role]
        if created_by:
            profiles = [p for p in profiles if p.created_by == created_by]
        return sorted(profiles, key=lambda p: p.created_at, reverse=True)

    def insert(self, row: dict) -> Profile:
        if self.fail_insert:
            raise ProfileStoreError(self.fail_insert)
        profile = Profile(id=f"profile-{next(self._ids)}", created_at=datetime.now(timezone.utc), **row)
        self.rows[profile.id] = profile
        return profile

    def update(self, profile_id: str, **updates) -> Optional[Profile]:
        profile = self.rows.get(profile_id)
        if profile is None:
            return None
        updated = profile.model_copy(update=updates)
        self.rows[profile_id] = updated
        return updated


class Accounts:
    """Creates identities with profiles and hands back session cookies for them"""

    def __init__(self, provider: FakeIdentityProvider, repository: FakeProfileRepository):
        self.provider = provider
        self.repository = repository
        self._emails = itertools.count(1)

    def create(self, role: UserRole = UserRole.DOCTOR, email: Optional[str] = None, **fields):
        identity = self.provider.add_identity(email or f"{role.value}-{next(self._emails)}@example.com")
        profile = self.repository.add(identity, role=role, **fields)
        return identity, profile

    def session(self, identity: Identity) -> SessionTokens:
        return self.provider.issue_tokens(identity)


def cookie_header(tokens: SessionTokens) -> dict:
    parts = []
    if tokens.access_token:
        parts.append(f"{ACCESS_TOKEN_COOKIE}={tokens.access_token}")
    if tokens.refresh_token:
        parts.append(f"{REFRESH_TOKEN_COOKIE}={tokens.refresh_token}")
    return {"Cookie": "; ".join(parts)}


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def profile_repository():
    return FakeProfileRepository()


@pytest.fixture
def accounts(identity_provider, profile_repository):
    return Accounts(identity_provider, profile_repository)


@pytest.fixture
def client(identity_provider, profile_repository):
    app.state.identity_provider = identity_provider
    app.state.profile_repository = profile_repository
    yield TestClient(app, follow_redirects=False)
    app.state.identity_provider = None
    app.state.profile_repository = None


@pytest.fixture
def login_as(accounts):
    """Create an account of the given role and return (profile, cookie headers)"""

    def _login_as(role: UserRole = UserRole.DOCTOR, **fields):
        identity, profile = accounts.create(role, **fields)
        return profile, cookie_header(accounts.session(identity))

    return _login_as


@pytest.fixture
def cookies_for(accounts):
    """Cookie headers for a fresh session of an existing identity"""

    def _cookies_for(identity: Identity, access: bool = True, refresh: bool = True) -> dict:
        tokens = accounts.session(identity)
        return cookie_header(
            SessionTokens(
                access_token=tokens.access_token if access else None,
                refresh_token=tokens.refresh_token if refresh else None,
            )
        )

    return _cookies_for


@pytest.fixture(autouse=True)
def no_outbound_delivery(monkeypatch):
    """Keep Resend and DoubleTick unconfigured regardless of the local environment"""
    from app import email_service
    from app.services import whatsapp_service

    monkeypatch.setattr(email_service, "RESEND_API_KEY", None)
    monkeypatch.setattr(whatsapp_service, "DOUBLETICK_API_KEY", None)
