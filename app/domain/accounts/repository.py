"""Profile repository - Supabase table operations for doc_doctors"""

import logging
from typing import Any, Optional

from pydantic import ValidationError
from supabase import Client

from ...config import PROFILES_TABLE
from ...models import Profile, UserRole

logger = logging.getLogger(__name__)


class ProfileStoreError(Exception):
    """Profile table query failed or returned an unreadable row"""


def _to_profile(row: Optional[dict]) -> Optional[Profile]:
    if not row:
        return None
    try:
        return Profile(**row)
    except ValidationError as e:
        raise ProfileStoreError(f"Malformed profile row {row.get('id')}: {e}") from e


class ProfileRepository:
    """Repository for profile rows stored in Supabase Postgres"""

    def __init__(self, client: Client, table: str = PROFILES_TABLE):
        self.client = client
        self.table = table

    def _query(self):
        return self.client.table(self.table)

    def _first(self, column: str, value: Any) -> Optional[Profile]:
        try:
            result = self._query().select("*").eq(column, value).limit(1).execute()
        except Exception as e:
            raise ProfileStoreError(str(e)) from e
        rows = result.data or []
        return _to_profile(rows[0]) if rows else None

    def get_by_user_id(self, user_id: str) -> Optional[Profile]:
        """Get the profile of an identity (zero or one row)"""
        return self._first("user_id", user_id)

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        return self._first("id", profile_id)

    def get_by_email(self, email: str) -> Optional[Profile]:
        return self._first("email", email.lower())

    def list_by_role(self, role: UserRole, created_by: Optional[str] = None) -> list[Profile]:
        """List profiles of a role, newest first, optionally restricted to one creator"""
        try:
            query = self._query().select("*").eq("role", role.value)
            if created_by:
                query = query.eq("created_by", created_by)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            raise ProfileStoreError(str(e)) from e
        return [_to_profile(row) for row in result.data or []]

    def insert(self, row: dict) -> Profile:
        try:
            result = self._query().insert(row).execute()
        except Exception as e:
            raise ProfileStoreError(str(e)) from e
        rows = result.data or []
        if not rows:
            raise ProfileStoreError("Profile insert returned no row")
        return _to_profile(rows[0])

    def update(self, profile_id: str, **updates) -> Optional[Profile]:
        """Update a profile by primary key; returns the updated row or None if it is gone"""
        try:
            result = self._query().update(updates).eq("id", profile_id).execute()
        except Exception as e:
            raise ProfileStoreError(str(e)) from e
        rows = result.data or []
        return _to_profile(rows[0]) if rows else None
