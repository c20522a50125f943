import logging
from typing import Optional

from .models import Profile

logger = logging.getLogger(__name__)


class RoleResolver:
    """
    Single point of truth for identity -> profile.

    Exactly one lookup by user_id per call: no caching and no retries. A
    missing row resolves to None; store errors propagate so each caller can
    decide how to fail (the page gate and the session tracker fail closed).
    """

    def __init__(self, repository):
        self.repository = repository

    def resolve(self, identity_id: str) -> Optional[Profile]:
        profile = self.repository.get_by_user_id(identity_id)
        if profile is None:
            logger.debug(f"No profile for identity {identity_id}")
        return profile
