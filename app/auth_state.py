"""
Session-state tracker

Server-side counterpart of the browser auth hook. Instead of a global store,
each consumer owns an AuthStateTracker and feeds it identity-change events.
State moves through explicit phases:

    LOADING -> IDENTITY_KNOWN -> PROFILE_RESOLVED
            \-> SIGNED_OUT

The identity is published as soon as an event arrives (is_loading turns
false right away); the profile is fetched in the background and published
when it lands. A fetch slower than the timeout is abandoned and resolves to
profile=None, and a fetch started for an older event never overwrites the
state of a newer one.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from .config import PROFILE_FETCH_TIMEOUT_SECONDS
from .models import Identity, Profile

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AuthPhase(str, Enum):
    LOADING = "loading"
    SIGNED_OUT = "signed_out"
    IDENTITY_KNOWN = "identity_known"
    PROFILE_RESOLVED = "profile_resolved"


class AuthSnapshot(BaseModel):
    phase: AuthPhase = AuthPhase.LOADING
    identity: Optional[Identity] = None
    profile: Optional[Profile] = None
    profile_timed_out: bool = False

    @property
    def is_loading(self) -> bool:
        return self.phase == AuthPhase.LOADING


Listener = Callable[[AuthSnapshot], None]


class AuthStateTracker:
    """Identity/profile state for one consumer, refined in two phases"""

    def __init__(
        self,
        resolver,
        identity_provider=None,
        timeout: float = PROFILE_FETCH_TIMEOUT_SECONDS,
    ):
        self.resolver = resolver
        self.identity_provider = identity_provider
        self.timeout = timeout
        self._snapshot = AuthSnapshot()
        self._listeners: list[Listener] = []
        self._generation = 0
        self._profile_task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns the unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, snapshot: AuthSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"❌ Auth state listener failed: {e}")

    def _cancel_profile_fetch(self) -> None:
        if self._profile_task is not None and not self._profile_task.done():
            self._profile_task.cancel()
        self._profile_task = None

    def handle_event(self, event: AuthEvent, identity: Optional[Identity]) -> AuthSnapshot:
        """
        Apply an identity-change event. Must be called from a running event loop;
        the profile refinement is scheduled on it.
        """
        self._generation += 1
        self._cancel_profile_fetch()
        logger.debug(f"Auth event {event.value} for {identity.id if identity else 'anonymous'}")

        if event == AuthEvent.SIGNED_OUT or identity is None:
            self._publish(AuthSnapshot(phase=AuthPhase.SIGNED_OUT))
            return self._snapshot

        # Keep the known profile across token refreshes of the same identity
        previous = self._snapshot
        profile = None
        if previous.identity is not None and previous.identity.id == identity.id:
            profile = previous.profile

        self._publish(AuthSnapshot(phase=AuthPhase.IDENTITY_KNOWN, identity=identity, profile=profile))

        generation = self._generation
        self._profile_task = asyncio.get_running_loop().create_task(
            self._refine_profile(generation, identity)
        )
        return self._snapshot

    async def _refine_profile(self, generation: int, identity: Identity) -> None:
        profile = None
        timed_out = False
        try:
            profile = await asyncio.wait_for(
                asyncio.to_thread(self.resolver.resolve, identity.id), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning(f"⚠️ Profile fetch for {identity.id} exceeded {self.timeout}s, giving up")
        except Exception as e:
            logger.error(f"❌ Profile fetch failed for {identity.id}: {e}")

        if generation != self._generation:
            logger.debug(f"Discarding stale profile fetch for {identity.id}")
            return

        self._publish(
            AuthSnapshot(
                phase=AuthPhase.PROFILE_RESOLVED,
                identity=identity,
                profile=profile,
                profile_timed_out=timed_out,
            )
        )

    async def wait_until_settled(self) -> AuthSnapshot:
        """Wait for the pending profile refinement (if any) and return the latest snapshot"""
        while self._profile_task is not None and not self._profile_task.done():
            task = self._profile_task
            try:
                await task
            except asyncio.CancelledError:
                # Superseded by a newer event; wait for that one instead
                if task is self._profile_task:
                    raise
        return self._snapshot

    async def sign_out(self, access_token: Optional[str] = None) -> str:
        """Revoke the session, tear down all state and return the login redirect target"""
        self._generation += 1
        self._cancel_profile_fetch()

        if self.identity_provider is not None and access_token:
            try:
                await asyncio.to_thread(self.identity_provider.sign_out, access_token)
            except Exception as e:
                logger.error(f"❌ Sign-out request failed: {e}")

        self._publish(AuthSnapshot(phase=AuthPhase.SIGNED_OUT))
        return LOGIN_PATH
