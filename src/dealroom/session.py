"""
Session manager: identity and role-profile readiness.

States:
    initializing -> unauthenticated                  (no identity)
    initializing -> profile_pending -> ready         (identity, profile fetched)

``loading`` is true in ``initializing`` and ``profile_pending``; nothing
protected may render while it is.

Every identity change bumps a generation counter and stamps the profile
fetch it starts with that generation. A fetch that resolves after a newer
identity change is discarded instead of applied, so a slow profile lookup
for a previous user can never land on the current one.

The manager is constructed explicitly and passed to the route guard,
catalog consumers and the negotiation initiator; there is no module-level
session.
"""

import asyncio
from enum import Enum
from typing import Callable

import structlog

from .backend.base import Backend, Unsubscribe
from .errors import ValidationError, wrap_auth_error
from .models.identity import Identity, Profile, Role
from .onboarding import OnboardingDraftStore

logger = structlog.get_logger(__name__)

SIGN_UP_ROLES = (Role.INVESTOR, Role.LENDER)


class SessionState(str, Enum):
    INITIALIZING = 'initializing'
    UNAUTHENTICATED = 'unauthenticated'
    PROFILE_PENDING = 'profile_pending'
    READY = 'ready'


Listener = Callable[['SessionManager'], None]


class SessionManager:
    """Tracks the current identity and its role profile."""

    def __init__(
        self,
        backend: Backend,
        drafts: OnboardingDraftStore | None = None,
    ):
        self.backend = backend
        self.drafts = drafts or OnboardingDraftStore()

        self._identity: Identity | None = None
        self._profile: Profile | None = None
        self._state = SessionState.INITIALIZING
        self._generation = 0
        self._profile_task: asyncio.Task | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._listeners: list[Listener] = []
        self._settled = asyncio.Event()

    # =========================================================================
    # Read side
    # =========================================================================

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def profile(self) -> Profile | None:
        return self._profile

    @property
    def role(self) -> Role | None:
        return self._profile.role if self._profile else None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state in (SessionState.INITIALIZING, SessionState.PROFILE_PENDING)

    @property
    def generation(self) -> int:
        """Profile-fetch generation; bumped on every identity change and profile refresh."""
        return self._generation

    def has_role(self, role: Role) -> bool:
        return self.role is role

    async def wait_until_settled(self) -> None:
        """Block until ``loading`` is false."""
        await self._settled.wait()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` on every state change. Returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Begin tracking backend identity changes. Call from the event loop."""
        if self._unsubscribe is None:
            self._unsubscribe = self.backend.on_identity_change(self._apply_identity)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task = self._cancel_profile_fetch()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # =========================================================================
    # Auth operations
    # =========================================================================

    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Sign in with email and password.

        The session state follows through the backend's identity callback.

        Raises:
            AuthError: with a user-facing message
        """
        try:
            identity = await self.backend.sign_in(email, password)
        except Exception as exc:
            error = wrap_auth_error(exc)
            logger.warning('session.sign_in_failed', code=error.code)
            raise error from exc
        logger.info('session.signed_in', identity_id=identity.id)
        return identity

    async def sign_up(self, email: str, password: str, role: Role) -> Identity:
        """
        Create an account and its role profile document.

        Raises:
            ValidationError: role is not one a user can pick at sign-up
            AuthError: with a user-facing message
        """
        if role not in SIGN_UP_ROLES:
            raise ValidationError('Choose investor or lender', field='role')
        attrs = {'role': role.value}
        try:
            identity = await self.backend.sign_up(email, password, attrs)
            await self.backend.create_profile_document(identity, attrs)
        except Exception as exc:
            error = wrap_auth_error(exc)
            logger.warning('session.sign_up_failed', code=error.code)
            raise error from exc

        logger.info('session.signed_up', identity_id=identity.id, role=role.value)
        # The identity callback may already have fetched (and missed) the profile
        if self._identity is not None and self._identity.id == identity.id:
            self._refresh_profile()
        return identity

    async def logout(self) -> None:
        """
        Revoke the remote session and clear role-scoped client state.

        The session ends up unauthenticated whether or not the backend call
        succeeds, and regardless of any profile fetch still in flight.

        Raises:
            AuthError: the backend failed to revoke the session
        """
        logger.info('session.signing_out', identity_id=self._identity.id if self._identity else None)
        try:
            await self.backend.sign_out()
        except Exception as exc:
            error = wrap_auth_error(exc)
            logger.error('session.sign_out_failed', error=str(exc))
            raise error from exc
        finally:
            self._apply_identity(None)

    # =========================================================================
    # State machine
    # =========================================================================

    def _apply_identity(self, identity: Identity | None) -> None:
        if identity is None and self._identity is None and self._state is SessionState.UNAUTHENTICATED:
            logger.debug('session.identity_unchanged', generation=self._generation)
            return
        self._generation += 1
        self._cancel_profile_fetch()
        self.drafts.reset()
        self._identity = identity
        self._profile = None
        logger.info(
            'session.identity_changed',
            identity_id=identity.id if identity else None,
            generation=self._generation,
        )
        if identity is None:
            self._set_state(SessionState.UNAUTHENTICATED)
            return
        self._start_profile_fetch(identity)

    def _refresh_profile(self) -> None:
        if self._identity is None:
            return
        self._generation += 1
        self._cancel_profile_fetch()
        self._start_profile_fetch(self._identity)

    def _start_profile_fetch(self, identity: Identity) -> None:
        self._set_state(SessionState.PROFILE_PENDING)
        self._profile_task = asyncio.get_running_loop().create_task(
            self._resolve_profile(identity, self._generation)
        )

    def _cancel_profile_fetch(self) -> asyncio.Task | None:
        task, self._profile_task = self._profile_task, None
        if task is not None and not task.done():
            task.cancel()
            return task
        return None

    async def _resolve_profile(self, identity: Identity, generation: int) -> None:
        log = logger.bind(identity_id=identity.id, generation=generation)
        profile: Profile | None = None
        try:
            profile = await self.backend.fetch_profile(identity.id)
        except Exception as exc:
            # Readiness still completes; role-gated routes see no role
            log.error('session.profile_fetch_failed', error=str(exc), error_type=type(exc).__name__)

        if generation != self._generation:
            log.info('session.stale_profile_discarded', current_generation=self._generation)
            return

        self._profile = profile
        log.info('session.ready', role=profile.role.value if profile else None)
        self._set_state(SessionState.READY)

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        if self.loading:
            self._settled.clear()
        else:
            self._settled.set()
        for listener in list(self._listeners):
            listener(self)
