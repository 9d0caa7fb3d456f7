"""
Tests for the session manager: identity tracking, profile readiness, auth.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import flush
from dealroom.errors import AuthError, ValidationError
from dealroom.models import Identity, Profile, Role
from dealroom.onboarding import OnboardingDraft, OnboardingRole
from dealroom.session import SessionManager, SessionState


class ControlledBackend:
    """
    Backend double whose profile fetches resolve only when the test says so.

    ``emit`` plays the backend's identity-change callback.
    """

    def __init__(self):
        self.listener = None
        self.fetches: dict[str, asyncio.Future] = {}
        self.sign_in = AsyncMock()
        self.sign_up = AsyncMock()
        self.sign_out = AsyncMock()
        self.create_profile_document = AsyncMock()

    def on_identity_change(self, callback):
        self.listener = callback
        return MagicMock()

    def emit(self, identity):
        self.listener(identity)

    async def fetch_profile(self, identity_id):
        future = asyncio.get_running_loop().create_future()
        self.fetches[identity_id] = future
        return await future

    def resolve(self, identity_id, role):
        self.fetches[identity_id].set_result(Profile(uid=identity_id, role=role))

    def fail(self, identity_id, exc):
        self.fetches[identity_id].set_exception(exc)


ALICE = Identity(id="alice", email="alice@example.com")
BOB = Identity(id="bob", email="bob@example.com")


@pytest.fixture
def backend():
    return ControlledBackend()


class TestReadiness:
    def test_initial_state_is_loading(self, backend):
        session = SessionManager(backend)

        assert session.state is SessionState.INITIALIZING
        assert session.loading

    @pytest.mark.asyncio
    async def test_no_identity_is_unauthenticated(self, backend):
        session = SessionManager(backend)
        session.start()

        backend.emit(None)

        assert session.state is SessionState.UNAUTHENTICATED
        assert not session.loading
        assert session.identity is None
        await session.wait_until_settled()

    @pytest.mark.asyncio
    async def test_identity_waits_for_profile(self, backend):
        session = SessionManager(backend)
        session.start()

        backend.emit(ALICE)
        await flush()

        assert session.state is SessionState.PROFILE_PENDING
        assert session.loading
        assert session.identity == ALICE
        assert session.role is None

        backend.resolve("alice", Role.LENDER)
        await flush()

        assert session.state is SessionState.READY
        assert not session.loading
        assert session.role is Role.LENDER
        assert session.has_role(Role.LENDER)

    @pytest.mark.asyncio
    async def test_missing_profile_still_settles(self, backend):
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()

        backend.fetches["alice"].set_result(None)
        await flush()

        assert session.state is SessionState.READY
        assert session.profile is None

    @pytest.mark.asyncio
    async def test_fetch_failure_settles_without_profile(self, backend):
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()

        backend.fail("alice", ConnectionError("unavailable"))
        await flush()

        assert session.state is SessionState.READY
        assert session.identity == ALICE
        assert session.profile is None
        assert session.role is None

    @pytest.mark.asyncio
    async def test_listeners_see_every_transition(self, backend):
        session = SessionManager(backend)
        states = []
        session.add_listener(lambda s: states.append(s.state))
        session.start()

        backend.emit(ALICE)
        await flush()
        backend.resolve("alice", Role.INVESTOR)
        await flush()

        assert states == [SessionState.PROFILE_PENDING, SessionState.READY]


class TestStaleProfiles:
    @pytest.mark.asyncio
    async def test_identity_switch_discards_previous_fetch(self, backend):
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()
        alice_fetch = backend.fetches["alice"]

        backend.emit(BOB)
        await flush()
        backend.resolve("bob", Role.INVESTOR)
        await flush()

        assert alice_fetch.cancelled()
        assert session.identity == BOB
        assert session.profile.uid == "bob"
        assert session.role is Role.INVESTOR

    @pytest.mark.asyncio
    async def test_result_for_old_generation_is_not_applied(self, backend):
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()
        old_generation = session.generation
        backend.emit(BOB)
        await flush()

        backend.fetch_profile = AsyncMock(return_value=Profile(uid="alice", role=Role.ADMIN))
        await session._resolve_profile(ALICE, old_generation)

        assert session.identity == BOB
        assert session.profile is None
        assert session.state is SessionState.PROFILE_PENDING

    @pytest.mark.asyncio
    async def test_identity_change_resets_onboarding_draft(self, backend):
        session = SessionManager(backend)
        session.drafts.set(OnboardingDraft(role=OnboardingRole.AGENT, second_answer="Flips"))
        session.start()

        backend.emit(ALICE)

        assert session.drafts.draft is None
        await session.close()


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_during_pending_fetch(self, backend):
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()

        await session.logout()
        await flush()

        backend.sign_out.assert_awaited_once()
        assert backend.fetches["alice"].cancelled()
        assert session.state is SessionState.UNAUTHENTICATED
        assert session.identity is None
        assert session.profile is None

    @pytest.mark.asyncio
    async def test_logout_failure_still_clears_session(self, backend):
        backend.sign_out.side_effect = ConnectionError("network down")
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()
        backend.resolve("alice", Role.LENDER)
        await flush()

        with pytest.raises(AuthError):
            await session.logout()

        assert session.state is SessionState.UNAUTHENTICATED
        assert session.role is None

    @pytest.mark.asyncio
    async def test_logout_transitions_once(self, backend):
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()
        backend.resolve("alice", Role.LENDER)
        await flush()
        states = []
        session.add_listener(lambda s: states.append(s.state))
        generation = session.generation

        await session.logout()
        backend.emit(None)
        await flush()

        assert states == [SessionState.UNAUTHENTICATED]
        assert session.generation == generation + 1

    @pytest.mark.asyncio
    async def test_close_stops_tracking(self, backend):
        session = SessionManager(backend)
        session.start()
        backend.emit(ALICE)
        await flush()
        fetch = backend.fetches["alice"]

        await session.close()

        assert fetch.cancelled()


class TestAuthOperations:
    @pytest.mark.asyncio
    async def test_sign_in_maps_backend_code(self, memory_store):
        session = SessionManager(memory_store)

        with pytest.raises(AuthError) as exc_info:
            await session.sign_in("nobody@example.com", "secret1")

        assert exc_info.value.message == "Invalid email or password. Please try again."
        assert exc_info.value.code == "auth/user-not-found"

    @pytest.mark.asyncio
    async def test_sign_up_creates_profile_and_becomes_ready(self, memory_store):
        session = SessionManager(memory_store)
        session.start()
        await flush()

        identity = await session.sign_up("pat@example.com", "secret1", Role.LENDER)
        await flush()
        await session.wait_until_settled()

        assert session.identity == identity
        assert session.state is SessionState.READY
        assert session.role is Role.LENDER

    @pytest.mark.asyncio
    async def test_sign_up_rejects_admin_role(self, backend):
        session = SessionManager(backend)

        with pytest.raises(ValidationError) as exc_info:
            await session.sign_up("pat@example.com", "secret1", Role.ADMIN)

        assert exc_info.value.field == "role"
        backend.sign_up.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sign_up_duplicate_email(self, memory_store):
        session = SessionManager(memory_store)
        await session.sign_up("pat@example.com", "secret1", Role.INVESTOR)

        with pytest.raises(AuthError) as exc_info:
            await session.sign_up("pat@example.com", "secret1", Role.INVESTOR)

        assert exc_info.value.message == "This email address is already registered."

    @pytest.mark.asyncio
    async def test_sign_in_then_logout(self, memory_store):
        await memory_store.sign_up("pat@example.com", "secret1", {"role": "investor"})
        await memory_store.create_profile_document(
            memory_store.current_identity, {"role": "investor"}
        )
        await memory_store.sign_out()
        session = SessionManager(memory_store)
        session.start()
        await flush()

        await session.sign_in("pat@example.com", "secret1")
        await flush()
        assert session.role is Role.INVESTOR

        await session.logout()
        await flush()
        assert session.state is SessionState.UNAUTHENTICATED
