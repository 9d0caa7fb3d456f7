"""
Tests for the in-process reference backend.
"""

import json
from unittest.mock import MagicMock

import pytest

from conftest import flush
from dealroom.backend import BackendAuthFailure, MemoryStore
from dealroom.errors import BackendError, NotFoundError
from dealroom.models import (
    Identity,
    NegotiationRequest,
    NegotiationStatus,
    NegotiationTermSet,
    Party,
    Role,
)


def _request(**overrides) -> NegotiationRequest:
    data = dict(
        deal_id="d1",
        borrower_id="b1",
        lender_id="l1",
        proposed_terms=NegotiationTermSet(amount=200000, return_rate=11, length_of_funding=120),
        original_terms=NegotiationTermSet(amount=250000, return_rate=12, length_of_funding=180),
        deal_address="12 Oak Street",
    )
    data.update(overrides)
    return NegotiationRequest(**data)


class TestDeals:
    def test_put_deal_assigns_id_and_created_at(self, memory_store):
        deal = memory_store.put_deal({"status": "approved"})

        assert deal.id
        assert deal.created_at is not None
        assert memory_store.get_deal(deal.id) == deal

    def test_remove_unknown_deal(self, memory_store):
        with pytest.raises(NotFoundError):
            memory_store.remove_deal("missing")

    def test_set_status_unknown_deal(self, memory_store):
        with pytest.raises(NotFoundError):
            memory_store.set_deal_status("missing", "approved")

    def test_inline_delivery_without_loop(self, memory_store, deal_factory):
        on_snapshot = MagicMock()
        memory_store.subscribe_approved_deals(on_snapshot, MagicMock())

        memory_store.put_deal(deal_factory(id="d1"))

        assert on_snapshot.call_count == 2
        assert [d.id for d in on_snapshot.call_args[0][0]] == ["d1"]

    @pytest.mark.asyncio
    async def test_deliveries_scheduled_on_running_loop(self, memory_store, deal_factory):
        on_snapshot = MagicMock()
        memory_store.subscribe_approved_deals(on_snapshot, MagicMock())
        memory_store.put_deal(deal_factory(id="d1"))

        on_snapshot.assert_not_called()
        await flush()

        assert on_snapshot.call_count == 2

    @pytest.mark.asyncio
    async def test_unsubscribe_cancels_queued_delivery(self, memory_store):
        on_snapshot = MagicMock()
        unsubscribe = memory_store.subscribe_approved_deals(on_snapshot, MagicMock())

        unsubscribe()
        await flush()

        on_snapshot.assert_not_called()
        assert memory_store.subscription_count == 0

    def test_fail_subscriptions(self, memory_store):
        on_error = MagicMock()
        memory_store.subscribe_approved_deals(MagicMock(), on_error)

        memory_store.fail_subscriptions("revoked")

        error = on_error.call_args[0][0]
        assert isinstance(error, BackendError)
        assert error.message == "revoked"
        assert memory_store.subscription_count == 0

    def test_load_seed(self, memory_store, tmp_path):
        seed = tmp_path / "seed.json"
        seed.write_text(json.dumps({
            "deals": [{"id": "s1", "status": "approved", "basicInfo": {"address": "1 Seed Way"}}],
            "profiles": [{"uid": "u1", "role": "lender"}],
        }))

        memory_store.load_seed(seed)

        assert memory_store.get_deal("s1").address == "1 Seed Way"


class TestProfiles:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, memory_store):
        identity = Identity(id="u1", email="a@example.com")

        await memory_store.create_profile_document(identity, {"role": "investor"})
        profile = await memory_store.fetch_profile("u1")

        assert profile.role is Role.INVESTOR
        assert profile.email == "a@example.com"
        assert profile.created_at is not None

    @pytest.mark.asyncio
    async def test_create_does_not_overwrite(self, memory_store):
        memory_store.put_profile({"uid": "u1", "role": "admin"})

        await memory_store.create_profile_document(Identity(id="u1"), {"role": "investor"})

        assert (await memory_store.fetch_profile("u1")).role is Role.ADMIN

    @pytest.mark.asyncio
    async def test_missing_profile_is_none(self, memory_store):
        assert await memory_store.fetch_profile("nobody") is None


class TestNegotiations:
    @pytest.mark.asyncio
    async def test_start_creates_pending_record(self, memory_store):
        negotiation_id = await memory_store.start_negotiation(_request())
        record = await memory_store.get_negotiation(negotiation_id)

        assert record.status is NegotiationStatus.PENDING_BORROWER_RESPONSE
        assert record.initial_proposal.proposed_by is Party.LENDER
        assert record.initial_proposal.terms.amount == 200000.0
        assert record.original_terms.amount == 250000.0
        assert record.counter_proposals == ()
        assert memory_store.negotiations_for("b1") == [record]
        assert memory_store.negotiations_for("l1") == [record]

    @pytest.mark.asyncio
    async def test_each_start_creates_new_record(self, memory_store):
        first = await memory_store.start_negotiation(_request())
        second = await memory_store.start_negotiation(_request())

        assert first != second

    @pytest.mark.asyncio
    async def test_injected_failure_is_one_shot(self, memory_store):
        memory_store.negotiation_failure = RuntimeError("quota exceeded")

        with pytest.raises(RuntimeError, match="quota exceeded"):
            await memory_store.start_negotiation(_request())
        assert await memory_store.start_negotiation(_request())

    @pytest.mark.asyncio
    async def test_get_unknown(self, memory_store):
        with pytest.raises(NotFoundError):
            await memory_store.get_negotiation("nope")

    @pytest.mark.asyncio
    async def test_update_merges_changes(self, memory_store):
        negotiation_id = await memory_store.start_negotiation(_request())
        before = await memory_store.get_negotiation(negotiation_id)

        updated = await memory_store.update_negotiation(
            negotiation_id, {"status": NegotiationStatus.REJECTED_PENDING_LENDER_REVISION}
        )

        assert updated.status is NegotiationStatus.REJECTED_PENDING_LENDER_REVISION
        assert updated.initial_proposal == before.initial_proposal
        assert updated.updated_at >= before.updated_at


class TestIdentity:
    @pytest.mark.asyncio
    async def test_sign_up_then_sign_in(self, memory_store):
        created = await memory_store.sign_up("Pat@Example.com", "secret1", {"role": "lender"})
        await memory_store.sign_out()

        identity = await memory_store.sign_in("pat@example.com", "secret1")

        assert identity == created
        assert memory_store.current_identity == identity

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email, password, code", [
        ("nobody@example.com", "secret1", "auth/user-not-found"),
        ("pat@example.com", "wrong-one", "auth/wrong-password"),
    ])
    async def test_sign_in_failures(self, memory_store, email, password, code):
        await memory_store.sign_up("pat@example.com", "secret1", {})

        with pytest.raises(BackendAuthFailure) as exc_info:
            await memory_store.sign_in(email, password)
        assert exc_info.value.code == code

    @pytest.mark.asyncio
    async def test_sign_up_failures(self, memory_store):
        await memory_store.sign_up("pat@example.com", "secret1", {})

        with pytest.raises(BackendAuthFailure) as exc_info:
            await memory_store.sign_up("PAT@example.com", "secret1", {})
        assert exc_info.value.code == "auth/email-already-in-use"

        with pytest.raises(BackendAuthFailure) as exc_info:
            await memory_store.sign_up("new@example.com", "12345", {})
        assert exc_info.value.code == "auth/weak-password"

    @pytest.mark.asyncio
    async def test_identity_listeners(self, memory_store):
        seen = []
        unsubscribe = memory_store.on_identity_change(seen.append)
        await flush()

        identity = await memory_store.sign_up("pat@example.com", "secret1", {})
        await flush()
        unsubscribe()
        await memory_store.sign_out()
        await flush()

        assert seen == [None, identity]


class TestStandalone:
    def test_identity_listener_inline_without_loop(self):
        store = MemoryStore()
        seen = []

        store.on_identity_change(seen.append)

        assert seen == [None]
