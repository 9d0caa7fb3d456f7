"""
Negotiation initiator.

Validates a lender's funding proposal against the selected deal and the
current identity, then asks the backend to open a negotiation.

Flow:
1. Check deal ID, submitter, address and proposer (ValidationError, no
   backend call)
2. Build the proposed term set from the form and the original term set
   from the deal's funding info
3. Submit one NegotiationRequest; return the backend-assigned ID or raise
   SubmissionError

There is no retry and no deduplication: each successful call creates a
new negotiation record.
"""

import structlog

from ..backend.base import Backend
from ..errors import DealroomError, ValidationError, wrap_submission_error
from ..logging import logging_context
from ..models.deal import Deal
from ..models.identity import Identity
from ..models.negotiation import NegotiationRequest
from .terms import ProposalForm, original_terms_from_deal, proposed_terms_from_form

logger = structlog.get_logger(__name__)


def build_request(
    deal: Deal | None,
    proposer: Identity | None,
    form: ProposalForm,
) -> NegotiationRequest:
    """
    Validate inputs and assemble the backend request. Pure; no I/O.

    Raises:
        ValidationError: naming the first missing or invalid field
    """
    if deal is None or not deal.id:
        raise ValidationError('Deal ID is missing', field='deal.id')
    if not deal.submitter_uid:
        raise ValidationError('Deal has no submitter', field='deal.submitterUid')
    if not deal.address.strip():
        raise ValidationError('Deal has no property address', field='deal.basicInfo.address')
    if proposer is None or not proposer.id:
        raise ValidationError('Sign in to propose funding', field='proposer')

    return NegotiationRequest(
        deal_id=deal.id,
        borrower_id=deal.submitter_uid,
        lender_id=proposer.id,
        proposed_terms=proposed_terms_from_form(form),
        original_terms=original_terms_from_deal(deal),
        deal_address=deal.address,
    )


class NegotiationInitiator:
    """Submits funding proposals to the backend."""

    def __init__(self, backend: Backend):
        self.backend = backend

    async def propose_funding(
        self,
        deal: Deal | None,
        proposer: Identity | None,
        form: ProposalForm,
    ) -> str:
        """
        Open a negotiation on ``deal`` with the proposed terms.

        Returns:
            Backend-assigned negotiation ID

        Raises:
            ValidationError: before any backend call
            SubmissionError: the backend rejected the request
        """
        request = build_request(deal, proposer, form)

        with logging_context(identity_id=request.lender_id, deal_id=request.deal_id):
            changed = request.original_terms.diff(request.proposed_terms)
            logger.info('negotiation.submitting', changed_terms=sorted(changed))
            try:
                negotiation_id = await self.backend.start_negotiation(request)
            except Exception as exc:
                error = wrap_submission_error(exc, context={'deal_id': request.deal_id})
                logger.error('negotiation.submit_failed', error=error.message)
                raise error from exc
            logger.info('negotiation.submitted', negotiation_id=negotiation_id)

        return negotiation_id


class ProposalSubmission:
    """
    Form state for one proposal on one deal.

    Keeps the user's input across failures so they can resubmit, and
    always clears ``submitting`` when a submission finishes.
    """

    def __init__(self, deal: Deal, form: ProposalForm | None = None):
        self.deal = deal
        self.form = form or ProposalForm.from_deal(deal)
        self.submitting = False
        self.error: DealroomError | None = None
        self.negotiation_id: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.negotiation_id is not None

    @property
    def error_field(self) -> str | None:
        """Offending field for validation failures, for inline display."""
        return self.error.field if isinstance(self.error, ValidationError) else None

    def update(self, **changes: object) -> None:
        """Edit form fields by name."""
        self.form = self.form.model_copy(update=changes)

    async def submit(
        self,
        initiator: NegotiationInitiator,
        proposer: Identity | None,
    ) -> str | None:
        """
        Submit the current form.

        Returns:
            Negotiation ID, or None when the submission failed (see ``error``)
            or another submission from this form is still in flight
        """
        if self.submitting:
            return None
        self.submitting = True
        self.error = None
        try:
            self.negotiation_id = await initiator.propose_funding(self.deal, proposer, self.form)
            return self.negotiation_id
        except DealroomError as exc:
            self.error = exc
            return None
        finally:
            self.submitting = False
