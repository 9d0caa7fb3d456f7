"""Negotiation endpoints: open one on a deal, then accept, reject or counter."""

from typing import Any, Awaitable

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from dealroom.errors import (
    NegotiationStateError,
    NotFoundError,
    SubmissionError,
    ValidationError,
)
from dealroom.models import Identity, NegotiationRecord
from dealroom.negotiation import ProposalForm

from ..auth import acting_identity, verify_client_token
from .deals import validation_detail

logger = structlog.get_logger(__name__)

router = APIRouter()


def _parse_form(body: dict[str, Any]) -> ProposalForm:
    try:
        return ProposalForm.model_validate(body)
    except PydanticValidationError as e:
        raise HTTPException(status_code=422, detail={"field": "body", "message": str(e)})


@router.post("/deals/{deal_id}/negotiations", status_code=201)
async def start_negotiation(
    deal_id: str,
    body: dict[str, Any],
    request: Request,
    _auth: None = Depends(verify_client_token),
    actor: Identity = Depends(acting_identity),
):
    """Propose funding terms on an approved deal as the acting lender."""
    log = logger.bind(deal_id=deal_id, identity_id=actor.id)

    deal = next(
        (d for d in request.app.state.catalog.snapshot or () if d.id == deal_id),
        None,
    )
    if deal is None:
        raise HTTPException(status_code=404, detail="Deal not found")

    form = _parse_form(body)
    try:
        negotiation_id = await request.app.state.initiator.propose_funding(deal, actor, form)
    except ValidationError as e:
        log.info("negotiations.invalid_proposal", field=e.field)
        raise HTTPException(status_code=422, detail=validation_detail(e))
    except SubmissionError as e:
        return JSONResponse(status_code=502, content={"error": e.message})

    return {"negotiationId": negotiation_id}


@router.post("/negotiations/{negotiation_id}/accept")
async def accept_proposal(
    negotiation_id: str,
    request: Request,
    _auth: None = Depends(verify_client_token),
    actor: Identity = Depends(acting_identity),
):
    """Accept the latest proposal."""
    return await _run(request.app.state.desk.accept_proposal(negotiation_id, actor))


@router.post("/negotiations/{negotiation_id}/reject")
async def reject_proposal(
    negotiation_id: str,
    request: Request,
    _auth: None = Depends(verify_client_token),
    actor: Identity = Depends(acting_identity),
):
    """Reject the latest proposal and return it to its author for revision."""
    return await _run(request.app.state.desk.reject_proposal(negotiation_id, actor))


@router.post("/negotiations/{negotiation_id}/counter")
async def counter_proposal(
    negotiation_id: str,
    body: dict[str, Any],
    request: Request,
    _auth: None = Depends(verify_client_token),
    actor: Identity = Depends(acting_identity),
):
    """Answer the latest proposal with revised terms."""
    fields = dict(body)
    message = fields.pop("message", None)
    form = _parse_form(fields)
    return await _run(
        request.app.state.desk.submit_counter_proposal(
            negotiation_id, actor, form, message=message
        )
    )


async def _run(action: Awaitable[NegotiationRecord]):
    """Await a desk action and map its errors onto HTTP statuses."""
    try:
        record = await action
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=validation_detail(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except NegotiationStateError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except SubmissionError as e:
        return JSONResponse(status_code=502, content={"error": e.message})
    return record.model_dump(mode="json", by_alias=True)
