"""GET /deals: the derived catalog list for the rendering layer."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from dealroom.catalog import CatalogQuery
from dealroom.errors import ValidationError

from ..auth import verify_client_token

logger = structlog.get_logger(__name__)

router = APIRouter()


def validation_detail(exc: ValidationError) -> dict[str, str]:
    """422 body naming the offending field."""
    return {"field": exc.field, "message": exc.message}


@router.get("/deals")
async def list_deals(
    request: Request,
    search: str = "",
    funding_type: str | None = Query(None, alias="fundingType"),
    projected_return: str | None = Query(None, alias="projectedReturn"),
    amount_requested: str | None = Query(None, alias="amountRequested"),
    sort: str | None = None,
    _auth: None = Depends(verify_client_token),
):
    """Search, filter and sort the approved-deal catalog."""
    try:
        query = CatalogQuery.from_params(
            search=search,
            funding_type=funding_type,
            projected_return=projected_return,
            amount_requested=amount_requested,
            sort=sort or request.app.state.default_sort,
        )
    except ValidationError as e:
        logger.info("deals.invalid_query", field=e.field, error=e.message)
        raise HTTPException(status_code=422, detail=validation_detail(e))

    view = request.app.state.catalog.view(query)
    return {
        "deals": None if view.deals is None else [deal.to_wire() for deal in view.deals],
        "total": view.total,
        "loading": view.loading,
        "error": view.error,
        "sort": str(query.sort),
    }


@router.get("/deals/{deal_id}")
async def get_deal(
    deal_id: str,
    request: Request,
    _auth: None = Depends(verify_client_token),
):
    """A single approved deal from the live catalog."""
    snapshot = request.app.state.catalog.snapshot or ()
    for deal in snapshot:
        if deal.id == deal_id:
            return deal.to_wire()
    raise HTTPException(status_code=404, detail="Deal not found")
