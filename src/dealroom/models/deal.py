"""
Deal models mirrored from the backend's submitted-deals collection.

Field names follow the backend's camelCase wire format through aliases and
are populated by name as well. The mirror must hold exactly what the backend
sent, so numeric funding fields stay lenient (number, numeric string, or
missing) and are coerced only where a consumer needs a number.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra='allow')

Numeric = float | int | str | None


class FundingType(str, Enum):
    """Funding product requested by a deal."""

    EMD = 'EMD'
    DOUBLE_CLOSE = 'Double Close'
    GAP_FUNDING = 'Gap Funding'
    BRIDGE_LOAN = 'Bridge Loan'
    NEW_CONSTRUCTION = 'New Construction'
    RENTAL_LOAN = 'Rental Loan'


class ExitStrategy(str, Enum):
    """How the submitter plans to repay."""

    SELL = 'Sell'
    REFINANCE = 'Refinance'


class DealStatus(str, Enum):
    """Approval/lifecycle states owned by the backend. Read-only here."""

    PENDING_REVIEW = 'pending_review'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    FUNDED = 'funded'
    EXPIRED = 'expired'
    INACTIVE = 'inactive'
    NEEDS_INFO = 'needs_info'


def to_number(value: Any) -> float | None:
    """
    Coerce a backend value to a finite float.

    Returns None for missing, blank, boolean or non-numeric input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if number != number or number in (float('inf'), float('-inf')):
        return None
    return number


class BasicInfo(BaseModel):
    """Property facts."""

    model_config = _MODEL_CONFIG

    address: str = ''
    city: str = ''
    state: str = ''
    zip: str = ''
    property_type: str = Field(default='', alias='propertyType')
    condition: str = ''
    bedrooms: str | int | None = None
    bathrooms: str | int | float | None = None
    building_size: str | int | None = Field(default=None, alias='buildingSize')
    lot_size: str | int | None = Field(default=None, alias='lotSize')


class FundingInfo(BaseModel):
    """Funding terms the submitter asked for."""

    model_config = _MODEL_CONFIG

    funding_type: str = Field(default='', alias='fundingType')
    amount_requested: Numeric = Field(default=None, alias='amountRequested')
    projected_return: Numeric = Field(default=None, alias='projectedReturn')
    exit_strategy: str = Field(default='', alias='exitStrategy')
    length_of_funding: Numeric = Field(
        default=None, alias='lengthOfFunding', description='Duration in days'
    )
    arv: Numeric = None
    purchase_price: Numeric = Field(default=None, alias='purchasePrice')
    rehab_cost: Numeric = Field(default=None, alias='rehabCost')


class DescriptionInfo(BaseModel):
    """Free-text description fields."""

    model_config = _MODEL_CONFIG

    brief_description: str = Field(default='', alias='briefDescription')
    market_description: str = Field(default='', alias='marketDescription')
    neighborhood_description: str = Field(default='', alias='neighborhoodDescription')
    investment_highlights: str = Field(default='', alias='investmentHighlights')
    risk_factors: str = Field(default='', alias='riskFactors')


class Attachment(BaseModel):
    """Metadata for an uploaded file attached to a deal."""

    model_config = _MODEL_CONFIG

    name: str
    url: str
    type: str = ''
    size: int = 0


class Deal(BaseModel):
    """
    A funding request as stored by the backend.

    ``status`` and ``created_at`` are owned by the backend; this core never
    edits any Deal field.
    """

    model_config = _MODEL_CONFIG

    id: str | None = None
    submitter_uid: str | None = Field(default=None, alias='submitterUid')
    submitter_role: str | None = Field(default=None, alias='submitterRole')
    status: str = DealStatus.PENDING_REVIEW.value
    created_at: datetime | None = Field(default=None, alias='createdAt')
    updated_at: datetime | None = Field(default=None, alias='updatedAt')

    basic_info: BasicInfo | None = Field(default=None, alias='basicInfo')
    funding_info: FundingInfo | None = Field(default=None, alias='fundingInfo')
    description_info: DescriptionInfo | None = Field(default=None, alias='descriptionInfo')
    attachments: tuple[Attachment, ...] = ()

    image_url: str | None = Field(default=None, alias='imageUrl')
    admin_feedback: str | None = Field(default=None, alias='adminFeedback')

    @property
    def address(self) -> str:
        return self.basic_info.address if self.basic_info else ''

    @property
    def city(self) -> str:
        return self.basic_info.city if self.basic_info else ''

    @property
    def state(self) -> str:
        return self.basic_info.state if self.basic_info else ''

    @property
    def funding_type(self) -> str:
        return self.funding_info.funding_type if self.funding_info else ''

    @property
    def amount_requested(self) -> float | None:
        return to_number(self.funding_info.amount_requested) if self.funding_info else None

    @property
    def projected_return(self) -> float | None:
        return to_number(self.funding_info.projected_return) if self.funding_info else None

    @property
    def is_approved(self) -> bool:
        return self.status == DealStatus.APPROVED.value

    def to_wire(self) -> dict[str, Any]:
        """Serialize using the backend's camelCase field names."""
        return self.model_dump(mode='json', by_alias=True)
