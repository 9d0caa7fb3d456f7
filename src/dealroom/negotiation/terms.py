"""
Term-set construction.

Turns the raw proposal form into a validated proposed NegotiationTermSet,
and a deal's current funding info into its original term set, so the two
share one shape and can be compared field by field.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ValidationError
from ..models.deal import Deal, ExitStrategy, FundingType, to_number
from ..models.negotiation import NegotiationTermSet

FormValue = str | int | float | None


class ProposalForm(BaseModel):
    """Raw proposal inputs as typed by the lender."""

    model_config = ConfigDict(populate_by_name=True)

    amount: FormValue = Field(default='', alias='proposedAmount')
    return_rate: FormValue = Field(default='', alias='proposedReturn')
    funding_type: str = Field(default='', alias='proposedFundingType')
    exit_strategy: str = Field(default='', alias='proposedExitStrategy')
    length_of_funding: FormValue = Field(default='', alias='proposedLengthOfFunding')

    @classmethod
    def from_deal(cls, deal: Deal) -> 'ProposalForm':
        """Pre-fill the form with the deal's current funding terms."""
        info = deal.funding_info
        if info is None:
            return cls()
        return cls(
            amount=_as_text(to_number(info.amount_requested) or 0.0),
            return_rate=_as_text(to_number(info.projected_return) or 0.0),
            funding_type=info.funding_type or '',
            exit_strategy=info.exit_strategy or '',
            length_of_funding=_as_text(to_number(info.length_of_funding)),
        )


def _as_text(value: float | None) -> str:
    if value is None:
        return ''
    return str(int(value)) if value.is_integer() else str(value)


def _required_number(value: Any, field: str, label: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f'{label} is required', field=field)
    number = to_number(value)
    if number is None:
        raise ValidationError(f'{label} must be a number', field=field, context={'value': value})
    return number


def _enum_or_none(enum_cls: type, value: Any, field: str) -> Any:
    if value is None or value == '':
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {field} '{value}'", field=field)


def proposed_terms_from_form(form: ProposalForm) -> NegotiationTermSet:
    """
    Validate and coerce a proposal form.

    Raises:
        ValidationError: missing or non-numeric amount, rate or length;
            negative amount or rate; non-positive length; unknown
            funding type or exit strategy
    """
    amount = _required_number(form.amount, 'amount', 'Amount')
    if amount < 0:
        raise ValidationError('Amount cannot be negative', field='amount')
    return_rate = _required_number(form.return_rate, 'returnRate', 'Return rate')
    if return_rate < 0:
        raise ValidationError('Return rate cannot be negative', field='returnRate')
    length = _required_number(form.length_of_funding, 'lengthOfFunding', 'Length of funding')
    if length <= 0:
        raise ValidationError('Length of funding must be at least one day', field='lengthOfFunding')

    return NegotiationTermSet(
        amount=amount,
        return_rate=return_rate,
        funding_type=_enum_or_none(FundingType, form.funding_type, 'fundingType'),
        exit_strategy=_enum_or_none(ExitStrategy, form.exit_strategy, 'exitStrategy'),
        length_of_funding=length,
    )


def original_terms_from_deal(deal: Deal) -> NegotiationTermSet:
    """The deal's current funding terms; missing numbers become 0."""
    info = deal.funding_info
    if info is None:
        return NegotiationTermSet()
    try:
        funding_type = FundingType(info.funding_type)
    except ValueError:
        funding_type = None
    try:
        exit_strategy = ExitStrategy(info.exit_strategy)
    except ValueError:
        exit_strategy = None
    return NegotiationTermSet(
        amount=to_number(info.amount_requested) or 0,
        return_rate=to_number(info.projected_return) or 0,
        funding_type=funding_type,
        exit_strategy=exit_strategy,
        length_of_funding=to_number(info.length_of_funding) or 0,
    )
