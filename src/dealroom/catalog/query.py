"""
Catalog query engine.

Pure derivation of the displayed deal list from a raw catalog snapshot plus
search text, facet filters and a sort key. Nothing here mutates its inputs;
every call builds a fresh list, so concurrent derivations cannot interfere.

Facets are typed variants rather than a string-keyed map:
- FundingTypeFilter: exact, case-insensitive match on fundingType
- ReturnRangeFilter: projectedReturn bucket (missing/invalid counts as -1)
- AmountRangeFilter: amountRequested bucket (missing counts as 0)

Sorting is stable. Deals with no value for the sort field always land at
the end of the list, whichever direction is requested.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping

from ..errors import ValidationError
from ..models.deal import Deal, to_number

INACTIVE_FACET_VALUES = frozenset({'', 'all'})


# =============================================================================
# Facet Buckets
# =============================================================================


class ReturnRange(str, Enum):
    """Projected return buckets, percent, bounds inclusive."""

    UP_TO_10 = '0-10'
    FROM_10_TO_15 = '10-15'
    FROM_15_TO_20 = '15-20'
    FROM_20 = '20+'

    @property
    def bounds(self) -> tuple[float, float | None]:
        return _RETURN_BOUNDS[self]

    def contains(self, value: float) -> bool:
        low, high = self.bounds
        return value >= low and (high is None or value <= high)


_RETURN_BOUNDS: dict[ReturnRange, tuple[float, float | None]] = {
    ReturnRange.UP_TO_10: (0, 10),
    ReturnRange.FROM_10_TO_15: (10, 15),
    ReturnRange.FROM_15_TO_20: (15, 20),
    ReturnRange.FROM_20: (20, None),
}


class AmountRange(str, Enum):
    """Amount requested buckets, dollars, bounds inclusive."""

    UP_TO_50K = '0-50000'
    FROM_50K_TO_100K = '50001-100000'
    FROM_100K_TO_250K = '100001-250000'
    FROM_250K_TO_500K = '250001-500000'
    FROM_500K = '500001+'

    @property
    def bounds(self) -> tuple[float, float | None]:
        return _AMOUNT_BOUNDS[self]

    def contains(self, value: float) -> bool:
        low, high = self.bounds
        return value >= low and (high is None or value <= high)


_AMOUNT_BOUNDS: dict[AmountRange, tuple[float, float | None]] = {
    AmountRange.UP_TO_50K: (0, 50000),
    AmountRange.FROM_50K_TO_100K: (50001, 100000),
    AmountRange.FROM_100K_TO_250K: (100001, 250000),
    AmountRange.FROM_250K_TO_500K: (250001, 500000),
    AmountRange.FROM_500K: (500001, None),
}


# =============================================================================
# Facet Filters
# =============================================================================


@dataclass(frozen=True)
class FundingTypeFilter:
    """Exact funding type match, ignoring case."""

    value: str

    def matches(self, deal: Deal) -> bool:
        return deal.funding_type.casefold() == self.value.casefold()


@dataclass(frozen=True)
class ReturnRangeFilter:
    """Projected return within a bucket."""

    bucket: ReturnRange

    def matches(self, deal: Deal) -> bool:
        value = deal.projected_return
        return self.bucket.contains(-1 if value is None else value)


@dataclass(frozen=True)
class AmountRangeFilter:
    """Amount requested within a bucket."""

    bucket: AmountRange

    def matches(self, deal: Deal) -> bool:
        value = deal.amount_requested
        return self.bucket.contains(0 if value is None else value)


FacetFilter = FundingTypeFilter | ReturnRangeFilter | AmountRangeFilter


def _is_active(value: str | None) -> bool:
    return value is not None and value.strip().lower() not in INACTIVE_FACET_VALUES


def facets_from_mapping(params: Mapping[str, str | None]) -> tuple[FacetFilter, ...]:
    """
    Build typed facet filters from rendering-layer string parameters.

    Keys are ``fundingType``, ``projectedReturn`` and ``amountRequested``;
    values of ``"all"`` or empty leave the facet inactive.

    Raises:
        ValidationError: unknown key or bucket
    """
    facets: list[FacetFilter] = []
    for key, value in params.items():
        if not _is_active(value):
            continue
        value = value.strip()
        if key == 'fundingType':
            facets.append(FundingTypeFilter(value))
        elif key == 'projectedReturn':
            try:
                facets.append(ReturnRangeFilter(ReturnRange(value)))
            except ValueError:
                raise ValidationError(f"Unknown return range '{value}'", field=key)
        elif key == 'amountRequested':
            try:
                facets.append(AmountRangeFilter(AmountRange(value)))
            except ValueError:
                raise ValidationError(f"Unknown amount range '{value}'", field=key)
        else:
            raise ValidationError(f"Unknown facet '{key}'", field='facet')
    return tuple(facets)


# =============================================================================
# Sort Keys
# =============================================================================


class SortDirection(str, Enum):
    ASC = 'asc'
    DESC = 'desc'


@dataclass(frozen=True)
class SortKey:
    """A ``<field>-<direction>`` sort specification."""

    field: str
    direction: SortDirection = SortDirection.DESC

    @classmethod
    def parse(cls, text: str) -> 'SortKey':
        """
        Parse ``createdAt-desc`` style keys.

        Raises:
            ValidationError: missing field or unknown direction
        """
        name, _, direction = text.strip().rpartition('-')
        if not name:
            raise ValidationError(f"Malformed sort key '{text}'", field='sortKey')
        try:
            return cls(name, SortDirection(direction.lower()))
        except ValueError:
            raise ValidationError(f"Unknown sort direction in '{text}'", field='sortKey')

    def __str__(self) -> str:
        return f'{self.field}-{self.direction.value}'


DEFAULT_SORT = SortKey('createdAt', SortDirection.DESC)


def _deal_attribute(deal: Deal, name: str) -> Any:
    for field_name, info in Deal.model_fields.items():
        if name in (field_name, info.alias):
            return getattr(deal, field_name)
    extra = deal.model_extra or {}
    if name in extra:
        return extra[name]
    if name.startswith('_'):
        return None
    return getattr(deal, name, None)


def _sort_value(deal: Deal, name: str) -> tuple[int, Any] | None:
    """Comparable value for ``name``, or None when the deal has none."""
    if name == 'createdAt':
        value: Any = deal.created_at
    elif name == 'projectedReturn':
        value = deal.projected_return
    elif name == 'amountRequested':
        value = deal.amount_requested
    else:
        value = _deal_attribute(deal, name)

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return (0, value.timestamp())
    if isinstance(value, (int, float)):
        number = to_number(value)
        return None if number is None else (0, number)
    if isinstance(value, str):
        return (1, value) if value else None
    return None


def sort_deals(deals: Iterable[Deal], sort_key: SortKey) -> list[Deal]:
    """Stable sort with missing values last in either direction."""
    present: list[tuple[tuple[int, Any], Deal]] = []
    missing: list[Deal] = []
    for deal in deals:
        value = _sort_value(deal, sort_key.field)
        if value is None:
            missing.append(deal)
        else:
            present.append((value, deal))
    present.sort(key=lambda pair: pair[0], reverse=sort_key.direction is SortDirection.DESC)
    return [deal for _, deal in present] + missing


# =============================================================================
# Search + Display
# =============================================================================


def matches_search(deal: Deal, search_query: str) -> bool:
    """Substring match on address, city, state or funding type, ignoring case."""
    needle = search_query.strip().casefold()
    if not needle:
        return True
    haystack = (deal.address, deal.city, deal.state, deal.funding_type)
    return any(needle in (text or '').casefold() for text in haystack)


@dataclass(frozen=True)
class CatalogQuery:
    """Everything the rendering layer controls about the displayed list."""

    search: str = ''
    facets: tuple[FacetFilter, ...] = field(default_factory=tuple)
    sort: SortKey = DEFAULT_SORT

    @classmethod
    def from_params(
        cls,
        search: str | None = None,
        funding_type: str | None = None,
        projected_return: str | None = None,
        amount_requested: str | None = None,
        sort: str | None = None,
    ) -> 'CatalogQuery':
        """Build a query from raw string parameters; blank/``all`` means unset."""
        facets = facets_from_mapping({
            'fundingType': funding_type,
            'projectedReturn': projected_return,
            'amountRequested': amount_requested,
        })
        return cls(
            search=search or '',
            facets=facets,
            sort=SortKey.parse(sort) if sort else DEFAULT_SORT,
        )


def display(
    raw_deals: Iterable[Deal],
    search_query: str = '',
    facet_filters: Iterable[FacetFilter] = (),
    sort_key: SortKey | str = DEFAULT_SORT,
) -> list[Deal]:
    """
    Derive the displayed list from a raw catalog snapshot.

    Args:
        raw_deals: Catalog snapshot (never modified)
        search_query: Free text; empty disables search
        facet_filters: Active facets; a deal must satisfy all of them
        sort_key: SortKey or its ``<field>-<direction>`` string form

    Returns:
        New list holding a subset of ``raw_deals`` in display order
    """
    if isinstance(sort_key, str):
        sort_key = SortKey.parse(sort_key)
    facets = tuple(facet_filters)
    selected = [
        deal
        for deal in raw_deals
        if matches_search(deal, search_query) and all(f.matches(deal) for f in facets)
    ]
    return sort_deals(selected, sort_key)


def run_query(raw_deals: Iterable[Deal], query: CatalogQuery) -> list[Deal]:
    """``display`` driven by a CatalogQuery."""
    return display(raw_deals, query.search, query.facets, query.sort)
