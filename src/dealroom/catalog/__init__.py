"""
Live deal catalog.

- CatalogSynchronizer: guarded push subscriptions over deal collections
- LiveCatalog: stateful mirror + on-demand derived view
- display / CatalogQuery: pure search, facet and sort derivation
"""

from .live import CatalogView, LiveCatalog
from .query import (
    AmountRange,
    AmountRangeFilter,
    CatalogQuery,
    FacetFilter,
    FundingTypeFilter,
    ReturnRange,
    ReturnRangeFilter,
    SortDirection,
    SortKey,
    display,
    facets_from_mapping,
    run_query,
)
from .synchronizer import CatalogSynchronizer, Subscription

__all__ = [
    'AmountRange',
    'AmountRangeFilter',
    'CatalogQuery',
    'CatalogSynchronizer',
    'CatalogView',
    'FacetFilter',
    'FundingTypeFilter',
    'LiveCatalog',
    'ReturnRange',
    'ReturnRangeFilter',
    'SortDirection',
    'SortKey',
    'Subscription',
    'display',
    'facets_from_mapping',
    'run_query',
]
