"""
Pytest configuration and shared fixtures.

Key fixtures:
- deal_factory: builds Deal models from camelCase overrides
- sample_deals: a small approved catalog with mixed and missing values
- memory_store: empty in-process backend
- api_token: sets DEALROOM_API_TOKEN and resets the cached API settings
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)

from dealroom.backend import MemoryStore
from dealroom.models import Deal


async def flush(rounds: int = 5) -> None:
    """Let callbacks scheduled with loop.call_soon (and tasks they start) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_deal(**overrides: Any) -> Deal:
    """An approved deal; top-level keys override, nested dicts replace wholesale."""
    data: dict[str, Any] = {
        'id': 'deal_1',
        'submitterUid': 'borrower_1',
        'submitterRole': 'investor',
        'status': 'approved',
        'createdAt': '2024-03-01T12:00:00Z',
        'basicInfo': {
            'address': '12 Oak Street',
            'city': 'Austin',
            'state': 'TX',
            'zip': '78701',
            'propertyType': 'Single Family',
        },
        'fundingInfo': {
            'fundingType': 'Bridge Loan',
            'amountRequested': 250000,
            'projectedReturn': 12,
            'exitStrategy': 'Sell',
            'lengthOfFunding': 180,
        },
    }
    data.update(overrides)
    return Deal.model_validate(data)


@pytest.fixture
def deal_factory() -> Callable[..., Deal]:
    """Factory for approved deals."""
    return make_deal


@pytest.fixture
def sample_deals() -> list[Deal]:
    """
    Five approved deals.

    d_missing has no projectedReturn and no amountRequested; d_text stores
    its numbers as strings the way some submissions do.
    """
    return [
        make_deal(
            id='d_austin',
            createdAt='2024-03-01T12:00:00Z',
        ),
        make_deal(
            id='d_miami',
            createdAt='2024-03-05T12:00:00Z',
            basicInfo={'address': '400 Ocean Drive', 'city': 'Miami', 'state': 'FL'},
            fundingInfo={
                'fundingType': 'EMD',
                'amountRequested': 40000,
                'projectedReturn': 8,
                'exitStrategy': 'Sell',
                'lengthOfFunding': 30,
            },
        ),
        make_deal(
            id='d_denver',
            createdAt='2024-02-20T12:00:00Z',
            basicInfo={'address': '9 Pine Road', 'city': 'Denver', 'state': 'CO'},
            fundingInfo={
                'fundingType': 'Gap Funding',
                'amountRequested': 600000,
                'projectedReturn': 22,
                'exitStrategy': 'Refinance',
                'lengthOfFunding': 365,
            },
        ),
        make_deal(
            id='d_missing',
            createdAt='2024-03-03T12:00:00Z',
            basicInfo={'address': '77 Elm Court', 'city': 'Dallas', 'state': 'TX'},
            fundingInfo={'fundingType': 'Rental Loan'},
        ),
        make_deal(
            id='d_text',
            createdAt='2024-02-25T12:00:00Z',
            basicInfo={'address': '5 Birch Lane', 'city': 'Houston', 'state': 'TX'},
            fundingInfo={
                'fundingType': 'Bridge Loan',
                'amountRequested': '75000',
                'projectedReturn': '15',
                'exitStrategy': 'Sell',
                'lengthOfFunding': '90',
            },
        ),
    ]


@pytest.fixture
def memory_store() -> MemoryStore:
    """Empty in-process backend."""
    return MemoryStore()


@pytest.fixture
def api_token(monkeypatch) -> str:
    """Configure the API bearer token for the duration of a test."""
    from dealroom.api.config import get_settings

    token = 'test-api-token'
    monkeypatch.setenv('DEALROOM_API_TOKEN', token)
    monkeypatch.delenv('DEALROOM_SEED_PATH', raising=False)
    get_settings.cache_clear()
    yield token
    get_settings.cache_clear()
