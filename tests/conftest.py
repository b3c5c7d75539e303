"""Shared test fixtures."""
import pytest
from solders.pubkey import Pubkey

from tests.helpers import FakeBalanceQueryClient, FakeSubscriptionClient


@pytest.fixture
def rpc_client() -> FakeBalanceQueryClient:
    return FakeBalanceQueryClient()


@pytest.fixture
def subscription_client() -> FakeSubscriptionClient:
    return FakeSubscriptionClient()


@pytest.fixture
def address() -> str:
    return str(Pubkey.new_unique())


@pytest.fixture
def owner() -> str:
    return str(Pubkey.new_unique())
