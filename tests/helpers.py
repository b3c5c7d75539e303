"""Scripted collaborators and helpers shared by the test modules."""
import asyncio
from typing import Any, List, Optional, Tuple

from solana_watcher.cancellation import CancellationToken
from solana_watcher.models import AccountNotification

WSOL_MINT = "So11111111111111111111111111111111111111112"


async def flush(rounds: int = 50) -> None:
    """Let every ready task on the loop run until the scripted queues are drained."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def notification(slot: int, lamports: int = 0, subscription: int = 1) -> AccountNotification:
    return AccountNotification(subscription=subscription, slot=slot, lamports=lamports, owner="11111111111111111111111111111111")


class Recorder:
    """Callback that records every (error, value) pair it receives."""

    def __init__(self, on_call=None):
        self.calls: List[Tuple[Optional[BaseException], Any]] = []
        self._on_call = on_call

    def __call__(self, error, value):
        self.calls.append((error, value))
        if self._on_call is not None:
            self._on_call(error, value)

    @property
    def values(self) -> List[Any]:
        return [value for error, value in self.calls if error is None]

    @property
    def errors(self) -> List[BaseException]:
        return [error for error, _ in self.calls if error is not None]


async def _next_scripted(queue: asyncio.Queue, abort_signal: Optional[CancellationToken]):
    item = await (abort_signal.run(queue.get()) if abort_signal is not None else queue.get())
    if isinstance(item, BaseException):
        raise item
    return item


class FakeBalanceQueryClient:
    """Stands in for BalanceQueryClient; each response is pushed by the test."""

    def __init__(self):
        self.balances: asyncio.Queue = asyncio.Queue()
        self.token_balances: asyncio.Queue = asyncio.Queue()
        self.balance_calls: List[Tuple[str, str]] = []
        self.token_balance_calls: List[Tuple[str, str]] = []

    async def get_balance(self, address, commitment="confirmed", *, abort_signal=None):
        self.balance_calls.append((address, commitment))
        return await _next_scripted(self.balances, abort_signal)

    async def get_token_account_balance(self, token_account, commitment="confirmed", *, abort_signal=None):
        self.token_balance_calls.append((token_account, commitment))
        return await _next_scripted(self.token_balances, abort_signal)

    async def start(self):
        pass

    async def stop(self):
        pass


class FakeSubscriptionClient:
    """Stands in for AccountSubscriptionClient; notifications are pushed by the test.

    Pushing None ends the stream, pushing an exception raises it from the stream.
    """

    def __init__(self):
        self.notifications: asyncio.Queue = asyncio.Queue()
        self.subscribed: List[Tuple[str, str]] = []

    async def account_notifications(self, address, commitment="confirmed", *, abort_signal=None):
        self.subscribed.append((address, commitment))
        while True:
            item = await _next_scripted(self.notifications, abort_signal)
            if item is None:
                return
            yield item
