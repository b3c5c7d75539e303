# -*- coding: utf-8 -*-
from typing import AsyncIterator, Literal

from .addresses import parse_address
from .cancellation import CancellationToken
from .models import BalanceUpdate
from .rpc_client import BalanceQueryClient
from .watcher import BalanceWatcher
from .websocket_client import AccountSubscriptionClient


class NativeBalanceWatcher(BalanceWatcher[str]):
    """Observa el balance en lamports de una dirección."""

    def __init__(self,
                    rpc_client: BalanceQueryClient,
                    subscription_client: AccountSubscriptionClient,
                    commitment: Literal["finalized", "confirmed", "processed"] = "confirmed"):
        super().__init__()
        self.rpc_client = rpc_client
        self.subscription_client = subscription_client
        self.commitment = commitment

    def validate_target(self, target: str) -> None:
        parse_address(target)

    async def fetch_snapshot(self, target: str, token: CancellationToken) -> BalanceUpdate:
        lamports, slot = await self.rpc_client.get_balance(target, self.commitment, abort_signal=token)
        self._logger.debug(f"Balance inicial de {target}: {lamports} lamports (slot {slot})")
        return BalanceUpdate(value=lamports, slot=slot)

    async def stream_updates(self, target: str, token: CancellationToken) -> AsyncIterator[BalanceUpdate]:
        async for notification in self.subscription_client.account_notifications(
            target, self.commitment, abort_signal=token
        ):
            yield BalanceUpdate(value=notification.lamports, slot=notification.slot)
