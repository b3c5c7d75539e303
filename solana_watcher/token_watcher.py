# -*- coding: utf-8 -*-
"""
Observación del balance de una cuenta de token asociada.

La suscripción se hace sobre la cuenta de token derivada (no sobre el owner).
Las notificaciones de cambio de cuenta no traen el monto ya parseado, así que
cada notificación dispara una nueva consulta de balance y es esa consulta (con
su propio slot) la que compite por publicarse.
"""
from dataclasses import dataclass
from typing import AsyncIterator, Literal, Optional

from .addresses import TokenProgram, get_token_account_address, parse_address
from .cancellation import CancellationToken
from .errors import AccountNotFoundError
from .models import UNKNOWN_SLOT, BalanceUpdate, TokenAmount
from .rpc_client import BalanceQueryClient
from .watcher import BalanceWatcher
from .websocket_client import AccountSubscriptionClient

# Decimales que se asumen cuando la cuenta aún no existe. Es una convención
# (la mayoría de mints usan 9), no se consulta el mint real.
DEFAULT_TOKEN_DECIMALS = 9


@dataclass(slots=True, frozen=True)
class TokenBalanceTarget:
    owner: str
    mint: str
    program: TokenProgram = TokenProgram.EXTENSIONS

    @property
    def token_account(self) -> str:
        return get_token_account_address(self.owner, self.mint, self.program)


class TokenBalanceWatcher(BalanceWatcher[TokenBalanceTarget]):
    """Observa el balance de `mint` en la cuenta asociada de `owner`."""

    def __init__(self,
                    rpc_client: BalanceQueryClient,
                    subscription_client: AccountSubscriptionClient,
                    commitment: Literal["finalized", "confirmed", "processed"] = "confirmed",
                    default_decimals: int = DEFAULT_TOKEN_DECIMALS):
        super().__init__()
        self.rpc_client = rpc_client
        self.subscription_client = subscription_client
        self.commitment = commitment
        self.default_decimals = default_decimals

    def validate_target(self, target: TokenBalanceTarget) -> None:
        parse_address(target.owner, "owner")
        parse_address(target.mint, "mint")

    async def fetch_snapshot(self, target: TokenBalanceTarget, token: CancellationToken) -> BalanceUpdate:
        return await self._query_balance(target.token_account, token, fallback_slot=UNKNOWN_SLOT)

    async def stream_updates(self, target: TokenBalanceTarget, token: CancellationToken) -> AsyncIterator[BalanceUpdate]:
        token_account = target.token_account
        self._logger.debug(f"Cuenta de token de {target.owner} para {target.mint}: {token_account}")

        async for notification in self.subscription_client.account_notifications(
            token_account, self.commitment, abort_signal=token
        ):
            yield await self._query_balance(token_account, token, fallback_slot=notification.slot)

    async def _query_balance(self, token_account: str, token: CancellationToken, fallback_slot: int) -> BalanceUpdate:
        """Consulta el balance; una cuenta inexistente equivale a balance cero."""
        try:
            amount, slot = await self.rpc_client.get_token_account_balance(
                token_account, self.commitment, abort_signal=token
            )
        except AccountNotFoundError as e:
            slot = e.slot if e.slot is not None else fallback_slot
            self._logger.debug(f"Cuenta de token {token_account} inexistente, balance cero (slot {slot})")
            return BalanceUpdate(value=self.zero_balance(), slot=slot)
        return BalanceUpdate(value=amount, slot=slot)

    def zero_balance(self, decimals: Optional[int] = None) -> TokenAmount:
        return TokenAmount.zero(self.default_decimals if decimals is None else decimals)
