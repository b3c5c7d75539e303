# -*- coding: utf-8 -*-
"""
Conexión a Solana: consultas de balance y observación de balances.

Ejemplo:
    async with SolanaConnection(WatcherConfig(cluster="devnet")) as connection:
        stop = connection.watch_lamport_balance(address, on_balance)
        ...
        stop()
"""
from typing import List, Literal, Optional

from logging_system import AppLogger
from .addresses import TokenProgram, get_token_account_address
from .config import WatcherConfig
from .errors import AccountNotFoundError
from .models import TokenAmount
from .native_watcher import NativeBalanceWatcher
from .rpc_client import BalanceQueryClient
from .token_watcher import TokenBalanceTarget, TokenBalanceWatcher
from .watcher import BalanceCallback, WatchHandle
from .websocket_client import AccountSubscriptionClient

Commitment = Literal["processed", "confirmed", "finalized"]


class SolanaConnection:
    """Punto de entrada: agrupa el cliente RPC, el cliente websocket y los observadores."""

    def __init__(self,
                    config: Optional[WatcherConfig] = None,
                    *,
                    rpc_client: Optional[BalanceQueryClient] = None,
                    subscription_client: Optional[AccountSubscriptionClient] = None):
        self.config = config or WatcherConfig()
        self._logger = AppLogger(self.__class__.__name__)

        self.rpc_client = rpc_client or BalanceQueryClient(
            self.config.rpc_url,
            request_timeout_s=self.config.request_timeout_s,
        )
        self.subscription_client = subscription_client or AccountSubscriptionClient(
            self.config.websocket_url,
            open_timeout_s=self.config.websocket_open_timeout_s,
            ping_interval_s=self.config.websocket_ping_interval_s,
        )

        self.native_watcher = NativeBalanceWatcher(
            self.rpc_client, self.subscription_client, commitment=self.config.commitment
        )
        self.token_watcher = TokenBalanceWatcher(
            self.rpc_client,
            self.subscription_client,
            commitment=self.config.commitment,
            default_decimals=self.config.default_token_decimals,
        )
        self._handles: List[WatchHandle] = []

    async def __aenter__(self) -> "SolanaConnection":
        await self.rpc_client.start()
        self._logger.info(f"Conectado a Solana {self.config.cluster} (RPC: {self.config.rpc_url})")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close_watches()
        await self.rpc_client.stop()

    async def close_watches(self):
        """Cancela las observaciones activas y espera a que terminen sus flujos."""
        handles, self._handles = self._handles, []
        for handle in handles:
            handle()
        for handle in handles:
            await handle.wait_closed()
        if handles:
            self._logger.debug(f"{len(handles)} observaciones cerradas")

    def _track(self, handle: WatchHandle) -> WatchHandle:
        self._handles = [h for h in self._handles if not h.cancelled]
        self._handles.append(handle)
        return handle

    # ================ CONSULTAS ================

    async def get_lamport_balance(self, address: str, commitment: Commitment = "finalized") -> int:
        lamports, _slot = await self.rpc_client.get_balance(address, commitment)
        return lamports

    async def get_token_account_balance(self,
                                        owner: Optional[str] = None,
                                        mint: Optional[str] = None,
                                        token_account: Optional[str] = None,
                                        program: TokenProgram = TokenProgram.CLASSIC,
                                        commitment: Commitment = "confirmed") -> TokenAmount:
        """
        Obtiene el balance de una cuenta de token, indicada directamente o
        derivada de (owner, mint, program).
        """
        if token_account is None:
            if not owner or not mint:
                raise ValueError("owner and mint are required when token_account is not provided")
            token_account = get_token_account_address(owner, mint, program)
        amount, _slot = await self.rpc_client.get_token_account_balance(token_account, commitment)
        return amount

    async def check_token_account_is_closed(self,
                                            owner: Optional[str] = None,
                                            mint: Optional[str] = None,
                                            token_account: Optional[str] = None,
                                            program: TokenProgram = TokenProgram.CLASSIC) -> bool:
        """True si la cuenta de token no existe (nunca creada o cerrada)."""
        try:
            await self.get_token_account_balance(owner, mint, token_account, program)
        except AccountNotFoundError:
            return True
        return False

    def get_token_account_address(self, owner: str, mint: str, program: TokenProgram = TokenProgram.CLASSIC) -> str:
        return get_token_account_address(owner, mint, program)

    async def get_current_slot(self, commitment: Commitment = "finalized") -> int:
        return await self.rpc_client.get_slot(commitment)

    async def check_health(self) -> bool:
        return await self.rpc_client.is_healthy()

    # ================ OBSERVACIÓN ================

    def watch_lamport_balance(self, address: str, callback: BalanceCallback) -> WatchHandle:
        """
        Observa el balance en lamports de `address`.

        `callback(error, balance)` recibe el balance actual y cada cambio
        posterior, siempre de slots crecientes. Devuelve la función que detiene
        la observación.
        """
        return self._track(self.native_watcher.watch(address, callback))

    def watch_token_balance(self,
                            owner: str,
                            mint: str,
                            callback: BalanceCallback,
                            program: Optional[TokenProgram] = None) -> WatchHandle:
        """
        Observa el balance de `mint` en la cuenta asociada de `owner`.

        `callback(error, balance)` recibe un TokenAmount; si la cuenta todavía
        no existe, recibe un balance cero.
        """
        if program is None:
            program = TokenProgram.from_flag(self.config.use_token_extensions)
        return self._track(self.token_watcher.watch(TokenBalanceTarget(owner, mint, program), callback))
