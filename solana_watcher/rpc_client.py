# -*- coding: utf-8 -*-
"""
Consultas puntuales (snapshot) de balances contra el nodo RPC de Solana.
"""
from typing import Optional, Tuple

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException

from logging_system import AppLogger
from .addresses import parse_address
from .cancellation import CancellationToken
from .errors import AccountNotFoundError, RpcRequestError, TransportError
from .models import TokenAmount

_ACCOUNT_NOT_FOUND_MARKER = "could not find account"


class BalanceQueryClient:
    """
    Cliente de consultas de balance sobre AsyncClient de solana-py.

    Cada consulta devuelve (valor, slot) para que el motor de observación pueda
    ordenar la respuesta frente a las notificaciones del websocket.
    """

    def __init__(
        self,
        rpc_url: str = "https://api.mainnet-beta.solana.com",
        *,
        client: Optional[AsyncClient] = None,
        request_timeout_s: float = 30.0,
    ) -> None:
        self.rpc_url = rpc_url
        self._external_client = client
        self._client: Optional[AsyncClient] = client
        self._request_timeout_s = request_timeout_s

        self._logger = AppLogger(self.__class__.__name__)

    async def __aenter__(self) -> "BalanceQueryClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self):
        if self._client is None:
            self._client = AsyncClient(self.rpc_url, timeout=self._request_timeout_s)
            self._logger.debug(f"AsyncClient creado para {self.rpc_url}")

    async def stop(self):
        if self._external_client is None and self._client is not None:
            await self._client.close()
            self._client = None
            self._logger.debug("AsyncClient cerrado")

    @property
    def client(self) -> AsyncClient:
        if self._client is None:
            raise RuntimeError("BalanceQueryClient no iniciado. Usa 'async with BalanceQueryClient(...)' o llama a start().")
        return self._client

    async def get_balance(
        self,
        address: str,
        commitment: Commitment = "confirmed",
        *,
        abort_signal: Optional[CancellationToken] = None,
    ) -> Tuple[int, int]:
        """
        Obtiene el balance en lamports de una cuenta.

        Las cuentas sin fondos devuelven 0, no un error.

        Returns:
            (lamports, slot)
        """
        pubkey = parse_address(address)
        response = await self._call("getBalance", address, self.client.get_balance(pubkey, commitment=commitment), abort_signal)
        return int(response.value), int(response.context.slot)

    async def get_token_account_balance(
        self,
        token_account: str,
        commitment: Commitment = "confirmed",
        *,
        abort_signal: Optional[CancellationToken] = None,
    ) -> Tuple[TokenAmount, int]:
        """
        Obtiene el balance de una cuenta de token.

        Returns:
            (TokenAmount, slot)

        Raises:
            AccountNotFoundError: si la cuenta de token no existe.
        """
        pubkey = parse_address(token_account, "token account")
        response = await self._call(
            "getTokenAccountBalance",
            token_account,
            self.client.get_token_account_balance(pubkey, commitment=commitment),
            abort_signal,
        )
        return TokenAmount.from_ui_token_amount(response.value), int(response.context.slot)

    async def get_slot(
        self,
        commitment: Commitment = "finalized",
        *,
        abort_signal: Optional[CancellationToken] = None,
    ) -> int:
        response = await self._call("getSlot", None, self.client.get_slot(commitment=commitment), abort_signal)
        return int(response.value)

    async def is_healthy(self) -> bool:
        try:
            return bool(await self.client.is_connected())
        except (SolanaRpcException, OSError) as e:
            self._logger.warning(f"Nodo RPC no disponible ({self.rpc_url}): {e}")
            return False

    async def _call(self, method: str, address: Optional[str], request, abort_signal: Optional[CancellationToken]):
        """Ejecuta la petición respetando el token de cancelación y traduce los errores de solana-py."""
        try:
            if abort_signal is not None:
                return await abort_signal.run(request)
            return await request
        except RPCException as e:
            rpc_error = e.args[0] if e.args else None
            message = getattr(rpc_error, "message", None) or str(e)
            if address is not None and _ACCOUNT_NOT_FOUND_MARKER in message:
                self._logger.debug(f"{method}: cuenta {address} no encontrada")
                raise AccountNotFoundError(address) from e
            raise RpcRequestError(method, message, getattr(rpc_error, "code", None)) from e
        except (SolanaRpcException, OSError) as e:
            raise TransportError(f"{method} request to {self.rpc_url} failed: {e}") from e
