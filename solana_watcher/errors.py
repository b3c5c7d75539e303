# -*- coding: utf-8 -*-
"""
Errores del observador de balances.

Las clases se agrupan por origen y no por mensaje: el motor decide si un
error llega al callback comprobando su tipo.
"""
from typing import Any, Optional


class SolanaWatcherError(Exception):
    """Error base de solana_watcher."""


class MalformedAddressError(SolanaWatcherError, ValueError):
    """La dirección (owner, mint o cuenta) no es una clave pública válida."""

    def __init__(self, address: Any, field: str = "address"):
        self.address = address
        self.field = field
        super().__init__(f"Invalid {field}: {address!r} is not a valid base58 Solana public key")


class AccountNotFoundError(SolanaWatcherError):
    """La cuenta consultada no existe (todavía) en la red."""

    def __init__(self, address: str, slot: Optional[int] = None):
        self.address = address
        self.slot = slot
        super().__init__(f"Account {address} could not be found")


class TransportError(SolanaWatcherError):
    """Fallo de red hablando con el nodo RPC o el websocket."""


class RpcRequestError(TransportError):
    """El nodo respondió a la petición JSON-RPC con un error."""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        self.method = method
        self.code = code
        detail = f" (code {code})" if code is not None else ""
        super().__init__(f"{method} failed{detail}: {message}")


class SubscriptionError(TransportError):
    """La suscripción por websocket fue rechazada o se cerró inesperadamente."""


class WatchCancelledError(SolanaWatcherError):
    """Una operación observó la señal de cancelación de su sesión."""


def ensure_error(thrown: Any) -> BaseException:
    """Normaliza cualquier valor lanzado/recibido a una excepción."""
    if isinstance(thrown, BaseException):
        return thrown
    return SolanaWatcherError(f"Non-exception value raised: {thrown!r}")


def is_cancellation_noise(error: BaseException) -> bool:
    return isinstance(error, WatchCancelledError)
