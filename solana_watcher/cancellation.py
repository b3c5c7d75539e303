# -*- coding: utf-8 -*-
"""
Token de cancelación compartido por los flujos de una sesión de observación.
"""
import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .errors import WatchCancelledError

T = TypeVar("T")


class CancellationToken:
    """
    Señal de aborto cooperativa.

    `cancel()` es síncrono e idempotente. Las operaciones asíncronas que pasan
    por `run()` terminan con WatchCancelledError en cuanto el token se activa,
    aunque la operación subyacente siga pendiente.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Activa el token. Devuelve True solo la primera vez."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise WatchCancelledError("Operation aborted by cancellation token")

    async def wait(self) -> None:
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T], on_discard: Optional[Callable[[T], Any]] = None) -> T:
        """
        Espera `awaitable` compitiendo contra la cancelación del token.

        Si la operación llegó a completarse pero el token ya estaba activo, su
        resultado se descarta; `on_discard(resultado)` permite liberarlo (por
        ejemplo, cerrar una conexión recién abierta). Puede ser una corrutina.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise WatchCancelledError("Operation aborted by cancellation token")
        operation = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({operation, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not operation.done():
                operation.cancel()

        if self._event.is_set():
            if operation.done() and not operation.cancelled() and operation.exception() is None:
                if on_discard is not None:
                    cleanup = on_discard(operation.result())
                    if inspect.isawaitable(cleanup):
                        await cleanup
            raise WatchCancelledError("Operation aborted by cancellation token")
        return operation.result()
