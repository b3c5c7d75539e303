# -*- coding: utf-8 -*-
"""
Motor de observación de balances.

Cada llamada a `watch()` lanza dos flujos concurrentes (consulta inicial y
suscripción) que compiten por publicar. Solo se publica una actualización si
su slot es estrictamente mayor que el último publicado, así el callback ve los
balances en orden cronológico sin importar qué flujo llegue primero.
"""
import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Generic, List, Optional, TypeVar

from logging_system import AppLogger
from .cancellation import CancellationToken
from .errors import ensure_error, is_cancellation_noise
from .models import BalanceUpdate

TargetT = TypeVar("TargetT")

# callback(error, None) o callback(None, balance); puede ser una corrutina
BalanceCallback = Callable[[Optional[BaseException], Optional[Any]], Any]

# Menor que cualquier slot válido
INITIAL_SLOT = -1


class WatchSession(Generic[TargetT]):
    """Estado de una observación: último slot publicado, token de cancelación y tareas."""

    def __init__(self, target: TargetT, callback: BalanceCallback):
        self.target = target
        self.callback = callback
        self.last_published_slot = INITIAL_SLOT
        self.published_count = 0
        self.token = CancellationToken()
        self.tasks: List[asyncio.Task] = []

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def accept(self, update: BalanceUpdate) -> bool:
        """Registra `update` como publicado si es más reciente que lo último publicado."""
        if self.cancelled or update.slot <= self.last_published_slot:
            return False
        self.last_published_slot = update.slot
        self.published_count += 1
        return True

    def cancel(self) -> bool:
        if not self.token.cancel():
            return False
        for task in self.tasks:
            if not task.done():
                task.cancel()
        return True


class WatchHandle:
    """
    Función de cancelación devuelta por `watch()`.

    Llamarla (o llamar a `cancel()`) detiene la observación; las llamadas
    repetidas no tienen efecto adicional.
    """

    __slots__ = ("_session", "_logger")

    def __init__(self, session: WatchSession, logger: AppLogger):
        self._session = session
        self._logger = logger

    def __call__(self) -> None:
        if self._session.cancel():
            self._logger.debug(f"Observación de {self._session.target} cancelada")

    cancel = __call__

    @property
    def cancelled(self) -> bool:
        return self._session.cancelled

    @property
    def last_published_slot(self) -> int:
        return self._session.last_published_slot

    async def wait_closed(self) -> None:
        """Espera a que terminen los flujos de la sesión (normalmente tras cancelar)."""
        await asyncio.gather(*self._session.tasks, return_exceptions=True)


class BalanceWatcher(ABC, Generic[TargetT]):
    """
    Motor genérico: las subclases definen qué es la consulta inicial y qué es
    la suscripción para su tipo de objetivo.
    """

    def __init__(self):
        self._logger = AppLogger(self.__class__.__name__)

    @abstractmethod
    def validate_target(self, target: TargetT) -> None:
        """Valida el objetivo de forma síncrona; lanza MalformedAddressError si no es válido."""

    @abstractmethod
    async def fetch_snapshot(self, target: TargetT, token: CancellationToken) -> BalanceUpdate:
        """Consulta el balance actual junto a su slot."""

    @abstractmethod
    def stream_updates(self, target: TargetT, token: CancellationToken) -> AsyncIterator[BalanceUpdate]:
        """Iterador asíncrono de actualizaciones provenientes de la suscripción."""

    def watch(self, target: TargetT, callback: BalanceCallback) -> WatchHandle:
        """
        Empieza a observar `target` y devuelve inmediatamente el manejador de cancelación.

        Debe llamarse con un event loop en marcha.
        """
        loop = asyncio.get_running_loop()
        session: WatchSession[TargetT] = WatchSession(target, callback)
        handle = WatchHandle(session, self._logger)

        try:
            self.validate_target(target)
        except Exception as error:
            self._logger.warning(f"Objetivo inválido {target!r}: {error}")
            session.tasks.append(loop.create_task(self._fail(session, error, "validation")))
            return handle

        self._logger.debug(f"Observando {target!r}")
        session.tasks.append(loop.create_task(self._run_snapshot(session)))
        session.tasks.append(loop.create_task(self._run_subscription(session)))
        return handle

    async def _run_snapshot(self, session: WatchSession[TargetT]) -> None:
        try:
            update = await self.fetch_snapshot(session.target, session.token)
        except Exception as error:
            await self._fail(session, error, "snapshot")
            return
        await self._publish(session, update, "snapshot")

    async def _run_subscription(self, session: WatchSession[TargetT]) -> None:
        try:
            async for update in self.stream_updates(session.target, session.token):
                await self._publish(session, update, "subscription")
        except Exception as error:
            await self._fail(session, error, "subscription")
            return
        self._logger.debug(f"Suscripción de {session.target!r} terminada")

    async def _publish(self, session: WatchSession[TargetT], update: BalanceUpdate, source: str) -> None:
        if not session.accept(update):
            if not session.cancelled:
                self._logger.debug(
                    f"Actualización descartada ({source}) para {session.target!r}: "
                    f"slot {update.slot} <= {session.last_published_slot}"
                )
            return
        await self._invoke(session, None, update.value)

    async def _fail(self, session: WatchSession[TargetT], error: Any, source: str) -> None:
        error = ensure_error(error)
        if session.cancelled or is_cancellation_noise(error):
            self._logger.debug(f"Error de {source} suprimido tras cancelación: {error!r}")
            return
        self._logger.warning(f"Error en {source} observando {session.target!r}: {error}")
        await self._invoke(session, error, None)

    async def _invoke(self, session: WatchSession[TargetT], error: Optional[BaseException], value: Any) -> None:
        if session.cancelled:
            return
        try:
            result = session.callback(error, value)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._logger.error(f"Error en callback de {session.target!r}: {e}", exc_info=True)
