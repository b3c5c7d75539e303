# -*- coding: utf-8 -*-
"""
Suscripciones de cambios de cuenta (accountSubscribe) por websocket.
"""
import json
import socket
from typing import Any, AsyncIterator, Dict, Literal, Optional

import websockets

from logging_system import AppLogger
from .addresses import parse_address
from .cancellation import CancellationToken
from .errors import MalformedAddressError, SubscriptionError, TransportError, WatchCancelledError
from .models import AccountNotification

# Código JSON-RPC para parámetros inválidos
_INVALID_PARAMS = -32602


class AccountSubscriptionClient:
    """
    Abre una conexión websocket por suscripción y entrega las notificaciones
    de cambio de una cuenta como un iterador asíncrono.

    La conexión se cierra al terminar la iteración, al fallar o cuando el token
    de cancelación se activa; después de eso no se entrega ninguna notificación.
    """

    def __init__(self,
                    ws_url: str = "wss://api.mainnet-beta.solana.com/",
                    *,
                    encoding: Literal["base64", "jsonParsed"] = "base64",
                    open_timeout_s: float = 30.0,
                    ping_interval_s: Optional[float] = 30.0,
                    request_timeout_s: float = 15.0):
        self.ws_url = ws_url
        self.encoding = encoding
        self.open_timeout_s = open_timeout_s
        self.ping_interval_s = ping_interval_s
        self.request_timeout_s = request_timeout_s

        self._logger = AppLogger(self.__class__.__name__)
        self._next_request_id = 1

    def _get_next_request_id(self) -> int:
        request_id = self._next_request_id
        self._next_request_id += 1
        if self._next_request_id > 2**31:
            self._next_request_id = 1
        return request_id

    async def _connect(self, token: CancellationToken):
        try:
            # Si se cancela justo cuando el handshake termina, la conexión se cierra aquí
            return await token.run(websockets.connect(
                self.ws_url,
                ping_interval=self.ping_interval_s,
                ping_timeout=10,
                close_timeout=10,
                max_size=2**20,  # 1MB
                open_timeout=self.open_timeout_s,
            ), on_discard=lambda websocket: websocket.close())
        except websockets.exceptions.InvalidURI as e:
            raise TransportError(f"Invalid websocket URL: {self.ws_url}") from e
        except TimeoutError as e:
            raise TransportError(f"Timeout during websocket handshake with {self.ws_url}") from e
        except socket.gaierror as e:
            raise TransportError(f"DNS resolution failed for {self.ws_url}: {e}") from e
        except (OSError, websockets.exceptions.WebSocketException) as e:
            raise TransportError(f"Websocket connection to {self.ws_url} failed: {e}") from e

    async def _subscribe(self, websocket, address: str, commitment: str, token: CancellationToken) -> int:
        """Envía accountSubscribe y espera el ACK con el id de suscripción."""
        request_id = self._get_next_request_id()
        await token.run(websocket.send(json.dumps({
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "accountSubscribe",
            "params": [address, {"encoding": self.encoding, "commitment": commitment}],
        })))

        while True:
            message = self._decode(await token.run(websocket.recv()))
            if message is None or message.get("id") != request_id:
                # Notificaciones sin ACK todavía no son nuestras; se descartan
                self._logger.debug(f"Mensaje ignorado esperando ACK de accountSubscribe: {message}")
                continue

            if "result" in message:
                subscription_id = int(message["result"])
                self._logger.info(f"Cuenta {address} suscrita con ID {subscription_id}")
                return subscription_id

            error: Dict[str, Any] = message.get("error") or {}
            if error.get("code") == _INVALID_PARAMS:
                raise MalformedAddressError(address)
            raise SubscriptionError(f"accountSubscribe rejected for {address}: {error.get('message', message)}")

    def _decode(self, raw: Any) -> Optional[Dict[str, Any]]:
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            self._logger.error(f"Error decodificando mensaje JSON: {e}")
            self._logger.debug(f"Mensaje raw: {raw!r}")
            return None
        return message if isinstance(message, dict) else None

    async def account_notifications(
        self,
        address: str,
        commitment: Literal["finalized", "confirmed", "processed"] = "confirmed",
        *,
        abort_signal: Optional[CancellationToken] = None,
    ) -> AsyncIterator[AccountNotification]:
        """
        Itera las notificaciones de cambio de `address`.

        Raises:
            MalformedAddressError: dirección inválida (local o rechazada por el nodo)
            TransportError: fallo de conexión o cierre inesperado del websocket
            WatchCancelledError: el token de cancelación se activó
        """
        parse_address(address)
        token = abort_signal or CancellationToken()

        websocket = await self._connect(token)
        try:
            subscription_id = await self._subscribe(websocket, address, commitment, token)
            while True:
                message = self._decode(await token.run(websocket.recv()))
                if message is None or message.get("method") != "accountNotification":
                    continue
                try:
                    notification = AccountNotification.from_message(message)
                except (KeyError, TypeError, ValueError) as e:
                    self._logger.error(f"Error procesando notificación de cuenta: {e}")
                    self._logger.debug(f"Mensaje problemático: {message}")
                    continue
                if notification.subscription != subscription_id:
                    continue
                yield notification
        except websockets.exceptions.ConnectionClosed as e:
            if token.cancelled:
                raise WatchCancelledError("Subscription closed after cancellation") from e
            raise SubscriptionError(f"Websocket closed while watching {address}: {e}") from e
        finally:
            await websocket.close()
            self._logger.debug(f"Suscripción de {address} cerrada")
