# -*- coding: utf-8 -*-
"""
Modelos de datos del observador de balances.
"""
from dataclasses import dataclass, asdict, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


# Slot usado cuando la observación no trae contexto (p. ej. cuenta inexistente)
UNKNOWN_SLOT = 0


@dataclass(slots=True, frozen=True)
class BalanceUpdate:
    """Observación de un balance junto al slot en el que era cierta."""
    value: Any
    slot: int

    def to_dict(self) -> Dict[str, Any]:
        value = self.value.to_dict() if hasattr(self.value, "to_dict") else self.value
        return {"value": value, "slot": self.slot}


@dataclass(slots=True, frozen=True)
class TokenAmount:
    """Balance de una cuenta de token: monto crudo, decimales y monto legible."""
    amount: int
    decimals: int
    ui_amount: Optional[float]
    ui_amount_string: str

    @classmethod
    def zero(cls, decimals: int) -> "TokenAmount":
        return cls(amount=0, decimals=decimals, ui_amount=0.0, ui_amount_string="0")

    @classmethod
    def from_ui_token_amount(cls, value: Any) -> "TokenAmount":
        """Crea desde el UiTokenAmount de solders (respuesta de getTokenAccountBalance)."""
        return cls(
            amount=int(value.amount),
            decimals=int(value.decimals),
            ui_amount=value.ui_amount,
            ui_amount_string=value.ui_amount_string,
        )

    @property
    def decimal_amount(self) -> Decimal:
        return Decimal(self.amount).scaleb(-self.decimals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "decimals": self.decimals,
            "uiAmount": self.ui_amount,
            "uiAmountString": self.ui_amount_string,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenAmount":
        """Crea desde el diccionario JSON-RPC (claves camelCase)."""
        return cls(
            amount=int(data["amount"]),
            decimals=int(data["decimals"]),
            ui_amount=data.get("uiAmount"),
            ui_amount_string=data.get("uiAmountString", str(data.get("uiAmount") or "0")),
        )


@dataclass(slots=True)
class AccountNotification:
    """Notificación del método RPC accountSubscribe."""
    subscription: int
    slot: int
    lamports: int
    owner: str
    executable: bool = False
    rent_epoch: Optional[int] = None
    space: Optional[int] = None
    data: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> "AccountNotification":
        """
        Crea desde un mensaje `accountNotification` completo:
        {"method": "accountNotification", "params": {"result": {"context": {...}, "value": {...}}, "subscription": N}}
        """
        params = message["params"]
        result = params["result"]
        value = result["value"]
        data = value.get("data")
        return cls(
            subscription=params["subscription"],
            slot=result["context"]["slot"],
            lamports=value["lamports"],
            owner=value["owner"],
            executable=value.get("executable", False),
            rent_epoch=value.get("rentEpoch"),
            space=value.get("space"),
            data=list(data) if isinstance(data, list) else ([data] if data is not None else []),
        )
