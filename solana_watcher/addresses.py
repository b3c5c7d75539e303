# -*- coding: utf-8 -*-
"""
Validación de direcciones y derivación de cuentas de token asociadas.

Todo lo de este módulo es puro: no hace I/O de red.
"""
from enum import Enum
from typing import Any

import base58
from solders.pubkey import Pubkey as PublicKey

from .errors import MalformedAddressError

# Programas de Solana
SYSTEM_PROGRAM = "11111111111111111111111111111111"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_EXTENSIONS_PROGRAM = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_ACCOUNT_PROGRAM = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"


class TokenProgram(Enum):
    """Familias de programas de token que comparten el esquema de cuentas asociadas"""
    CLASSIC = "classic"          # Token Program original
    EXTENSIONS = "extensions"    # Token-2022 (Token Extensions)

    @property
    def program_id(self) -> PublicKey:
        if self is TokenProgram.EXTENSIONS:
            return PublicKey.from_string(TOKEN_EXTENSIONS_PROGRAM)
        return PublicKey.from_string(TOKEN_PROGRAM)

    @classmethod
    def from_flag(cls, use_token_extensions: bool) -> "TokenProgram":
        return cls.EXTENSIONS if use_token_extensions else cls.CLASSIC


def parse_address(address: Any, field: str = "address") -> PublicKey:
    """
    Convierte una dirección base58 en Pubkey.

    Raises:
        MalformedAddressError: si no es texto base58 que decodifique a 32 bytes.
    """
    if isinstance(address, PublicKey):
        return address
    if not isinstance(address, str) or not 32 <= len(address) <= 44:
        raise MalformedAddressError(address, field)
    try:
        decoded = base58.b58decode(address)
    except ValueError as e:
        raise MalformedAddressError(address, field) from e
    if len(decoded) != 32:
        raise MalformedAddressError(address, field)
    return PublicKey.from_bytes(decoded)


def is_valid_address(address: Any) -> bool:
    try:
        parse_address(address)
    except MalformedAddressError:
        return False
    return True


def get_token_account_address(owner: Any, mint: Any, program: TokenProgram = TokenProgram.CLASSIC) -> str:
    """
    Obtiene la dirección de la cuenta de token asociada de `owner` para `mint`.

    Cada wallet tiene una única cuenta asociada por tipo de token y programa:
    es la PDA de [owner, token_program, mint] bajo el Associated Token Account
    Program.
    """
    owner_key = parse_address(owner, "owner")
    mint_key = parse_address(mint, "mint")
    address, _bump = PublicKey.find_program_address(
        [bytes(owner_key), bytes(program.program_id), bytes(mint_key)],
        PublicKey.from_string(ASSOCIATED_TOKEN_ACCOUNT_PROGRAM),
    )
    return str(address)
