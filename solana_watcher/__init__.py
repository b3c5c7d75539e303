# -*- coding: utf-8 -*-
from .addresses import TokenProgram, get_token_account_address, is_valid_address, parse_address
from .cancellation import CancellationToken
from .config import WatcherConfig
from .connection import SolanaConnection
from .errors import (
    AccountNotFoundError,
    MalformedAddressError,
    RpcRequestError,
    SolanaWatcherError,
    SubscriptionError,
    TransportError,
    WatchCancelledError,
)
from .models import AccountNotification, BalanceUpdate, TokenAmount
from .native_watcher import NativeBalanceWatcher
from .rpc_client import BalanceQueryClient
from .token_watcher import DEFAULT_TOKEN_DECIMALS, TokenBalanceTarget, TokenBalanceWatcher
from .watcher import BalanceWatcher, WatchHandle, WatchSession
from .websocket_client import AccountSubscriptionClient

__all__ = [
    'SolanaConnection', 'WatcherConfig',
    'BalanceWatcher', 'NativeBalanceWatcher', 'TokenBalanceWatcher', 'TokenBalanceTarget',
    'WatchHandle', 'WatchSession', 'CancellationToken',
    'BalanceQueryClient', 'AccountSubscriptionClient',
    'BalanceUpdate', 'TokenAmount', 'AccountNotification', 'DEFAULT_TOKEN_DECIMALS',
    'TokenProgram', 'get_token_account_address', 'is_valid_address', 'parse_address',
    'SolanaWatcherError', 'MalformedAddressError', 'AccountNotFoundError', 'TransportError',
    'RpcRequestError', 'SubscriptionError', 'WatchCancelledError',
]
