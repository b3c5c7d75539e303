"""Unit tests for TokenBalanceWatcher: derived account, zero default and re-query on notification."""
import asyncio

from solana_watcher.addresses import TokenProgram, get_token_account_address
from solana_watcher.errors import AccountNotFoundError, MalformedAddressError, TransportError
from solana_watcher.models import TokenAmount
from solana_watcher.token_watcher import DEFAULT_TOKEN_DECIMALS, TokenBalanceTarget, TokenBalanceWatcher
from tests.helpers import WSOL_MINT, Recorder, flush, notification


def _amount(raw: int, decimals: int = 9) -> TokenAmount:
    ui = raw / 10 ** decimals
    return TokenAmount(amount=raw, decimals=decimals, ui_amount=ui, ui_amount_string=f"{ui:g}")


class TestTokenBalanceWatcher:
    async def test_missing_account_reports_zero_balance(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        target = TokenBalanceTarget(owner, WSOL_MINT)
        stop = watcher.watch(target, callback)

        rpc_client.token_balances.put_nowait(AccountNotFoundError(target.token_account))
        await flush()

        assert callback.calls == [
            (None, TokenAmount(amount=0, decimals=DEFAULT_TOKEN_DECIMALS, ui_amount=0, ui_amount_string="0"))
        ]
        stop()

    async def test_subscribes_to_derived_token_account(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        stop = watcher.watch(TokenBalanceTarget(owner, WSOL_MINT, TokenProgram.CLASSIC), Recorder())
        await flush()

        expected = get_token_account_address(owner, WSOL_MINT, TokenProgram.CLASSIC)
        assert subscription_client.subscribed == [(expected, "confirmed")]
        assert rpc_client.token_balance_calls == [(expected, "confirmed")]
        assert expected != owner
        stop()

    async def test_notification_triggers_requery(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        stop = watcher.watch(TokenBalanceTarget(owner, WSOL_MINT), callback)

        rpc_client.token_balances.put_nowait((_amount(1_000_000_000), 5))
        await flush()
        rpc_client.token_balances.put_nowait((_amount(2_500_000_000), 11))
        subscription_client.notifications.put_nowait(notification(slot=10))
        await flush()

        assert [value.amount for value in callback.values] == [1_000_000_000, 2_500_000_000]
        assert len(rpc_client.token_balance_calls) == 2
        stop()

    async def test_requery_older_than_snapshot_is_dropped(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        stop = watcher.watch(TokenBalanceTarget(owner, WSOL_MINT), callback)

        rpc_client.token_balances.put_nowait((_amount(1_000_000_000), 20))
        await flush()
        rpc_client.token_balances.put_nowait((_amount(500_000_000), 15))
        subscription_client.notifications.put_nowait(notification(slot=14))
        await flush()

        assert [value.amount for value in callback.values] == [1_000_000_000]
        stop()

    async def test_closed_account_after_notification_reports_zero(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        target = TokenBalanceTarget(owner, WSOL_MINT)
        stop = watcher.watch(target, callback)

        rpc_client.token_balances.put_nowait((_amount(1_000_000_000), 5))
        await flush()
        rpc_client.token_balances.put_nowait(AccountNotFoundError(target.token_account))
        subscription_client.notifications.put_nowait(notification(slot=30))
        await flush()

        assert callback.values[-1] == TokenAmount.zero(DEFAULT_TOKEN_DECIMALS)
        assert stop.last_published_slot == 30
        stop()

    async def test_late_missing_account_snapshot_does_not_reset_balance(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        release_snapshot = asyncio.Event()
        calls = []

        async def get_token_account_balance(token_account, commitment="confirmed", *, abort_signal=None):
            calls.append(token_account)
            if len(calls) == 1:
                await abort_signal.run(release_snapshot.wait())
                raise AccountNotFoundError(token_account)
            return _amount(3_000_000_000), 12

        rpc_client.get_token_account_balance = get_token_account_balance
        stop = watcher.watch(TokenBalanceTarget(owner, WSOL_MINT), callback)
        await flush()

        subscription_client.notifications.put_nowait(notification(slot=12))
        await flush()
        assert [value.amount for value in callback.values] == [3_000_000_000]

        release_snapshot.set()
        await flush()

        assert len(calls) == 2
        assert [value.amount for value in callback.values] == [3_000_000_000]
        assert stop.last_published_slot == 12
        stop()

    async def test_missing_account_uses_reported_slot(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        target = TokenBalanceTarget(owner, WSOL_MINT)
        stop = watcher.watch(target, callback)

        rpc_client.token_balances.put_nowait(AccountNotFoundError(target.token_account, slot=8))
        await flush()
        rpc_client.token_balances.put_nowait((_amount(1), 7))
        subscription_client.notifications.put_nowait(notification(slot=7))
        await flush()

        assert callback.values == [TokenAmount.zero(DEFAULT_TOKEN_DECIMALS)]
        assert stop.last_published_slot == 8
        stop()

    async def test_zero_balance_uses_configured_decimals(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client, default_decimals=6)
        callback = Recorder()
        target = TokenBalanceTarget(owner, WSOL_MINT)
        stop = watcher.watch(target, callback)

        rpc_client.token_balances.put_nowait(AccountNotFoundError(target.token_account))
        await flush()

        assert callback.values == [TokenAmount.zero(6)]
        stop()

    async def test_requery_failure_ends_subscription_with_one_error(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        stop = watcher.watch(TokenBalanceTarget(owner, WSOL_MINT), callback)

        rpc_client.token_balances.put_nowait((_amount(1), 5))
        await flush()
        rpc_client.token_balances.put_nowait(TransportError("getTokenAccountBalance request failed"))
        subscription_client.notifications.put_nowait(notification(slot=6))
        await flush()

        assert len(callback.errors) == 1
        assert isinstance(callback.errors[0], TransportError)
        stop()

    async def test_malformed_mint_reports_one_error(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        stop = watcher.watch(TokenBalanceTarget(owner, "not-a-mint"), callback)
        await flush()

        assert len(callback.calls) == 1
        error, value = callback.calls[0]
        assert isinstance(error, MalformedAddressError)
        assert error.field == "mint"
        assert value is None
        assert subscription_client.subscribed == []
        stop()

    async def test_cancel_during_requery_publishes_nothing(self, rpc_client, subscription_client, owner) -> None:
        watcher = TokenBalanceWatcher(rpc_client, subscription_client)
        callback = Recorder()
        stop = watcher.watch(TokenBalanceTarget(owner, WSOL_MINT), callback)

        rpc_client.token_balances.put_nowait((_amount(1), 5))
        await flush()
        subscription_client.notifications.put_nowait(notification(slot=6))
        await flush()
        stop()
        rpc_client.token_balances.put_nowait((_amount(2), 7))
        await flush()
        await stop.wait_closed()

        assert [value.amount for value in callback.values] == [1]
