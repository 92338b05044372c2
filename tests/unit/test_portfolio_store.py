from decimal import Decimal

import pytest

from chainview.services.portfolio_store import (
    DuplicateWalletError,
    InvalidWalletAddressError,
    PortfolioStore,
)
from chainview.types import ChainId, TokenBalance, WalletKind

EVM_ADDRESS = "0x1234567890abcdef1234567890ABCDEF12345678"
SOL_ADDRESS = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def _priced(symbol, balance, price, chain=ChainId.ETHEREUM):
    return TokenBalance(symbol=symbol, name=symbol, balance=balance, decimals=18, chain=chain).with_price(price)


def _store():
    return PortfolioStore(clock_ms=lambda: 1_700_000_000_000)


def test_add_wallet_defaults_name_and_timestamp():
    store = _store()

    wallet = store.add_wallet(EVM_ADDRESS, WalletKind.EVM)

    assert wallet.name == "0x1234...5678"
    assert wallet.connected_at == 1_700_000_000_000
    assert store.has_wallet(wallet.id)


def test_invalid_address_rejected_with_readable_message():
    store = _store()

    with pytest.raises(InvalidWalletAddressError, match="not a valid solana wallet address"):
        store.add_wallet(EVM_ADDRESS, WalletKind.SOLANA)
    assert store.wallets() == []


def test_duplicate_evm_wallet_is_case_insensitive():
    store = _store()
    store.add_wallet(EVM_ADDRESS, WalletKind.EVM)

    with pytest.raises(DuplicateWalletError):
        store.add_wallet(EVM_ADDRESS.lower(), WalletKind.EVM)


def test_empty_store_totals_zero():
    store = _store()

    assert store.commit_cycle() == 0
    assert store.snapshot().total_portfolio_usd == 0
    assert store.last_updated == 1_700_000_000_000


def test_totals_are_sums_of_balances():
    store = _store()
    evm = store.add_wallet(EVM_ADDRESS, WalletKind.EVM)
    sol = store.add_wallet(SOL_ADDRESS, WalletKind.SOLANA)

    store.update_wallet_balances(
        evm.id,
        [_priced("ETH", "1.5", Decimal("2000")), _priced("ETH", "0.5", Decimal("2000"), chain=ChainId.BASE)],
    )
    store.update_wallet_balances(sol.id, [_priced("SOL", "2.5", Decimal("100"), chain=ChainId.SOLANA)])
    total = store.commit_cycle(timestamp_ms=42)

    snapshot = store.snapshot()
    by_id = {w.id: w for w in snapshot.wallets}
    assert by_id[evm.id].total_usd_value == Decimal("4000")
    assert by_id[sol.id].total_usd_value == Decimal("250")
    assert total == snapshot.total_portfolio_usd == Decimal("4250")
    assert snapshot.last_updated == 42


def test_update_for_removed_wallet_is_discarded():
    store = _store()
    wallet = store.add_wallet(EVM_ADDRESS, WalletKind.EVM)
    store.update_wallet_balances(wallet.id, [_priced("ETH", "1", Decimal("10"))])
    store.commit_cycle()

    assert store.remove_wallet(wallet.id) is True
    assert store.update_wallet_balances(wallet.id, [_priced("ETH", "1", Decimal("10"))]) is False
    assert store.total_portfolio_usd == 0
    assert store.remove_wallet(wallet.id) is False


def test_wallets_are_copies():
    store = _store()
    wallet = store.add_wallet(EVM_ADDRESS, WalletKind.EVM)

    copy = store.wallets()[0]
    copy.balances.append(_priced("ETH", "1", Decimal("10")))

    assert store.wallets()[0].balances == []
    assert wallet.id == copy.id
