import asyncio
from decimal import Decimal

import pytest

from chainview.config import Settings
from chainview.providers.evm import EvmBalanceProvider
from chainview.providers.rpc import RpcError, RpcTransportError
from chainview.types import ChainId, TokenInfo

OWNER = "0x1234567890abcdef1234567890ABCDEF12345678"
POOL = "https://a.example,https://b.example,https://c.example"

USDC = TokenInfo(symbol="USDC", name="USD Coin", decimals=6, price_feed_id="usd-coin", contract_address="0xusdc")
DAI = TokenInfo(symbol="DAI", name="Dai", decimals=18, price_feed_id="dai", contract_address="0xdai")
LINK = TokenInfo(symbol="LINK", name="Chainlink", decimals=18, price_feed_id="chainlink", contract_address="0xlink")


class _FakeClient:
    def __init__(self, url, native=None, tokens=None, log=None):
        self.url = url
        self._native = native
        self._tokens = tokens or {}
        self._log = log if log is not None else []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True
        return False

    async def get_balance(self, address):
        self._log.append(self.url)
        if isinstance(self._native, BaseException):
            raise self._native
        return self._native

    async def get_token_balance(self, token_address, owner):
        self._log.append((self.url, token_address))
        result = self._tokens.get(token_address, 0)
        if isinstance(result, BaseException):
            raise result
        return result


def _provider(clients):
    settings = Settings(ethereum_rpc_urls=POOL)
    made = []

    def factory(chain, index):
        client = clients[index]
        made.append(index)
        return client

    provider = EvmBalanceProvider(config=settings, client_factory=factory)
    return provider, made


@pytest.mark.asyncio
async def test_native_balance_fails_over_in_pool_order():
    log = []
    clients = [
        _FakeClient("https://a.example", native=RpcTransportError("down"), log=log),
        _FakeClient("https://b.example", native=RpcError("bad payload"), log=log),
        _FakeClient("https://c.example", native=42, log=log),
    ]
    provider, made = _provider(clients)

    assert await provider.get_native_balance(ChainId.ETHEREUM, OWNER) == 42
    assert made == [0, 1, 2]
    assert log == ["https://a.example", "https://b.example", "https://c.example"]
    assert all(client.closed for client in clients)


@pytest.mark.asyncio
async def test_native_balance_stops_at_first_success():
    clients = [
        _FakeClient("https://a.example", native=asyncio.TimeoutError()),
        _FakeClient("https://b.example", native=7),
        _FakeClient("https://c.example", native=99),
    ]
    provider, made = _provider(clients)

    assert await provider.get_native_balance(ChainId.ETHEREUM, OWNER) == 7
    assert made == [0, 1]


@pytest.mark.asyncio
async def test_native_balance_exhaustion_returns_zero():
    clients = [_FakeClient(f"https://{c}.example", native=RpcTransportError("down")) for c in "abc"]
    provider, made = _provider(clients)

    assert await provider.get_native_balance(ChainId.ETHEREUM, OWNER) == 0
    assert made == [0, 1, 2]


@pytest.mark.asyncio
async def test_token_batch_fails_over_when_endpoint_is_unreachable():
    down = RpcTransportError("down")
    clients = [
        _FakeClient("https://a.example", tokens={"0xusdc": down, "0xdai": down, "0xlink": down}),
        _FakeClient(
            "https://b.example",
            tokens={"0xusdc": 2_500_000, "0xdai": 0, "0xlink": RpcError("execution reverted")},
        ),
        _FakeClient("https://c.example", tokens={"0xusdc": 1}),
    ]
    provider, made = _provider(clients)

    balances = await provider.get_token_balances(ChainId.ETHEREUM, OWNER, [USDC, DAI, LINK])

    assert made == [0, 1]
    assert [b.symbol for b in balances] == ["USDC"]
    assert balances[0].balance == "2.5"
    assert balances[0].amount == Decimal("2.5")
    assert balances[0].contract_address == "0xusdc"


@pytest.mark.asyncio
async def test_token_balances_exhaustion_returns_empty_list():
    down = RpcTransportError("down")
    clients = [_FakeClient(f"https://{c}.example", tokens={"0xusdc": down}) for c in "abc"]
    provider, made = _provider(clients)

    assert await provider.get_token_balances(ChainId.ETHEREUM, OWNER, [USDC]) == []
    assert made == [0, 1, 2]


@pytest.mark.asyncio
async def test_chain_balances_put_native_first():
    clients = [
        _FakeClient(
            "https://a.example",
            native=1_500_000_000_000_000_000,
            tokens={"0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48": 10_000_000},
        ),
    ] * 3
    provider, _ = _provider(clients)

    balances = await provider.get_chain_balances(ChainId.ETHEREUM, OWNER)

    assert [b.symbol for b in balances] == ["ETH", "USDC"]
    assert balances[0].contract_address is None
    assert balances[0].balance == "1.5"
    assert balances[1].balance == "10"


@pytest.mark.asyncio
async def test_chain_balances_skip_zero_native():
    clients = [_FakeClient("https://a.example", native=0)] * 3
    provider, _ = _provider(clients)

    assert await provider.get_chain_balances(ChainId.ETHEREUM, OWNER) == []
