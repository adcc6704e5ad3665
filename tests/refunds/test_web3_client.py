import pytest
from web3.exceptions import TimeExhausted

from core.settings import ChainSettings
from domain.common.exceptions import ConfigurationError, RefundTransactionError
from infrastructure.external.chain import Web3TokenClient, is_address


PRIVATE_KEY = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
MERCHANT = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
RECIPIENT = "0x1111111111111111111111111111111111111111"
RAW_HASH = bytes.fromhex("cd" * 32)


class _Call:
    def __init__(self, owner, name, args):
        self.owner, self.name, self.args = owner, name, args

    async def call(self):
        self.owner.calls.append(self.name)
        return self.owner.decimals_value

    async def build_transaction(self, params):
        self.owner.built.append((self.args, params))
        return {
            "to": self.owner.address,
            "data": "0xa9059cbb",
            "value": 0,
            "gas": 65_000,
            "maxFeePerGas": 2_000_000_000,
            "maxPriorityFeePerGas": 1_000_000_000,
            "nonce": params["nonce"],
            "chainId": params.get("chainId", 8453),
        }


class _Functions:
    def __init__(self, owner):
        self._owner = owner

    def decimals(self):
        return _Call(self._owner, "decimals", ())

    def transfer(self, to, amount):
        return _Call(self._owner, "transfer", (to, amount))


class FakeContract:
    def __init__(self, address):
        self.address = address
        self.decimals_value = 6
        self.calls = []
        self.built = []
        self.functions = _Functions(self)


class FakeEth:
    def __init__(self):
        self.contract_obj = None
        self.sent = []
        self.receipt = {"status": 1, "transactionHash": RAW_HASH}
        self.send_error = None
        self.receipt_error = None

    def contract(self, address, abi):
        self.contract_obj = FakeContract(address)
        return self.contract_obj

    async def get_transaction_count(self, address, block):
        return 7

    async def send_raw_transaction(self, raw):
        if self.send_error:
            raise self.send_error
        self.sent.append(raw)
        return RAW_HASH

    async def wait_for_transaction_receipt(self, tx_hash, timeout):
        if self.receipt_error:
            raise self.receipt_error
        return self.receipt


class FakeProvider:
    def __init__(self):
        self.disconnected = False

    async def disconnect(self):
        self.disconnected = True


class FakeWeb3:
    def __init__(self):
        self.eth = FakeEth()
        self.provider = FakeProvider()


def _settings(**overrides) -> ChainSettings:
    values = {"private_key": PRIVATE_KEY, "merchant_address": MERCHANT, "chain_id": 8453}
    values.update(overrides)
    return ChainSettings(**values)


def test_is_address():
    assert is_address(RECIPIENT)
    assert is_address(MERCHANT)
    assert not is_address("0x123")
    assert not is_address("not-an-address")
    assert not is_address(None)


@pytest.mark.parametrize(
    "overrides",
    [
        {"private_key": None},
        {"private_key": "zz" * 32},
        {"private_key": "abc"},
        {"merchant_address": None},
        {"merchant_address": RECIPIENT},
        {"token_address": "0xnope"},
    ],
)
def test_bad_configuration_fails_before_network(overrides):
    w3 = FakeWeb3()
    with pytest.raises(ConfigurationError):
        Web3TokenClient(_settings(**overrides), w3=w3)
    assert w3.eth.sent == []


@pytest.mark.asyncio
async def test_transfer_signs_and_waits_for_receipt():
    w3 = FakeWeb3()
    client = Web3TokenClient(_settings(), w3=w3)

    assert client.address == MERCHANT
    assert await client.decimals() == 6
    assert await client.decimals() == 6
    assert w3.eth.contract_obj.calls == ["decimals"]

    tx_hash = await client.transfer(RECIPIENT, 1_500_000)

    assert tx_hash == "0x" + "cd" * 32
    assert len(w3.eth.sent) == 1
    (to, amount), params = w3.eth.contract_obj.built[0]
    assert amount == 1_500_000
    assert to.lower() == RECIPIENT
    assert params == {"from": MERCHANT, "nonce": 7, "chainId": 8453}

    await client.aclose()
    assert w3.provider.disconnected


@pytest.mark.asyncio
async def test_reverted_receipt_is_transaction_error():
    w3 = FakeWeb3()
    w3.eth.receipt = {"status": 0, "transactionHash": RAW_HASH}
    client = Web3TokenClient(_settings(), w3=w3)

    with pytest.raises(RefundTransactionError) as exc_info:
        await client.transfer(RECIPIENT, 1)
    assert exc_info.value.details["tx_hash"] == "0x" + "cd" * 32


@pytest.mark.asyncio
async def test_submit_failure_is_transaction_error():
    w3 = FakeWeb3()
    w3.eth.send_error = ValueError("insufficient funds for gas")
    client = Web3TokenClient(_settings(), w3=w3)

    with pytest.raises(RefundTransactionError) as exc_info:
        await client.transfer(RECIPIENT, 1)
    assert "tx_hash" not in exc_info.value.details
    assert exc_info.value.details["retryable"] is True


@pytest.mark.asyncio
async def test_confirmation_timeout_reports_hash():
    w3 = FakeWeb3()
    w3.eth.receipt_error = TimeExhausted("not mined")
    client = Web3TokenClient(_settings(), w3=w3)

    with pytest.raises(RefundTransactionError) as exc_info:
        await client.transfer(RECIPIENT, 1)
    assert exc_info.value.details["tx_hash"] == "0x" + "cd" * 32
    assert exc_info.value.details["retryable"] is False


@pytest.mark.asyncio
async def test_decimals_failure_is_transaction_error():
    w3 = FakeWeb3()
    client = Web3TokenClient(_settings(), w3=w3)

    async def _boom():
        raise ConnectionError("rpc down")

    w3.eth.contract_obj.functions.decimals = lambda: type("C", (), {"call": staticmethod(_boom)})()
    with pytest.raises(RefundTransactionError):
        await client.decimals()
