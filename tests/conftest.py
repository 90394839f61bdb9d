"""
Pytest fixtures for the RelayAdapt SDK tests.
"""
import pytest

from relayadapt_sdk.abi import encode_error
from relayadapt_sdk.config import AdaptConfig
from relayadapt_sdk.engine import Chain, Contract, RelayAdapt, StubLedger, StubToken, StubWrappedBase, entrypoint
from relayadapt_sdk.exceptions import CallReverted
from relayadapt_sdk.models import ActionData, BoundParams, Transaction

# Constants for testing
LEDGER_ADDRESS = "0x1000000000000000000000000000000000000001"
WETH_ADDRESS = "0x2000000000000000000000000000000000000002"
ADAPT_ADDRESS = "0x3000000000000000000000000000000000000003"
RELAYER_ADDRESS = "0x4000000000000000000000000000000000000004"
TOKEN_A_ADDRESS = "0x5000000000000000000000000000000000000005"
TOKEN_B_ADDRESS = "0x6000000000000000000000000000000000000006"
RECORDER_ADDRESS = "0x7000000000000000000000000000000000000007"
RECIPIENT_ADDRESS = "0x8000000000000000000000000000000000000008"
BYPASS_ADDRESS = "0x000000000000000000000000000000000000dEaD"


class Recorder(Contract):
    """Test contract recording pings and failing on demand."""

    accepts_value = True

    @property
    def pings(self):
        return list(self.storage.get("pings", []))

    @entrypoint("ping(uint256)", returns="uint256", payable=True)
    def ping(self, ctx, n):
        self.storage.setdefault("pings", []).append(n)
        return n

    @entrypoint("fail()")
    def fail(self, ctx):
        raise CallReverted(encode_error("Recorder: boom"))

    @entrypoint("crash()")
    def crash(self, ctx):
        return self.storage["missing"]

    @entrypoint("forward(address,bytes)")
    def forward(self, ctx, target, data):
        self.chain.call(self.address, target, data)


def make_transaction(nullifier, adapt_params=b"\x00" * 32, **kwargs) -> Transaction:
    """Build a transaction with a single nullifier and the given adapt params."""
    bound_params = kwargs.pop("bound_params", None) or BoundParams(adapt_params=adapt_params)
    return Transaction(nullifiers=[nullifier], bound_params=bound_params, **kwargs)


@pytest.fixture
def chain():
    return Chain()


@pytest.fixture
def ledger(chain):
    return StubLedger(chain, LEDGER_ADDRESS)


@pytest.fixture
def weth(chain):
    return StubWrappedBase(chain, WETH_ADDRESS)


@pytest.fixture
def token_a(chain):
    return StubToken(chain, TOKEN_A_ADDRESS, "TKA")


@pytest.fixture
def token_b(chain):
    return StubToken(chain, TOKEN_B_ADDRESS, "TKB")


@pytest.fixture
def recorder(chain):
    return Recorder(chain, RECORDER_ADDRESS)


@pytest.fixture
def make_adapt(chain, ledger, weth):
    """Factory deploying a RelayAdapt with optional config or ledger override."""
    def _make(config=None, ledger_override=None, address=ADAPT_ADDRESS):
        return RelayAdapt(chain, address, ledger_override or ledger, weth.address, config=config)
    return _make


@pytest.fixture
def adapt(make_adapt):
    return make_adapt()


@pytest.fixture
def bypass_adapt(make_adapt):
    return make_adapt(AdaptConfig(allow_verification_bypass=True))


@pytest.fixture
def empty_action():
    return ActionData(nonce=1, require_success=True, min_gas_limit=0, calls=[])
