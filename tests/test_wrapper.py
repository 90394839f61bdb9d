"""
Tests for wrapping and unwrapping the base asset.
"""
import pytest

from relayadapt_sdk.abi import unwrap_base_call, wrap_base_call
from relayadapt_sdk.engine import AdaptAccount, BaseTokenWrapper
from relayadapt_sdk.exceptions import CallReverted
from relayadapt_sdk.models import ActionData
from conftest import ADAPT_ADDRESS, RELAYER_ADDRESS, WETH_ADDRESS


@pytest.fixture
def wrapper(chain, weth):
    return BaseTokenWrapper(AdaptAccount(chain, ADAPT_ADDRESS), WETH_ADDRESS)


def test_wrap_zero_wraps_whole_balance(chain, wrapper, weth):
    chain.set_balance(ADAPT_ADDRESS, 75)

    assert wrapper.wrap(0) == 75
    assert chain.balance_of(ADAPT_ADDRESS) == 0
    assert weth.balance(ADAPT_ADDRESS) == 75
    assert chain.balance_of(WETH_ADDRESS) == 75


def test_wrap_exact_amount(chain, wrapper, weth):
    chain.set_balance(ADAPT_ADDRESS, 75)

    assert wrapper.wrap(50) == 50
    assert chain.balance_of(ADAPT_ADDRESS) == 25
    assert weth.balance(ADAPT_ADDRESS) == 50


def test_wrap_more_than_held_reverts(chain, wrapper, weth):
    chain.set_balance(ADAPT_ADDRESS, 10)

    with pytest.raises(CallReverted, match="insufficient native balance"):
        wrapper.wrap(11)
    assert weth.balance(ADAPT_ADDRESS) == 0


def test_unwrap_zero_unwraps_whole_balance(chain, wrapper, weth):
    chain.set_balance(ADAPT_ADDRESS, 40)
    wrapper.wrap(0)

    assert wrapper.unwrap(0) == 40
    assert weth.balance(ADAPT_ADDRESS) == 0
    assert chain.balance_of(ADAPT_ADDRESS) == 40


def test_unwrap_exact_amount(chain, wrapper, weth):
    chain.set_balance(ADAPT_ADDRESS, 40)
    wrapper.wrap(0)

    assert wrapper.unwrap(15) == 15
    assert weth.balance(ADAPT_ADDRESS) == 25
    assert chain.balance_of(ADAPT_ADDRESS) == 15


def test_wrap_then_unwrap_through_relay(chain, adapt, weth):
    chain.set_balance(RELAYER_ADDRESS, 100)
    action_data = ActionData(
        nonce=1,
        require_success=True,
        calls=[wrap_base_call(ADAPT_ADDRESS, 0), unwrap_base_call(ADAPT_ADDRESS, 30)],
    )

    adapt.relay([], action_data, caller=RELAYER_ADDRESS, value=100)

    assert weth.balance(ADAPT_ADDRESS) == 70
    assert chain.balance_of(ADAPT_ADDRESS) == 30
    assert chain.balance_of(RELAYER_ADDRESS) == 0


def test_plain_value_transfer_to_wrapped_base_deposits(chain, weth):
    chain.set_balance(RELAYER_ADDRESS, 5)

    chain.call(RELAYER_ADDRESS, WETH_ADDRESS, b"", value=5)

    assert weth.balance(RELAYER_ADDRESS) == 5
