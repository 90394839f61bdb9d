"""
Tests for ordered multicall execution and failure handling.
"""
import pytest
from unittest.mock import MagicMock

from relayadapt_sdk.abi import (
    decode_call_failed, decode_revert_reason, encode_error, encode_function_call,
    multicall_call, shield_call, unwrap_base_call,
)
from relayadapt_sdk.config import AdaptConfig, FailurePolicy
from relayadapt_sdk.engine import MulticallDispatcher
from relayadapt_sdk.exceptions import CallFailedError, CallReverted
from relayadapt_sdk.models import ActionData, Call, CommitmentPreimage, ShieldCiphertext, TokenData
from conftest import ADAPT_ADDRESS, RECIPIENT_ADDRESS, RECORDER_ADDRESS, RELAYER_ADDRESS


MISSING_TOKEN_ADDRESS = "0x9900000000000000000000000000000000000099"


def ping(n, value=0):
    return Call(to=RECORDER_ADDRESS, data=encode_function_call("ping(uint256)", n), value=value)


def fail():
    return Call(to=RECORDER_ADDRESS, data=encode_function_call("fail()"))


def crash():
    return Call(to=RECORDER_ADDRESS, data=encode_function_call("crash()"))


def sweep_missing_token():
    """Shield step sweeping a token address with no contract behind it"""
    preimage = CommitmentPreimage(npk=b"\x11" * 32, token=TokenData(token_address=MISSING_TOKEN_ADDRESS))
    return shield_call(ADAPT_ADDRESS, [preimage], [ShieldCiphertext()])


def test_failing_call_tolerated(adapt, recorder):
    """A failing middle call does not stop its neighbours."""
    action_data = ActionData(nonce=1, require_success=False, calls=[ping(1), fail(), ping(3)])

    results = adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert [result.success for result in results] == [True, False, True]
    assert decode_revert_reason(results[1].returned) == "Recorder: boom"
    assert recorder.pings == [1, 3]


def test_require_success_aborts_everything(chain, adapt, recorder):
    chain.set_balance(RELAYER_ADDRESS, 10)
    action_data = ActionData(nonce=1, require_success=True, calls=[ping(1), fail(), ping(3)])

    with pytest.raises(CallFailedError) as exc_info:
        adapt.relay([], action_data, caller=RELAYER_ADDRESS, value=10)

    assert exc_info.value.index == 1
    assert decode_revert_reason(exc_info.value.revert_data) == "call 1: Recorder: boom"
    assert decode_call_failed(exc_info.value.revert_data) == (1, encode_error("Recorder: boom"))
    assert recorder.pings == []
    assert chain.balance_of(RELAYER_ADDRESS) == 10
    assert chain.balance_of(ADAPT_ADDRESS) == 0


def test_self_target_failure_always_aborts(chain, adapt, recorder):
    """Steps addressed to the engine itself must succeed even without require_success."""
    action_data = ActionData(
        nonce=1,
        require_success=False,
        calls=[ping(1), unwrap_base_call(ADAPT_ADDRESS, 5)],
    )

    with pytest.raises(CallFailedError) as exc_info:
        adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert exc_info.value.index == 1
    assert "withdraw amount exceeds balance" in str(exc_info.value)
    assert recorder.pings == []


def test_calls_run_in_order_with_value(chain, adapt, recorder):
    chain.set_balance(RELAYER_ADDRESS, 10)
    action_data = ActionData(
        nonce=1,
        require_success=True,
        calls=[ping(3, value=4), ping(1), Call(to=RECIPIENT_ADDRESS, value=6)],
    )

    results = adapt.relay([], action_data, caller=RELAYER_ADDRESS, value=10)

    assert all(result.success for result in results)
    assert recorder.pings == [3, 1]
    assert chain.balance_of(RECORDER_ADDRESS) == 4
    assert chain.balance_of(RECIPIENT_ADDRESS) == 6
    assert chain.balance_of(ADAPT_ADDRESS) == 0


def test_tolerated_failure_rolls_back_its_own_value(chain, adapt):
    """A failed call's value transfer is undone; the funds stay with the engine."""
    chain.set_balance(RELAYER_ADDRESS, 10)
    failing = Call(to=RECORDER_ADDRESS, data=encode_function_call("ping(uint256)", 1)[:8], value=10)
    action_data = ActionData(nonce=1, require_success=False, calls=[failing])

    results = adapt.relay([], action_data, caller=RELAYER_ADDRESS, value=10)

    assert not results[0].success
    assert chain.balance_of(ADAPT_ADDRESS) == 10
    assert chain.balance_of(RECORDER_ADDRESS) == 0


def test_nested_multicall_step(adapt, recorder):
    inner = multicall_call(ADAPT_ADDRESS, False, [ping(1), fail(), ping(2)])
    action_data = ActionData(nonce=1, require_success=True, calls=[inner, ping(3)])

    results = adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert [result.success for result in results] == [True, True]
    assert recorder.pings == [1, 2, 3]


def test_nested_multicall_failure_aborts_outer(adapt, recorder):
    inner = multicall_call(ADAPT_ADDRESS, True, [ping(1), fail()])
    action_data = ActionData(nonce=1, require_success=False, calls=[ping(0), inner])

    with pytest.raises(CallFailedError) as exc_info:
        adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert decode_revert_reason(exc_info.value.revert_data) == "call 1: call 1: Recorder: boom"
    assert recorder.pings == []


def test_collect_policy_attempts_every_call(make_adapt, recorder):
    adapt = make_adapt(AdaptConfig(failure_policy=FailurePolicy.COLLECT))
    action_data = ActionData(nonce=1, require_success=True, calls=[ping(1), fail(), ping(3), fail()])

    with pytest.raises(CallFailedError) as exc_info:
        adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert exc_info.value.index == 1
    assert recorder.pings == []


def test_collect_policy_tolerates_self_target_failure(make_adapt, recorder):
    adapt = make_adapt(AdaptConfig(failure_policy=FailurePolicy.COLLECT))
    action_data = ActionData(
        nonce=1,
        require_success=False,
        calls=[unwrap_base_call(ADAPT_ADDRESS, 5), ping(2)],
    )

    results = adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert [result.success for result in results] == [False, True]
    assert recorder.pings == [2]


def test_dispatcher_routes_self_calls_through_invoker(chain, recorder):
    invoke_self = MagicMock(return_value=b"\x01")
    dispatcher = MulticallDispatcher(chain, ADAPT_ADDRESS, invoke_self)
    self_call = Call(to=ADAPT_ADDRESS, data=b"\xaa\xbb\xcc\xdd", value=0)

    results = dispatcher.run_calls(True, [self_call, ping(7)], gas=1_000)

    invoke_self.assert_called_once_with(b"\xaa\xbb\xcc\xdd", 0, 1_000)
    assert results[0].returned == b"\x01"
    assert recorder.pings == [7]


def test_dispatcher_wraps_self_call_failure(chain):
    invoke_self = MagicMock(side_effect=CallReverted(encode_error("inner")))
    dispatcher = MulticallDispatcher(chain, ADAPT_ADDRESS, invoke_self)

    with pytest.raises(CallFailedError) as exc_info:
        dispatcher.run_calls(False, [Call(to=ADAPT_ADDRESS, data=b"\x00" * 4)], gas=1_000)

    assert exc_info.value.reason == encode_error("inner")


def test_empty_call_list(chain):
    dispatcher = MulticallDispatcher(chain, ADAPT_ADDRESS, MagicMock())

    assert dispatcher.run_calls(True, [], gas=1_000) == []


def test_crashing_call_tolerated_as_empty_revert(adapt, recorder):
    action_data = ActionData(nonce=1, require_success=False, calls=[ping(1), crash(), ping(3)])

    results = adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert [result.success for result in results] == [True, False, True]
    assert results[1].returned == b""
    assert recorder.pings == [1, 3]


def test_sweep_of_missing_token_aborts(adapt, recorder):
    """A self step whose token has no contract fails cleanly and aborts the batch."""
    action_data = ActionData(nonce=1, require_success=False, calls=[ping(1), sweep_missing_token()])

    with pytest.raises(CallFailedError) as exc_info:
        adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert exc_info.value.index == 1
    assert exc_info.value.reason == b""
    assert recorder.pings == []


def test_collect_policy_records_sweep_of_missing_token(make_adapt, recorder):
    adapt = make_adapt(AdaptConfig(failure_policy=FailurePolicy.COLLECT))
    action_data = ActionData(nonce=1, require_success=False, calls=[sweep_missing_token(), crash(), ping(2)])

    results = adapt.relay([], action_data, caller=RELAYER_ADDRESS)

    assert [result.success for result in results] == [False, False, True]
    assert [result.returned for result in results[:2]] == [b"", b""]
    assert recorder.pings == [2]
