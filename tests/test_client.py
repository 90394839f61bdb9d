"""
Tests for the RelayAdaptClient class.
"""
import pytest
from unittest.mock import MagicMock
from eth_abi import encode
from eth_account import Account
from web3 import Web3
from web3.exceptions import Web3Exception

from relayadapt_sdk import RelayAdaptClient
from relayadapt_sdk.abi import (
    CALL_RESULT_NOT_FOUND, GET_ADAPT_PARAMS_SIGNATURE, RELAY_SIGNATURE, encode_error, function_selector,
)
from relayadapt_sdk.adapt_params import bind_transactions, compute_adapt_params
from relayadapt_sdk.exceptions import ParameterMismatchError, RelayAdaptError, TransactionError
from relayadapt_sdk.models import ActionData, Call, TxReceipt
from conftest import ADAPT_ADDRESS, RECORDER_ADDRESS, make_transaction

TEST_RPC_URL = "http://localhost:8545"
TEST_PRIV_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TX_HASH = b"\x12" * 32


@pytest.fixture
def action_data():
    return ActionData(nonce=9, require_success=True, min_gas_limit=200_000, calls=[Call(to=RECORDER_ADDRESS)])


@pytest.fixture
def bound(action_data):
    return bind_transactions([make_transaction("0xAA")], action_data)


def make_client(**kwargs):
    """Create a client whose Web3 instance is a mock"""
    client = RelayAdaptClient(TEST_RPC_URL, ADAPT_ADDRESS, **kwargs)
    client.w3 = MagicMock()
    client.w3.eth.chain_id = 1
    client.w3.eth.get_transaction_count.return_value = 0
    client.w3.eth.estimate_gas.return_value = 300_000
    client.w3.eth.gas_price = 1_000_000_000
    client.w3.eth.send_raw_transaction.return_value = TX_HASH
    client.w3.eth.wait_for_transaction_receipt.return_value = {
        "transactionHash": TX_HASH,
        "blockNumber": 7,
        "blockHash": b"\x34" * 32,
        "status": 1,
        "gasUsed": 250_000,
        "from": Account.from_key(TEST_PRIV_KEY).address,
        "to": ADAPT_ADDRESS,
        "logs": [],
    }
    return client


def make_signer():
    signer = MagicMock()
    signer.address = "0x1234567890123456789012345678901234567890"
    signer.sign_transaction.return_value = MagicMock(raw_transaction=b"\x02\x03")
    return signer


def test_client_initialization():
    client = RelayAdaptClient(TEST_RPC_URL, ADAPT_ADDRESS.lower(), priv_key=TEST_PRIV_KEY)

    assert client.contract_address == ADAPT_ADDRESS
    assert client.address == Account.from_key(TEST_PRIV_KEY).address


def test_rejects_insecure_remote_url():
    with pytest.raises(ValueError, match="https"):
        RelayAdaptClient("http://rpc.example.com", ADAPT_ADDRESS)


def test_rejects_invalid_contract_address():
    with pytest.raises(ValueError, match="Invalid contract address"):
        RelayAdaptClient("https://rpc.example.com", "0x1234")


def test_address_without_credentials():
    client = make_client()

    with pytest.raises(ValueError, match="No account or signer available"):
        client.address


def test_compute_and_bind_match_module_functions(action_data):
    client = make_client()
    transactions = [make_transaction("0xAA")]

    assert client.compute_adapt_params(transactions, action_data) == compute_adapt_params(transactions, action_data)
    assert client.bind(transactions, action_data) == bind_transactions(transactions, action_data)


def test_get_adapt_params_reads_contract(bound, action_data):
    client = make_client()
    client.w3.eth.call.return_value = encode(["bytes32"], [b"\xab" * 32])

    assert client.get_adapt_params(bound, action_data) == b"\xab" * 32
    request = client.w3.eth.call.call_args[0][0]
    assert request["to"] == ADAPT_ADDRESS
    assert request["data"][:4] == function_selector(GET_ADAPT_PARAMS_SIGNATURE)


def test_relay_success(bound, action_data):
    client = make_client(priv_key=TEST_PRIV_KEY)

    receipt = client.relay(bound, action_data, value=5)

    assert receipt.status == 1
    assert receipt.tx_hash == "0x" + "12" * 32
    assert receipt.block_hash == "0x" + "34" * 32
    client.w3.eth.send_raw_transaction.assert_called_once()
    tx_params = client.w3.eth.estimate_gas.call_args[0][0]
    assert tx_params["data"][:4] == function_selector(RELAY_SIGNATURE)
    assert tx_params["value"] == 5
    assert tx_params["gas"] == 330_000


def test_relay_with_custom_signer(bound, action_data):
    signer = make_signer()
    client = make_client(signer=signer)

    client.relay(bound, action_data, gas=500_000, gas_price_override=7)

    tx_params = signer.sign_transaction.call_args[0][0]
    assert tx_params["from"] == signer.address
    assert tx_params["gas"] == 500_000
    assert tx_params["gasPrice"] == 7
    client.w3.eth.estimate_gas.assert_not_called()
    client.w3.eth.send_raw_transaction.assert_called_once_with(b"\x02\x03")


def test_relay_gas_estimation_fallback(bound, action_data):
    signer = make_signer()
    client = make_client(signer=signer)
    client.w3.eth.estimate_gas.side_effect = Exception("execution reverted")

    client.relay(bound, action_data)

    assert signer.sign_transaction.call_args[0][0]["gas"] == 3_000_000


def test_relay_rejects_unbound_batch_before_sending(action_data):
    client = make_client(priv_key=TEST_PRIV_KEY)

    with pytest.raises(ParameterMismatchError):
        client.relay([make_transaction("0xAA")], action_data)
    client.w3.eth.send_raw_transaction.assert_not_called()


def test_relay_without_credentials(bound, action_data):
    client = make_client()

    with pytest.raises(ValueError, match="Neither account nor signer"):
        client.relay(bound, action_data)


def test_relay_signing_failure(bound, action_data):
    signer = make_signer()
    signer.sign_transaction.side_effect = ValueError("Signing failed deliberately")
    client = make_client(signer=signer)

    with pytest.raises(TransactionError, match="Failed to sign transaction"):
        client.relay(bound, action_data)


def test_relay_send_failure(bound, action_data):
    client = make_client(signer=make_signer())
    client.w3.eth.send_raw_transaction.side_effect = RuntimeError("connection reset")

    with pytest.raises(TransactionError, match="Failed to send transaction"):
        client.relay(bound, action_data)


def test_relay_propagates_web3_errors(bound, action_data):
    client = make_client(signer=make_signer())
    client.w3.eth.send_raw_transaction.side_effect = Web3Exception("nonce too low")

    with pytest.raises(Web3Exception):
        client.relay(bound, action_data)


def test_relay_without_waiting(bound, action_data):
    signer = make_signer()
    client = make_client(signer=signer)

    receipt = client.relay(bound, action_data, wait_for_receipt=False)

    assert receipt.tx_hash == "0x" + "12" * 32
    assert receipt.status == 0
    assert receipt.from_address == signer.address
    client.w3.eth.wait_for_transaction_receipt.assert_not_called()


def call_result_log(results, address=ADAPT_ADDRESS):
    """Build a receipt log carrying a CallResult event"""
    return {
        "address": address,
        "topics": [Web3.keccak(text="CallResult((bool,bytes)[])")],
        "data": encode(["(bool,bytes)[]"], [results]),
    }


def receipt_with_logs(logs):
    return TxReceipt(
        transactionHash="0x" + "12" * 32,
        blockNumber=7,
        blockHash="0x" + "34" * 32,
        status=1,
        gasUsed=250_000,
        **{"from": RECORDER_ADDRESS},
        logs=logs,
    )


def test_get_call_results_from_receipt():
    client = make_client()
    receipt = receipt_with_logs([
        {"address": RECORDER_ADDRESS, "topics": [b"\x01" * 32], "data": b""},
        call_result_log([(True, b"\x05"), (False, encode_error("Recorder: boom"))]),
    ])

    results = client.get_call_results(receipt)

    assert [result.success for result in results] == [True, False]
    assert results[0].returned == b"\x05"
    assert client.first_call_error(receipt) == "Recorder: boom"


def test_get_call_results_accepts_raw_receipt_with_hex_fields():
    client = make_client()
    log = call_result_log([(True, b"")], address=ADAPT_ADDRESS.lower())
    raw = {"logs": [{**log, "topics": [Web3.to_hex(log["topics"][0])], "data": Web3.to_hex(log["data"])}]}

    assert [result.success for result in client.get_call_results(raw)] == [True]
    assert client.first_call_error(raw) is None


def test_last_call_result_event_wins():
    client = make_client()
    receipt = receipt_with_logs([call_result_log([(True, b"")]), call_result_log([(False, b"")])])

    assert client.first_call_error(receipt) == "Unknown Relay Adapt error."


def test_call_results_from_other_contracts_ignored():
    client = make_client()
    receipt = receipt_with_logs([call_result_log([(False, b"")], address=RECORDER_ADDRESS)])

    with pytest.raises(RelayAdaptError, match=CALL_RESULT_NOT_FOUND):
        client.get_call_results(receipt)


def test_missing_call_result_event():
    client = make_client()

    with pytest.raises(RelayAdaptError, match="Call Result events not found."):
        client.first_call_error(receipt_with_logs([]))
