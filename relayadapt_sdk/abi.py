"""
ABI codec for the relay adapt contract.

Holds the canonical type strings for every struct the adapt layer encodes,
selector helpers, revert payload encoding/decoding and builders for the
self-targeted multicall steps.
"""
import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_abi.grammar import parse
from web3 import Web3

from .exceptions import RelayAdaptError
from .models import Call, CallResult, CommitmentPreimage, ShieldCiphertext, TokenTransfer
from .utils import to_dynamic_bytes

logger = logging.getLogger(__name__)

TOKEN_DATA = "(uint8,address,uint256)"
COMMITMENT_PREIMAGE = f"(bytes32,{TOKEN_DATA},uint120)"
SHIELD_CIPHERTEXT = "(bytes32[3],bytes32)"
TOKEN_TRANSFER = f"({TOKEN_DATA},address,uint256)"
CALL = "(address,bytes,uint256)"
ACTION_DATA = f"(bytes31,bool,uint256,{CALL}[])"
SNARK_PROOF = "((uint256,uint256),(uint256[2],uint256[2]),(uint256,uint256))"
COMMITMENT_CIPHERTEXT = "(bytes32[4],bytes32,bytes32,bytes,bytes)"
BOUND_PARAMS = f"(uint16,uint72,uint8,uint64,address,bytes32,{COMMITMENT_CIPHERTEXT}[])"
TRANSACTION = (
    f"({SNARK_PROOF},bytes32,bytes32[],bytes32[],{BOUND_PARAMS},{COMMITMENT_PREIMAGE})"
)

# Preimage layout of the adapt params commitment
ADAPT_PARAMS_TYPES = ["bytes32[]", "uint256", ACTION_DATA]

SHIELD_SIGNATURE = f"shield({COMMITMENT_PREIMAGE}[],{SHIELD_CIPHERTEXT}[])"
TRANSFER_SIGNATURE = f"transfer({TOKEN_TRANSFER}[])"
WRAP_BASE_SIGNATURE = "wrapBase(uint256)"
UNWRAP_BASE_SIGNATURE = "unwrapBase(uint256)"
MULTICALL_SIGNATURE = f"multicall(bool,{CALL}[])"
RELAY_SIGNATURE = f"relay({TRANSACTION}[],{ACTION_DATA})"
GET_ADAPT_PARAMS_SIGNATURE = f"getAdaptParams({TRANSACTION}[],{ACTION_DATA})"

ERROR_SIGNATURE = "Error(string)"
CALL_FAILED_SIGNATURE = "CallFailed(uint256,bytes)"
UNKNOWN_REVERT_REASON = "Unknown Relay Adapt error."

CALL_RESULT_EVENT_SIGNATURE = "CallResult((bool,bytes)[])"
CALL_RESULT_NOT_FOUND = "Call Result events not found."


def function_selector(signature: str) -> bytes:
    """
    Compute the 4-byte selector of a canonical function signature.

    Args:
        signature: Canonical signature, e.g. ``"transfer(address,uint256)"``

    Returns:
        First four bytes of the keccak256 hash of the signature
    """
    return bytes(Web3.keccak(text=signature)[:4])


def argument_types(signature: str) -> List[str]:
    """
    Split a canonical signature into its top-level argument type strings.

    Args:
        signature: Canonical signature, e.g. ``"wrapBase(uint256)"``

    Returns:
        List of ABI type strings, one per argument

    Raises:
        ValueError: If the signature is malformed
    """
    open_index = signature.find("(")
    if open_index <= 0 or not signature.endswith(")"):
        raise ValueError(f"Malformed function signature: {signature}")
    tuple_type = parse(signature[open_index:])
    return [component.to_type_str() for component in tuple_type.components]


def encode_function_call(signature: str, *args: Any) -> bytes:
    """Encode calldata for ``signature`` called with ``args``."""
    return function_selector(signature) + encode(argument_types(signature), list(args))


def decode_function_args(signature: str, data: bytes) -> tuple:
    """
    Decode calldata produced for ``signature``.

    Raises:
        ValueError: If the selector does not match or the payload is malformed
    """
    if bytes(data[:4]) != function_selector(signature):
        raise ValueError(f"Calldata does not target {signature}")
    try:
        return decode(argument_types(signature), bytes(data[4:]))
    except DecodingError as e:
        raise ValueError(f"Malformed calldata for {signature}: {str(e)}")


def encode_error(message: str) -> bytes:
    """Encode ``message`` as an ``Error(string)`` revert payload."""
    return function_selector(ERROR_SIGNATURE) + encode(["string"], [message])


def encode_call_failed(index: int, reason: bytes) -> bytes:
    """Encode a ``CallFailed(uint256,bytes)`` revert payload."""
    return function_selector(CALL_FAILED_SIGNATURE) + encode(["uint256", "bytes"], [index, bytes(reason)])


def decode_call_failed(data: bytes):
    """
    Decode a ``CallFailed`` revert payload.

    Returns:
        ``(index, reason)`` tuple, or ``None`` if the payload is not a ``CallFailed``
    """
    data = bytes(data)
    if data[:4] != function_selector(CALL_FAILED_SIGNATURE):
        return None
    try:
        index, reason = decode(["uint256", "bytes"], data[4:])
    except DecodingError:
        return None
    return index, reason


def decode_revert_reason(data: bytes) -> str:
    """
    Turn a raw revert payload into a human readable reason.

    ``Error(string)`` payloads yield their message; nested ``CallFailed``
    payloads are unwrapped to the innermost reason. Anything else is reported
    as an unknown error.

    Args:
        data: Raw revert payload

    Returns:
        Decoded reason string
    """
    data = bytes(data)
    if data[:4] == function_selector(ERROR_SIGNATURE):
        try:
            (message,) = decode(["string"], data[4:])
            return message
        except DecodingError:
            logger.debug(f"Undecodable Error(string) payload: 0x{data.hex()}")
            return UNKNOWN_REVERT_REASON
    failed = decode_call_failed(data)
    if failed is not None:
        index, reason = failed
        return f"call {index}: {decode_revert_reason(reason)}"
    return UNKNOWN_REVERT_REASON


def event_topic(signature: str) -> bytes:
    """Return the 32-byte topic hash of an event signature."""
    return bytes(Web3.keccak(text=signature))


def decode_call_results(logs: Iterable[Mapping[str, Any]], address: Optional[str] = None) -> List[CallResult]:
    """
    Decode the ``CallResult`` event out of a receipt's logs.

    When several logs carry the event, the last one wins.

    Args:
        logs: Receipt logs with ``topics``, ``data`` and ``address`` entries
        address: Only consider logs emitted by this contract (optional)

    Returns:
        One ``CallResult`` per multicall step

    Raises:
        RelayAdaptError: If no ``CallResult`` event is present
    """
    topic = event_topic(CALL_RESULT_EVENT_SIGNATURE)
    found = None
    for log in logs:
        if address is not None and str(log.get("address", "")).lower() != address.lower():
            continue
        topics = log.get("topics") or []
        if not topics or to_dynamic_bytes(topics[0]) != topic:
            continue
        try:
            (found,) = decode(["(bool,bytes)[]"], to_dynamic_bytes(log.get("data", b"")))
        except DecodingError as e:
            logger.debug(f"Undecodable CallResult log: {e}")
            raise RelayAdaptError(f"Malformed CallResult event: {e}")
    if found is None:
        raise RelayAdaptError(CALL_RESULT_NOT_FOUND)
    return [CallResult(success=success, returned=returned) for success, returned in found]


def shield_call(
    adapt_address: str,
    preimages: Sequence[CommitmentPreimage],
    ciphertexts: Sequence[ShieldCiphertext],
) -> Call:
    """Build the multicall step shielding ``preimages`` from the adapt contract."""
    data = encode_function_call(
        SHIELD_SIGNATURE,
        [preimage.to_abi() for preimage in preimages],
        [ciphertext.to_abi() for ciphertext in ciphertexts],
    )
    return Call(to=adapt_address, data=data, value=0)


def transfer_call(adapt_address: str, transfers: Sequence[TokenTransfer]) -> Call:
    """Build the multicall step sending tokens held by the adapt contract."""
    data = encode_function_call(TRANSFER_SIGNATURE, [transfer.to_abi() for transfer in transfers])
    return Call(to=adapt_address, data=data, value=0)


def wrap_base_call(adapt_address: str, amount: int = 0) -> Call:
    """Build the multicall step wrapping ``amount`` (0 = all) base asset."""
    return Call(to=adapt_address, data=encode_function_call(WRAP_BASE_SIGNATURE, amount), value=0)


def unwrap_base_call(adapt_address: str, amount: int = 0) -> Call:
    """Build the multicall step unwrapping ``amount`` (0 = all) wrapped base asset."""
    return Call(to=adapt_address, data=encode_function_call(UNWRAP_BASE_SIGNATURE, amount), value=0)


def multicall_call(adapt_address: str, require_success: bool, calls: Sequence[Call]) -> Call:
    """Build a nested multicall step."""
    data = encode_function_call(MULTICALL_SIGNATURE, require_success, [call.to_abi() for call in calls])
    return Call(to=adapt_address, data=data, value=0)
