"""
Adapt params commitment.

The adapt params bind a batch of shielded transactions to the follow-up
actions the relay adapt contract will execute after the batch settles. They
are the keccak256 hash of::

    abi.encode(bytes32[] firstNullifiers, uint256 transactionCount, ActionData)

where ``firstNullifiers`` holds ``nullifiers[0]`` of every transaction in
batch order. Any change to the batch order or size, the nonce, the success
flag, the gas floor, or any call (target, payload, value, count, order)
changes the commitment.
"""
from typing import List, Sequence

from eth_abi import encode
from web3 import Web3

from .abi import ADAPT_PARAMS_TYPES
from .models import ActionData, Transaction


def adapt_params_preimage(transactions: Sequence[Transaction], action_data: ActionData) -> bytes:
    """Return the canonical ABI encoding hashed into the adapt params."""
    first_nullifiers = [transaction.nullifiers[0] for transaction in transactions]
    return encode(
        ADAPT_PARAMS_TYPES,
        [first_nullifiers, len(transactions), action_data.to_abi()],
    )


def compute_adapt_params(transactions: Sequence[Transaction], action_data: ActionData) -> bytes:
    """
    Compute the adapt params for a transaction batch and its action data.

    Pure and deterministic; available to any caller so clients can precompute
    the value before proving.

    Args:
        transactions: Ordered transaction batch
        action_data: Follow-up actions to bind

    Returns:
        32-byte commitment
    """
    return bytes(Web3.keccak(adapt_params_preimage(transactions, action_data)))


def bind_transactions(transactions: Sequence[Transaction], action_data: ActionData) -> List[Transaction]:
    """
    Return copies of ``transactions`` carrying the adapt params for ``action_data``.

    The commitment only reads first nullifiers, which do not depend on the
    adapt params field, so one pass binds the whole batch.
    """
    adapt_params = compute_adapt_params(transactions, action_data)
    return [transaction.with_adapt_params(adapt_params) for transaction in transactions]
