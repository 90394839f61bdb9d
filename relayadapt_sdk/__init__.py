"""
RelayAdapt SDK.

Binds shielded transaction batches to follow-up calls and executes them
atomically through a relay adapt engine.
"""
from .version import __version__
from .adapt_params import bind_transactions, compute_adapt_params
from .client import RelayAdaptClient
from .config import AdaptConfig, FailurePolicy
from .exceptions import (
    RelayAdaptError, CallReverted, ParameterMismatchError, CallFailedError,
    AccessDeniedError, InsufficientResourcesError, UnsupportedTokenKindError,
    TransactionError,
)
from .models import (
    ActionData, BoundParams, Call, CallResult, CommitmentPreimage,
    ShieldCiphertext, TokenData, TokenTransfer, TokenType, Transaction,
    TxReceipt, UnshieldType,
)

__all__ = [
    '__version__', 'bind_transactions', 'compute_adapt_params', 'RelayAdaptClient',
    'AdaptConfig', 'FailurePolicy', 'RelayAdaptError', 'CallReverted',
    'ParameterMismatchError', 'CallFailedError', 'AccessDeniedError',
    'InsufficientResourcesError', 'UnsupportedTokenKindError', 'TransactionError',
    'ActionData', 'BoundParams', 'Call', 'CallResult', 'CommitmentPreimage',
    'ShieldCiphertext', 'TokenData', 'TokenTransfer', 'TokenType', 'Transaction',
    'TxReceipt', 'UnshieldType',
]
