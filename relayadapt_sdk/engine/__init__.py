"""
Adapt engine for the RelayAdapt SDK.

This package executes relay requests in-process: it checks that a shielded
transaction batch is bound to its follow-up calls, forwards the batch to a
ledger and then runs the calls with the adapt contract's own balances.
"""
from .access import AccessGuard, AccessMode, ReentryCapability
from .accounts import AdaptAccount
from .chain import CallContext, Chain, Contract, entrypoint
from .executor import ShieldedBatchExecutor
from .ledger import ShieldedLedger
from .multicall import MulticallDispatcher
from .relay import RelayAdapt
from .shield import TokenSweepShielder
from .stubs import StubLedger, StubToken, StubWrappedBase
from .transfer import TokenSender
from .wrapper import BaseTokenWrapper

__all__ = [
    'AccessGuard', 'AccessMode', 'ReentryCapability', 'AdaptAccount',
    'CallContext', 'Chain', 'Contract', 'entrypoint', 'ShieldedBatchExecutor',
    'ShieldedLedger', 'MulticallDispatcher', 'RelayAdapt', 'TokenSweepShielder',
    'StubLedger', 'StubToken', 'StubWrappedBase', 'TokenSender', 'BaseTokenWrapper',
]
