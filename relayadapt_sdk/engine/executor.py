"""
Binding check and ledger forwarding for shielded transaction batches.
"""
import logging
from typing import Optional, Sequence

from ..adapt_params import compute_adapt_params
from ..exceptions import ParameterMismatchError
from ..models import ActionData, Transaction
from .access import AccessGuard
from .chain import CallContext
from .ledger import ShieldedLedger


class ShieldedBatchExecutor:
    """Forwards a batch to the ledger once it is bound to the action data."""

    def __init__(
        self,
        address: str,
        ledger: ShieldedLedger,
        guard: AccessGuard,
        logger: Optional[logging.Logger] = None,
    ):
        self.address = address
        self.ledger = ledger
        self.guard = guard
        self.logger = logger or logging.getLogger(__name__)

    def verify_binding(
        self,
        ctx: CallContext,
        transactions: Sequence[Transaction],
        action_data: ActionData,
    ) -> bytes:
        """
        Check every transaction carries the adapt params for ``action_data``.

        Returns:
            The expected adapt params

        Raises:
            ParameterMismatchError: If any transaction is bound to something else
                and the caller is not the verification bypass identity
        """
        expected = compute_adapt_params(transactions, action_data)
        if self.guard.is_bypass(ctx.caller):
            self.logger.warning("Skipping adapt params check for verification bypass caller")
            return expected
        for index, transaction in enumerate(transactions):
            if transaction.adapt_params != expected:
                raise ParameterMismatchError(index, expected, transaction.adapt_params)
        return expected

    def execute_batch(
        self,
        ctx: CallContext,
        transactions: Sequence[Transaction],
        action_data: ActionData,
    ) -> None:
        """
        Verify the binding and hand the untouched batch to the ledger.

        An empty batch is a no-op.
        """
        if not transactions:
            return
        self.verify_binding(ctx, transactions, action_data)
        self.logger.info(f"Forwarding {len(transactions)} transactions to ledger {self.ledger.address}")
        self.ledger.transact(CallContext(caller=self.address, gas=ctx.gas), transactions)
