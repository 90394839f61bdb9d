"""
Interface of the shielded ledger the adapt engine forwards to.

The ledger verifies proofs, tracks nullifiers and the commitment tree, and
mints shielded notes. None of that is the adapt engine's concern; it only
needs these two entrypoints.
"""
from abc import ABC, abstractmethod
from typing import Sequence

from ..models import CommitmentPreimage, ShieldCiphertext, Transaction
from .chain import CallContext


class ShieldedLedger(ABC):
    """
    Abstract base class for ledger implementations.

    Implementations raise a ``RelayAdaptError`` subclass (normally
    ``CallReverted``) to reject a request.
    """

    address: str

    @abstractmethod
    def transact(self, ctx: CallContext, transactions: Sequence[Transaction]) -> None:
        """
        Verify and settle a batch of shielded transactions.

        Args:
            ctx: Call context; ``ctx.caller`` is the submitting contract
            transactions: Transaction batch, forwarded untouched
        """
        pass

    @abstractmethod
    def shield(
        self,
        ctx: CallContext,
        preimages: Sequence[CommitmentPreimage],
        ciphertexts: Sequence[ShieldCiphertext],
    ) -> None:
        """
        Pull tokens from ``ctx.caller`` and mint one note per preimage.

        Args:
            ctx: Call context; ``ctx.caller`` must have approved the ledger
            preimages: Notes to create; values must be nonzero
            ciphertexts: Encrypted note data, matched by position
        """
        pass
