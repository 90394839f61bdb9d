"""
Shielding of engine-held token balances.
"""
import logging
from typing import Dict, List, Optional, Sequence

from ..config import DEFAULT_GAS
from ..exceptions import RelayAdaptError, UnsupportedTokenKindError
from ..models import MAX_NOTE_VALUE, CommitmentPreimage, ShieldCiphertext, TokenType
from .accounts import AdaptAccount
from .chain import CallContext
from .ledger import ShieldedLedger


class TokenSweepShielder:
    """
    Turns engine-held ERC20 balances into shielded notes.

    A preimage value of zero sweeps the engine's whole balance of that token.
    Entries that still resolve to zero are dropped, and a request where every
    entry resolves to zero does nothing at all, since the ledger rejects
    zero-value notes.
    """

    def __init__(self, account: AdaptAccount, ledger: ShieldedLedger, logger: Optional[logging.Logger] = None):
        self.account = account
        self.ledger = ledger
        self.logger = logger or logging.getLogger(__name__)

    def shield_tokens(
        self,
        preimages: Sequence[CommitmentPreimage],
        ciphertexts: Sequence[ShieldCiphertext],
        gas: int = DEFAULT_GAS,
    ) -> int:
        """
        Shield ``preimages`` using the engine's balances.

        Args:
            preimages: Requested notes; a zero value means the full balance
            ciphertexts: Ciphertexts matching ``preimages`` by position
            gas: Gas budget forwarded to the ledger

        Returns:
            Number of notes forwarded to the ledger

        Raises:
            UnsupportedTokenKindError: If any request is not ERC20
            RelayAdaptError: If the inputs are inconsistent or a balance
                exceeds the note value limit
        """
        if len(preimages) != len(ciphertexts):
            raise RelayAdaptError(
                f"RelayAdapt: {len(preimages)} shield preimages but {len(ciphertexts)} ciphertexts"
            )
        for preimage in preimages:
            if preimage.token.token_type != TokenType.ERC20:
                raise UnsupportedTokenKindError(preimage.token.token_type)

        resolved: List[int] = []
        totals: Dict[str, int] = {}
        for preimage in preimages:
            token = preimage.token.token_address
            value = preimage.value or self.account.token_balance(token)
            if value > MAX_NOTE_VALUE:
                raise RelayAdaptError(f"RelayAdapt: balance of {token} exceeds the note value limit")
            resolved.append(value)
            totals[token] = totals.get(token, 0) + value

        for token, total in totals.items():
            self.account.approve(token, self.ledger.address, total)

        nonzero = sum(1 for value in resolved if value > 0)
        if nonzero == 0:
            self.logger.debug("Nothing to shield, skipping ledger call")
            return 0

        filtered_preimages = []
        filtered_ciphertexts = []
        for preimage, ciphertext, value in zip(preimages, ciphertexts, resolved):
            if value == 0:
                continue
            filtered_preimages.append(preimage.model_copy(update={"value": value}))
            filtered_ciphertexts.append(ciphertext)

        self.logger.info(f"Shielding {nonzero} of {len(preimages)} requested notes")
        ctx = CallContext(caller=self.account.address, gas=gas)
        self.ledger.shield(ctx, filtered_preimages, filtered_ciphertexts)
        return nonzero
