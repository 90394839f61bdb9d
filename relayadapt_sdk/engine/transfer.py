"""
Plain sends of engine-held tokens and base asset.
"""
import logging
from typing import Optional, Sequence

from ..exceptions import UnsupportedTokenKindError
from ..models import TokenTransfer, TokenType
from .accounts import AdaptAccount


class TokenSender:
    """
    Sends engine-held balances to arbitrary recipients.

    An ERC20 descriptor with the zero address stands for the base asset. A
    zero value sends the whole balance.
    """

    def __init__(self, account: AdaptAccount, logger: Optional[logging.Logger] = None):
        self.account = account
        self.logger = logger or logging.getLogger(__name__)

    def send(self, transfers: Sequence[TokenTransfer]) -> None:
        """
        Raises:
            UnsupportedTokenKindError: If a transfer is not ERC20 or base asset
        """
        for transfer in transfers:
            if transfer.token.token_type != TokenType.ERC20:
                raise UnsupportedTokenKindError(transfer.token.token_type)

        for transfer in transfers:
            if transfer.token.is_native:
                amount = transfer.value or self.account.native_balance()
                self.account.send_native(transfer.to, amount)
            else:
                token = transfer.token.token_address
                amount = transfer.value or self.account.token_balance(token)
                self.account.transfer_token(token, transfer.to, amount)
            self.logger.debug(f"Sent {amount} of {transfer.token.token_address} to {transfer.to}")
