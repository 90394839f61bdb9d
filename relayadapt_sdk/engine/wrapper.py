"""
Wrapping and unwrapping of the chain's base asset.
"""
import logging
from typing import Optional

from ..abi import encode_function_call
from ..config import DEFAULT_GAS
from .accounts import AdaptAccount


class BaseTokenWrapper:
    """Moves engine-held value between the base asset and its wrapped token."""

    def __init__(self, account: AdaptAccount, wrapped_base: str, logger: Optional[logging.Logger] = None):
        self.account = account
        self.wrapped_base = wrapped_base
        self.logger = logger or logging.getLogger(__name__)

    def wrap(self, amount: int, gas: int = DEFAULT_GAS) -> int:
        """
        Wrap ``amount`` of the base asset; zero wraps the entire native balance.

        Returns:
            The amount wrapped
        """
        if amount == 0:
            amount = self.account.native_balance()
        self.logger.debug(f"Wrapping {amount} base asset")
        self.account.call(self.wrapped_base, encode_function_call("deposit()"), value=amount, gas=gas)
        return amount

    def unwrap(self, amount: int, gas: int = DEFAULT_GAS) -> int:
        """
        Unwrap ``amount`` of the wrapped token; zero unwraps the entire balance.

        Returns:
            The amount unwrapped
        """
        if amount == 0:
            amount = self.account.token_balance(self.wrapped_base)
        self.logger.debug(f"Unwrapping {amount} wrapped base asset")
        self.account.call(self.wrapped_base, encode_function_call("withdraw(uint256)", amount), gas=gas)
        return amount
