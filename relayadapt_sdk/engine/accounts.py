"""
Engine-held balances.
"""
import logging

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from ..abi import encode_error, encode_function_call
from ..config import DEFAULT_GAS
from ..exceptions import CallReverted
from .chain import Chain

logger = logging.getLogger(__name__)

NON_CONTRACT_REASON = "Address: call to non-contract"
OPERATION_FAILED_REASON = "SafeERC20: ERC20 operation did not succeed"


class AdaptAccount:
    """
    The adapt engine's own holdings on a ``Chain``.

    Every read or movement of engine-held native value and tokens goes through
    this object; the engine keeps no balances of its own.
    """

    def __init__(self, chain: Chain, address: str):
        self.chain = chain
        self.address = address

    def call(self, target: str, data: bytes = b"", value: int = 0, gas: int = DEFAULT_GAS) -> bytes:
        return self.chain.call(self.address, target, data, value, gas)

    def native_balance(self) -> int:
        return self.chain.balance_of(self.address)

    def token_balance(self, token: str) -> int:
        """
        Read the engine's ``balanceOf`` on ``token``.

        Raises:
            CallReverted: If the token returns nothing or something that is
                not a ``uint256``
        """
        returned = self.call(token, encode_function_call("balanceOf(address)", self.address))
        try:
            (balance,) = decode(["uint256"], returned)
        except DecodingError as e:
            logger.debug(f"Undecodable balanceOf return from {token}: {e}")
            raise CallReverted(b"")
        return balance

    def _safe_token_call(self, token: str, data: bytes) -> None:
        # Tokens that return nothing are accepted; tokens that return false are not
        if self.chain.get_contract(token) is None:
            raise CallReverted(encode_error(NON_CONTRACT_REASON))
        returned = self.call(token, data)
        if not returned:
            return
        try:
            (ok,) = decode(["bool"], returned)
        except DecodingError as e:
            logger.debug(f"Undecodable bool return from {token}: {e}")
            raise CallReverted(b"")
        if not ok:
            raise CallReverted(encode_error(OPERATION_FAILED_REASON))

    def approve(self, token: str, spender: str, amount: int) -> None:
        logger.debug(f"Approving {spender} for {amount} of {token}")
        self._safe_token_call(token, encode_function_call("approve(address,uint256)", spender, amount))

    def transfer_token(self, token: str, to: str, amount: int) -> None:
        logger.debug(f"Transferring {amount} of {token} to {to}")
        self._safe_token_call(token, encode_function_call("transfer(address,uint256)", to, amount))

    def send_native(self, to: str, amount: int) -> None:
        logger.debug(f"Sending {amount} native to {to}")
        self.call(to, b"", value=amount)
