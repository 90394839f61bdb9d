"""
Stub collaborators for the adapt engine.

This module provides in-memory stand-ins for the contracts the adapt engine
talks to: an ERC20-style token, a wrapped base asset and a shielded ledger.
They implement just enough behavior to exercise the engine end to end and
perform no proof verification.
"""
import logging
from typing import Sequence

from eth_abi import encode
from web3 import Web3

from ..abi import COMMITMENT_PREIMAGE, encode_error, encode_function_call
from ..exceptions import CallReverted
from ..models import CommitmentPreimage, ShieldCiphertext, TokenType, Transaction, UnshieldType
from ..utils import to_address
from .chain import CallContext, Chain, Contract, entrypoint
from .ledger import ShieldedLedger

logger = logging.getLogger(__name__)


def _revert(message: str) -> CallReverted:
    return CallReverted(encode_error(message))


class StubToken(Contract):
    """Minimal ERC20 token."""

    def __init__(self, chain: Chain, address: str, symbol: str = "TEST"):
        super().__init__(chain, address)
        self.symbol = symbol

    def _balances(self):
        return self.storage.setdefault("balances", {})

    def _allowances(self):
        return self.storage.setdefault("allowances", {})

    def _move(self, sender: str, to: str, amount: int) -> None:
        balances = self._balances()
        if balances.get(sender, 0) < amount:
            raise _revert(f"{self.symbol}: transfer amount exceeds balance")
        balances[sender] = balances.get(sender, 0) - amount
        balances[to] = balances.get(to, 0) + amount

    def mint(self, to: str, amount: int) -> None:
        """Credit ``amount`` to ``to`` out of thin air."""
        balances = self._balances()
        to = to_address(to)
        balances[to] = balances.get(to, 0) + amount

    def balance(self, owner: str) -> int:
        return self._balances().get(to_address(owner), 0)

    def allowance_of(self, owner: str, spender: str) -> int:
        return self._allowances().get((to_address(owner), to_address(spender)), 0)

    @entrypoint("balanceOf(address)", returns="uint256")
    def balance_of(self, ctx: CallContext, owner: str) -> int:
        return self.balance(owner)

    @entrypoint("allowance(address,address)", returns="uint256")
    def allowance(self, ctx: CallContext, owner: str, spender: str) -> int:
        return self.allowance_of(owner, spender)

    @entrypoint("approve(address,uint256)", returns="bool")
    def approve(self, ctx: CallContext, spender: str, amount: int) -> bool:
        self._allowances()[(ctx.caller, to_address(spender))] = amount
        return True

    @entrypoint("transfer(address,uint256)", returns="bool")
    def transfer(self, ctx: CallContext, to: str, amount: int) -> bool:
        self._move(ctx.caller, to_address(to), amount)
        return True

    @entrypoint("transferFrom(address,address,uint256)", returns="bool")
    def transfer_from(self, ctx: CallContext, sender: str, to: str, amount: int) -> bool:
        sender = to_address(sender)
        key = (sender, ctx.caller)
        allowances = self._allowances()
        if allowances.get(key, 0) < amount:
            raise _revert(f"{self.symbol}: insufficient allowance")
        allowances[key] = allowances.get(key, 0) - amount
        self._move(sender, to_address(to), amount)
        return True


class StubWrappedBase(StubToken):
    """WETH9-style wrapped base asset."""

    accepts_value = True

    def __init__(self, chain: Chain, address: str, symbol: str = "WETH"):
        super().__init__(chain, address, symbol)

    def handle(self, ctx: CallContext, data: bytes) -> bytes:
        # Plain value transfers deposit, like WETH9's fallback
        if not data and ctx.value:
            self.mint(ctx.caller, ctx.value)
            return b""
        return super().handle(ctx, data)

    @entrypoint("deposit()", payable=True)
    def deposit(self, ctx: CallContext) -> None:
        self.mint(ctx.caller, ctx.value)

    @entrypoint("withdraw(uint256)")
    def withdraw(self, ctx: CallContext, amount: int) -> None:
        balances = self._balances()
        if balances.get(ctx.caller, 0) < amount:
            raise _revert(f"{self.symbol}: withdraw amount exceeds balance")
        balances[ctx.caller] -= amount
        self.chain.transfer_native(self.address, ctx.caller, amount)


class StubLedger(Contract, ShieldedLedger):
    """
    In-memory shielded ledger.

    Tracks spent nullifiers and an append-only commitment list, pays out
    unshields from its own token balances, and pulls shielded tokens from the
    caller. Proofs are not verified.
    """

    def __init__(self, chain: Chain, address: str):
        super().__init__(chain, address)

    @property
    def nullifiers(self) -> set:
        return self.storage.setdefault("nullifiers", set())

    @property
    def commitments(self) -> list:
        return self.storage.setdefault("commitments", [])

    @property
    def shielded(self) -> list:
        """Every preimage shielded so far, in order"""
        return self.storage.setdefault("shielded", [])

    @property
    def merkle_root(self) -> bytes:
        """Digest of the commitment list; changes whenever a note is added"""
        return bytes(Web3.keccak(b"".join(self.commitments)))

    def _pay(self, token: str, to: str, amount: int) -> None:
        self.chain.call(self.address, token, encode_function_call("transfer(address,uint256)", to, amount))

    def transact(self, ctx: CallContext, transactions: Sequence[Transaction]) -> None:
        with self.chain.atomic():
            for transaction in transactions:
                for nullifier in transaction.nullifiers:
                    if nullifier in self.nullifiers:
                        raise _revert("StubLedger: Note already spent")
                    self.nullifiers.add(nullifier)
                self.commitments.extend(transaction.commitments)

                preimage = transaction.unshield_preimage
                if transaction.bound_params.unshield != UnshieldType.NONE and preimage is not None:
                    if preimage.token.token_type != TokenType.ERC20:
                        raise _revert("StubLedger: Unsupported unshield token")
                    recipient = to_address(preimage.npk[-20:])
                    logger.debug(f"Unshielding {preimage.value} of {preimage.token.token_address} to {recipient}")
                    self._pay(preimage.token.token_address, recipient, preimage.value)
        logger.info(f"StubLedger settled {len(transactions)} transactions")

    def shield(
        self,
        ctx: CallContext,
        preimages: Sequence[CommitmentPreimage],
        ciphertexts: Sequence[ShieldCiphertext],
    ) -> None:
        if len(preimages) != len(ciphertexts):
            raise _revert("StubLedger: Mismatched shield request lengths")
        with self.chain.atomic():
            for preimage in preimages:
                if preimage.value == 0:
                    raise _revert("StubLedger: Invalid Note Value")
                if preimage.token.token_type != TokenType.ERC20:
                    raise _revert("StubLedger: Unsupported token type")
                self.chain.call(
                    self.address,
                    preimage.token.token_address,
                    encode_function_call(
                        "transferFrom(address,address,uint256)", ctx.caller, self.address, preimage.value
                    ),
                )
                self.commitments.append(bytes(Web3.keccak(encode([COMMITMENT_PREIMAGE], [preimage.to_abi()]))))
                self.shielded.append(preimage)
        logger.info(f"StubLedger shielded {len(preimages)} notes")
