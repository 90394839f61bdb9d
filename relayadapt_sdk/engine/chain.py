"""
In-process execution environment.

``Chain`` owns every piece of mutable state the adapt engine and its
collaborators touch: native balances and per-contract storage. State can be
snapshotted and restored, which gives each call EVM-style atomicity: a call
that fails leaves no trace, and a failing outer invocation unwinds all of its
nested effects.
"""
import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from pydantic import ValidationError

from ..abi import argument_types, encode_error, function_selector
from ..config import DEFAULT_GAS
from ..exceptions import CallReverted, RelayAdaptError
from ..utils import to_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """
    Execution context handed to a contract entrypoint.

    Attributes:
        caller: Address of the immediate caller
        value: Native value sent along with the call
        gas: Gas budget available to the call
        capability: Re-entry capability, only set for self-dispatched steps
    """
    caller: str
    value: int = 0
    gas: int = DEFAULT_GAS
    capability: Optional[object] = None


@dataclass(frozen=True)
class _Entrypoint:
    name: str
    signature: str
    returns: Optional[str]
    payable: bool


def entrypoint(signature: str, returns: Optional[str] = None, payable: bool = False) -> Callable:
    """
    Expose a contract method under an ABI signature.

    The decorated method is called as ``method(ctx, *decoded_args)`` and its
    return value is ABI-encoded as ``returns`` when given.
    """
    def decorator(fn: Callable) -> Callable:
        fn.__entrypoint__ = (signature, returns, payable)
        return fn
    return decorator


class Contract:
    """
    Base class for contracts living on a ``Chain``.

    Subclasses declare their ABI surface with ``@entrypoint`` and keep all
    mutable state in ``self.storage`` so snapshots capture it.
    """

    accepts_value = False
    _entrypoints: Dict[bytes, _Entrypoint] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        entrypoints = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                spec = getattr(attr, "__entrypoint__", None)
                if spec is None:
                    continue
                signature, returns, payable = spec
                entrypoints[function_selector(signature)] = _Entrypoint(name, signature, returns, payable)
        cls._entrypoints = entrypoints

    def __init__(self, chain: "Chain", address: str):
        self.chain = chain
        self.address = to_address(address)
        chain.deploy(self)

    @property
    def storage(self) -> Dict[str, Any]:
        return self.chain.storage.setdefault(self.address, {})

    def handle(self, ctx: CallContext, data: bytes) -> bytes:
        """
        Dispatch raw calldata to the matching entrypoint.

        Args:
            ctx: Call context
            data: Selector followed by ABI-encoded arguments

        Returns:
            ABI-encoded return data

        Raises:
            CallReverted: If no entrypoint matches, value is sent to a
                non-payable entrypoint or the arguments cannot be decoded
        """
        data = bytes(data)
        if not data:
            if ctx.value and self.accepts_value:
                return b""
            raise CallReverted(b"")

        entry = self._entrypoints.get(data[:4])
        if entry is None:
            raise CallReverted(b"")
        if ctx.value and not entry.payable:
            raise CallReverted(encode_error(f"{type(self).__name__}: {entry.name} is not payable"))

        try:
            args = decode(argument_types(entry.signature), data[4:])
        except DecodingError as e:
            logger.debug(f"Undecodable calldata for {entry.signature}: {e}")
            raise CallReverted(b"")

        try:
            result = getattr(self, entry.name)(ctx, *args)
            if entry.returns is None:
                return b""
            return encode([entry.returns], [result])
        except RelayAdaptError:
            raise
        except ValidationError as e:
            raise CallReverted(encode_error(f"{type(self).__name__}: invalid {entry.name} arguments: {e}"))
        except Exception as e:
            # Any other failure inside a callee is a plain revert
            logger.debug(f"{type(self).__name__}.{entry.name} failed: {type(e).__name__}: {e}")
            raise CallReverted(b"") from e


class Chain:
    """Native balances, deployed contracts and storage with snapshot support."""

    def __init__(self):
        self.balances: Dict[str, int] = {}
        self.storage: Dict[str, Dict[str, Any]] = {}
        self.contracts: Dict[str, Contract] = {}

    def deploy(self, contract: Contract) -> Contract:
        if contract.address in self.contracts:
            raise ValueError(f"Address already has a contract: {contract.address}")
        self.contracts[contract.address] = contract
        logger.debug(f"Deployed {type(contract).__name__} at {contract.address}")
        return contract

    def get_contract(self, address: str) -> Optional[Contract]:
        return self.contracts.get(to_address(address))

    def balance_of(self, address: str) -> int:
        return self.balances.get(to_address(address), 0)

    def set_balance(self, address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Balance cannot be negative")
        self.balances[to_address(address)] = amount

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        """
        Move native value between accounts.

        Raises:
            CallReverted: If ``sender`` holds less than ``amount``
        """
        if amount == 0:
            return
        sender, to = to_address(sender), to_address(to)
        balance = self.balances.get(sender, 0)
        if balance < amount:
            raise CallReverted(encode_error("Chain: insufficient native balance"))
        self.balances[sender] = balance - amount
        self.balances[to] = self.balances.get(to, 0) + amount

    def snapshot(self) -> Tuple[Dict[str, int], Dict[str, Dict[str, Any]]]:
        return copy.deepcopy((self.balances, self.storage))

    def restore(self, snapshot: Tuple[Dict[str, int], Dict[str, Dict[str, Any]]]) -> None:
        balances, storage = copy.deepcopy(snapshot)
        self.balances.clear()
        self.balances.update(balances)
        self.storage.clear()
        self.storage.update(storage)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Roll back every state change made inside the block if it raises."""
        snapshot = self.snapshot()
        try:
            yield
        except BaseException:
            self.restore(snapshot)
            raise

    def call(
        self,
        sender: str,
        target: str,
        data: bytes = b"",
        value: int = 0,
        gas: int = DEFAULT_GAS,
    ) -> bytes:
        """
        Perform an atomic message call from ``sender`` to ``target``.

        Calls to addresses without a contract only move value.

        Returns:
            Raw return data

        Raises:
            RelayAdaptError: Whatever the callee raised; state is rolled back
        """
        target = to_address(target)
        with self.atomic():
            self.transfer_native(sender, target, value)
            contract = self.contracts.get(target)
            if contract is None:
                return b""
            ctx = CallContext(caller=to_address(sender), value=value, gas=gas)
            return contract.handle(ctx, data)
