"""
RelayAdapt - the adapt engine a relayer submits to.
"""
import logging
from typing import List, Optional, Sequence

from ..abi import (
    GET_ADAPT_PARAMS_SIGNATURE, MULTICALL_SIGNATURE, RELAY_SIGNATURE, SHIELD_SIGNATURE, TRANSFER_SIGNATURE,
    UNWRAP_BASE_SIGNATURE, WRAP_BASE_SIGNATURE,
)
from ..adapt_params import compute_adapt_params
from ..config import AdaptConfig
from ..exceptions import InsufficientResourcesError
from ..models import (
    ActionData, Call, CallResult, CommitmentPreimage, ShieldCiphertext,
    TokenTransfer, Transaction,
)
from ..utils import to_address
from .access import AccessGuard, ReentryCapability
from .accounts import AdaptAccount
from .chain import CallContext, Chain, Contract, entrypoint
from .executor import ShieldedBatchExecutor
from .ledger import ShieldedLedger
from .multicall import MulticallDispatcher
from .shield import TokenSweepShielder
from .transfer import TokenSender
from .wrapper import BaseTokenWrapper


class RelayAdapt(Contract):
    """
    Executes a shielded transaction batch followed by the calls bound to it.

    ``relay`` is the public entrypoint. ``shield``, ``transfer``, ``wrapBase``,
    ``unwrapBase`` and ``multicall`` are self-only: they are reached as steps
    of the engine's own multicall, or directly by the verification bypass
    identity when the config enables it.
    """

    accepts_value = True

    def __init__(
        self,
        chain: Chain,
        address: str,
        ledger: ShieldedLedger,
        wrapped_base: str,
        config: Optional[AdaptConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the engine and deploy it on ``chain``.

        Args:
            chain: Execution environment
            address: Address of the engine
            ledger: Shielded ledger collaborator
            wrapped_base: Address of the wrapped base asset contract
            config: Engine settings (defaults to ``AdaptConfig()``)
            logger: Optional logger instance to use for debug/info logging
        """
        super().__init__(chain, address)
        self.config = config or AdaptConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.ledger = ledger
        self.wrapped_base = to_address(wrapped_base)

        self._capability = ReentryCapability(self.address)
        self.account = AdaptAccount(chain, self.address)
        self.guard = AccessGuard(self._capability, self.config)
        self.executor = ShieldedBatchExecutor(self.address, ledger, self.guard, logger=self.logger)
        self.dispatcher = MulticallDispatcher(
            chain, self.address, self._invoke_self, self.config.failure_policy, logger=self.logger
        )
        self.shielder = TokenSweepShielder(self.account, ledger, logger=self.logger)
        self.wrapper = BaseTokenWrapper(self.account, self.wrapped_base, logger=self.logger)
        self.sender = TokenSender(self.account, logger=self.logger)

    def _invoke_self(self, data: bytes, value: int, gas: int) -> bytes:
        ctx = CallContext(caller=self.address, value=value, gas=gas, capability=self._capability)
        return self.handle(ctx, data)

    def get_adapt_params(self, transactions: Sequence[Transaction], action_data: ActionData) -> bytes:
        """Pure adapt params computation, open to any caller."""
        return compute_adapt_params(transactions, action_data)

    def relay(
        self,
        transactions: Sequence[Transaction],
        action_data: ActionData,
        *,
        caller: str,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> List[CallResult]:
        """
        Settle ``transactions`` and run the calls bound to them, atomically.

        Args:
            transactions: Shielded transactions; may be empty
            action_data: Follow-up calls the transactions are bound to
            caller: Address submitting the relay
            value: Native value sent along, credited to the engine
            gas: Gas budget (defaults to the configured default)

        Returns:
            One ``CallResult`` per call in ``action_data.calls``

        Raises:
            InsufficientResourcesError: If ``gas`` does not exceed
                ``action_data.min_gas_limit``
            ParameterMismatchError: If the batch is not bound to ``action_data``
            CallFailedError: If a must-succeed call fails
            RelayAdaptError: If the ledger rejects the batch

        Every failure rolls back the whole invocation.
        """
        gas = self.config.default_gas if gas is None else gas
        ctx = CallContext(caller=to_address(caller), value=value, gas=gas)
        with self.chain.atomic():
            self.chain.transfer_native(ctx.caller, self.address, value)
            return self._execute_relay(ctx, transactions, action_data)

    def _execute_relay(
        self,
        ctx: CallContext,
        transactions: Sequence[Transaction],
        action_data: ActionData,
    ) -> List[CallResult]:
        # ctx.value has already been credited to the engine
        if ctx.gas <= action_data.min_gas_limit:
            raise InsufficientResourcesError(ctx.gas, action_data.min_gas_limit)
        self.executor.execute_batch(ctx, transactions, action_data)
        results = self.dispatcher.run_calls(action_data.require_success, action_data.calls, ctx.gas)
        self.logger.info(
            f"Relayed {len(transactions)} transactions and {len(results)} calls "
            f"({sum(1 for r in results if not r.success)} tolerated failures)"
        )
        return results

    @entrypoint(RELAY_SIGNATURE, payable=True)
    def relay_entrypoint(self, ctx: CallContext, transactions, action_data) -> None:
        self._execute_relay(
            ctx,
            [Transaction.from_abi(transaction) for transaction in transactions],
            ActionData.from_abi(action_data),
        )

    @entrypoint(GET_ADAPT_PARAMS_SIGNATURE, returns="bytes32")
    def get_adapt_params_entrypoint(self, ctx: CallContext, transactions, action_data) -> bytes:
        return self.get_adapt_params(
            [Transaction.from_abi(transaction) for transaction in transactions],
            ActionData.from_abi(action_data),
        )

    @entrypoint(SHIELD_SIGNATURE)
    def shield(self, ctx: CallContext, preimages, ciphertexts) -> None:
        self.guard.check(ctx, "shield")
        self.shielder.shield_tokens(
            [CommitmentPreimage.from_abi(preimage) for preimage in preimages],
            [ShieldCiphertext.from_abi(ciphertext) for ciphertext in ciphertexts],
            gas=ctx.gas,
        )

    @entrypoint(TRANSFER_SIGNATURE)
    def transfer(self, ctx: CallContext, transfers) -> None:
        self.guard.check(ctx, "transfer")
        self.sender.send([TokenTransfer.from_abi(transfer) for transfer in transfers])

    @entrypoint(WRAP_BASE_SIGNATURE)
    def wrap_base(self, ctx: CallContext, amount: int) -> None:
        self.guard.check(ctx, "wrapBase")
        self.wrapper.wrap(amount, gas=ctx.gas)

    @entrypoint(UNWRAP_BASE_SIGNATURE)
    def unwrap_base(self, ctx: CallContext, amount: int) -> None:
        self.guard.check(ctx, "unwrapBase")
        self.wrapper.unwrap(amount, gas=ctx.gas)

    @entrypoint(MULTICALL_SIGNATURE)
    def multicall(self, ctx: CallContext, require_success: bool, calls) -> None:
        self.guard.check(ctx, "multicall")
        self.dispatcher.run_calls(require_success, [Call.from_abi(call) for call in calls], ctx.gas)
