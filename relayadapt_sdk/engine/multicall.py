"""
Ordered multicall execution.

Both failure policies run through the same loop:

* ``FailurePolicy.ABORT`` stops at the first failing must-succeed call and
  raises ``CallFailedError``. Calls to the dispatcher's own address are
  always must-succeed; other calls are must-succeed only when
  ``require_success`` is set. Tolerated failures are rolled back individually.
* ``FailurePolicy.COLLECT`` attempts every call and raises for the first
  failed call afterwards, only if ``require_success`` is set.
"""
import logging
from typing import Callable, List, Optional, Sequence

from ..abi import decode_revert_reason
from ..config import FailurePolicy
from ..exceptions import CallFailedError, RelayAdaptError
from ..models import Call, CallResult
from .chain import Chain

# (data, value, gas) -> returned
SelfInvoker = Callable[[bytes, int, int], bytes]


class MulticallDispatcher:
    """Runs a sequence of calls on behalf of one engine address."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        invoke_self: SelfInvoker,
        policy: FailurePolicy = FailurePolicy.ABORT,
        logger: Optional[logging.Logger] = None,
    ):
        self.chain = chain
        self.address = address
        self.invoke_self = invoke_self
        self.policy = policy
        self.logger = logger or logging.getLogger(__name__)

    def _execute(self, call: Call, gas: int) -> bytes:
        if call.to == self.address:
            return self.invoke_self(call.data, call.value, gas)
        return self.chain.call(self.address, call.to, call.data, call.value, gas)

    def run_calls(self, require_success: bool, calls: Sequence[Call], gas: int) -> List[CallResult]:
        """
        Execute ``calls`` in order.

        Args:
            require_success: Whether failing calls abort the invocation
            calls: Calls to execute; each one receives the full ``gas`` budget
            gas: Remaining gas budget

        Returns:
            One ``CallResult`` per call

        Raises:
            CallFailedError: If a must-succeed call fails
        """
        results: List[CallResult] = []
        for index, call in enumerate(calls):
            try:
                with self.chain.atomic():
                    returned = self._execute(call, gas)
            except RelayAdaptError as e:
                reason = e.revert_data
                must_succeed = require_success or call.to == self.address
                if self.policy is FailurePolicy.ABORT and must_succeed:
                    self.logger.error(f"Call {index} to {call.to} failed, aborting: {e}")
                    raise CallFailedError(index, reason) from e
                self.logger.warning(
                    f"Call {index} to {call.to} failed, continuing: {decode_revert_reason(reason)}"
                )
                results.append(CallResult(success=False, returned=reason))
                continue
            results.append(CallResult(success=True, returned=returned))

        if self.policy is FailurePolicy.COLLECT and require_success:
            for index, result in enumerate(results):
                if not result.success:
                    raise CallFailedError(index, result.returned)
        return results
