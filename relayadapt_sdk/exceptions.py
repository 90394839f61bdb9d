"""
Exceptions for the RelayAdapt SDK.
"""
from typing import Optional


class RelayAdaptError(Exception):
    """Base exception for relay adapt failures."""

    @property
    def revert_data(self) -> bytes:
        """
        Raw revert payload for this failure.

        Returns:
            ``Error(string)`` ABI encoding of the exception message
        """
        from .abi import encode_error
        return encode_error(str(self))


class CallReverted(RelayAdaptError):
    """Raised when a collaborator contract reverts with a raw payload."""

    def __init__(self, data: bytes = b"", message: Optional[str] = None):
        self.data = bytes(data)
        if message is None:
            from .abi import decode_revert_reason
            message = decode_revert_reason(self.data)
        super().__init__(message)

    @property
    def revert_data(self) -> bytes:
        return self.data


class ParameterMismatchError(RelayAdaptError):
    """Raised when a transaction's adapt params do not match the action data."""

    def __init__(self, index: int, expected: bytes, actual: bytes):
        self.index = index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"RelayAdapt: Invalid adapt params on transaction {index} "
            f"(expected 0x{expected.hex()}, got 0x{actual.hex()})"
        )


class CallFailedError(RelayAdaptError):
    """Raised when a must-succeed call in a multicall fails."""

    def __init__(self, index: int, reason: bytes):
        self.index = index
        self.reason = bytes(reason)
        from .abi import decode_revert_reason
        super().__init__(f"RelayAdapt: Call {index} failed: {decode_revert_reason(self.reason)}")

    @property
    def revert_data(self) -> bytes:
        from .abi import encode_call_failed
        return encode_call_failed(self.index, self.reason)


class AccessDeniedError(RelayAdaptError):
    """Raised when a self-only entrypoint is reached by an outside caller."""
    pass


class InsufficientResourcesError(RelayAdaptError):
    """Raised when the supplied gas does not exceed the action's minimum."""

    def __init__(self, gas: int, min_gas_limit: int):
        self.gas = gas
        self.min_gas_limit = min_gas_limit
        super().__init__(
            f"RelayAdapt: Not enough gas supplied ({gas} <= {min_gas_limit})"
        )


class UnsupportedTokenKindError(RelayAdaptError):
    """Raised when a non-fungible token reaches a fungible-only operation."""

    def __init__(self, token_type: int):
        self.token_type = token_type
        super().__init__(f"RelayAdapt: Unsupported token type {int(token_type)}")


class TransactionError(RelayAdaptError):
    """Raised when building, signing or sending an on-chain transaction fails."""
    pass
