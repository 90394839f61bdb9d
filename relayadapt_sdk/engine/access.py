"""
Access control for the adapt engine's self-only entrypoints.
"""
import logging
from enum import Enum

from ..config import AdaptConfig
from ..exceptions import AccessDeniedError
from ..utils import to_address
from .chain import CallContext

logger = logging.getLogger(__name__)


class AccessMode(str, Enum):
    RESTRICTED = "restricted"
    BYPASS_ALLOWED = "bypass_allowed"


class ReentryCapability:
    """Token proving a call was dispatched by its owner's own multicall."""

    __slots__ = ("owner",)

    def __init__(self, owner: str):
        self.owner = owner

    def __repr__(self) -> str:
        return f"ReentryCapability(owner={self.owner})"


class AccessGuard:
    """
    Gate in front of the engine's sensitive operations.

    A call passes if it carries the engine's own ``ReentryCapability`` or, when
    the config enables it, comes straight from the verification bypass
    identity. The check never looks at the transaction origin.
    """

    def __init__(self, capability: ReentryCapability, config: AdaptConfig):
        self._capability = capability
        self.config = config

    @property
    def mode(self) -> AccessMode:
        if self.config.allow_verification_bypass:
            return AccessMode.BYPASS_ALLOWED
        return AccessMode.RESTRICTED

    def is_bypass(self, caller: str) -> bool:
        if self.mode is not AccessMode.BYPASS_ALLOWED:
            return False
        return to_address(caller) == self.config.verification_bypass_address

    def check(self, ctx: CallContext, operation: str) -> None:
        """
        Raises:
            AccessDeniedError: If the context may not run ``operation``
        """
        if ctx.capability is not None and ctx.capability is self._capability:
            return
        if self.is_bypass(ctx.caller):
            logger.warning(f"Verification bypass caller invoked {operation}")
            return
        raise AccessDeniedError(f"RelayAdapt: {operation} is only callable by the adapt contract itself")
