"""
Configuration for the relay adapt engine.
"""
import logging
import os
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .utils import to_address

logger = logging.getLogger(__name__)

DEFAULT_BYPASS_ADDRESS = "0x000000000000000000000000000000000000dEaD"
DEFAULT_GAS = 30_000_000

ENV_PREFIX = "RELAY_ADAPT_"
_TRUTHY = {"1", "true", "yes", "on"}


class FailurePolicy(str, Enum):
    """How the multicall treats failing steps."""
    ABORT = "abort"
    COLLECT = "collect"


class AdaptConfig(BaseModel):
    """
    Engine settings.

    The verification bypass identity may skip the adapt params check and call
    self-only entrypoints directly. It exists for tooling that validates
    commitments without moving real funds and is disabled unless
    ``allow_verification_bypass`` is set.
    """
    verification_bypass_address: str = DEFAULT_BYPASS_ADDRESS
    allow_verification_bypass: bool = False
    failure_policy: FailurePolicy = FailurePolicy.ABORT
    default_gas: int = Field(DEFAULT_GAS, gt=0)

    class Config:
        frozen = True

    @field_validator("verification_bypass_address", mode="before")
    @classmethod
    def check_bypass_address(cls, value: Any) -> str:
        return to_address(value)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AdaptConfig":
        """
        Build a config from ``RELAY_ADAPT_*`` environment variables.

        Recognized variables: ``RELAY_ADAPT_BYPASS_ADDRESS``,
        ``RELAY_ADAPT_ALLOW_VERIFICATION_BYPASS``,
        ``RELAY_ADAPT_FAILURE_POLICY`` and ``RELAY_ADAPT_DEFAULT_GAS``.
        Unset variables keep their defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            AdaptConfig instance

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        values = {}

        bypass_address = env.get(f"{ENV_PREFIX}BYPASS_ADDRESS")
        if bypass_address:
            values["verification_bypass_address"] = bypass_address

        allow_bypass = env.get(f"{ENV_PREFIX}ALLOW_VERIFICATION_BYPASS")
        if allow_bypass is not None:
            values["allow_verification_bypass"] = allow_bypass.strip().lower() in _TRUTHY

        policy = env.get(f"{ENV_PREFIX}FAILURE_POLICY")
        if policy:
            values["failure_policy"] = policy.strip().lower()

        default_gas = env.get(f"{ENV_PREFIX}DEFAULT_GAS")
        if default_gas:
            values["default_gas"] = default_gas

        config = cls(**values)
        if config.allow_verification_bypass:
            logger.warning(
                f"Verification bypass enabled for {config.verification_bypass_address}; "
                "do not use this configuration with real funds"
            )
        return config
