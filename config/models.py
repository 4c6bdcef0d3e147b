"""Pydantic models for configuration schema validation."""

import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Use standard logging here since this module is loaded before our logging is configured
logger = logging.getLogger(__name__)


class GenerationWeights(BaseModel):
    """Branch weights of the scenario generator.

    Percentages unless noted; the per-mille weight is out of 1000.
    Setting a weight to 0 or 100 pins a branch, which tests use to force
    concrete scenarios.
    """

    model_config = {"frozen": True}

    register: int = Field(default=80, ge=0, le=100, description="Attempt registration when unregistered")
    unregister: int = Field(default=60, ge=0, le=100, description="Attempt unregistration when registered")
    faithful_forward: int = Field(
        default=220, ge=0, le=1000, description="Per-mille weight of a faithful forward"
    )
    full_forward: int = Field(default=90, ge=0, le=100, description="Forward all held lovelace")
    split_forward: int = Field(default=15, ge=0, le=100, description="Split forwarded lovelace in two")
    admin_withdrawal: int = Field(default=24, ge=0, le=100, description="Admin removes lovelace on register")
    admin_signature: int = Field(default=80, ge=0, le=100, description="Administrator signs the transaction")
    swap_delegate: int = Field(default=50, ge=0, le=100, description="Swap delegate instead of revoking")
    trapped_swap: int = Field(default=90, ge=0, le=100, description="Swapped token stays at the contract")
    vote: int = Field(default=15, ge=0, le=100, description="Cast a vote while a delegate is held")
    delegate_signature: int = Field(default=80, ge=0, le=100, description="Delegates sign their vote")
    mismatched_vote: int = Field(
        default=10, ge=0, le=100, description="Vote redeemer names another delegate"
    )
    reward_withdrawal: int = Field(
        default=10, ge=0, le=100, description="Forward also withdraws contract rewards"
    )

    # Initial value outcomes; canonical takes the rest
    noise: int = Field(default=10, ge=0, le=100)
    illegal_quantity: int = Field(default=10, ge=0, le=100)
    illegal_name: int = Field(default=10, ge=0, le=100)
    no_state_token: int = Field(default=10, ge=0, le=100)

    # Initial output addresses; canonical contract address takes the rest
    missing_delegation: int = Field(default=10, ge=0, le=100)
    foreign_address: int = Field(default=10, ge=0, le=100)

    # Initial output count; a single output takes the rest
    no_initial_output: int = Field(default=23, ge=0, le=100, description="Register with no output")
    two_initial_outputs: int = Field(
        default=23, ge=0, le=100, description="Register with two simultaneous outputs"
    )

    @model_validator(mode="after")
    def validate_bands(self) -> "GenerationWeights":
        """Weights sharing a sample must fit in one range."""
        value_bands = self.noise + self.illegal_quantity + self.illegal_name + self.no_state_token
        if value_bands > 100:
            raise ValueError(
                f"Initial value weights must sum to at most 100, got {value_bands}"
            )
        address_bands = self.missing_delegation + self.foreign_address
        if address_bands > 100:
            raise ValueError(
                f"Initial address weights must sum to at most 100, got {address_bands}"
            )
        count_bands = self.no_initial_output + self.two_initial_outputs
        if count_bands > 100:
            raise ValueError(
                f"Initial output count weights must sum to at most 100, got {count_bands}"
            )
        return self


class CampaignConfig(BaseModel):
    """Configuration for a generation campaign."""

    examples: int = Field(default=200, ge=1, le=100000, description="Scenarios to generate")
    seed: Optional[int] = Field(default=None, description="Seed for a reproducible campaign")
    max_steps: int = Field(default=40, ge=4, le=500, description="Longest scenario kept")
    min_class_ratio: float = Field(
        default=0.05,
        ge=0.0,
        le=0.5,
        description="Minimum share of both accept and reject scenarios"
    )
    validator: Optional[str] = Field(
        default=None, description="Validator import path as 'module:attribute'"
    )

    @field_validator("validator")
    @classmethod
    def validate_validator(cls, v: Optional[str]) -> Optional[str]:
        """Validate the import path shape."""
        if v is None:
            return v
        path = v.strip()
        module, sep, attribute = path.partition(":")
        if not sep or not module or not attribute:
            raise ValueError(f"Validator must be 'module:attribute', got '{v}'")
        return path

    @field_validator("examples")
    @classmethod
    def validate_examples(cls, v: int) -> int:
        """Warn when a campaign is too small to say much about coverage."""
        if v < 50:
            logger.warning(
                f"Campaign of {v} examples is unlikely to exercise every "
                f"rejection branch; coverage ratios will be noisy."
            )
        return v


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    format: Literal["json", "text"] = Field(default="text", description="Log format")


class Config(BaseModel):
    """Main configuration model."""

    weights: GenerationWeights = Field(
        default_factory=GenerationWeights, description="Generator branch weights"
    )
    campaign: CampaignConfig = Field(
        default_factory=CampaignConfig, description="Campaign configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
