"""Configuration management module for the custody scenario generator."""

from config.models import (
    Config,
    GenerationWeights,
    CampaignConfig,
    LoggingConfig,
)
from config.loader import ConfigurationManager

__all__ = [
    "Config",
    "GenerationWeights",
    "CampaignConfig",
    "LoggingConfig",
    "ConfigurationManager",
]
