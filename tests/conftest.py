"""Shared fixtures and Hypothesis profile for the test suite."""

import os

import pytest
from hypothesis import HealthCheck, settings

from config.models import Config, GenerationWeights
from ledger.models import Address, Input, Output, OutputReference, Value, VerificationKey
from protocol.contract import CONTRACT_ADDRESS, DELEGATES, key_hash, state_token


settings.register_profile(
    "custody",
    deadline=None,
    max_examples=50,
    suppress_health_check=[
        HealthCheck.too_slow,
        HealthCheck.data_too_large,
        HealthCheck.filter_too_much,
        HealthCheck.large_base_example,
    ],
)
settings.register_profile("ci", parent=settings.get_profile("custody"), max_examples=200)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "custody"))


@pytest.fixture(scope="session")
def default_weights():
    """Generation weights as shipped."""
    return GenerationWeights()


@pytest.fixture
def default_config():
    """Configuration with every default."""
    return Config()


@pytest.fixture(scope="session")
def wallet_address():
    """A plain key-locked address."""
    return Address(payment=VerificationKey(key_hash("wallet")))


@pytest.fixture(scope="session")
def alice():
    """Delegate rules of alice."""
    return DELEGATES["alice"]


@pytest.fixture(scope="session")
def alice_custody_input(alice):
    """A contract UTxO holding exactly one unit of alice's state token."""
    return Input(
        OutputReference(b"\x01" * 32, 0),
        Output(CONTRACT_ADDRESS, Value.from_lovelace(5_000_000) + state_token(alice)),
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Keep campaign environment variables from leaking into tests."""
    for name in (
        "CUSTODY_EXAMPLES",
        "CUSTODY_SEED",
        "CUSTODY_MAX_STEPS",
        "CUSTODY_MIN_CLASS_RATIO",
        "CUSTODY_VALIDATOR",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
