"""Identity, parties and naming rules of the custody contract."""

from protocol.contract import (
    CONTRACT_HASH,
    CONTRACT_CREDENTIAL,
    CONTRACT_ADDRESS,
    ADMINISTRATOR_KEY,
    ADMINISTRATOR,
    DELEGATES,
    STATE_TOKEN_PREFIX,
    state_token_name,
    state_token,
    contract_tokens,
    is_contract_address,
    is_locked_by_contract,
    delegate_of,
)

__all__ = [
    "CONTRACT_HASH",
    "CONTRACT_CREDENTIAL",
    "CONTRACT_ADDRESS",
    "ADMINISTRATOR_KEY",
    "ADMINISTRATOR",
    "DELEGATES",
    "STATE_TOKEN_PREFIX",
    "state_token_name",
    "state_token",
    "contract_tokens",
    "is_contract_address",
    "is_locked_by_contract",
    "delegate_of",
]
