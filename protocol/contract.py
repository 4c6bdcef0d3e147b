"""Identity and naming rules of the hot/cold delegate custody contract.

The contract is a single script whose hash is both the minting policy of
its state tokens and the payment/delegation credential of the address
that locks them. A state token is named ``gov_`` followed by the
blake2b-224 digest of the delegate rules it stands for.
"""

import hashlib
import json
from typing import Iterable, Optional

from ledger.models import (
    ADA_POLICY_ID,
    Address,
    Data,
    Input,
    Output,
    Script,
    Value,
)
from ledger.multisig import AtLeast, MultisigScript, Signature, to_data


def _blake2b_224(payload: bytes) -> bytes:
    return hashlib.blake2b(payload, digest_size=28).digest()


def key_hash(seed: str) -> bytes:
    """Deterministic 28-byte verification key hash for a named party."""
    return _blake2b_224(f"key:{seed}".encode())


CONTRACT_HASH = _blake2b_224(b"script:hot-cold-delegate-custody")

CONTRACT_CREDENTIAL = Script(CONTRACT_HASH)

# Payment and delegation credentials both set to the contract
CONTRACT_ADDRESS = Address(payment=CONTRACT_CREDENTIAL, stake=CONTRACT_CREDENTIAL)

ADMINISTRATOR_KEY = key_hash("administrator")
ADMINISTRATOR: MultisigScript = Signature(ADMINISTRATOR_KEY)

DELEGATES: dict[str, MultisigScript] = {
    "alice": Signature(key_hash("alice")),
    "bob": Signature(key_hash("bob")),
    "carol": Signature(key_hash("carol")),
    "quorum": AtLeast(
        2,
        (
            Signature(key_hash("dave")),
            Signature(key_hash("erin")),
            Signature(key_hash("frank")),
        ),
    ),
}

STATE_TOKEN_PREFIX = b"gov_"

DREP_DEPOSIT = 500_000_000
MIN_LOVELACE = 2_000_000

# Foreign (non-contract) assets every fuel input carries, so noise can be
# added to outputs without minting it
FOREIGN_ASSETS: tuple[tuple[bytes, bytes], ...] = (
    (_blake2b_224(b"policy:stablecoin"), b"USDM"),
    (_blake2b_224(b"policy:stablecoin"), b"iUSD"),
    (_blake2b_224(b"policy:nft-collection"), b"SpaceBud#42"),
)
FOREIGN_ASSET_SUPPLY = 1_000_000_000


def canonical_bytes(data: Data) -> bytes:
    """Stable byte encoding of plain data used for hashing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode()


def state_token_name(rules: MultisigScript) -> bytes:
    """Asset name of the state token bound to the given delegate rules."""
    return STATE_TOKEN_PREFIX + _blake2b_224(canonical_bytes(to_data(rules)))


def state_token(rules: MultisigScript, quantity: int = 1) -> Value:
    return Value.from_asset(CONTRACT_HASH, state_token_name(rules), quantity)


def contract_tokens(value: Value) -> Value:
    """Only the assets minted under the contract's own policy."""
    return value.restricted_to([CONTRACT_HASH])


def foreign_assets(value: Value) -> Value:
    """Everything that is neither lovelace nor a contract-policy token."""
    return value.without([ADA_POLICY_ID, CONTRACT_HASH])


def is_contract_address(address: Address) -> bool:
    """True when the payment credential is the contract script."""
    return address.payment == CONTRACT_CREDENTIAL


def is_locked_by_contract(output: Output) -> bool:
    return is_contract_address(output.address)


def contract_held(inputs: Iterable[Input]) -> Value:
    """Total value sitting at contract-locked inputs."""
    return Value.sum(i.output.value for i in inputs if is_locked_by_contract(i.output))


def delegate_of(value: Value) -> Optional[MultisigScript]:
    """The delegate whose state token is the sole contract asset in ``value``.

    Returns None unless the contract-policy part of the value is exactly
    one unit of one known delegate's token.
    """
    tokens = contract_tokens(value).tokens(CONTRACT_HASH)
    if len(tokens) != 1:
        return None
    (name, quantity), = tokens.items()
    if quantity != 1:
        return None
    for rules in DELEGATES.values():
        if state_token_name(rules) == name:
            return rules
    return None


def delegate_name(rules: MultisigScript) -> str:
    for name, candidate in DELEGATES.items():
        if candidate == rules:
            return name
    return "unknown"

