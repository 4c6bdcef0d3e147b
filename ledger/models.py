"""Data models for the UTxO ledger the custody contract runs on.

These types carry no execution semantics: they only describe what a
transaction looks like so generators can build one and validators can
inspect it. Tagged variants (credentials, datums, certificates, script
purposes, voters) are closed unions of frozen dataclasses.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union


# Base currency lives under the empty policy id with an empty asset name
ADA_POLICY_ID = b""
ADA_ASSET_NAME = b""

AssetKey = tuple[bytes, bytes]

# Plain-data representation used for datums and redeemers
Data = Any

VOID: Data = {"constructor": 0, "fields": []}


class Value:
    """A multi-asset bundle: (policy id, asset name) -> quantity.

    Values are immutable; arithmetic returns new instances and zero
    entries are dropped so two bundles holding the same assets compare
    equal regardless of how they were built.
    """

    __slots__ = ("_assets",)

    def __init__(self, assets: Optional[Mapping[AssetKey, int]] = None):
        cleaned: dict[AssetKey, int] = {}
        for (policy_id, asset_name), quantity in (assets or {}).items():
            key = (bytes(policy_id), bytes(asset_name))
            cleaned[key] = cleaned.get(key, 0) + int(quantity)
        self._assets = {k: q for k, q in cleaned.items() if q != 0}

    @classmethod
    def zero(cls) -> "Value":
        return cls()

    @classmethod
    def from_lovelace(cls, lovelace: int) -> "Value":
        return cls({(ADA_POLICY_ID, ADA_ASSET_NAME): lovelace})

    @classmethod
    def from_asset(cls, policy_id: bytes, asset_name: bytes, quantity: int) -> "Value":
        return cls({(policy_id, asset_name): quantity})

    @classmethod
    def sum(cls, values: Iterable["Value"]) -> "Value":
        total = cls()
        for value in values:
            total = total + value
        return total

    @property
    def lovelace(self) -> int:
        return self._assets.get((ADA_POLICY_ID, ADA_ASSET_NAME), 0)

    def quantity_of(self, policy_id: bytes, asset_name: bytes) -> int:
        return self._assets.get((policy_id, asset_name), 0)

    def tokens(self, policy_id: bytes) -> dict[bytes, int]:
        """Asset name -> quantity for a single policy."""
        return {
            name: quantity
            for (policy, name), quantity in sorted(self._assets.items())
            if policy == policy_id
        }

    def policies(self) -> list[bytes]:
        """Non-ADA policy ids present in this value, sorted."""
        return sorted({p for p, _ in self._assets if p != ADA_POLICY_ID})

    def flatten(self) -> list[tuple[bytes, bytes, int]]:
        """Sorted (policy id, asset name, quantity) triples, ADA first."""
        return [(p, n, q) for (p, n), q in sorted(self._assets.items())]

    def restricted_to(self, policy_ids: Iterable[bytes]) -> "Value":
        """Keep only the given policies (pass ADA_POLICY_ID to keep lovelace)."""
        keep = set(policy_ids)
        return Value({k: q for k, q in self._assets.items() if k[0] in keep})

    def without(self, policy_ids: Iterable[bytes]) -> "Value":
        drop = set(policy_ids)
        return Value({k: q for k, q in self._assets.items() if k[0] not in drop})

    def add(self, policy_id: bytes, asset_name: bytes, quantity: int) -> "Value":
        return self + Value.from_asset(policy_id, asset_name, quantity)

    def is_zero(self) -> bool:
        return not self._assets

    def has_negative(self) -> bool:
        return any(q < 0 for q in self._assets.values())

    def negatives(self) -> "Value":
        return Value({k: q for k, q in self._assets.items() if q < 0})

    def to_dict(self) -> dict[str, int]:
        """Readable form: 'lovelace' or '<policy hex>.<name hex>' keys."""
        return {
            ("lovelace" if p == ADA_POLICY_ID else f"{p.hex()}.{n.hex()}"): q
            for p, n, q in self.flatten()
        }

    def __add__(self, other: "Value") -> "Value":
        merged = dict(self._assets)
        for key, quantity in other._assets.items():
            merged[key] = merged.get(key, 0) + quantity
        return Value(merged)

    def __sub__(self, other: "Value") -> "Value":
        return self + (-other)

    def __neg__(self) -> "Value":
        return Value({k: -q for k, q in self._assets.items()})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self._assets == other._assets

    def __hash__(self) -> int:
        return hash(frozenset(self._assets.items()))

    def __repr__(self) -> str:
        return f"Value({self.to_dict()})"


# ==================== Credentials & Addresses ====================

@dataclass(frozen=True)
class VerificationKey:
    """Credential backed by a key hash."""

    hash: bytes


@dataclass(frozen=True)
class Script:
    """Credential backed by a script hash."""

    hash: bytes


Credential = Union[VerificationKey, Script]


@dataclass(frozen=True)
class Address:
    """Payment credential plus optional delegation (stake) credential."""

    payment: Credential
    stake: Optional[Credential] = None


# ==================== Datums ====================

@dataclass(frozen=True)
class NoDatum:
    pass


@dataclass(frozen=True)
class DatumHash:
    hash: bytes


@dataclass(frozen=True)
class InlineDatum:
    data: Data


Datum = Union[NoDatum, DatumHash, InlineDatum]


# ==================== Outputs & Inputs ====================

@dataclass(frozen=True)
class OutputReference:
    """Pointer to an output of an earlier transaction."""

    transaction_id: bytes
    output_index: int

    def __post_init__(self) -> None:
        if self.output_index < 0:
            raise ValueError("Output index cannot be negative")


@dataclass(frozen=True)
class Output:
    """A realized transaction output."""

    address: Address
    value: Value
    datum: Datum = field(default_factory=NoDatum)
    reference_script: Optional[bytes] = None

    def __post_init__(self) -> None:
        """Outputs can never hold negative quantities."""
        if self.value.has_negative():
            raise ValueError(
                f"Output value cannot hold negative quantities: {self.value.negatives()}"
            )

    def with_value(self, value: Value) -> "Output":
        return Output(
            address=self.address,
            value=value,
            datum=self.datum,
            reference_script=self.reference_script,
        )


@dataclass(frozen=True)
class Input:
    """An output being consumed, resolved together with its reference."""

    output_reference: OutputReference
    output: Output


# ==================== Certificates & Voters ====================

@dataclass(frozen=True)
class RegisterDelegateRepresentative:
    credential: Credential
    deposit: int


@dataclass(frozen=True)
class UnregisterDelegateRepresentative:
    credential: Credential
    refund: int


Certificate = Union[RegisterDelegateRepresentative, UnregisterDelegateRepresentative]


@dataclass(frozen=True)
class DelegateRepresentative:
    """Voter role of a delegate representative credential."""

    credential: Credential


Voter = DelegateRepresentative


# ==================== Script Purposes ====================

@dataclass(frozen=True)
class Minting:
    policy_id: bytes


@dataclass(frozen=True)
class Spending:
    output_reference: OutputReference


@dataclass(frozen=True)
class Withdrawing:
    credential: Credential


@dataclass(frozen=True)
class Publishing:
    index: int
    certificate: Certificate


@dataclass(frozen=True)
class Voting:
    voter: Voter


ScriptPurpose = Union[Spending, Minting, Publishing, Withdrawing, Voting]


def _credential_key(credential: Credential) -> tuple[int, bytes]:
    if isinstance(credential, VerificationKey):
        return (0, credential.hash)
    if isinstance(credential, Script):
        return (1, credential.hash)
    raise TypeError(f"Unknown credential: {credential!r}")


def script_purpose_key(purpose: ScriptPurpose) -> tuple:
    """Sort key following the ledger's redeemer tag order.

    Spend < Mint < Cert < Reward < Vote, then by the purpose's own
    identifier (output reference, policy id, certificate index, ...).
    """
    if isinstance(purpose, Spending):
        ref = purpose.output_reference
        return (0, ref.transaction_id, ref.output_index)
    if isinstance(purpose, Minting):
        return (1, purpose.policy_id)
    if isinstance(purpose, Publishing):
        return (2, purpose.index)
    if isinstance(purpose, Withdrawing):
        return (3, *_credential_key(purpose.credential))
    if isinstance(purpose, Voting):
        return (4, *_credential_key(purpose.voter.credential))
    raise TypeError(f"Unknown script purpose: {purpose!r}")


def compare_script_purpose(left: ScriptPurpose, right: ScriptPurpose) -> int:
    """Three-way comparison matching script_purpose_key."""
    a, b = script_purpose_key(left), script_purpose_key(right)
    return (a > b) - (a < b)


# ==================== Transactions ====================

@dataclass(frozen=True)
class Transaction:
    """A generated transaction, as seen by validator entry points."""

    id: bytes
    inputs: tuple[Input, ...]
    outputs: tuple[Output, ...]
    mint: Value = field(default_factory=Value)
    certificates: tuple[Certificate, ...] = ()
    redeemers: tuple[tuple[ScriptPurpose, Data], ...] = ()
    extra_signatories: tuple[bytes, ...] = ()
    withdrawals: tuple[tuple[Credential, int], ...] = ()
    votes: tuple[Voter, ...] = ()
    reference_inputs: tuple[Input, ...] = ()

    def __post_init__(self) -> None:
        """Validate transaction shape after initialization."""
        if not self.id:
            raise ValueError("Transaction id cannot be empty")
        references = [i.output_reference for i in self.inputs]
        if len(references) != len(set(references)):
            raise ValueError("Transaction cannot spend the same output twice")
        if set(references) & {i.output_reference for i in self.reference_inputs}:
            raise ValueError("Transaction cannot both spend and reference an output")
        if any(amount <= 0 for _, amount in self.withdrawals):
            raise ValueError("Withdrawal amounts must be positive")

    @property
    def total_input(self) -> Value:
        return Value.sum(i.output.value for i in self.inputs)

    @property
    def total_output(self) -> Value:
        return Value.sum(o.value for o in self.outputs)

    @property
    def withdrawn(self) -> Value:
        """Lovelace claimed from reward accounts."""
        return Value.from_lovelace(sum(amount for _, amount in self.withdrawals))

    def is_balanced(self) -> bool:
        """Inputs, withdrawals and mint equal outputs (fees and deposits not modelled)."""
        return self.total_input + self.withdrawn + self.mint == self.total_output

    def redeemer_for(self, purpose: ScriptPurpose) -> Optional[Data]:
        for candidate, data in self.redeemers:
            if candidate == purpose:
                return data
        return None

    def produced(self) -> tuple[Input, ...]:
        """This transaction's outputs, as inputs for a following transaction."""
        return tuple(
            Input(OutputReference(self.id, index), output)
            for index, output in enumerate(self.outputs)
        )
